import re
from typing import Any, Dict, Iterable, Mapping, Optional

from validators import slug as validate_slug
from validators.utils import ValidationError

from listsync.core.exceptions.exceptions import InvalidFilterError

_CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f]')


class Security:
    """Input validator for list requests coming from a UI shell.

    Behavior:
    - Resource names must be slugs and, when `known` is given, registered.
    - Filter names must be plain identifiers (`status`, `categoryId`, `query`).
    - Filter values are stripped, bounded in length and must not contain
      control characters. Empty values are dropped (they do not narrow a list).
    """

    MAX_VALUE_LEN = 200
    MAX_FILTERS = 10

    def is_valid_resource(self, resource: str, known: Optional[Iterable[str]] = None) -> bool:
        if not resource or not isinstance(resource, str):
            return False
        try:
            if validate_slug(resource) is not True:
                return False
        except ValidationError:
            return False
        return known is None or resource in set(known)

    def clean_filters(self, filters: Optional[Mapping[str, Any]]) -> Dict[str, str]:
        if not filters:
            return {}
        if len(filters) > self.MAX_FILTERS:
            raise InvalidFilterError("*", f"at most {self.MAX_FILTERS} filters are allowed")

        cleaned: Dict[str, str] = {}
        for name, raw in filters.items():
            if not isinstance(name, str) or not name.isidentifier():
                raise InvalidFilterError(str(name), "name must be an identifier")
            if raw is None:
                continue
            value = str(raw).strip()
            if not value:
                continue
            if len(value) > self.MAX_VALUE_LEN:
                raise InvalidFilterError(name, f"value longer than {self.MAX_VALUE_LEN} characters")
            if _CONTROL_CHARS.search(value):
                raise InvalidFilterError(name, "value contains control characters")
            cleaned[name] = value
        return cleaned
