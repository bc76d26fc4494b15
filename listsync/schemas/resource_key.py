from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import parse_qsl, urlencode

from pydantic import BaseModel, ConfigDict, field_validator


class ResourceKey(BaseModel):
    """Identifies a logical list: resource type plus its active filters.

    Filters are normalized on construction (sorted by name, values coerced to
    str, empty values dropped) so two keys built from equivalent filter
    mappings compare and hash equal.
    """

    model_config = ConfigDict(frozen=True)

    resource: str
    filters: Tuple[Tuple[str, str], ...] = ()

    @field_validator("filters", mode="before")
    @classmethod
    def _normalize_filters(cls, value: Any) -> Tuple[Tuple[str, str], ...]:
        if value is None:
            return ()
        pairs = value.items() if isinstance(value, Mapping) else value
        cleaned = {}
        for name, raw in pairs:
            if raw is None:
                continue
            text = str(raw).strip()
            if text:
                cleaned[str(name)] = text
        return tuple(sorted(cleaned.items()))

    @classmethod
    def of(cls, resource: str, filters: Optional[Mapping[str, Any]] = None) -> "ResourceKey":
        return cls(resource=resource, filters=filters or {})

    @classmethod
    def parse(cls, text: str) -> "ResourceKey":
        resource, _, query = text.partition(":")
        return cls(resource=resource, filters=parse_qsl(query))

    @property
    def params(self) -> Dict[str, str]:
        return dict(self.filters)

    def with_filters(self, filters: Optional[Mapping[str, Any]]) -> "ResourceKey":
        return ResourceKey.of(self.resource, filters)

    def serialize(self) -> str:
        if not self.filters:
            return self.resource
        return f"{self.resource}:{urlencode(self.filters)}"

    def __str__(self) -> str:
        return self.serialize()
