"""Tests for request input validation."""
from __future__ import annotations

import pytest

from listsync.core.exceptions.exceptions import InvalidFilterError
from listsync.middleware.security import Security


@pytest.fixture
def sec() -> Security:
    return Security()


class TestResourceNames:

    @pytest.mark.parametrize("name", ["gallery", "audio", "search-pages"])
    def test_valid(self, sec: Security, name: str):
        assert sec.is_valid_resource(name) is True

    @pytest.mark.parametrize("name", ["", "Gallery", "a b", "../etc", None])
    def test_invalid(self, sec: Security, name):
        assert sec.is_valid_resource(name) is False

    def test_must_be_registered(self, sec: Security):
        assert sec.is_valid_resource("gallery", known=["gallery"]) is True
        assert sec.is_valid_resource("audio", known=["gallery"]) is False


class TestFilters:

    def test_strips_and_drops_empty(self, sec: Security):
        assert sec.clean_filters({"status": "  approved ", "categoryId": "", "q": None}) == {"status": "approved"}

    def test_none_means_no_filters(self, sec: Security):
        assert sec.clean_filters(None) == {}

    def test_rejects_bad_names(self, sec: Security):
        with pytest.raises(InvalidFilterError):
            sec.clean_filters({"status;drop": "x"})

    def test_rejects_control_characters(self, sec: Security):
        with pytest.raises(InvalidFilterError):
            sec.clean_filters({"query": "abc\x00def"})

    def test_rejects_long_values(self, sec: Security):
        with pytest.raises(InvalidFilterError):
            sec.clean_filters({"query": "x" * 500})

    def test_rejects_too_many_filters(self, sec: Security):
        with pytest.raises(InvalidFilterError):
            sec.clean_filters({f"f{i}": "v" for i in range(20)})
