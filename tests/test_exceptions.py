"""Tests for the custom exception hierarchy."""

import pytest
from config.exceptions import (
    SpiderError,
    Disconnect,
    ResourceNotFound,
    InvalidPosition,
    Unsupported,
    ParseFailed,
    MissSectionLink,
    MissSectionContent,
    SpiderInnerFailed,
    DatabaseError,
    InvalidConfigError,
)


class TestExceptionHierarchy:
    def test_all_inherit_from_spider_error(self):
        leaf_classes = [
            Disconnect, ResourceNotFound, InvalidPosition, Unsupported,
            ParseFailed, MissSectionLink, MissSectionContent, SpiderInnerFailed,
            DatabaseError, InvalidConfigError,
        ]
        for cls in leaf_classes:
            assert issubclass(cls, SpiderError), f"{cls.__name__} must inherit SpiderError"


class TestExceptionCreation:
    def test_basic_message(self):
        err = ParseFailed("No rows")
        assert err.message == "No rows"
        assert err.details == {}
        assert str(err) == "No rows"

    def test_with_details(self):
        err = ParseFailed("Bad counter", {"text": "x/y"})
        assert str(err) == "Bad counter (text=x/y)"

    def test_disconnect_carries_seq_and_url(self):
        err = Disconnect("timeout", seq=4, url="http://example.com/4.html")
        assert err.seq == 4
        assert err.reason == "timeout"
        assert "seq=4" in str(err)
        assert "url=http://example.com/4.html" in str(err)

    def test_disconnect_at_returns_bound_copy(self):
        err = Disconnect("refused", url="http://example.com/")
        bound = err.at(7)
        assert bound is not err
        assert bound.seq == 7
        assert bound.url == err.url
        assert err.seq is None

    def test_resource_not_found(self):
        err = ResourceNotFound("category", 42)
        assert err.kind == "category"
        assert err.resource_id == 42
        assert str(err) == "category not found (id=42)"

    def test_unsupported_names_operation(self):
        err = Unsupported("search", "ddxsku")
        assert err.operation == "search"
        assert "search" in str(err)
        assert "spider=ddxsku" in str(err)

    def test_section_errors_carry_seq(self):
        assert MissSectionLink(3, "第四章").seq == 3
        assert MissSectionContent(5).details == {"seq": 5}

    def test_inner_failed_wraps_cause(self):
        cause = KeyError("name")
        err = SpiderInnerFailed(cause, seq=2)
        assert err.cause is cause
        assert err.details == {"cause": "KeyError", "seq": 2}

    def test_catch_base(self):
        with pytest.raises(SpiderError):
            raise InvalidPosition("Index must be >= 1")
