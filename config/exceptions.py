"""Custom exception hierarchy for the novel spider."""

from typing import Optional


class SpiderError(Exception):
    """Base exception for all spider errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# ---- Transport Errors ----

class Disconnect(SpiderError):
    """A page or section could not be fetched.

    Carries the stream slot (`seq`) when raised for one item of an ordered
    stream. Never retried internally.
    """

    def __init__(self, reason: str, seq: Optional[int] = None, url: Optional[str] = None):
        details = {}
        if seq is not None:
            details["seq"] = seq
        if url:
            details["url"] = url
        super().__init__(f"Disconnected: {reason}", details)
        self.reason = reason
        self.seq = seq
        self.url = url

    def at(self, seq: int) -> "Disconnect":
        """Return a copy of this error bound to stream slot `seq`."""
        return Disconnect(self.reason, seq=seq, url=self.url)


# ---- Target Errors ----

class ResourceNotFound(SpiderError):
    """A category or novel id is unknown to the repository."""

    def __init__(self, kind: str, resource_id: int):
        super().__init__(f"{kind} not found", {"id": resource_id})
        self.kind = kind
        self.resource_id = resource_id


class InvalidPosition(SpiderError):
    """Malformed page/item selector."""


class Unsupported(SpiderError):
    """The spider does not implement the requested operation."""

    def __init__(self, operation: str, spider_id: str = ""):
        details = {"spider": spider_id} if spider_id else {}
        super().__init__(f"Operation not supported: {operation}", details)
        self.operation = operation


# ---- Extraction Errors ----

class ParseFailed(SpiderError):
    """A page was fetched but an expected element could not be read."""


class MissSectionLink(SpiderError):
    """A table-of-contents entry has no link."""

    def __init__(self, seq: int, name: str = ""):
        details = {"seq": seq}
        if name:
            details["name"] = name
        super().__init__("Section link missing", details)
        self.seq = seq


class MissSectionContent(SpiderError):
    """A chapter page was fetched but no text could be extracted."""

    def __init__(self, seq: int, name: str = ""):
        details = {"seq": seq}
        if name:
            details["name"] = name
        super().__init__("Section content missing", details)
        self.seq = seq


class SpiderInnerFailed(SpiderError):
    """Unexpected adapter or persistence failure."""

    def __init__(self, cause: BaseException, seq: Optional[int] = None):
        details = {"cause": type(cause).__name__}
        if seq is not None:
            details["seq"] = seq
        super().__init__(f"Spider failed: {cause}", details)
        self.cause = cause
        self.seq = seq


# ---- Database Errors ----

class DatabaseError(SpiderError):
    """Database operation failed."""


# ---- Validation Errors ----

class InvalidConfigError(SpiderError):
    """Configuration value is invalid."""
