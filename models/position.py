"""Page/item selectors for paginated targets.

All indexes are 1-based and ranges exclude their upper bound, for listing
pages and chapter lists alike.
"""

import re
from dataclasses import dataclass
from typing import Optional

from config.exceptions import InvalidPosition
from models.enums import PositionKind

_RANGE_RE = re.compile(r"^\s*(\d+)\s*\.\.\s*(\d+)\s*$")


@dataclass(frozen=True)
class Position:
    """Which page(s) or item(s) of a target to retrieve."""
    kind: PositionKind
    start: Optional[int] = None
    end: Optional[int] = None

    @classmethod
    def full(cls) -> "Position":
        return cls(PositionKind.FULL)

    @classmethod
    def first(cls) -> "Position":
        return cls(PositionKind.FIRST)

    @classmethod
    def last(cls) -> "Position":
        return cls(PositionKind.LAST)

    @classmethod
    def specify(cls, index: int) -> "Position":
        return cls(PositionKind.SPECIFY, start=index)

    @classmethod
    def range(cls, start: int, end: int) -> "Position":
        return cls(PositionKind.RANGE, start=start, end=end)

    @classmethod
    def parse(cls, text: str) -> "Position":
        """Parse `full`, `first`, `last`, `<n>` or `<lo>..<hi>`."""
        value = (text or "").strip().lower()
        if value in ("full", "first", "last"):
            return cls(PositionKind(value))
        if value.isdigit():
            return cls.specify(int(value)).validate()
        match = _RANGE_RE.match(value)
        if match:
            return cls.range(int(match.group(1)), int(match.group(2))).validate()
        raise InvalidPosition(f"Cannot parse position: {text!r}")

    def validate(self) -> "Position":
        """Return self, or raise InvalidPosition for malformed indexes."""
        if self.kind == PositionKind.SPECIFY:
            if self.start is None or self.start < 1:
                raise InvalidPosition("Index must be >= 1", {"index": self.start})
        elif self.kind == PositionKind.RANGE:
            if self.start is None or self.end is None:
                raise InvalidPosition("Range needs both bounds")
            if self.start < 1:
                raise InvalidPosition("Range start must be >= 1", {"start": self.start})
            if self.end < self.start:
                raise InvalidPosition(
                    "Range end must not precede its start",
                    {"start": self.start, "end": self.end},
                )
        return self

    def select(self, count: int) -> list[int]:
        """Map this position onto the 1-based indexes of a sequence of `count` items."""
        self.validate()
        if count <= 0:
            return []
        if self.kind == PositionKind.FULL:
            return list(range(1, count + 1))
        if self.kind == PositionKind.FIRST:
            return [1]
        if self.kind == PositionKind.LAST:
            return [count]
        if self.kind == PositionKind.SPECIFY:
            return [self.start] if self.start <= count else []
        return list(range(self.start, min(self.end, count + 1)))

    def __str__(self) -> str:
        if self.kind == PositionKind.SPECIFY:
            return str(self.start)
        if self.kind == PositionKind.RANGE:
            return f"{self.start}..{self.end}"
        return self.kind.value
