"""Category (sort) data models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Sort:
    """A category as handed to consumers."""
    id: int
    name: str


@dataclass
class SortEntity:
    """A category scraped from a site menu, not yet persisted."""
    name: str
    link: str  # may carry a {{page}} placeholder


@dataclass
class CategoryRecord:
    """Persisted category row."""
    id: int
    spider_id: str
    name: str
    link: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_sort(self) -> Sort:
        return Sort(id=self.id, name=self.name)
