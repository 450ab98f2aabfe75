"""Novel data models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from models.enums import NovelState


@dataclass
class Novel:
    """Represents a novel and its scraped metadata."""
    id: int
    name: str
    author: str
    cover: Optional[str] = None
    intro: Optional[str] = None
    last_updated_at: Optional[datetime] = None
    last_updated_section_name: Optional[str] = None
    state: Optional[NovelState] = None


@dataclass
class NovelRecord:
    """Persisted novel identity row."""
    id: int
    spider_id: str
    raw_id: str
    name: str
    author: str
    link: str
    section_link: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
