"""Section (chapter) data model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Section:
    """A single chapter of a novel.

    `seq` is the zero-based position of the chapter in the novel's table of
    contents.
    """
    seq: int
    novel_id: int
    name: str
    text: str
    updated_at: Optional[datetime] = None
