"""Models package: database, data models, and enums."""

from models.database import Database
from models.repository import Repository
from models.novel import Novel, NovelRecord
from models.section import Section
from models.sort import Sort, SortEntity, CategoryRecord
from models.position import Position
from models.enums import NovelState, PositionKind, TargetState

__all__ = [
    "Database",
    "Repository",
    "Novel",
    "NovelRecord",
    "Section",
    "Sort",
    "SortEntity",
    "CategoryRecord",
    "Position",
    "NovelState",
    "PositionKind",
    "TargetState",
]
