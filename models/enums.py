"""Enumerations for crawl state tracking."""

from enum import Enum


class NovelState(str, Enum):
    UPDATING = "updating"
    FINISHED = "finished"


class PositionKind(str, Enum):
    FULL = "full"
    FIRST = "first"
    LAST = "last"
    SPECIFY = "specify"
    RANGE = "range"


class TargetState(str, Enum):
    IDLE = "idle"
    REFRESHING_CATEGORIES = "refreshing_categories"
    READY = "ready"
    CRAWLING = "crawling"
    FAILED = "failed"
