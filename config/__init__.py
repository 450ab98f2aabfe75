"""Configuration package: settings, logging, and exceptions."""

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
from config.logging_config import setup_logging
from config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "setup_logging",
    "SpiderError",
    "Disconnect",
    "ResourceNotFound",
    "InvalidPosition",
    "Unsupported",
    "ParseFailed",
    "MissSectionLink",
    "MissSectionContent",
    "SpiderInnerFailed",
    "DatabaseError",
    "InvalidConfigError",
]
