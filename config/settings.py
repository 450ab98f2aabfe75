"""Configuration settings loaded from .env file."""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/98.0.4758.80 Safari/537.36 Edg/98.0.1108.43"
)


class Settings(BaseSettings):
    """Application settings, loaded from .env file."""

    # Database
    sqlite_db_path: Path = Path("./data/spider.db")

    # Snowflake id generator
    machine_id: int = 1
    node_id: int = 1

    # HTTP
    user_agent: str = DEFAULT_USER_AGENT
    http_timeout: float = 30.0

    # Concurrency
    page_concurrency: int = 100   # simultaneous listing pages
    item_concurrency: int = 50    # simultaneous chapter / detail pages
    channel_capacity: int = 64

    # Keeper
    category_refresh_days: int = 7
    sweep_interval_seconds: float = 3600.0
    crawl_position: str = "first"

    # Logging
    log_dir: Path = Path("./data/logs")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    @field_validator("page_concurrency", "item_concurrency", "channel_capacity")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Concurrency and capacity values must be >= 1")
        return v

    @field_validator("machine_id", "node_id")
    @classmethod
    def validate_worker_bits(cls, v: int) -> int:
        if not 0 <= v < 32:
            raise ValueError("machine_id and node_id must be within [0, 32)")
        return v

    @field_validator("category_refresh_days")
    @classmethod
    def validate_refresh_days(cls, v: int) -> int:
        if v < 0:
            raise ValueError("category_refresh_days must be non-negative")
        return v

    @field_validator("http_timeout", "sweep_interval_seconds")
    @classmethod
    def validate_durations(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Durations must be positive")
        return v

    @field_validator("crawl_position")
    @classmethod
    def validate_crawl_position(cls, v: str) -> str:
        from models.position import Position
        from config.exceptions import InvalidPosition

        try:
            Position.parse(v)
        except InvalidPosition as e:
            raise ValueError(f"crawl_position is invalid: {e}") from e
        return v

    @field_validator("sqlite_db_path", "log_dir")
    @classmethod
    def ensure_parent_dirs(cls, v: Path) -> Path:
        v.parent.mkdir(parents=True, exist_ok=True)
        return v


_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
