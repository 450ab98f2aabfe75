"""Tests for Settings validation."""

import pytest
from pydantic import ValidationError


def _settings(tmp_path, **overrides):
    from config.settings import Settings
    kwargs = {
        "sqlite_db_path": tmp_path / "spider.db",
        "log_dir": tmp_path / "logs",
        **overrides,
    }
    return Settings(_env_file=None, **kwargs)


class TestSettingsDefaults:
    def test_defaults(self, tmp_path):
        s = _settings(tmp_path)
        assert s.page_concurrency == 100
        assert s.item_concurrency == 50
        assert s.category_refresh_days == 7
        assert s.crawl_position == "first"
        assert s.machine_id == 1 and s.node_id == 1

    def test_user_agent_is_desktop_browser(self, tmp_path):
        s = _settings(tmp_path)
        assert s.user_agent.startswith("Mozilla/5.0")

    def test_fixture_overrides(self, settings):
        assert settings.page_concurrency == 4
        assert settings.channel_capacity == 8

    def test_creates_parent_dirs(self, tmp_path):
        s = _settings(tmp_path, sqlite_db_path=tmp_path / "nested" / "db" / "spider.db")
        assert s.sqlite_db_path.parent.exists()


class TestSettingsValidation:
    def test_zero_concurrency_raises(self, tmp_path):
        with pytest.raises(ValidationError, match="must be >= 1"):
            _settings(tmp_path, page_concurrency=0)

    def test_worker_bits_out_of_range_raises(self, tmp_path):
        with pytest.raises(ValidationError, match="machine_id"):
            _settings(tmp_path, machine_id=32)

    def test_negative_refresh_days_raises(self, tmp_path):
        with pytest.raises(ValidationError, match="category_refresh_days"):
            _settings(tmp_path, category_refresh_days=-1)

    def test_non_positive_timeout_raises(self, tmp_path):
        with pytest.raises(ValidationError, match="positive"):
            _settings(tmp_path, http_timeout=0)

    def test_invalid_crawl_position_raises(self, tmp_path):
        with pytest.raises(ValidationError, match="crawl_position"):
            _settings(tmp_path, crawl_position="0")

    def test_range_crawl_position_accepted(self, tmp_path):
        assert _settings(tmp_path, crawl_position="1..5").crawl_position == "1..5"
