"""Tests for the click command line."""

import asyncio

import pytest
from click.testing import CliRunner

from cli.main import cli, consume_sections
from models.position import Position

BASE = "http://www.ddxsku.com/"


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.setenv("SQLITE_DB_PATH", str(tmp_path / "cli.db"))
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.chdir(tmp_path)
    return CliRunner()


class TestCli:
    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("categories", "novels", "sections", "novel", "search", "keep"):
            assert command in result.output

    def test_set_and_load_categories(self, runner):
        link = "http://www.ddxsku.com/top/lastupdate_{{page}}.html"
        result = runner.invoke(cli, ["categories", "--set", f"全部分类={link}"])
        assert result.exit_code == 0, result.output
        assert "全部分类" in result.output

        result = runner.invoke(cli, ["categories", "--cached"])
        assert result.exit_code == 0, result.output
        assert "全部分类" in result.output

    def test_bad_set_entry(self, runner):
        result = runner.invoke(cli, ["categories", "--set", "no-separator"])
        assert result.exit_code == 2

    def test_invalid_position(self, runner):
        result = runner.invoke(cli, ["novels", "1", "-p", "0"])
        assert result.exit_code == 2
        assert "Index must be >= 1" in result.output

    def test_unknown_category_exits_cleanly(self, runner):
        result = runner.invoke(cli, ["novels", "1"])
        assert result.exit_code == 1
        assert "category not found" in result.output


class TestConsumeSections:
    @pytest.mark.asyncio
    async def test_counts_fetched_and_failed(self, spider, fake_site):
        toc = fake_site.add_book(100, 5)
        fake_site.fail(f"{toc}3.html")
        novel_id = spider.repository.upsert_novel("书", f"{BASE}xiaoshuo/100.html", toc, "作者", "100")

        seen = []
        fetched, failed = await consume_sections(spider, novel_id, Position.full(), seen.append)
        await spider.aclose()

        assert (fetched, failed) == (4, 1)
        assert [s.seq for s in seen] == [0, 1, 3, 4]

    @pytest.mark.asyncio
    async def test_failing_consumer_lets_the_crawl_finish(self, spider, fake_site):
        # far more chapters than channel slots, so the crawl blocks on a full channel
        toc = fake_site.add_book(100, 40)
        novel_id = spider.repository.upsert_novel("书", f"{BASE}xiaoshuo/100.html", toc, "作者", "100")

        def _write(section):
            raise OSError("disk full")

        with pytest.raises(OSError, match="disk full"):
            await consume_sections(spider, novel_id, Position.full(), _write)

        await asyncio.wait_for(spider.aclose(), timeout=2)
