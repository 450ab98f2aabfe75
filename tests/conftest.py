"""Shared pytest fixtures for the spider-novel test suite."""

import asyncio
import random
from pathlib import Path

import httpx
import pytest

from tools.link_template import render_link

BASE_URL = "http://www.ddxsku.com/"
LISTING_TEMPLATE = BASE_URL + "top/lastupdate_{{page}}.html"
FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Fake site
# ---------------------------------------------------------------------------

def listing_html(page: int, page_count, rows: int) -> str:
    cells = []
    for i in range(rows):
        book_id = page * 100 + i
        cells.append(
            "<tr>"
            f'<td class="L"><a href="/xiaoshuo/{book_id}.html">书{page}-{i}</a></td>'
            f'<td class="L"><a href="/files/article/html/0/{book_id}/999.html">第{page}章</a></td>'
            f'<td class="C">作者{page}-{i}</td><td class="R">10K</td>'
            '<td class="C">2022-03-01</td><td class="C">连载中</td>'
            "</tr>"
        )
    pagelink = ""
    if page_count:
        pagelink = (
            f'<div id="pagelink"><a href="/top/lastupdate_{page_count}.html" '
            f'class="last">{page_count}</a></div>'
        )
    return (
        '<html><body><table class="grid">'
        "<tr><th>文章名称</th><th>最新章节</th><th>作者</th><th>字数</th><th>更新</th><th>状态</th></tr>"
        f'{"".join(cells)}</table>{pagelink}</body></html>'
    )


def detail_html(book_id: int) -> str:
    return (
        "<html><head>"
        f'<meta property="og:image" content="{BASE_URL}cover/{book_id}.jpg"/>'
        f'<meta property="og:description" content="简介{book_id}"/>'
        '<meta property="og:novel:update_time" content="2022-03-02 08:00:00"/>'
        '<meta property="og:novel:status" content="连载中"/>'
        "</head><body></body></html>"
    )


def toc_html(chapters: int) -> str:
    links = "".join(
        f'<td class="L"><a href="{k}.html">第{k}章</a></td>' for k in range(1, chapters + 1)
    )
    return f'<html><body><table id="at"><tr>{links}</tr></table></body></html>'


def chapter_html(k: int) -> str:
    return f'<html><body><div id="contents">正文{k}<br/>第二段</div></body></html>'


class FakeSite:
    """Serves canned HTML through httpx.MockTransport and records every request."""

    def __init__(self):
        self.pages: dict[str, str] = {}
        self.failing: set[str] = set()
        self.requests: list[str] = []
        self.jitter = 0.0

    @staticmethod
    def _key(url: str) -> str:
        return str(httpx.URL(url))

    def add(self, url: str, html: str):
        self.pages[self._key(url)] = html

    def fail(self, url: str):
        self.failing.add(self._key(url))

    def count(self, url: str) -> int:
        return self.requests.count(self._key(url))

    def requests_matching(self, fragment: str) -> list[str]:
        return [u for u in self.requests if fragment in u]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if self.jitter:
            await asyncio.sleep(random.uniform(0, self.jitter))
        if url in self.failing:
            return httpx.Response(500, text="server error")
        html = self.pages.get(url)
        if html is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, text=html, headers={"content-type": "text/html; charset=utf-8"})

    def add_listing(self, template: str, page_count: int, rows: int = 3, declare_pages: bool = True):
        """Serve `page_count` listing pages plus a detail page for every row."""
        for page in range(1, page_count + 1):
            declared = page_count if declare_pages and page_count > 1 else None
            self.add(render_link(template, page), listing_html(page, declared, rows))
            for i in range(rows):
                book_id = page * 100 + i
                self.add(f"{BASE_URL}xiaoshuo/{book_id}.html", detail_html(book_id))

    def add_book(self, book_id: int, chapters: int) -> str:
        """Serve a table of contents and its chapters; returns the TOC url."""
        toc = f"{BASE_URL}files/article/html/0/{book_id}/"
        self.add(toc, toc_html(chapters))
        for k in range(1, chapters + 1):
            self.add(f"{toc}{k}.html", chapter_html(k))
        return toc


@pytest.fixture
def fake_site():
    return FakeSite()


# ---------------------------------------------------------------------------
# Settings / database fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path):
    """Return a Settings instance with all paths pointing to tmp_path."""
    from config.settings import Settings
    return Settings(
        _env_file=None,
        sqlite_db_path=tmp_path / "spider.db",
        log_dir=tmp_path / "logs",
        page_concurrency=4,
        item_concurrency=4,
        channel_capacity=8,
    )


@pytest.fixture
def id_generator():
    from tools.idgen import SnowflakeIdGenerator
    return SnowflakeIdGenerator(1, 1)


@pytest.fixture
def db(tmp_path, id_generator):
    """Return an initialized Database instance backed by a temp file."""
    from models.database import Database
    return Database(tmp_path / "test_spider.db", id_generator)


@pytest.fixture
def repository(db):
    from models.repository import Repository
    return Repository(db, "ddxsku")


# ---------------------------------------------------------------------------
# Crawl fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def http(fake_site, settings):
    """HttpClient whose transport is the fake site."""
    from tools.http_client import HttpClient
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_site.handler))
    return HttpClient(settings, client=client)


@pytest.fixture
def adapter():
    from adapters.ddxsku import DdxskuAdapter
    return DdxskuAdapter()


@pytest.fixture
def spider(adapter, db, http, settings):
    from crawler.site_spider import SiteSpider
    return SiteSpider(adapter, db, http, settings)


@pytest.fixture
def qubige_spider(db, http, settings):
    """SiteSpider for the second supported site, sharing the database and transport."""
    from adapters.qubige import QubigeAdapter
    from crawler.site_spider import SiteSpider
    return SiteSpider(QubigeAdapter(), db, http, settings)


@pytest.fixture
def fetcher(spider):
    return spider.fetcher


@pytest.fixture
def load_fixture():
    """Return a loader for HTML files under tests/fixtures."""
    def _load(name: str) -> str:
        return (FIXTURES_DIR / name).read_text(encoding="utf-8")
    return _load
