"""Adapter-driven Spider: one implementation for every supported site."""

import asyncio
import logging
from datetime import datetime
from typing import Coroutine, Optional

from adapters.base import ScraperAdapter
from config.exceptions import ResourceNotFound, SpiderError, Unsupported
from config.settings import Settings
from crawler.channel import Channel
from crawler.fetcher import PageFetcher
from crawler.limiter import ConcurrencyLimiter
from crawler.spider import Capabilities, Spider
from models.database import Database
from models.novel import Novel, NovelRecord
from models.position import Position
from models.repository import Repository
from models.sort import Sort, SortEntity
from tools.http_client import HttpClient
from tools.link_template import absolute_link

logger = logging.getLogger(__name__)


class SiteSpider(Spider):
    """Crawls one site through its ScraperAdapter.

    Streaming operations return a Channel right away; the crawl itself runs
    in a background task owned by the spider until it completes.
    """

    def __init__(
        self,
        adapter: ScraperAdapter,
        db: Database,
        http: HttpClient,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings()
        self.adapter = adapter
        self.spider_id = adapter.spider_id
        self.http = http
        self.repository = Repository(db, self.spider_id)
        self.page_limiter = ConcurrencyLimiter(self.settings.page_concurrency, "pages")
        self.item_limiter = ConcurrencyLimiter(self.settings.item_concurrency, "items")
        self.fetcher = PageFetcher(
            http, adapter, self.repository, self.page_limiter, self.item_limiter
        )
        has_search = adapter.search_url("") is not None
        self.capabilities = Capabilities(
            get_categories=True,
            get_novels_by_category=True,
            search=has_search,
            exact_search=has_search,
        )
        self._background: set[asyncio.Task] = set()

    # ---- Categories ----

    async def categories(self) -> list[Sort]:
        links = await self.fetcher.fetch_categories(self.adapter.home_url)
        sorts = []
        for raw in links:
            template = self.adapter.category_template(
                absolute_link(self.adapter.home_url, raw.link)
            )
            category_id = self.repository.upsert_category(raw.name, template)
            sorts.append(Sort(id=category_id, name=raw.name))
        logger.info("%s: %d categories scraped", self.spider_id, len(sorts))
        return sorts

    async def load_categories(self) -> list[Sort]:
        return [record.to_sort() for record in self.repository.list_categories()]

    async def set_categories(self, entities: list[SortEntity]) -> list[Sort]:
        records = self.repository.replace_categories(entities)
        logger.info("%s: categories replaced with %d entries", self.spider_id, len(records))
        return [record.to_sort() for record in records]

    def categories_refreshed_at(self) -> Optional[datetime]:
        stamps = [r.updated_at for r in self.repository.list_categories() if r.updated_at]
        return min(stamps) if stamps else None

    # ---- Streams ----

    async def novels_by_category(self, category_id: int, position: Position) -> Channel:
        """Stream the novels of a category's selected listing pages.

        Raises:
            InvalidPosition: If `position` is malformed.
            ResourceNotFound: If the category id is unknown.
        """
        position.validate()
        record = self.repository.category_by_id(category_id)
        if record is None:
            raise ResourceNotFound("category", category_id)

        channel: Channel = Channel(self.settings.channel_capacity)
        self._spawn(self.fetcher.stream_novels(record.link, position, channel))
        return channel

    async def sections_by_novel(self, novel_id: int, position: Position) -> Channel:
        """Stream the selected chapters of a novel.

        Raises:
            InvalidPosition: If `position` is malformed.
            ResourceNotFound: If the novel id is unknown or has no chapter list.
        """
        position.validate()
        record = await self._novel_record(novel_id)
        if not record.section_link:
            record = await self._recover_section_link(record)

        channel: Channel = Channel(self.settings.channel_capacity)
        self._spawn(self.fetcher.stream_sections(record, position, channel))
        return channel

    # ---- Single lookups ----

    async def fetch_novel(self, novel_id: int) -> Novel:
        record = await self._novel_record(novel_id)
        detail = await self.fetcher.fetch_detail(record.link)
        return Novel(
            id=record.id,
            name=record.name,
            author=record.author,
            cover=detail.cover,
            intro=detail.intro,
            last_updated_at=detail.updated_at,
            last_updated_section_name=detail.last_section,
            state=detail.state,
        )

    async def search(self, name: str) -> list[Novel]:
        url = self.adapter.search_url(name)
        if url is None:
            raise Unsupported("search", self.spider_id)

        rows = await self.fetcher.fetch_search_rows(url)
        results = await asyncio.gather(*(self.fetcher.build_novel(row, url) for row in rows))
        novels = []
        for result in results:
            if isinstance(result, SpiderError):
                logger.warning("Search %r: skipped a result: %s", name, result)
            elif result is not None:
                novels.append(result)
        logger.info("Search %r on %s: %d result(s)", name, self.spider_id, len(novels))
        return novels

    async def exact_search(self, name: str, author: str) -> Optional[Novel]:
        for novel in await self.search(name):
            if novel.name == name and novel.author == author:
                return novel
        return None

    async def aclose(self):
        """Wait for any crawl still running in the background."""
        if self._background:
            await asyncio.gather(*self._background)

    # ---- Helpers ----

    def _spawn(self, coro: Coroutine):
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _novel_record(self, novel_id: int) -> NovelRecord:
        record = self.repository.novel_by_id(novel_id)
        if record is None:
            raise ResourceNotFound("novel", novel_id)
        return record

    async def _recover_section_link(self, record: NovelRecord) -> NovelRecord:
        detail = await self.fetcher.fetch_detail(record.link)
        if not detail.section_link:
            raise ResourceNotFound("section list", record.id)
        section_link = absolute_link(record.link, detail.section_link)
        self.repository.upsert_novel(
            record.name, record.link, section_link, record.author, record.raw_id
        )
        record.section_link = section_link
        return record
