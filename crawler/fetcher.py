"""Fetch, parse and stream listing pages and chapters."""

import asyncio
import logging
from contextlib import aclosing
from typing import Optional, Union

from adapters.base import NovelDetail, RawRow, RawSection, ScraperAdapter
from config.exceptions import (
    Disconnect,
    MissSectionContent,
    MissSectionLink,
    SpiderError,
    SpiderInnerFailed,
)
from crawler.channel import Channel, ChannelClosed
from crawler.limiter import ConcurrencyLimiter
from crawler.ordered_sender import OrderedSender, SequencedPermit
from crawler.resolver import PageTask, PositionResolver
from models.novel import Novel, NovelRecord
from models.position import Position
from models.repository import Repository
from models.section import Section
from tools.document import Document
from tools.http_client import HttpClient
from tools.link_template import absolute_link

logger = logging.getLogger(__name__)

NovelResult = Union[Novel, SpiderError]
SectionResult = Union[Section, SpiderError]


class PageFetcher:
    """Runs the fetch pipeline for one site.

    Listing pages are bounded by `page_limiter`; per-row detail pages and
    chapters by `item_limiter`. A limiter slot is held only while fetching
    and parsing, never while a result waits for its turn in the stream.

    Failures of a single page, row or chapter are delivered in-stream as
    SpiderError values at that item's position; they never abort siblings.
    """

    def __init__(
        self,
        http: HttpClient,
        adapter: ScraperAdapter,
        repository: Repository,
        page_limiter: ConcurrencyLimiter,
        item_limiter: ConcurrencyLimiter,
    ):
        self.http = http
        self.adapter = adapter
        self.repository = repository
        self.page_limiter = page_limiter
        self.item_limiter = item_limiter
        self.resolver = PositionResolver(
            fetch_document=self._fetch_page_document,
            render_link=adapter.render_page_link,
            read_page_count=adapter.extract_pagination_bound,
        )

    async def fetch_document(self, url: str) -> Document:
        html = await self.http.get(url)
        return Document.parse(html, url)

    async def _fetch_page_document(self, url: str) -> Document:
        async with self.page_limiter:
            return await self.fetch_document(url)

    # ---- Single pages ----

    async def fetch_categories(self, url: str) -> list:
        doc = await self._fetch_page_document(url)
        return self.adapter.extract_categories(doc)

    async def fetch_detail(self, url: str) -> NovelDetail:
        """Fetch and parse a novel's own page. Raises Disconnect."""
        async with self.item_limiter:
            doc = await self.fetch_document(url)
        return self.adapter.extract_detail(doc)

    async def fetch_search_rows(self, url: str) -> list[RawRow]:
        doc = await self._fetch_page_document(url)
        return [row for row in self.adapter.extract_search_rows(doc) if row.is_complete]

    # ---- Novel listings ----

    async def stream_novels(self, template: str, position: Position, channel: Channel) -> None:
        """Stream every novel of the selected listing pages into `channel`.

        One stream slot per page: a page's rows arrive together, pages arrive
        in the order the resolver produced them. Finishes the channel on exit.
        """
        sender: OrderedSender[NovelResult] = OrderedSender(channel)
        tasks: list[asyncio.Task] = []
        try:
            async with aclosing(self.resolver.resolve(template, position)) as pages:
                async for page in pages:
                    if channel.is_closed:
                        break
                    permit = await sender.admit()
                    tasks.append(asyncio.create_task(self._novel_page(page, permit, channel)))
        except ChannelClosed:
            logger.debug("Consumer closed the novel stream of %s", template)
        except Exception as e:
            logger.exception("Novel listing of %s failed", template)
            await self._send_error(sender, SpiderInnerFailed(e))
        finally:
            if tasks:
                await asyncio.gather(*tasks)
            channel.finish()
        logger.info(
            "Listing %s (%s): %d page(s) streamed", template, position, sender.sent,
        )

    async def _novel_page(self, page: PageTask, permit: SequencedPermit, channel: Channel):
        results = await self._process_novel_page(page, channel)
        await permit.send_many(results)

    async def _process_novel_page(self, page: PageTask, channel: Channel) -> list[NovelResult]:
        if page.error is not None:
            return [page.error]
        if channel.is_closed:
            return []

        try:
            async with self.page_limiter:
                doc = page.document or await self.fetch_document(page.url)
                rows = self.adapter.extract_listing_rows(doc)
        except Disconnect as e:
            logger.warning("Listing page %d unreachable: %s", page.index, e.reason)
            return [e.at(page.index)]
        except Exception as e:
            logger.exception("Listing page %d could not be parsed", page.index)
            return [SpiderInnerFailed(e, seq=page.index)]

        complete = [row for row in rows if row.is_complete]
        if len(complete) < len(rows):
            logger.debug("Page %d: skipped %d malformed row(s)", page.index, len(rows) - len(complete))

        results = await asyncio.gather(*(self.build_novel(row, page.url, channel) for row in complete))
        return [r for r in results if r is not None]

    async def build_novel(
        self, row: RawRow, base_url: str, channel: Optional[Channel] = None
    ) -> Optional[NovelResult]:
        """Enrich a listing row with its detail page and persist it.

        Returns None only when `channel` was closed before any work started.
        """
        if channel is not None and channel.is_closed:
            return None
        try:
            link = absolute_link(base_url, row.link)
            detail = await self._detail_or_default(link)
            section_link = row.section_link or detail.section_link or ""
            if section_link:
                section_link = absolute_link(link, section_link)
            author = row.author or detail.author or ""

            novel_id = self.repository.upsert_novel(row.name, link, section_link, author, row.raw_id)
            return Novel(
                id=novel_id,
                name=row.name,
                author=author,
                cover=detail.cover,
                intro=detail.intro,
                last_updated_at=detail.updated_at or row.updated_at,
                last_updated_section_name=row.last_section_name or detail.last_section,
                state=row.state or detail.state,
            )
        except Exception as e:
            logger.exception("Novel row %r failed", row.name)
            return SpiderInnerFailed(e)

    async def _detail_or_default(self, link: str) -> NovelDetail:
        try:
            return await self.fetch_detail(link)
        except SpiderError as e:
            logger.debug("Detail page %s unavailable, using listing data only: %s", link, e)
            return NovelDetail()

    # ---- Chapters ----

    async def stream_sections(self, novel: NovelRecord, position: Position, channel: Channel) -> None:
        """Stream the selected chapters of `novel` into `channel` in table-of-contents order.

        Each chapter holds its own stream slot keyed by its TOC position, so
        the consumer can rebuild chapter order whatever finishes first.
        Finishes the channel on exit.
        """
        sender: OrderedSender[SectionResult] = OrderedSender(channel)
        tasks: list[asyncio.Task] = []
        try:
            try:
                async with self.page_limiter:
                    doc = await self.fetch_document(novel.section_link)
                entries = self.adapter.extract_sections(doc)
            except Disconnect as e:
                logger.warning("Table of contents of %s unreachable: %s", novel.name, e.reason)
                await self._send_error(sender, e)
                return

            selected = position.select(len(entries))
            logger.info(
                "%s: %d chapter(s) listed, %d selected by %s",
                novel.name, len(entries), len(selected), position,
            )
            for index in selected:
                if channel.is_closed:
                    break
                seq = index - 1
                permit = await sender.admit()
                tasks.append(asyncio.create_task(
                    self._section(novel, seq, entries[seq], permit, channel)
                ))
        except ChannelClosed:
            logger.debug("Consumer closed the chapter stream of %s", novel.name)
        except Exception as e:
            logger.exception("Chapter listing of %s failed", novel.name)
            await self._send_error(sender, SpiderInnerFailed(e))
        finally:
            if tasks:
                await asyncio.gather(*tasks)
            channel.finish()

    async def _section(
        self,
        novel: NovelRecord,
        seq: int,
        entry: RawSection,
        permit: SequencedPermit,
        channel: Channel,
    ):
        result = await self._fetch_section(novel, seq, entry, channel)
        await permit.send(result)

    async def _fetch_section(
        self, novel: NovelRecord, seq: int, entry: RawSection, channel: Channel
    ) -> SectionResult:
        if not entry.link:
            return MissSectionLink(seq, entry.name)
        if channel.is_closed:
            return Disconnect("stream closed by consumer", seq=seq)

        url = absolute_link(novel.section_link, entry.link)
        try:
            async with self.item_limiter:
                doc = await self.fetch_document(url)
            text = self.adapter.extract_content(doc)
        except Disconnect as e:
            logger.warning("Chapter %d of %s unreachable: %s", seq, novel.name, e.reason)
            return e.at(seq)
        except Exception as e:
            logger.exception("Chapter %d of %s could not be parsed", seq, novel.name)
            return SpiderInnerFailed(e, seq=seq)

        if not text:
            return MissSectionContent(seq, entry.name)
        return Section(seq=seq, novel_id=novel.id, name=entry.name, text=text)

    # ---- Helpers ----

    @staticmethod
    async def _send_error(sender: OrderedSender, error: SpiderError):
        try:
            permit = await sender.admit()
        except ChannelClosed:
            return
        await permit.send(error)
