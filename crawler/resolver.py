"""Turn a Position into the concrete listing pages to fetch."""

import logging
from collections import deque
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Optional

from config.exceptions import Disconnect, ParseFailed, SpiderError
from models.enums import PositionKind
from models.position import Position
from tools.document import Document

logger = logging.getLogger(__name__)

FetchDocument = Callable[[str], Awaitable[Document]]
RenderLink = Callable[[str, int], str]
ReadPageCount = Callable[[Document], Optional[int]]


@dataclass
class PageTask:
    """One listing page to process.

    `document` is set when the page was already fetched while resolving
    (page 1 for First/Full/Last); `error` when that fetch failed.
    """
    index: int
    url: str
    document: Optional[Document] = None
    error: Optional[SpiderError] = None


class PositionResolver:
    """Expands a Position against a paginated link template.

    The total page count is discovered from page 1's pagination control, so
    callers never need to know it up front. Expansion runs off an explicit
    queue of pending positions: `Full` becomes `Range(2, count + 1)` and
    `Last` becomes `Specify(count)` once page 1 has been read.

    Tasks come out in the order they should be admitted to the output
    stream. Ordering downstream follows that admission order, which for
    every expansion here also happens to be page order.
    """

    def __init__(
        self,
        fetch_document: FetchDocument,
        render_link: RenderLink,
        read_page_count: ReadPageCount,
    ):
        self._fetch = fetch_document
        self._render = render_link
        self._read_page_count = read_page_count

    def resolve(self, template: str, position: Position) -> AsyncIterator[PageTask]:
        """Validate `position` now and return the lazily expanded page tasks.

        Raises:
            InvalidPosition: Before anything is fetched.
        """
        position.validate()
        return self._expand(template, position)

    async def _expand(self, template: str, position: Position) -> AsyncIterator[PageTask]:
        pending: deque[Position] = deque([position])
        first_page: Optional[PageTask] = None

        while pending:
            pos = pending.popleft()

            if pos.kind in (PositionKind.FIRST, PositionKind.FULL, PositionKind.LAST):
                first_page = await self._fetch_first_page(template)
                if first_page.error is not None:
                    yield first_page
                    return
                if pos.kind != PositionKind.LAST:
                    yield first_page
                if pos.kind == PositionKind.FIRST:
                    continue

                count = self._page_count(template, first_page)
                if count is None:
                    # Single-page target: page 1 is also the last page
                    if pos.kind == PositionKind.LAST:
                        yield first_page
                    continue
                if pos.kind == PositionKind.FULL:
                    pending.append(Position.range(2, count + 1))
                else:
                    pending.append(Position.specify(count))

            elif pos.kind == PositionKind.SPECIFY:
                if pos.start == 1 and first_page is not None:
                    yield first_page
                else:
                    yield self._task(template, pos.start)

            else:
                for index in range(pos.start, pos.end):
                    yield self._task(template, index)

    def _task(self, template: str, index: int) -> PageTask:
        return PageTask(index=index, url=self._render(template, index))

    async def _fetch_first_page(self, template: str) -> PageTask:
        url = self._render(template, 1)
        try:
            doc = await self._fetch(url)
        except Disconnect as e:
            logger.warning("First page unreachable: %s (%s)", url, e.reason)
            return PageTask(index=1, url=url, error=e.at(1))
        return PageTask(index=1, url=url, document=doc)

    def _page_count(self, template: str, page: PageTask) -> Optional[int]:
        try:
            count = self._read_page_count(page.document)
        except ParseFailed as e:
            logger.warning("Cannot read page count on %s, stopping pagination: %s", page.url, e)
            return None
        if count is None or count < 1:
            logger.info("No pagination control on %s, treating as single page", page.url)
            return None
        if count > 1 and self._render(template, 2) == page.url:
            logger.warning(
                "%s declares %d pages but its link has no page number, treating as single page",
                page.url, count,
            )
            return None
        logger.debug("%s declares %d page(s)", page.url, count)
        return count
