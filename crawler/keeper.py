"""Keeper: periodically sweeps every registered spider's categories."""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from config.exceptions import SpiderError
from config.settings import Settings
from crawler.spider import Spider
from models.enums import TargetState
from models.novel import Novel
from models.position import Position
from models.sort import Sort

logger = logging.getLogger(__name__)

NovelCallback = Callable[[str, Novel], Any]


@dataclass
class KeeperPolicy:
    category_refresh_interval: timedelta = timedelta(days=7)
    sweep_interval: float = 3600.0  # seconds between sweeps
    position: Position = field(default_factory=Position.first)

    @classmethod
    def from_settings(cls, settings: Settings) -> "KeeperPolicy":
        return cls(
            category_refresh_interval=timedelta(days=settings.category_refresh_days),
            sweep_interval=settings.sweep_interval_seconds,
            position=Position.parse(settings.crawl_position),
        )


@dataclass
class SweepReport:
    """Outcome of one sweep over one target."""
    spider_id: str
    state: TargetState = TargetState.IDLE
    categories: int = 0
    novels: int = 0
    errors: int = 0
    failure: Optional[str] = None


class Keeper:
    """Drives registered spiders through their crawl states.

    Per target and sweep: Idle -> RefreshingCategories -> Ready ->
    Crawling -> Ready, or Failed when a target-level error occurs. A failed
    target does not stop the sweep; it is retried on the next one.

    Only spiders declaring both `get_categories` and
    `get_novels_by_category` are swept.
    """

    def __init__(
        self,
        policy: Optional[KeeperPolicy] = None,
        on_novel: Optional[NovelCallback] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.policy = policy or KeeperPolicy()
        self.on_novel = on_novel
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._spiders: dict[str, Spider] = {}
        self._states: dict[str, TargetState] = {}

    def add_spider(self, spider: Spider):
        if spider.spider_id in self._spiders:
            raise ValueError(f"Spider already registered: {spider.spider_id}")
        self._spiders[spider.spider_id] = spider
        self._states[spider.spider_id] = TargetState.IDLE
        logger.info("Spider %s registered (%s)", spider.spider_id, spider.capabilities)

    def state_of(self, spider_id: str) -> TargetState:
        return self._states[spider_id]

    @property
    def spiders(self) -> list[Spider]:
        return list(self._spiders.values())

    def _eligible(self) -> list[Spider]:
        return [
            s for s in self._spiders.values()
            if s.capabilities.get_categories and s.capabilities.get_novels_by_category
        ]

    def _set_state(self, spider: Spider, state: TargetState):
        previous = self._states[spider.spider_id]
        self._states[spider.spider_id] = state
        logger.debug("%s: %s -> %s", spider.spider_id, previous.value, state.value)

    async def sweep(self) -> list[SweepReport]:
        """Run one pass over every eligible target, one target at a time.

        Every target starts the pass back in IDLE and waits there for its turn.
        """
        targets = self._eligible()
        for spider in targets:
            self._set_state(spider, TargetState.IDLE)
        reports = []
        for spider in targets:
            reports.append(await self._sweep_target(spider))
        return reports

    async def run(self, max_sweeps: Optional[int] = None) -> list[SweepReport]:
        """Sweep forever, or `max_sweeps` times. Returns the last sweep's reports."""
        reports: list[SweepReport] = []
        done = 0
        while max_sweeps is None or done < max_sweeps:
            reports = await self.sweep()
            done += 1
            failed = sum(1 for r in reports if r.state == TargetState.FAILED)
            logger.info("Sweep %d finished: %d target(s), %d failed", done, len(reports), failed)
            if max_sweeps is not None and done >= max_sweeps:
                break
            await asyncio.sleep(self.policy.sweep_interval)
        return reports

    async def _sweep_target(self, spider: Spider) -> SweepReport:
        report = SweepReport(spider_id=spider.spider_id)
        try:
            self._set_state(spider, TargetState.REFRESHING_CATEGORIES)
            sorts = await self._categories(spider)
            report.categories = len(sorts)
            self._set_state(spider, TargetState.READY)

            for sort in sorts:
                self._set_state(spider, TargetState.CRAWLING)
                await self._crawl_category(spider, sort, report)
                self._set_state(spider, TargetState.READY)
        except Exception as e:
            logger.error("Spider %s failed: %s", spider.spider_id, e, exc_info=not isinstance(e, SpiderError))
            self._set_state(spider, TargetState.FAILED)
            report.failure = str(e)

        report.state = self._states[spider.spider_id]
        logger.info(
            "%s: %d categories, %d novels, %d in-stream errors",
            spider.spider_id, report.categories, report.novels, report.errors,
        )
        return report

    async def _categories(self, spider: Spider) -> list[Sort]:
        refreshed_at = spider.categories_refreshed_at()
        if refreshed_at is None or self._clock() - refreshed_at > self.policy.category_refresh_interval:
            logger.info("%s: categories missing or stale, scraping", spider.spider_id)
            return await spider.categories()
        return await spider.load_categories()

    async def _crawl_category(self, spider: Spider, sort: Sort, report: SweepReport):
        channel = await spider.novels_by_category(sort.id, self.policy.position)
        try:
            async for item in channel:
                if isinstance(item, SpiderError):
                    report.errors += 1
                    logger.warning("%s / %s: %s", spider.spider_id, sort.name, item)
                    continue
                report.novels += 1
                await self._emit(spider, item)
        finally:
            channel.close()

    async def _emit(self, spider: Spider, novel: Novel):
        if self.on_novel is None:
            return
        result = self.on_novel(spider.spider_id, novel)
        if inspect.isawaitable(result):
            await result
