"""Tests for the Keeper sweep loop and its per-target state machine."""

from datetime import datetime, timedelta, timezone

import pytest

from config.exceptions import Disconnect
from crawler.channel import Channel
from crawler.keeper import Keeper, KeeperPolicy
from crawler.spider import Capabilities, Spider
from models.enums import TargetState
from models.novel import Novel
from models.position import Position
from models.sort import Sort, SortEntity

NOW = datetime(2022, 3, 10, tzinfo=timezone.utc)


class StubSpider(Spider):
    def __init__(self, spider_id="stub", items=None, refreshed_at=None, crawlable=True):
        self.spider_id = spider_id
        self.capabilities = Capabilities(get_categories=True, get_novels_by_category=crawlable)
        self.sorts = [Sort(id=1, name="玄幻"), Sort(id=2, name="都市")]
        self.items = items if items is not None else [Novel(id=10, name="书", author="作者")]
        self.refreshed_at = refreshed_at
        self.scraped = 0
        self.loaded = 0
        self.fail_categories = False
        self.crawled = []

    def categories_refreshed_at(self):
        return self.refreshed_at

    async def categories(self):
        if self.fail_categories:
            raise Disconnect("menu unreachable")
        self.scraped += 1
        return self.sorts

    async def load_categories(self):
        self.loaded += 1
        return self.sorts

    async def novels_by_category(self, category_id, position):
        self.crawled.append((category_id, position))
        channel = Channel(len(self.items) + 1)
        for item in self.items:
            await channel.reserve()
            channel.deliver([item])
        channel.finish()
        return channel


def _keeper(**kwargs):
    policy = KeeperPolicy(sweep_interval=0.001, position=Position.first())
    return Keeper(policy, clock=lambda: NOW, **kwargs)


class TestSweep:
    @pytest.mark.asyncio
    async def test_counts_novels_and_in_stream_errors(self):
        spider = StubSpider(items=[Novel(id=1, name="a", author=""), Disconnect("x", seq=2)])
        keeper = _keeper()
        keeper.add_spider(spider)
        assert keeper.state_of("stub") == TargetState.IDLE

        [report] = await keeper.sweep()
        assert report.state == TargetState.READY
        assert report.categories == 2
        assert report.novels == 2
        assert report.errors == 2
        assert keeper.state_of("stub") == TargetState.READY
        assert spider.crawled == [(1, Position.first()), (2, Position.first())]

    @pytest.mark.asyncio
    async def test_missing_categories_are_scraped(self):
        spider = StubSpider(refreshed_at=None)
        keeper = _keeper()
        keeper.add_spider(spider)
        await keeper.sweep()
        assert (spider.scraped, spider.loaded) == (1, 0)

    @pytest.mark.asyncio
    async def test_fresh_categories_are_loaded(self):
        spider = StubSpider(refreshed_at=NOW - timedelta(days=1))
        keeper = _keeper()
        keeper.add_spider(spider)
        await keeper.sweep()
        assert (spider.scraped, spider.loaded) == (0, 1)

    @pytest.mark.asyncio
    async def test_stale_categories_are_rescraped(self):
        spider = StubSpider(refreshed_at=NOW - timedelta(days=8))
        keeper = _keeper()
        keeper.add_spider(spider)
        await keeper.sweep()
        assert spider.scraped == 1

    @pytest.mark.asyncio
    async def test_failure_marks_target_and_sweep_continues(self):
        broken = StubSpider("broken")
        broken.fail_categories = True
        healthy = StubSpider("healthy")
        keeper = _keeper()
        keeper.add_spider(broken)
        keeper.add_spider(healthy)

        reports = await keeper.sweep()
        assert [r.state for r in reports] == [TargetState.FAILED, TargetState.READY]
        assert "menu unreachable" in reports[0].failure
        assert keeper.state_of("broken") == TargetState.FAILED

    @pytest.mark.asyncio
    async def test_each_sweep_restarts_targets_from_idle(self):
        first = StubSpider("first")
        second = StubSpider("second")
        second.fail_categories = True
        keeper = _keeper()
        keeper.add_spider(first)
        keeper.add_spider(second)

        await keeper.sweep()
        assert keeper.state_of("second") == TargetState.FAILED

        seen = []
        scrape = first.categories

        async def categories():
            seen.append((keeper.state_of("first"), keeper.state_of("second")))
            return await scrape()

        first.categories = categories
        second.fail_categories = False
        reports = await keeper.sweep()

        assert seen == [(TargetState.REFRESHING_CATEGORIES, TargetState.IDLE)]
        assert [r.state for r in reports] == [TargetState.READY, TargetState.READY]

    @pytest.mark.asyncio
    async def test_incapable_spider_skipped(self):
        keeper = _keeper()
        keeper.add_spider(StubSpider(crawlable=False))
        assert await keeper.sweep() == []
        assert keeper.state_of("stub") == TargetState.IDLE

    @pytest.mark.asyncio
    async def test_on_novel_callback(self):
        seen = []

        async def on_novel(spider_id, novel):
            seen.append((spider_id, novel.name))

        keeper = _keeper(on_novel=on_novel)
        keeper.add_spider(StubSpider())
        await keeper.sweep()
        assert seen == [("stub", "书"), ("stub", "书")]

    def test_duplicate_spider_rejected(self):
        keeper = _keeper()
        keeper.add_spider(StubSpider())
        with pytest.raises(ValueError):
            keeper.add_spider(StubSpider())


class TestRun:
    @pytest.mark.asyncio
    async def test_bounded_run(self):
        spider = StubSpider(refreshed_at=NOW)
        keeper = _keeper()
        keeper.add_spider(spider)
        reports = await keeper.run(max_sweeps=3)
        assert spider.loaded == 3
        assert reports[0].state == TargetState.READY

    def test_policy_from_settings(self, settings):
        policy = KeeperPolicy.from_settings(settings)
        assert policy.category_refresh_interval == timedelta(days=7)
        assert policy.position == Position.first()


class TestKeeperWithSiteSpider:
    @pytest.mark.asyncio
    async def test_sweep_real_pipeline(self, spider, fake_site):
        listing = "http://www.ddxsku.com/top/lastupdate_{{page}}.html"
        fake_site.add_listing(listing, page_count=2, rows=2)
        await spider.set_categories([SortEntity(name="全部分类", link=listing)])

        names = []
        keeper = Keeper(KeeperPolicy(position=Position.full()), on_novel=lambda _, n: names.append(n.name))
        keeper.add_spider(spider)
        [report] = await keeper.sweep()
        await spider.aclose()

        assert report.state == TargetState.READY
        assert report.novels == 4
        assert names == ["书1-0", "书1-1", "书2-0", "书2-1"]

    @pytest.mark.asyncio
    async def test_sweep_covers_every_registered_site(self, spider, qubige_spider, fake_site):
        listing = "http://www.ddxsku.com/top/lastupdate_{{page}}.html"
        fake_site.add_listing(listing, page_count=1, rows=2)
        await spider.set_categories([SortEntity(name="全部分类", link=listing)])

        fake_site.add(
            "https://www.qubige.com/sort/1/",
            '<html><body><div class="layout layout2 layout-col2"><ul>'
            '<li><span class="s2"><a href="/book/7/">趣书</a></span><span class="s4">某人</span></li>'
            "</ul></div></body></html>",
        )
        await qubige_spider.set_categories([
            SortEntity(name="玄幻小说", link="https://www.qubige.com/sort/1/index_{{page}}.html"),
        ])

        seen = []
        keeper = Keeper(KeeperPolicy(position=Position.full()), on_novel=lambda site, n: seen.append((site, n.name)))
        keeper.add_spider(spider)
        keeper.add_spider(qubige_spider)
        reports = await keeper.sweep()
        await spider.aclose()
        await qubige_spider.aclose()

        assert [(r.spider_id, r.state, r.novels) for r in reports] == [
            ("ddxsku", TargetState.READY, 2),
            ("qubige", TargetState.READY, 1),
        ]
        assert seen == [("ddxsku", "书1-0"), ("ddxsku", "书1-1"), ("qubige", "趣书")]
