from crawler.channel import Channel, ChannelClosed
from crawler.fetcher import PageFetcher
from crawler.keeper import Keeper, KeeperPolicy, SweepReport
from crawler.limiter import ConcurrencyLimiter
from crawler.ordered_sender import OrderedSender, SequencedPermit
from crawler.resolver import PageTask, PositionResolver
from crawler.site_spider import SiteSpider
from crawler.spider import Capabilities, Spider

__all__ = [
    "Capabilities",
    "Channel",
    "ChannelClosed",
    "ConcurrencyLimiter",
    "Keeper",
    "KeeperPolicy",
    "OrderedSender",
    "PageFetcher",
    "PageTask",
    "PositionResolver",
    "SequencedPermit",
    "SiteSpider",
    "Spider",
    "SweepReport",
]
