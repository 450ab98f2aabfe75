"""The Spider contract every crawl target implements."""

from dataclasses import dataclass
from typing import Optional

from config.exceptions import Unsupported
from crawler.channel import Channel
from models.novel import Novel
from models.position import Position
from models.sort import Sort, SortEntity


@dataclass(frozen=True)
class Capabilities:
    """What a spider can do; the Keeper only calls what is declared here."""
    get_categories: bool = False
    get_novels_by_category: bool = False
    search: bool = False
    exact_search: bool = False


class Spider:
    """Base class for crawl targets.

    Operations a site doesn't offer keep the default implementation, which
    raises Unsupported.
    """

    spider_id: str = "base"
    capabilities: Capabilities = Capabilities()

    def _unsupported(self, operation: str) -> Unsupported:
        return Unsupported(operation, self.spider_id)

    async def categories(self) -> list[Sort]:
        """Scrape the site's category menu and persist it."""
        raise self._unsupported("categories")

    async def load_categories(self) -> list[Sort]:
        """Load previously persisted categories."""
        raise self._unsupported("load_categories")

    async def set_categories(self, entities: list[SortEntity]) -> list[Sort]:
        """Replace the persisted categories with `entities`."""
        raise self._unsupported("set_categories")

    def categories_refreshed_at(self):
        """When the cached categories were last scraped, None if there are none."""
        return None

    async def novels_by_category(self, category_id: int, position: Position) -> Channel:
        raise self._unsupported("novels_by_category")

    async def sections_by_novel(self, novel_id: int, position: Position) -> Channel:
        raise self._unsupported("sections_by_novel")

    async def fetch_novel(self, novel_id: int) -> Novel:
        raise self._unsupported("fetch_novel")

    async def search(self, name: str) -> list[Novel]:
        raise self._unsupported("search")

    async def exact_search(self, name: str, author: str) -> Optional[Novel]:
        raise self._unsupported("exact_search")

    async def aclose(self):
        pass
