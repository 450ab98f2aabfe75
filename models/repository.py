"""Per-site view over the shared Database."""

from typing import Optional

from models.database import Database
from models.novel import NovelRecord
from models.sort import CategoryRecord, SortEntity


class Repository:
    """Identifier lookup/upsert for one spider's categories and novels."""

    def __init__(self, db: Database, spider_id: str):
        self.db = db
        self.spider_id = spider_id

    def upsert_category(self, name: str, link: str) -> int:
        return self.db.upsert_category(self.spider_id, name, link)

    def replace_categories(self, entities: list[SortEntity]) -> list[CategoryRecord]:
        return self.db.replace_categories(self.spider_id, entities)

    def category_by_id(self, category_id: int) -> Optional[CategoryRecord]:
        return self.db.category_by_id(self.spider_id, category_id)

    def list_categories(self) -> list[CategoryRecord]:
        return self.db.list_categories(self.spider_id)

    def clear_categories(self):
        self.db.clear_categories(self.spider_id)

    def upsert_novel(
        self, name: str, link: str, section_link: str, author: str, raw_id: str
    ) -> int:
        return self.db.upsert_novel(self.spider_id, name, link, section_link, author, raw_id)

    def novel_by_id(self, novel_id: int) -> Optional[NovelRecord]:
        return self.db.novel_by_id(self.spider_id, novel_id)
