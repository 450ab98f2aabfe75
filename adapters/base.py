"""Site adapter contract: what to pull out of each kind of page."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from models.enums import NovelState
from tools.document import Document
from tools.link_template import render_link


@dataclass
class RawLink:
    name: str
    link: str


@dataclass
class RawRow:
    """One row of a category listing or search result page."""
    name: Optional[str]
    link: Optional[str]
    author: str = ""
    section_link: str = ""
    raw_id: str = ""
    last_section_name: Optional[str] = None
    updated_at: Optional[datetime] = None
    state: Optional[NovelState] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.name) and bool(self.link)


@dataclass
class NovelDetail:
    """Fields only present on a novel's own page."""
    name: Optional[str] = None
    author: Optional[str] = None
    cover: Optional[str] = None
    intro: Optional[str] = None
    updated_at: Optional[datetime] = None
    last_section: Optional[str] = None
    state: Optional[NovelState] = None
    section_link: Optional[str] = None


@dataclass
class RawSection:
    name: str
    link: Optional[str]


class ScraperAdapter:
    """Base class for site-specific extraction.

    Subclasses keep their selectors private and override the extract_*
    methods for the page kinds their site offers. Every method works on an
    already parsed Document; none of them performs I/O.
    """

    spider_id: str = "base"
    home_url: str = ""

    def extract_categories(self, doc: Document) -> list[RawLink]:
        raise NotImplementedError

    def extract_listing_rows(self, doc: Document) -> list[RawRow]:
        raise NotImplementedError

    def extract_pagination_bound(self, doc: Document) -> Optional[int]:
        """Total page count from the pagination control, None when there is none.

        May raise ParseFailed when the control exists but cannot be read.
        """
        raise NotImplementedError

    def extract_detail(self, doc: Document) -> NovelDetail:
        raise NotImplementedError

    def extract_sections(self, doc: Document) -> list[RawSection]:
        raise NotImplementedError

    def extract_content(self, doc: Document) -> Optional[str]:
        raise NotImplementedError

    def extract_search_rows(self, doc: Document) -> list[RawRow]:
        return self.extract_listing_rows(doc)

    def category_template(self, link: str) -> str:
        """Turn a scraped category link into a paginated link template."""
        return link

    def render_page_link(self, template: str, page: int) -> str:
        """Hook for sites whose page URLs don't follow the template literally."""
        return render_link(template, page)

    def search_url(self, name: str) -> Optional[str]:
        return None
