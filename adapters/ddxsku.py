"""Adapter for www.ddxsku.com (a dingdian-style novel site)."""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import quote, urljoin

from adapters.base import NovelDetail, RawLink, RawRow, RawSection, ScraperAdapter
from config.exceptions import ParseFailed
from models.enums import NovelState
from tools.document import Document, attr_of, select_in, text_of
from tools.link_template import has_placeholder, render_link

logger = logging.getLogger(__name__)

DATA_URL = "http://www.ddxsku.com/"

# Site timestamps carry no zone; the site runs on China Standard Time
SITE_TZ = timezone(timedelta(hours=8))
_TIME_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%d", "%y-%m-%d")

SELECT_SORT = "div.main.m_menu > ul > li > a"
SELECT_ROWS = "table.grid tr"
SELECT_PAGE_LAST = "#pagelink a.last"
SELECT_PAGE_STATS = "#pagestats"
SELECT_SECTIONS = "table#at td.L a"
SELECT_CONTENT = "#contents"

COMPLETED_LIST = "modules/article/articlelist.php?fullflag=1&page={{page}}"
_COMPLETED_MARKERS = ("/full", "quanben", "fullflag=1")
_PAGED_SUFFIX = re.compile(r"_(\d+)\.html$")
_RAW_ID = re.compile(r"/(\d+)(?:/|/index\.html|\.html)?$")

_FINISHED_WORDS = ("完成", "完本", "完结", "全本")


def parse_site_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    value = value.strip()
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=SITE_TZ)
        except ValueError:
            continue
    logger.debug("Unrecognized timestamp: %r", value)
    return None


def parse_state(value: Optional[str]) -> Optional[NovelState]:
    if not value:
        return None
    if any(word in value for word in _FINISHED_WORDS):
        return NovelState.FINISHED
    return NovelState.UPDATING


def raw_id_of(link: str) -> str:
    """The site's numeric book id, taken from the last number in the link path."""
    path = link.split("?", 1)[0].rstrip("/")
    match = _RAW_ID.search(path)
    return match.group(1) if match else ""


def is_completed_list(link: str) -> bool:
    return any(marker in link for marker in _COMPLETED_MARKERS)


class DdxskuAdapter(ScraperAdapter):
    """Selectors and URL rules for ddxsku.com.

    Listing pages are `table.grid` rows (name, latest chapter, author,
    words, update date, state). The completed-works category is not
    paginated by path; its pages live under `articlelist.php?fullflag=1`.
    """

    spider_id = "ddxsku"
    home_url = DATA_URL

    def extract_categories(self, doc: Document) -> list[RawLink]:
        links = []
        for node in doc.select(SELECT_SORT):
            name = text_of(node)
            href = attr_of(node, "href")
            if not name or not href:
                continue
            if href.rstrip("/") in ("", "/", DATA_URL.rstrip("/")):
                # the "home" entry of the menu
                continue
            links.append(RawLink(name=name, link=href))
        return links

    def category_template(self, link: str) -> str:
        if is_completed_list(link) or has_placeholder(link):
            return link
        if not _PAGED_SUFFIX.search(link):
            logger.warning("Category link %s has no page number, it will be crawled as one page", link)
            return link
        return _PAGED_SUFFIX.sub("_{{page}}.html", link)

    def render_page_link(self, template: str, page: int) -> str:
        if is_completed_list(template):
            return urljoin(DATA_URL, render_link(COMPLETED_LIST, page))
        return render_link(template, page)

    def extract_listing_rows(self, doc: Document) -> list[RawRow]:
        rows = []
        for tr in doc.select(SELECT_ROWS):
            cells = tr.css("td")
            if not cells:
                # header row
                continue
            book = select_in(cells[0], "a")
            link = attr_of(book, "href")
            row = RawRow(name=text_of(book), link=link)
            if link:
                row.raw_id = raw_id_of(link)
            if len(cells) > 1:
                latest = select_in(cells[1], "a")
                row.last_section_name = text_of(latest)
                latest_href = attr_of(latest, "href")
                if latest_href:
                    row.section_link = urljoin(latest_href, "./")
            if len(cells) > 2:
                row.author = text_of(cells[2]) or ""
            if len(cells) > 4:
                row.updated_at = parse_site_time(text_of(cells[4]))
            if len(cells) > 5:
                row.state = parse_state(text_of(cells[5]))
            rows.append(row)
        return rows

    def extract_pagination_bound(self, doc: Document) -> Optional[int]:
        last = doc.select_one(SELECT_PAGE_LAST)
        if last is not None:
            text = text_of(last) or ""
            if text.isdigit():
                return int(text)
            match = _PAGED_SUFFIX.search(attr_of(last, "href") or "")
            if match:
                return int(match.group(1))
            raise ParseFailed("Unreadable last-page link", {"text": text})

        # "1/250" style counter on pages without a last-page link
        stats = doc.text(SELECT_PAGE_STATS)
        if stats:
            _, _, total = stats.partition("/")
            if not total.strip().isdigit():
                raise ParseFailed("Unreadable page counter", {"text": stats})
            return int(total.strip())
        return None

    def extract_detail(self, doc: Document) -> NovelDetail:
        return NovelDetail(
            name=doc.meta("og:novel:book_name") or doc.meta("og:title"),
            author=doc.meta("og:novel:author"),
            cover=doc.meta("og:image"),
            intro=doc.meta("og:description"),
            updated_at=parse_site_time(doc.meta("og:novel:update_time")),
            last_section=doc.meta("og:novel:latest_chapter_name"),
            state=parse_state(doc.meta("og:novel:status")),
            section_link=doc.meta("og:novel:read_url"),
        )

    def extract_sections(self, doc: Document) -> list[RawSection]:
        return [
            RawSection(name=text_of(node) or "", link=attr_of(node, "href"))
            for node in doc.select(SELECT_SECTIONS)
        ]

    def extract_content(self, doc: Document) -> Optional[str]:
        node = doc.select_one(SELECT_CONTENT)
        if node is None:
            return None
        lines = [line.strip() for line in (text_of(node, separator="\n") or "").splitlines()]
        text = "\n".join(line for line in lines if line)
        return text or None

    def search_url(self, name: str) -> Optional[str]:
        return urljoin(
            DATA_URL,
            f"modules/article/search.php?searchtype=articlename&searchkey={quote(name)}",
        )
