"""Adapter for www.qubige.com (a biquge-style novel site)."""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from adapters.base import NovelDetail, RawLink, RawRow, RawSection, ScraperAdapter
from tools.document import Document, attr_of, select_in, text_of
from tools.link_template import has_placeholder, render_link

logger = logging.getLogger(__name__)

LINK_BASE = "https://www.qubige.com/"
LINK_SORT = LINK_BASE + "sort/"

SITE_TZ = timezone(timedelta(hours=8))

SELECT_SORT = "div.cmd-bd > a"
SELECT_NOVEL = "div.layout.layout2.layout-col2 > ul > li"
SELECT_LIST = "div.listpage > span.middle > select > option"
SELECT_NAME = "span.s2 > a"
SELECT_LATEST = "span.s3 > a"
SELECT_AUTHOR = "span.s4"
SELECT_UPDATE_AT = "span.s5"
SELECT_INTRO = "div.desc.xs-hidden"
SELECT_SECTION = "div.section-box > ul > li > a"
SELECT_CONTENT = "#content"

# Page 1 of a sort is the sort directory itself; later pages are index_N.html in it
PAGE_FILE = "index_{{page}}.html"
_PAGE_FILE_RE = re.compile(r"index_(\d+)\.html")
_RAW_ID = re.compile(r"/(\d+)/?$")


def parse_update_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").replace(tzinfo=SITE_TZ)
    except ValueError:
        logger.debug("Unrecognized date: %r", value)
        return None


class QubigeAdapter(ScraperAdapter):
    """Selectors and URL rules for qubige.com.

    Listing rows are `li` entries with one `span.sN` per field. A novel's own
    page carries both its intro and the full chapter list, so the novel link
    doubles as its section link.
    """

    spider_id = "qubige"
    home_url = LINK_SORT

    def extract_categories(self, doc: Document) -> list[RawLink]:
        links = []
        for node in doc.select(SELECT_SORT):
            name = text_of(node)
            href = attr_of(node, "href")
            if not name or not href:
                continue
            links.append(RawLink(name=name, link=href))
        return links

    def category_template(self, link: str) -> str:
        if has_placeholder(link):
            return link
        if not link.endswith("/"):
            link += "/"
        return link + PAGE_FILE

    def render_page_link(self, template: str, page: int) -> str:
        if page == 1 and template.endswith(PAGE_FILE):
            return template[: -len(PAGE_FILE)]
        return render_link(template, page)

    def extract_listing_rows(self, doc: Document) -> list[RawRow]:
        rows = []
        for li in doc.select(SELECT_NOVEL):
            book = select_in(li, SELECT_NAME)
            if book is None:
                # column header
                continue
            link = attr_of(book, "href")
            row = RawRow(name=text_of(book), link=link)
            if link:
                row.section_link = link
                match = _RAW_ID.search(link.split("?", 1)[0])
                row.raw_id = match.group(1) if match else ""
            row.last_section_name = text_of(select_in(li, SELECT_LATEST))
            row.author = text_of(select_in(li, SELECT_AUTHOR)) or ""
            row.updated_at = parse_update_date(text_of(select_in(li, SELECT_UPDATE_AT)))
            rows.append(row)
        return rows

    def extract_pagination_bound(self, doc: Document) -> Optional[int]:
        options = doc.select(SELECT_LIST)
        if not options:
            return None
        match = _PAGE_FILE_RE.search(attr_of(options[-1], "value") or "")
        return int(match.group(1)) if match else len(options)

    def extract_detail(self, doc: Document) -> NovelDetail:
        return NovelDetail(
            name=doc.meta("og:novel:book_name"),
            author=doc.meta("og:novel:author"),
            cover=doc.meta("og:image"),
            intro=doc.text(SELECT_INTRO) or doc.meta("og:description"),
            updated_at=parse_update_date((doc.meta("og:novel:update_time") or "")[:10]),
            last_section=doc.meta("og:novel:latest_chapter_name"),
            section_link=doc.url or None,
        )

    def extract_sections(self, doc: Document) -> list[RawSection]:
        sections = []
        for node in doc.select(SELECT_SECTION):
            name = text_of(node)
            link = attr_of(node, "href")
            if not name or not link:
                continue
            sections.append(RawSection(name=name, link=link))
        return sections

    def extract_content(self, doc: Document) -> Optional[str]:
        node = doc.select_one(SELECT_CONTENT)
        if node is None:
            return None
        lines = [line.strip() for line in (text_of(node, separator="\n") or "").splitlines()]
        text = "\n".join(line for line in lines if line)
        return text or None
