"""Rendering of paginated link templates such as `.../lastupdate_{{page}}.html`."""

import re
from urllib.parse import urljoin

_PAGE_RE = re.compile(r"\{\{\s*page\s*\}\}")


def has_placeholder(template: str) -> bool:
    return bool(_PAGE_RE.search(template))


def render_link(template: str, page: int) -> str:
    """Substitute the page number for every `{{page}}` placeholder.

    A template without a placeholder renders to itself.
    """
    return _PAGE_RE.sub(str(page), template)


def absolute_link(base: str, href: str) -> str:
    return urljoin(base, href)
