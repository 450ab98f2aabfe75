"""Tools package: HTTP client, HTML documents, link templates, and ids."""

from tools.document import Document, text_of, attr_of
from tools.http_client import HttpClient
from tools.idgen import SnowflakeIdGenerator
from tools.link_template import render_link, has_placeholder, absolute_link

__all__ = [
    "Document",
    "text_of",
    "attr_of",
    "HttpClient",
    "SnowflakeIdGenerator",
    "render_link",
    "has_placeholder",
    "absolute_link",
]
