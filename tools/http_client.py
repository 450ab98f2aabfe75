"""Shared async HTTP client with default browser headers."""

import logging
from typing import Optional

import httpx

from config.exceptions import Disconnect
from config.settings import DEFAULT_USER_AGENT, Settings

logger = logging.getLogger(__name__)


class HttpClient:
    """Thin wrapper over one pooled `httpx.AsyncClient`.

    Safe to share across every fetch task of the process. Transport failures
    and non-2xx responses surface as `Disconnect`; nothing is retried here.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings
        user_agent = settings.user_agent if settings else DEFAULT_USER_AGENT
        timeout = settings.http_timeout if settings else 30.0
        self.headers = {"User-Agent": user_agent}
        if client is None:
            client = httpx.AsyncClient(
                headers=self.headers,
                timeout=httpx.Timeout(timeout),
                follow_redirects=True,
            )
        else:
            client.headers.update(self.headers)
        self._client = client
        self.total_requests = 0

    async def get(self, url: str) -> str:
        """GET `url` and return the decoded body.

        Raises:
            Disconnect: On connection errors, timeouts and HTTP error statuses.
        """
        self.total_requests += 1
        try:
            resp = await self._client.get(url)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.debug("GET %s failed: %s", url, e)
            raise Disconnect(str(e) or type(e).__name__, url=url) from e
        logger.debug("GET %s -> %d (%d bytes)", url, resp.status_code, len(resp.content))
        return resp.text

    async def aclose(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
