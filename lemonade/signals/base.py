"""
SignalSource - the common capability of every fetcher.

Subclasses implement `_fetch`; callers use `fetch`, which never raises.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import httpx

from lemonade.config import get_settings
from .models import SignalItem, SourceResult

logger = logging.getLogger(__name__)


class SourceUnavailableError(Exception):
    """Raised inside a fetcher when its upstream cannot be used."""
    pass


def build_http_client(timeout: Optional[float] = None, **kwargs) -> httpx.AsyncClient:
    """AsyncClient with the fetchers' user agent and timeout."""
    settings = get_settings()
    headers = {"User-Agent": settings.HTTP_USER_AGENT}
    headers.update(kwargs.pop("headers", {}))
    return httpx.AsyncClient(
        timeout=timeout or settings.HTTP_TIMEOUT,
        headers=headers,
        follow_redirects=True,
        **kwargs,
    )


class SignalSource(ABC):
    """
    Fetches items about one competitor from one upstream.

    Args:
        client: Shared AsyncClient; one is created per call when omitted
        delay: Politeness pause between consecutive upstream requests
    """

    name: str = "source"
    uses_http: bool = True

    def __init__(self, client: Optional[httpx.AsyncClient] = None, delay: float = 0.0):
        self.client = client
        self.delay = delay

    async def fetch(self, competitor: str) -> SourceResult:
        """Fetch items; failures become an Unavailable result."""
        try:
            if self.client is not None or not self.uses_http:
                items = await self._fetch(self.client, competitor)
            else:
                async with build_http_client() as client:
                    items = await self._fetch(client, competitor)
        except (httpx.HTTPError, SourceUnavailableError, ValueError,
                KeyError, TypeError, AttributeError) as e:
            logger.warning(f"[{self.name}] unavailable for {competitor}: {e}")
            return SourceResult.unavailable(self.name, str(e) or type(e).__name__)

        logger.info(f"[{self.name}] {len(items)} items for {competitor}")
        return SourceResult.ok(self.name, items)

    @abstractmethod
    async def _fetch(self, client: httpx.AsyncClient, competitor: str) -> List[SignalItem]:
        """Return normalized items; raise on upstream failure."""

    async def _pause(self) -> None:
        if self.delay > 0:
            await asyncio.sleep(self.delay)
