"""
Signal Aggregator

Fans out the enabled source groups for every competitor concurrently and
joins the results into one CompetitorSignal per competitor.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import httpx

from lemonade.config import get_settings
from .base import SignalSource, build_http_client
from .models import CompetitorSignal, SignalItem, SignalSources
from .news import BingNewsSource, FundingNewsSource, CustomerNewsSource, ProductSource
from .text import dedupe_items, trim_content

logger = logging.getLogger(__name__)

AGGREGATED_SOURCE = "Aggregated Sources"

_PROTOCOL_RE = re.compile(r"^[a-z][a-z0-9+.-]*://")
_DOMAIN_RE = re.compile(r"^[a-z0-9-]+(\.[a-z0-9-]+)+$")


def canonicalize(name: str) -> str:
    """
    Canonical identity of a competitor name or URL.

    "OpenAI", "openai.com" and "https://www.openai.com/blog" all map to
    "openai".
    """
    value = (name or "").strip().lower()
    value = _PROTOCOL_RE.sub("", value)
    if value.startswith("www."):
        value = value[4:]
    value = value.split("/")[0]
    if _DOMAIN_RE.match(value):
        value = value.split(".")[0]
    return re.sub(r"[^a-z0-9]", "", value)


def split_competitors(raw: Optional[str] = None, names: Optional[Iterable[str]] = None) -> List[str]:
    """
    Parse user input into distinct competitor names.

    Splits on newlines and commas, trims, drops blanks, and keeps the first
    spelling of each canonical identity.
    """
    candidates: List[str] = []
    if raw:
        candidates.extend(re.split(r"[\n,]", raw))
    if names:
        candidates.extend(names)

    seen = set()
    result = []
    for candidate in candidates:
        name = (candidate or "").strip()
        canon = canonicalize(name)
        if not name or not canon or canon in seen:
            continue
        seen.add(canon)
        result.append(name)
    return result


def default_source_groups(client: Optional[httpx.AsyncClient] = None) -> Dict[str, List[SignalSource]]:
    """Source group name -> fetchers."""
    return {
        "news": [BingNewsSource(client=client)],
        "funding": [FundingNewsSource(client=client)],
        "social": [CustomerNewsSource(client=client)],
        "products": [ProductSource()],
    }


@dataclass
class AggregationResult:
    signals: List[CompetitorSignal] = field(default_factory=list)
    unavailable: List[str] = field(default_factory=list)  # "source: competitor"

    @property
    def total_items(self) -> int:
        return sum(len(s.items) for s in self.signals)


class SignalAggregator:
    """
    Collects signals for a list of competitors.

    Usage:
        aggregator = SignalAggregator()
        result = await aggregator.aggregate(["Acme", "Beta"], SignalSources(news=True))
    """

    def __init__(self, source_groups: Optional[Dict[str, List[SignalSource]]] = None,
                 cache=None, max_items: Optional[int] = None):
        self.source_groups = source_groups
        self.cache = cache
        self.max_items = max_items or get_settings().MAX_ITEMS_PER_COMPETITOR

    async def aggregate(self, competitors: List[str], sources: SignalSources,
                        nocache: bool = False) -> AggregationResult:
        """
        Fetch every competitor concurrently and wait for all of them.

        Competitors with no items are left out of the result.
        """
        if self.source_groups is not None:
            return await self._aggregate(self.source_groups, competitors, sources, nocache)

        async with build_http_client() as client:
            return await self._aggregate(default_source_groups(client), competitors, sources, nocache)

    async def _aggregate(self, groups, competitors, sources, nocache) -> AggregationResult:
        outcomes = await asyncio.gather(*(
            self._for_competitor(groups, competitor, sources, nocache)
            for competitor in competitors
        ))

        result = AggregationResult()
        for signal, unavailable in outcomes:
            result.unavailable.extend(unavailable)
            if signal.items:
                result.signals.append(signal)

        logger.info(
            f"Aggregated {result.total_items} items for {len(competitors)} competitors "
            f"({len(result.unavailable)} unavailable fetches)"
        )
        return result

    async def _for_competitor(self, groups, competitor: str, sources: SignalSources, nocache: bool):
        cache_key = f"signals:{canonicalize(competitor)}:{sources.cache_key()}"
        if self.cache is not None and not nocache:
            cached = await self.cache.get(cache_key)
            if cached is not None:
                logger.info(f"Signal cache hit for {competitor}")
                return CompetitorSignal.from_dict(cached), []

        fetchers = [source for name in sources.enabled() for source in groups.get(name, [])]
        results = await asyncio.gather(*(source.fetch(competitor) for source in fetchers))

        items: List[SignalItem] = []
        unavailable = []
        for result in results:
            if not result.is_ok:
                unavailable.append(f"{result.source}: {competitor}")
                continue
            items.extend(result.items)

        items = dedupe_items(items)[: self.max_items]
        for item in items:
            item.content = trim_content(item.content)

        signal = CompetitorSignal(source=AGGREGATED_SOURCE, competitor=competitor, items=items)

        # Degraded fetches are not cached
        if self.cache is not None and not unavailable:
            await self.cache.set(cache_key, signal.to_dict())

        return signal, unavailable
