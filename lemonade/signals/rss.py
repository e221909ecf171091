"""
RSS Feed Parsing

Items are pulled out with tag-scanning regexes rather than an XML parser,
so truncated or slightly malformed feeds still yield their good items.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple
from urllib.parse import urlparse, parse_qs

import httpx

from lemonade.config import get_settings
from .base import SignalSource, SourceUnavailableError
from .models import SignalItem, SignalType
from .text import (
    clean_html, classify_item_type, parse_published, within_lookback,
    dedupe_items, sort_newest_first,
)

logger = logging.getLogger(__name__)

ITEM_RE = re.compile(r"<item[^>]*>([\s\S]*?)</item>", re.IGNORECASE)
TITLE_RE = re.compile(
    r"<title[^>]*><!\[CDATA\[([\s\S]*?)\]\]></title>|<title[^>]*>([\s\S]*?)</title>",
    re.IGNORECASE,
)
DESC_RE = re.compile(
    r"<description[^>]*><!\[CDATA\[([\s\S]*?)\]\]></description>|<description[^>]*>([\s\S]*?)</description>",
    re.IGNORECASE,
)
LINK_RE = re.compile(r"<link[^>]*>([\s\S]*?)</link>", re.IGNORECASE)
PUBDATE_RE = re.compile(r"<pubDate[^>]*>([\s\S]*?)</pubDate>", re.IGNORECASE)


def _first_group(match: Optional[re.Match]) -> str:
    if not match:
        return ""
    return next((g for g in match.groups() if g), "").strip()


def resolve_link(url: Optional[str]) -> Optional[str]:
    """
    Unwrap aggregator click-through links to the article URL.

    Handles Bing `apiclick.aspx?...&url=` and Google News `url=` / `q=`.
    """
    if not url:
        return url
    url = url.strip().replace("&amp;", "&")

    try:
        parsed = urlparse(url)
    except ValueError:
        return url

    host = (parsed.hostname or "").lower()
    params = parse_qs(parsed.query)

    if host.endswith("bing.com") and "apiclick" in parsed.path.lower():
        target = params.get("url", [None])[0]
        return target or url

    if host.endswith("google.com") and ("url" in params or "q" in params):
        target = params.get("url", params.get("q", [None]))[0]
        if target and target.startswith("http"):
            return target

    return url


def parse_rss_items(xml_text: str) -> List[SignalItem]:
    """
    Extract items from an RSS document.

    Items without both a title and a description are dropped.
    """
    items = []
    for block in ITEM_RE.findall(xml_text or ""):
        title = clean_html(_first_group(TITLE_RE.search(block)))
        content = clean_html(_first_group(DESC_RE.search(block)))
        if not title or not content:
            continue

        link = _first_group(LINK_RE.search(block)) or None
        published = _first_group(PUBDATE_RE.search(block)) or None
        parsed_date = parse_published(published)

        items.append(SignalItem(
            title=title,
            content=content,
            url=resolve_link(link),
            published_at=parsed_date.isoformat() if parsed_date else published,
            type=classify_item_type(title, content),
        ))
    return items


async def fetch_feed(client: httpx.AsyncClient, url: str) -> str:
    """GET a feed; raises httpx.HTTPStatusError on non-2xx."""
    response = await client.get(url)
    response.raise_for_status()
    return response.text


class RssSource(SignalSource):
    """
    Items from one or more RSS feeds.

    A plain RssSource reads a fixed feed and keeps recent items that mention
    the competitor. Subclasses build per-competitor search feeds.
    """

    name = "RSS"

    def __init__(self, feed_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None,
                 delay: float = 0.0, lookback_days: Optional[int] = None):
        super().__init__(client=client, delay=delay)
        self.feed_url = feed_url
        self.lookback_days = lookback_days or get_settings().NEWS_LOOKBACK_DAYS
        if feed_url:
            self.name = f"RSS: {urlparse(feed_url).hostname}"

    def feeds(self, competitor: str) -> List[Tuple[str, str]]:
        """(url, query) pairs to read for a competitor."""
        return [(self.feed_url, "")] if self.feed_url else []

    def classify(self, item: SignalItem, query: str) -> SignalType:
        return item.type

    def cutoff(self) -> datetime:
        return datetime.now(timezone.utc) - timedelta(days=self.lookback_days)

    def postprocess(self, items: List[SignalItem], competitor: str) -> List[SignalItem]:
        needle = competitor.lower()
        cutoff = self.cutoff()
        return [
            item for item in items
            if within_lookback(item, cutoff)
            and (needle in item.title.lower() or needle in item.content.lower())
        ]

    async def _fetch(self, client: httpx.AsyncClient, competitor: str) -> List[SignalItem]:
        feeds = self.feeds(competitor)
        items: List[SignalItem] = []
        failures = []

        for index, (url, query) in enumerate(feeds):
            if index:
                await self._pause()
            try:
                text = await fetch_feed(client, url)
            except httpx.HTTPError as e:
                logger.warning(f"[{self.name}] feed failed for {competitor}: {e}")
                failures.append(str(e) or type(e).__name__)
                continue

            for item in parse_rss_items(text):
                item.type = self.classify(item, query)
                items.append(item)

        if feeds and len(failures) == len(feeds):
            raise SourceUnavailableError(failures[0])

        return self.postprocess(items, competitor)


class SearchFeedSource(RssSource):
    """
    Per-competitor search feeds: recent, deduplicated, newest first.
    """

    per_group_limit = 5

    def postprocess(self, items: List[SignalItem], competitor: str) -> List[SignalItem]:
        now = datetime.now(timezone.utc).isoformat()
        for item in items:
            if not item.published_at:
                item.published_at = now

        cutoff = self.cutoff()
        recent = [item for item in items if within_lookback(item, cutoff)]
        return sort_newest_first(dedupe_items(recent))[: self.per_group_limit]
