"""
Hacker News comments via the Algolia search API.

Keeps recent, substantive comments that actually talk about the company:
at least 100 characters, with the name in the comment or its story title.
"""

import logging
import re
import time
from datetime import datetime, timezone
from typing import List, Optional

import httpx

from lemonade.config import get_settings
from .base import SignalSource, SourceUnavailableError
from .models import SignalItem, SignalType
from .text import clean_html

logger = logging.getLogger(__name__)

HN_SEARCH_URL = "https://hn.algolia.com/api/v1/search_by_date"
HN_ITEM_URL = "https://news.ycombinator.com/item?id="

MIN_COMMENT_LENGTH = 100


def clean_query(query: str) -> str:
    return re.sub(r"[^a-z0-9\s]", "", query.lower()).strip()


class HackerNewsSource(SignalSource):
    """Recent HN comments mentioning a competitor."""

    name = "Hacker News"

    def __init__(self, client: Optional[httpx.AsyncClient] = None, max_comments: int = 15,
                 lookback_days: Optional[int] = None, hits_per_page: int = 30):
        super().__init__(client=client)
        self.max_comments = max_comments
        self.hits_per_page = hits_per_page
        self.lookback_days = lookback_days or get_settings().SOCIAL_LOOKBACK_DAYS

    def search_params(self, query: str) -> dict:
        since = int(time.time()) - self.lookback_days * 24 * 3600
        return {
            "query": query,
            "tags": "comment",
            "hitsPerPage": self.hits_per_page,
            "numericFilters": f"created_at_i>{since}",
        }

    async def _fetch(self, client: httpx.AsyncClient, competitor: str) -> List[SignalItem]:
        query = clean_query(competitor)
        if not query:
            return []

        response = await client.get(HN_SEARCH_URL, params=self.search_params(query))
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict) or not isinstance(data.get("hits", []), list):
            raise SourceUnavailableError("unexpected search response shape")

        items = []
        for hit in data.get("hits", []):
            if not isinstance(hit, dict):
                continue
            text = clean_html(str(hit.get("comment_text") or ""))
            story_title = str(hit.get("story_title") or "")
            if len(text) < MIN_COMMENT_LENGTH:
                continue
            if query not in text.lower() and query not in story_title.lower():
                continue

            created = hit.get("created_at_i")
            if not isinstance(created, (int, float)):
                created = None
            items.append(SignalItem(
                title=story_title or f"Comment by {hit.get('author', 'anonymous')}",
                content=text,
                url=f"{HN_ITEM_URL}{hit.get('objectID')}",
                published_at=(
                    datetime.fromtimestamp(created, tz=timezone.utc).isoformat()
                    if created else hit.get("created_at")
                ),
                type=SignalType.SOCIAL,
            ))
            if len(items) >= self.max_comments:
                break

        return items
