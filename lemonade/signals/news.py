"""
Bing News search feeds per source group.

news     - business and product phrasing, type detected per item
funding  - funding/revenue phrasing, always typed funding
social   - customer/review phrasing, always typed social
products - placeholder item (premium feature)
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from urllib.parse import urlencode

import httpx

from .base import SignalSource
from .models import SignalItem, SignalType
from .rss import SearchFeedSource
from .text import classify_item_type

logger = logging.getLogger(__name__)

BING_NEWS_URL = "https://www.bing.com/news/search"


def bing_news_url(query: str, count: int, since_days: int = 90) -> str:
    params = {
        "format": "RSS",
        "q": query,
        "sortby": "date",
        "since": f"{since_days}days",
        "count": count,
    }
    return f"{BING_NEWS_URL}?{urlencode(params)}"


class BingNewsSource(SearchFeedSource):
    """General business news."""

    name = "Bing News"
    count = 3
    forced_type: Optional[SignalType] = None

    def __init__(self, client: Optional[httpx.AsyncClient] = None, delay: float = 0.1,
                 lookback_days: Optional[int] = None):
        super().__init__(client=client, delay=delay, lookback_days=lookback_days)

    def queries(self, competitor: str) -> List[str]:
        return [
            f'"{competitor}" funding raised investment revenue earnings',
            f'"{competitor}" product launch new features acquisition merger partnership',
        ]

    def feeds(self, competitor: str) -> List[Tuple[str, str]]:
        return [
            (bing_news_url(q, self.count, self.lookback_days), q)
            for q in self.queries(competitor)
        ]

    def classify(self, item: SignalItem, query: str) -> SignalType:
        if self.forced_type is not None:
            return self.forced_type
        return classify_item_type(item.title, item.content, query=query, extended=True)


class FundingNewsSource(BingNewsSource):
    name = "Bing News (funding)"
    count = 5
    forced_type = SignalType.FUNDING

    def queries(self, competitor: str) -> List[str]:
        return [
            f'"{competitor}" "funding" OR "investment" OR "raised" OR "revenue" OR "valuation" OR "IPO"'
        ]


class CustomerNewsSource(BingNewsSource):
    name = "Bing News (customers)"
    count = 5
    forced_type = SignalType.SOCIAL

    def queries(self, competitor: str) -> List[str]:
        return [
            f'"{competitor}" "customers" OR "reviews" OR "complaints" OR "satisfaction" OR "market share"'
        ]


class ProductSource(SignalSource):
    """Product-launch tracking placeholder."""

    name = "Product Updates"
    uses_http = False

    async def _fetch(self, client, competitor: str) -> List[SignalItem]:
        return [
            SignalItem(
                title=f"{competitor} product updates",
                content=f"Recent product launches and updates from {competitor}",
                published_at=datetime.now(timezone.utc).isoformat(),
                type=SignalType.PRODUCT,
            )
        ]
