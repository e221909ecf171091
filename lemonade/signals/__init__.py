"""
Signal fetchers and aggregation.

Every fetcher is a SignalSource whose fetch() returns a SourceResult:
Ok(items), possibly empty, or Unavailable(reason).
"""

from .models import SignalType, SignalItem, CompetitorSignal, SignalSources, SourceResult
from .base import SignalSource, SourceUnavailableError, build_http_client
from .rss import RssSource, SearchFeedSource, parse_rss_items, resolve_link, fetch_feed
from .news import BingNewsSource, FundingNewsSource, CustomerNewsSource, ProductSource
from .hackernews import HackerNewsSource
from .reddit import RedditSource
from .text import clean_html, classify_item_type, dedupe_items, trim_content
from .aggregator import (
    SignalAggregator,
    AggregationResult,
    canonicalize,
    split_competitors,
    default_source_groups,
)

__all__ = [
    "SignalType",
    "SignalItem",
    "CompetitorSignal",
    "SignalSources",
    "SourceResult",
    "SignalSource",
    "SourceUnavailableError",
    "build_http_client",
    "RssSource",
    "SearchFeedSource",
    "parse_rss_items",
    "resolve_link",
    "fetch_feed",
    "BingNewsSource",
    "FundingNewsSource",
    "CustomerNewsSource",
    "ProductSource",
    "HackerNewsSource",
    "RedditSource",
    "clean_html",
    "classify_item_type",
    "dedupe_items",
    "trim_content",
    "SignalAggregator",
    "AggregationResult",
    "canonicalize",
    "split_competitors",
    "default_source_groups",
]
