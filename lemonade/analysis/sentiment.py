"""
Social Sentiment Analyzer

Collects discussion from the social sources (Hacker News; Reddit only when
REDDIT_ENABLED), summarizes each platform with the fast model and classifies
the overall mood. Without an LLM the keyword fallback decides.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from lemonade.config import get_settings
from lemonade.signals.base import SignalSource
from lemonade.signals.hackernews import HackerNewsSource
from lemonade.signals.models import SignalItem
from lemonade.signals.reddit import RedditSource
from .client import LLMClient
from .structured import structured_call

logger = logging.getLogger(__name__)

POSITIVE_WORDS = (
    "positive", "good", "great", "excellent", "love",
    "amazing", "wonderful", "fantastic", "impressive",
)
NEGATIVE_WORDS = (
    "negative", "bad", "terrible", "awful", "hate",
    "horrible", "disappointing", "concerns", "issues",
)
LABELS = ("positive", "negative", "neutral")

COMMENTS_FOR_SUMMARY = 15
QUOTES_PER_PLATFORM = 3
QUOTE_CHARS = 300
MAX_TOP_QUOTES = 6

PLATFORM_PROMPT = """Summarize how people on {platform} talk about "{query}" in these comments.

{comments}

Respond in JSON: {{"summary": "2-3 sentences on the overall sentiment and main themes", "quotes": ["up to 3 short representative quotes, copied verbatim from the comments"]}}"""

OVERALL_PROMPT = """Classify the overall sentiment about "{query}" from these platform summaries:

{summaries}

Respond in JSON: {{"sentiment": "positive|negative|neutral"}}"""


def _count_words(text: str, words) -> int:
    return sum(len(re.findall(rf"\b{word}\b", text)) for word in words)


def keyword_sentiment(text: str) -> str:
    """Positive vs negative keyword count; ties are neutral."""
    lowered = (text or "").lower()
    positive = _count_words(lowered, POSITIVE_WORDS)
    negative = _count_words(lowered, NEGATIVE_WORDS)
    if positive > negative:
        return "positive"
    if negative > positive:
        return "negative"
    return "neutral"


@dataclass
class Quote:
    text: str
    source: str
    url: Optional[str] = None


@dataclass
class PlatformSentiment:
    platform: str
    summary: str
    mentions: int
    quotes: List[Quote] = field(default_factory=list)


@dataclass
class SocialSentimentResult:
    query: str
    sentiment: str
    total_mentions: int
    platforms: List[str]
    top_quotes: List[Quote]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "socialMedia": {
                "sentiment": self.sentiment,
                "totalMentions": self.total_mentions,
                "platforms": self.platforms,
                "topQuotes": [asdict(q) for q in self.top_quotes],
            },
        }


class SocialSentimentAnalyzer:
    """
    Usage:
        analyzer = SocialSentimentAnalyzer(LLMClient())
        result = await analyzer.analyze("Acme")
    """

    def __init__(self, client: Optional[LLMClient] = None, sources: Optional[List[SignalSource]] = None):
        self.client = client
        if sources is None:
            sources = [HackerNewsSource()]
            if get_settings().REDDIT_ENABLED:
                sources.append(RedditSource())
        self.sources = sources

    async def analyze(self, query: str) -> Optional[SocialSentimentResult]:
        """None when no platform had any discussion."""
        results = await asyncio.gather(*(source.fetch(query) for source in self.sources))

        platforms: List[PlatformSentiment] = []
        for result in results:
            if not result.is_ok:
                logger.warning(f"[sentiment] {result.source} unavailable for {query}: {result.reason}")
                continue
            if result.items:
                platforms.append(await self.summarize_platform(result.source, result.items, query))

        if not platforms:
            logger.info(f"[sentiment] no discussion found for {query}")
            return None

        quotes = [quote for platform in platforms for quote in platform.quotes]
        return SocialSentimentResult(
            query=query,
            sentiment=await self.overall_sentiment(platforms, query),
            total_mentions=sum(p.mentions for p in platforms),
            platforms=[p.platform for p in platforms],
            top_quotes=quotes[:MAX_TOP_QUOTES],
        )

    async def summarize_platform(self, platform: str, items: List[SignalItem], query: str) -> PlatformSentiment:
        """LLM summary of one platform; the raw comments stand in without one."""
        comments = items[:COMMENTS_FOR_SUMMARY]
        raw_text = " ".join(item.content for item in comments)
        prompt = PLATFORM_PROMPT.format(
            platform=platform,
            query=query,
            comments="\n".join(f'- "{item.content[:QUOTE_CHARS]}"' for item in comments),
        )
        data = await structured_call(
            self.client,
            prompt,
            name=f"sentiment:{platform}",
            tier="fast",
            max_tokens=400,
            required_keys=("summary",),
            fallback={"summary": raw_text},
        )
        return PlatformSentiment(
            platform=platform,
            summary=str(data.get("summary") or raw_text),
            mentions=len(items),
            quotes=self._pick_quotes(platform, comments, data.get("quotes")),
        )

    @staticmethod
    def _pick_quotes(platform: str, comments: List[SignalItem], chosen) -> List[Quote]:
        """The model's quotes, linked to the comment they came from; else the first comments."""
        texts = []
        if isinstance(chosen, list):
            texts = [str(q).strip() for q in chosen if isinstance(q, str) and q.strip()]
        if not texts:
            return [
                Quote(text=item.content[:QUOTE_CHARS], source=platform, url=item.url)
                for item in comments[:QUOTES_PER_PLATFORM]
            ]

        quotes = []
        for text in texts[:QUOTES_PER_PLATFORM]:
            origin = next((item for item in comments if text in item.content), None)
            quotes.append(Quote(text=text[:QUOTE_CHARS], source=platform, url=origin.url if origin else None))
        return quotes

    async def overall_sentiment(self, platforms: List[PlatformSentiment], query: str) -> str:
        summaries = "\n".join(f"{p.platform}: {p.summary}" for p in platforms)
        data = await structured_call(
            self.client,
            OVERALL_PROMPT.format(query=query, summaries=summaries),
            name="sentiment:overall",
            tier="fast",
            max_tokens=50,
            temperature=0.1,
            required_keys=("sentiment",),
            fallback=None,
        )
        label = str((data or {}).get("sentiment", "")).strip().lower()
        if label in LABELS:
            return label
        return keyword_sentiment(summaries)
