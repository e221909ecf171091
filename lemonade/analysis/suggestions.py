"""
Competitor Suggestion Analyzer

Gathers candidate competitors (search results plus the model's own domain
knowledge), then has the LLM score each one 0-100. Only valid candidates
scoring at least 50 survive, best first, at most five. When scoring fails
the raw candidates come back with a moderate default score.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode, urlparse

import httpx

from lemonade.signals.aggregator import canonicalize
from lemonade.signals.base import build_http_client
from lemonade.signals.rss import fetch_feed, parse_rss_items
from .client import LLMClient
from .structured import structured_call

logger = logging.getLogger(__name__)

MIN_SCORE = 50
MAX_SUGGESTIONS = 5
FALLBACK_SCORE = 60
FALLBACK_COUNT = 3

BING_SEARCH_URL = "https://www.bing.com/search"

SYSTEM_PROMPT = (
    "You are an expert competitive intelligence analyst. Analyze competitor "
    "suggestions accurately and respond with JSON only."
)

SCORE_PROMPT = """Analyze the following competitor suggestions for "{company}" and determine their relevance and validity.

ORIGINAL COMPANY: {company}

SUGGESTED COMPETITORS:
{candidates}

For each suggestion decide whether it is a legitimate business, how relevant it is as a
competitor, and what kind of competitor relationship exists.

Respond with JSON only:
{{
  "suggestions": [
    {{
      "name": "Company Name",
      "domain": "domain.com",
      "url": "https://...",
      "relevanceScore": 85,
      "reasoning": "Why this is (or is not) a competitor",
      "category": "Direct Competitor|Alternative Solution|Adjacent Market|Supplier|Partner|Invalid",
      "isValid": true
    }}
  ],
  "summary": "Brief analysis of the competitive landscape and suggestion quality",
  "confidence": "high|medium|low"
}}

SCORING:
- 90-100: Direct competitor, same market, similar products
- 70-89: Strong alternative or adjacent market player
- 50-69: Loosely related or different segment
- 30-49: Weak connection
- 0-29: Invalid, unrelated, or non-existent
"""

KNOWLEDGE_PROMPT = """Based on your knowledge, suggest 3-5 real competitor companies for "{company}".

Respond with JSON only:
{{
  "competitors": [
    {{"name": "Company Name", "domain": "company.com", "reasoning": "Why they compete"}}
  ]
}}

Only suggest real, established companies with active websites."""


@dataclass
class RawSuggestion:
    name: str
    domain: str
    url: str
    source: str = "search"


@dataclass
class Suggestion:
    name: str
    domain: str
    url: str
    relevance_score: int
    reasoning: str
    category: str
    is_valid: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "domain": self.domain,
            "url": self.url,
            "relevanceScore": self.relevance_score,
            "reasoning": self.reasoning,
            "category": self.category,
            "isValid": self.is_valid,
        }


@dataclass
class SuggestionAnalysis:
    suggestions: List[Suggestion]
    summary: str
    confidence: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "suggestions": [s.to_dict() for s in self.suggestions],
            "summary": self.summary,
            "confidence": self.confidence,
        }


def _domain_of(url: str) -> str:
    host = (urlparse(url).hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


def _coerce_suggestion(data: Dict[str, Any]) -> Optional[Suggestion]:
    try:
        score = int(float(data.get("relevanceScore", 0)))
    except (TypeError, ValueError):
        return None
    name = str(data.get("name") or "").strip()
    if not name:
        return None
    domain = str(data.get("domain") or "")
    return Suggestion(
        name=name,
        domain=domain,
        url=str(data.get("url") or (f"https://{domain}" if domain else "")),
        relevance_score=score,
        reasoning=str(data.get("reasoning") or ""),
        category=str(data.get("category") or "Potential Competitor"),
        is_valid=bool(data.get("isValid", False)),
    )


class SuggestionAnalyzer:
    """
    Usage:
        analyzer = SuggestionAnalyzer(LLMClient())
        suggestions = await analyzer.discover("Notion", existing=["Coda"])
    """

    def __init__(self, client: Optional[LLMClient] = None, http_client: Optional[httpx.AsyncClient] = None):
        self.client = client
        self.http_client = http_client

    async def analyze(self, company: str, candidates: List[RawSuggestion]) -> SuggestionAnalysis:
        """Score candidates; falls back to the raw list on any LLM failure."""
        if not candidates:
            return SuggestionAnalysis([], "No competitor suggestions found to analyze.", "low")

        listing = "\n".join(
            f"{i + 1}. {c.name} ({c.domain}) - {c.url}" for i, c in enumerate(candidates)
        )
        data = await structured_call(
            self.client,
            SCORE_PROMPT.format(company=company, candidates=listing),
            name="suggestions",
            system=SYSTEM_PROMPT,
            tier="fast",
            max_tokens=1500,
            temperature=0.2,
            required_keys=("suggestions",),
            fallback=None,
        )
        if data is None or not isinstance(data.get("suggestions"), list):
            return self._fallback(candidates)

        scored = [
            s for s in (_coerce_suggestion(item) for item in data["suggestions"] if isinstance(item, dict))
            if s is not None and s.is_valid and s.relevance_score >= MIN_SCORE
        ]
        scored.sort(key=lambda s: s.relevance_score, reverse=True)

        return SuggestionAnalysis(
            suggestions=scored[:MAX_SUGGESTIONS],
            summary=str(data.get("summary") or ""),
            confidence=str(data.get("confidence") or "medium"),
        )

    def _fallback(self, candidates: List[RawSuggestion]) -> SuggestionAnalysis:
        return SuggestionAnalysis(
            suggestions=[
                Suggestion(
                    name=c.name,
                    domain=c.domain,
                    url=c.url,
                    relevance_score=FALLBACK_SCORE,
                    reasoning="Unable to analyze with AI - basic suggestion from search results",
                    category="Potential Competitor",
                )
                for c in candidates[:FALLBACK_COUNT]
            ],
            summary="AI analysis unavailable - showing basic search results",
            confidence="low",
        )

    async def discover(self, company: str, existing: Optional[List[str]] = None) -> SuggestionAnalysis:
        """Search + knowledge candidates, deduplicated, then scored."""
        candidates = await self.search_candidates(company)
        candidates.extend(await self.knowledge_candidates(company))

        skip = {canonicalize(company)} | {canonicalize(name) for name in (existing or [])}
        seen_domains = set()
        unique = []
        for candidate in candidates:
            domain = candidate.domain.lower()
            if canonicalize(candidate.name) in skip or canonicalize(domain) in skip:
                continue
            if domain in seen_domains:
                continue
            seen_domains.add(domain)
            unique.append(candidate)

        return await self.analyze(company, unique)

    async def knowledge_candidates(self, company: str) -> List[RawSuggestion]:
        data = await structured_call(
            self.client,
            KNOWLEDGE_PROMPT.format(company=company),
            name="suggestions:knowledge",
            tier="fast",
            max_tokens=800,
            required_keys=("competitors",),
            fallback={"competitors": []},
        )
        result = []
        for item in data.get("competitors") or []:
            if not isinstance(item, dict) or not item.get("name") or not item.get("domain"):
                continue
            domain = str(item["domain"]).lower()
            result.append(RawSuggestion(
                name=str(item["name"]), domain=domain, url=f"https://{domain}", source="knowledge",
            ))
        return result

    async def search_candidates(self, company: str) -> List[RawSuggestion]:
        """Competitor names scraped from a web search feed; empty on failure."""
        query = f'"{company}" competitors alternatives'
        url = f"{BING_SEARCH_URL}?{urlencode({'format': 'rss', 'q': query})}"
        try:
            if self.http_client is not None:
                text = await fetch_feed(self.http_client, url)
            else:
                async with build_http_client() as client:
                    text = await fetch_feed(client, url)
        except httpx.HTTPError as e:
            logger.warning(f"[suggestions] search failed for {company}: {e}")
            return []

        result = []
        for item in parse_rss_items(text):
            domain = _domain_of(item.url or "")
            if not domain:
                continue
            name = re.split(r"\s[-|:]\s", item.title)[0].strip()
            result.append(RawSuggestion(name=name, domain=domain, url=item.url, source="search"))
        return result
