"""
Report Summarizer

Turns the aggregated signals into the structured competitive-intelligence
report. Unlike the analyzers this step has no fallback: a report that cannot
be generated fails the request.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from lemonade.signals.models import CompetitorSignal
from .client import LLMClient
from .structured import structured_call, StructuredOutputError

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You are an expert competitive intelligence analyst with deep experience in "
    "market research and business strategy. Provide accurate, actionable insights "
    "based on the provided data. Respond with a single JSON object and nothing else."
)

REPORT_PROMPT = """Analyze the following competitor signals and generate a competitive intelligence report.

COMPETITOR NAMES: {competitors}

SIGNALS DATA:
{signals}

Respond in exactly this JSON format:

{{
  "executive_summary": "A 2-3 sentence overview of the competitive landscape and key trends",
  "competitors": [
    {{
      "competitor": "Company Name",
      "activity_level": "high|moderate|low",
      "recent_developments": ["Brief bullet point"],
      "funding_business": ["Funding/business related bullet point"],
      "social_sentiment": {{"score": 75, "mentions_count": 120}},
      "key_insights": ["Strategic insight"]
    }}
  ],
  "strategic_insights": [
    "Cross-competitor strategic insight",
    "Market trend insight",
    "Opportunity or threat insight"
  ],
  "methodology": {{
    "sources_analyzed": {sources},
    "total_signals": {total_signals},
    "confidence_level": "high|medium|low"
  }}
}}

Focus on:
- Actionable insights over generic observations
- Recent developments (last 30 days prioritized)
- Funding, partnerships, product launches, and market positioning
- Concise bullet points
- Activity level from signal volume and recency
- A realistic sentiment score (0-100) from the available data
"""

PREVIEW_PROMPT = """Give a quick first read of these competitor signals.

COMPETITOR NAMES: {competitors}

SIGNALS DATA:
{signals}

Respond in exactly this JSON format:

{{
  "executive_summary": "One or two sentences",
  "competitor_insights": [
    {{"competitor": "Company Name", "key_update": "The single most important development"}}
  ]
}}
"""

PREVIEW_ITEMS_PER_SOURCE = 3


class ReportGenerationError(Exception):
    """The main report could not be produced."""
    pass


def count_signals(signals: List[CompetitorSignal]) -> int:
    return sum(len(signal.items) for signal in signals)


def _signals_json(signals: List[CompetitorSignal]) -> str:
    return json.dumps([signal.to_dict() for signal in signals], indent=2)


class ReportSummarizer:
    """
    Usage:
        summarizer = ReportSummarizer(LLMClient())
        summary_json = await summarizer.summarize(signals, ["Acme", "Beta"])
    """

    def __init__(self, client: Optional[LLMClient] = None):
        self.client = client

    async def summarize(
        self,
        signals: List[CompetitorSignal],
        competitor_names: List[str],
        premium: bool = False,
    ) -> str:
        """
        Full report, serialized as JSON text.

        Raises:
            ReportGenerationError: If the LLM gives no content or invalid JSON
        """
        sources = sorted({signal.source for signal in signals}) or ["News RSS"]
        prompt = REPORT_PROMPT.format(
            competitors=", ".join(competitor_names),
            signals=_signals_json(signals),
            sources=json.dumps(sources),
            total_signals=count_signals(signals),
        )

        try:
            analysis = await structured_call(
                self.client,
                prompt,
                name="report",
                system=SYSTEM_PROMPT,
                tier="premium" if premium else "standard",
                max_tokens=6000,
                required_keys=("executive_summary", "competitors"),
            )
        except StructuredOutputError as e:
            raise ReportGenerationError(
                f"Failed to generate competitive intelligence summary: {e}"
            ) from e

        return json.dumps(analysis, indent=2)

    async def fast_preview(
        self,
        signals: List[CompetitorSignal],
        competitor_names: List[str],
    ) -> Optional[Dict[str, Any]]:
        """Short preview on the fast tier; None when it cannot be produced."""
        trimmed = [
            CompetitorSignal(
                source=signal.source,
                competitor=signal.competitor,
                items=signal.items[:PREVIEW_ITEMS_PER_SOURCE],
            )
            for signal in signals
        ]
        prompt = PREVIEW_PROMPT.format(
            competitors=", ".join(competitor_names),
            signals=_signals_json(trimmed),
        )
        return await structured_call(
            self.client,
            prompt,
            name="preview",
            system=SYSTEM_PROMPT,
            tier="fast",
            max_tokens=1200,
            required_keys=("executive_summary",),
            fallback=None,
        )
