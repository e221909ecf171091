"""
Analysis Pipeline

One analysis request, in order:
1. validate the competitor list
2. spend one query (rejected requests stop here, before any fetch)
3. aggregate signals for every competitor concurrently
4. fast preview, then the full report
5. persist the report, then auto-track for signed-in users

A failed report gives the query back.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from lemonade.analysis.client import LLMClient
from lemonade.analysis.summarizer import ReportSummarizer, count_signals
from lemonade.auth.identity import Identity
from lemonade.cache.signal_cache import get_signal_cache
from lemonade.config import get_settings
from lemonade.database.models import CompetitorReport
from lemonade.database.repository import create_report
from lemonade.quota import QuotaService
from lemonade.signals.aggregator import SignalAggregator
from lemonade.signals.models import SignalSources
from lemonade.tracking import TrackedCompetitorService, TrackResult

logger = logging.getLogger(__name__)


class InvalidAnalysisRequest(Exception):
    """The request cannot be analyzed as submitted."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or []


@dataclass
class AnalysisRequest:
    competitors: List[str]
    sources: SignalSources = field(default_factory=SignalSources)
    auto_track: bool = False
    nocache: bool = False


@dataclass
class AnalysisOutcome:
    report: CompetitorReport
    tracked: List[TrackResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = self.report.to_dict()
        if self.tracked:
            data["autoTracked"] = [result.to_dict() for result in self.tracked]
        return data


def report_title(names: List[str]) -> str:
    """'A, B +N more Analysis'"""
    title = ", ".join(names[:2])
    if len(names) > 2:
        title += f" +{len(names) - 2} more"
    return f"{title} Analysis"


class AnalysisPipeline:
    """
    Usage:
        pipeline = AnalysisPipeline(db)
        outcome = await pipeline.run(identity, AnalysisRequest(["Acme", "Beta"]))
    """

    def __init__(
        self,
        db: Session,
        aggregator: Optional[SignalAggregator] = None,
        summarizer: Optional[ReportSummarizer] = None,
        quota: Optional[QuotaService] = None,
        tracking: Optional[TrackedCompetitorService] = None,
        settings=None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.aggregator = aggregator or SignalAggregator(cache=get_signal_cache())
        self.summarizer = summarizer or ReportSummarizer(LLMClient())
        self.quota = quota or QuotaService(db, settings=self.settings)
        self.tracking = tracking or TrackedCompetitorService(db, settings=self.settings)

    def validate(self, identity: Identity, request: AnalysisRequest) -> None:
        if not request.competitors:
            raise InvalidAnalysisRequest(
                "Please enter at least one competitor",
                ["competitors: at least one name is required"],
            )
        if not request.sources.enabled():
            raise InvalidAnalysisRequest(
                "Please select at least one signal source",
                ["sources: at least one source must be enabled"],
            )

        limit = self.settings.tracked_limit_for(identity.plan)
        if len(request.competitors) > limit:
            raise InvalidAnalysisRequest(
                f"You can analyze up to {limit} competitors with your current plan.",
                [f"competitors: {len(request.competitors)} requested, limit is {limit}"],
            )

    async def run(self, identity: Identity, request: AnalysisRequest) -> AnalysisOutcome:
        """
        Raises:
            InvalidAnalysisRequest: Bad competitor list or sources
            QuotaExceededError: No queries left
            ReportGenerationError: The report could not be generated

        Any failure while gathering signals or generating the report refunds
        the query before propagating.
        """
        self.validate(identity, request)
        self.quota.enforce(identity)

        names = request.competitors
        logger.info(f"Analyzing {len(names)} competitors for {identity.key}")

        try:
            aggregation = await self.aggregator.aggregate(names, request.sources, nocache=request.nocache)
            signals = aggregation.signals
            preview = await self.summarizer.fast_preview(signals, names)
            summary = await self.summarizer.summarize(signals, names, premium=identity.is_premium)
        except Exception:
            self.quota.release(identity)
            raise

        total = count_signals(signals)
        metadata = {
            "total_signals": total,
            "signalCount": total,
            "sources": request.sources.enabled(),
            "generatedAt": datetime.now(timezone.utc).isoformat(),
            "premium": identity.is_premium,
            "preview": preview,
            "unavailableSources": aggregation.unavailable,
        }

        report = create_report(
            self.db,
            title=report_title(names),
            competitors=names,
            signals=[signal.to_dict() for signal in signals],
            summary=summary,
            metadata=metadata,
            user_id=identity.user_id,
            session_id=identity.session_id,
        )

        tracked = []
        if request.auto_track and not identity.is_guest:
            tracked = self.tracking.add_many(identity.user_id, identity.plan, names)

        return AnalysisOutcome(report=report, tracked=tracked)
