"""
Newsletter Digest

For each premium user: fetch fresh signals for their watch-list, merge them
with what recent reports already said, and store a short digest report
(metadata.type = "newsletter_summary"), optionally emailing it.

A user who got a digest in the last two hours is skipped unless forced.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from lemonade.analysis.client import LLMClient, LLMUnavailableError
from lemonade.auth.models import User
from lemonade.auth.sync import get_user_by_email, list_premium_users
from lemonade.database.models import utcnow
from lemonade.database.repository import create_report, get_tracked_competitors, list_user_reports
from lemonade.delivery.email import EmailDelivery
from lemonade.signals.aggregator import SignalAggregator, canonicalize
from lemonade.signals.models import CompetitorSignal, SignalSources, SignalType

logger = logging.getLogger(__name__)

NEWSLETTER_TYPE = "newsletter_summary"
RECENT_WINDOW = timedelta(hours=2)
DIGEST_PERIOD = timedelta(days=14)
BULLETS_PER_BUCKET = 4
NO_UPDATES = "No major updates in this period; monitoring for changes"

DIGEST_SOURCES = SignalSources(news=True, funding=True, social=False, products=True)

BUCKETS = ("developments", "funding", "tech")
TYPE_BUCKET = {
    SignalType.NEWS: "developments",
    SignalType.FUNDING: "funding",
    SignalType.PRODUCT: "tech",
}

DIGEST_PROMPT = """Write a short competitor newsletter in Markdown for the period {start} to {end}.

One "## Company" section per tracked company, 2-4 bullets each. Prefer FRESH items;
use HISTORY only for context. Do not invent facts.

TRACKED COMPANIES: {companies}

FRESH:
{fresh}

HISTORY:
{history}
"""

Buckets = Dict[str, Dict[str, List[str]]]


@dataclass
class NewsletterResult:
    user_id: str
    report_id: Optional[str] = None
    skipped: Optional[str] = None
    emailed: bool = False


def _add(target: Buckets, name: str, bucket: str, lines: List[str]) -> None:
    lines = [str(line) for line in lines if line]
    if lines:
        target.setdefault(name, {}).setdefault(bucket, []).extend(lines)


def _trimmed(target: Buckets) -> Buckets:
    return {
        name: {bucket: lines[:BULLETS_PER_BUCKET] for bucket, lines in buckets.items() if lines}
        for name, buckets in target.items()
    }


def collect_fresh(signals: List[CompetitorSignal], names: List[str]) -> Buckets:
    """Titles of fresh items, bucketed by item type."""
    by_canon = {canonicalize(name): name for name in names}
    fresh: Buckets = {}
    for signal in signals:
        display = by_canon.get(canonicalize(signal.competitor))
        if display is None:
            continue
        for item in signal.items:
            bucket = TYPE_BUCKET.get(item.type)
            if bucket:
                _add(fresh, display, bucket, [item.title or item.content])
    return _trimmed(fresh)


def collect_history(summaries: List[str], names: List[str]) -> Buckets:
    """Bullets already written about each company in earlier reports."""
    by_canon = {canonicalize(name): name for name in names}
    history: Buckets = {}
    for summary in summaries:
        try:
            analysis = json.loads(summary)
        except (TypeError, ValueError):
            continue
        if not isinstance(analysis, dict):
            continue

        for insight in analysis.get("competitor_insights") or []:
            if isinstance(insight, dict):
                display = by_canon.get(canonicalize(insight.get("competitor", "")))
                if display:
                    _add(history, display, "developments", [insight.get("key_update")])

        for competitor in analysis.get("competitors") or []:
            if not isinstance(competitor, dict):
                continue
            display = by_canon.get(canonicalize(competitor.get("competitor", "")))
            if display:
                _add(history, display, "developments", competitor.get("recent_developments") or [])
                _add(history, display, "funding", competitor.get("funding_business") or [])
    return _trimmed(history)


def render_digest(names: List[str], fresh: Buckets, history: Buckets) -> str:
    """Plain Markdown digest, used when no LLM is available."""
    sections = []
    for name in names:
        lines = []
        for source in (fresh.get(name, {}), history.get(name, {})):
            for bucket in BUCKETS:
                lines.extend(source.get(bucket, []))
        bullets = lines[:BULLETS_PER_BUCKET] or [NO_UPDATES]
        sections.append(f"## {name}\n" + "\n".join(f"- {line}" for line in bullets))
    return "\n\n".join(sections)


class NewsletterService:
    """
    Usage:
        service = NewsletterService(db)
        results = await service.run(force=False)
    """

    def __init__(
        self,
        db: Session,
        aggregator: Optional[SignalAggregator] = None,
        client: Optional[LLMClient] = None,
        email: Optional[EmailDelivery] = None,
    ):
        self.db = db
        self.aggregator = aggregator or SignalAggregator()
        self.client = client
        self.email = email

    def has_recent_digest(self, user_id: str, now: Optional[datetime] = None) -> bool:
        cutoff = (now or utcnow()) - RECENT_WINDOW
        for report in list_user_reports(self.db, user_id, limit=5):
            if (report.metadata_ or {}).get("type") == NEWSLETTER_TYPE and report.created_at >= cutoff:
                return True
        return False

    async def write_digest(self, names: List[str], fresh: Buckets, history: Buckets) -> str:
        end = datetime.now(timezone.utc)
        prompt = DIGEST_PROMPT.format(
            start=(end - DIGEST_PERIOD).date().isoformat(),
            end=end.date().isoformat(),
            companies=", ".join(names),
            fresh=json.dumps(fresh, indent=2),
            history=json.dumps(history, indent=2),
        )
        if self.client is not None:
            try:
                response = await self.client.complete(prompt, tier="fast", max_tokens=1500)
            except LLMUnavailableError as e:
                logger.warning(f"Digest LLM unavailable: {e}")
            else:
                if response.success and response.content.strip():
                    return response.content.strip()
                logger.warning(f"Digest LLM call failed: {response.error}")
        return render_digest(names, fresh, history)

    async def run_for_user(self, user: User, force: bool = False, send_email: bool = True) -> NewsletterResult:
        tracked = get_tracked_competitors(self.db, user.id)
        if not tracked:
            return NewsletterResult(user.id, skipped="no_tracked_competitors")
        if not force and self.has_recent_digest(user.id):
            return NewsletterResult(user.id, skipped="recent_newsletter_exists")

        names = [t.competitor_name for t in tracked]
        aggregation = await self.aggregator.aggregate(names, DIGEST_SOURCES)
        fresh = collect_fresh(aggregation.signals, names)
        history = collect_history(
            [r.summary for r in list_user_reports(self.db, user.id, limit=25)], names
        )
        digest = await self.write_digest(names, fresh, history)

        report = create_report(
            self.db,
            title=f"Quick Summary (Newsletter) - {datetime.now(timezone.utc).date().isoformat()}",
            competitors=names,
            signals=[],
            summary=digest,
            metadata={
                "type": NEWSLETTER_TYPE,
                "generatedAt": datetime.now(timezone.utc).isoformat(),
                "competitorCount": len(names),
                "canonicalKey": "tracked_qs:" + "|".join(sorted(canonicalize(n) for n in names)),
                "sources": DIGEST_SOURCES.enabled(),
            },
            user_id=user.id,
        )
        result = NewsletterResult(user.id, report_id=str(report.id))

        if send_email and self.email is not None and user.email:
            sent = await self.email.send_report(user.email, report.title, digest, names)
            result.emailed = sent.success
        return result

    async def run(self, force: bool = False, test_email: Optional[str] = None,
                  send_email: bool = True) -> List[NewsletterResult]:
        """Digest every premium user (or only `test_email`)."""
        if test_email:
            user = get_user_by_email(self.db, test_email)
            users = [user] if user else []
        else:
            users = list_premium_users(self.db)

        results = []
        for user in users:
            try:
                result = await self.run_for_user(user, force=force, send_email=send_email)
            except Exception as e:
                logger.error(f"Newsletter failed for user {user.id}: {e}")
                self.db.rollback()
                result = NewsletterResult(user.id, skipped="error")
            logger.info(f"Newsletter user={user.id}: {result.skipped or result.report_id}")
            results.append(result)
        return results
