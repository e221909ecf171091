"""
Repository Layer - Clean Interface for Data Operations

Provides simple functions to store and retrieve data.
Handles all SQLAlchemy complexity internally.

Every function takes the caller's session; committing is the caller's job
unless the docstring says otherwise.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Dict, Any, Optional, Iterable
from uuid import UUID

from sqlalchemy import func, delete, update
from sqlalchemy.orm import Session

from .models import (
    CompetitorReport, TrackedCompetitor, RateLimit, GuestSession, utcnow,
)

logger = logging.getLogger(__name__)


def _as_uuid(value) -> Optional[UUID]:
    """Parse a UUID path parameter; None when malformed."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (ValueError, TypeError):
        return None


# =============================================================================
# REPORTS
# =============================================================================

def create_report(
    db: Session,
    title: str,
    competitors: List[str],
    signals: List[Dict[str, Any]],
    summary: str,
    metadata: Dict[str, Any],
    user_id: Optional[str] = None,
    session_id: Optional[str] = None,
) -> CompetitorReport:
    """
    Store a completed analysis.

    Reports belong to a user, or to a guest session when user_id is None.
    Commits immediately - a report is the request's primary output.
    """
    if not user_id and not session_id:
        raise ValueError("Either user_id or session_id must be provided")

    report = CompetitorReport(
        user_id=user_id,
        session_id=None if user_id else session_id,
        title=title,
        competitors=list(competitors),
        signals=signals,
        summary=summary,
        metadata_=metadata,
    )
    db.add(report)
    db.commit()
    db.refresh(report)

    logger.info(f"Stored report {report.id} ({len(competitors)} competitors)")
    return report


def get_report(db: Session, report_id) -> Optional[CompetitorReport]:
    """Get report by ID."""
    rid = _as_uuid(report_id)
    if rid is None:
        return None
    return db.query(CompetitorReport).filter(CompetitorReport.id == rid).first()


def list_user_reports(db: Session, user_id: str, limit: int = 20) -> List[CompetitorReport]:
    """Report history, newest first."""
    return (
        db.query(CompetitorReport)
        .filter(CompetitorReport.user_id == user_id)
        .order_by(CompetitorReport.created_at.desc())
        .limit(limit)
        .all()
    )


# =============================================================================
# TRACKED COMPETITORS
# =============================================================================

def get_tracked_competitors(db: Session, user_id: str) -> List[TrackedCompetitor]:
    """Active watch-list entries, most recently added first."""
    return (
        db.query(TrackedCompetitor)
        .filter(
            TrackedCompetitor.user_id == user_id,
            TrackedCompetitor.is_active.is_(True),
        )
        .order_by(TrackedCompetitor.added_at.desc())
        .all()
    )


def count_tracked_competitors(db: Session, user_id: str) -> int:
    """Number of active watch-list entries."""
    return (
        db.query(func.count(TrackedCompetitor.id))
        .filter(
            TrackedCompetitor.user_id == user_id,
            TrackedCompetitor.is_active.is_(True),
        )
        .scalar()
        or 0
    )


def add_tracked_competitor(db: Session, user_id: str, competitor_name: str) -> TrackedCompetitor:
    """Insert a watch-list entry (caller checks duplicates and the cap)."""
    tracked = TrackedCompetitor(
        user_id=user_id,
        competitor_name=competitor_name.strip(),
        is_active=True,
    )
    db.add(tracked)
    db.flush()
    return tracked


def deactivate_tracked_competitor(db: Session, user_id: str, competitor_id) -> bool:
    """
    Soft-delete a watch-list entry.

    Returns:
        True if an active entry owned by the user was deactivated
    """
    cid = _as_uuid(competitor_id)
    if cid is None:
        return False

    result = db.execute(
        update(TrackedCompetitor)
        .where(
            TrackedCompetitor.user_id == user_id,
            TrackedCompetitor.id == cid,
            TrackedCompetitor.is_active.is_(True),
        )
        .values(is_active=False)
    )
    db.commit()
    return result.rowcount > 0


def clear_all_tracked_competitors(db: Session, user_id: str) -> int:
    """
    Hard-delete every watch-list row for a user (maintenance only).

    Returns:
        Number of rows removed
    """
    result = db.execute(
        delete(TrackedCompetitor).where(TrackedCompetitor.user_id == user_id)
    )
    db.commit()
    logger.warning(f"Cleared {result.rowcount} tracked competitors for user {user_id}")
    return result.rowcount


def mark_competitors_analyzed(
    db: Session,
    user_id: str,
    competitor_ids: Iterable,
    when: Optional[datetime] = None,
) -> None:
    """Stamp last_analyzed_at on watch-list entries."""
    ids = [cid for cid in (_as_uuid(c) for c in competitor_ids) if cid is not None]
    if not ids:
        return
    db.execute(
        update(TrackedCompetitor)
        .where(TrackedCompetitor.user_id == user_id, TrackedCompetitor.id.in_(ids))
        .values(last_analyzed_at=when or utcnow())
    )
    db.commit()


# =============================================================================
# RATE LIMITS
# =============================================================================

def get_rate_limit(
    db: Session,
    user_id: Optional[str] = None,
    session_id: Optional[str] = None,
    for_update: bool = False,
) -> Optional[RateLimit]:
    """
    Get the usage counter row for an identity.

    Args:
        for_update: Lock the row until the transaction ends (PostgreSQL)
    """
    query = db.query(RateLimit)
    if user_id:
        query = query.filter(RateLimit.user_id == user_id)
    elif session_id:
        query = query.filter(RateLimit.session_id == session_id)
    else:
        return None

    if for_update:
        query = query.with_for_update()
    return query.first()


# =============================================================================
# GUEST SESSIONS
# =============================================================================

def touch_guest_session(db: Session, sid: str, ttl_days: int = 7) -> GuestSession:
    """Create the session row if missing and push its expiry forward."""
    expire = utcnow() + timedelta(days=ttl_days)
    session_row = db.query(GuestSession).filter(GuestSession.sid == sid).first()
    if session_row is None:
        session_row = GuestSession(sid=sid, sess={}, expire=expire)
        db.add(session_row)
    else:
        session_row.expire = expire
    db.commit()
    return session_row

