"""
SQLAlchemy Models for Competitor Lemonade

Design Principles:
1. Reports are immutable snapshots (signals + summary stored together)
2. Watch-list rows are soft-deleted, never reused
3. One usage counter per identity (user or guest session)

Portable across PostgreSQL (production) and SQLite (local development, tests).
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text,
    ForeignKey, Index, CheckConstraint, JSON, Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns below."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# CORE TABLES
# =============================================================================

class CompetitorReport(Base):
    """One completed analysis - created once, never updated"""
    __tablename__ = "competitor_reports"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(String(255), ForeignKey("users.id"), nullable=True)
    session_id = Column(String(128), nullable=True)  # Guest reports

    title = Column(Text, nullable=False)
    competitors = Column(JSONType, nullable=False)  # List of names as submitted
    signals = Column(JSONType, nullable=False)      # List of CompetitorSignal dicts
    summary = Column(Text, nullable=False)          # JSON-serialized analysis
    metadata_ = Column("metadata", JSONType, nullable=False, default=dict)

    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="reports")

    __table_args__ = (
        Index("idx_report_user_created", "user_id", "created_at"),
        Index("idx_report_session", "session_id"),
    )

    def to_dict(self) -> dict:
        """API representation."""
        return {
            "id": str(self.id),
            "userId": self.user_id,
            "title": self.title,
            "competitors": self.competitors,
            "signals": self.signals,
            "summary": self.summary,
            "metadata": self.metadata_,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class TrackedCompetitor(Base):
    """Watch-list entry owned by one user"""
    __tablename__ = "tracked_competitors"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(String(255), ForeignKey("users.id"), nullable=False)
    competitor_name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    added_at = Column(DateTime, default=utcnow)
    last_analyzed_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="tracked_competitors")

    __table_args__ = (
        Index("idx_tracked_user_active", "user_id", "is_active"),
    )

    def to_dict(self) -> dict:
        """API representation."""
        return {
            "id": str(self.id),
            "userId": self.user_id,
            "competitorName": self.competitor_name,
            "isActive": self.is_active,
            "addedAt": self.added_at.isoformat() if self.added_at else None,
            "lastAnalyzedAt": self.last_analyzed_at.isoformat() if self.last_analyzed_at else None,
        }


class RateLimit(Base):
    """Daily usage counter - exactly one of user_id / session_id is set"""
    __tablename__ = "rate_limits"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(String(255), ForeignKey("users.id"), unique=True, nullable=True)
    session_id = Column(String(128), unique=True, nullable=True)
    query_count = Column(Integer, default=0, nullable=False)
    last_reset = Column(DateTime, default=utcnow, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        CheckConstraint(
            "(user_id IS NULL) <> (session_id IS NULL)",
            name="ck_rate_limit_one_identity",
        ),
    )


class GuestSession(Base):
    """Browser session for unauthenticated visitors"""
    __tablename__ = "sessions"

    sid = Column(String(128), primary_key=True)
    sess = Column(JSONType, nullable=False, default=dict)
    expire = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_session_expire", "expire"),
    )
