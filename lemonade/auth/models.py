"""
Authentication Models

User model and plan enum for Competitor Lemonade authentication.
These are added to the main database alongside the report tables.
"""

import enum

from sqlalchemy import (
    Column, String, Boolean, DateTime, Integer, Index
)
from sqlalchemy.orm import relationship

from lemonade.database.models import Base, utcnow


class UserPlan(enum.Enum):
    """Subscription plan - decides quotas."""
    FREE = "free"
    PREMIUM = "premium"


class User(Base):
    """
    Local user record synced from the identity provider's JWT.

    The id is the token's `sub` claim.

    daily_query_count / last_query_date mirror the user's rate_limits row
    for quick display; they are written in the same transaction as the
    counter and never read for quota decisions.
    """
    __tablename__ = "users"

    id = Column(String(255), primary_key=True)

    # Basic info (synced from token claims)
    email = Column(String(255), unique=True, nullable=True)
    full_name = Column(String(255))

    # Plan (managed locally)
    plan = Column(String(20), default=UserPlan.FREE.value, nullable=False)

    # Usage mirror
    daily_query_count = Column(Integer, default=0, nullable=False)
    last_query_date = Column(DateTime, nullable=True)

    # Status
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    last_sign_in_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    reports = relationship("CompetitorReport", back_populates="user")
    tracked_competitors = relationship("TrackedCompetitor", back_populates="user")

    __table_args__ = (
        Index("idx_user_email", "email"),
    )

    @property
    def is_premium(self) -> bool:
        """Check if user is on the premium plan."""
        return self.plan == UserPlan.PREMIUM.value

    def __repr__(self):
        return f"<User {self.email} ({self.plan})>"
