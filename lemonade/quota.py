"""
Usage Quotas

Daily analysis counters per identity, kept in the rate_limits table.

The counter row is locked for the whole check-and-increment (SELECT ... FOR
UPDATE on PostgreSQL), so two concurrent requests cannot both spend the last
allowed query. rate_limits is the only source of truth; the users row gets a
display copy in the same transaction.

Signed-in counters reset when the stored reset date is before today (UTC).
Guest counters never reset: a guest session gets its allowance once.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lemonade.auth.identity import Identity
from lemonade.auth.models import User
from lemonade.config import get_settings
from lemonade.database.models import RateLimit, utcnow
from lemonade.database.repository import get_rate_limit

logger = logging.getLogger(__name__)


@dataclass
class QuotaDecision:
    """Outcome of a quota check."""
    allowed: bool
    current: int
    limit: int
    is_guest: bool = False

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.current)


class QuotaExceededError(Exception):
    """The identity has used its allowance."""

    def __init__(self, decision: QuotaDecision):
        if decision.is_guest:
            message = "Free search used. Sign up to run more analyses."
        else:
            message = "Daily query limit exceeded. Please try again tomorrow."
        super().__init__(message)
        self.decision = decision

    @property
    def limit(self) -> int:
        return self.decision.limit

    @property
    def current(self) -> int:
        return self.decision.current


def next_reset_time(now: Optional[datetime] = None) -> datetime:
    """Next UTC midnight."""
    now = now or utcnow()
    return now.replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=1)


class QuotaService:
    """
    Usage:
        quota = QuotaService(db)
        decision = quota.check_and_increment(identity)
        if not decision.allowed:
            ...
    """

    def __init__(self, db: Session, settings=None, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.settings = settings or get_settings()
        self.clock = clock

    def limit_for(self, identity: Identity) -> int:
        return self.settings.daily_limit_for(identity.plan, is_guest=identity.is_guest)

    def _needs_reset(self, row: RateLimit, identity: Identity, now: datetime) -> bool:
        if identity.is_guest or row.last_reset is None:
            return False
        return row.last_reset.date() < now.date()

    def _locked_row(self, identity: Identity, now: datetime) -> RateLimit:
        """The identity's counter row, locked; created on first use."""
        row = get_rate_limit(self.db, identity.user_id, identity.session_id, for_update=True)
        if row is not None:
            return row

        row = RateLimit(
            user_id=identity.user_id,
            session_id=identity.session_id,
            query_count=0,
            last_reset=now,
        )
        self.db.add(row)
        try:
            self.db.flush()
        except IntegrityError:
            # A concurrent request created it first
            self.db.rollback()
            row = get_rate_limit(self.db, identity.user_id, identity.session_id, for_update=True)
        return row

    def _mirror(self, identity: Identity, row: RateLimit) -> None:
        if identity.user_id is None:
            return
        user = self.db.get(User, identity.user_id)
        if user is not None:
            user.daily_query_count = row.query_count
            user.last_query_date = row.last_reset

    def check_and_increment(self, identity: Identity) -> QuotaDecision:
        """
        Spend one query if the identity has one left.

        Returns:
            QuotaDecision; allowed=False leaves the counter untouched
        """
        now = self.clock()
        limit = self.limit_for(identity)

        try:
            row = self._locked_row(identity, now)
            if self._needs_reset(row, identity, now):
                row.query_count = 0
                row.last_reset = now

            if row.query_count >= limit:
                decision = QuotaDecision(False, row.query_count, limit, identity.is_guest)
                self._mirror(identity, row)
                self.db.commit()
                logger.info(f"Quota denied for {identity.key}: {row.query_count}/{limit}")
                return decision

            row.query_count += 1
            self._mirror(identity, row)
            decision = QuotaDecision(True, row.query_count, limit, identity.is_guest)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return decision

    def enforce(self, identity: Identity) -> QuotaDecision:
        """check_and_increment that raises QuotaExceededError on denial."""
        decision = self.check_and_increment(identity)
        if not decision.allowed:
            raise QuotaExceededError(decision)
        return decision

    def release(self, identity: Identity) -> None:
        """Give back a query whose analysis failed."""
        try:
            row = get_rate_limit(self.db, identity.user_id, identity.session_id, for_update=True)
            if row is not None and row.query_count > 0:
                row.query_count -= 1
                self._mirror(identity, row)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def usage(self, identity: Identity) -> QuotaDecision:
        """Current standing without spending anything."""
        now = self.clock()
        limit = self.limit_for(identity)
        row = get_rate_limit(self.db, identity.user_id, identity.session_id)

        current = 0
        if row is not None and not self._needs_reset(row, identity, now):
            current = row.query_count
        return QuotaDecision(current < limit, current, limit, identity.is_guest)
