"""
Quota Tests

Daily counters per user, lifetime counters per guest session, the reset
rule, and the users-row display mirror.
"""

from datetime import datetime, timedelta

import pytest

from lemonade.auth.identity import Identity
from lemonade.auth.models import User, UserPlan
from lemonade.database.models import RateLimit
from lemonade.quota import QuotaExceededError, QuotaService, next_reset_time

NOW = datetime(2026, 10, 19, 15, 30)


def at(moment: datetime):
    return lambda: moment


def seed_counter(db, identity: Identity, count: int, last_reset: datetime) -> RateLimit:
    row = RateLimit(
        user_id=identity.user_id,
        session_id=identity.session_id,
        query_count=count,
        last_reset=last_reset,
    )
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def user_identity(make_user):
    return Identity.for_user(make_user())


@pytest.fixture
def guest_identity():
    return Identity.for_session("guest-session-1")


class TestIdentity:
    """Tests for the identity value."""

    def test_exactly_one_key(self):
        with pytest.raises(ValueError):
            Identity()
        with pytest.raises(ValueError):
            Identity(user_id="u", session_id="s")

    def test_keys(self, user_identity, guest_identity):
        assert user_identity.key == "user:user-1"
        assert guest_identity.key == "session:guest-session-1"
        assert guest_identity.is_guest
        assert not user_identity.is_guest


class TestCheckAndIncrement:
    """Tests for spending queries."""

    def test_first_use_creates_counter(self, db, user_identity):
        decision = QuotaService(db, clock=at(NOW)).check_and_increment(user_identity)

        assert decision.allowed
        assert decision.current == 1
        assert decision.limit == 5
        assert db.query(RateLimit).filter_by(user_id="user-1").one().query_count == 1

    def test_limit_minus_one_reaches_limit_then_denied(self, db, user_identity):
        seed_counter(db, user_identity, 4, NOW)
        quota = QuotaService(db, clock=at(NOW))

        allowed = quota.check_and_increment(user_identity)
        denied = quota.check_and_increment(user_identity)

        assert allowed.allowed and allowed.current == 5
        assert not denied.allowed
        assert denied.current == 5
        assert denied.remaining == 0
        assert db.query(RateLimit).filter_by(user_id="user-1").one().query_count == 5

    def test_prior_day_resets_before_evaluation(self, db, user_identity):
        seed_counter(db, user_identity, 5, NOW - timedelta(days=1))

        decision = QuotaService(db, clock=at(NOW)).check_and_increment(user_identity)

        assert decision.allowed
        assert decision.current == 1
        row = db.query(RateLimit).filter_by(user_id="user-1").one()
        assert row.last_reset == NOW

    def test_same_day_earlier_does_not_reset(self, db, user_identity):
        seed_counter(db, user_identity, 5, NOW.replace(hour=0, minute=1))

        decision = QuotaService(db, clock=at(NOW)).check_and_increment(user_identity)

        assert not decision.allowed

    def test_premium_limit(self, db, make_user):
        identity = Identity.for_user(make_user("premium-1", "p@test.com", UserPlan.PREMIUM.value))
        seed_counter(db, identity, 49, NOW)

        assert QuotaService(db, clock=at(NOW)).check_and_increment(identity).allowed
        assert not QuotaService(db, clock=at(NOW)).check_and_increment(identity).allowed

    def test_guest_single_lifetime_query(self, db, guest_identity):
        quota = QuotaService(db, clock=at(NOW))

        assert quota.check_and_increment(guest_identity).allowed
        assert not quota.check_and_increment(guest_identity).allowed

        # Guest counters never roll over
        tomorrow = QuotaService(db, clock=at(NOW + timedelta(days=1)))
        assert not tomorrow.check_and_increment(guest_identity).allowed

        row = db.query(RateLimit).filter_by(session_id="guest-session-1").one()
        assert row.user_id is None

    def test_user_mirror_written(self, db, user_identity):
        QuotaService(db, clock=at(NOW)).check_and_increment(user_identity)
        QuotaService(db, clock=at(NOW)).check_and_increment(user_identity)

        user = db.get(User, "user-1")
        db.refresh(user)
        assert user.daily_query_count == 2
        assert user.last_query_date == NOW


class TestEnforceAndRelease:
    """Tests for the raising wrapper and refunds."""

    def test_enforce_raises_with_details(self, db, user_identity):
        seed_counter(db, user_identity, 5, NOW)

        with pytest.raises(QuotaExceededError) as exc_info:
            QuotaService(db, clock=at(NOW)).enforce(user_identity)

        assert exc_info.value.limit == 5
        assert exc_info.value.current == 5
        assert "Daily query limit exceeded" in str(exc_info.value)

    def test_guest_message_asks_for_signup(self, db, guest_identity):
        seed_counter(db, guest_identity, 1, NOW)

        with pytest.raises(QuotaExceededError, match="Sign up"):
            QuotaService(db, clock=at(NOW)).enforce(guest_identity)

    def test_release_gives_query_back(self, db, user_identity):
        quota = QuotaService(db, clock=at(NOW))
        quota.enforce(user_identity)
        quota.release(user_identity)

        assert quota.usage(user_identity).current == 0
        user = db.get(User, "user-1")
        db.refresh(user)
        assert user.daily_query_count == 0

    def test_release_never_goes_negative(self, db, user_identity):
        quota = QuotaService(db, clock=at(NOW))
        quota.release(user_identity)
        seed_counter(db, user_identity, 0, NOW)
        quota.release(user_identity)

        assert quota.usage(user_identity).current == 0


class TestUsage:
    """Tests for read-only usage."""

    def test_usage_does_not_spend(self, db, user_identity):
        seed_counter(db, user_identity, 2, NOW)
        quota = QuotaService(db, clock=at(NOW))

        first = quota.usage(user_identity)
        second = quota.usage(user_identity)

        assert first.current == second.current == 2
        assert first.remaining == 3

    def test_usage_reports_stale_counter_as_zero(self, db, user_identity):
        seed_counter(db, user_identity, 5, NOW - timedelta(days=2))
        decision = QuotaService(db, clock=at(NOW)).usage(user_identity)

        assert decision.current == 0
        assert decision.allowed

    def test_usage_without_row(self, db, guest_identity):
        decision = QuotaService(db, clock=at(NOW)).usage(guest_identity)
        assert decision.current == 0
        assert decision.limit == 1

    def test_next_reset_time(self):
        assert next_reset_time(NOW) == datetime(2026, 10, 20)
