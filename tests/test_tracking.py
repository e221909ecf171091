"""
Tracked Competitor Tests

Watch-list add/remove with canonical duplicate detection and per-item cap
handling.
"""

import pytest

from lemonade.auth.models import UserPlan
from lemonade.database.models import TrackedCompetitor
from lemonade.tracking import ADDED, DUPLICATE, INVALID, LIMIT_REACHED, TrackedCompetitorService


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def service(db):
    return TrackedCompetitorService(db)


class TestAddMany:
    """Tests for batch tracking."""

    def test_canonical_variants_tracked_once(self, db, service, user):
        results = service.add_many(user.id, user.plan, ["OpenAI", "https://www.openai.com/blog", "openai.com"])

        assert [r.status for r in results] == [ADDED, DUPLICATE, DUPLICATE]
        assert db.query(TrackedCompetitor).count() == 1

    def test_duplicate_of_existing_entry(self, service, user):
        service.add(user.id, user.plan, "Acme")
        result = service.add(user.id, user.plan, "acme.com")

        assert result.status == DUPLICATE
        assert len(service.list(user.id)) == 1

    def test_cap_rejects_per_item(self, service, user):
        names = ["Acme", "Beta", "Gamma", "Delta", "Epsilon", "Zeta", "Acme"]
        results = service.add_many(user.id, user.plan, names)

        assert [r.status for r in results] == [ADDED] * 5 + [LIMIT_REACHED, DUPLICATE]
        assert len(service.list(user.id)) == 5

    def test_premium_cap(self, service, make_user):
        premium = make_user("premium-1", "p@test.com", UserPlan.PREMIUM.value)
        results = service.add_many(premium.id, premium.plan, [f"Company {i}" for i in range(30)])

        assert sum(1 for r in results if r.added) == 25
        assert service.limit_for(premium.plan) == 25

    def test_blank_names_invalid(self, service, user):
        results = service.add_many(user.id, user.plan, ["  ", "!!!", "Acme"])
        assert [r.status for r in results] == [INVALID, INVALID, ADDED]

    def test_result_dict(self, service, user):
        result = service.add(user.id, user.plan, "  Acme  ")
        data = result.to_dict()

        assert data["status"] == "added"
        assert data["competitor"]["competitorName"] == "Acme"
        assert data["competitor"]["isActive"] is True


class TestRemove:
    """Tests for soft delete and maintenance clear."""

    def test_soft_delete_frees_slot(self, db, service, user):
        tracked = service.add(user.id, user.plan, "Acme").competitor

        assert service.remove(user.id, tracked.id)
        assert service.list(user.id) == []

        row = db.get(TrackedCompetitor, tracked.id)
        db.refresh(row)
        assert row.is_active is False

        # Re-adding after removal creates a fresh entry
        assert service.add(user.id, user.plan, "Acme").status == ADDED

    def test_remove_other_users_entry(self, service, user, make_user):
        other = make_user("user-2", "other@test.com")
        tracked = service.add(other.id, other.plan, "Acme").competitor

        assert not service.remove(user.id, tracked.id)
        assert len(service.list(other.id)) == 1

    def test_remove_unknown_id(self, service, user):
        assert not service.remove(user.id, "not-a-uuid")

    def test_clear_all_hard_deletes(self, db, service, user):
        service.add_many(user.id, user.plan, ["Acme", "Beta"])
        service.remove(user.id, service.list(user.id)[0].id)

        assert service.clear_all(user.id) == 2
        assert db.query(TrackedCompetitor).count() == 0

    def test_mark_analyzed(self, db, service, user):
        service.add_many(user.id, user.plan, ["Acme", "Beta"])
        tracked = service.list(user.id)

        service.mark_analyzed(user.id, tracked)

        for row in tracked:
            db.refresh(row)
            assert row.last_analyzed_at is not None
