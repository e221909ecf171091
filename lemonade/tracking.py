"""
Tracked Competitors

Watch-list management. Names are matched by canonical identity, so
"OpenAI" and "https://www.openai.com/blog" are the same entry. Every name in
a batch gets its own outcome; hitting the cap rejects only the names past it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from lemonade.config import get_settings
from lemonade.database.models import TrackedCompetitor
from lemonade.database import repository
from lemonade.signals.aggregator import canonicalize

logger = logging.getLogger(__name__)

ADDED = "added"
DUPLICATE = "duplicate"
LIMIT_REACHED = "limit_reached"
INVALID = "invalid"


@dataclass
class TrackResult:
    """Outcome for one submitted name."""
    name: str
    status: str
    competitor: Optional[TrackedCompetitor] = None

    @property
    def added(self) -> bool:
        return self.status == ADDED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "competitorName": self.name,
            "status": self.status,
            "competitor": self.competitor.to_dict() if self.competitor else None,
        }


class TrackedCompetitorService:
    """
    Usage:
        service = TrackedCompetitorService(db)
        results = service.add_many(user.id, user.plan, ["Acme", "acme.com"])
        # -> [added, duplicate]
    """

    def __init__(self, db: Session, settings=None):
        self.db = db
        self.settings = settings or get_settings()

    def limit_for(self, plan: Optional[str]) -> int:
        return self.settings.tracked_limit_for(plan)

    def list(self, user_id: str) -> List[TrackedCompetitor]:
        return repository.get_tracked_competitors(self.db, user_id)

    def add_many(self, user_id: str, plan: Optional[str], names: Iterable[str]) -> List[TrackResult]:
        """Track each name unless invalid, already tracked, or over the cap."""
        active = repository.get_tracked_competitors(self.db, user_id)
        known = {canonicalize(c.competitor_name) for c in active}
        count = len(active)
        limit = self.limit_for(plan)

        results = []
        for raw in names:
            name = (raw or "").strip()
            canon = canonicalize(name)

            if not name or not canon:
                results.append(TrackResult(name, INVALID))
            elif canon in known:
                results.append(TrackResult(name, DUPLICATE))
            elif count >= limit:
                results.append(TrackResult(name, LIMIT_REACHED))
            else:
                tracked = repository.add_tracked_competitor(self.db, user_id, name)
                known.add(canon)
                count += 1
                results.append(TrackResult(name, ADDED, tracked))

        self.db.commit()

        added = sum(1 for r in results if r.added)
        if added:
            logger.info(f"Tracked {added} competitors for user {user_id} ({count}/{limit})")
        return results

    def add(self, user_id: str, plan: Optional[str], name: str) -> TrackResult:
        return self.add_many(user_id, plan, [name])[0]

    def remove(self, user_id: str, competitor_id) -> bool:
        """Soft delete."""
        return repository.deactivate_tracked_competitor(self.db, user_id, competitor_id)

    def mark_analyzed(self, user_id: str, competitors: List[TrackedCompetitor]) -> None:
        repository.mark_competitors_analyzed(self.db, user_id, [c.id for c in competitors])

    def clear_all(self, user_id: str) -> int:
        """Hard delete every row for the user (maintenance)."""
        return repository.clear_all_tracked_competitors(self.db, user_id)
