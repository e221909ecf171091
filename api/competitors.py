"""
Tracked Competitors API

Endpoints:
- GET /api/competitors/tracked - Active watch-list with count and plan limit
- POST /api/competitors/tracked - Track one name or a batch
- DELETE /api/competitors/tracked/{competitor_id} - Stop tracking (soft delete)
- POST /api/competitors/tracked/analyze - Analyze the whole watch-list
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from lemonade.auth.dependencies import get_current_user
from lemonade.auth.identity import Identity
from lemonade.auth.models import User
from lemonade.database.session import get_db
from lemonade.pipeline import AnalysisPipeline, AnalysisRequest
from lemonade.signals import SignalSources, split_competitors
from lemonade.tracking import TrackedCompetitorService

from api.dependencies import get_pipeline

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/competitors/tracked",
    tags=["Tracked Competitors"],
    dependencies=[Depends(get_current_user)],  # All endpoints require authentication
)


class TrackRequest(BaseModel):
    """One name or a batch of names."""
    competitorName: Optional[str] = Field(None, max_length=255)
    competitorNames: Optional[List[str]] = None


def _watch_list(service: TrackedCompetitorService, user: User) -> dict:
    tracked = service.list(user.id)
    return {
        "competitors": [c.to_dict() for c in tracked],
        "count": len(tracked),
        "limit": service.limit_for(user.plan),
    }


@router.get("")
def list_tracked(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get the current user's watch-list."""
    return _watch_list(TrackedCompetitorService(db), current_user)


@router.post("")
def track_competitors(
    request: TrackRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Track competitors.

    Each name gets its own status (added, duplicate, limit_reached, invalid);
    one rejected name never blocks the rest of the batch.
    """
    names = list(request.competitorNames or [])
    if request.competitorName is not None:
        names.insert(0, request.competitorName)
    if not names:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="competitorName or competitorNames is required",
        )

    service = TrackedCompetitorService(db)
    results = service.add_many(current_user.id, current_user.plan, names)

    response = _watch_list(service, current_user)
    response["results"] = [r.to_dict() for r in results]
    return response


@router.delete("/{competitor_id}")
def untrack_competitor(
    competitor_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Stop tracking a competitor."""
    if not TrackedCompetitorService(db).remove(current_user.id, competitor_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tracked competitor not found")
    return {"success": True, "id": competitor_id}


@router.post("/analyze")
async def analyze_tracked(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
):
    """Run an analysis over every tracked competitor with the default sources."""
    service = TrackedCompetitorService(db)
    tracked = service.list(current_user.id)
    if not tracked:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No tracked competitors to analyze")

    names = split_competitors(names=[c.competitor_name for c in tracked])
    outcome = await pipeline.run(
        Identity.for_user(current_user),
        AnalysisRequest(competitors=names, sources=SignalSources()),
    )
    service.mark_analyzed(current_user.id, tracked)

    logger.info(f"Analyzed {len(names)} tracked competitors for user {current_user.id}")
    return outcome.to_dict()
