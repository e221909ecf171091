"""
User Profile API

Endpoints:
- GET /api/users/me - Current user profile with usage and watch-list size
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from lemonade.auth.identity import Identity
from lemonade.auth.models import User
from lemonade.auth.dependencies import get_current_user
from lemonade.config import get_settings
from lemonade.database.repository import count_tracked_competitors
from lemonade.database.session import get_db
from lemonade.quota import QuotaService, next_reset_time

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/users",
    tags=["Users"],
    dependencies=[Depends(get_current_user)],  # All endpoints require authentication
)


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class UsageResponse(BaseModel):
    """Query usage for today."""
    current: int
    limit: int
    remaining: int
    resetTime: datetime


class UserResponse(BaseModel):
    """User profile response."""
    id: str
    email: Optional[str]
    full_name: Optional[str]
    plan: str
    is_active: bool
    tracked_count: int = 0
    tracked_limit: int = 0
    usage: UsageResponse
    created_at: Optional[datetime]
    last_sign_in_at: Optional[datetime]

    class Config:
        from_attributes = True


# =============================================================================
# USER PROFILE ENDPOINTS
# =============================================================================

@router.get("/me", response_model=UserResponse)
def get_current_user_profile(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Get the current authenticated user's profile.

    Usage numbers come from the quota counter, not the profile mirror.
    """
    decision = QuotaService(db).usage(Identity.for_user(current_user))

    return UserResponse(
        id=current_user.id,
        email=current_user.email,
        full_name=current_user.full_name,
        plan=current_user.plan,
        is_active=current_user.is_active,
        tracked_count=count_tracked_competitors(db, current_user.id),
        tracked_limit=get_settings().tracked_limit_for(current_user.plan),
        usage=UsageResponse(
            current=decision.current,
            limit=decision.limit,
            remaining=decision.remaining,
            resetTime=next_reset_time(),
        ),
        created_at=current_user.created_at,
        last_sign_in_at=current_user.last_sign_in_at,
    )
