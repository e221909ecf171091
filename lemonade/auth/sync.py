"""
User Synchronization

Syncs user data from verified token claims to the local database on access.
"""

import logging
from typing import Dict, Any, List, Optional

from sqlalchemy.orm import Session

from lemonade.auth.models import User, UserPlan
from lemonade.auth.jwt import extract_user_info
from lemonade.database.models import utcnow

logger = logging.getLogger(__name__)


def sync_user_from_token(db: Session, jwt_payload: Dict[str, Any]) -> User:
    """
    Sync user from a verified JWT payload to the local database.

    Creates the user on first access, updates claims on later ones.
    """
    user_info = extract_user_info(jwt_payload)
    user = db.query(User).filter(User.id == user_info["id"]).first()

    if user is None:
        logger.info(f"Creating new user: {user_info['email']}")
        user = User(
            id=user_info["id"],
            email=user_info["email"],
            full_name=user_info.get("full_name"),
            plan=UserPlan.FREE.value,
            is_active=True,
            last_sign_in_at=utcnow(),
        )
        db.add(user)
    else:
        user.email = user_info["email"] or user.email
        user.full_name = user_info.get("full_name") or user.full_name
        user.last_sign_in_at = utcnow()

    db.commit()
    db.refresh(user)
    return user


def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
    """Get user by ID."""
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Get user by email."""
    return db.query(User).filter(User.email == email).first()


def list_premium_users(db: Session) -> List[User]:
    """Active premium users (newsletter recipients)."""
    return (
        db.query(User)
        .filter(User.plan == UserPlan.PREMIUM.value, User.is_active.is_(True))
        .all()
    )
