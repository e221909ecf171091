"""
FastAPI Dependencies for Callers

get_current_user        - bearer token required (401 otherwise)
get_current_user_optional - User or None, never raises for a bad token
get_identity            - User if signed in, else the guest session cookie
"""

import logging
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from lemonade.database.session import get_db
from lemonade.database.repository import touch_guest_session
from lemonade.auth.models import User, UserPlan
from lemonade.auth.jwt import verify_token, JWTError
from lemonade.auth.sync import sync_user_from_token, get_user_by_email
from lemonade.auth.config import get_auth_config
from lemonade.auth.identity import Identity

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_from_token(db: Session, token: str) -> User:
    """Verify the token and sync its user row. Raises JWTError."""
    return sync_user_from_token(db, verify_token(token))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Raises:
        HTTPException 401: Missing or invalid token
        HTTPException 403: Account disabled
    """
    if not get_auth_config().auth_enabled:
        return _dev_user(db)
    if credentials is None:
        raise _unauthorized("Not authenticated")

    try:
        user = _user_from_token(db, credentials.credentials)
    except JWTError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise _unauthorized(str(e))

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is disabled")
    return user


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Guest-friendly variant: a bad token or disabled account reads as a guest."""
    if not get_auth_config().auth_enabled:
        return _dev_user(db)
    if credentials is None:
        return None

    try:
        user = _user_from_token(db, credentials.credentials)
    except JWTError as e:
        logger.info(f"Treating caller as guest, token rejected: {e}")
        return None
    return user if user.is_active else None


async def get_identity(
    request: Request,
    response: Response,
    user: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db),
) -> Identity:
    """
    Quota and report owner for this request.

    A guest without a cookie gets a fresh random session id. The sessions
    row is touched on every request so its expiry follows the cookie.
    """
    if user is not None:
        return Identity.for_user(user)

    config = get_auth_config()
    session_id = request.cookies.get(config.session_cookie_name)
    if not session_id:
        session_id = secrets.token_urlsafe(24)
        logger.info("New guest session")

    touch_guest_session(db, session_id, ttl_days=config.session_ttl_days)
    response.set_cookie(
        key=config.session_cookie_name,
        value=session_id,
        max_age=config.session_ttl_days * 86400,
        httponly=True,
        samesite="lax",
        secure=config.cookie_secure,
    )
    return Identity.for_session(session_id)


def _dev_user(db: Session) -> User:
    """Local premium user for AUTH_ENABLED=false."""
    email = get_auth_config().dev_user_email
    user = get_user_by_email(db, email)
    if user is None:
        user = User(
            id="dev-user",
            email=email,
            full_name="Development User",
            plan=UserPlan.PREMIUM.value,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    return user
