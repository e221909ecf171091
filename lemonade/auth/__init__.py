"""
Authentication and Identity Module

Signed-in users present a bearer JWT (HS256); the user row is synced from
its claims on every request. Everyone else is a guest identified by the
session cookie.

Usage:
    @router.get("/reports")
    def list_reports(current_user: User = Depends(get_current_user)):
        ...

    @router.post("/analyze")
    async def analyze(identity: Identity = Depends(get_identity)):
        ...
"""

from .config import AuthConfig, get_auth_config
from .jwt import verify_token, extract_user_info, JWTError
from .models import User, UserPlan
from .identity import Identity
from .sync import sync_user_from_token, get_user_by_id, get_user_by_email, list_premium_users
from .dependencies import (
    get_current_user,
    get_current_user_optional,
    get_identity,
)

__all__ = [
    # Config
    "AuthConfig",
    "get_auth_config",
    # JWT validation
    "verify_token",
    "extract_user_info",
    "JWTError",
    # Models
    "User",
    "UserPlan",
    "Identity",
    # User sync
    "sync_user_from_token",
    "get_user_by_id",
    "get_user_by_email",
    "list_premium_users",
    # FastAPI dependencies
    "get_current_user",
    "get_current_user_optional",
    "get_identity",
]
