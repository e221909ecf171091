"""
Bearer Token Verification

Tokens are HS256 JWTs from the identity provider, signed with a shared
secret. Claims used here: sub (user id), email, aud and
user_metadata.full_name / user_metadata.name.
"""

import logging
from typing import Any, Dict

import jwt

from lemonade.auth.config import get_auth_config

logger = logging.getLogger(__name__)


class JWTError(Exception):
    """The bearer token cannot be trusted."""


_KNOWN_FAILURES = (
    (jwt.ExpiredSignatureError, "Token has expired"),
    (jwt.InvalidAudienceError, "Invalid token audience"),
    (jwt.InvalidSignatureError, "Invalid token signature"),
)


def verify_token(token: str) -> Dict[str, Any]:
    """
    Decode `token` and return its claims.

    Raises:
        JWTError: No secret configured, bad signature, wrong audience,
            expired, malformed, or no `sub` claim
    """
    config = get_auth_config()
    if not config.jwt_secret:
        raise JWTError("JWT_SECRET not configured")

    try:
        claims = jwt.decode(
            token,
            config.jwt_secret,
            algorithms=[config.jwt_algorithm],
            audience=config.jwt_audience,
        )
    except jwt.PyJWTError as e:
        message = next((text for kind, text in _KNOWN_FAILURES if isinstance(e, kind)), None)
        if message is None:
            stage = "decode" if isinstance(e, jwt.DecodeError) else "validation"
            message = f"Token {stage} error: {e}"
        raise JWTError(message) from e

    if not claims.get("sub"):
        raise JWTError("Token missing 'sub' claim (user ID)")
    return claims


def extract_user_info(claims: Dict[str, Any]) -> Dict[str, Any]:
    """Profile fields for the local users row."""
    profile = claims.get("user_metadata") or {}
    return {
        "id": str(claims.get("sub")),
        "email": claims.get("email"),
        "full_name": profile.get("full_name") or profile.get("name"),
    }
