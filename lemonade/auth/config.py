"""
Authentication Configuration

Bearer-token verification and the guest session cookie, read from the
environment (JWT_SECRET, AUTH_ENABLED, SESSION_COOKIE_NAME, ...).
"""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class AuthConfig(BaseSettings):
    # Shared HS256 secret; the provider-specific name is accepted too
    jwt_secret: str = Field("", validation_alias=AliasChoices("JWT_SECRET", "SUPABASE_JWT_SECRET"))
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"

    # False: every request runs as a local premium dev user
    auth_enabled: bool = True
    dev_user_email: str = "dev@competitorlemonade.local"

    session_cookie_name: str = "lemonade_session"
    session_ttl_days: int = 7
    cookie_secure: bool = False

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_auth_config() -> AuthConfig:
    return AuthConfig()
