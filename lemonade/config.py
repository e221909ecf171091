"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.
"""

from typing import List, Optional
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


DEFAULT_SUBREDDITS = [
    "news", "worldnews", "business", "technology", "stocks",
    "wallstreetbets", "investing", "entrepreneur", "startups",
    "tech", "finance", "economy",
]


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # LLM provider (optional - analyzers degrade without it)
    ANTHROPIC_API_KEY: Optional[str] = None
    LLM_FAST_MODEL: str = "claude-3-5-haiku-20241022"
    LLM_STANDARD_MODEL: str = "claude-sonnet-4-20250514"
    LLM_PREMIUM_MODEL: str = "claude-opus-4-20250514"

    # Resend (optional - for email delivery)
    RESEND_API_KEY: Optional[str] = None
    FROM_EMAIL: str = "reports@competitorlemonade.com"

    # Application settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Daily analysis quotas per plan
    FREE_DAILY_LIMIT: int = 5
    PREMIUM_DAILY_LIMIT: int = 50
    GUEST_LIMIT: int = 1

    # Watch-list size per plan
    FREE_TRACKED_LIMIT: int = 5
    PREMIUM_TRACKED_LIMIT: int = 25

    # Fetchers
    HTTP_USER_AGENT: str = "Competitor-Lemonade-Bot/1.0"
    HTTP_TIMEOUT: float = 8.0
    NEWS_LOOKBACK_DAYS: int = 90
    SOCIAL_LOOKBACK_DAYS: int = 7
    MAX_ITEMS_PER_COMPETITOR: int = 15
    REDDIT_SUBREDDITS: List[str] = Field(default_factory=lambda: list(DEFAULT_SUBREDDITS))
    REDDIT_ENABLED: bool = False

    # Guest session cookie
    SESSION_COOKIE_NAME: str = "lemonade_session"
    SESSION_TTL_DAYS: int = 7

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase

    def daily_limit_for(self, plan: Optional[str], is_guest: bool = False) -> int:
        """Daily analysis limit for a plan."""
        if is_guest:
            return self.GUEST_LIMIT
        if plan == "premium":
            return self.PREMIUM_DAILY_LIMIT
        return self.FREE_DAILY_LIMIT

    def tracked_limit_for(self, plan: Optional[str]) -> int:
        """Watch-list cap for a plan."""
        if plan == "premium":
            return self.PREMIUM_TRACKED_LIMIT
        return self.FREE_TRACKED_LIMIT


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
