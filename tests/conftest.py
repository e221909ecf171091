"""
Pytest Configuration and Shared Fixtures

In-memory SQLite database, auth tokens, static signal sources and a canned
LLM client for every test module.
"""

import json
import os
from datetime import datetime, timedelta, timezone
from typing import Dict, List

# Test environment - must be set before the app modules read it
os.environ["AUTH_ENABLED"] = "true"
os.environ["JWT_SECRET"] = "super-secret-jwt-key-for-testing"
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["RESEND_API_KEY"] = ""
os.environ["REDIS_URL"] = ""
os.environ["DATABASE_URL"] = "sqlite://"

import jwt
import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from lemonade.analysis.client import LLMResponse, TokenUsage
from lemonade.auth.config import get_auth_config
from lemonade.auth.models import User, UserPlan
from lemonade.cache.config import get_cache_config
from lemonade.config import get_settings
from lemonade.database.models import Base
from lemonade.database.session import configure_engine, get_session_factory, init_db
from lemonade.signals.base import SignalSource
from lemonade.signals.models import SignalItem, SignalType

JWT_SECRET = "super-secret-jwt-key-for-testing"

CANNED_REPORT = {
    "executive_summary": "Acme is shipping quickly; Beta is quiet.",
    "competitors": [
        {
            "competitor": "Acme",
            "activity_level": "high",
            "recent_developments": ["Launched a new product line"],
            "funding_business": ["Raised a Series B"],
            "social_sentiment": {"score": 70, "mentions_count": 2},
            "key_insights": ["Expanding into enterprise"],
        }
    ],
    "strategic_insights": ["Watch Acme's enterprise push"],
    "methodology": {"sources_analyzed": ["Static"], "total_signals": 2},
}


@pytest.fixture(autouse=True)
def clear_config_caches():
    """Settings getters are lru_cached; rebuild them from the test environment."""
    get_settings.cache_clear()
    get_auth_config.cache_clear()
    get_cache_config.cache_clear()
    yield
    get_settings.cache_clear()
    get_auth_config.cache_clear()
    get_cache_config.cache_clear()


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
def engine():
    """Fresh in-memory database shared by every connection."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_engine(test_engine)
    init_db()
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    configure_engine(None)


@pytest.fixture
def db(engine):
    session = get_session_factory()()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    """Factory for persisted users."""
    def _make(user_id: str = "user-1", email: str = "user@test.com", plan: str = UserPlan.FREE.value) -> User:
        user = User(id=user_id, email=email, full_name="Test User", plan=plan, is_active=True)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


# ============================================================================
# Auth
# ============================================================================

@pytest.fixture
def make_token():
    """Factory for signed bearer tokens."""
    def _make(sub: str = "user-1", email: str = "user@test.com", **claims) -> str:
        payload = {
            "sub": sub,
            "email": email,
            "aud": "authenticated",
            "user_metadata": {"full_name": "Test User"},
            "exp": int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp()),
            "iat": int(datetime.now(timezone.utc).timestamp()),
        }
        payload.update(claims)
        return jwt.encode(payload, JWT_SECRET, algorithm="HS256")
    return _make


@pytest.fixture
def auth_headers(make_token):
    def _headers(sub: str = "user-1", email: str = "user@test.com") -> Dict[str, str]:
        return {"Authorization": f"Bearer {make_token(sub, email)}"}
    return _headers


# ============================================================================
# Signal sources and LLM
# ============================================================================

class StaticSource(SignalSource):
    """Returns canned items per competitor and records every call."""

    uses_http = False

    def __init__(self, items_by_competitor: Dict[str, List[SignalItem]], name: str = "Static"):
        super().__init__()
        self.name = name
        self.items_by_competitor = items_by_competitor
        self.calls: List[str] = []

    async def _fetch(self, client, competitor: str) -> List[SignalItem]:
        self.calls.append(competitor)
        return list(self.items_by_competitor.get(competitor, []))


class FailingSource(SignalSource):
    """Upstream that always errors."""

    uses_http = False
    name = "Broken"

    async def _fetch(self, client, competitor: str) -> List[SignalItem]:
        raise ValueError("upstream returned garbage")


@pytest.fixture
def acme_items() -> List[SignalItem]:
    return [
        SignalItem(
            title="Acme launches new product line",
            content="Acme released a new product line for enterprise teams.",
            url="https://news.example.com/acme-launch",
            published_at="2026-10-01T10:00:00+00:00",
            type=SignalType.PRODUCT,
        ),
        SignalItem(
            title="Acme raises Series B funding",
            content="Acme raised $40M in a Series B round led by Example Ventures.",
            url="https://news.example.com/acme-series-b",
            published_at="2026-09-20T09:00:00+00:00",
            type=SignalType.FUNDING,
        ),
    ]


@pytest.fixture
def static_source(acme_items):
    return StaticSource({"Acme": acme_items, "Beta": []})


@pytest.fixture
def failing_source():
    return FailingSource()


def llm_response(content: str, success: bool = True, error: str = None) -> LLMResponse:
    return LLMResponse(
        content=content,
        usage=TokenUsage(input_tokens=10, output_tokens=20),
        model="test-model",
        stop_reason="end_turn",
        success=success,
        error=error,
    )


@pytest.fixture
def make_llm():
    """Factory for a mock LLM client answering every call with `content`."""
    def _make(content: str = None, success: bool = True):
        client = MagicMock()
        client.available = True
        client.complete = AsyncMock(
            return_value=llm_response(json.dumps(CANNED_REPORT) if content is None else content, success=success)
        )
        return client
    return _make


@pytest.fixture
def canned_llm(make_llm):
    return make_llm()


@pytest.fixture
def make_source():
    """Factory for StaticSource instances."""
    return StaticSource
