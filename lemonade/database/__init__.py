"""
Competitor Lemonade Database Layer

Usage:
    from lemonade.database import (
        # Session management
        init_db, get_db, get_db_context,

        # Models
        CompetitorReport, TrackedCompetitor, RateLimit, GuestSession,

        # Repository (high-level operations)
        create_report, get_report, list_user_reports,
    )

    init_db()
"""

# Models
from .models import (
    Base,
    CompetitorReport,
    TrackedCompetitor,
    RateLimit,
    GuestSession,
    utcnow,
)

# Session management
from .session import (
    get_database_url,
    get_engine,
    configure_engine,
    get_session_factory,
    get_db,
    get_db_context,
    init_db,
    check_db_connection,
)

# Repository
from .repository import (
    create_report,
    get_report,
    list_user_reports,
    get_tracked_competitors,
    count_tracked_competitors,
    add_tracked_competitor,
    deactivate_tracked_competitor,
    clear_all_tracked_competitors,
    mark_competitors_analyzed,
    get_rate_limit,
    touch_guest_session,
)

__all__ = [
    # Models
    "Base",
    "CompetitorReport",
    "TrackedCompetitor",
    "RateLimit",
    "GuestSession",
    "utcnow",
    # Session
    "get_database_url",
    "get_engine",
    "configure_engine",
    "get_session_factory",
    "get_db",
    "get_db_context",
    "init_db",
    "check_db_connection",
    # Repository
    "create_report",
    "get_report",
    "list_user_reports",
    "get_tracked_competitors",
    "count_tracked_competitors",
    "add_tracked_competitor",
    "deactivate_tracked_competitor",
    "clear_all_tracked_competitors",
    "mark_competitors_analyzed",
    "get_rate_limit",
    "touch_guest_session",
]
