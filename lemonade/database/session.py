"""
Database Engine and Sessions

PostgreSQL in production (pooled, rows lockable for quota updates), SQLite
for local runs and tests. The engine is built lazily from the environment
and can be swapped with configure_engine().
"""

import os
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool

from .models import Base

logger = logging.getLogger(__name__)

URL_ENV_VARS = ("DATABASE_URL", "POSTGRES_URL")
DEFAULT_SQLITE_PATH = "lemonade_dev.db"

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def _normalize(url: str) -> str:
    # Hosted providers hand out postgres://, SQLAlchemy only accepts postgresql://
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


def get_database_url() -> str:
    """DATABASE_URL, then POSTGRES_URL, then a local SQLite file."""
    for var in URL_ENV_VARS:
        url = os.getenv(var)
        if url:
            logger.info(f"Database URL taken from {var}")
            return _normalize(url)

    path = os.getenv("SQLITE_PATH", DEFAULT_SQLITE_PATH)
    logger.warning(f"No database URL configured, falling back to SQLite at {path}")
    return f"sqlite:///{path}"


def _sql_echo() -> bool:
    return os.getenv("SQL_DEBUG", "false").lower() == "true"


def create_db_engine(url: Optional[str] = None) -> Engine:
    """Engine for `url` (default: get_database_url())."""
    url = url or get_database_url()

    if url.startswith("postgresql"):
        logger.info("Connecting to PostgreSQL")
        return create_engine(
            url,
            poolclass=QueuePool,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=1800,
            pool_pre_ping=True,
            echo=_sql_echo(),
        )

    engine = create_engine(url, connect_args={"check_same_thread": False}, echo=_sql_echo())

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    logger.info("Connecting to SQLite")
    return engine


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def configure_engine(engine: Optional[Engine]) -> None:
    """
    Replace the process-wide engine; None rebuilds it from the environment
    on next use. Scripts with an explicit URL and the test suite use this.
    """
    global _engine, _session_factory
    _engine = engine
    _session_factory = None


def get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        # Reports and tracked rows are returned to callers after commit
        _session_factory = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped session for FastAPI routes:

        def handler(db: Session = Depends(get_db)): ...
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Session for scripts; commits on success, rolls back on error:

        with get_db_context() as db:
            NewsletterService(db).run()
    """
    db = get_session_factory()()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(drop_all: bool = False) -> None:
    """Create every table; drop_all=True wipes them first."""
    # users lives in the auth package but shares this metadata
    import lemonade.auth.models  # noqa: F401

    engine = get_engine()
    if drop_all:
        logger.warning("Dropping all tables")
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database ready ({len(Base.metadata.tables)} tables)")


def check_db_connection() -> bool:
    """True when a trivial query succeeds."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database unreachable: {e}")
        return False
    return True
