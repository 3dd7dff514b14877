"""
Database engine and session management.

PostgreSQL in production; SQLite is accepted for local runs and tests.
"""

from typing import Any, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from podcast_translator.config import get_settings
from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

Base = declarative_base()


def engine_options(database_url: str) -> Dict[str, Any]:
    """
    Engine keyword arguments for ``database_url``.

    SQLite connections are used from threadpool workers and background
    tasks, so the same-thread check is turned off. Server databases get
    liveness checks and connection recycling.
    """
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_recycle": 300}


def build_engine(database_url: str, **overrides: Any) -> Engine:
    options = engine_options(database_url)
    options.update(overrides)
    return create_engine(database_url, echo=False, **options)


def build_session_factory(bind: Engine) -> sessionmaker:
    """Session factory shared by request handlers and background translation jobs."""
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


engine = build_engine(settings.database_url)
SessionLocal = build_session_factory(engine)


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped database session.

    Yields:
        Session that is rolled back on error and always closed
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error("Database session error", error=str(e))
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Create the podcast and translated episode tables if they are missing."""
    # Register models on Base.metadata
    from podcast_translator.models import podcast, translated_episode  # noqa: F401

    try:
        logger.info("Initializing database tables", backend=engine.url.get_backend_name())
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables initialized successfully")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise
