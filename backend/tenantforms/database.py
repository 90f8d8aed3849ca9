"""Database engine, session factory and the request-scoped session dependency."""

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool

from tenantforms.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine with options suited to the backend.

    SQLite connections may be shared across FastAPI's threadpool; an
    in-memory SQLite database is pinned to one connection so every session
    sees the same tables. Server databases get a checked, bounded pool.
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        options = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
    else:
        options = {
            "pool_pre_ping": True,
            "pool_size": 10,
            "max_overflow": 20,
        }
    logger.debug("Creating %s engine", url.get_backend_name())
    return create_engine(url, echo=echo, **options)


engine = build_engine(settings.database_url, echo=settings.sql_echo)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def get_db():
    """One session per request, closed when the response is done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
