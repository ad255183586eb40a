"""
Database connection and setup
SQLite database with SQLAlchemy
"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from refcache.models import Base
from config.settings import settings

logger = logging.getLogger("db")


def make_engine(database_url: str = None, echo: bool = None):
    """
    Create an engine for database_url (defaults to settings.database_url)

    In-memory SQLite shares one connection so every session sees the same data
    """
    database_url = database_url or settings.database_url
    echo = settings.database_echo if echo is None else echo

    kwargs = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}  # Needed for SQLite
        if ":memory:" in database_url or database_url == "sqlite://":
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


def make_session_factory(engine):
    """
    Session factory whose objects stay readable after the session closes
    Records leave the store detached, so expire_on_commit must be off
    """
    return sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
    )


engine = make_engine()

# Session factory
SessionLocal = make_session_factory(engine)


def init_db(bind=None):
    """
    Initialize database - create all tables
    Safe to call multiple times (won't recreate existing tables)
    """
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    logger.info(f"Database initialized at: {bind.url}")
