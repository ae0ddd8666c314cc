"""
Database configuration and session management for VaaniAI.

This module sets up SQLAlchemy with SQLite or PostgreSQL and provides
database session management for the FastAPI application. One backend is
chosen at deploy time through DATABASE_URL.
"""

import logging
import os
import time
from collections.abc import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import NullPool

from .config import settings

logger = logging.getLogger(__name__)

# Project root (parent of the vaaniai package); relative SQLite paths resolve against it
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def resolve_database_url(url: str) -> str:
    """
    Convert relative SQLite paths to absolute ones and make sure the
    containing directory exists. Other URLs are returned unchanged.
    """
    if url.startswith("sqlite:///./"):
        relative_path = url.replace("sqlite:///./", "")
        abs_path = os.path.abspath(os.path.join(project_root, relative_path))
        os.makedirs(os.path.dirname(abs_path), exist_ok=True)
        return f"sqlite:///{abs_path}"
    if url.startswith("sqlite:///") and url != "sqlite:///:memory:":
        db_path = url.replace("sqlite:///", "")
        if os.path.isabs(db_path):
            os.makedirs(os.path.dirname(db_path), exist_ok=True)
    return url


def mask_database_url(url: str) -> str:
    """Hide the password part of a database URL for logging."""
    if "@" not in url or "://" not in url:
        return url
    scheme, rest = url.split("://", 1)
    auth_part, host_part = rest.split("@", 1)
    if ":" in auth_part:
        user = auth_part.split(":", 1)[0]
        return f"{scheme}://{user}:****@{host_part}"
    return url


DATABASE_URL = resolve_database_url(settings.database_url)
logger.info(f"[DB] Using database: {mask_database_url(DATABASE_URL)}")


def build_engine(url: str):
    """
    Create a SQLAlchemy engine tuned for the backend in use.

    PostgreSQL gets a connection pool. SQLite uses NullPool with a lock timeout
    because pooled SQLite connections cause "database is locked" errors.
    """
    if url.startswith("postgresql"):
        return create_engine(
            url,
            pool_size=10,  # Number of connections to maintain
            max_overflow=20,  # Additional connections allowed beyond pool_size
            pool_pre_ping=True,  # Verify connections before using them
            pool_recycle=3600,  # Recycle connections after 1 hour
            pool_timeout=30,
            connect_args={"connect_timeout": 10},
            echo=False,
        )

    if url.startswith("sqlite"):
        sqlite_engine = create_engine(
            url,
            connect_args={
                "check_same_thread": False,  # Allow multi-threaded access
                "timeout": 20.0,  # Wait up to 20 seconds for database lock
            },
            poolclass=NullPool,
            echo=False,
        )
        event.listen(sqlite_engine, "connect", set_sqlite_pragma)
        return sqlite_engine

    return create_engine(url, pool_pre_ping=True, echo=False)


def set_sqlite_pragma(dbapi_conn, connection_record):
    """
    Configure SQLite connection settings.

    SQLite disables foreign key constraints by default, so they are enabled on
    every connection for CASCADE deletes to work.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA busy_timeout=20000")
    cursor.close()


engine = build_engine(DATABASE_URL)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency function for FastAPI to get database session.

    Usage:
        @app.get("/endpoint")
        def endpoint(db: Session = Depends(get_db)):
            # Use db here
            pass

    Yields:
        Session: Database session
    """
    db_start = time.time()
    db = SessionLocal()
    db_duration = time.time() - db_start
    if db_duration > 0.1:
        logger.warning(f"[DB] Session creation took {db_duration:.3f}s")
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """
    Initialize database tables.
    This creates all tables defined in models.
    """
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine, checkfirst=True)


def drop_db() -> None:
    """
    Drop all database tables.
    WARNING: This will delete all data!
    Only use in development/testing.
    """
    Base.metadata.drop_all(bind=engine)
