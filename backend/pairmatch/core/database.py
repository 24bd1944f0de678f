"""
Database configuration and session management
"""
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from pairmatch.core.config import get_settings
from pairmatch.core.logging_config import LoggingConfig

# Lazy initialization - don't create engine at module level
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None

Base = declarative_base()


def _connect_args(url: str) -> dict:
    if url.startswith("postgresql"):
        return {
            "connect_timeout": 5,
            "options": "-c statement_timeout=5000",
        }
    if url.startswith("sqlite"):
        # Concurrent matchers wait for the write lock instead of failing with "database is locked".
        # The driver's default transaction handling opens the transaction at the first UPDATE,
        # so the queue claim never upgrades a shared lock.
        return {"timeout": 30, "check_same_thread": False}
    return {}


def get_engine() -> Engine:
    """Get or create database engine (lazy initialization)"""
    global _engine
    if _engine is None:
        settings = get_settings()
        LoggingConfig.configure()

        url = settings.database_url
        engine_kwargs = {
            "pool_pre_ping": True,
            "echo": settings.log_sqlalchemy,
            "connect_args": _connect_args(url),
        }
        if not url.startswith("sqlite"):
            engine_kwargs["pool_size"] = settings.database_pool_size
            engine_kwargs["max_overflow"] = settings.database_max_overflow

        _engine = create_engine(url, **engine_kwargs)

    return _engine


def get_session_local() -> sessionmaker:
    """Get or create session factory (lazy initialization)"""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _SessionLocal


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request"""
    db = get_session_local()()
    try:
        yield db
    finally:
        db.close()
