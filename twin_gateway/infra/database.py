"""Database engine and session management."""

import threading
from contextlib import contextmanager
from typing import Generator, Optional
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from twin_gateway.infra.config import config

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None
_engine_lock = threading.Lock()


def get_engine() -> Engine:
    """Process-wide engine, created once on first use."""
    global _engine, _session_factory
    if _engine is None:
        with _engine_lock:
            if _engine is None:
                engine_kwargs = {"echo": config.DEBUG, "pool_pre_ping": True}
                if not config.DATABASE_URL.startswith("sqlite"):
                    engine_kwargs.update(
                        pool_size=10,  # Number of connections to maintain
                        max_overflow=20,  # Max connections beyond pool_size
                        pool_timeout=30,  # Seconds to wait for connection from pool
                        pool_recycle=3600,  # Recycle connections after 1 hour
                    )
                _engine = create_engine(config.DATABASE_URL, **engine_kwargs)
                _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=_engine)
    return _engine


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Session that commits on success and rolls back on error."""
    get_engine()
    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI routes."""
    get_engine()
    session = _session_factory()
    try:
        yield session
    finally:
        session.close()


def dispose_engine() -> None:
    """Close pooled connections (shutdown)."""
    global _engine, _session_factory
    with _engine_lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _session_factory = None
