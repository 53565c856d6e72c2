"""
Database connection management for musubi.

Provides the SQLAlchemy engine/session for the dictionary database and the
named cache registry used for warm lookup tables.
"""

import logging
import threading
import weakref
from pathlib import Path
from typing import Callable, Dict, Generic, Optional, TypeVar, Union

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from musubi import settings
from musubi.db.models import Base

logger = logging.getLogger(__name__)

T = TypeVar('T')

_engines: Dict[str, Engine] = {}
_sessions: Dict[str, Session] = {}
_lock = threading.Lock()


def get_db_path(db_path: Optional[Union[str, Path]] = None) -> Path:
    """Resolve the database path, defaulting to settings.DB_PATH."""
    return Path(db_path) if db_path else settings.DB_PATH


def _set_sqlite_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.execute("PRAGMA synchronous = NORMAL")
    cursor.execute("PRAGMA cache_size = -64000")  # 64MB cache
    cursor.close()


def get_engine(db_path: Optional[Union[str, Path]] = None) -> Engine:
    """
    Get (or create) the engine for a database file.

    Args:
        db_path: Path to the SQLite database file. Defaults to settings.DB_PATH.

    Returns:
        SQLAlchemy Engine.
    """
    path = get_db_path(db_path)
    key = str(path)
    with _lock:
        engine = _engines.get(key)
        if engine is None:
            path.parent.mkdir(parents=True, exist_ok=True)
            engine = create_engine(f"sqlite:///{path}", echo=settings.DEBUG)
            event.listen(engine, "connect", _set_sqlite_pragmas)
            _engines[key] = engine
            logger.debug("Created engine for %s", path)
        return engine


def get_session(db_path: Optional[Union[str, Path]] = None) -> Session:
    """
    Get the shared session for a database file.

    The session is reused across calls; lookups only read from it.
    """
    key = str(get_db_path(db_path))
    session = _sessions.get(key)
    if session is None:
        session = sessionmaker(bind=get_engine(db_path))()
        _sessions[key] = session
    return session


def init_db(db_path: Optional[Union[str, Path]] = None, drop: bool = False) -> Engine:
    """Create the dictionary tables, optionally dropping existing ones."""
    engine = get_engine(db_path)
    if drop:
        Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    return engine


def close():
    """Close all sessions, dispose all engines and drop their warm data."""
    with _lock:
        for session in _sessions.values():
            session.close()
        _sessions.clear()
        for engine in _engines.values():
            engine.dispose()
        _engines.clear()
    Cache.reset_all()


# ============================================================================
# Caching System
# ============================================================================

class Cache(Generic[T]):
    """
    Thread-safe lazily initialized value.

    Instances register under a unique name so they can be reset together
    after the dictionary is reloaded. The registry holds them weakly, so a
    cache lives only as long as its owner keeps it.
    """

    _instances: 'weakref.WeakValueDictionary[str, Cache]' = weakref.WeakValueDictionary()
    _lock = threading.Lock()

    def __init__(self, name: str, initializer: Callable[..., T]):
        self.name = name
        self.initializer = initializer
        self._value: Optional[T] = None
        self._initialized = False
        self._cache_lock = threading.Lock()

        with Cache._lock:
            Cache._instances[name] = self

    @property
    def ready(self) -> bool:
        return self._initialized

    def ensure(self, *args) -> T:
        """Get the cached value, initializing it with args if necessary."""
        if self._initialized:
            return self._value

        with self._cache_lock:
            if not self._initialized:
                self._value = self.initializer(*args)
                self._initialized = True
            return self._value

    def reset(self, *args) -> T:
        """Force re-initialization and return the new value."""
        with self._cache_lock:
            self._value = self.initializer(*args)
            self._initialized = True
            return self._value

    def invalidate(self):
        """Mark the cache as needing re-initialization."""
        with self._cache_lock:
            self._initialized = False
            self._value = None

    @classmethod
    def get(cls, name: str) -> Optional['Cache']:
        return cls._instances.get(name)

    @classmethod
    def reset_all(cls):
        """Invalidate every registered cache."""
        with cls._lock:
            caches = list(cls._instances.values())
        for cache in caches:
            cache.invalidate()
