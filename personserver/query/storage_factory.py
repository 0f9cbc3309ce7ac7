"""
Storage factory for creating and managing storage backend instances.
"""

import os
from typing import Generator, Optional

from sqlalchemy import Engine, create_engine
from sqlmodel import Session, SQLModel

from personres.logging import setup_logging
from personserver.storage.backends.postgres import PostgresStorage
from personserver.storage.backends.sqlite import SQLiteStorage, create_sqlite_engine
from personserver.storage.interfaces import StorageInterface

logger = setup_logging()

DEFAULT_DATABASE_URL = "sqlite:///./personres.db"

# Singleton engine and db_url
_engine: Optional[Engine] = None
_db_url: Optional[str] = None


def get_engine() -> tuple[Engine, str]:
    """
    Returns a singleton instance of the SQLAlchemy engine and db_url.
    Tables are created on first use.
    """
    global _engine, _db_url
    if _engine is None:
        _db_url = os.getenv("DATABASE_URL")
        if not _db_url:
            logger.info({"message": "DATABASE_URL not set, using default", "database_url": DEFAULT_DATABASE_URL})
            _db_url = DEFAULT_DATABASE_URL

        if _db_url.startswith("sqlite://"):
            db_path = _db_url.removeprefix("sqlite:///") if _db_url.startswith("sqlite:///") else ":memory:"
            _engine = create_sqlite_engine(db_path or ":memory:")
        elif _db_url.startswith(("postgresql://", "postgresql+psycopg2://")):
            _engine = create_engine(_db_url, pool_pre_ping=True)
        else:
            _db_url = None
            raise ValueError("Unsupported database URL scheme.")
        SQLModel.metadata.create_all(_engine)
    return _engine, _db_url  # type: ignore[return-value]


def create_storage() -> StorageInterface:
    """
    Open a storage instance on a new session of the singleton engine.
    """
    engine, db_url = get_engine()
    if db_url.startswith("sqlite://"):
        return SQLiteStorage(engine=engine)
    return PostgresStorage(Session(engine))


def get_storage() -> Generator[StorageInterface, None, None]:
    """
    FastAPI dependency that provides a storage instance with a request-scoped session.
    """
    storage = create_storage()
    try:
        yield storage
    finally:
        storage.close()


def close_storage() -> None:
    """
    Closes the engine connection.
    """
    global _engine, _db_url
    if _engine:
        _engine.dispose()
        _engine = None
        _db_url = None
