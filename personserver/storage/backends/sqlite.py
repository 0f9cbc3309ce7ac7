"""
SQLite implementation of the storage interface.
"""

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from .session import SessionStorage

# Program locks are process-local; SQLite deployments run a single server process.
_program_locks: dict[str, threading.Lock] = {}
_program_locks_guard = threading.Lock()


def _lock_for(program_id: str) -> threading.Lock:
    with _program_locks_guard:
        return _program_locks.setdefault(program_id, threading.Lock())


def create_sqlite_engine(db_path: str) -> Engine:
    """
    Create an engine usable from FastAPI worker threads. In-memory databases
    share one connection so every session sees the same data.
    """
    connect_args = {"check_same_thread": False}
    if db_path == ":memory:":
        return create_engine("sqlite://", connect_args=connect_args, poolclass=StaticPool)
    return create_engine(f"sqlite:///{db_path}", connect_args=connect_args)


class SQLiteStorage(SessionStorage):
    """
    SQLite implementation of the storage interface.
    """

    def __init__(self, db_path: str = ":memory:", engine: Optional[Engine] = None):
        self.engine = engine if engine is not None else create_sqlite_engine(db_path)
        SQLModel.metadata.create_all(self.engine)
        super().__init__(Session(self.engine))

    @contextmanager
    def lock_program(self, program_id: str) -> Iterator[None]:
        lock = _lock_for(program_id)
        with lock:
            yield
