"""
PostgreSQL implementation of the storage interface.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import text
from .session import SessionStorage


class PostgresStorage(SessionStorage):
    """
    PostgreSQL implementation of the storage interface.

    Program locks are transaction-scoped advisory locks, so they hold across
    server processes and are released when the surrounding transaction ends.
    Enter ``lock_program`` before ``transaction`` so the lock is taken on the
    transaction that the block commits.
    """

    @contextmanager
    def lock_program(self, program_id: str) -> Iterator[None]:
        self._session.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:program_id))"),
            {"program_id": program_id},
        )
        yield
