"""
Column types shared by the persistence models.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator

from personres.clock import ensure_aware


class UTCDateTime(TypeDecorator):
    """DateTime column that always hands back timezone-aware UTC values.

    SQLite drops the offset on write, so values are normalized to UTC before
    binding and re-labelled as UTC on read.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return ensure_aware(value)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return ensure_aware(value)
