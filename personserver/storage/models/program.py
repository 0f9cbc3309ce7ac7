"""
Program model. Programs are owned by the surrounding CRUD layer; only the
fields identity resolution reads are mapped here.
"""

from datetime import datetime

from sqlmodel import Field, SQLModel

from personres.clock import utc_now
from .types import UTCDateTime


class Program(SQLModel, table=True):
    """A program that artifacts are uploaded to and stakeholders belong to."""

    __tablename__ = "programs"

    program_id: str = Field(primary_key=True)
    name: str = Field()
    internal_organization: str = Field(
        default="Organization",
        description="Comma-separated aliases of the owning organization",
    )
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
