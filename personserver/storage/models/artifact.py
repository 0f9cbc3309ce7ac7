"""
Uploaded document that person mentions are extracted from.
"""

from datetime import datetime

from sqlmodel import Field, SQLModel

from personres.clock import utc_now
from .types import UTCDateTime


class Artifact(SQLModel, table=True):
    __tablename__ = "artifacts"

    artifact_id: str = Field(primary_key=True)
    program_id: str = Field(foreign_key="programs.program_id", index=True)
    filename: str = Field()
    uploaded_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
