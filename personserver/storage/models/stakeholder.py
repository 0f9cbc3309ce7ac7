"""
Canonical stakeholder identities tracked per program.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from personres.clock import utc_now
from .types import UTCDateTime


class Stakeholder(SQLModel, table=True):
    __tablename__ = "stakeholders"

    stakeholder_id: str = Field(primary_key=True)
    program_id: str = Field(foreign_key="programs.program_id", index=True)
    person_name: str = Field(index=True)
    stakeholder_type: str = Field(default="external", description="internal | external | vendor | partner | customer")
    is_internal: bool = Field(default=False)
    email: Optional[str] = Field(default=None)
    role: Optional[str] = Field(default=None)
    organization: Optional[str] = Field(default=None)
    engagement_level: Optional[str] = Field(default=None, description="key | primary | secondary | observer")
    department: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    deleted_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
