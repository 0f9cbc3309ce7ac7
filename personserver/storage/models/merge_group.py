"""
Merge groups: clusters of mentions awaiting or past human review.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from personres.clock import utc_now
from .types import UTCDateTime


class MergeGroup(SQLModel, table=True):
    """
    A reviewable cluster of mentions believed to be one person.
    """

    __tablename__ = "person_merge_groups"

    group_id: str = Field(primary_key=True)
    program_id: str = Field(foreign_key="programs.program_id", index=True)
    suggested_name: str = Field()
    status: str = Field(default="pending", index=True, description="pending | confirmed | merged | rejected")
    has_role_conflicts: bool = Field(default=False)
    has_org_conflicts: bool = Field(default=False)
    resolved_name: Optional[str] = Field(default=None)
    resolved_role: Optional[str] = Field(default=None)
    resolved_organization: Optional[str] = Field(default=None)
    merged_stakeholder_id: Optional[str] = Field(default=None, foreign_key="stakeholders.stakeholder_id")
    merged_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


class MergeGroupMember(SQLModel, table=True):
    """
    Membership of one mention in one merge group.
    """

    __tablename__ = "person_merge_group_members"
    __table_args__ = (UniqueConstraint("group_id", "person_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: str = Field(foreign_key="person_merge_groups.group_id", index=True)
    person_id: str = Field(foreign_key="artifact_persons.person_id", index=True)
    similarity_score: float = Field(default=0.8)
    matching_method: str = Field(default="fuzzy_name", description="fuzzy_name | manual")
    added_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
