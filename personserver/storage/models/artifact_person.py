"""
Person mentions extracted from artifacts.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from personres.clock import utc_now
from personres.models import PersonMention
from .types import UTCDateTime


class ArtifactPerson(SQLModel, table=True):
    """One person mention in one artifact.

    Rows are written by the extraction pipeline. ``stakeholder_id`` is the
    only column identity resolution writes.
    """

    __tablename__ = "artifact_persons"

    person_id: str = Field(primary_key=True)
    artifact_id: str = Field(foreign_key="artifacts.artifact_id", index=True)
    person_name: str = Field(index=True)
    person_role: Optional[str] = Field(default=None)
    person_organization: Optional[str] = Field(default=None)
    mention_count: int = Field(default=1)
    context_snippets: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    confidence_score: Optional[float] = Field(default=None)
    stakeholder_id: Optional[str] = Field(default=None, foreign_key="stakeholders.stakeholder_id", index=True)
    extracted_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    def first_snippet(self) -> Optional[str]:
        for entry in self.context_snippets or []:
            snippet = entry.get("snippet") if isinstance(entry, dict) else entry
            if snippet:
                return str(snippet)
        return None

    def to_mention(self) -> PersonMention:
        return PersonMention(
            person_id=self.person_id,
            person_name=self.person_name,
            role=self.person_role,
            organization=self.person_organization,
            confidence=self.confidence_score,
            artifact_id=self.artifact_id,
            mention_count=self.mention_count,
            extracted_at=self.extracted_at,
            stakeholder_id=self.stakeholder_id,
        )
