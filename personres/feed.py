"""
Mention Feed Models

Row format for the JSONL feed written by the document extraction pipeline and
read by the server at startup. One line describes one person mention together
with the program and artifact it belongs to.

This module depends only on pydantic so producers can import it without
pulling in the database or web stack.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from personres.clock import ensure_aware, utc_now
from personres.models import PersonMention


class MentionFeedRow(BaseModel):
    """One person mention (one line in mentions.jsonl)."""

    program_id: str = Field(..., description="Program the artifact was uploaded to")
    program_name: Optional[str] = Field(None, description="Program display name, used when the program is new")
    internal_organization: Optional[str] = Field(
        None,
        description="Comma-separated internal organization aliases, used when the program is new",
    )
    artifact_id: str = Field(..., description="Artifact the mention was extracted from")
    filename: str = Field(..., description="Original filename of the artifact")
    uploaded_at: Optional[datetime] = Field(None, description="Artifact upload time")
    person_id: str = Field(..., description="Unique mention identifier")
    person_name: str = Field(..., min_length=1, description="Name as extracted")
    person_role: Optional[str] = Field(None, description="Extracted role or title")
    person_organization: Optional[str] = Field(None, description="Extracted organization")
    mention_count: int = Field(1, ge=1, description="Occurrences within the artifact")
    confidence_score: Optional[float] = Field(None, ge=0.0, le=1.0, description="Extraction confidence")
    context_snippets: List[str] = Field(default_factory=list, description="Text surrounding the mention")
    extracted_at: datetime = Field(default_factory=utc_now, description="Extraction time")

    @field_validator("program_id", "artifact_id", "person_id")
    @classmethod
    def ids_are_uuids(cls, value: str) -> str:
        return str(uuid.UUID(value))

    @field_validator("uploaded_at", "extracted_at")
    @classmethod
    def timestamps_are_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(value) if value is not None else None

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
        )
