"""Domain models for person identity resolution.

These are the storage-independent shapes the engine works on. Mentions are
produced by the extraction pipeline; edges, conflict options and analyses are
derived on every run and never persisted.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from personres.clock import ensure_aware


class MergeGroupStatus(str, Enum):
    """Lifecycle of a merge group."""

    PENDING = "pending"
    """Created by a clustering run and awaiting review."""

    CONFIRMED = "confirmed"
    """Reviewer accepted the group without creating a stakeholder."""

    MERGED = "merged"
    """Reviewer accepted the group and a stakeholder was created for it."""

    REJECTED = "rejected"
    """Reviewer decided the members are not the same person."""

    @property
    def is_terminal(self) -> bool:
        return self is not MergeGroupStatus.PENDING


class MatchingMethod(str, Enum):
    """How a mention came to be a member of a merge group."""

    FUZZY_NAME = "fuzzy_name"
    MANUAL = "manual"


class StakeholderClassification(str, Enum):
    INTERNAL = "internal"
    EXTERNAL = "external"


STAKEHOLDER_TYPES: frozenset[str] = frozenset({"internal", "external", "vendor", "partner", "customer"})
ENGAGEMENT_LEVELS: frozenset[str] = frozenset({"key", "primary", "secondary", "observer"})


class PersonMention(BaseModel, frozen=True):
    """A single extracted occurrence of a person name in a document."""

    person_id: str = Field(description="Identity key of the mention.")
    person_name: str = Field(description="Name as extracted.")
    role: Optional[str] = Field(default=None, description="Extracted role or title.")
    organization: Optional[str] = Field(default=None, description="Extracted organization.")
    confidence: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Extractor confidence, when reported.",
    )
    artifact_id: str = Field(description="Artifact the mention was extracted from.")
    mention_count: int = Field(default=1, ge=1, description="Occurrences within the artifact.")
    extracted_at: datetime = Field(description="When the extractor produced the mention.")
    stakeholder_id: Optional[str] = Field(
        default=None,
        description="Resolved stakeholder; null while the mention is unresolved.",
    )

    @field_validator("extracted_at")
    @classmethod
    def extracted_at_is_utc(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @property
    def is_resolved(self) -> bool:
        return self.stakeholder_id is not None


class SimilarityEdge(BaseModel, frozen=True):
    """Pairwise comparison of two unresolved mentions. Never stored."""

    left_id: str
    right_id: str
    name_similarity: float = Field(ge=0.0, le=1.0)
    organization_match: bool


class ConflictOption(BaseModel, frozen=True):
    """A distinct role or organization value observed in a group."""

    value: str
    count: int = Field(ge=1)
    average_confidence: float = Field(ge=0.0, le=1.0)


class ConflictAnalysis(BaseModel, frozen=True):
    """Aggregated attributes of one cluster."""

    suggested_name: str
    has_role_conflicts: bool
    has_org_conflicts: bool
    role_options: tuple[ConflictOption, ...] = ()
    org_options: tuple[ConflictOption, ...] = ()


class MentionCluster(BaseModel, frozen=True):
    """A connected component of two or more mentions.

    ``root_id`` is the union-find representative; ``member_ids`` is sorted.
    """

    root_id: str
    member_ids: tuple[str, ...]

    @property
    def size(self) -> int:
        return len(self.member_ids)
