"""
Request and response models for the identity resolution API.

Every response is wrapped in an envelope: ``{success: true, data, meta}`` on
success and ``{success: false, error}`` on failure.
"""

from datetime import datetime
from typing import Any, Generic, Literal, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field

from personres.clock import utc_now
from personres.models import ConflictOption
from personserver.storage.models import MergeGroup, Stakeholder

T = TypeVar("T")


class ResponseMeta(BaseModel):
    timestamp: datetime = Field(default_factory=utc_now)


class SuccessResponse(BaseModel, Generic[T]):
    """Successful response envelope."""

    success: bool = True
    data: T
    meta: ResponseMeta = Field(default_factory=ResponseMeta)


class ErrorBody(BaseModel):
    code: str = Field(description="Error category (not_found, validation, conflict, internal, cancelled)")
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Failed response envelope."""

    success: bool = False
    error: ErrorBody


def ok(data: T) -> SuccessResponse[T]:
    return SuccessResponse(data=data)


# Stakeholders


class StakeholderRecord(BaseModel):
    stakeholder_id: str
    program_id: str
    person_name: str
    stakeholder_type: str
    is_internal: bool
    email: Optional[str] = None
    role: Optional[str] = None
    organization: Optional[str] = None
    engagement_level: Optional[str] = None
    department: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, stakeholder: Stakeholder) -> "StakeholderRecord":
        return cls.model_validate(stakeholder, from_attributes=True)


class StakeholderCreate(BaseModel):
    """Body of a stakeholder creation request.

    Without a type, the stakeholder is classified internal or external from
    its organization and the program's internal-organization aliases.
    """

    person_name: str = Field(min_length=1)
    stakeholder_type: Optional[str] = None
    is_internal: Optional[bool] = None
    email: Optional[str] = None
    role: Optional[str] = None
    organization: Optional[str] = None
    engagement_level: Optional[str] = None
    department: Optional[str] = None
    notes: Optional[str] = None


class StakeholderUpdate(BaseModel):
    """Body of a partial stakeholder update.

    Only fields present in the request are changed. An empty string clears
    an optional text field.
    """

    person_name: Optional[str] = None
    stakeholder_type: Optional[str] = None
    is_internal: Optional[bool] = None
    email: Optional[str] = None
    role: Optional[str] = None
    organization: Optional[str] = None
    engagement_level: Optional[str] = None
    department: Optional[str] = None
    notes: Optional[str] = None


class StakeholderMatch(BaseModel):
    stakeholder_id: str
    person_name: str
    match_type: Literal["exact", "fuzzy"]
    similarity: float


class LinkedArtifact(BaseModel):
    artifact_id: str
    filename: str
    uploaded_at: datetime
    mention_count: int


# Individual suggestions


class ArtifactRef(BaseModel):
    artifact_id: str
    filename: str
    mention_count: int


class PersonSuggestion(BaseModel):
    """An unresolved mention offered for review on its own."""

    person_id: str
    person_name: str
    person_role: Optional[str] = None
    person_organization: Optional[str] = None
    confidence_score: Optional[float] = None
    artifact_count: int
    total_mentions: int
    last_mentioned: datetime
    suggested_stakeholder_id: Optional[str] = None
    suggested_stakeholder_name: Optional[str] = None
    match_score: float = 0.0
    suggested_type: Literal["internal", "external"]
    suggested_is_internal: bool
    artifacts: list[ArtifactRef] = Field(default_factory=list)


# Merge groups


class MergeGroupRecord(BaseModel):
    group_id: str
    program_id: str
    suggested_name: str
    status: str
    has_role_conflicts: bool
    has_org_conflicts: bool
    resolved_name: Optional[str] = None
    resolved_role: Optional[str] = None
    resolved_organization: Optional[str] = None
    merged_stakeholder_id: Optional[str] = None
    merged_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, group: MergeGroup) -> "MergeGroupRecord":
        return cls.model_validate(group, from_attributes=True)


class GroupMemberView(BaseModel):
    person_id: str
    person_name: str
    person_role: Optional[str] = None
    person_organization: Optional[str] = None
    confidence_score: Optional[float] = None
    artifact_id: str
    mention_count: int
    similarity_score: float
    matching_method: str


class ContextSnippet(BaseModel):
    artifact_id: str
    artifact_name: str
    uploaded_at: datetime
    person_name: str
    snippet: str


class GroupedSuggestion(BaseModel):
    """A pending merge group with everything the review screen shows."""

    group_id: str
    suggested_name: str
    status: str
    has_role_conflicts: bool
    has_org_conflicts: bool
    total_persons: int
    total_artifacts: int
    total_mentions: int
    average_confidence: float
    last_mentioned: Optional[datetime] = None
    created_at: datetime
    members: list[GroupMemberView] = Field(default_factory=list)
    role_options: list[ConflictOption] = Field(default_factory=list)
    org_options: list[ConflictOption] = Field(default_factory=list)
    all_contexts: list[ContextSnippet] = Field(default_factory=list)


class RefreshGroupingResult(BaseModel):
    program_id: str
    mentions_considered: int
    windows: int = Field(description="Comparison batches of window_size mentions")
    edges: int
    groups_created: int
    groups_extended: int = 0
    mentions_attached: int = Field(0, description="Mentions added to existing pending groups")
    group_ids: list[str] = Field(default_factory=list)
    extended_group_ids: list[str] = Field(default_factory=list)


class ConfirmGroupRequest(BaseModel):
    selected_name: Optional[str] = None
    selected_role: Optional[str] = None
    selected_organization: Optional[str] = None
    create_stakeholder: bool = False


class ConfirmGroupResult(BaseModel):
    group: MergeGroupRecord
    stakeholder: Optional[StakeholderRecord] = None
    linked_person_ids: list[str] = Field(default_factory=list)


class ModifyMembersRequest(BaseModel):
    add_person_ids: list[UUID] = Field(default_factory=list)
    remove_person_ids: list[UUID] = Field(default_factory=list)


class ModifyMembersResult(BaseModel):
    group: MergeGroupRecord
    member_ids: list[str]
    added: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)


class LinkPersonRequest(BaseModel):
    stakeholder_id: UUID


class LinkPersonResult(BaseModel):
    person_id: str
    stakeholder_id: str
