"""
Stakeholder directory: listing, creation, name matching and linked artifacts.
"""

import uuid
from collections import defaultdict
from typing import Optional

from personres.clock import utc_now
from personres.config import SuggestionConfig
from personres.errors import NotFoundError, ValidationError
from personres.logging import setup_logging
from personres.models import ENGAGEMENT_LEVELS, STAKEHOLDER_TYPES, StakeholderClassification
from personres.similarity import NameSimilarity, best_name_match, classify_organization, name_similarity
from personserver.storage.filters import StakeholderFilter
from personserver.storage.interfaces import StorageInterface
from personserver.storage.models import Stakeholder

from .lookups import require_program, require_stakeholder
from .schemas import LinkedArtifact, StakeholderCreate, StakeholderMatch, StakeholderRecord, StakeholderUpdate

logger = setup_logging()

_REQUIRED_FIELDS = ("person_name", "stakeholder_type", "is_internal")


def _validate_choice(field: str, value: Optional[str], allowed: frozenset[str]) -> None:
    if value is not None and value not in allowed:
        raise ValidationError(
            f"Invalid {field}",
            context={"field": field, "value": value, "allowed": sorted(allowed)},
        )


def list_stakeholders(
    storage: StorageInterface,
    program_id: str,
    stakeholder_filter: Optional[StakeholderFilter] = None,
) -> list[StakeholderRecord]:
    stakeholder_filter = stakeholder_filter or StakeholderFilter()
    _validate_choice("stakeholder_type", stakeholder_filter.stakeholder_type, STAKEHOLDER_TYPES)
    _validate_choice("engagement_level", stakeholder_filter.engagement_level, ENGAGEMENT_LEVELS)
    require_program(storage, program_id)
    return [StakeholderRecord.from_model(s) for s in storage.list_stakeholders(program_id, stakeholder_filter)]


def get_stakeholder(storage: StorageInterface, program_id: str, stakeholder_id: str) -> StakeholderRecord:
    return StakeholderRecord.from_model(require_stakeholder(storage, program_id, stakeholder_id))


def create_stakeholder(storage: StorageInterface, program_id: str, payload: StakeholderCreate) -> StakeholderRecord:
    """
    Create a stakeholder. Without an explicit type the organization decides
    between internal and external.
    """
    name = payload.person_name.strip()
    if not name:
        raise ValidationError("person_name is required", context={"program_id": program_id})
    _validate_choice("stakeholder_type", payload.stakeholder_type, STAKEHOLDER_TYPES)
    _validate_choice("engagement_level", payload.engagement_level, ENGAGEMENT_LEVELS)

    with storage.transaction():
        program = require_program(storage, program_id)
        stakeholder_type = payload.stakeholder_type
        if stakeholder_type is None:
            stakeholder_type = classify_organization(payload.organization, program.internal_organization).value
        is_internal = payload.is_internal
        if is_internal is None:
            is_internal = stakeholder_type == StakeholderClassification.INTERNAL.value
        now = utc_now()
        stakeholder = storage.add_stakeholder(
            Stakeholder(
                stakeholder_id=str(uuid.uuid4()),
                program_id=program_id,
                person_name=name,
                stakeholder_type=stakeholder_type,
                is_internal=is_internal,
                email=payload.email,
                role=payload.role,
                organization=payload.organization,
                engagement_level=payload.engagement_level,
                department=payload.department,
                notes=payload.notes,
                created_at=now,
                updated_at=now,
            )
        )
        record = StakeholderRecord.from_model(stakeholder)

    logger.info({"message": "Created stakeholder", "stakeholder_id": record.stakeholder_id, "type": record.stakeholder_type})
    return record


def update_stakeholder(
    storage: StorageInterface,
    program_id: str,
    stakeholder_id: str,
    payload: StakeholderUpdate,
) -> StakeholderRecord:
    """
    Change the fields present in ``payload``. Soft-deleted stakeholders are
    not found; a request without any field is a ValidationError.
    """
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update", context={"stakeholder_id": stakeholder_id})
    for field in _REQUIRED_FIELDS:
        if field in changes and changes[field] is None:
            raise ValidationError(f"{field} cannot be null", context={"field": field})
    if "person_name" in changes:
        changes["person_name"] = changes["person_name"].strip()
        if not changes["person_name"]:
            raise ValidationError("person_name cannot be blank", context={"stakeholder_id": stakeholder_id})
    for field, value in changes.items():
        if field not in _REQUIRED_FIELDS and isinstance(value, str):
            changes[field] = value.strip() or None
    _validate_choice("stakeholder_type", changes.get("stakeholder_type"), STAKEHOLDER_TYPES)
    _validate_choice("engagement_level", changes.get("engagement_level"), ENGAGEMENT_LEVELS)

    with storage.transaction():
        stakeholder = require_stakeholder(storage, program_id, stakeholder_id)
        for field, value in changes.items():
            setattr(stakeholder, field, value)
        stakeholder.updated_at = utc_now()
        storage.save_stakeholder(stakeholder)
        record = StakeholderRecord.from_model(stakeholder)

    logger.info({"message": "Updated stakeholder", "stakeholder_id": stakeholder_id, "fields": sorted(changes)})
    return record


def delete_stakeholder(storage: StorageInterface, program_id: str, stakeholder_id: str) -> StakeholderRecord:
    """
    Soft-delete a stakeholder. Mentions linked to it keep their link; the
    stakeholder disappears from listings, lookups and name matching.
    """
    with storage.transaction():
        stakeholder = require_stakeholder(storage, program_id, stakeholder_id)
        now = utc_now()
        stakeholder.deleted_at = now
        stakeholder.updated_at = now
        storage.save_stakeholder(stakeholder)
        record = StakeholderRecord.from_model(stakeholder)

    logger.info({"message": "Deleted stakeholder", "stakeholder_id": stakeholder_id})
    return record


def auto_link_by_name(
    storage: StorageInterface,
    program_id: str,
    name: str,
    config: Optional[SuggestionConfig] = None,
    similarity: NameSimilarity = name_similarity,
) -> StakeholderMatch:
    """
    Find the stakeholder a name refers to.

    An exact, case-insensitive name match wins outright. Otherwise the most
    similar stakeholder above the match threshold is returned. NotFoundError
    when neither exists.
    """
    config = config or SuggestionConfig()
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required", context={"program_id": program_id})
    require_program(storage, program_id)

    exact = storage.find_stakeholder_by_name(program_id, name)
    if exact is not None:
        return StakeholderMatch(
            stakeholder_id=exact.stakeholder_id,
            person_name=exact.person_name,
            match_type="exact",
            similarity=1.0,
        )

    candidates = [(s, s.person_name) for s in storage.get_program_stakeholders(program_id)]
    match = best_name_match(name, candidates, config.stakeholder_match_threshold, similarity)
    if match is None:
        raise NotFoundError("No stakeholder matches name", context={"program_id": program_id, "name": name})
    stakeholder, score = match
    return StakeholderMatch(
        stakeholder_id=stakeholder.stakeholder_id,
        person_name=stakeholder.person_name,
        match_type="fuzzy",
        similarity=score,
    )


def get_linked_artifacts(storage: StorageInterface, program_id: str, stakeholder_id: str) -> list[LinkedArtifact]:
    """
    Artifacts with mentions resolved to the stakeholder, newest upload first.
    """
    require_stakeholder(storage, program_id, stakeholder_id)
    counts: dict[str, int] = defaultdict(int)
    for mention in storage.get_stakeholder_mentions(stakeholder_id):
        counts[mention.artifact_id] += mention.mention_count
    artifacts = sorted(
        storage.get_artifacts(counts),
        key=lambda a: (-a.uploaded_at.timestamp(), a.artifact_id),
    )
    return [
        LinkedArtifact(
            artifact_id=a.artifact_id,
            filename=a.filename,
            uploaded_at=a.uploaded_at,
            mention_count=counts[a.artifact_id],
        )
        for a in artifacts
    ]
