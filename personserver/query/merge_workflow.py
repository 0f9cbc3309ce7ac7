"""
Review workflow for merge groups: confirm, reject and edit membership.

A group starts ``pending`` and moves exactly once to ``confirmed``,
``merged`` (confirmed with a new stakeholder) or ``rejected``. Each operation
runs in one transaction; any failure leaves the group, its members, the
stakeholders and the mentions as they were.
"""

import uuid
from typing import Iterable, Optional

from personres.clock import utc_now
from personres.config import GroupingConfig
from personres.conflicts import analyze_conflicts
from personres.errors import ConflictError, NotFoundError, ValidationError
from personres.logging import setup_logging
from personres.models import MatchingMethod, MergeGroupStatus, StakeholderClassification
from personres.similarity import classify_organization
from personserver.storage.interfaces import StorageInterface
from personserver.storage.models import MergeGroup, MergeGroupMember, Stakeholder

from .lookups import require_group, require_program
from .schemas import ConfirmGroupResult, MergeGroupRecord, ModifyMembersResult, StakeholderRecord

logger = setup_logging()


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


def _require_pending(group: MergeGroup, operation: str) -> None:
    if MergeGroupStatus(group.status).is_terminal:
        raise ConflictError(
            f"Cannot {operation} a group that is {group.status}",
            context={"group_id": group.group_id, "status": group.status, "operation": operation},
        )


def confirm_group(
    storage: StorageInterface,
    program_id: str,
    group_id: str,
    selected_name: Optional[str],
    selected_role: Optional[str] = None,
    selected_organization: Optional[str] = None,
    create_stakeholder: bool = False,
) -> ConfirmGroupResult:
    """
    Accept a pending group under the reviewer's chosen name, role and organization.

    With ``create_stakeholder`` the group becomes ``merged``: a stakeholder is
    created, classified internal when the organization is empty or matches
    one of the program's internal-organization aliases, and every member
    mention is linked to it. Otherwise the group becomes ``confirmed`` and no
    mention changes.
    """
    name = _clean(selected_name)
    if name is None:
        raise ValidationError("selected_name is required", context={"group_id": group_id})
    role = _clean(selected_role)
    organization = _clean(selected_organization)

    with storage.transaction():
        group = require_group(storage, program_id, group_id)
        _require_pending(group, "confirm")
        program = require_program(storage, program_id)

        now = utc_now()
        group.resolved_name = name
        group.resolved_role = role
        group.resolved_organization = organization
        group.status = (MergeGroupStatus.MERGED if create_stakeholder else MergeGroupStatus.CONFIRMED).value
        group.updated_at = now

        stakeholder: Optional[Stakeholder] = None
        linked: list[str] = []
        if create_stakeholder:
            classification = classify_organization(organization, program.internal_organization)
            stakeholder = storage.add_stakeholder(
                Stakeholder(
                    stakeholder_id=str(uuid.uuid4()),
                    program_id=program_id,
                    person_name=name,
                    stakeholder_type=classification.value,
                    is_internal=classification is StakeholderClassification.INTERNAL,
                    role=role,
                    organization=organization,
                    created_at=now,
                    updated_at=now,
                )
            )
            linked = [member.person_id for member in storage.get_group_members(group_id)]
            storage.link_mentions(linked, stakeholder.stakeholder_id)
            group.merged_stakeholder_id = stakeholder.stakeholder_id
            group.merged_at = now

        storage.save_merge_group(group)
        result = ConfirmGroupResult(
            group=MergeGroupRecord.from_model(group),
            stakeholder=StakeholderRecord.from_model(stakeholder) if stakeholder is not None else None,
            linked_person_ids=sorted(linked),
        )

    logger.info(
        {
            "message": "Confirmed merge group",
            "group_id": group_id,
            "status": result.group.status,
            "stakeholder_id": result.group.merged_stakeholder_id,
            "linked": len(linked),
        }
    )
    return result


def reject_group(storage: StorageInterface, program_id: str, group_id: str) -> MergeGroupRecord:
    """
    Mark a pending group rejected. Members stay in the group and their
    mentions stay unresolved.
    """
    with storage.transaction():
        group = require_group(storage, program_id, group_id)
        _require_pending(group, "reject")
        group.status = MergeGroupStatus.REJECTED.value
        group.updated_at = utc_now()
        storage.save_merge_group(group)
        record = MergeGroupRecord.from_model(group)

    logger.info({"message": "Rejected merge group", "group_id": group_id})
    return record


def modify_members(
    storage: StorageInterface,
    program_id: str,
    group_id: str,
    add_person_ids: Iterable[str] = (),
    remove_person_ids: Iterable[str] = (),
    config: Optional[GroupingConfig] = None,
) -> ModifyMembersResult:
    """
    Remove, then add, members of a pending group.

    Added members are recorded as ``manual`` with the configured manual
    similarity; mentions that are already members are left alone. The
    suggested name and conflict flags are recomputed from the resulting
    membership.
    """
    config = config or GroupingConfig()
    to_add = _unique(add_person_ids)
    to_remove = _unique(remove_person_ids)

    with storage.transaction():
        group = require_group(storage, program_id, group_id)
        _require_pending(group, "modify")

        for person_id in to_add:
            if storage.get_program_mention(program_id, person_id) is None:
                raise NotFoundError(
                    "Person mention not found",
                    context={"program_id": program_id, "group_id": group_id, "person_id": person_id},
                )

        before = {member.person_id for member in storage.get_group_members(group_id)}
        removed = [person_id for person_id in to_remove if person_id in before]
        storage.remove_group_members(group_id, removed)
        current = before.difference(removed)
        added = [person_id for person_id in to_add if person_id not in current]
        now = utc_now()
        storage.add_group_members(
            MergeGroupMember(
                group_id=group_id,
                person_id=person_id,
                similarity_score=config.manual_similarity,
                matching_method=MatchingMethod.MANUAL.value,
                added_at=now,
            )
            for person_id in added
        )

        member_ids = [member.person_id for member in storage.get_group_members(group_id)]
        mentions = [row.to_mention() for row in storage.get_mentions(member_ids)]
        if mentions:
            analysis = analyze_conflicts(mentions)
            group.suggested_name = analysis.suggested_name
            group.has_role_conflicts = analysis.has_role_conflicts
            group.has_org_conflicts = analysis.has_org_conflicts
        else:
            group.has_role_conflicts = False
            group.has_org_conflicts = False
        group.updated_at = now
        storage.save_merge_group(group)

        result = ModifyMembersResult(
            group=MergeGroupRecord.from_model(group),
            member_ids=member_ids,
            added=added,
            removed=removed,
        )

    logger.info(
        {
            "message": "Modified merge group members",
            "group_id": group_id,
            "added": result.added,
            "removed": result.removed,
            "members": len(member_ids),
        }
    )
    return result
