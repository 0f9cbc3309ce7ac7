"""
Read-side suggestion views and mention linking.

Individual suggestions list every unresolved mention of a program with a
nearest-stakeholder hint; grouped suggestions list pending merge groups with
their members, conflict options and context snippets.
"""

from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional

from personres.config import SuggestionConfig
from personres.conflicts import conflict_options
from personres.errors import NotFoundError
from personres.logging import setup_logging
from personres.models import MergeGroupStatus, StakeholderClassification
from personres.similarity import NameSimilarity, best_name_match, classify_organization, name_similarity
from personserver.storage.interfaces import StorageInterface
from personserver.storage.models import Artifact, ArtifactPerson

from .lookups import require_program, require_stakeholder
from .schemas import (
    ArtifactRef,
    ContextSnippet,
    GroupedSuggestion,
    GroupMemberView,
    LinkPersonResult,
    PersonSuggestion,
)

logger = setup_logging()

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def truncate_snippet(snippet: str, length: int) -> str:
    if len(snippet) <= length:
        return snippet
    return snippet[:length] + "..."


def _artifact_refs(rows: list[ArtifactPerson], artifacts: dict[str, Artifact], limit: int) -> list[ArtifactRef]:
    counts: dict[str, int] = defaultdict(int)
    for row in rows:
        counts[row.artifact_id] += row.mention_count
    ordered = sorted(
        (artifacts[artifact_id] for artifact_id in counts if artifact_id in artifacts),
        key=lambda a: (-counts[a.artifact_id], -a.uploaded_at.timestamp(), a.artifact_id),
    )
    return [
        ArtifactRef(artifact_id=a.artifact_id, filename=a.filename, mention_count=counts[a.artifact_id])
        for a in ordered[:limit]
    ]


def get_suggestions(
    storage: StorageInterface,
    program_id: str,
    config: Optional[SuggestionConfig] = None,
    exclude_grouped: bool = False,
    similarity: NameSimilarity = name_similarity,
) -> list[PersonSuggestion]:
    """
    One suggestion per unresolved mention, most mentioned first.

    A program with no unresolved mentions yields an empty list.
    """
    config = config or SuggestionConfig()
    program = require_program(storage, program_id)

    rows = list(storage.get_program_mentions(program_id, unresolved_only=True))
    if exclude_grouped:
        pending = storage.get_pending_member_ids(program_id)
        rows = [row for row in rows if row.person_id not in pending]
    if not rows:
        return []

    artifacts = {a.artifact_id: a for a in storage.get_artifacts(row.artifact_id for row in rows)}
    candidates = [(s, s.person_name) for s in storage.get_program_stakeholders(program_id)]

    by_person: dict[str, list[ArtifactPerson]] = defaultdict(list)
    for row in rows:
        by_person[row.person_id].append(row)

    suggestions: list[PersonSuggestion] = []
    for person_id, person_rows in by_person.items():
        first = person_rows[0]
        match = best_name_match(first.person_name, candidates, config.stakeholder_match_threshold, similarity)
        classification = classify_organization(first.person_organization, program.internal_organization)
        suggestions.append(
            PersonSuggestion(
                person_id=person_id,
                person_name=first.person_name,
                person_role=first.person_role,
                person_organization=first.person_organization,
                confidence_score=first.confidence_score,
                artifact_count=len({row.artifact_id for row in person_rows}),
                total_mentions=sum(row.mention_count for row in person_rows),
                last_mentioned=max(row.extracted_at for row in person_rows),
                suggested_stakeholder_id=match[0].stakeholder_id if match else None,
                suggested_stakeholder_name=match[0].person_name if match else None,
                match_score=match[1] if match else 0.0,
                suggested_type=classification.value,
                suggested_is_internal=classification is StakeholderClassification.INTERNAL,
                artifacts=_artifact_refs(person_rows, artifacts, config.max_artifacts),
            )
        )

    suggestions.sort(key=lambda s: (-s.total_mentions, -s.last_mentioned.timestamp(), s.person_id))
    return suggestions


def get_grouped_suggestions(
    storage: StorageInterface,
    program_id: str,
    config: Optional[SuggestionConfig] = None,
) -> list[GroupedSuggestion]:
    """
    Pending merge groups, most mentioned first.

    Conflict options are recomputed from the current members and only
    included when the group's matching conflict flag is set.
    """
    config = config or SuggestionConfig()
    require_program(storage, program_id)

    grouped: list[GroupedSuggestion] = []
    for group in storage.get_merge_groups(program_id, status=MergeGroupStatus.PENDING.value):
        members = storage.get_group_members(group.group_id)
        mentions = {row.person_id: row for row in storage.get_mentions(m.person_id for m in members)}
        pairs = [(member, mentions[member.person_id]) for member in members if member.person_id in mentions]
        rows = [row for _, row in pairs]
        artifacts = {a.artifact_id: a for a in storage.get_artifacts(row.artifact_id for row in rows)}

        member_views = [
            GroupMemberView(
                person_id=row.person_id,
                person_name=row.person_name,
                person_role=row.person_role,
                person_organization=row.person_organization,
                confidence_score=row.confidence_score,
                artifact_id=row.artifact_id,
                mention_count=row.mention_count,
                similarity_score=member.similarity_score,
                matching_method=member.matching_method,
            )
            for member, row in pairs
        ]

        contexts = []
        for row in rows:
            artifact = artifacts.get(row.artifact_id)
            if artifact is None:
                continue
            snippet = row.first_snippet() or ""
            contexts.append(
                ContextSnippet(
                    artifact_id=artifact.artifact_id,
                    artifact_name=artifact.filename,
                    uploaded_at=artifact.uploaded_at,
                    person_name=row.person_name,
                    snippet=truncate_snippet(snippet, config.snippet_length),
                )
            )
        contexts.sort(key=lambda c: (-c.uploaded_at.timestamp(), c.artifact_id, c.person_name))

        grouped.append(
            GroupedSuggestion(
                group_id=group.group_id,
                suggested_name=group.suggested_name,
                status=group.status,
                has_role_conflicts=group.has_role_conflicts,
                has_org_conflicts=group.has_org_conflicts,
                total_persons=len(rows),
                total_artifacts=len({row.artifact_id for row in rows}),
                total_mentions=sum(row.mention_count for row in rows),
                average_confidence=(sum(row.confidence_score or 0.0 for row in rows) / len(rows)) if rows else 0.0,
                last_mentioned=max((row.extracted_at for row in rows), default=None),
                created_at=group.created_at,
                members=member_views,
                role_options=list(conflict_options((r.person_role, r.confidence_score) for r in rows))
                if group.has_role_conflicts
                else [],
                org_options=list(conflict_options((r.person_organization, r.confidence_score) for r in rows))
                if group.has_org_conflicts
                else [],
                all_contexts=contexts,
            )
        )

    grouped.sort(key=lambda g: (-g.total_mentions, -(g.last_mentioned or _EPOCH).timestamp(), g.group_id))
    return grouped


def link_person_to_stakeholder(
    storage: StorageInterface,
    program_id: str,
    person_id: str,
    stakeholder_id: str,
) -> LinkPersonResult:
    """
    Resolve one mention to a stakeholder of the same program. Re-linking an
    already resolved mention overwrites its stakeholder.
    """
    with storage.transaction():
        require_program(storage, program_id)
        mention = storage.get_program_mention(program_id, person_id)
        if mention is None:
            raise NotFoundError("Person mention not found", context={"program_id": program_id, "person_id": person_id})
        require_stakeholder(storage, program_id, stakeholder_id)
        previous = mention.stakeholder_id
        storage.link_mentions([person_id], stakeholder_id)

    logger.info(
        {
            "message": "Linked person to stakeholder",
            "person_id": person_id,
            "stakeholder_id": stakeholder_id,
            "previous_stakeholder_id": previous,
        }
    )
    return LinkPersonResult(person_id=person_id, stakeholder_id=stakeholder_id)
