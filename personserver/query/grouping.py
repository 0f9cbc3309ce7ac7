"""
Refresh grouping: cluster a program's unresolved mentions into pending merge groups.
"""

import threading
import uuid
from typing import Optional

from personres.clock import utc_now
from personres.clustering import cluster_mentions
from personres.config import GroupingConfig
from personres.conflicts import analyze_conflicts
from personres.errors import OperationCancelled
from personres.logging import setup_logging
from personres.models import MatchingMethod, MentionCluster, MergeGroupStatus, PersonMention
from personres.similarity import NameSimilarity, name_similarity
from personserver.storage.interfaces import StorageInterface
from personserver.storage.models import MergeGroup, MergeGroupMember

from .lookups import require_program
from .schemas import RefreshGroupingResult

logger = setup_logging()


def _pending_memberships(storage: StorageInterface, program_id: str) -> dict[str, list[str]]:
    """Pending group id -> member person_ids, oldest group first."""
    return {
        group.group_id: [member.person_id for member in storage.get_group_members(group.group_id)]
        for group in storage.get_merge_groups(program_id, status=MergeGroupStatus.PENDING.value)
    }


def _apply_analysis(group: MergeGroup, mentions: list[PersonMention]) -> None:
    analysis = analyze_conflicts(mentions)
    group.suggested_name = analysis.suggested_name
    group.has_role_conflicts = analysis.has_role_conflicts
    group.has_org_conflicts = analysis.has_org_conflicts


def _create_group(
    storage: StorageInterface,
    program_id: str,
    cluster: MentionCluster,
    by_id: dict[str, PersonMention],
    config: GroupingConfig,
) -> MergeGroup:
    analysis = analyze_conflicts([by_id[person_id] for person_id in cluster.member_ids])
    now = utc_now()
    group = storage.save_merge_group(
        MergeGroup(
            group_id=str(uuid.uuid4()),
            program_id=program_id,
            suggested_name=analysis.suggested_name,
            status=MergeGroupStatus.PENDING.value,
            has_role_conflicts=analysis.has_role_conflicts,
            has_org_conflicts=analysis.has_org_conflicts,
            created_at=now,
            updated_at=now,
        )
    )
    storage.add_group_members(
        MergeGroupMember(
            group_id=group.group_id,
            person_id=person_id,
            similarity_score=1.0 if person_id == cluster.root_id else config.member_similarity,
            matching_method=MatchingMethod.FUZZY_NAME.value,
            added_at=now,
        )
        for person_id in cluster.member_ids
    )
    return group


def _extend_group(
    storage: StorageInterface,
    group_id: str,
    person_ids: list[str],
    by_id: dict[str, PersonMention],
    config: GroupingConfig,
) -> MergeGroup:
    now = utc_now()
    storage.add_group_members(
        MergeGroupMember(
            group_id=group_id,
            person_id=person_id,
            similarity_score=config.member_similarity,
            matching_method=MatchingMethod.FUZZY_NAME.value,
            added_at=now,
        )
        for person_id in person_ids
    )
    group = storage.get_merge_group(group_id)
    member_ids = [member.person_id for member in storage.get_group_members(group_id)]
    _apply_analysis(group, [by_id[person_id] for person_id in member_ids if person_id in by_id])
    group.updated_at = now
    return storage.save_merge_group(group)


def refresh_grouping(
    storage: StorageInterface,
    program_id: str,
    config: Optional[GroupingConfig] = None,
    similarity: NameSimilarity = name_similarity,
    cancel: Optional[threading.Event] = None,
) -> RefreshGroupingResult:
    """
    Cluster every unresolved mention of the program and record the clusters
    as pending merge groups.

    Members of pending groups take part in the comparison and stay joined
    to their group. A cluster that reaches a pending group adds its other
    mentions to that group (the one with most members, oldest on ties);
    a cluster that reaches none becomes a new group. Clusters made only of
    existing members change nothing, so repeated refreshes never duplicate
    groups.

    Runs under the program lock in one transaction, so concurrent refreshes
    of the same program are serialized and a failure or cancellation
    persists nothing. Comparison proceeds in batches of
    ``config.window_size`` mentions with cancellation checked between them.
    """
    config = config or GroupingConfig()
    require_program(storage, program_id)

    with storage.lock_program(program_id), storage.transaction():
        mentions = [row.to_mention() for row in storage.get_program_mentions(program_id, unresolved_only=True)]
        memberships = _pending_memberships(storage, program_id)
        result = cluster_mentions(mentions, config, similarity, cancel, linked=memberships.values())

        if cancel is not None and cancel.is_set():
            raise OperationCancelled("Clustering cancelled", context={"phase": "persist", "program_id": program_id})

        group_of: dict[str, str] = {}
        for group_id, person_ids in memberships.items():
            for person_id in person_ids:
                group_of.setdefault(person_id, group_id)

        by_id = {mention.person_id: mention for mention in mentions}
        rank = {group_id: i for i, group_id in enumerate(memberships)}
        created: list[str] = []
        extended: list[str] = []
        attached = 0
        for cluster in result.clusters:
            loose = [person_id for person_id in cluster.member_ids if person_id not in group_of]
            if not loose:
                continue
            touched = {group_of[person_id] for person_id in cluster.member_ids if person_id in group_of}
            if not touched:
                created.append(_create_group(storage, program_id, cluster, by_id, config).group_id)
                continue
            target = min(touched, key=lambda group_id: (-len(memberships[group_id]), rank[group_id]))
            _extend_group(storage, target, loose, by_id, config)
            extended.append(target)
            attached += len(loose)

    refresh = RefreshGroupingResult(
        program_id=program_id,
        mentions_considered=result.mention_count,
        windows=result.window_count,
        edges=result.edge_count,
        groups_created=len(created),
        groups_extended=len(extended),
        mentions_attached=attached,
        group_ids=created,
        extended_group_ids=extended,
    )
    logger.info({"message": "Refreshed person grouping", "result": refresh.model_dump()})
    return refresh
