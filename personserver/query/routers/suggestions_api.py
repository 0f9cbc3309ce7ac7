"""
Suggestion and merge-review router for the identity resolution server.

Provides the review endpoints: individual and grouped suggestions, refreshing
the grouping, confirming, rejecting and editing merge groups, and linking a
single mention to a stakeholder.
"""

import asyncio
import threading
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from personres.config import ResolutionConfig
from personserver.storage.interfaces import StorageInterface

from ..grouping import refresh_grouping
from ..merge_workflow import confirm_group, modify_members, reject_group
from ..schemas import (
    ConfirmGroupRequest,
    ConfirmGroupResult,
    GroupedSuggestion,
    LinkPersonRequest,
    LinkPersonResult,
    MergeGroupRecord,
    ModifyMembersRequest,
    ModifyMembersResult,
    PersonSuggestion,
    RefreshGroupingResult,
    SuccessResponse,
    ok,
)
from ..settings import get_resolution_config
from ..storage_factory import get_storage
from ..suggestions import get_grouped_suggestions, get_suggestions, link_person_to_stakeholder

router = APIRouter(prefix="/programs/{program_id}", tags=["Stakeholder Suggestions"])


@router.get(
    "/stakeholders/suggestions",
    response_model=SuccessResponse[list[PersonSuggestion]],
    summary="List individual stakeholder suggestions",
)
async def list_suggestions(
    program_id: UUID,
    exclude_grouped: bool = Query(
        default=False,
        description="Hide mentions that already belong to a pending merge group",
    ),
    storage: StorageInterface = Depends(get_storage),
    config: ResolutionConfig = Depends(get_resolution_config),
):
    """
    Every unresolved person mention of the program, with the closest existing
    stakeholder and a suggested internal/external classification.
    """
    return ok(get_suggestions(storage, str(program_id), config.suggestions, exclude_grouped=exclude_grouped))


@router.get(
    "/stakeholders/suggestions/grouped",
    response_model=SuccessResponse[list[GroupedSuggestion]],
    summary="List pending merge groups",
)
async def list_grouped_suggestions(
    program_id: UUID,
    storage: StorageInterface = Depends(get_storage),
    config: ResolutionConfig = Depends(get_resolution_config),
):
    return ok(get_grouped_suggestions(storage, str(program_id), config.suggestions))


@router.post(
    "/stakeholders/suggestions/refresh-grouping",
    response_model=SuccessResponse[RefreshGroupingResult],
    summary="Cluster unresolved mentions into merge groups",
)
async def refresh_suggestion_grouping(
    program_id: UUID,
    storage: StorageInterface = Depends(get_storage),
    config: ResolutionConfig = Depends(get_resolution_config),
):
    """
    Re-run clustering over the program's unresolved mentions. New mentions
    matching a pending group join it; other clusters become new groups.

    Clustering runs in a worker thread. If the request is cancelled (the
    client disconnects) the worker stops at its next batch boundary and
    rolls back.
    """
    cancel = threading.Event()
    try:
        result = await asyncio.to_thread(refresh_grouping, storage, str(program_id), config.grouping, cancel=cancel)
    except asyncio.CancelledError:
        cancel.set()
        raise
    return ok(result)


@router.post(
    "/stakeholders/suggestions/groups/{group_id}/confirm",
    response_model=SuccessResponse[ConfirmGroupResult],
    summary="Confirm a merge group",
)
async def confirm_merge_group(
    program_id: UUID,
    group_id: UUID,
    body: ConfirmGroupRequest,
    storage: StorageInterface = Depends(get_storage),
):
    result = confirm_group(
        storage,
        str(program_id),
        str(group_id),
        selected_name=body.selected_name,
        selected_role=body.selected_role,
        selected_organization=body.selected_organization,
        create_stakeholder=body.create_stakeholder,
    )
    return ok(result)


@router.post(
    "/stakeholders/suggestions/groups/{group_id}/reject",
    response_model=SuccessResponse[MergeGroupRecord],
    summary="Reject a merge group",
)
async def reject_merge_group(
    program_id: UUID,
    group_id: UUID,
    storage: StorageInterface = Depends(get_storage),
):
    return ok(reject_group(storage, str(program_id), str(group_id)))


@router.post(
    "/stakeholders/suggestions/groups/{group_id}/members",
    response_model=SuccessResponse[ModifyMembersResult],
    summary="Add or remove merge group members",
)
async def modify_merge_group_members(
    program_id: UUID,
    group_id: UUID,
    body: ModifyMembersRequest,
    storage: StorageInterface = Depends(get_storage),
    config: ResolutionConfig = Depends(get_resolution_config),
):
    result = modify_members(
        storage,
        str(program_id),
        str(group_id),
        add_person_ids=[str(person_id) for person_id in body.add_person_ids],
        remove_person_ids=[str(person_id) for person_id in body.remove_person_ids],
        config=config.grouping,
    )
    return ok(result)


@router.post(
    "/persons/{person_id}/link",
    response_model=SuccessResponse[LinkPersonResult],
    summary="Link a person mention to a stakeholder",
)
async def link_person(
    program_id: UUID,
    person_id: UUID,
    body: LinkPersonRequest,
    storage: StorageInterface = Depends(get_storage),
):
    return ok(link_person_to_stakeholder(storage, str(program_id), str(person_id), str(body.stakeholder_id)))
