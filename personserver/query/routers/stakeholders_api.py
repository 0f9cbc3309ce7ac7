"""
Stakeholder directory router for the identity resolution server.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from personres.config import ResolutionConfig
from personserver.storage.filters import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, StakeholderFilter
from personserver.storage.interfaces import StorageInterface

from ..schemas import (
    LinkedArtifact,
    StakeholderCreate,
    StakeholderMatch,
    StakeholderRecord,
    StakeholderUpdate,
    SuccessResponse,
    ok,
)
from ..settings import get_resolution_config
from ..stakeholders import (
    auto_link_by_name,
    create_stakeholder,
    delete_stakeholder,
    get_linked_artifacts,
    get_stakeholder,
    list_stakeholders,
    update_stakeholder,
)
from ..storage_factory import get_storage

router = APIRouter(prefix="/programs/{program_id}/stakeholders", tags=["Stakeholders"])


@router.get(
    "",
    response_model=SuccessResponse[list[StakeholderRecord]],
    summary="List stakeholders",
)
async def list_program_stakeholders(
    program_id: UUID,
    stakeholder_type: Optional[str] = Query(default=None, description="internal, external, vendor, partner or customer"),
    is_internal: Optional[bool] = Query(default=None),
    engagement_level: Optional[str] = Query(default=None, description="key, primary, secondary or observer"),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    storage: StorageInterface = Depends(get_storage),
):
    stakeholder_filter = StakeholderFilter(
        stakeholder_type=stakeholder_type,
        is_internal=is_internal,
        engagement_level=engagement_level,
        limit=limit,
        offset=offset,
    )
    return ok(list_stakeholders(storage, str(program_id), stakeholder_filter))


@router.post(
    "",
    response_model=SuccessResponse[StakeholderRecord],
    status_code=201,
    summary="Create a stakeholder",
)
async def create_program_stakeholder(
    program_id: UUID,
    body: StakeholderCreate,
    storage: StorageInterface = Depends(get_storage),
):
    return ok(create_stakeholder(storage, str(program_id), body))


@router.get(
    "/match",
    response_model=SuccessResponse[StakeholderMatch],
    summary="Find the stakeholder a name refers to",
    description="""
Exact case-insensitive name matches win. Otherwise the most similar
stakeholder above the similarity threshold is returned, or 404.
""",
)
async def match_stakeholder_by_name(
    program_id: UUID,
    name: str = Query(..., min_length=1, description="Person name to match"),
    storage: StorageInterface = Depends(get_storage),
    config: ResolutionConfig = Depends(get_resolution_config),
):
    return ok(auto_link_by_name(storage, str(program_id), name, config.suggestions))


@router.get(
    "/{stakeholder_id}",
    response_model=SuccessResponse[StakeholderRecord],
    summary="Get a stakeholder",
)
async def get_program_stakeholder(
    program_id: UUID,
    stakeholder_id: UUID,
    storage: StorageInterface = Depends(get_storage),
):
    return ok(get_stakeholder(storage, str(program_id), str(stakeholder_id)))


@router.patch(
    "/{stakeholder_id}",
    response_model=SuccessResponse[StakeholderRecord],
    summary="Update a stakeholder",
)
async def update_program_stakeholder(
    program_id: UUID,
    stakeholder_id: UUID,
    body: StakeholderUpdate,
    storage: StorageInterface = Depends(get_storage),
):
    """
    Partial update: only the fields sent in the body change.
    """
    return ok(update_stakeholder(storage, str(program_id), str(stakeholder_id), body))


@router.delete(
    "/{stakeholder_id}",
    response_model=SuccessResponse[StakeholderRecord],
    summary="Soft-delete a stakeholder",
)
async def delete_program_stakeholder(
    program_id: UUID,
    stakeholder_id: UUID,
    storage: StorageInterface = Depends(get_storage),
):
    return ok(delete_stakeholder(storage, str(program_id), str(stakeholder_id)))


@router.get(
    "/{stakeholder_id}/artifacts",
    response_model=SuccessResponse[list[LinkedArtifact]],
    summary="List artifacts that mention a stakeholder",
)
async def get_stakeholder_artifacts(
    program_id: UUID,
    stakeholder_id: UUID,
    storage: StorageInterface = Depends(get_storage),
):
    return ok(get_linked_artifacts(storage, str(program_id), str(stakeholder_id)))
