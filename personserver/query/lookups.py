"""
Lookups that raise NotFoundError instead of returning None.
"""

from personres.errors import NotFoundError
from personserver.storage.interfaces import StorageInterface
from personserver.storage.models import MergeGroup, Program, Stakeholder


def require_program(storage: StorageInterface, program_id: str) -> Program:
    program = storage.get_program(program_id)
    if program is None:
        raise NotFoundError("Program not found", context={"program_id": program_id})
    return program


def require_group(storage: StorageInterface, program_id: str, group_id: str) -> MergeGroup:
    group = storage.get_merge_group(group_id)
    if group is None or group.program_id != program_id:
        raise NotFoundError("Merge group not found", context={"program_id": program_id, "group_id": group_id})
    return group


def require_stakeholder(storage: StorageInterface, program_id: str, stakeholder_id: str) -> Stakeholder:
    stakeholder = storage.get_stakeholder(stakeholder_id)
    if stakeholder is None or stakeholder.program_id != program_id:
        raise NotFoundError(
            "Stakeholder not found",
            context={"program_id": program_id, "stakeholder_id": stakeholder_id},
        )
    return stakeholder
