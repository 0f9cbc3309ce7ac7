"""
Storage interfaces for the identity resolution server.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Iterable, Optional, Sequence

from .filters import StakeholderFilter
from .models import Artifact, ArtifactPerson, MergeGroup, MergeGroupMember, Program, Stakeholder


class StorageInterface(ABC):
    """
    Abstract interface for an identity resolution storage backend.

    Write methods take effect inside the current transaction. Called outside
    ``transaction()`` each write commits on its own.
    """

    # Transactions and locking

    @abstractmethod
    def transaction(self) -> AbstractContextManager["StorageInterface"]:
        """
        Run a block atomically: commit on success, roll back on any exception.
        Nested calls join the outermost transaction.
        """
        pass

    @abstractmethod
    def lock_program(self, program_id: str) -> AbstractContextManager[None]:
        """
        Serialize a block against other holders of the same program lock.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Close connections and clean up resources.
        """
        pass

    # Programs and artifacts

    @abstractmethod
    def get_program(self, program_id: str) -> Optional[Program]:
        pass

    @abstractmethod
    def add_program(self, program: Program) -> Program:
        pass

    @abstractmethod
    def get_artifact(self, artifact_id: str) -> Optional[Artifact]:
        pass

    @abstractmethod
    def get_artifacts(self, artifact_ids: Iterable[str]) -> Sequence[Artifact]:
        pass

    @abstractmethod
    def add_artifact(self, artifact: Artifact) -> Artifact:
        pass

    # Mentions

    @abstractmethod
    def get_mention(self, person_id: str) -> Optional[ArtifactPerson]:
        pass

    @abstractmethod
    def get_mentions(self, person_ids: Iterable[str]) -> Sequence[ArtifactPerson]:
        """
        Get mentions by id, ordered by person_id. Unknown ids are skipped.
        """
        pass

    @abstractmethod
    def get_program_mention(self, program_id: str, person_id: str) -> Optional[ArtifactPerson]:
        """
        Get a mention only if its artifact belongs to the program.
        """
        pass

    @abstractmethod
    def get_program_mentions(self, program_id: str, unresolved_only: bool = True) -> Sequence[ArtifactPerson]:
        """
        Mentions in the program's artifacts, oldest extraction first (ties by person_id).
        """
        pass

    @abstractmethod
    def add_mention(self, mention: ArtifactPerson) -> ArtifactPerson:
        pass

    @abstractmethod
    def link_mentions(self, person_ids: Iterable[str], stakeholder_id: str) -> int:
        """
        Point the mentions at a stakeholder. Returns the number of rows updated.
        """
        pass

    @abstractmethod
    def get_stakeholder_mentions(self, stakeholder_id: str) -> Sequence[ArtifactPerson]:
        pass

    # Stakeholders

    @abstractmethod
    def get_stakeholder(self, stakeholder_id: str) -> Optional[Stakeholder]:
        """
        Get a stakeholder that has not been soft-deleted.
        """
        pass

    @abstractmethod
    def add_stakeholder(self, stakeholder: Stakeholder) -> Stakeholder:
        pass

    @abstractmethod
    def save_stakeholder(self, stakeholder: Stakeholder) -> Stakeholder:
        """
        Persist changes to an existing stakeholder, including soft deletion.
        """
        pass

    @abstractmethod
    def list_stakeholders(self, program_id: str, stakeholder_filter: Optional[StakeholderFilter] = None) -> Sequence[Stakeholder]:
        pass

    @abstractmethod
    def get_program_stakeholders(self, program_id: str) -> Sequence[Stakeholder]:
        """
        All live stakeholders of a program, ordered by name then id.
        """
        pass

    @abstractmethod
    def find_stakeholder_by_name(self, program_id: str, name: str) -> Optional[Stakeholder]:
        """
        Exact name match after Unicode case folding; the oldest stakeholder wins.
        """
        pass

    # Merge groups

    @abstractmethod
    def get_merge_group(self, group_id: str) -> Optional[MergeGroup]:
        pass

    @abstractmethod
    def get_merge_groups(self, program_id: str, status: Optional[str] = None) -> Sequence[MergeGroup]:
        pass

    @abstractmethod
    def save_merge_group(self, group: MergeGroup) -> MergeGroup:
        """
        Insert or update a merge group.
        """
        pass

    @abstractmethod
    def get_group_members(self, group_id: str) -> Sequence[MergeGroupMember]:
        """
        Members ordered by similarity (highest first), then person_id.
        """
        pass

    @abstractmethod
    def add_group_members(self, members: Iterable[MergeGroupMember]) -> None:
        pass

    @abstractmethod
    def remove_group_members(self, group_id: str, person_ids: Iterable[str]) -> int:
        pass

    @abstractmethod
    def get_pending_member_ids(self, program_id: str) -> set[str]:
        """
        Ids of mentions that belong to a pending merge group of the program.
        """
        pass
