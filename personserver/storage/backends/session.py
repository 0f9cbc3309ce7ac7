"""
SQLModel session-backed implementation shared by the SQLite and PostgreSQL backends.
"""

from contextlib import contextmanager
from typing import Iterable, Iterator, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from personres.errors import StorageError
from personres.models import MergeGroupStatus
from personres.logging import setup_logging
from personserver.storage.filters import StakeholderFilter
from personserver.storage.interfaces import StorageInterface
from personserver.storage.models import Artifact, ArtifactPerson, MergeGroup, MergeGroupMember, Program, Stakeholder

logger = setup_logging()


class SessionStorage(StorageInterface):
    """
    Storage over a single SQLModel session.
    """

    def __init__(self, session: Session):
        self._session = session
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator["SessionStorage"]:
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield self
            self._session.commit()
        except SQLAlchemyError as e:
            self._session.rollback()
            logger.warning({"message": "Transaction rolled back", "error": str(e)})
            raise StorageError("Storage operation failed", context={"error": type(e).__name__}, cause=e) from e
        except Exception:
            self._session.rollback()
            raise
        finally:
            self._depth = 0

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def _write(self, obj):
        with self.transaction():
            self._session.add(obj)
            self._session.flush()
        return obj

    def close(self) -> None:
        """
        Close connections and clean up resources.
        """
        self._session.close()

    # Programs and artifacts

    def get_program(self, program_id: str) -> Optional[Program]:
        return self._session.get(Program, program_id)

    def add_program(self, program: Program) -> Program:
        return self._write(program)

    def get_artifact(self, artifact_id: str) -> Optional[Artifact]:
        return self._session.get(Artifact, artifact_id)

    def get_artifacts(self, artifact_ids: Iterable[str]) -> Sequence[Artifact]:
        ids = list(set(artifact_ids))
        if not ids:
            return []
        statement = select(Artifact).where(col(Artifact.artifact_id).in_(ids))
        return self._session.exec(statement).all()

    def add_artifact(self, artifact: Artifact) -> Artifact:
        return self._write(artifact)

    # Mentions

    def get_mention(self, person_id: str) -> Optional[ArtifactPerson]:
        return self._session.get(ArtifactPerson, person_id)

    def get_mentions(self, person_ids: Iterable[str]) -> Sequence[ArtifactPerson]:
        ids = list(set(person_ids))
        if not ids:
            return []
        statement = (
            select(ArtifactPerson)
            .where(col(ArtifactPerson.person_id).in_(ids))
            .order_by(ArtifactPerson.person_id)
        )
        return self._session.exec(statement).all()

    def get_program_mention(self, program_id: str, person_id: str) -> Optional[ArtifactPerson]:
        statement = (
            select(ArtifactPerson)
            .join(Artifact, col(Artifact.artifact_id) == col(ArtifactPerson.artifact_id))
            .where(Artifact.program_id == program_id, ArtifactPerson.person_id == person_id)
        )
        return self._session.exec(statement).first()

    def get_program_mentions(self, program_id: str, unresolved_only: bool = True) -> Sequence[ArtifactPerson]:
        statement = (
            select(ArtifactPerson)
            .join(Artifact, col(Artifact.artifact_id) == col(ArtifactPerson.artifact_id))
            .where(Artifact.program_id == program_id)
        )
        if unresolved_only:
            statement = statement.where(col(ArtifactPerson.stakeholder_id).is_(None))
        statement = statement.order_by(ArtifactPerson.extracted_at, ArtifactPerson.person_id)
        return self._session.exec(statement).all()

    def add_mention(self, mention: ArtifactPerson) -> ArtifactPerson:
        return self._write(mention)

    def link_mentions(self, person_ids: Iterable[str], stakeholder_id: str) -> int:
        ids = list(set(person_ids))
        if not ids:
            return 0
        with self.transaction():
            mentions = self.get_mentions(ids)
            for mention in mentions:
                mention.stakeholder_id = stakeholder_id
                self._session.add(mention)
            self._session.flush()
            return len(mentions)

    def get_stakeholder_mentions(self, stakeholder_id: str) -> Sequence[ArtifactPerson]:
        statement = (
            select(ArtifactPerson)
            .where(ArtifactPerson.stakeholder_id == stakeholder_id)
            .order_by(ArtifactPerson.person_id)
        )
        return self._session.exec(statement).all()

    # Stakeholders

    def get_stakeholder(self, stakeholder_id: str) -> Optional[Stakeholder]:
        stakeholder = self._session.get(Stakeholder, stakeholder_id)
        if stakeholder is None or stakeholder.deleted_at is not None:
            return None
        return stakeholder

    def add_stakeholder(self, stakeholder: Stakeholder) -> Stakeholder:
        return self._write(stakeholder)

    def list_stakeholders(self, program_id: str, stakeholder_filter: Optional[StakeholderFilter] = None) -> Sequence[Stakeholder]:
        stakeholder_filter = stakeholder_filter or StakeholderFilter()
        statement = stakeholder_filter.apply(select(Stakeholder).where(Stakeholder.program_id == program_id))
        return self._session.exec(statement).all()

    def get_program_stakeholders(self, program_id: str) -> Sequence[Stakeholder]:
        statement = (
            select(Stakeholder)
            .where(Stakeholder.program_id == program_id, col(Stakeholder.deleted_at).is_(None))
            .order_by(Stakeholder.person_name, Stakeholder.stakeholder_id)
        )
        return self._session.exec(statement).all()

    def save_stakeholder(self, stakeholder: Stakeholder) -> Stakeholder:
        return self._write(stakeholder)

    def find_stakeholder_by_name(self, program_id: str, name: str) -> Optional[Stakeholder]:
        # SQL lower() only folds ASCII on SQLite, so names are compared in Python.
        wanted = name.strip().casefold()
        matches = [s for s in self.get_program_stakeholders(program_id) if s.person_name.strip().casefold() == wanted]
        if not matches:
            return None
        return min(matches, key=lambda s: (s.created_at, s.stakeholder_id))

    # Merge groups

    def get_merge_group(self, group_id: str) -> Optional[MergeGroup]:
        return self._session.get(MergeGroup, group_id)

    def get_merge_groups(self, program_id: str, status: Optional[str] = None) -> Sequence[MergeGroup]:
        statement = select(MergeGroup).where(MergeGroup.program_id == program_id)
        if status is not None:
            statement = statement.where(MergeGroup.status == status)
        statement = statement.order_by(MergeGroup.created_at, MergeGroup.group_id)
        return self._session.exec(statement).all()

    def save_merge_group(self, group: MergeGroup) -> MergeGroup:
        return self._write(group)

    def get_group_members(self, group_id: str) -> Sequence[MergeGroupMember]:
        statement = (
            select(MergeGroupMember)
            .where(MergeGroupMember.group_id == group_id)
            .order_by(col(MergeGroupMember.similarity_score).desc(), MergeGroupMember.person_id)
        )
        return self._session.exec(statement).all()

    def add_group_members(self, members: Iterable[MergeGroupMember]) -> None:
        with self.transaction():
            self._session.add_all(list(members))
            self._session.flush()

    def remove_group_members(self, group_id: str, person_ids: Iterable[str]) -> int:
        ids = list(set(person_ids))
        if not ids:
            return 0
        with self.transaction():
            statement = select(MergeGroupMember).where(
                MergeGroupMember.group_id == group_id, col(MergeGroupMember.person_id).in_(ids)
            )
            members = self._session.exec(statement).all()
            for member in members:
                self._session.delete(member)
            self._session.flush()
            return len(members)

    def get_pending_member_ids(self, program_id: str) -> set[str]:
        statement = (
            select(MergeGroupMember.person_id)
            .join(MergeGroup, col(MergeGroup.group_id) == col(MergeGroupMember.group_id))
            .where(MergeGroup.program_id == program_id, MergeGroup.status == MergeGroupStatus.PENDING.value)
        )
        return set(self._session.exec(statement).all())
