"""
Pytest configuration and shared fixtures for the identity resolution server tests.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from personres.config import ResolutionConfig
from personserver.storage.backends.sqlite import SQLiteStorage
from personserver.storage.models import Artifact, ArtifactPerson, Program, Stakeholder

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class Seeder:
    """Writes programs, artifacts, mentions and stakeholders with predictable timestamps."""

    def __init__(self, storage):
        self.storage = storage
        self._tick = 0

    def _next_time(self) -> datetime:
        self._tick += 1
        return BASE_TIME + timedelta(minutes=self._tick)

    def program(self, internal_organization: str = "Acme, Acme Labs", name: str = "Apollo") -> Program:
        return self.storage.add_program(
            Program(program_id=str(uuid.uuid4()), name=name, internal_organization=internal_organization)
        )

    def artifact(self, program: Program, filename: str = "notes.pdf", uploaded_at: Optional[datetime] = None) -> Artifact:
        return self.storage.add_artifact(
            Artifact(
                artifact_id=str(uuid.uuid4()),
                program_id=program.program_id,
                filename=filename,
                uploaded_at=uploaded_at or self._next_time(),
            )
        )

    def mention(
        self,
        artifact: Artifact,
        name: str,
        role: Optional[str] = None,
        organization: Optional[str] = None,
        confidence: Optional[float] = None,
        mention_count: int = 1,
        snippets: Optional[list[str]] = None,
        stakeholder_id: Optional[str] = None,
    ) -> ArtifactPerson:
        return self.storage.add_mention(
            ArtifactPerson(
                person_id=str(uuid.uuid4()),
                artifact_id=artifact.artifact_id,
                person_name=name,
                person_role=role,
                person_organization=organization,
                mention_count=mention_count,
                confidence_score=confidence,
                context_snippets=[{"snippet": s} for s in snippets or []],
                stakeholder_id=stakeholder_id,
                extracted_at=self._next_time(),
            )
        )

    def stakeholder(
        self,
        program: Program,
        name: str,
        stakeholder_type: str = "external",
        is_internal: bool = False,
        engagement_level: Optional[str] = None,
        deleted: bool = False,
    ) -> Stakeholder:
        now = self._next_time()
        return self.storage.add_stakeholder(
            Stakeholder(
                stakeholder_id=str(uuid.uuid4()),
                program_id=program.program_id,
                person_name=name,
                stakeholder_type=stakeholder_type,
                is_internal=is_internal,
                engagement_level=engagement_level,
                created_at=now,
                updated_at=now,
                deleted_at=now if deleted else None,
            )
        )


@pytest.fixture
def in_memory_storage():
    """Create an in-memory SQLite storage for testing."""
    storage = SQLiteStorage(":memory:")
    yield storage
    storage.close()


@pytest.fixture
def seed(in_memory_storage):
    return Seeder(in_memory_storage)


@pytest.fixture
def program(seed):
    """A program whose internal organization is known as Acme or Acme Labs."""
    return seed.program()


@pytest.fixture
def artifact(seed, program):
    return seed.artifact(program, filename="kickoff.pdf")


@pytest.fixture
def smith_mentions(seed, artifact):
    """Three mentions of the same engineer at Acme under different names and roles."""
    return [
        seed.mention(artifact, "Jon Smith", "Eng", "Acme", 0.9),
        seed.mention(artifact, "Jonathan Smith", "Engineer", "Acme", 0.8),
        seed.mention(artifact, "J. Smith", "Eng", "Acme", 0.7),
    ]


@pytest.fixture
def smith_similarity():
    """Similarity table: Jon/Jonathan 0.75, Jonathan/J. 0.55, everything else unrelated."""
    table = {
        frozenset(("Jon Smith", "Jonathan Smith")): 0.75,
        frozenset(("Jonathan Smith", "J. Smith")): 0.55,
    }

    def similarity(a: str, b: str) -> float:
        if a == b:
            return 1.0
        return table.get(frozenset((a, b)), 0.0)

    return similarity


@pytest.fixture
def app(in_memory_storage):
    """Create the FastAPI app wired to the in-memory storage."""
    from personserver.query.server import create_app
    from personserver.query.settings import get_resolution_config
    from personserver.query.storage_factory import get_storage

    _app = create_app()
    _app.dependency_overrides[get_storage] = lambda: in_memory_storage
    _app.dependency_overrides[get_resolution_config] = lambda: ResolutionConfig()
    return _app


@pytest.fixture
def client(app):
    return TestClient(app)
