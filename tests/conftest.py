"""
Pytest configuration and shared fixtures for the resolution engine tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from personres.models import PersonMention

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def make_mention():
    """Factory for PersonMention with sequential ids and timestamps."""
    counter = {"n": 0}

    def _make(name, role=None, organization=None, confidence=None, person_id=None, **kwargs):
        counter["n"] += 1
        n = counter["n"]
        return PersonMention(
            person_id=person_id or f"p{n:03d}",
            person_name=name,
            role=role,
            organization=organization,
            confidence=confidence,
            artifact_id=kwargs.pop("artifact_id", "a001"),
            extracted_at=kwargs.pop("extracted_at", BASE_TIME + timedelta(minutes=n)),
            **kwargs,
        )

    return _make


@pytest.fixture
def table_similarity():
    """Build a similarity function from an explicit symmetric score table; unlisted pairs score 0."""

    def _build(scores: dict[tuple[str, str], float]):
        table = {}
        for (a, b), score in scores.items():
            table[(a, b)] = score
            table[(b, a)] = score

        def similarity(a: str, b: str) -> float:
            if a == b:
                return 1.0
            return table.get((a, b), 0.0)

        return similarity

    return _build
