"""
Mention feed loading for the identity resolution server.
Loads the extraction pipeline's JSONL feed at startup when MENTIONS_PATH is set.
"""

import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from personres.config import SuggestionConfig
from personres.feed import MentionFeedRow
from personres.logging import setup_logging
from personserver.storage.interfaces import StorageInterface
from personserver.storage.models import Artifact, ArtifactPerson, Program

logger = setup_logging()


def load_mention_feed(
    storage: StorageInterface,
    feed_path: Path,
    config: Optional[SuggestionConfig] = None,
) -> dict[str, int]:
    """
    Load a mentions.jsonl feed into storage.

    Programs and artifacts are created the first time they are seen. Mentions
    whose person_id already exists are skipped, so reloading a feed is
    harmless. Lines that fail validation are logged and skipped.
    """
    config = config or SuggestionConfig()
    counts = {"lines": 0, "programs": 0, "artifacts": 0, "mentions": 0, "skipped": 0, "invalid": 0}

    with storage.transaction(), open(feed_path, "r") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            counts["lines"] += 1
            try:
                row = MentionFeedRow.model_validate_json(line)
            except ValidationError as e:
                counts["invalid"] += 1
                logger.warning({"message": "Invalid feed line", "line": line_number, "errors": e.errors()})
                continue

            if storage.get_program(row.program_id) is None:
                storage.add_program(
                    Program(
                        program_id=row.program_id,
                        name=row.program_name or row.program_id,
                        internal_organization=row.internal_organization or config.default_internal_organization,
                    )
                )
                counts["programs"] += 1
            if storage.get_artifact(row.artifact_id) is None:
                artifact = Artifact(artifact_id=row.artifact_id, program_id=row.program_id, filename=row.filename)
                if row.uploaded_at is not None:
                    artifact.uploaded_at = row.uploaded_at
                storage.add_artifact(artifact)
                counts["artifacts"] += 1
            if storage.get_mention(row.person_id) is not None:
                counts["skipped"] += 1
                continue
            storage.add_mention(
                ArtifactPerson(
                    person_id=row.person_id,
                    artifact_id=row.artifact_id,
                    person_name=row.person_name,
                    person_role=row.person_role,
                    person_organization=row.person_organization,
                    mention_count=row.mention_count,
                    context_snippets=[{"snippet": snippet} for snippet in row.context_snippets],
                    confidence_score=row.confidence_score,
                    extracted_at=row.extracted_at,
                )
            )
            counts["mentions"] += 1

    logger.info({"message": "Loaded mention feed", "path": str(feed_path), "counts": counts})
    return counts


def load_mentions_at_startup(storage: StorageInterface, config: Optional[SuggestionConfig] = None) -> None:
    """
    Load the mention feed at server startup if MENTIONS_PATH is set.

    Environment variables:
        MENTIONS_PATH: Path to a mentions.jsonl file
    """
    feed_path_str = os.getenv("MENTIONS_PATH")
    if not feed_path_str:
        logger.info("MENTIONS_PATH not set, skipping mention feed load.", pprint=False)
        return

    feed_path = Path(feed_path_str)
    if not feed_path.is_file():
        logger.warning({"message": "MENTIONS_PATH does not exist, skipping mention feed load", "path": feed_path_str})
        return

    load_mention_feed(storage, feed_path, config)
