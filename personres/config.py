"""Thresholds and limits for identity resolution, optionally loaded from TOML.

The config file is looked up in order:
  1. An explicit path passed to load_resolution_config()
  2. Path in the PERSONRES_CONFIG env var (if set)
  3. personres.toml in the current working directory

If no file is found, built-in defaults are used. Recognized sections are
``[grouping]`` and ``[suggestions]``; their keys are the field names below.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from personres.logging import setup_logging

logger = setup_logging()

CONFIG_ENV_VAR = "PERSONRES_CONFIG"
CONFIG_FILENAME = "personres.toml"


class GroupingConfig(BaseModel, frozen=True):
    """Controls how unresolved mentions are clustered into merge groups."""

    name_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Name similarity above which two mentions are linked outright.",
    )
    org_name_threshold: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Name similarity above which two mentions with the same organization are linked.",
    )
    member_similarity: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Similarity recorded for engine-derived members.",
    )
    manual_similarity: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Similarity recorded for members added by a reviewer.",
    )
    window_size: int = Field(
        default=500,
        ge=1,
        description="Mentions compared against the rest per batch; cancellation is checked between batches.",
    )

    @model_validator(mode="after")
    def org_threshold_not_above_name_threshold(self) -> "GroupingConfig":
        if self.org_name_threshold > self.name_threshold:
            raise ValueError("org_name_threshold must not exceed name_threshold")
        return self


class SuggestionConfig(BaseModel, frozen=True):
    """Controls the read-side suggestion views and stakeholder matching."""

    stakeholder_match_threshold: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Name similarity above which an existing stakeholder is suggested.",
    )
    max_artifacts: int = Field(default=5, ge=1, description="Artifacts listed per suggestion.")
    snippet_length: int = Field(default=200, ge=1, description="Context snippets are cut to this length.")
    default_internal_organization: str = Field(
        default="Organization",
        description="Alias list used for programs that do not set one.",
    )


class ResolutionConfig(BaseModel, frozen=True):
    grouping: GroupingConfig = Field(default_factory=GroupingConfig)
    suggestions: SuggestionConfig = Field(default_factory=SuggestionConfig)


def _default_config_paths() -> list[Path]:
    """Return paths to check for personres.toml (first existing wins)."""
    paths: list[Path] = []
    if os.environ.get(CONFIG_ENV_VAR):
        paths.append(Path(os.environ[CONFIG_ENV_VAR]))
    paths.append(Path.cwd() / CONFIG_FILENAME)
    return paths


def load_resolution_config(path: Optional[Path | str] = None) -> ResolutionConfig:
    """Load resolution config from a TOML file.

    Unreadable files are skipped with a warning. Values that fail validation
    raise pydantic.ValidationError so a bad threshold never goes unnoticed.
    """
    paths = [Path(path)] if path is not None else _default_config_paths()
    for candidate in paths:
        if not candidate.is_file():
            continue
        try:
            with open(candidate, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning({"message": "Skipping unreadable config file", "path": str(candidate), "error": str(e)})
            continue
        sections = {key: data[key] for key in ("grouping", "suggestions") if isinstance(data.get(key), dict)}
        config = ResolutionConfig.model_validate(sections)
        logger.info({"message": "Loaded resolution config", "path": str(candidate), "config": config.model_dump()})
        return config
    return ResolutionConfig()
