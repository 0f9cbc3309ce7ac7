"""
SQLModel schemas for database persistence.
"""

from .artifact import Artifact
from .artifact_person import ArtifactPerson
from .merge_group import MergeGroup, MergeGroupMember
from .program import Program
from .stakeholder import Stakeholder
from .types import UTCDateTime

__all__ = ["Artifact", "ArtifactPerson", "MergeGroup", "MergeGroupMember", "Program", "Stakeholder", "UTCDateTime"]
