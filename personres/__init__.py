"""
Person identity resolution.

Clusters person mentions extracted from program documents into candidate
identities, reports conflicting roles and organizations inside each cluster,
and classifies organizations as internal or external to the owning program.
Storage and the review workflow live in ``personserver``.
"""

from personres.clustering import ClusteringResult, UnionFind, build_edges, cluster_mentions
from personres.config import GroupingConfig, ResolutionConfig, SuggestionConfig, load_resolution_config
from personres.conflicts import analyze_conflicts, conflict_options
from personres.errors import (
    ConflictError,
    ErrorCategory,
    NotFoundError,
    OperationCancelled,
    ResolutionError,
    StorageError,
    ValidationError,
)
from personres.models import (
    ENGAGEMENT_LEVELS,
    STAKEHOLDER_TYPES,
    ConflictAnalysis,
    ConflictOption,
    MatchingMethod,
    MentionCluster,
    MergeGroupStatus,
    PersonMention,
    SimilarityEdge,
    StakeholderClassification,
)
from personres.similarity import (
    best_name_match,
    classify_organization,
    matches_internal_org,
    name_similarity,
    organization_matches,
)

__all__ = [
    "ClusteringResult",
    "UnionFind",
    "build_edges",
    "cluster_mentions",
    "GroupingConfig",
    "ResolutionConfig",
    "SuggestionConfig",
    "load_resolution_config",
    "analyze_conflicts",
    "conflict_options",
    "ConflictError",
    "ErrorCategory",
    "NotFoundError",
    "OperationCancelled",
    "ResolutionError",
    "StorageError",
    "ValidationError",
    "ENGAGEMENT_LEVELS",
    "STAKEHOLDER_TYPES",
    "ConflictAnalysis",
    "ConflictOption",
    "MatchingMethod",
    "MentionCluster",
    "MergeGroupStatus",
    "PersonMention",
    "SimilarityEdge",
    "StakeholderClassification",
    "best_name_match",
    "classify_organization",
    "matches_internal_org",
    "name_similarity",
    "organization_matches",
]
