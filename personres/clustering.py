"""Cluster unresolved mentions into candidate identities.

Every unordered pair of mentions is compared once, in person_id order. A pair
becomes an edge when the names are similar enough on their own, or somewhat
similar and the organizations are identical. Connected components of the edge
graph, computed with a union-find keyed by person_id, are the clusters;
components of size one are dropped. Comparison runs in batches of left-hand
mentions so a long run can be cancelled between batches.
"""

import threading
from collections import defaultdict
from typing import Iterable, Optional, Sequence

from pydantic import BaseModel

from personres.config import GroupingConfig
from personres.errors import OperationCancelled
from personres.models import MentionCluster, PersonMention, SimilarityEdge
from personres.similarity import NameSimilarity, name_similarity, organization_matches


class UnionFind:
    """Disjoint set over string keys with path compression and union by rank."""

    def __init__(self, keys: Iterable[str] = ()):
        self.parent: dict[str, str] = {}
        self.rank: dict[str, int] = {}
        for key in keys:
            self.add(key)

    def add(self, key: str) -> None:
        if key not in self.parent:
            self.parent[key] = key
            self.rank[key] = 0

    def find(self, key: str) -> str:
        """Find with path compression."""
        root = key
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[key] != root:
            self.parent[key], key = root, self.parent[key]
        return root

    def union(self, a: str, b: str) -> str:
        """Union by rank. On equal rank the root of ``a`` wins. Returns the new root."""
        root_a, root_b = self.find(a), self.find(b)
        if root_a == root_b:
            return root_a
        if self.rank[root_a] < self.rank[root_b]:
            root_a, root_b = root_b, root_a
        self.parent[root_b] = root_a
        if self.rank[root_a] == self.rank[root_b]:
            self.rank[root_a] += 1
        return root_a

    def components(self) -> dict[str, list[str]]:
        """Return dict mapping root -> members, in insertion order."""
        groups: dict[str, list[str]] = defaultdict(list)
        for key in self.parent:
            groups[self.find(key)].append(key)
        return dict(groups)


class ClusteringResult(BaseModel, frozen=True):
    mention_count: int
    edge_count: int
    window_count: int
    clusters: tuple[MentionCluster, ...]


def _check_cancelled(cancel: Optional[threading.Event], phase: str, **context) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelled("Clustering cancelled", context={"phase": phase, **context})


def should_link(edge: SimilarityEdge, config: GroupingConfig) -> bool:
    if edge.name_similarity > config.name_threshold:
        return True
    return edge.name_similarity > config.org_name_threshold and edge.organization_match


def _unique_unresolved(mentions: Iterable[PersonMention]) -> list[PersonMention]:
    by_id: dict[str, PersonMention] = {}
    for mention in mentions:
        if not mention.is_resolved:
            by_id.setdefault(mention.person_id, mention)
    return [by_id[key] for key in sorted(by_id)]


def window_starts(count: int, window_size: int) -> range:
    """Start offsets of the batches that cover ``count - 1`` left-hand mentions."""
    return range(0, max(count - 1, 0), window_size)


def build_edges(
    mentions: Sequence[PersonMention],
    config: Optional[GroupingConfig] = None,
    similarity: NameSimilarity = name_similarity,
    cancel: Optional[threading.Event] = None,
) -> list[SimilarityEdge]:
    """Compare every unordered pair once and keep the pairs that should be linked.

    ``mentions`` is expected sorted by person_id with no duplicates; edges
    always have ``left_id < right_id``. Work is done in batches of
    ``config.window_size`` left-hand mentions, each compared with every
    mention after it, and cancellation is checked before each batch.
    """
    config = config or GroupingConfig()
    edges: list[SimilarityEdge] = []
    for window, start in enumerate(window_starts(len(mentions), config.window_size)):
        _check_cancelled(cancel, "edges", window=window)
        for i in range(start, min(start + config.window_size, len(mentions) - 1)):
            left = mentions[i]
            for right in mentions[i + 1 :]:
                edge = SimilarityEdge(
                    left_id=left.person_id,
                    right_id=right.person_id,
                    name_similarity=similarity(left.person_name, right.person_name),
                    organization_match=organization_matches(left.organization, right.organization),
                )
                if should_link(edge, config):
                    edges.append(edge)
    return edges


def cluster_mentions(
    mentions: Iterable[PersonMention],
    config: Optional[GroupingConfig] = None,
    similarity: NameSimilarity = name_similarity,
    cancel: Optional[threading.Event] = None,
    linked: Iterable[Iterable[str]] = (),
) -> ClusteringResult:
    """Group unresolved mentions into clusters of two or more.

    Resolved mentions and repeated person_ids are ignored. ``linked`` lists
    sets of mentions already known to belong together, such as the members
    of pending merge groups; they are joined before any edge is applied, so
    a new mention similar to one member lands in the same cluster as all of
    them. Ids in ``linked`` that are not among ``mentions`` are ignored.

    The result is deterministic for a given mention set: clusters are
    ordered by their smallest person_id and members are sorted.
    """
    config = config or GroupingConfig()
    ordered = _unique_unresolved(mentions)
    _check_cancelled(cancel, "start")
    edges = build_edges(ordered, config, similarity, cancel)
    _check_cancelled(cancel, "clustering")

    uf = UnionFind(m.person_id for m in ordered)
    for members in linked:
        present = sorted(person_id for person_id in members if person_id in uf.parent)
        for person_id in present[1:]:
            uf.union(present[0], person_id)
    for edge in edges:
        uf.union(edge.left_id, edge.right_id)

    clusters = [
        MentionCluster(root_id=root, member_ids=tuple(sorted(members)))
        for root, members in uf.components().items()
        if len(members) > 1
    ]
    clusters.sort(key=lambda c: c.member_ids[0])
    return ClusteringResult(
        mention_count=len(ordered),
        edge_count=len(edges),
        window_count=len(window_starts(len(ordered), config.window_size)),
        clusters=tuple(clusters),
    )
