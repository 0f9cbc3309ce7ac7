"""Name similarity and organization matching.

Name similarity is trigram overlap in the style of PostgreSQL's pg_trgm:
strings are lowercased and split into alphanumeric words, each word is padded
with two leading blanks and one trailing blank, and the score is the Jaccard
index of the two trigram sets. It is symmetric, case-insensitive and 0.0 for
names that share no trigram.
"""

import re
from typing import Callable, Iterable, Optional, TypeVar

from personres.models import StakeholderClassification

NameSimilarity = Callable[[str, str], float]

K = TypeVar("K")

_WORD_RE = re.compile(r"[^\W_]+")


def normalize_name(value: str) -> str:
    return " ".join(value.lower().split())


def trigrams(value: str) -> frozenset[str]:
    """Return the pg_trgm-style trigram set of a string."""
    grams: set[str] = set()
    for word in _WORD_RE.findall(value.lower()):
        padded = f"  {word} "
        grams.update(padded[i : i + 3] for i in range(len(padded) - 2))
    return frozenset(grams)


def name_similarity(a: str, b: str) -> float:
    """Similarity of two names in [0, 1]."""
    norm_a, norm_b = normalize_name(a or ""), normalize_name(b or "")
    if not norm_a or not norm_b:
        return 0.0
    if norm_a == norm_b:
        return 1.0
    grams_a, grams_b = trigrams(norm_a), trigrams(norm_b)
    union = grams_a | grams_b
    if not union:
        return 0.0
    return len(grams_a & grams_b) / len(union)


def organization_matches(a: Optional[str], b: Optional[str]) -> bool:
    """Exact, case-sensitive equality of two raw organization strings.

    Missing or empty organizations never match, not even each other.
    """
    if not a or not b:
        return False
    return a == b


def parse_aliases(internal_organization: Optional[str]) -> list[str]:
    """Split a comma-separated alias list into lowercased, non-empty aliases."""
    if not internal_organization:
        return []
    aliases = (alias.strip().lower() for alias in internal_organization.split(","))
    return [alias for alias in aliases if alias]


def matches_internal_org(organization: Optional[str], internal_organization: Optional[str]) -> bool:
    """Case-insensitive alias match, tolerant of substrings in either direction."""
    org = (organization or "").strip().lower()
    if not org:
        return False
    return any(org == alias or alias in org or org in alias for alias in parse_aliases(internal_organization))


def classify_organization(
    organization: Optional[str], internal_organization: Optional[str]
) -> StakeholderClassification:
    """Internal when the organization is empty or matches a program alias."""
    if not (organization or "").strip():
        return StakeholderClassification.INTERNAL
    if matches_internal_org(organization, internal_organization):
        return StakeholderClassification.INTERNAL
    return StakeholderClassification.EXTERNAL


def best_name_match(
    name: str,
    candidates: Iterable[tuple[K, str]],
    threshold: float,
    similarity: NameSimilarity = name_similarity,
) -> Optional[tuple[K, float]]:
    """Return the candidate key with the highest similarity strictly above threshold.

    Ties keep the earliest candidate, so callers control the tie-break by
    ordering candidates.
    """
    best: Optional[tuple[K, float]] = None
    for key, candidate_name in candidates:
        score = similarity(name, candidate_name)
        if score > threshold and (best is None or score > best[1]):
            best = (key, score)
    return best
