"""Aggregate a cluster's attributes into a suggested name and conflict options."""

from collections import Counter, defaultdict
from typing import Iterable, Optional, Sequence

from personres.models import ConflictAnalysis, ConflictOption, PersonMention


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _row_sort_key(row: tuple[tuple[str, Optional[str], Optional[str], Optional[float]], int]):
    # count desc, confidence desc with nulls last, then name, role, organization asc
    (name, role, organization, confidence), count = row
    return (
        -count,
        confidence is None,
        -(confidence or 0.0),
        name,
        role or "",
        organization or "",
    )


def ranked_attribute_rows(
    mentions: Iterable[PersonMention],
) -> list[tuple[tuple[str, Optional[str], Optional[str], Optional[float]], int]]:
    """Distinct (name, role, organization, confidence) rows with occurrence counts, best first."""
    counts = Counter(
        (m.person_name, _clean(m.role), _clean(m.organization), m.confidence) for m in mentions
    )
    return sorted(counts.items(), key=_row_sort_key)


def conflict_options(values: Iterable[tuple[Optional[str], Optional[float]]]) -> tuple[ConflictOption, ...]:
    """One option per distinct non-empty value, with its count and mean confidence.

    Missing confidences count as 0.0 in the mean.
    """
    confidences: dict[str, list[float]] = defaultdict(list)
    for value, confidence in values:
        value = _clean(value)
        if value is not None:
            confidences[value].append(confidence or 0.0)
    options = [
        ConflictOption(value=value, count=len(scores), average_confidence=sum(scores) / len(scores))
        for value, scores in confidences.items()
    ]
    options.sort(key=lambda o: (-o.count, o.value))
    return tuple(options)


def analyze_conflicts(mentions: Sequence[PersonMention]) -> ConflictAnalysis:
    """Suggested name, conflict flags and options for one cluster.

    The suggested name is the name on the most frequent attribute row. Ties go
    to the higher confidence, then to the lexicographically smaller name.
    """
    if not mentions:
        raise ValueError("Cannot analyze an empty cluster")

    rows = ranked_attribute_rows(mentions)
    role_options = conflict_options((m.role, m.confidence) for m in mentions)
    org_options = conflict_options((m.organization, m.confidence) for m in mentions)
    return ConflictAnalysis(
        suggested_name=rows[0][0][0],
        has_role_conflicts=len(role_options) > 1,
        has_org_conflicts=len(org_options) > 1,
        role_options=role_options,
        org_options=org_options,
    )
