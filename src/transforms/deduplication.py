"""Natural-key deduplication with a total ranking order.

This module groups normalized records by natural key and keeps exactly one
winner per group. Ranking follows the entity's sort keys with SQL null
ordering (nulls first ascending, last descending); remaining ties are broken
by a content fingerprint so the winner never depends on input order.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, Callable, Iterable, Sequence

from core.constants import HASH_ALGORITHM
from core.types import EntityRecord


@dataclass(frozen=True)
class SortKey:
    """One ranking column.

    Attributes:
        column: Normalized column name.
        descending: Whether larger values rank first.
        extract: Optional projection applied to non-null values, e.g. ``len``.
    """

    column: str
    descending: bool = True
    extract: Callable[[Any], Any] | None = None


def select_winners(
    records: Iterable[EntityRecord],
    natural_key: Sequence[str],
    ranking: Sequence[SortKey],
) -> list[EntityRecord]:
    """Keep the rank-1 record of every natural-key group.

    Args:
        records: Normalized candidate records with non-null key columns.
        natural_key: Key columns shared by duplicates.
        ranking: Ordered sort keys deciding the winner.

    Returns:
        One winner per key, in first-seen key order.
    """
    groups: dict[tuple[Any, ...], list[EntityRecord]] = {}
    for record in records:
        key_value = tuple(record[column] for column in natural_key)
        groups.setdefault(key_value, []).append(record)
    return [rank_candidates(group, ranking)[0] for group in groups.values()]


def rank_candidates(
    candidates: Sequence[EntityRecord],
    ranking: Sequence[SortKey],
) -> list[EntityRecord]:
    """Order duplicate candidates from best to worst.

    Args:
        candidates: Records sharing one natural key.
        ranking: Ordered sort keys.

    Returns:
        Candidates sorted so the winner comes first.
    """
    decorated = [(build_record_fingerprint(record), record) for record in candidates]

    def _compare(left: tuple[str, EntityRecord], right: tuple[str, EntityRecord]) -> int:
        for sort_key in ranking:
            outcome = _compare_values(
                _ranking_value(left[1], sort_key),
                _ranking_value(right[1], sort_key),
                sort_key.descending,
            )
            if outcome != 0:
                return outcome
        return (left[0] > right[0]) - (left[0] < right[0])

    decorated.sort(key=cmp_to_key(_compare))
    return [record for _, record in decorated]


def build_record_fingerprint(record: EntityRecord) -> str:
    """Build a stable content hash for a normalized record.

    Args:
        record: Normalized record.

    Returns:
        Hex digest of the canonical JSON rendering.
    """
    canonical = json.dumps(record, sort_keys=True, default=str)
    hasher = hashlib.new(HASH_ALGORITHM)
    hasher.update(canonical.encode("utf-8"))
    return hasher.hexdigest()


def _compare_values(left: Any, right: Any, descending: bool) -> int:
    if left is None and right is None:
        return 0
    if left is None:
        return 1 if descending else -1
    if right is None:
        return -1 if descending else 1
    outcome = (left > right) - (left < right)
    return -outcome if descending else outcome


def _ranking_value(record: EntityRecord, sort_key: SortKey) -> Any:
    value = record.get(sort_key.column)
    if value is None or sort_key.extract is None:
        return value
    return sort_key.extract(value)
