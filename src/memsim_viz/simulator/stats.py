"""Hit/miss statistics folded from per-access records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class StoreStatistics:
    """
    Hit and miss counters for one store.

    Attributes:
        hits: Number of hits.
        misses: Number of misses.
    """

    hits: int = 0
    misses: int = 0

    @property
    def total(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Fraction of hits, 0.0 when nothing was counted."""
        if self.total == 0:
            return 0.0
        return self.hits / self.total

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hit_rate,
        }


def tally(records: Iterable[T], outcome: Callable[[T], Optional[bool]]) -> StoreStatistics:
    """
    Fold records into statistics.

    Args:
        records: Access records in trace order.
        outcome: Returns True for a hit, False for a miss, or None when the
            record did not reach this store.

    Returns:
        The accumulated StoreStatistics.
    """
    hits = misses = 0
    for record in records:
        result = outcome(record)
        if result is None:
            continue
        if result:
            hits += 1
        else:
            misses += 1
    return StoreStatistics(hits=hits, misses=misses)
