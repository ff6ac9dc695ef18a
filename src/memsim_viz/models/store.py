"""
Generic N-way set-associative store with LRU replacement.

The same structure backs the data cache (payload unused) and the TLB
(payload is the cached page table entry).

LAYOUT:
-------
    sets[0]:  [ way 0 | way 1 | ... | way A-1 ]
    sets[1]:  [ way 0 | way 1 | ... | way A-1 ]
    ...
    sets[S-1]

Each line carries ``valid``, ``tag``, ``payload`` and ``last_used``.

RECENCY:
--------
The store owns a logical clock. ``touch`` and ``fill`` stamp a line with
the next clock tick, so a larger ``last_used`` means more recently used.
Lookups do not change recency on their own; callers that treat a hit as
a use must call ``touch`` explicitly.

VICTIM SELECTION:
-----------------
1. The first invalid line in the set, if any.
2. Otherwise the line with the smallest ``last_used``. Ties go to the
   lowest way (left-to-right scan keeping the first strictly smaller
   value). Seeded lines may share stamps, so this rule fixes the
   eviction order for them.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional

from memsim_viz.models.bitfield import is_power_of_two, to_hex
from memsim_viz.models.errors import ConfigError


@dataclass
class StoreLine:
    """
    A single line (way) of a set.

    Attributes:
        valid: True once the line has been filled or seeded.
        tag: Tag compared on lookup.
        payload: Opaque data stored with the tag.
        last_used: Recency stamp; larger is more recent.
    """

    valid: bool = False
    tag: int = 0
    payload: Any = None
    last_used: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        payload = self.payload
        if hasattr(payload, "to_dict"):
            payload = payload.to_dict()
        return {
            "valid": self.valid,
            "tag": to_hex(self.tag),
            "payload": payload,
            "last_used": self.last_used,
        }


class AssociativeStore:
    """
    Set-associative storage with LRU eviction.

    Usage:
        store = AssociativeStore(num_sets=64, associativity=2)
        way = store.lookup(index, tag)
        if way is not None:
            store.touch(index, way)
        else:
            way = store.select_victim(index)
            store.fill(index, way, tag)
    """

    def __init__(self, num_sets: int, associativity: int, name: str = "store"):
        """
        Initialize an empty store.

        Args:
            num_sets: Number of sets (power of two).
            associativity: Lines per set.
            name: Label used in logs and output.

        Raises:
            ConfigError: If the geometry is invalid.
        """
        if not is_power_of_two(num_sets):
            raise ConfigError("num_sets", num_sets, "number of sets must be a power of two")
        if associativity <= 0:
            raise ConfigError("associativity", associativity, "associativity must be > 0")

        self.name = name
        self.num_sets = num_sets
        self.associativity = associativity
        self.clock = 0
        self.sets: List[List[StoreLine]] = [
            [StoreLine() for _ in range(associativity)] for _ in range(num_sets)
        ]

    @property
    def total_entries(self) -> int:
        return self.num_sets * self.associativity

    def tick(self) -> int:
        """Advance the logical clock and return the new value."""
        self.clock += 1
        return self.clock

    def lookup(self, set_index: int, tag: int) -> Optional[int]:
        """
        Find the way holding ``tag`` in a set.

        Returns:
            The first valid way with a matching tag, or None on a miss.
        """
        for way, line in enumerate(self.sets[set_index]):
            if line.valid and line.tag == tag:
                return way
        return None

    def line(self, set_index: int, way: int) -> StoreLine:
        return self.sets[set_index][way]

    def has_slot(self, set_index: int, way: int) -> bool:
        return 0 <= set_index < self.num_sets and 0 <= way < self.associativity

    def touch(self, set_index: int, way: int) -> None:
        """Mark a line as most recently used."""
        self.sets[set_index][way].last_used = self.tick()

    def select_victim(self, set_index: int) -> int:
        """Choose the way to replace in a set (invalid first, then LRU)."""
        lines = self.sets[set_index]
        for way, line in enumerate(lines):
            if not line.valid:
                return way

        best = 0
        for way in range(1, len(lines)):
            if lines[way].last_used < lines[best].last_used:
                best = way
        return best

    def fill(
        self,
        set_index: int,
        way: int,
        tag: int,
        payload: Any = None
    ) -> Optional[StoreLine]:
        """
        Install ``tag`` into a line.

        Returns:
            A copy of the previous line if it was valid (the evicted
            entry), otherwise None.
        """
        line = self.sets[set_index][way]
        evicted = replace(line) if line.valid else None
        line.valid = True
        line.tag = tag
        line.payload = payload
        line.last_used = self.tick()
        return evicted

    def seed(
        self,
        set_index: int,
        way: int,
        tag: int,
        payload: Any = None,
        last_used: int = 0
    ) -> bool:
        """
        Pre-populate a line without touching the clock.

        Out-of-range coordinates are ignored.

        Returns:
            True if the line was written.
        """
        if not self.has_slot(set_index, way):
            return False

        line = self.sets[set_index][way]
        line.valid = True
        line.tag = tag
        line.payload = payload
        line.last_used = last_used
        return True

    def recency_order(self, set_index: int) -> List[int]:
        """Tags of the valid lines in a set, most recently used first."""
        valid = [line for line in self.sets[set_index] if line.valid]
        valid.sort(key=lambda line: line.last_used, reverse=True)
        return [line.tag for line in valid]

    def valid_count(self) -> int:
        return sum(1 for lines in self.sets for line in lines if line.valid)

    def snapshot(self) -> List[List[Dict[str, Any]]]:
        """Per-set list of line dictionaries."""
        return [[line.to_dict() for line in lines] for lines in self.sets]

    def __repr__(self) -> str:
        return (
            f"AssociativeStore(name={self.name!r}, num_sets={self.num_sets}, "
            f"associativity={self.associativity}, clock={self.clock})"
        )
