"""
Set-associative cache simulator.

Replays a sequence of addresses through an LRU cache and records, for
every access, how the address was split and what the cache did.

PER-ACCESS PROCESS:
-------------------
1. Clamp the address to ``addr_bits``.
2. Split into (tag, index, offset).
3. Look up ``tag`` in set ``index``.
   - Hit:  touch the line (now MRU), record HIT and the way.
   - Miss: pick a victim (invalid line first, then LRU), fill it with the
           new tag, record MISS, the way, and the evicted tag if the
           victim held valid data.

Order matters: later accesses see the recency state left by earlier ones,
so addresses are always processed strictly in input order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from memsim_viz.models.address import CacheAddressLayout
from memsim_viz.models.bitfield import nibbles_for, to_hex
from memsim_viz.models.store import AssociativeStore
from memsim_viz.simulator.stats import StoreStatistics, tally

logger = logging.getLogger(__name__)


class AccessOutcome(Enum):
    """Result of a single store lookup."""

    HIT = "HIT"
    MISS = "MISS"


@dataclass(frozen=True)
class CacheAccessRecord:
    """
    Record of one simulated cache access.

    Attributes:
        access_id: 1-based position in the trace.
        address: The clamped address.
        tag: Tag field.
        index: Set index field.
        offset: Block offset field.
        outcome: HIT or MISS.
        way: Way that hit, or way that was filled on a miss.
        evicted_tag: Tag that was replaced, if the victim was valid.
        set_state: Tags of the set after the access, MRU first.
    """

    access_id: int
    address: int
    tag: int
    index: int
    offset: int
    outcome: AccessOutcome
    way: int
    evicted_tag: Optional[int] = None
    set_state: Tuple[int, ...] = ()

    @property
    def hit(self) -> bool:
        return self.outcome is AccessOutcome.HIT

    @property
    def set_index(self) -> int:
        return self.index

    def to_dict(self, addr_bits: Optional[int] = None) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        digits = nibbles_for(addr_bits) if addr_bits else 0
        return {
            "access_id": self.access_id,
            "address": to_hex(self.address, digits),
            "tag": to_hex(self.tag),
            "index": self.index,
            "offset": self.offset,
            "outcome": self.outcome.value,
            "set": self.index,
            "way": self.way,
            "evicted_tag": to_hex(self.evicted_tag) if self.evicted_tag is not None else None,
            "set_state": [to_hex(t) for t in self.set_state],
        }


@dataclass
class CacheRunResult:
    """
    Complete result of a cache simulation run.

    Attributes:
        layout: The validated address layout.
        records: One record per address, in input order.
        statistics: Hit/miss counters folded from the records.
        store: Final cache contents.
    """

    layout: CacheAddressLayout
    records: List[CacheAccessRecord] = field(default_factory=list)
    statistics: StoreStatistics = field(default_factory=StoreStatistics)
    store: Optional[AssociativeStore] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "simulator": "cache",
            "layout": self.layout.to_dict(),
            "masks": {
                "tag": to_hex(self.layout.tag_mask, nibbles_for(self.layout.addr_bits)),
                "index": to_hex(self.layout.index_mask, nibbles_for(self.layout.addr_bits)),
                "offset": to_hex(self.layout.offset_mask, nibbles_for(self.layout.addr_bits)),
            },
            "accesses": [r.to_dict(self.layout.addr_bits) for r in self.records],
            "statistics": {"cache": self.statistics.to_dict()},
            "final_state": self.store.snapshot() if self.store else None,
        }


class CacheSimulator:
    """
    LRU set-associative cache simulator.

    The configuration is validated on construction; each call to ``run``
    starts from an empty cache, so repeated runs are independent.

    Usage:
        sim = CacheSimulator(addr_bits=32, cache_size=1024, block_size=16, associativity=1)
        result = sim.run([0x0, 0x4, 0x10, 0x0])
    """

    def __init__(
        self,
        addr_bits: int,
        cache_size: int,
        block_size: int,
        associativity: int
    ):
        """
        Initialize the simulator.

        Raises:
            ConfigError: If the geometry is invalid.
        """
        self.layout = CacheAddressLayout.build(addr_bits, cache_size, block_size, associativity)
        logger.debug(
            "cache layout: tag=%d index=%d offset=%d sets=%d",
            self.layout.tag_bits, self.layout.index_bits,
            self.layout.offset_bits, self.layout.num_sets
        )

    def new_store(self) -> AssociativeStore:
        return AssociativeStore(
            num_sets=self.layout.num_sets,
            associativity=self.layout.associativity,
            name="cache",
        )

    def access(self, store: AssociativeStore, address: int, access_id: int) -> CacheAccessRecord:
        """
        Simulate one access against ``store``.

        This mutates the store (recency and contents).
        """
        address = self.layout.clamp(address)
        fields = self.layout.split(address)

        way = store.lookup(fields.index, fields.tag)
        evicted_tag = None
        if way is not None:
            store.touch(fields.index, way)
            outcome = AccessOutcome.HIT
        else:
            way = store.select_victim(fields.index)
            evicted = store.fill(fields.index, way, fields.tag)
            if evicted is not None:
                evicted_tag = evicted.tag
            outcome = AccessOutcome.MISS

        logger.debug(
            "access %d: addr=%s set=%d way=%d %s",
            access_id, to_hex(address), fields.index, way, outcome.value
        )

        return CacheAccessRecord(
            access_id=access_id,
            address=address,
            tag=fields.tag,
            index=fields.index,
            offset=fields.offset,
            outcome=outcome,
            way=way,
            evicted_tag=evicted_tag,
            set_state=tuple(store.recency_order(fields.index)),
        )

    def run(self, addresses: Iterable[int]) -> CacheRunResult:
        """
        Replay addresses through a fresh cache.

        Args:
            addresses: Addresses in access order.

        Returns:
            CacheRunResult with the trace, statistics and final contents.
        """
        store = self.new_store()
        records = [
            self.access(store, address, i)
            for i, address in enumerate(addresses, start=1)
        ]
        statistics = tally(records, lambda r: r.hit)

        logger.info(
            "cache run: %d accesses, %d hits, %d misses",
            statistics.total, statistics.hits, statistics.misses
        )

        return CacheRunResult(
            layout=self.layout,
            records=records,
            statistics=statistics,
            store=store,
        )
