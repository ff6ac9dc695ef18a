"""
Virtual-to-physical address resolution with an optional TLB.

This module replays virtual addresses through a two-level lookup: a
set-associative TLB (optional) in front of a single-level page table.

RESOLUTION STATE MACHINE:
-------------------------

    Start
      |
      v
    split VA -> (vpn, offset)
      |
      +-- TLB enabled --> TLB lookup --hit--> Resolved (TLB_HIT)
      |                      |
      |                     miss
      v                      v
    page table lookup <------+
      |
      +-- unmapped ----------------------> Fault (no PA)
      |
      +-- mapped --> fill TLB (if enabled) --> Resolved (PAGE_TABLE_HIT)

    Resolved:  PA = ((PPN << offsetBits) | offset) & mask(paBits)

TLB INDEXING:
-------------
The TLB is indexed by the VPN: the low ``log2(sets)`` VPN bits select the
set and the remaining VPN bits form the TLB tag.

Faults are recorded, never raised. They leave the TLB and page table
unchanged, although the TLB's logical clock still advances so that every
access occupies one tick.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from memsim_viz.models.address import MemoryAddressLayout, TlbLayout
from memsim_viz.models.bitfield import nibbles_for, to_hex
from memsim_viz.models.page_table import PageTable, PageTableEntry
from memsim_viz.models.store import AssociativeStore
from memsim_viz.simulator.faults import FaultRecord, FaultType
from memsim_viz.simulator.stats import StoreStatistics, tally

logger = logging.getLogger(__name__)


class ResolutionStatus(Enum):
    """Final state of one address resolution."""

    TLB_HIT = auto()         # Translation served by the TLB
    PAGE_TABLE_HIT = auto()  # TLB miss (or no TLB), mapped in page table
    FAULT = auto()           # VPN not mapped


@dataclass(frozen=True)
class TlbSeedRow:
    """
    Explicit initial content for one TLB slot.

    Attributes:
        set_index: Target set.
        way: Target way.
        tag: TLB tag (high VPN bits).
        ppn: Cached physical page number.
        flags: Cached permission string.
        last_used: Recency stamp, or None to assign one automatically.
    """

    set_index: int
    way: int
    tag: int
    ppn: int
    flags: str = ""
    last_used: Optional[int] = None


def apply_tlb_seed(
    store: AssociativeStore,
    rows: Iterable[TlbSeedRow],
    time_base: int = 0
) -> int:
    """
    Pre-populate a TLB store from seed rows.

    Rows addressing a set or way outside the store are skipped. Rows
    without an explicit ``last_used`` receive ``time_base + 1``,
    ``time_base + 2``, ... in row order.

    Returns:
        Number of rows applied.
    """
    stamp = time_base
    applied = 0
    for row in rows:
        if not store.has_slot(row.set_index, row.way):
            logger.debug("skipping TLB seed row outside store: set=%d way=%d",
                         row.set_index, row.way)
            continue
        if row.last_used is None:
            stamp += 1
            last_used = stamp
        else:
            last_used = row.last_used
        store.seed(
            row.set_index,
            row.way,
            row.tag,
            PageTableEntry(ppn=row.ppn, flags=row.flags.upper()),
            last_used,
        )
        applied += 1
    return applied


@dataclass(frozen=True)
class TranslationRecord:
    """
    Record of one simulated virtual address resolution.

    Attributes:
        access_id: 1-based position in the trace.
        address: The clamped virtual address.
        vpn: Virtual page number.
        offset: Page offset.
        status: TLB_HIT, PAGE_TABLE_HIT or FAULT.
        tlb_index: TLB set index (None when the TLB is disabled).
        tlb_tag: TLB tag (None when the TLB is disabled).
        tlb_way: Way that hit or was filled, if any.
        tlb_evicted_tag: TLB tag replaced by a fill, if any.
        ppn: Physical page number, None on a fault.
        flags: Permission flags of the translation.
        physical_address: Resulting PA, None on a fault.
        fault: Fault record, if the VPN was unmapped.
        tlb_set_state: TLB set tags after the access, MRU first.
    """

    access_id: int
    address: int
    vpn: int
    offset: int
    status: ResolutionStatus
    tlb_index: Optional[int] = None
    tlb_tag: Optional[int] = None
    tlb_way: Optional[int] = None
    tlb_evicted_tag: Optional[int] = None
    ppn: Optional[int] = None
    flags: str = ""
    physical_address: Optional[int] = None
    fault: Optional[FaultRecord] = None
    tlb_set_state: Tuple[int, ...] = ()

    @property
    def tlb_enabled(self) -> bool:
        return self.tlb_index is not None

    @property
    def tlb_hit(self) -> Optional[bool]:
        """True/False for a TLB hit/miss, None when there is no TLB."""
        if not self.tlb_enabled:
            return None
        return self.status is ResolutionStatus.TLB_HIT

    @property
    def page_table_hit(self) -> Optional[bool]:
        """True/False if the page table was consulted, otherwise None."""
        if self.status is ResolutionStatus.TLB_HIT:
            return None
        return self.status is ResolutionStatus.PAGE_TABLE_HIT

    @property
    def resolved(self) -> bool:
        return self.status is not ResolutionStatus.FAULT

    def to_dict(
        self,
        va_bits: Optional[int] = None,
        pa_bits: Optional[int] = None
    ) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        va_digits = nibbles_for(va_bits) if va_bits else 0
        pa_digits = nibbles_for(pa_bits) if pa_bits else 0
        return {
            "access_id": self.access_id,
            "virtual_address": to_hex(self.address, va_digits),
            "vpn": to_hex(self.vpn),
            "offset": self.offset,
            "status": self.status.name,
            "tlb_index": self.tlb_index,
            "tlb_tag": to_hex(self.tlb_tag) if self.tlb_tag is not None else None,
            "tlb_hit": self.tlb_hit,
            "tlb_way": self.tlb_way,
            "tlb_evicted_tag": (
                to_hex(self.tlb_evicted_tag) if self.tlb_evicted_tag is not None else None
            ),
            "ppn": to_hex(self.ppn) if self.ppn is not None else None,
            "flags": self.flags,
            "physical_address": (
                to_hex(self.physical_address, pa_digits)
                if self.physical_address is not None else None
            ),
            "fault": self.fault.to_dict() if self.fault else None,
            "tlb_set_state": [to_hex(t) for t in self.tlb_set_state],
        }


@dataclass
class ResolverRunResult:
    """
    Complete result of a virtual memory simulation run.

    Attributes:
        layout: VA/PA layout.
        tlb_layout: TLB split, None when the TLB is disabled.
        records: One record per address, in input order.
        tlb_statistics: TLB hit/miss counters (None without a TLB).
        page_table_statistics: Mapped (hit) / unmapped (miss) lookups.
        tlb: Final TLB contents.
        page_table: The page table used for the run.
    """

    layout: MemoryAddressLayout
    tlb_layout: Optional[TlbLayout] = None
    records: List[TranslationRecord] = field(default_factory=list)
    tlb_statistics: Optional[StoreStatistics] = None
    page_table_statistics: StoreStatistics = field(default_factory=StoreStatistics)
    tlb: Optional[AssociativeStore] = None
    page_table: Optional[PageTable] = None

    @property
    def faults(self) -> List[FaultRecord]:
        return [r.fault for r in self.records if r.fault is not None]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        statistics: Dict[str, Any] = {"page_table": self.page_table_statistics.to_dict()}
        if self.tlb_statistics is not None:
            statistics["tlb"] = self.tlb_statistics.to_dict()

        return {
            "simulator": "vm",
            "layout": self.layout.to_dict(),
            "tlb_layout": self.tlb_layout.to_dict() if self.tlb_layout else None,
            "accesses": [
                r.to_dict(self.layout.va_bits, self.layout.pa_bits) for r in self.records
            ],
            "statistics": statistics,
            "page_table": self.page_table.to_dict() if self.page_table else None,
            "final_tlb_state": self.tlb.snapshot() if self.tlb else None,
        }


class MemoryResolver:
    """
    VA -> PA resolver with an optional LRU TLB.

    The configuration is validated on construction. Each ``run`` builds a
    fresh TLB (seeded from ``tlb_seed``) and a private copy of the page
    table, so runs never share mutable state.

    Usage:
        table = PageTable()
        table.map(0x1, 0xA, "RWX")
        resolver = MemoryResolver(va_bits=32, pa_bits=32, page_size=4096,
                                  page_table=table)
        result = resolver.run([0x00001004])
    """

    def __init__(
        self,
        va_bits: int,
        pa_bits: int,
        page_size: int,
        page_table: Optional[PageTable] = None,
        tlb_entries: Optional[int] = None,
        tlb_associativity: int = 1,
        tlb_seed: Sequence[TlbSeedRow] = ()
    ):
        """
        Initialize the resolver.

        Args:
            va_bits: Virtual address width (1-64).
            pa_bits: Physical address width (1-64).
            page_size: Page size in bytes (power of two).
            page_table: VPN -> PPN mappings.
            tlb_entries: Total TLB entries; None disables the TLB.
            tlb_associativity: TLB entries per set.
            tlb_seed: Initial TLB contents.

        Raises:
            ConfigError: If any part of the configuration is invalid.
        """
        self.layout = MemoryAddressLayout.build(va_bits, pa_bits, page_size)
        self.tlb_layout: Optional[TlbLayout] = None
        if tlb_entries is not None:
            self.tlb_layout = TlbLayout.build(tlb_entries, tlb_associativity, self.layout.vpn_bits)
        self.page_table = page_table if page_table is not None else PageTable()
        self.tlb_seed = list(tlb_seed)

    @property
    def tlb_enabled(self) -> bool:
        return self.tlb_layout is not None

    def new_tlb(self) -> Optional[AssociativeStore]:
        """Build an empty TLB and apply the seed rows."""
        if self.tlb_layout is None:
            return None
        tlb = AssociativeStore(
            num_sets=self.tlb_layout.num_sets,
            associativity=self.tlb_layout.associativity,
            name="tlb",
        )
        applied = apply_tlb_seed(tlb, self.tlb_seed)
        if self.tlb_seed:
            logger.debug("seeded TLB with %d of %d rows", applied, len(self.tlb_seed))
        return tlb

    def resolve(
        self,
        tlb: Optional[AssociativeStore],
        page_table: PageTable,
        address: int,
        access_id: int
    ) -> TranslationRecord:
        """
        Resolve one virtual address.

        This takes exclusive use of ``tlb`` for the duration of the call:
        a TLB hit updates recency and a TLB miss may fill a line.
        """
        address = self.layout.clamp(address)
        fields = self.layout.split(address)

        tlb_tag = tlb_index = tlb_way = evicted_tag = None
        entry: Optional[PageTableEntry] = None
        status = ResolutionStatus.FAULT

        # TLB lookup
        if tlb is not None and self.tlb_layout is not None:
            tlb_tag, tlb_index = self.tlb_layout.split_vpn(fields.vpn)
            tlb_way = tlb.lookup(tlb_index, tlb_tag)
            if tlb_way is not None:
                tlb.touch(tlb_index, tlb_way)
                entry = tlb.line(tlb_index, tlb_way).payload
                status = ResolutionStatus.TLB_HIT

        # Page table lookup on TLB miss or without a TLB
        if status is not ResolutionStatus.TLB_HIT:
            entry = page_table.lookup(fields.vpn)
            if entry is not None:
                status = ResolutionStatus.PAGE_TABLE_HIT
                if tlb is not None and tlb_index is not None:
                    tlb_way = tlb.select_victim(tlb_index)
                    evicted = tlb.fill(tlb_index, tlb_way, tlb_tag, entry)
                    if evicted is not None:
                        evicted_tag = evicted.tag
            elif tlb is not None:
                tlb.tick()

        fault = None
        ppn = physical_address = None
        flags = ""
        if entry is not None:
            ppn = entry.ppn
            flags = entry.flags
            physical_address = self.layout.physical_address(ppn, fields.offset)
        else:
            fault = FaultRecord(
                fault_type=FaultType.PAGE_FAULT,
                address=address,
                vpn=fields.vpn,
            )

        logger.debug(
            "access %d: va=%s vpn=%s %s pa=%s",
            access_id, to_hex(address), to_hex(fields.vpn), status.name,
            to_hex(physical_address) if physical_address is not None else "-"
        )

        return TranslationRecord(
            access_id=access_id,
            address=address,
            vpn=fields.vpn,
            offset=fields.offset,
            status=status,
            tlb_index=tlb_index,
            tlb_tag=tlb_tag,
            tlb_way=tlb_way,
            tlb_evicted_tag=evicted_tag,
            ppn=ppn,
            flags=flags,
            physical_address=physical_address,
            fault=fault,
            tlb_set_state=(
                tuple(tlb.recency_order(tlb_index))
                if tlb is not None and tlb_index is not None else ()
            ),
        )

    def run(self, addresses: Iterable[int]) -> ResolverRunResult:
        """
        Replay virtual addresses.

        Args:
            addresses: Virtual addresses in access order.

        Returns:
            ResolverRunResult with the trace and statistics.
        """
        tlb = self.new_tlb()
        page_table = self.page_table.copy()

        records = [
            self.resolve(tlb, page_table, address, i)
            for i, address in enumerate(addresses, start=1)
        ]

        tlb_statistics = tally(records, lambda r: r.tlb_hit) if tlb is not None else None
        page_table_statistics = tally(records, lambda r: r.page_table_hit)

        logger.info(
            "vm run: %d accesses, %d faults",
            len(records), page_table_statistics.misses
        )

        return ResolverRunResult(
            layout=self.layout,
            tlb_layout=self.tlb_layout,
            records=records,
            tlb_statistics=tlb_statistics,
            page_table_statistics=page_table_statistics,
            tlb=tlb,
            page_table=page_table,
        )
