"""
Single-level page table model.

The page table maps a virtual page number to a physical page number and a
free-form permission string (e.g. "RWX", "R--"). It is populated before a
run, from a mapping list and/or explicit rows, and is only read during
resolution.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, Mapping, Optional, Tuple

from memsim_viz.models.bitfield import to_hex


@dataclass(frozen=True)
class PageTableEntry:
    """
    Translation for one virtual page.

    Attributes:
        ppn: Physical page number.
        flags: Uppercased permission characters.
    """

    ppn: int
    flags: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"ppn": to_hex(self.ppn), "flags": self.flags}


class PageTable:
    """
    VPN -> PageTableEntry mapping with unique keys.

    Each simulation run works on its own PageTable; ``copy`` gives an
    independent snapshot.
    """

    def __init__(self, entries: Optional[Mapping[int, PageTableEntry]] = None):
        self._entries: Dict[int, PageTableEntry] = dict(entries or {})

    def map(self, vpn: int, ppn: int, flags: str = "") -> None:
        """Add or overwrite the mapping for ``vpn``."""
        self._entries[vpn] = PageTableEntry(ppn=ppn, flags=flags.upper())

    def lookup(self, vpn: int) -> Optional[PageTableEntry]:
        return self._entries.get(vpn)

    def copy(self) -> PageTable:
        return PageTable(self._entries)

    def items(self) -> Iterator[Tuple[int, PageTableEntry]]:
        return iter(sorted(self._entries.items()))

    def __contains__(self, vpn: object) -> bool:
        return vpn in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def to_dict(self) -> Dict[str, dict]:
        """Convert to dictionary for JSON serialization."""
        return {to_hex(vpn): entry.to_dict() for vpn, entry in self.items()}
