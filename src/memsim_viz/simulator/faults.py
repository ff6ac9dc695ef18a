"""
Fault models for virtual address resolution.

A virtual address whose VPN is not present in the page table produces a
page fault. Faults are NOT exceptions: they are recorded in the trace as
a FaultRecord and the simulation continues with the next address. Only
configuration and parse problems (see memsim_viz.models.errors) abort a
run.

PAGE FAULT FLOW:
----------------
    VA -> (vpn, offset) -> TLB miss -> page table miss -> FAULT
                                                          |
                                  no PA, TLB untouched <--+
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from memsim_viz.models.bitfield import to_hex
from memsim_viz.models.errors import ConfigError, ParseError


class FaultType(Enum):
    """Types of faults that can be recorded during resolution."""

    PAGE_FAULT = auto()  # VPN not mapped by the page table


@dataclass(frozen=True)
class FaultRecord:
    """
    Record of a page fault for the trace.

    This is a non-exception class used to record fault information
    in the trace without stopping the run.

    Attributes:
        fault_type: Kind of fault.
        address: The virtual address that faulted.
        vpn: The unmapped virtual page number.
        message: Human-readable fault description.
    """

    fault_type: FaultType
    address: int
    vpn: int
    message: str = "page fault / unmapped"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "fault_type": self.fault_type.name,
            "address": to_hex(self.address),
            "vpn": to_hex(self.vpn),
            "message": self.message,
        }


__all__ = ["ConfigError", "ParseError", "FaultType", "FaultRecord"]
