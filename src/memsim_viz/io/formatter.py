"""
Output formatter for simulation results.

This module turns run results into either structured JSON or the plain
text trace used by the command line.

OUTPUT FORMAT (JSON):
=====================
{
    "scenario_name": "string",
    "description": "string",
    "timestamp": "ISO-8601",
    "input": { ... },                // Configuration that was simulated
    "result": {
        "simulator": "cache" | "vm",
        "layout": { ... },           // Derived field widths
        "accesses": [ ... ],         // One record per address
        "statistics": {
            "cache" | "tlb" | "page_table": {"hits", "misses", "hit_rate"}
        },
        ...
    }
}

TEXT TRACE:
===========
    Parameters / Derived / Accesses / Summary [/ Masks]

Each access line shows how the address was split and what happened:

     1.  addr=0x00000000  tag=0x0  index=0  offset=0  MISS (set=0, way=0, evict=-)
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from memsim_viz.io.parser import DisplaySettings, ScenarioConfig
from memsim_viz.models.bitfield import nibbles_for, to_hex
from memsim_viz.simulator.cache import AccessOutcome, CacheRunResult
from memsim_viz.simulator.resolver import ResolverRunResult, ResolutionStatus
from memsim_viz.simulator.stats import StoreStatistics

SimulationResult = Union[CacheRunResult, ResolverRunResult]

NO_VALUE = "-"


@dataclass
class SimulationOutput:
    """
    Formatted output for a simulation run.

    This wraps the run result with scenario metadata for output.
    """

    scenario_name: str
    description: str
    timestamp: str
    input_config: Dict[str, Any]
    result: SimulationResult

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "scenario_name": self.scenario_name,
            "description": self.description,
            "timestamp": self.timestamp,
            "input": self.input_config,
            "result": self.result.to_dict(),
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to formatted JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


def format_output(result: SimulationResult, config: ScenarioConfig) -> SimulationOutput:
    """
    Format a run result with scenario metadata.

    Args:
        result: The run result to format.
        config: The scenario configuration.

    Returns:
        Formatted SimulationOutput.
    """
    input_config: Dict[str, Any] = {
        "simulator": config.simulator,
        "address_count": len(result.records),
    }
    if isinstance(result, CacheRunResult) and config.cache is not None:
        input_config["cache"] = config.cache.model_dump()
    elif config.memory is not None:
        input_config["memory"] = config.memory.model_dump(
            include={"va_bits", "pa_bits", "page_size", "tlb"}
        )

    return SimulationOutput(
        scenario_name=config.scenario_name,
        description=config.description,
        timestamp=datetime.now().isoformat(),
        input_config=input_config,
        result=result
    )


def save_output(
    output: SimulationOutput,
    file_path: str | Path,
    pretty: bool = True
) -> None:
    """
    Save formatted output to a JSON file.

    Args:
        output: The formatted output.
        file_path: Destination file path.
        pretty: If True, format with indentation.
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    indent = 2 if pretty else None
    with open(path, "w") as f:
        json.dump(output.to_dict(), f, indent=indent)


def format_percent(rate: float) -> str:
    """Format a 0..1 rate as a percentage with two decimals."""
    return f"{rate * 100:.2f}%"


def _field(value: int, hex_fields: bool) -> str:
    return to_hex(value) if hex_fields else str(value)


def _tag_list(tags) -> str:
    return ", ".join(to_hex(t) for t in tags)


def _cache_lines(result: CacheRunResult, display: DisplaySettings) -> List[str]:
    layout = result.layout
    digits = nibbles_for(layout.addr_bits)

    out = ["CACHE ADDRESS BREAKDOWN + HIT/MISS (LRU)", ""]
    out.append("Parameters:")
    out.append(f"- addrBits: {layout.addr_bits}")
    out.append(f"- cacheSize: {layout.cache_size} B")
    out.append(f"- blockSize: {layout.block_size} B")
    out.append(f"- associativity: {layout.associativity}-way")
    out.append("- replacement: LRU")
    out.append("")
    out.append("Derived:")
    out.extend(f"- {line}" for line in layout.derivation())
    out.append("")
    out.append("Accesses:")

    for r in result.records:
        line = (
            f"{r.access_id:>2}.  addr={to_hex(r.address, digits)}  tag={to_hex(r.tag)}  "
            f"index={_field(r.index, display.hex_fields)}  "
            f"offset={_field(r.offset, display.hex_fields)}  "
            f"{r.outcome.value} (set={r.index}, way={r.way}"
        )
        if r.outcome is AccessOutcome.MISS:
            evicted = to_hex(r.evicted_tag) if r.evicted_tag is not None else NO_VALUE
            line += f", evict={evicted}"
        out.append(line + ")")

        if display.show_binary:
            out.append(f"    bin: {layout.binary_split(r.address)}")
        if display.show_set_state:
            out.append(f"    tags (MRU->LRU) in set[{r.index}] => {_tag_list(r.set_state)}")

    stats = result.statistics
    out.append("")
    out.append("Summary:")
    out.append(f"- hits:   {stats.hits}")
    out.append(f"- misses: {stats.misses}")
    out.append(f"- hit rate: {format_percent(stats.hit_rate)}")

    if display.show_masks:
        out.append("")
        out.append("Masks:")
        out.append(f"- tag mask:    {to_hex(layout.tag_mask, digits)}")
        out.append(f"- index mask:  {to_hex(layout.index_mask, digits)}")
        out.append(f"- offset mask: {to_hex(layout.offset_mask, digits)}")

    return out


def _vm_lines(result: ResolverRunResult, display: DisplaySettings) -> List[str]:
    layout = result.layout
    tlb_layout = result.tlb_layout
    va_digits = nibbles_for(layout.va_bits)
    pa_digits = nibbles_for(layout.pa_bits)

    out = ["VIRTUAL MEMORY: VA -> PA (+ optional TLB)", ""]
    out.append("Parameters:")
    out.append(f"- VA bits: {layout.va_bits}")
    out.append(f"- PA bits: {layout.pa_bits}")
    out.append(f"- pageSize: {layout.page_size} B")
    out.extend(f"- {line}" for line in layout.derivation())

    if tlb_layout is not None:
        out.append("")
        out.append("TLB:")
        out.extend(f"- {line}" for line in tlb_layout.derivation())

    out.append("")
    out.append("Accesses:")

    for r in result.records:
        parts = [
            f"{r.access_id:>2}.",
            f"VA={to_hex(r.address, va_digits)}",
            f"VPN={to_hex(r.vpn)}",
            f"off={_field(r.offset, display.hex_fields)}",
        ]
        if r.tlb_enabled:
            parts.append(f"TLBidx={_field(r.tlb_index, display.hex_fields)}")
            parts.append(f"TLBtag={to_hex(r.tlb_tag)}")
            parts.append("TLB=HIT" if r.tlb_hit else "TLB=MISS")
        parts.append(f"PPN={to_hex(r.ppn) if r.ppn is not None else NO_VALUE}")
        if r.flags:
            parts.append(f"flags={r.flags}")
        if r.physical_address is not None:
            parts.append(f"PA={to_hex(r.physical_address, pa_digits)}")
        else:
            parts.append(f"PA={NO_VALUE} ({r.fault.message if r.fault else 'unmapped'})")
        out.append("  ".join(parts))

        if display.show_binary:
            out.append(f"    VA bin: {layout.binary_split(r.address)}")
            if tlb_layout is not None and tlb_layout.index_bits > 0:
                out.append(
                    f"    VPN bin: {tlb_layout.binary_split(r.vpn)}  (TLBtag | TLBidx)"
                )
        if display.show_set_state and r.tlb_enabled:
            tags = _tag_list(r.tlb_set_state) or NO_VALUE
            out.append(f"    TLB set[{r.tlb_index}] tags (MRU->LRU): {tags}")

    out.append("")
    out.append("Summary:")
    if result.tlb_statistics is not None:
        tlb = result.tlb_statistics
        out.append(f"- TLB hits:   {tlb.hits}")
        out.append(f"- TLB misses: {tlb.misses}")
        out.append(f"- TLB hit rate: {format_percent(tlb.hit_rate)}")
    pt = result.page_table_statistics
    out.append(f"- Page table hits (mapped VPN):   {pt.hits}")
    out.append(f"- Page table misses (unmapped):   {pt.misses}")

    return out


def render_text(result: SimulationResult, display: Optional[DisplaySettings] = None) -> str:
    """
    Render the plain text trace of a run.

    Args:
        result: Cache or virtual memory run result.
        display: Trace options (defaults to all options off).

    Returns:
        Multi-line trace string.
    """
    display = display or DisplaySettings()
    if isinstance(result, CacheRunResult):
        lines = _cache_lines(result, display)
    else:
        lines = _vm_lines(result, display)
    return "\n".join(lines)


def summary_statistics(result: SimulationResult) -> Dict[str, StoreStatistics]:
    """Collect the statistics of every store a run used, keyed by store name."""
    if isinstance(result, CacheRunResult):
        return {"cache": result.statistics}
    stats: Dict[str, StoreStatistics] = {}
    if result.tlb_statistics is not None:
        stats["tlb"] = result.tlb_statistics
    stats["page_table"] = result.page_table_statistics
    return stats


def generate_summary(result: SimulationResult) -> str:
    """
    Generate a short human-readable summary of a run.

    Args:
        result: The run result.

    Returns:
        Multi-line summary string.
    """
    lines = []

    lines.append("=" * 60)
    lines.append("SIMULATION SUMMARY")
    lines.append("=" * 60)
    lines.append(f"Accesses: {len(result.records)}")

    for name, stats in summary_statistics(result).items():
        lines.append(
            f"  {name}: hits={stats.hits} misses={stats.misses} "
            f"hit rate={format_percent(stats.hit_rate)}"
        )

    if isinstance(result, ResolverRunResult):
        faults = [r for r in result.records if r.status is ResolutionStatus.FAULT]
        lines.append("-" * 60)
        lines.append(f"Page faults: {len(faults)}")
        for r in faults:
            lines.append(f"  #{r.access_id}: VA={to_hex(r.address)} VPN={to_hex(r.vpn)}")

    lines.append("=" * 60)

    return "\n".join(lines)
