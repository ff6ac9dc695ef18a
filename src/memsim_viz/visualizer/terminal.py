"""
Terminal-based visualizer using Rich library.

This module provides colorful, structured terminal output for
simulation results. It uses the Rich library for:
- Colored text and panels
- Tables for layouts, accesses and statistics
- Tree structures for the final store contents
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree
from rich import box

from memsim_viz.visualizer.base import BaseVisualizer
from memsim_viz.io.formatter import (
    NO_VALUE,
    SimulationResult,
    format_percent,
    summary_statistics,
)
from memsim_viz.io.parser import ScenarioConfig
from memsim_viz.models.bitfield import nibbles_for, to_hex
from memsim_viz.models.store import AssociativeStore
from memsim_viz.simulator.cache import CacheRunResult
from memsim_viz.simulator.resolver import ResolverRunResult, ResolutionStatus


class TerminalVisualizer(BaseVisualizer):
    """
    Rich terminal visualizer for simulation runs.

    Produces colorful, structured output including:
    - Scenario header
    - Address layout (field widths and derivation)
    - Per-access table with hits, misses, evictions and faults
    - Statistics per store
    """

    def __init__(
        self,
        config: Optional[ScenarioConfig] = None,
        console: Optional[Console] = None
    ):
        """
        Initialize the terminal visualizer.

        Args:
            config: Scenario configuration.
            console: Rich Console instance (creates new if None).
        """
        super().__init__(config)
        self.console = console or Console()

    def visualize(self, result: SimulationResult) -> None:
        """
        Display the run result in the terminal.

        Args:
            result: The run result to visualize.
        """
        self._print_header(result)
        self._print_layout(result)

        if isinstance(result, CacheRunResult):
            self._print_cache_accesses(result)
        else:
            self._print_translations(result)

        self._print_statistics(result)

        if isinstance(result, ResolverRunResult) and result.faults:
            self._print_faults(result)

    def save(self, result: SimulationResult, output_path: Path) -> None:
        """
        Save terminal output to a file.

        Args:
            result: The run result.
            output_path: Path to save output (as text).
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            old_console = self.console
            self.console = Console(file=f, force_terminal=False, width=140)
            try:
                self.visualize(result)
            finally:
                self.console = old_console

    def _print_header(self, result: SimulationResult) -> None:
        """Print the header panel."""
        if isinstance(result, CacheRunResult):
            title = "Cache Simulation (LRU)"
        else:
            title = "Virtual Memory: VA -> PA (+ optional TLB)"

        header_text = f"[bold cyan]{title}[/]\n"
        header_text += f"[dim]Scenario: {self.get_scenario_name()}[/]"
        description = self.get_description()
        if description:
            header_text += f"\n[dim]{description}[/]"

        self.console.print(Panel(header_text, box=box.DOUBLE))

    def _print_layout(self, result: SimulationResult) -> None:
        """Print the address layout table."""
        table = Table(title="Address Layout", box=box.ROUNDED)
        table.add_column("Field", style="cyan")
        table.add_column("Bits", style="yellow")
        table.add_column("Derivation", style="dim")

        if isinstance(result, CacheRunResult):
            layout = result.layout
            derivation = layout.derivation()
            table.add_row("Tag", str(layout.tag_bits), derivation[4])
            table.add_row("Index", str(layout.index_bits), derivation[3])
            table.add_row("Offset", str(layout.offset_bits), derivation[2])
            table.add_row("Sets", str(layout.num_sets), derivation[1])
        else:
            layout = result.layout
            derivation = layout.derivation()
            table.add_row("VPN", str(layout.vpn_bits), derivation[1])
            table.add_row("Offset", str(layout.offset_bits), derivation[0])
            if result.tlb_layout is not None:
                tlb_derivation = result.tlb_layout.derivation()
                table.add_row("TLB tag", str(result.tlb_layout.tag_bits), tlb_derivation[4])
                table.add_row("TLB index", str(result.tlb_layout.index_bits), tlb_derivation[3])

        self.console.print(table)

    def _print_cache_accesses(self, result: CacheRunResult) -> None:
        """Print the cache access table."""
        digits = nibbles_for(result.layout.addr_bits)
        display = self.get_display()

        table = Table(title=f"Accesses ({len(result.records)})", box=box.ROUNDED)
        table.add_column("#", style="dim", width=4)
        table.add_column("Address", style="yellow")
        table.add_column("Tag")
        table.add_column("Index")
        table.add_column("Offset")
        table.add_column("Result", style="bold")
        table.add_column("Set/Way")
        table.add_column("Evicted", style="magenta")
        if display.show_set_state:
            table.add_column("Set (MRU->LRU)", style="dim")

        for r in result.records:
            result_style = "[green]HIT[/]" if r.hit else "[red]MISS[/]"
            row = [
                str(r.access_id),
                to_hex(r.address, digits),
                to_hex(r.tag),
                str(r.index),
                str(r.offset),
                result_style,
                f"{r.index}/{r.way}",
                to_hex(r.evicted_tag) if r.evicted_tag is not None else NO_VALUE,
            ]
            if display.show_set_state:
                row.append(", ".join(to_hex(t) for t in r.set_state))
            table.add_row(*row)

        self.console.print(table)

    def _print_translations(self, result: ResolverRunResult) -> None:
        """Print the translation table."""
        va_digits = nibbles_for(result.layout.va_bits)
        pa_digits = nibbles_for(result.layout.pa_bits)
        tlb_enabled = result.tlb_layout is not None

        table = Table(title=f"Translations ({len(result.records)})", box=box.ROUNDED)
        table.add_column("#", style="dim", width=4)
        table.add_column("VA", style="yellow")
        table.add_column("VPN")
        table.add_column("Offset")
        if tlb_enabled:
            table.add_column("TLB idx/tag")
            table.add_column("TLB", style="bold")
        table.add_column("PPN")
        table.add_column("Flags", style="cyan")
        table.add_column("PA", style="green")

        for r in result.records:
            row = [
                str(r.access_id),
                to_hex(r.address, va_digits),
                to_hex(r.vpn),
                str(r.offset),
            ]
            if tlb_enabled:
                row.append(f"{r.tlb_index}/{to_hex(r.tlb_tag)}")
                row.append("[green]HIT[/]" if r.tlb_hit else "[red]MISS[/]")
            row.append(to_hex(r.ppn) if r.ppn is not None else NO_VALUE)
            row.append(r.flags or NO_VALUE)
            if r.status is ResolutionStatus.FAULT:
                row.append("[bold red]FAULT[/]")
            else:
                row.append(to_hex(r.physical_address, pa_digits))
            table.add_row(*row)

        self.console.print(table)

    def _print_statistics(self, result: SimulationResult) -> None:
        """Print statistics for every store."""
        table = Table(title="Statistics", box=box.ROUNDED)
        table.add_column("Store", style="cyan")
        table.add_column("Hits", style="green")
        table.add_column("Misses", style="red")
        table.add_column("Hit Rate", style="yellow")

        for name, stats in summary_statistics(result).items():
            table.add_row(name, str(stats.hits), str(stats.misses), format_percent(stats.hit_rate))

        self.console.print(table)

    def _print_faults(self, result: ResolverRunResult) -> None:
        """Print page fault details."""
        lines = []
        for r in result.records:
            if r.fault is None:
                continue
            lines.append(
                f"[bold red]#{r.access_id}[/] VA={to_hex(r.address)} "
                f"VPN={to_hex(r.vpn)} - {r.fault.message}"
            )

        self.console.print(Panel(
            "\n".join(lines),
            title="[red]Page Faults[/]",
            border_style="red",
            box=box.ROUNDED
        ))

    def print_state_tree(self, result: SimulationResult) -> None:
        """
        Print the final store contents as a tree.

        Sets are branches; each valid way is a leaf listing its tag and
        recency stamp.
        """
        if isinstance(result, CacheRunResult):
            store = result.store
            label = "Cache"
        else:
            store = result.tlb
            label = "TLB"

        tree = Tree(f"[bold]{label} final state[/]")
        if store is None:
            tree.add("[dim]disabled[/]")
        else:
            self._add_store_branches(tree, store)

        if isinstance(result, ResolverRunResult) and result.page_table is not None:
            pt_branch = tree.add("[magenta]Page table[/]")
            for vpn, entry in result.page_table.items():
                pt_branch.add(f"VPN {to_hex(vpn)} -> PPN {to_hex(entry.ppn)} {entry.flags}")

        self.console.print(tree)

    @staticmethod
    def _add_store_branches(tree: Tree, store: AssociativeStore) -> None:
        for set_index, lines in enumerate(store.sets):
            if not any(line.valid for line in lines):
                continue
            set_node = tree.add(f"[cyan]set {set_index}[/]")
            for way, line in enumerate(lines):
                if not line.valid:
                    set_node.add(f"[dim]way {way}: invalid[/]")
                    continue
                text = f"way {way}: tag={to_hex(line.tag)} lastUsed={line.last_used}"
                if line.payload is not None:
                    text += f" ppn={to_hex(line.payload.ppn)} {line.payload.flags}"
                set_node.add(text)
