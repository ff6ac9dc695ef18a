"""
Cache and Virtual Memory Address Simulator and Visualizer.

This package simulates how addresses are decomposed and resolved by a
set-associative LRU cache and by a page-table based virtual memory
system with an optional TLB.

Modules:
    models: Address layouts, bit helpers, associative store, page table
    simulator: Cache simulation and VA -> PA resolution
    io: Input/output handling (JSON parsing and formatting)
    visualizer: Terminal and HTML visualization
"""

__version__ = "0.1.0"
__author__ = "memsim-viz Contributors"

from memsim_viz.simulator.cache import CacheSimulator
from memsim_viz.simulator.resolver import MemoryResolver
from memsim_viz.io.parser import parse_scenario
from memsim_viz.io.formatter import format_output, render_text

__all__ = [
    "CacheSimulator",
    "MemoryResolver",
    "parse_scenario",
    "format_output",
    "render_text",
]
