"""Visualization components for simulation results."""

from memsim_viz.visualizer.base import BaseVisualizer
from memsim_viz.visualizer.terminal import TerminalVisualizer
from memsim_viz.visualizer.html import HTMLVisualizer

__all__ = [
    "BaseVisualizer",
    "TerminalVisualizer",
    "HTMLVisualizer",
]
