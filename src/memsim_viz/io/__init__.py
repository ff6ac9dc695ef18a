"""Input/Output handling for scenario files and simulation results."""

from memsim_viz.io.parser import parse_scenario, ScenarioConfig
from memsim_viz.io.formatter import format_output, render_text, SimulationOutput

__all__ = [
    "parse_scenario",
    "ScenarioConfig",
    "format_output",
    "render_text",
    "SimulationOutput",
]
