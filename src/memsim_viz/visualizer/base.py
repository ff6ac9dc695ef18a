"""
Common interface for result renderers.

A renderer takes a finished cache or VM run and either shows it
(``visualize``) or writes it somewhere (``save``). The CLI picks one per
output format and never needs to know which kind of run it holds.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from memsim_viz.io.formatter import SimulationResult
from memsim_viz.io.parser import DisplaySettings, ScenarioConfig


class BaseVisualizer(ABC):
    """Renderer for cache and VM run results."""

    def __init__(self, config: Optional[ScenarioConfig] = None):
        """
        Args:
            config: Scenario the result came from; supplies the title,
                description and display options.
        """
        self.config = config

    @abstractmethod
    def visualize(self, result: SimulationResult) -> None:
        """Show a run result."""

    @abstractmethod
    def save(self, result: SimulationResult, output_path: Path) -> None:
        """
        Write a run result to ``output_path``.

        Parent directories are created as needed.
        """

    def get_scenario_name(self) -> str:
        return self.config.scenario_name if self.config else "unnamed"

    def get_description(self) -> str:
        return self.config.description if self.config else ""

    def get_display(self) -> DisplaySettings:
        """Display options of the scenario, or all options off."""
        return self.config.display if self.config else DisplaySettings()
