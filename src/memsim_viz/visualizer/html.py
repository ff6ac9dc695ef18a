"""
HTML report renderer (Jinja2).

Builds one self-contained HTML page per run containing:
- The address layout and how it was derived
- Hit/miss statistics per store
- One table row per access, colored by outcome
- The final cache or TLB contents
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional
from datetime import datetime

from jinja2 import Template

from memsim_viz.visualizer.base import BaseVisualizer
from memsim_viz.io.formatter import (
    NO_VALUE,
    SimulationResult,
    format_percent,
    summary_statistics,
)
from memsim_viz.io.parser import ScenarioConfig
from memsim_viz.models.bitfield import nibbles_for, to_hex
from memsim_viz.simulator.cache import CacheRunResult
from memsim_viz.simulator.resolver import ResolutionStatus


HTML_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Memory Simulation: {{ scenario_name }}</title>
    <style>
        :root {
            --paper: #fbfaf7;
            --ink: #23272f;
            --muted: #6b7280;
            --rule: #e2ded5;
            --hit: #1f8a4c;
            --miss: #c0392b;
            --field: #8a5a00;
        }

        body {
            margin: 0;
            padding: 24px 32px;
            background: var(--paper);
            color: var(--ink);
            font: 15px/1.45 system-ui, -apple-system, "Helvetica Neue", sans-serif;
        }

        main { max-width: 1200px; margin: 0 auto; }

        h1 { font-size: 1.6rem; margin: 0 0 4px; }
        h2 {
            font-size: 1.05rem;
            text-transform: uppercase;
            letter-spacing: 0.06em;
            color: var(--muted);
            margin: 0 0 12px;
        }

        .subtitle { color: var(--muted); margin: 0 0 24px; }

        section {
            border: 1px solid var(--rule);
            border-radius: 6px;
            background: #fff;
            padding: 16px 20px;
            margin-bottom: 20px;
        }

        .columns { display: flex; flex-wrap: wrap; gap: 20px; }
        .columns > section { flex: 1 1 360px; }

        dl { display: grid; grid-template-columns: max-content 1fr; gap: 4px 16px; margin: 0; }
        dt { color: var(--muted); }
        dd { margin: 0; font-family: ui-monospace, Menlo, Consolas, monospace; color: var(--field); }

        ol.derivation {
            margin: 12px 0 0;
            padding-left: 20px;
            font-family: ui-monospace, Menlo, Consolas, monospace;
            font-size: 0.85rem;
            color: var(--muted);
        }

        .stats { display: flex; flex-wrap: wrap; gap: 12px; }
        .stat { border-left: 3px solid var(--rule); padding: 4px 12px; }
        .stat strong { display: block; font-size: 1.5rem; }
        .stat span { color: var(--muted); font-size: 0.85rem; }

        table { width: 100%; border-collapse: collapse; }
        th {
            text-align: left;
            font-weight: 600;
            font-size: 0.8rem;
            color: var(--muted);
            border-bottom: 2px solid var(--rule);
            padding: 6px 8px;
        }
        td {
            padding: 5px 8px;
            border-bottom: 1px solid var(--rule);
            font-family: ui-monospace, Menlo, Consolas, monospace;
            font-size: 0.85rem;
        }

        .outcome-hit { color: var(--hit); font-weight: 700; }
        .outcome-miss, .outcome-fault { color: var(--miss); font-weight: 700; }

        footer { color: var(--muted); font-size: 0.8rem; text-align: right; }
    </style>
</head>
<body>
<main>
    <h1>{{ title }}</h1>
    <p class="subtitle">{{ scenario_name }}{% if description %} - {{ description }}{% endif %}</p>

    <div class="columns">
        <section>
            <h2>Address Layout</h2>
            <dl>
                {% for row in layout %}
                <dt>{{ row.label }}</dt><dd>{{ row.value }}</dd>
                {% endfor %}
            </dl>
            <ol class="derivation">
                {% for line in derivation %}
                <li>{{ line }}</li>
                {% endfor %}
            </ol>
        </section>

        <section>
            <h2>Summary</h2>
            <div class="stats">
                <div class="stat"><strong>{{ total_accesses }}</strong><span>accesses</span></div>
                {% for stat in statistics %}
                <div class="stat">
                    <strong>{{ stat.hit_rate }}</strong>
                    <span>{{ stat.name }}: {{ stat.hits }} hits / {{ stat.misses }} misses</span>
                </div>
                {% endfor %}
            </div>
        </section>
    </div>

    <section>
        <h2>Accesses</h2>
        <table>
            <tr>{% for column in columns %}<th>{{ column }}</th>{% endfor %}</tr>
            {% for row in rows %}
            <tr>
                {% for cell in row.cells %}<td>{{ cell }}</td>{% endfor %}
                <td class="outcome-{{ row.outcome|lower }}">{{ row.outcome }}</td>
            </tr>
            {% endfor %}
        </table>
    </section>

    {% if final_state %}
    <section>
        <h2>Final {{ store_name }} Contents</h2>
        <table>
            <tr><th>Set</th><th>Way</th><th>Tag</th><th>Last used</th><th>Entry</th></tr>
            {% for line in final_state %}
            <tr>
                <td>{{ line.set }}</td><td>{{ line.way }}</td><td>{{ line.tag }}</td>
                <td>{{ line.last_used }}</td><td>{{ line.payload }}</td>
            </tr>
            {% endfor %}
        </table>
    </section>
    {% endif %}

    <footer>Generated {{ timestamp }}</footer>
</main>
</body>
</html>
"""


class HTMLVisualizer(BaseVisualizer):
    """
    Single-file HTML report of a cache or VM run.

    The page carries its own stylesheet and needs no network access, so
    it can be attached to a lab write-up as is.
    """

    def __init__(self, config: Optional[ScenarioConfig] = None):
        super().__init__(config)
        self.template = Template(HTML_TEMPLATE)

    def visualize(self, result: SimulationResult) -> None:
        """Print the report markup to stdout."""
        print(self._render(result))

    def save(self, result: SimulationResult, output_path: Path) -> None:
        """
        Write the report to ``output_path``.

        Args:
            result: The run result.
            output_path: Destination ``.html`` file.
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self._render(result), encoding="utf-8")

    def render_to_string(self, result: SimulationResult) -> str:
        return self._render(result)

    def _render(self, result: SimulationResult) -> str:
        """Render the HTML from template."""
        if isinstance(result, CacheRunResult):
            context = self._cache_context(result)
        else:
            context = self._vm_context(result)

        statistics = [
            {
                "name": name,
                "hits": stats.hits,
                "misses": stats.misses,
                "hit_rate": format_percent(stats.hit_rate),
            }
            for name, stats in summary_statistics(result).items()
        ]

        context.update({
            "scenario_name": self.get_scenario_name(),
            "description": self.get_description(),
            "total_accesses": len(result.records),
            "statistics": statistics,
            "timestamp": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        })
        return self.template.render(**context)

    @staticmethod
    def _final_state(store) -> List[Dict[str, Any]]:
        lines = []
        if store is None:
            return lines
        for set_index, ways in enumerate(store.sets):
            for way, line in enumerate(ways):
                if not line.valid:
                    continue
                payload = ""
                if line.payload is not None:
                    payload = f"PPN {to_hex(line.payload.ppn)} {line.payload.flags}".strip()
                lines.append({
                    "set": set_index,
                    "way": way,
                    "tag": to_hex(line.tag),
                    "last_used": line.last_used,
                    "payload": payload,
                })
        return lines

    def _cache_context(self, result: CacheRunResult) -> Dict[str, Any]:
        layout = result.layout
        digits = nibbles_for(layout.addr_bits)

        rows = []
        for r in result.records:
            rows.append({
                "cells": [
                    r.access_id,
                    to_hex(r.address, digits),
                    to_hex(r.tag),
                    r.index,
                    r.offset,
                    r.way,
                    to_hex(r.evicted_tag) if r.evicted_tag is not None else NO_VALUE,
                ],
                "outcome": r.outcome.value,
            })

        return {
            "title": "Cache Simulation (LRU)",
            "layout": [
                {"label": "Tag bits", "value": layout.tag_bits},
                {"label": "Index bits", "value": layout.index_bits},
                {"label": "Offset bits", "value": layout.offset_bits},
                {"label": "Tag mask", "value": to_hex(layout.tag_mask, digits)},
                {"label": "Index mask", "value": to_hex(layout.index_mask, digits)},
                {"label": "Offset mask", "value": to_hex(layout.offset_mask, digits)},
            ],
            "derivation": layout.derivation(),
            "columns": ["#", "Address", "Tag", "Index", "Offset", "Way", "Evicted", "Result"],
            "rows": rows,
            "store_name": "Cache",
            "final_state": self._final_state(result.store),
        }

    def _vm_context(self, result) -> Dict[str, Any]:
        layout = result.layout
        va_digits = nibbles_for(layout.va_bits)
        pa_digits = nibbles_for(layout.pa_bits)
        tlb_enabled = result.tlb_layout is not None

        rows = []
        for r in result.records:
            cells = [r.access_id, to_hex(r.address, va_digits), to_hex(r.vpn), r.offset]
            if tlb_enabled:
                cells.append("HIT" if r.tlb_hit else "MISS")
            cells.append(to_hex(r.ppn) if r.ppn is not None else NO_VALUE)
            cells.append(r.flags or NO_VALUE)
            cells.append(
                to_hex(r.physical_address, pa_digits)
                if r.physical_address is not None else NO_VALUE
            )
            if r.status is ResolutionStatus.FAULT:
                outcome = "FAULT"
            elif r.status is ResolutionStatus.TLB_HIT:
                outcome = "HIT"
            else:
                outcome = "MISS" if tlb_enabled else "HIT"
            rows.append({"cells": cells, "outcome": outcome})

        columns = ["#", "VA", "VPN", "Offset"]
        if tlb_enabled:
            columns.append("TLB")
        columns += ["PPN", "Flags", "PA", "Result"]

        derivation = layout.derivation()
        layout_rows = [
            {"label": "VPN bits", "value": layout.vpn_bits},
            {"label": "Offset bits", "value": layout.offset_bits},
        ]
        if result.tlb_layout is not None:
            derivation += result.tlb_layout.derivation()
            layout_rows.append({"label": "TLB tag bits", "value": result.tlb_layout.tag_bits})
            layout_rows.append({"label": "TLB index bits", "value": result.tlb_layout.index_bits})

        return {
            "title": "Virtual Memory: VA -> PA",
            "layout": layout_rows,
            "derivation": derivation,
            "columns": columns,
            "rows": rows,
            "store_name": "TLB",
            "final_state": self._final_state(result.tlb),
        }
