"""
Command-line interface for memsim-viz.

Usage:
    memsim-viz <scenario.json> [-o DIR] [-f terminal|text|html|both|json] [-q] [--tree] [-v]
    memsim-viz --help

Examples:
    # Rich tables in the terminal
    memsim-viz examples/cache_direct_mapped.json

    # Plain text trace, printed and written to results/vm_tlb.txt
    memsim-viz examples/vm_tlb.json --format text --output results/

    # Terminal tables plus an HTML report (and its JSON data)
    memsim-viz examples/vm_tlb.json --format both
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List

from rich.logging import RichHandler

from memsim_viz.io.parser import (
    ScenarioConfig,
    build_cache_simulator,
    build_memory_resolver,
    get_addresses,
    parse_scenario,
)
from memsim_viz.io.formatter import (
    SimulationResult,
    format_output,
    generate_summary,
    render_text,
    save_output,
)
from memsim_viz.visualizer.html import HTMLVisualizer
from memsim_viz.visualizer.terminal import TerminalVisualizer

FORMATS = ["terminal", "text", "html", "both", "json"]


def run_simulation(scenario_path: Path) -> tuple:
    """
    Load a scenario file and replay its addresses.

    Returns:
        Tuple of (config, result), where result is a CacheRunResult or a
        ResolverRunResult depending on ``config.simulator``.
    """
    config = parse_scenario(scenario_path)
    addresses = get_addresses(config)

    if config.simulator == "cache":
        result = build_cache_simulator(config).run(addresses)
    else:
        result = build_memory_resolver(config).run(addresses)
    return config, result


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="memsim-viz",
        description="Cache and virtual memory address simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s examples/cache_direct_mapped.json
  %(prog)s examples/vm_tlb.json -f html -o results/
  %(prog)s examples/vm_page_table.json -f text
        """
    )
    parser.add_argument("scenario", type=Path, help="Scenario JSON file")
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=Path("results"),
        help="Directory for saved reports (default: results/)"
    )
    parser.add_argument(
        "-f", "--format",
        choices=FORMATS,
        default="terminal",
        help="What to produce (default: terminal)"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Write files only, print nothing"
    )
    parser.add_argument(
        "--tree",
        action="store_true",
        help="Also print the final cache/TLB contents as a tree"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log every access"
    )
    return parser


def write_outputs(
    args: argparse.Namespace,
    config: ScenarioConfig,
    result: SimulationResult
) -> List[Path]:
    """
    Produce everything the selected format asks for.

    Returns:
        Paths of the files written.
    """
    written: List[Path] = []
    stem = config.scenario_name

    if args.format in ("terminal", "both") and not args.quiet:
        viz = TerminalVisualizer(config)
        viz.visualize(result)
        if args.tree:
            viz.print_state_tree(result)

    if args.format == "text":
        trace = render_text(result, config.display)
        path = args.output / f"{stem}.txt"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(trace + "\n", encoding="utf-8")
        written.append(path)
        if not args.quiet:
            print(trace)

    if args.format in ("html", "both"):
        path = args.output / f"{stem}.html"
        HTMLVisualizer(config).save(result, path)
        written.append(path)

    # html and both keep the JSON data next to the report
    if args.format in ("json", "html", "both"):
        path = args.output / f"{stem}.json"
        save_output(format_output(result, config), path)
        written.append(path)
        if args.format == "json" and not args.quiet:
            print(generate_summary(result))

    return written


def main() -> int:
    """Entry point of the ``memsim-viz`` command."""
    args = build_arg_parser().parse_args()
    configure_logging(args.verbose)

    if not args.scenario.exists():
        print(f"Error: Scenario file not found: {args.scenario}", file=sys.stderr)
        return 1

    try:
        config, result = run_simulation(args.scenario)
        written = write_outputs(args, config, result)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        for path in written:
            print(f"Saved: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
