import pytest
from rich.console import Console

from memsim_viz.io.parser import load_scenario
from memsim_viz.visualizer.html import HTMLVisualizer
from memsim_viz.visualizer.terminal import TerminalVisualizer


@pytest.fixture
def cache_config():
    return load_scenario({
        "scenario_name": "viz_cache",
        "description": "terminal and html output",
        "simulator": "cache",
        "cache": {},
        "display": {"show_set_state": True},
    })


@pytest.fixture
def vm_config():
    return load_scenario({
        "scenario_name": "viz_vm",
        "simulator": "vm",
        "memory": {"tlb": {}},
    })


def record_console():
    return Console(record=True, width=200, force_terminal=False)


def test_terminal_cache_output(cache_config, direct_mapped):
    console = record_console()
    viz = TerminalVisualizer(cache_config, console)
    viz.visualize(direct_mapped.run([0x0, 0x4, 0x10, 0x0]))
    text = console.export_text()

    assert "Cache Simulation (LRU)" in text
    assert "viz_cache" in text
    assert "Accesses (4)" in text
    assert "HIT" in text and "MISS" in text
    assert "Set (MRU->LRU)" in text
    assert "50.00%" in text


def test_terminal_vm_output_shows_faults(vm_config, tlb_resolver):
    console = record_console()
    viz = TerminalVisualizer(vm_config, console)
    viz.visualize(tlb_resolver.run([0x1004, 0x5000]))
    text = console.export_text()

    assert "Translations (2)" in text
    assert "0x0000A004" in text
    assert "FAULT" in text
    assert "Page Faults" in text
    assert "page fault / unmapped" in text


def test_state_tree(vm_config, tlb_resolver):
    console = record_console()
    TerminalVisualizer(vm_config, console).print_state_tree(tlb_resolver.run([0x1004]))
    text = console.export_text()

    assert "TLB final state" in text
    assert "set 1" in text
    assert "way 0: tag=0x0 lastUsed=1 ppn=0xA RWX" in text
    assert "VPN 0x1 -> PPN 0xA RWX" in text


def test_terminal_save(tmp_path, cache_config, direct_mapped):
    path = tmp_path / "out" / "trace.txt"
    TerminalVisualizer(cache_config, record_console()).save(direct_mapped.run([0x0]), path)
    assert "Accesses (1)" in path.read_text()


def test_html_cache_report(cache_config, direct_mapped):
    html = HTMLVisualizer(cache_config).render_to_string(direct_mapped.run([0x0, 0x4]))

    assert "<title>Memory Simulation: viz_cache</title>" in html
    assert "outcome-hit" in html
    assert "outcome-miss" in html
    assert "0xFFFFFC00" in html
    assert "Final Cache Contents" in html


def test_html_vm_report(vm_config, tlb_resolver):
    html = HTMLVisualizer(vm_config).render_to_string(tlb_resolver.run([0x1004, 0x5000]))

    assert "Virtual Memory: VA -&gt; PA" in html or "Virtual Memory: VA -> PA" in html
    assert "0x0000A004" in html
    assert "outcome-fault" in html
    assert "Final TLB Contents" in html


def test_html_save(tmp_path, cache_config, direct_mapped):
    path = tmp_path / "report" / "viz_cache.html"
    HTMLVisualizer(cache_config).save(direct_mapped.run([0x0]), path)
    assert path.read_text(encoding="utf-8").lstrip().startswith("<!DOCTYPE html>")
