import json
import sys
from pathlib import Path

import pytest

from memsim_viz.main import main, run_simulation
from memsim_viz.simulator.resolver import ResolutionStatus

EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"

CACHE_SCENARIO = {
    "scenario_name": "cli_cache",
    "simulator": "cache",
    "addresses": "0x0\n0x4\n0x10\n0x0",
    "cache": {"addr_bits": 32, "cache_size": 1024, "block_size": 16, "associativity": 1},
}


def run_cli(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["memsim-viz", *map(str, args)])
    return main()


def test_run_simulation_vm_example():
    config, result = run_simulation(EXAMPLES_DIR / "vm_tlb.json")
    assert config.simulator == "vm"
    statuses = [r.status for r in result.records]
    assert statuses == [
        ResolutionStatus.TLB_HIT,
        ResolutionStatus.PAGE_TABLE_HIT,
        ResolutionStatus.TLB_HIT,
        ResolutionStatus.FAULT,
        ResolutionStatus.TLB_HIT,
    ]
    assert result.records[1].physical_address == 0x1C008
    assert result.records[4].physical_address == 0xAFFF
    assert (result.tlb_statistics.hits, result.tlb_statistics.misses) == (3, 2)


@pytest.mark.parametrize("name", [
    "cache_direct_mapped.json",
    "cache_conflict_2way.json",
    "vm_page_table.json",
    "vm_tlb.json",
])
def test_examples_run(name):
    config, result = run_simulation(EXAMPLES_DIR / name)
    assert len(result.records) > 0


def test_json_output(monkeypatch, tmp_path, write_scenario):
    path = write_scenario(CACHE_SCENARIO)
    out = tmp_path / "results"
    assert run_cli(monkeypatch, path, "-f", "json", "-o", out, "-q") == 0

    data = json.loads((out / "cli_cache.json").read_text())
    assert data["result"]["statistics"]["cache"]["hits"] == 2


def test_text_output(monkeypatch, capsys, tmp_path, write_scenario):
    path = write_scenario(CACHE_SCENARIO)
    out = tmp_path / "results"
    assert run_cli(monkeypatch, path, "-f", "text", "-o", out) == 0

    captured = capsys.readouterr().out
    assert "CACHE ADDRESS BREAKDOWN + HIT/MISS (LRU)" in captured
    assert (out / "cli_cache.txt").read_text().startswith("CACHE ADDRESS BREAKDOWN")


def test_html_output_writes_json_too(monkeypatch, tmp_path, write_scenario):
    path = write_scenario(CACHE_SCENARIO)
    out = tmp_path / "results"
    assert run_cli(monkeypatch, path, "-f", "html", "-o", out, "-q") == 0
    assert (out / "cli_cache.html").exists()
    assert (out / "cli_cache.json").exists()


def test_missing_scenario(monkeypatch, capsys, tmp_path):
    assert run_cli(monkeypatch, tmp_path / "nope.json") == 1
    assert "Scenario file not found" in capsys.readouterr().err


def test_invalid_configuration(monkeypatch, capsys, write_scenario):
    bad = dict(CACHE_SCENARIO, cache={"block_size": 12})
    assert run_cli(monkeypatch, write_scenario(bad), "-q") == 1
    assert "Configuration error" in capsys.readouterr().err


def test_malformed_address(monkeypatch, capsys, write_scenario):
    bad = dict(CACHE_SCENARIO, addresses="0x0\nnot-hex")
    assert run_cli(monkeypatch, write_scenario(bad), "-q") == 1
    assert "line 2" in capsys.readouterr().err
