"""Shared fixtures for the memsim-viz test suite."""

import json

import pytest

from memsim_viz.models.page_table import PageTable
from memsim_viz.simulator.cache import CacheSimulator
from memsim_viz.simulator.resolver import MemoryResolver



@pytest.fixture
def direct_mapped():
    """1 KiB direct-mapped cache, 16 byte blocks, 32-bit addresses."""
    return CacheSimulator(addr_bits=32, cache_size=1024, block_size=16, associativity=1)


@pytest.fixture
def page_table():
    table = PageTable()
    table.map(0x1, 0xA, "RWX")
    table.map(0x2, 0xB, "R--")
    return table


@pytest.fixture
def resolver(page_table):
    """32-bit VA/PA, 4 KiB pages, no TLB."""
    return MemoryResolver(va_bits=32, pa_bits=32, page_size=4096, page_table=page_table)


@pytest.fixture
def tlb_resolver(page_table):
    """Same address space with a 16-entry 4-way TLB."""
    return MemoryResolver(
        va_bits=32, pa_bits=32, page_size=4096,
        page_table=page_table, tlb_entries=16, tlb_associativity=4,
    )


@pytest.fixture
def write_scenario(tmp_path):
    """Write a scenario dictionary to a JSON file and return its path."""
    def _write(data, name="scenario.json"):
        path = tmp_path / name
        path.write_text(json.dumps(data))
        return path
    return _write
