"""Data models for address layouts, associative stores and page tables."""

from memsim_viz.models.address import (
    CacheAddressLayout,
    CacheFields,
    MemoryAddressLayout,
    TlbLayout,
    VirtualFields,
)
from memsim_viz.models.errors import ConfigError, ParseError
from memsim_viz.models.page_table import PageTable, PageTableEntry
from memsim_viz.models.store import AssociativeStore, StoreLine

__all__ = [
    "CacheAddressLayout",
    "CacheFields",
    "MemoryAddressLayout",
    "TlbLayout",
    "VirtualFields",
    "ConfigError",
    "ParseError",
    "PageTable",
    "PageTableEntry",
    "AssociativeStore",
    "StoreLine",
]
