"""
Input parser for scenario files and the simulator text formats.

This module parses JSON scenario files that define:
- Which simulator to run (cache or virtual memory)
- The structure geometry (address widths, sizes, associativity)
- The address sequence to replay
- Page table mappings and optional initial TLB contents
- Display options for the text trace

INPUT FORMAT DOCUMENTATION:
===========================

{
    "scenario_name": "string",      // Identifier for this scenario
    "description": "string",        // Human-readable description
    "simulator": "cache",           // "cache" or "vm"

    "addresses": "0x0\\n0x4",       // Newline-separated hex addresses,
                                    // or a list of hex strings

    "cache": {                      // Required when simulator == "cache"
        "addr_bits": 32,            // Address width (1-64)
        "cache_size": 1024,         // Capacity in bytes
        "block_size": 16,           // Line size in bytes (power of two)
        "associativity": 1          // Lines per set (1 = direct-mapped)
    },

    "memory": {                     // Required when simulator == "vm"
        "va_bits": 32,              // Virtual address width (1-64)
        "pa_bits": 32,              // Physical address width (1-64)
        "page_size": 4096,          // Page size in bytes (power of two)
        "tlb": {                    // Optional; omit or null to disable
            "entries": 16,
            "associativity": 4
        },
        "mappings": "0x1 0xA RWX",  // Mapping list (see below)
        "page_table": [             // Explicit rows, override "mappings"
            {"vpn": "0x1", "ppn": "0xA", "flags": "RWX"}
        ],
        "tlb_seed": [               // Initial TLB slots
            {"set": 0, "way": 0, "tag": "0x1", "ppn": "0xA",
             "flags": "RWX", "last_used": 10}
        ]
    },

    "display": {                    // Options for the text trace
        "show_binary": false,
        "show_set_state": false,
        "show_masks": false,
        "hex_fields": false         // index/offset in hex, not decimal
    }
}

TEXT FORMATS:
=============

Address list:
    One hex literal per line. "0x" prefix optional, any case, "_" and
    whitespace inside a literal are ignored, blank lines are skipped.

        0x0000_1004
        00002000

Mapping list:
    One mapping per line: VPN PPN [FLAGS]. Tokens are separated by
    whitespace, commas or "->". Lines starting with "#" are comments.
    Later lines overwrite earlier ones for the same VPN.

        # VPN  PPN  FLAGS
        0x1 -> 0xA  RWX
        2, 11, R--

Numbers (VPN, PPN, tags):
    Parsed in two stages. The format is detected first ("0x" prefix or
    any a-f digit means hex, only 0-9 means decimal) and the literal is
    then parsed with that fixed radix. "291" is decimal 291; "0x123" and
    "12a" are hex.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from memsim_viz.models.errors import ParseError
from memsim_viz.models.page_table import PageTable
from memsim_viz.simulator.cache import CacheSimulator
from memsim_viz.simulator.resolver import MemoryResolver, TlbSeedRow

logger = logging.getLogger(__name__)

NumberLike = Union[int, str, None]

_HEX_DIGITS = re.compile(r"[0-9a-f]+")
_HEX_PREFIXED = re.compile(r"0x[0-9a-f]+", re.IGNORECASE)
_DECIMAL = re.compile(r"[0-9]+")
_BARE_HEX = re.compile(r"[0-9a-f]*[a-f][0-9a-f]*", re.IGNORECASE)
_MAPPING_SEPARATORS = re.compile(r",|->")


class CacheSettings(BaseModel):
    """Cache geometry from input file."""

    addr_bits: int = Field(default=32, description="Address bits")
    cache_size: int = Field(default=1024, description="Cache size in bytes")
    block_size: int = Field(default=16, description="Block size in bytes")
    associativity: int = Field(default=1, description="Lines per set")


class TlbSettings(BaseModel):
    """TLB geometry from input file."""

    entries: int = Field(default=16, description="Total TLB entries")
    associativity: int = Field(default=4, description="Entries per set")


class PageTableRow(BaseModel):
    """Explicit page table row. Rows with a blank VPN or PPN are skipped."""

    vpn: NumberLike = None
    ppn: NumberLike = None
    flags: Optional[str] = ""

    @field_validator("flags")
    @classmethod
    def blank_flags(cls, v: Optional[str]) -> str:
        return v or ""


class TlbSeedSettings(BaseModel):
    """Explicit initial TLB slot."""

    model_config = ConfigDict(populate_by_name=True)

    set_index: NumberLike = Field(default=None, alias="set")
    way: NumberLike = None
    tag: NumberLike = None
    ppn: NumberLike = None
    flags: Optional[str] = ""
    last_used: NumberLike = None

    @field_validator("flags")
    @classmethod
    def blank_flags(cls, v: Optional[str]) -> str:
        return v or ""


class MemorySettings(BaseModel):
    """Virtual memory configuration from input file."""

    va_bits: int = Field(default=32, description="Virtual address bits")
    pa_bits: int = Field(default=32, description="Physical address bits")
    page_size: int = Field(default=4096, description="Page size in bytes")
    tlb: Optional[TlbSettings] = Field(default=None, description="TLB geometry, None disables")
    mappings: str = Field(default="", description="Mapping list text")
    page_table: List[PageTableRow] = Field(default_factory=list)
    tlb_seed: List[TlbSeedSettings] = Field(default_factory=list)


class DisplaySettings(BaseModel):
    """Text trace options."""

    show_binary: bool = False
    show_set_state: bool = False
    show_masks: bool = False
    hex_fields: bool = Field(default=False, description="Show index/offset in hex")


class ScenarioConfig(BaseModel):
    """Complete scenario configuration."""

    scenario_name: str = Field(default="unnamed")
    description: str = Field(default="")
    simulator: str = Field(default="cache", description="cache or vm")
    addresses: Union[str, List[str]] = Field(default="")
    cache: Optional[CacheSettings] = None
    memory: Optional[MemorySettings] = None
    display: DisplaySettings = Field(default_factory=DisplaySettings)
    source_file: Optional[str] = Field(default=None, description="Path to source JSON file")

    @field_validator("simulator")
    @classmethod
    def validate_simulator(cls, v: str) -> str:
        """Validate simulator kind."""
        v = v.strip().lower()
        if v not in ("cache", "vm"):
            raise ValueError(f"Invalid simulator: {v}. Must be 'cache' or 'vm'.")
        return v

    @model_validator(mode="after")
    def check_section(self) -> ScenarioConfig:
        """The section matching ``simulator`` must be present."""
        if self.simulator == "cache" and self.cache is None:
            raise ValueError("simulator 'cache' requires a 'cache' section")
        if self.simulator == "vm" and self.memory is None:
            raise ValueError("simulator 'vm' requires a 'memory' section")
        return self


def parse_hex_address(token: Any, line: Optional[int] = None) -> int:
    """
    Parse one hex address literal.

    Args:
        token: Literal such as "0x0000_1004" or "1004".
        line: Line number reported in errors.

    Raises:
        ParseError: If the literal is empty or not hex.
    """
    raw = "" if token is None else str(token)
    if not raw.strip():
        raise ParseError(raw, "Address is empty", line)

    text = re.sub(r"[\s_]+", "", raw).lower()
    if text.startswith("0x"):
        text = text[2:]
    if not _HEX_DIGITS.fullmatch(text):
        raise ParseError(raw, f'Invalid hex address: "{raw.strip()}"', line)
    return int(text, 16)


def parse_address_list(source: Union[str, Iterable[str]]) -> List[int]:
    """
    Parse an address list.

    Args:
        source: Newline-separated text, or an iterable of literals.

    Returns:
        Addresses in input order (not yet clamped).

    Raises:
        ParseError: On the first malformed literal.
    """
    lines = source.splitlines() if isinstance(source, str) else list(source)
    addresses = []
    for lineno, token in enumerate(lines, start=1):
        if not str(token).strip():
            continue
        addresses.append(parse_hex_address(token, lineno))
    return addresses


def parse_number(value: NumberLike, name: str = "number") -> int:
    """
    Parse a hex or decimal literal with explicit format detection.

    Raises:
        ParseError: If the value is missing or in neither format.
    """
    if isinstance(value, bool):
        raise ParseError(str(value), f'Invalid {name}: "{value}"')
    if isinstance(value, int):
        if value < 0:
            raise ParseError(str(value), f'Invalid {name}: "{value}"')
        return value

    text = (value or "").strip()
    if not text:
        raise ParseError(str(value or ""), f"Missing {name}")

    if _HEX_PREFIXED.fullmatch(text):
        return int(text[2:], 16)
    if _DECIMAL.fullmatch(text):
        return int(text, 10)
    if _BARE_HEX.fullmatch(text):
        return int(text, 16)
    raise ParseError(text, f'Invalid {name}: "{text}"')


def parse_optional_number(value: NumberLike, name: str = "number") -> Optional[int]:
    """Like parse_number, but blank values give None."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_number(value, name)


def _parse_decimal_or_none(value: NumberLike) -> Optional[int]:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    text = (value or "").strip() if isinstance(value, str) else ""
    if re.fullmatch(r"[+-]?[0-9]+", text):
        return int(text, 10)
    return None


def parse_mappings(text: str, page_table: Optional[PageTable] = None) -> PageTable:
    """
    Parse a mapping list into a page table.

    Args:
        text: Mapping list text.
        page_table: Table to add to (a new one if None).

    Returns:
        The populated PageTable.

    Raises:
        ParseError: If a VPN or PPN literal is malformed.
    """
    table = page_table if page_table is not None else PageTable()
    for lineno, raw in enumerate((text or "").splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        parts = _MAPPING_SEPARATORS.sub(" ", line).split()
        if len(parts) < 2:
            logger.debug("skipping mapping line %d: %r", lineno, line)
            continue
        try:
            vpn = parse_number(parts[0], "VPN")
            ppn = parse_number(parts[1], "PPN")
        except ParseError as e:
            raise ParseError(e.token, e.message, lineno) from e
        table.map(vpn, ppn, "".join(parts[2:]))
    return table


def apply_page_table_rows(page_table: PageTable, rows: Iterable[PageTableRow]) -> PageTable:
    """Apply explicit rows on top of a page table (rows win)."""
    for row in rows:
        vpn = parse_optional_number(row.vpn, "VPN")
        ppn = parse_optional_number(row.ppn, "PPN")
        if vpn is None or ppn is None:
            continue
        page_table.map(vpn, ppn, row.flags.strip())
    return page_table


def build_tlb_seed(rows: Iterable[TlbSeedSettings]) -> List[TlbSeedRow]:
    """
    Convert TLB seed settings into seed rows.

    Rows with a blank or non-numeric set/way, or a blank tag/PPN, are
    skipped. A missing or non-numeric ``last_used`` is left for automatic
    assignment.
    """
    seed = []
    for row in rows:
        set_index = _parse_decimal_or_none(row.set_index)
        way = _parse_decimal_or_none(row.way)
        tag = parse_optional_number(row.tag, "TLB tag")
        ppn = parse_optional_number(row.ppn, "PPN")
        if set_index is None or way is None or tag is None or ppn is None:
            continue
        seed.append(TlbSeedRow(
            set_index=set_index,
            way=way,
            tag=tag,
            ppn=ppn,
            flags=row.flags.strip().upper(),
            last_used=_parse_decimal_or_none(row.last_used),
        ))
    return seed


def load_scenario(data: dict) -> ScenarioConfig:
    """Validate an already-decoded scenario dictionary."""
    return ScenarioConfig.model_validate(data)


def parse_scenario(file_path: str | Path) -> ScenarioConfig:
    """
    Parse a scenario configuration file.

    Args:
        file_path: Path to JSON configuration file.

    Returns:
        Parsed ScenarioConfig object.

    Raises:
        FileNotFoundError: If file doesn't exist.
        ValueError: If configuration is invalid.
    """
    path = Path(file_path).resolve()
    if not path.exists():
        raise FileNotFoundError(f"Scenario file not found: {path}")

    with open(path, "r") as f:
        data = json.load(f)

    config = load_scenario(data)
    config.source_file = str(path)
    logger.info("loaded scenario %s from %s", config.scenario_name, path)
    return config


def get_addresses(config: ScenarioConfig) -> List[int]:
    """Get the parsed address sequence from configuration."""
    return parse_address_list(config.addresses)


def build_page_table(settings: MemorySettings) -> PageTable:
    """Build the page table from the mapping list and explicit rows."""
    table = parse_mappings(settings.mappings)
    return apply_page_table_rows(table, settings.page_table)


def build_cache_simulator(config: ScenarioConfig) -> CacheSimulator:
    """
    Build a CacheSimulator from configuration.

    Raises:
        ConfigError: If the geometry is invalid.
    """
    settings = config.cache or CacheSettings()
    return CacheSimulator(
        addr_bits=settings.addr_bits,
        cache_size=settings.cache_size,
        block_size=settings.block_size,
        associativity=settings.associativity,
    )


def build_memory_resolver(config: ScenarioConfig) -> MemoryResolver:
    """
    Build a MemoryResolver from configuration.

    Raises:
        ConfigError: If the geometry is invalid.
        ParseError: If a mapping or seed literal is malformed.
    """
    settings = config.memory or MemorySettings()
    tlb = settings.tlb
    return MemoryResolver(
        va_bits=settings.va_bits,
        pa_bits=settings.pa_bits,
        page_size=settings.page_size,
        page_table=build_page_table(settings),
        tlb_entries=tlb.entries if tlb else None,
        tlb_associativity=tlb.associativity if tlb else 1,
        tlb_seed=build_tlb_seed(settings.tlb_seed) if tlb else (),
    )
