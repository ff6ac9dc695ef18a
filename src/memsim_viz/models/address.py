"""
Address layouts: splitting raw addresses into structural fields.

This module derives field widths from a structure's geometry, validates
them, and extracts (or reassembles) the field values of an address.

CACHE LAYOUT:
=============

    blocks      = cacheSize / blockSize
    sets        = blocks / associativity
    offsetBits  = log2(blockSize)
    indexBits   = log2(sets)            (0 for a single set)
    tagBits     = addrBits - offsetBits - indexBits

    | tag (tagBits) | index (indexBits) | offset (offsetBits) |
    MSB                                                     LSB

Example (addrBits=32, cacheSize=1024, blockSize=16, direct-mapped):

    offsetBits=4, sets=64, indexBits=6, tagBits=22

MEMORY LAYOUT:
==============

    offsetBits = log2(pageSize)
    vpnBits    = vaBits - offsetBits

    | VPN (vpnBits) | page offset (offsetBits) |

    PA = (PPN << offsetBits) | offset, clamped to paBits

TLB LAYOUT:
===========

The TLB indexes on the VPN, not on the raw address. The low-order VPN
bits select the set and the remaining high bits form the TLB tag:

    | TLB tag (vpnBits - indexBits) | TLB index (indexBits) |   <- VPN
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from memsim_viz.models.bitfield import (
    clamp_to_bits,
    is_power_of_two,
    log2_exact,
    mask_of,
    to_bin,
    validate_width,
)
from memsim_viz.models.errors import ConfigError


def _require_positive(name: str, value: int) -> None:
    if value <= 0:
        raise ConfigError(name, value, f"{name} must be > 0")


def _join_segments(*segments: str) -> str:
    return " | ".join(segments)


@dataclass(frozen=True)
class CacheFields:
    """Tag, index and offset of a cache address."""

    tag: int
    index: int
    offset: int


@dataclass(frozen=True)
class VirtualFields:
    """VPN and page offset of a virtual address."""

    vpn: int
    offset: int


@dataclass(frozen=True)
class CacheAddressLayout:
    """
    Field layout of a set-associative cache.

    Attributes:
        addr_bits: Width of an address.
        cache_size: Total capacity in bytes.
        block_size: Line size in bytes.
        associativity: Lines per set (1 = direct-mapped).
        num_blocks: Number of lines in the cache.
        num_sets: Number of sets.
        offset_bits: Width of the block offset field.
        index_bits: Width of the set index field.
        tag_bits: Width of the tag field.
    """

    addr_bits: int
    cache_size: int
    block_size: int
    associativity: int
    num_blocks: int
    num_sets: int
    offset_bits: int
    index_bits: int
    tag_bits: int

    @classmethod
    def build(
        cls,
        addr_bits: int,
        cache_size: int,
        block_size: int,
        associativity: int
    ) -> CacheAddressLayout:
        """
        Derive and validate the layout for a cache geometry.

        Raises:
            ConfigError: If the geometry cannot be split into whole fields.
        """
        validate_width("addr_bits", addr_bits)
        _require_positive("cache_size", cache_size)
        _require_positive("block_size", block_size)
        _require_positive("associativity", associativity)

        if not is_power_of_two(block_size):
            raise ConfigError("block_size", block_size, "block_size must be a power of two")
        if cache_size % block_size != 0:
            raise ConfigError(
                "cache_size", cache_size, "cache_size must be divisible by block_size"
            )

        num_blocks = cache_size // block_size
        if num_blocks % associativity != 0:
            raise ConfigError(
                "num_blocks", num_blocks, "blocks must be divisible by associativity"
            )
        num_sets = num_blocks // associativity

        if not is_power_of_two(num_sets):
            raise ConfigError(
                "num_sets", num_sets,
                f"Number of sets ({num_sets}) is not a power of two"
            )

        offset_bits = log2_exact(block_size, "block_size")
        index_bits = 0 if num_sets == 1 else log2_exact(num_sets, "num_sets")
        tag_bits = addr_bits - offset_bits - index_bits
        if tag_bits < 0:
            raise ConfigError("tag_bits", tag_bits, "Invalid bit split: tag_bits became negative")

        return cls(
            addr_bits=addr_bits,
            cache_size=cache_size,
            block_size=block_size,
            associativity=associativity,
            num_blocks=num_blocks,
            num_sets=num_sets,
            offset_bits=offset_bits,
            index_bits=index_bits,
            tag_bits=tag_bits,
        )

    def clamp(self, address: int) -> int:
        """Clamp an address to the configured width."""
        return clamp_to_bits(address, self.addr_bits)

    def split(self, address: int) -> CacheFields:
        """Split an address into tag, index and offset."""
        address = self.clamp(address)
        offset = address & mask_of(self.offset_bits)
        index = (address >> self.offset_bits) & mask_of(self.index_bits)
        tag = address >> (self.offset_bits + self.index_bits)
        return CacheFields(tag=tag, index=index, offset=offset)

    def join(self, fields: CacheFields) -> int:
        """Reassemble an address from its fields."""
        return (
            (fields.tag << (self.index_bits + self.offset_bits))
            | (fields.index << self.offset_bits)
            | fields.offset
        )

    @property
    def tag_mask(self) -> int:
        return mask_of(self.tag_bits) << (self.index_bits + self.offset_bits)

    @property
    def index_mask(self) -> int:
        return mask_of(self.index_bits) << self.offset_bits

    @property
    def offset_mask(self) -> int:
        return mask_of(self.offset_bits)

    def binary_split(self, address: int) -> str:
        """
        Binary form of an address separated as ``tag | index | offset``.

        The index slot is omitted when there is no index field. An empty
        tag keeps its slot so the remaining fields stay identifiable.
        """
        bits = to_bin(self.clamp(address), self.addr_bits)
        tag_end = self.tag_bits
        index_end = self.tag_bits + self.index_bits
        segments = [bits[:tag_end]]
        if self.index_bits:
            segments.append(bits[tag_end:index_end])
        if self.index_bits or self.tag_bits:
            return _join_segments(*segments, bits[index_end:])
        return bits

    def derivation(self) -> List[str]:
        """Step-by-step derivation of the layout for display."""
        return [
            f"blocks = cacheSize / blockSize = {self.cache_size} / {self.block_size} = {self.num_blocks}",
            f"sets = blocks / assoc = {self.num_blocks} / {self.associativity} = {self.num_sets}",
            f"offsetBits = log2(blockSize) = log2({self.block_size}) = {self.offset_bits}",
            f"indexBits  = log2(sets) = log2({self.num_sets}) = {self.index_bits}",
            (
                "tagBits    = addrBits - offsetBits - indexBits = "
                f"{self.addr_bits} - {self.offset_bits} - {self.index_bits} = {self.tag_bits}"
            ),
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "addr_bits": self.addr_bits,
            "cache_size": self.cache_size,
            "block_size": self.block_size,
            "associativity": self.associativity,
            "num_blocks": self.num_blocks,
            "num_sets": self.num_sets,
            "offset_bits": self.offset_bits,
            "index_bits": self.index_bits,
            "tag_bits": self.tag_bits,
        }


@dataclass(frozen=True)
class MemoryAddressLayout:
    """
    Field layout of a paged virtual address space.

    Attributes:
        va_bits: Width of a virtual address.
        pa_bits: Width of a physical address.
        page_size: Page size in bytes.
        offset_bits: Width of the page offset.
        vpn_bits: Width of the virtual page number.
    """

    va_bits: int
    pa_bits: int
    page_size: int
    offset_bits: int
    vpn_bits: int

    @classmethod
    def build(cls, va_bits: int, pa_bits: int, page_size: int) -> MemoryAddressLayout:
        """
        Derive and validate the layout for a paged address space.

        Raises:
            ConfigError: On out-of-range widths, a non power-of-two page
                size, or a page size too large for the VA.
        """
        validate_width("va_bits", va_bits)
        validate_width("pa_bits", pa_bits)
        if not is_power_of_two(page_size):
            raise ConfigError("page_size", page_size, "page_size must be a power of two")

        offset_bits = log2_exact(page_size, "page_size")
        vpn_bits = va_bits - offset_bits
        if vpn_bits <= 0:
            raise ConfigError(
                "vpn_bits", vpn_bits,
                "Invalid split: vpn_bits <= 0 (page_size too large for VA)"
            )

        return cls(
            va_bits=va_bits,
            pa_bits=pa_bits,
            page_size=page_size,
            offset_bits=offset_bits,
            vpn_bits=vpn_bits,
        )

    def clamp(self, address: int) -> int:
        """Clamp a virtual address to ``va_bits``."""
        return clamp_to_bits(address, self.va_bits)

    def split(self, address: int) -> VirtualFields:
        """Split a virtual address into VPN and page offset."""
        address = self.clamp(address)
        return VirtualFields(
            vpn=address >> self.offset_bits,
            offset=address & mask_of(self.offset_bits),
        )

    def join(self, fields: VirtualFields) -> int:
        """Reassemble a virtual address from VPN and offset."""
        return (fields.vpn << self.offset_bits) | fields.offset

    def physical_address(self, ppn: int, offset: int) -> int:
        """Combine a PPN and page offset into a physical address."""
        return clamp_to_bits((ppn << self.offset_bits) | offset, self.pa_bits)

    def binary_split(self, address: int) -> str:
        """Binary form of a VA separated as ``vpn | offset``."""
        bits = to_bin(self.clamp(address), self.va_bits)
        return _join_segments(bits[:self.vpn_bits], bits[self.vpn_bits:])

    def derivation(self) -> List[str]:
        """Step-by-step derivation of the layout for display."""
        return [
            f"offsetBits = log2(pageSize) = log2({self.page_size}) = {self.offset_bits}",
            (
                "VPN bits = VA bits - offsetBits = "
                f"{self.va_bits} - {self.offset_bits} = {self.vpn_bits}"
            ),
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "va_bits": self.va_bits,
            "pa_bits": self.pa_bits,
            "page_size": self.page_size,
            "offset_bits": self.offset_bits,
            "vpn_bits": self.vpn_bits,
        }


@dataclass(frozen=True)
class TlbLayout:
    """
    Split of a VPN into TLB tag and TLB index.

    Attributes:
        entries: Total TLB entries.
        associativity: Entries per set.
        num_sets: Number of TLB sets.
        vpn_bits: Width of the VPN being split.
        index_bits: Width of the TLB index (low VPN bits).
        tag_bits: Width of the TLB tag (high VPN bits).
    """

    entries: int
    associativity: int
    num_sets: int
    vpn_bits: int
    index_bits: int
    tag_bits: int

    @classmethod
    def build(cls, entries: int, associativity: int, vpn_bits: int) -> TlbLayout:
        """
        Derive and validate the TLB split.

        Raises:
            ConfigError: If the TLB geometry is not realisable.
        """
        _require_positive("tlb_entries", entries)
        _require_positive("tlb_associativity", associativity)
        if entries % associativity != 0:
            raise ConfigError(
                "tlb_entries", entries, "TLB entries must be divisible by associativity"
            )

        num_sets = entries // associativity
        if not is_power_of_two(num_sets):
            raise ConfigError(
                "tlb_num_sets", num_sets, "TLB number of sets must be a power of two"
            )

        index_bits = 0 if num_sets == 1 else log2_exact(num_sets, "tlb_num_sets")
        tag_bits = vpn_bits - index_bits
        if tag_bits < 0:
            raise ConfigError("tlb_tag_bits", tag_bits, "Invalid TLB split: tlb_tag_bits < 0")

        return cls(
            entries=entries,
            associativity=associativity,
            num_sets=num_sets,
            vpn_bits=vpn_bits,
            index_bits=index_bits,
            tag_bits=tag_bits,
        )

    def split_vpn(self, vpn: int) -> Tuple[int, int]:
        """
        Split a VPN into ``(tlb_tag, tlb_index)``.

        The index comes from the low-order VPN bits.
        """
        index = vpn & mask_of(self.index_bits)
        tag = vpn >> self.index_bits
        return tag, index

    def binary_split(self, vpn: int) -> str:
        """Binary form of a VPN separated as ``tlb tag | tlb index``."""
        bits = to_bin(vpn, self.vpn_bits)
        return _join_segments(bits[:self.tag_bits], bits[self.tag_bits:])

    def derivation(self) -> List[str]:
        """Step-by-step derivation of the TLB split for display."""
        return [
            f"entries: {self.entries}",
            f"associativity: {self.associativity}-way",
            f"sets = entries/assoc = {self.entries}/{self.associativity} = {self.num_sets}",
            f"TLB index bits = log2(sets) = {self.index_bits}",
            (
                "TLB tag bits   = VPN bits - index bits = "
                f"{self.vpn_bits} - {self.index_bits} = {self.tag_bits}"
            ),
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "entries": self.entries,
            "associativity": self.associativity,
            "num_sets": self.num_sets,
            "index_bits": self.index_bits,
            "tag_bits": self.tag_bits,
        }
