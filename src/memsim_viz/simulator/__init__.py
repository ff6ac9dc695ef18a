"""Core simulation logic for cache accesses and address translation."""

from memsim_viz.simulator.cache import CacheSimulator, CacheRunResult, CacheAccessRecord
from memsim_viz.simulator.resolver import (
    MemoryResolver,
    ResolverRunResult,
    ResolutionStatus,
    TranslationRecord,
)
from memsim_viz.simulator.faults import FaultRecord, FaultType
from memsim_viz.simulator.stats import StoreStatistics

__all__ = [
    "CacheSimulator",
    "CacheRunResult",
    "CacheAccessRecord",
    "MemoryResolver",
    "ResolverRunResult",
    "ResolutionStatus",
    "TranslationRecord",
    "FaultRecord",
    "FaultType",
    "StoreStatistics",
]
