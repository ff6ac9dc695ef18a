import pytest

from memsim_viz.models.errors import ConfigError
from memsim_viz.models.page_table import PageTable
from memsim_viz.models.store import AssociativeStore
from memsim_viz.simulator.faults import FaultType
from memsim_viz.simulator.resolver import (
    MemoryResolver,
    ResolutionStatus,
    TlbSeedRow,
    apply_tlb_seed,
)


def test_page_table_translation(resolver):
    result = resolver.run([0x00001004])
    record = result.records[0]

    assert record.vpn == 0x1
    assert record.offset == 0x4
    assert record.status is ResolutionStatus.PAGE_TABLE_HIT
    assert record.ppn == 0xA
    assert record.flags == "RWX"
    assert record.physical_address == 0x0000A004
    assert record.tlb_hit is None
    assert result.tlb_statistics is None
    assert result.page_table_statistics.hits == 1


def test_unmapped_page_faults_and_run_continues(resolver):
    result = resolver.run([0x00005000, 0x00001004])
    fault, ok = result.records

    assert fault.status is ResolutionStatus.FAULT
    assert fault.physical_address is None
    assert fault.ppn is None
    assert fault.fault.fault_type is FaultType.PAGE_FAULT
    assert fault.fault.vpn == 0x5
    assert ok.physical_address == 0xA004
    assert result.page_table_statistics.hits == 1
    assert result.page_table_statistics.misses == 1
    assert len(result.faults) == 1


def test_tlb_miss_then_hit(tlb_resolver):
    result = tlb_resolver.run([0x1004, 0x1008])
    miss, hit = result.records

    assert miss.status is ResolutionStatus.PAGE_TABLE_HIT
    assert miss.tlb_hit is False
    assert (miss.tlb_index, miss.tlb_tag) == (1, 0)
    assert hit.status is ResolutionStatus.TLB_HIT
    assert hit.physical_address == 0xA008
    assert hit.page_table_hit is None
    assert result.tlb_statistics.hits == 1
    assert result.tlb_statistics.misses == 1
    assert result.page_table_statistics.hits == 1
    assert result.page_table_statistics.misses == 0


def test_fault_does_not_fill_tlb(tlb_resolver):
    result = tlb_resolver.run([0x7000])
    assert result.records[0].status is ResolutionStatus.FAULT
    assert result.records[0].tlb_hit is False
    assert result.tlb.valid_count() == 0
    assert result.tlb.clock == 1


def test_seeded_tlb_hits_without_page_table():
    resolver = MemoryResolver(
        va_bits=32, pa_bits=32, page_size=4096,
        tlb_entries=16, tlb_associativity=4,
        tlb_seed=[TlbSeedRow(set_index=1, way=0, tag=0x0, ppn=0xA, flags="rwx")],
    )
    record = resolver.run([0x1004]).records[0]
    assert record.status is ResolutionStatus.TLB_HIT
    assert record.physical_address == 0xA004
    assert record.flags == "RWX"


def test_tlb_eviction_in_single_entry_tlb(page_table):
    resolver = MemoryResolver(
        va_bits=32, pa_bits=32, page_size=4096,
        page_table=page_table, tlb_entries=1, tlb_associativity=1,
    )
    records = resolver.run([0x1000, 0x2000, 0x1000]).records
    assert all(r.tlb_hit is False for r in records)
    assert records[0].tlb_evicted_tag is None
    assert records[1].tlb_evicted_tag == 0x1
    assert records[2].tlb_evicted_tag == 0x2


def test_apply_tlb_seed_assigns_stamps_in_row_order():
    store = AssociativeStore(num_sets=2, associativity=2)
    rows = [
        TlbSeedRow(set_index=0, way=0, tag=0x1, ppn=0xA),
        TlbSeedRow(set_index=9, way=0, tag=0x2, ppn=0xB),
        TlbSeedRow(set_index=0, way=1, tag=0x3, ppn=0xC),
        TlbSeedRow(set_index=1, way=0, tag=0x4, ppn=0xD, last_used=10),
    ]
    assert apply_tlb_seed(store, rows) == 3
    assert store.line(0, 0).last_used == 1
    assert store.line(0, 1).last_used == 2
    assert store.line(1, 0).last_used == 10
    assert store.recency_order(0) == [0x3, 0x1]
    assert store.clock == 0


def test_runs_use_private_state(tlb_resolver):
    first = tlb_resolver.run([0x1004, 0x2004, 0x5000])
    second = tlb_resolver.run([0x1004, 0x2004, 0x5000])
    assert first.records == second.records
    assert first.tlb is not second.tlb
    assert first.page_table is not tlb_resolver.page_table


def test_physical_address_clamped_to_pa_bits():
    table = PageTable()
    table.map(0x1, 0xAB)
    resolver = MemoryResolver(va_bits=32, pa_bits=16, page_size=4096, page_table=table)
    assert resolver.run([0x1004]).records[0].physical_address == 0xB004


@pytest.mark.parametrize("kwargs", [
    dict(va_bits=12, pa_bits=32, page_size=4096),
    dict(va_bits=32, pa_bits=32, page_size=4096, tlb_entries=12, tlb_associativity=4),
])
def test_invalid_configuration(kwargs):
    with pytest.raises(ConfigError):
        MemoryResolver(**kwargs)


def test_to_dict(tlb_resolver):
    data = tlb_resolver.run([0x1004, 0x5000]).to_dict()
    assert data["simulator"] == "vm"
    assert data["tlb_layout"]["num_sets"] == 4
    assert data["accesses"][0]["physical_address"] == "0x0000A004"
    assert data["accesses"][1]["status"] == "FAULT"
    assert data["accesses"][1]["fault"]["vpn"] == "0x5"
    assert data["statistics"]["page_table"]["misses"] == 1
    assert data["page_table"]["0x1"] == {"ppn": "0xA", "flags": "RWX"}


def test_fault_record_to_dict(resolver):
    fault = resolver.run([0x00005ABC]).records[0].fault
    assert fault.to_dict() == {
        "fault_type": "PAGE_FAULT",
        "address": "0x5ABC",
        "vpn": "0x5",
        "message": "page fault / unmapped",
    }
