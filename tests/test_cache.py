from memsim_viz.simulator.cache import AccessOutcome, CacheSimulator

HIT = AccessOutcome.HIT
MISS = AccessOutcome.MISS


def test_direct_mapped_scenario(direct_mapped):
    result = direct_mapped.run([0x0, 0x4, 0x10, 0x0])

    assert [r.outcome for r in result.records] == [MISS, HIT, MISS, HIT]
    assert [r.index for r in result.records] == [0, 0, 1, 0]
    assert [r.offset for r in result.records] == [0, 4, 0, 0]
    assert result.statistics.hits == 2
    assert result.statistics.misses == 2
    assert result.statistics.hit_rate == 0.5


def test_records_are_numbered_from_one(direct_mapped):
    result = direct_mapped.run([0x0, 0x4])
    assert [r.access_id for r in result.records] == [1, 2]


def test_two_way_conflict_evicts_lru():
    sim = CacheSimulator(addr_bits=32, cache_size=1024, block_size=16, associativity=2)
    result = sim.run([0x0, 0x200, 0x0, 0x400, 0x200])

    assert [r.outcome for r in result.records] == [MISS, MISS, HIT, MISS, MISS]
    assert all(r.index == 0 for r in result.records)
    assert result.records[3].evicted_tag == 0x1
    assert result.records[3].way == 1
    assert result.records[4].evicted_tag == 0x0
    assert result.records[4].set_state == (0x1, 0x2)


def test_miss_into_empty_line_has_no_eviction(direct_mapped):
    record = direct_mapped.run([0x0]).records[0]
    assert record.outcome is MISS
    assert record.way == 0
    assert record.evicted_tag is None


def test_addresses_are_clamped():
    sim = CacheSimulator(addr_bits=8, cache_size=64, block_size=16, associativity=1)
    record = sim.run([0x1FF]).records[0]
    assert record.address == 0xFF
    assert (record.tag, record.index, record.offset) == (0x3, 0x3, 0xF)


def test_runs_are_deterministic_and_independent(direct_mapped):
    addresses = [0x0, 0x400, 0x0, 0x10, 0x410]
    first = direct_mapped.run(addresses)
    second = direct_mapped.run(addresses)
    assert first.records == second.records
    assert first.statistics == second.statistics
    assert first.store is not second.store


def test_counts_add_up(direct_mapped):
    addresses = [0x0, 0x4, 0x400, 0x0, 0x800, 0x404]
    result = direct_mapped.run(addresses)
    assert result.statistics.total == len(addresses)
    assert result.statistics.hits + result.statistics.misses == len(addresses)


def test_empty_run(direct_mapped):
    result = direct_mapped.run([])
    assert result.records == []
    assert result.statistics.total == 0
    assert result.statistics.hit_rate == 0.0


def test_to_dict(direct_mapped):
    data = direct_mapped.run([0x0, 0x4]).to_dict()
    assert data["simulator"] == "cache"
    assert data["layout"]["tag_bits"] == 22
    assert data["masks"]["tag"] == "0xFFFFFC00"
    assert data["accesses"][0]["address"] == "0x00000000"
    assert data["accesses"][1]["outcome"] == "HIT"
    assert data["statistics"]["cache"] == {"hits": 1, "misses": 1, "hit_rate": 0.5}
    assert data["final_state"][0][0]["tag"] == "0x0"
