import pytest

from memsim_viz.models.errors import ConfigError
from memsim_viz.models.store import AssociativeStore


def test_empty_store_misses():
    store = AssociativeStore(num_sets=4, associativity=1)
    assert store.lookup(0, 0x1) is None
    assert store.valid_count() == 0
    assert store.total_entries == 4


def test_direct_mapped_keeps_lines_in_different_sets():
    store = AssociativeStore(num_sets=4, associativity=1)
    assert store.fill(0, 0, 0x1) is None
    assert store.fill(1, 0, 0x2) is None
    assert store.lookup(0, 0x1) == 0
    assert store.lookup(1, 0x2) == 0


def test_direct_mapped_same_set_evicts():
    store = AssociativeStore(num_sets=4, associativity=1)
    store.fill(0, 0, 0x1)
    evicted = store.fill(0, store.select_victim(0), 0x2)
    assert evicted is not None
    assert evicted.tag == 0x1
    assert store.lookup(0, 0x1) is None
    assert store.lookup(0, 0x2) == 0


def test_lru_victim_is_least_recently_used():
    store = AssociativeStore(num_sets=1, associativity=2)
    store.fill(0, store.select_victim(0), 0xA)
    store.fill(0, store.select_victim(0), 0xB)
    store.touch(0, store.lookup(0, 0xA))
    assert store.select_victim(0) == 1
    assert store.recency_order(0) == [0xA, 0xB]


def test_invalid_line_is_preferred_over_lru():
    store = AssociativeStore(num_sets=1, associativity=2)
    store.seed(0, 1, 0x5, last_used=100)
    assert store.select_victim(0) == 0


def test_tie_break_picks_lowest_way():
    store = AssociativeStore(num_sets=1, associativity=3)
    store.seed(0, 0, 0x1, last_used=5)
    store.seed(0, 1, 0x2, last_used=5)
    store.seed(0, 2, 0x3, last_used=9)
    assert store.select_victim(0) == 0


def test_clock_advances_on_touch_and_fill_only():
    store = AssociativeStore(num_sets=2, associativity=2)
    store.seed(0, 0, 0x1, last_used=50)
    assert store.clock == 0
    store.fill(1, 0, 0x2)
    store.touch(1, 0)
    assert store.clock == 2
    assert store.line(1, 0).last_used == 2


def test_seed_ignores_out_of_range_slot():
    store = AssociativeStore(num_sets=2, associativity=2)
    assert store.seed(2, 0, 0x1) is False
    assert store.seed(0, 2, 0x1) is False
    assert store.valid_count() == 0


def test_evicted_line_is_a_copy():
    store = AssociativeStore(num_sets=1, associativity=1)
    store.fill(0, 0, 0x1, payload="old")
    evicted = store.fill(0, 0, 0x2, payload="new")
    assert evicted.payload == "old"
    assert store.line(0, 0).payload == "new"


@pytest.mark.parametrize("num_sets, associativity", [(3, 1), (0, 1), (4, 0)])
def test_invalid_store_geometry(num_sets, associativity):
    with pytest.raises(ConfigError):
        AssociativeStore(num_sets=num_sets, associativity=associativity)


def test_snapshot_shape():
    store = AssociativeStore(num_sets=2, associativity=2)
    store.fill(1, 1, 0xF)
    snapshot = store.snapshot()
    assert len(snapshot) == 2
    assert snapshot[1][1] == {"valid": True, "tag": "0xF", "payload": None, "last_used": 1}
