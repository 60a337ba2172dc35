import numpy as np
import pytest

from ibrdp.components.block_store import SetAssociativeCache
from ibrdp.policies.base import LRUPolicy, RandomPolicy


def line(index):
    """Byte address of the index-th line mapping to set 0 of a 4-set cache."""
    return index * 4 * 64


@pytest.fixture
def lru_cache():
    return SetAssociativeCache(LRUPolicy(), size_kb=1, line_size=64, associativity=4)


def test_geometry(lru_cache):
    assert lru_cache.num_sets == 4
    assert lru_cache.num_lines == 16


def test_address_split(lru_cache):
    # Block address 0x48d: set 1, tag 0x123
    assert lru_cache.extract_set(0x12345) == 1
    assert lru_cache.extract_tag(0x12345) == 0x123

    lru_cache.access(0x12345)
    blk = lru_cache.lookup(0x12345)
    assert lru_cache.block_address(blk.set, blk.way) == 0x12345 >> 6


def test_bytes_within_a_line_hit(lru_cache):
    assert not lru_cache.access(0x1000)
    assert lru_cache.access(0x103f)
    assert not lru_cache.access(0x1040)


def test_fills_use_free_ways_first(lru_cache):
    for k in range(4):
        lru_cache.access(line(k))
    assert [lru_cache.lookup(line(k)).way for k in range(4)] == [0, 1, 2, 3]
    assert lru_cache.is_every_way_valid(0)
    assert not lru_cache.is_every_way_valid(1)
    assert lru_cache.policy.stats.victim_selections == 0


def test_lru_evicts_least_recent(lru_cache):
    for k in range(4):
        lru_cache.access(line(k))
    lru_cache.access(line(0))
    lru_cache.access(line(4))

    assert lru_cache.lookup(line(1)) is None
    assert lru_cache.lookup(line(0)) is not None
    assert lru_cache.evictions == 1


def test_dirty_eviction_counts_writeback(lru_cache):
    lru_cache.access(line(0), is_write=True)
    for k in range(1, 5):
        lru_cache.access(line(k))

    assert lru_cache.evictions == 1
    assert lru_cache.writebacks == 1


def test_hit_and_miss_counters(lru_cache):
    lru_cache.access(line(0))
    lru_cache.access(line(0))
    lru_cache.access(line(1))
    lru_cache.access(line(0))

    assert (lru_cache.hits, lru_cache.misses) == (2, 2)
    assert lru_cache.hit_rate == 0.5
    assert lru_cache.get_statistics()['hits'] == 2


def test_invalidate(lru_cache):
    lru_cache.access(line(0))
    assert lru_cache.invalidate(line(0))
    assert lru_cache.lookup(line(0)) is None
    assert not lru_cache.invalidate(line(0))
    assert lru_cache.policy.stats.invalidations == 1


def test_invalidated_way_is_refilled_without_victim_search(lru_cache):
    for k in range(4):
        lru_cache.access(line(k))
    lru_cache.invalidate(line(2))
    lru_cache.access(line(7))

    assert lru_cache.lookup(line(7)).way == 2
    assert lru_cache.policy.stats.victim_selections == 0


def test_reset(lru_cache):
    for k in range(6):
        lru_cache.access(line(k))
    lru_cache.reset()

    assert lru_cache.hits == lru_cache.misses == lru_cache.evictions == 0
    assert not any(blk.valid for blk in lru_cache.blocks[0])
    assert lru_cache.policy.stats.fills == 0


@pytest.mark.parametrize('kwargs', [
    {'size_kb': 1, 'associativity': 3},
    {'size_kb': 1, 'line_size': 48},
    {'size_kb': 1, 'associativity': 0},
])
def test_rejects_bad_geometry(kwargs):
    with pytest.raises(ValueError):
        SetAssociativeCache(LRUPolicy(), **kwargs)


def test_random_policy_is_reproducible():
    addresses = [int(a) * 64 for a in np.random.default_rng(0).integers(0, 64, 300)]

    def replay():
        cache = SetAssociativeCache(RandomPolicy({'seed': 3}), size_kb=1,
                                    line_size=64, associativity=4)
        return [cache.access(address) for address in addresses]

    assert replay() == replay()
