from ibrdp.simulation import MetricsCollector


def test_policy_stats():
    metrics = MetricsCollector()
    metrics.register_policy('LRU')
    metrics.record_access('LRU', 0x400100, hit=True)
    metrics.record_access('LRU', 0x400100, hit=False, evicted=True, is_write=True)
    metrics.record_access('LRU', 0x400104, hit=False)
    metrics.record_access('LRU', 0x400104, hit=True)

    stats = metrics.get_policy_stats('LRU')
    assert stats['total'] == 4
    assert stats['hits'] == 2
    assert stats['evictions'] == 1
    assert stats['writes'] == 1
    assert stats['hit_rate'] == 0.5
    assert stats['miss_rate'] == 0.5
    assert stats['mpka'] == 500.0


def test_unknown_policy_has_no_stats():
    assert MetricsCollector().get_policy_stats('LRU') == {}


def test_per_pc_stats_and_missing_pcs():
    metrics = MetricsCollector()
    for _ in range(20):
        metrics.record_access('IbRDP', 0x400200, hit=False, collect_per_pc=True)
        metrics.record_access('IbRDP', 0x400100, hit=True, collect_per_pc=True)

    per_pc = metrics.get_per_pc_stats('IbRDP')
    assert per_pc[0x400100]['hit_rate'] == 1.0
    assert per_pc[0x400200]['hit_rate'] == 0.0
    assert metrics.get_missing_pcs('IbRDP') == [0x400200]


def test_reset_and_comparison_table():
    metrics = MetricsCollector()
    metrics.record_access('LRU', 0x400100, hit=True)
    assert 'LRU' in metrics.get_comparison_table()

    metrics.reset()
    assert metrics.get_policy_stats('LRU')['total'] == 0
