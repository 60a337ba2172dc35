import pytest

from ibrdp.policies import IbRDPPolicy, LRUPolicy, RandomPolicy, IBRDP_DEFAULT, IBRDP_SMALL
from ibrdp.simulation import (
    CacheSimulator, ComparativeSimulator, SimulationConfig, ResultsExporter
)
from ibrdp.trace import create_sample_trace, generate_accesses


SCAN_PC = 0x400200


@pytest.fixture
def config():
    return SimulationConfig(
        warmup_accesses=1000,
        simulation_accesses=4000,
        cache_size_kb=64,
        associativity=16,
        verbose=False,
    )


def make_simulator(config):
    sim = CacheSimulator(config)
    sim.add_policy('IbRDP', IbRDPPolicy(IBRDP_DEFAULT))
    sim.add_policy('LRU', LRUPolicy())
    sim.add_policy('Random', RandomPolicy({'seed': 1}))
    return sim


def test_resident_loop_always_hits_after_warmup(config):
    results = make_simulator(config).run_on_trace(generate_accesses(5000, 'loop'))

    assert results.accesses_simulated == 4000
    for name in ('IbRDP', 'LRU', 'Random'):
        assert results.policy_results[name]['hit_rate'] == 1.0
        assert results.policy_results[name]['total'] == 4000


def test_lru_hits_every_loop_access_of_mixed_stream(config):
    trace = generate_accesses(5000, 'mixed')
    results = make_simulator(config).run_on_trace(trace)

    loop_accesses = sum(1 for r in trace[1000:] if r.pc != SCAN_PC)
    lru = results.policy_results['LRU']
    assert lru['hits'] == loop_accesses
    assert lru['misses'] == 4000 - loop_accesses

    ibrdp = results.policy_results['IbRDP']
    assert ibrdp['hits'] + ibrdp['misses'] == 4000


def test_trained_predictor_drives_eviction():
    # Cache exactly as large as the loop working set: LRU thrashes on the
    # scan while IbRDP learns that scan lines are never reused
    config = SimulationConfig(warmup_accesses=4000, simulation_accesses=16000,
                              cache_size_kb=16, associativity=16, verbose=False)
    sim = CacheSimulator(config)
    sim.add_policy('IbRDP', IbRDPPolicy(IBRDP_SMALL))
    sim.add_policy('LRU', LRUPolicy())

    results = sim.run_on_trace(generate_accesses(20000, 'mixed'))

    stats = results.policy_results['IbRDP']['policy_stats']
    assert stats['policy']['victims_by_time_left'] > 0
    assert stats['predictor']['valid_entries'] == 4
    assert stats['sampler']['censored'] > 0
    assert (results.policy_results['IbRDP']['hits'] >
            results.policy_results['LRU']['hits'])


def test_verbose_run_reports_policy_counters(tmp_path, capsys):
    path = tmp_path / 'loop.txt'
    create_sample_trace(path, num_accesses=600, pattern='loop')
    config = SimulationConfig(warmup_accesses=100, simulation_accesses=500,
                              cache_size_kb=64, verbose=True, log_interval=0)
    sim = CacheSimulator(config)
    sim.add_policy('LRU', LRUPolicy())

    results = sim.run(path)

    assert results.accesses_simulated == 500
    assert 'Fills: 256' in capsys.readouterr().out


def test_repeated_runs_are_identical(config):
    sim = make_simulator(config)
    trace = generate_accesses(5000, 'random', seed=9)

    first = sim.run_on_trace(trace)
    second = sim.run_on_trace(trace)

    for name in first.policy_results:
        assert first.policy_results[name]['hits'] == second.policy_results[name]['hits']


def test_short_trace_limits_measurement(config):
    results = make_simulator(config).run_on_trace(generate_accesses(1500, 'loop'))
    assert results.accesses_simulated == 500


def test_results_carry_policy_internals(config):
    results = make_simulator(config).run_on_trace(generate_accesses(5000, 'mixed'))

    stats = results.policy_results['IbRDP']['policy_stats']
    assert stats['sampler']['samples_taken'] > 0
    assert results.hardware_costs['IbRDP']['total_bits'] > 0
    assert results.config['cache_size_kb'] == 64
    assert 'IbRDP' in results.get_summary()


def test_run_from_file(tmp_path, config):
    path = tmp_path / 'mixed.txt'
    create_sample_trace(path, num_accesses=5000, pattern='mixed')

    results = make_simulator(config).run(path)
    assert results.accesses_simulated == 4000
    assert results.trace_name == str(path)


def test_comparative_simulator(tmp_path, config):
    traces = []
    for pattern in ('loop', 'scan'):
        path = tmp_path / f'{pattern}.txt'
        create_sample_trace(path, num_accesses=5000, pattern=pattern)
        traces.append(path)

    aggregated = ComparativeSimulator(config).run_comparison(
        traces, {'LRU': LRUPolicy, 'IbRDP': lambda: IbRDPPolicy(IBRDP_DEFAULT)})

    lru = aggregated['per_policy']['LRU']
    # Loop always hits, scan never does
    assert lru['avg_hit_rate'] == 0.5
    assert aggregated['total_accesses'] == 8000


def test_exporters(tmp_path, config):
    results = make_simulator(config).run_on_trace(generate_accesses(2000, 'loop'))

    ResultsExporter.to_json(results, str(tmp_path / 'out.json'))
    ResultsExporter.to_csv(results, str(tmp_path / 'out.csv'))
    assert (tmp_path / 'out.json').stat().st_size > 0
    assert 'LRU - Hit rate' in (tmp_path / 'out.csv').read_text()

    table = ResultsExporter.to_latex_table([results])
    assert r'\begin{tabular}' in table
    assert 'IbRDP & LRU & Random' in table
