import importlib
from pathlib import Path

import pytest

from ibrdp.trace import create_sample_trace


SCRIPTS_DIR = Path(__file__).resolve().parent.parent / 'scripts'

CONFIG = {
    'simulation': {'warmup_accesses': 300, 'simulation_accesses': 1700},
    'policies': ['lru'],
}


@pytest.fixture
def run_benchmarks(monkeypatch):
    monkeypatch.syspath_prepend(str(SCRIPTS_DIR))
    return importlib.import_module('run_benchmarks')


def test_flat_trace_directory(tmp_path, run_benchmarks):
    create_sample_trace(tmp_path / 'loop.trace', 2000, 'loop')

    results = run_benchmarks.run_all_benchmarks(tmp_path, CONFIG, num_workers=1)

    assert list(results['categories']) == ['default']
    [result] = results['categories']['default']
    assert result['success']
    assert result['trace'] == 'loop.trace'
    assert result['accesses'] == 1700


def test_traces_grouped_by_subdirectory(tmp_path, run_benchmarks):
    create_sample_trace(tmp_path / 'loop.trace', 2000, 'loop')
    create_sample_trace(tmp_path / 'streaming' / 'scan.trace', 2000, 'scan')

    traces = run_benchmarks.find_traces(tmp_path)
    assert sorted(traces) == ['default', 'streaming']

    results = run_benchmarks.run_all_benchmarks(tmp_path, CONFIG, num_workers=1)

    [scan] = results['categories']['streaming']
    assert scan['policies']['lru']['hit_rate'] == 0.0
    [loop] = results['categories']['default']
    assert loop['policies']['lru']['hit_rate'] == 100.0
