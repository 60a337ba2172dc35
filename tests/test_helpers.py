import json
import logging
from pathlib import Path

import pytest

from ibrdp.policies import IbRDPPolicy, LRUPolicy, RandomPolicy
from ibrdp.simulation import SimulationConfig
from ibrdp.utils import (
    load_config, save_config, save_results, setup_logging, create_policy_from_config
)
from ibrdp.utils.helpers import format_number


DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / 'config' / 'default.yaml'


@pytest.fixture
def clean_logger():
    logger = logging.getLogger('ibrdp')
    handlers = list(logger.handlers)
    level = logger.level
    yield logger
    for handler in logger.handlers:
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)


def test_default_config_builds_everything():
    config = load_config(DEFAULT_CONFIG)

    sim_config = SimulationConfig(**config['simulation'])
    assert sim_config.associativity == 16

    policies = [create_policy_from_config(config, name) for name in config['policies']]
    assert [type(p) for p in policies] == [IbRDPPolicy, LRUPolicy, RandomPolicy]
    assert policies[0].sampler.size == 256


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / 'absent.yaml')


def test_config_round_trip(tmp_path):
    config = {'simulation': {'warmup_accesses': 10}, 'policies': ['lru']}
    path = tmp_path / 'sub' / 'config.yaml'
    save_config(config, path)

    assert load_config(path) == config


def test_empty_config_file(tmp_path):
    path = tmp_path / 'empty.yaml'
    path.write_text('')
    assert load_config(path) == {}


def test_section_overrides_preset():
    policy = create_policy_from_config({'ibrdp': {'predictor_sets': 32}}, 'ibrdp')
    assert policy.predictor.num_sets == 32
    assert policy.predictor.assoc == 16
    assert policy.name == 'IbRDP'


def test_small_preset():
    policy = create_policy_from_config({}, 'ibrdp_small')
    assert policy.name == 'IbRDP-Small'
    assert policy.quantizer.quantum_timestamp == 16


def test_unknown_policy_rejected():
    with pytest.raises(ValueError):
        create_policy_from_config({}, 'belady')


def test_save_results(tmp_path):
    results = {'trace': 'mixed', 'LRU': {'hit_rate': 0.5}}
    paths = save_results(results, tmp_path, name='run', formats=('json', 'yaml', 'csv'))

    assert set(paths) == {'json', 'yaml', 'csv'}
    assert json.loads(paths['json'].read_text()) == results
    assert 'LRU.hit_rate' in paths['csv'].read_text()


def test_setup_logging_adds_console_handler_once(clean_logger):
    setup_logging('DEBUG')
    count = len(clean_logger.handlers)
    setup_logging('INFO')

    assert len(clean_logger.handlers) == count
    assert clean_logger.level == logging.INFO


def test_setup_logging_file(tmp_path, clean_logger):
    log_file = tmp_path / 'logs' / 'run.log'
    setup_logging('INFO', log_file)
    clean_logger.info('simulation started')

    for handler in clean_logger.handlers:
        handler.flush()
    assert 'simulation started' in log_file.read_text()


def test_setup_logging_same_file_twice_writes_once(tmp_path, clean_logger):
    log_file = tmp_path / 'run.log'
    setup_logging('INFO', log_file)
    setup_logging('INFO', log_file)
    clean_logger.info('warmup complete')

    for handler in clean_logger.handlers:
        handler.flush()
    assert log_file.read_text().count('warmup complete') == 1


def test_format_number():
    assert format_number(1500) == '1.50K'
    assert format_number(2_500_000, precision=1) == '2.5M'
    assert format_number(12) == '12.00'
