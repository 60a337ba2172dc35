import pytest

from ibrdp.components.block_store import SetAssociativeCache
from ibrdp.components.quantization import Quantizer
from ibrdp.policies.ibrdp import IbRDPPolicy, IBRDP_SMALL


class RecordingPredictor:
    """Stands in for the predictor table and remembers every training call."""

    def __init__(self):
        self.updates = []

    def update(self, pc, observation):
        self.updates.append((pc, observation))


@pytest.fixture
def recording_predictor():
    return RecordingPredictor()


@pytest.fixture
def tiny_quantizer():
    # Sampler window of 8 * 4 = 32 accesses
    return Quantizer({
        'quantum_timestamp': 4,
        'max_value_timestamp': 15,
        'quantum_prediction': 4,
        'max_value_prediction': 7,
        'pc_bits': 12,
        'address_bits': 16,
    })


@pytest.fixture
def small_cache():
    """1KB, 4-way, 64B lines: 4 sets, driven by the small IbRDP preset."""
    policy = IbRDPPolicy(IBRDP_SMALL)
    return SetAssociativeCache(policy, size_kb=1, line_size=64, associativity=4)
