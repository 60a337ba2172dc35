"""
IbRDP Replacement Policy

Instruction-based Reuse Distance Prediction, as described by
Petoumenos, Keramidas and Kaxiras in:
- "Instruction-based reuse-distance prediction for effective cache
  management" (SAMOS 2009)

Every access stamps the touched line with the current (quantized) time and
the reuse distance predicted for the accessing instruction. On a miss the
policy evicts the line that will be reused farthest in the future or, when
no line has a trustworthy prediction, the one idle for the longest time.

Components:
- ReuseDistancePredictor: PC-indexed reuse distance table with confidence
- ReuseDistanceSampler: measures reuse distances to train the predictor
- Quantizer: narrow timestamp / prediction codes
"""

import logging
from typing import Optional

from .base import BaseReplacementPolicy
from ..components.predictor import ReuseDistancePredictor
from ..components.quantization import Quantizer, QUANTIZATION_DEFAULT, QUANTIZATION_SMALL
from ..components.sampler import ReuseDistanceSampler

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration Presets
# ============================================================================

# Sized for a 1MB 16-way LLC
IBRDP_DEFAULT = {
    'name': 'IbRDP',
    'predictor_sets': 128,
    'predictor_ways': 16,
    'max_confidence': 3,
    'safe_confidence': 1,
    'sampler_period': QUANTIZATION_DEFAULT['quantum_prediction'],
    **QUANTIZATION_DEFAULT,
}

# Small configuration for small caches and quick experiments
IBRDP_SMALL = {
    'name': 'IbRDP-Small',
    'predictor_sets': 16,
    'predictor_ways': 4,
    'max_confidence': 3,
    'safe_confidence': 1,
    'sampler_period': QUANTIZATION_SMALL['quantum_prediction'],
    **QUANTIZATION_SMALL,
}


class GlobalAccessState:
    """
    Quantized global access counter.

    `low` counts accesses within the current quantum; `high` is the
    quantized "now" and wraps to 0 after `max_value`.
    """
    __slots__ = ['low', 'high', 'quantum', 'max_value']

    def __init__(self, quantum: int, max_value: int):
        self.quantum = quantum
        self.max_value = max_value
        self.low = 0
        self.high = 1

    def advance(self) -> None:
        self.low += 1
        if self.low == self.quantum:
            self.low = 0
            self.high += 1
            if self.high > self.max_value:
                self.high = 0

    def reset(self) -> None:
        self.low = 0
        self.high = 1


class IbRDPPolicy(BaseReplacementPolicy):
    """
    IbRDP replacement policy.

    Victim selection computes, for every way of the set:
        time_left = max(0, timestamp + prediction - now)
        time_idle = now - timestamp
    and evicts the way holding the largest of all these values, preferring
    the lowest way on ties.
    """

    def __init__(self, config: Optional[dict] = None):
        config = config or IBRDP_DEFAULT
        name = config.get('name', 'IbRDP')
        super().__init__(name, config)

        self.quantizer = Quantizer(config)

        self.predictor = ReuseDistancePredictor(
            num_sets=config.get('predictor_sets', 128),
            assoc=config.get('predictor_ways', 16),
            max_confidence=config.get('max_confidence', 3),
            safe_confidence=config.get('safe_confidence', 1),
        )

        self.sampler_period = config.get('sampler_period',
                                         self.quantizer.quantum_prediction)
        self.sampler = ReuseDistanceSampler(
            period=self.sampler_period,
            max_reuse_distance=self.quantizer.max_reuse_distance,
            predictor=self.predictor,
            quantizer=self.quantizer,
        )

        self.counter = GlobalAccessState(self.quantizer.quantum_timestamp,
                                         self.quantizer.max_value_timestamp)

    # --- Metadata update ---

    def on_access(self, set_idx: int, way: int, pc: int) -> None:
        self._update(set_idx, way, pc)
        self.stats.record_access()

    def on_fill(self, set_idx: int, way: int, pc: int) -> None:
        self._update(set_idx, way, pc)
        self.stats.record_fill()

    def _update(self, set_idx: int, way: int, pc: int) -> None:
        """Advance time, train on the access, and stamp the touched line."""
        my_pc = self.quantizer.transform_pc(pc)
        my_address = self.quantizer.transform_address(
            self.cache.block_address(set_idx, way))

        self.counter.advance()
        self.sampler.update(my_address, my_pc)

        prediction = self.predictor.lookup(my_pc)

        blk = self.cache.metadata_of(set_idx, way)
        blk.timestamp = self.counter.high
        blk.prediction = prediction

    # --- Victim selection ---

    def current_time(self, timestamp: int) -> int:
        """
        Un-quantized "now" as seen from a line stamped at `timestamp`.

        A stamp greater than the counter means the counter wrapped since
        the line was last touched.
        """
        now = self.counter.high
        if timestamp > now:
            now += self.quantizer.max_value_timestamp + 1
        return self.quantizer.unquantize_timestamp(now)

    def select_victim(self, set_idx: int) -> int:
        victim_way = 0
        victim_time = 0
        by_time_left = None

        for way in range(self.cache.associativity):
            blk = self.cache.metadata_of(set_idx, way)

            now = self.current_time(blk.timestamp)
            timestamp = self.quantizer.unquantize_timestamp(blk.timestamp)
            prediction = self.quantizer.unquantize_prediction(blk.prediction)

            # Look at the future
            time_left = max(0, timestamp + prediction - now)
            if time_left > victim_time:
                victim_time = time_left
                victim_way = way
                by_time_left = True

            # Look at the past
            time_idle = now - timestamp
            if time_idle > victim_time:
                victim_time = time_idle
                victim_way = way
                by_time_left = False

        self.stats.record_victim(by_time_left)
        return victim_way

    # --- Housekeeping ---

    def reset(self) -> None:
        super().reset()
        self.predictor.reset()
        self.sampler.reset()
        self.counter.reset()

    def get_statistics(self) -> dict:
        """Policy, predictor and sampler statistics."""
        return {
            'policy': self.stats.to_dict(),
            'predictor': self.predictor.get_statistics(),
            'sampler': self.sampler.get_statistics(),
            'counter_high': self.counter.high,
        }

    def get_hardware_cost(self) -> dict:
        q = self.quantizer
        predictor_bits = self.predictor.get_storage_bits(q.prediction_bits, q.pc_bits)
        sampler_bits = self.sampler.get_storage_bits(q.address_bits, q.pc_bits)

        lines = self.cache.num_lines if self.cache else 0
        per_line_bits = q.timestamp_bits + q.prediction_bits
        line_bits = lines * per_line_bits

        counter_bits = (max(1, (q.quantum_timestamp - 1).bit_length()) +
                        q.timestamp_bits)

        total = predictor_bits + sampler_bits + line_bits + counter_bits
        return {
            'predictor_bits': predictor_bits,
            'sampler_bits': sampler_bits,
            'sampler_entries': self.sampler.size,
            'bits_per_line': per_line_bits,
            'line_metadata_bits': line_bits,
            'counter_bits': counter_bits,
            'total_bits': total,
            'total_bytes': total // 8,
            'total_kb': total / 8 / 1024
        }
