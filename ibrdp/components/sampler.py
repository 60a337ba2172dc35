"""
Reuse Distance Sampler

Measures real reuse distances from the live access stream and trains the
predictor with them. One access out of every `period` is sampled into a
FIFO of `size` entries; a sample's FIFO position at the time its address
recurs gives its reuse distance in units of `period` accesses.
"""

import logging

import numpy as np

from .errors import InvariantViolation
from .predictor import ReuseDistancePredictor
from .quantization import Quantizer

logger = logging.getLogger(__name__)


class ReuseDistanceSampler:
    """
    FIFO reuse distance sampler.

    The sampler holds each sample for `size * period` accesses. Samples
    still unmatched when they reach the end of the FIFO have a reuse
    distance beyond the representable range, and train the predictor with
    the maximum prediction value instead of being dropped.
    """

    def __init__(self, period: int, max_reuse_distance: int,
                 predictor: ReuseDistancePredictor, quantizer: Quantizer):
        """
        Initialize the sampler.

        Args:
            period: Accesses between two consecutive samples
            max_reuse_distance: Longest distance observed, in accesses;
                always one larger than the longest non-truncated prediction
            predictor: Predictor receiving the observations
            quantizer: Converts observed distances to prediction codes
        """
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        if max_reuse_distance % period:
            raise ValueError(
                f"period {period} does not divide the sampler window {max_reuse_distance}")

        self.period = period
        self.size = max_reuse_distance // period
        if self.size <= 0:
            raise ValueError(
                f"sampler window {max_reuse_distance} is shorter than period {period}")

        self.predictor = predictor
        self.quantizer = quantizer

        self.sampling_counter = 0

        self.valid = np.zeros(self.size, dtype=bool)
        self.addresses = np.zeros(self.size, dtype=np.int64)
        self.pcs = np.zeros(self.size, dtype=np.int64)
        self.fifo_positions = np.arange(self.size, dtype=np.int64)

        # Statistics
        self.samples_taken = 0
        self.matches = 0
        self.censored = 0

    def update(self, address: int, pc: int) -> None:
        """Observe one access (hit or fill) in program order."""

        # ---> Match <---
        found = np.flatnonzero(self.valid & (self.addresses == address))
        if found.size:
            index = int(found[0])
            self.valid[index] = False

            position = int(self.fifo_positions[index])
            observation = self.quantizer.quantize_prediction(position * self.period)
            # The observation belongs to the instruction that was sampled
            self.predictor.update(int(self.pcs[index]), observation)
            self.matches += 1

        # ---> Sample <---
        if self.sampling_counter == 0:
            oldest = np.flatnonzero(self.fifo_positions == self.size - 1)
            if oldest.size == 0:
                raise InvariantViolation(
                    f"sampler FIFO has no entry at position {self.size - 1}")
            index = int(oldest[0])

            if self.valid[index]:
                self.predictor.update(int(self.pcs[index]),
                                      self.quantizer.max_value_prediction)
                self.censored += 1

            self.fifo_positions += 1

            self.valid[index] = True
            self.fifo_positions[index] = 0
            self.pcs[index] = pc
            self.addresses[index] = address

            self.sampling_counter = self.period - 1
            self.samples_taken += 1
        else:
            self.sampling_counter -= 1

    def reset(self) -> None:
        self.sampling_counter = 0
        self.valid.fill(False)
        self.addresses.fill(0)
        self.pcs.fill(0)
        self.fifo_positions[:] = np.arange(self.size, dtype=np.int64)
        self.samples_taken = 0
        self.matches = 0
        self.censored = 0

    def get_storage_bits(self, address_bits: int, pc_bits: int) -> int:
        """Total storage in bits."""
        position_bits = max(1, (self.size - 1).bit_length())
        counter_bits = max(1, (self.period - 1).bit_length())
        return self.size * (1 + address_bits + pc_bits + position_bits) + counter_bits

    def get_statistics(self) -> dict:
        return {
            'size': self.size,
            'period': self.period,
            'window': self.size * self.period,
            'live_samples': int(np.sum(self.valid)),
            'samples_taken': self.samples_taken,
            'matches': self.matches,
            'censored': self.censored,
        }
