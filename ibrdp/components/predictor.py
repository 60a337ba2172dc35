"""
Instruction-Based Reuse Distance Predictor

Set-associative table indexed by the (transformed) PC of the memory
instruction. Each entry holds a quantized reuse-distance prediction and a
saturating confidence counter. Entries within a set are replaced LRU,
tracked with explicit stack positions.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from .errors import InvariantViolation

logger = logging.getLogger(__name__)


class ReuseDistancePredictor:
    """
    Reuse distance predictor table.

    Addressing:
        set = pc & (num_sets - 1)
        tag = pc >> log2(num_sets)

    Update rule (per entry):
        observation == prediction  -> confidence++ (saturating)
        observation != prediction  -> confidence-- , or replace the
                                      prediction when confidence is 0
    """

    def __init__(self, num_sets: int = 128, assoc: int = 16,
                 max_confidence: int = 3, safe_confidence: int = 1):
        """
        Initialize predictor table.

        Args:
            num_sets: Number of predictor sets (power of two)
            assoc: Entries per set
            max_confidence: Saturation value of the confidence counter
            safe_confidence: Minimum confidence for a prediction to be used
        """
        if num_sets <= 0 or num_sets & (num_sets - 1):
            raise ValueError(f"num_sets must be a power of two, got {num_sets}")
        if assoc <= 0:
            raise ValueError(f"assoc must be positive, got {assoc}")
        if not 0 <= safe_confidence <= max_confidence:
            raise ValueError("safe_confidence must lie in [0, max_confidence]")

        self.num_sets = num_sets
        self.assoc = assoc
        self.max_confidence = max_confidence
        self.safe_confidence = safe_confidence

        self.set_mask = num_sets - 1
        self.set_shift = num_sets.bit_length() - 1

        # Storage
        self.valid = np.zeros((num_sets, assoc), dtype=bool)
        self.tags = np.zeros((num_sets, assoc), dtype=np.int64)
        self.predictions = np.zeros((num_sets, assoc), dtype=np.int64)
        self.confidence = np.zeros((num_sets, assoc), dtype=np.int64)
        self.stack_positions = np.tile(np.arange(assoc, dtype=np.int64),
                                       (num_sets, 1))

        # Access statistics
        self.lookups = 0
        self.confident_lookups = 0
        self.updates = 0
        self.allocations = 0

    def lookup(self, pc: int) -> int:
        """
        Get the prediction for a PC.

        Returns the stored prediction if a valid entry exists and is
        trusted, otherwise 0. Never allocates.
        """
        self.lookups += 1
        set_idx, way = self._find_entry(pc)

        if way is None:
            return 0
        if self.confidence[set_idx, way] < self.safe_confidence:
            return 0

        self.confident_lookups += 1
        return int(self.predictions[set_idx, way])

    def update(self, pc: int, observation: int) -> None:
        """Train the entry for `pc` with an observed (quantized) reuse distance."""
        self.updates += 1
        set_idx, way = self._find_entry(pc)

        # No entry: take over the LRU one
        if way is None:
            way = self._allocate_entry(pc)
            self.predictions[set_idx, way] = observation
            self.confidence[set_idx, way] = 0
            return

        if self.predictions[set_idx, way] == observation:
            if self.confidence[set_idx, way] < self.max_confidence:
                self.confidence[set_idx, way] += 1
        elif self.confidence[set_idx, way] == 0:
            self.predictions[set_idx, way] = observation
        else:
            self.confidence[set_idx, way] -= 1

    def get_entry(self, pc: int) -> Optional[dict]:
        """Inspect the entry for `pc` without touching recency."""
        set_idx, tag = self._index(pc)
        matches = np.flatnonzero(self.valid[set_idx] &
                                 (self.tags[set_idx] == tag))
        if matches.size == 0:
            return None

        way = int(matches[0])
        return {
            'set': set_idx,
            'way': way,
            'tag': int(self.tags[set_idx, way]),
            'prediction': int(self.predictions[set_idx, way]),
            'confidence': int(self.confidence[set_idx, way]),
            'stack_position': int(self.stack_positions[set_idx, way]),
        }

    def _index(self, pc: int) -> Tuple[int, int]:
        return pc & self.set_mask, pc >> self.set_shift

    def _find_entry(self, pc: int) -> Tuple[int, Optional[int]]:
        """
        Search the set for an entry matching `pc`.

        A matching entry becomes MRU; entries that were more recent than
        it move down one stack position.
        """
        set_idx, tag = self._index(pc)
        matches = np.flatnonzero(self.valid[set_idx] &
                                 (self.tags[set_idx] == tag))
        if matches.size == 0:
            return set_idx, None

        way = int(matches[0])
        positions = self.stack_positions[set_idx]
        positions[positions < positions[way]] += 1
        positions[way] = 0
        return set_idx, way

    def _allocate_entry(self, pc: int) -> int:
        """Re-initialize the LRU entry of the set for `pc`."""
        set_idx, tag = self._index(pc)
        positions = self.stack_positions[set_idx]

        lru = np.flatnonzero(positions == self.assoc - 1)
        if lru.size == 0:
            raise InvariantViolation(
                f"predictor set {set_idx} has no LRU entry: "
                f"stack positions {positions.tolist()}")

        way = int(lru[0])
        positions += 1
        positions[way] = 0

        if self.valid[set_idx, way]:
            logger.debug("predictor set %d: replacing tag %#x with %#x",
                         set_idx, int(self.tags[set_idx, way]), tag)

        self.valid[set_idx, way] = True
        self.tags[set_idx, way] = tag
        self.allocations += 1
        return way

    def reset(self) -> None:
        """Reset table to its power-on state."""
        self.valid.fill(False)
        self.tags.fill(0)
        self.predictions.fill(0)
        self.confidence.fill(0)
        self.stack_positions[:] = np.arange(self.assoc, dtype=np.int64)
        self.lookups = 0
        self.confident_lookups = 0
        self.updates = 0
        self.allocations = 0

    def get_storage_bits(self, prediction_bits: int, pc_bits: int) -> int:
        """Total storage in bits, given the prediction and PC code widths."""
        tag_bits = max(1, pc_bits - self.set_shift)
        confidence_bits = max(1, self.max_confidence.bit_length())
        stack_bits = max(1, (self.assoc - 1).bit_length())
        bits_per_entry = (1 + tag_bits + prediction_bits +
                          confidence_bits + stack_bits)
        return self.num_sets * self.assoc * bits_per_entry

    def get_statistics(self) -> dict:
        """Get table statistics."""
        valid = self.valid
        return {
            'sets': self.num_sets,
            'assoc': self.assoc,
            'valid_entries': int(np.sum(valid)),
            'lookups': self.lookups,
            'confident_lookups': self.confident_lookups,
            'updates': self.updates,
            'allocations': self.allocations,
            'saturated_entries': int(np.sum(valid & (self.confidence == self.max_confidence))),
            'mean_prediction': float(np.mean(self.predictions[valid])) if valid.any() else 0.0,
        }
