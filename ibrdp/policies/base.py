"""
Base Replacement Policy Interface

Abstract base class for all replacement policies, plus the baseline
policies used for comparison.
"""

from abc import ABC, abstractmethod
from typing import Optional, TYPE_CHECKING
import numpy as np

if TYPE_CHECKING:
    from ..components.block_store import CacheBlock, SetAssociativeCache


class BaseReplacementPolicy(ABC):
    """Abstract base class for cache replacement policies."""

    def __init__(self, name: str, config: dict):
        """
        Initialize the policy.

        Args:
            name: Name identifier for this policy
            config: Configuration dictionary
        """
        self.name = name
        self.config = config
        self.stats = PolicyStats()
        self.cache: Optional['SetAssociativeCache'] = None

    def attach(self, cache: 'SetAssociativeCache') -> None:
        """
        Bind the policy to the block store it manages.

        Called once by the cache constructor, before any access.
        """
        self.cache = cache

    @abstractmethod
    def on_access(self, set_idx: int, way: int, pc: int) -> None:
        """
        Update replacement state after a hit.

        Args:
            set_idx: Cache set of the accessed line
            way: Way of the accessed line
            pc: Program counter of the accessing instruction
        """
        pass

    @abstractmethod
    def on_fill(self, set_idx: int, way: int, pc: int) -> None:
        """Update replacement state after a new line is placed in (set, way)."""
        pass

    @abstractmethod
    def select_victim(self, set_idx: int) -> int:
        """
        Choose the way to evict.

        Only called when every way of the set holds a valid line.
        """
        pass

    def on_invalidate(self, block: 'CacheBlock') -> None:
        """Replacement state hook for an invalidated line (optional override)."""
        self.stats.record_invalidation()

    @abstractmethod
    def get_hardware_cost(self) -> dict:
        """
        Estimate hardware implementation cost.

        Returns:
            Dictionary with storage (bits/bytes) and other metrics
        """
        pass

    def reset(self) -> None:
        """Reset policy state (optional override)."""
        self.stats = PolicyStats()

    def get_stats(self) -> 'PolicyStats':
        """Get current statistics."""
        return self.stats

    def get_statistics(self) -> dict:
        """Serializable statistics (policies with internal tables extend this)."""
        return {'policy': self.stats.to_dict()}


class PolicyStats:
    """Statistics tracking for a replacement policy."""

    def __init__(self):
        self.accesses = 0
        self.fills = 0
        self.victim_selections = 0
        self.invalidations = 0

        # Which signal chose the victim (IbRDP only)
        self.victims_by_time_left = 0
        self.victims_by_time_idle = 0

    def record_access(self):
        self.accesses += 1

    def record_fill(self):
        self.fills += 1

    def record_victim(self, by_time_left: Optional[bool] = None):
        """Record a victim selection, optionally noting which signal won."""
        self.victim_selections += 1
        if by_time_left is True:
            self.victims_by_time_left += 1
        elif by_time_left is False:
            self.victims_by_time_idle += 1

    def record_invalidation(self):
        self.invalidations += 1

    @property
    def updates(self) -> int:
        """Metadata updates (hits plus fills)."""
        return self.accesses + self.fills

    def to_dict(self) -> dict:
        return {
            'accesses': self.accesses,
            'fills': self.fills,
            'victim_selections': self.victim_selections,
            'invalidations': self.invalidations,
            'victims_by_time_left': self.victims_by_time_left,
            'victims_by_time_idle': self.victims_by_time_idle,
        }

    def __str__(self) -> str:
        return (f"Accesses: {self.accesses}, "
                f"Fills: {self.fills}, "
                f"Victims: {self.victim_selections}")


class LRUPolicy(BaseReplacementPolicy):
    """
    True LRU (baseline).

    Stamps each touched line with a monotonically increasing access
    counter and evicts the smallest stamp.
    """

    def __init__(self, config: Optional[dict] = None):
        config = config or {}
        super().__init__(config.get('name', 'LRU'), config)
        self.clock = 0

    def _touch(self, set_idx: int, way: int) -> None:
        self.clock += 1
        self.cache.metadata_of(set_idx, way).timestamp = self.clock

    def on_access(self, set_idx: int, way: int, pc: int) -> None:
        self._touch(set_idx, way)
        self.stats.record_access()

    def on_fill(self, set_idx: int, way: int, pc: int) -> None:
        self._touch(set_idx, way)
        self.stats.record_fill()

    def select_victim(self, set_idx: int) -> int:
        self.stats.record_victim()
        victim_way = 0
        oldest = None
        for way in range(self.cache.associativity):
            stamp = self.cache.metadata_of(set_idx, way).timestamp
            if oldest is None or stamp < oldest:
                oldest = stamp
                victim_way = way
        return victim_way

    def reset(self) -> None:
        super().reset()
        self.clock = 0

    def get_hardware_cost(self) -> dict:
        lines = self.cache.num_lines if self.cache else 0
        ways = self.cache.associativity if self.cache else 1
        bits_per_line = max(1, (ways - 1).bit_length())
        total = lines * bits_per_line
        return {
            'bits_per_line': bits_per_line,
            'total_bits': total,
            'total_bytes': total // 8,
            'total_kb': total / 8 / 1024
        }


class RandomPolicy(BaseReplacementPolicy):
    """
    Random replacement (baseline).

    Uses a seeded generator so runs are reproducible.
    """

    def __init__(self, config: Optional[dict] = None):
        config = config or {}
        super().__init__(config.get('name', 'Random'), config)
        self.seed = config.get('seed', 0)
        self.rng = np.random.default_rng(self.seed)

    def on_access(self, set_idx: int, way: int, pc: int) -> None:
        self.stats.record_access()

    def on_fill(self, set_idx: int, way: int, pc: int) -> None:
        self.stats.record_fill()

    def select_victim(self, set_idx: int) -> int:
        self.stats.record_victim()
        return int(self.rng.integers(self.cache.associativity))

    def reset(self) -> None:
        super().reset()
        self.rng = np.random.default_rng(self.seed)

    def get_hardware_cost(self) -> dict:
        return {
            'total_bits': 0,
            'total_bytes': 0,
            'total_kb': 0.0
        }
