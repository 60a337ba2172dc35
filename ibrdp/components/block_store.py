"""
Set-Associative Block Store

Tag/valid array of a set-associative cache. Handles set/way addressing,
hit detection and free-way allocation, and delegates every replacement
decision to an attached replacement policy.
"""

import logging
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..policies.base import BaseReplacementPolicy

logger = logging.getLogger(__name__)


class CacheBlock:
    """One cache line: tag/valid state plus replacement metadata."""
    __slots__ = ['set', 'way', 'tag', 'valid', 'dirty',
                 'timestamp', 'prediction']

    def __init__(self, set_idx: int, way: int):
        self.set = set_idx
        self.way = way
        self.tag = 0
        self.valid = False
        self.dirty = False
        # Replacement policy state, meaningful only while valid
        self.timestamp = 0
        self.prediction = 0


class SetAssociativeCache:
    """
    Set-associative cache model.

    Addresses are byte addresses; the block address is address // line_size,
    the set is block_address % num_sets and the tag the remaining high bits.
    """

    def __init__(self, policy: 'BaseReplacementPolicy',
                 size_kb: float = 1024, line_size: int = 64,
                 associativity: int = 16):
        """
        Initialize the cache.

        Args:
            policy: Replacement policy deciding victims
            size_kb: Capacity in KB
            line_size: Line size in bytes (power of two)
            associativity: Ways per set
        """
        if line_size <= 0 or line_size & (line_size - 1):
            raise ValueError(f"line_size must be a power of two, got {line_size}")
        if associativity <= 0:
            raise ValueError(f"associativity must be positive, got {associativity}")

        self.size_bytes = int(size_kb * 1024)
        self.line_size = line_size
        self.associativity = associativity
        self.num_lines = self.size_bytes // line_size
        self.num_sets = self.num_lines // associativity

        if self.num_sets <= 0 or self.num_sets & (self.num_sets - 1):
            raise ValueError(
                f"cache geometry gives {self.num_sets} sets; must be a power of two")

        self.offset_shift = line_size.bit_length() - 1
        self.set_shift = self.num_sets.bit_length() - 1
        self.set_mask = self.num_sets - 1

        self.blocks: List[List[CacheBlock]] = [
            [CacheBlock(s, w) for w in range(associativity)]
            for s in range(self.num_sets)
        ]

        # Statistics
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.writebacks = 0

        self.policy = policy
        policy.attach(self)

    # --- Addressing ---

    def extract_set(self, address: int) -> int:
        return (address >> self.offset_shift) & self.set_mask

    def extract_tag(self, address: int) -> int:
        return address >> (self.offset_shift + self.set_shift)

    def block_address(self, set_idx: int, way: int) -> int:
        """Block (line) address of the block held in (set, way)."""
        blk = self.blocks[set_idx][way]
        return (blk.tag << self.set_shift) + set_idx

    # --- Block store interface ---

    def lookup(self, address: int) -> Optional[CacheBlock]:
        """Find the valid block holding `address`, if any."""
        tag = self.extract_tag(address)
        for blk in self.blocks[self.extract_set(address)]:
            if blk.valid and blk.tag == tag:
                return blk
        return None

    def metadata_of(self, set_idx: int, way: int) -> CacheBlock:
        return self.blocks[set_idx][way]

    def is_every_way_valid(self, set_idx: int) -> bool:
        return all(blk.valid for blk in self.blocks[set_idx])

    def allocate_for_fill(self, set_idx: int) -> int:
        """
        Choose the way that receives a new line.

        The first invalid way is used when there is one; only a full set
        asks the policy for a victim.
        """
        for blk in self.blocks[set_idx]:
            if not blk.valid:
                return blk.way
        return self.policy.select_victim(set_idx)

    # --- Cache operations ---

    def access(self, address: int, pc: int = 0, is_write: bool = False) -> bool:
        """
        Access `address` on behalf of instruction `pc`.

        Returns:
            True on hit, False on miss (the line is filled on a miss)
        """
        blk = self.lookup(address)

        if blk is not None:
            self.hits += 1
            blk.dirty = blk.dirty or is_write
            self.policy.on_access(blk.set, blk.way, pc)
            return True

        self.misses += 1
        set_idx = self.extract_set(address)
        way = self.allocate_for_fill(set_idx)
        blk = self.blocks[set_idx][way]

        if blk.valid:
            self.evictions += 1
            if blk.dirty:
                self.writebacks += 1

        blk.tag = self.extract_tag(address)
        blk.valid = True
        blk.dirty = is_write
        self.policy.on_fill(set_idx, way, pc)
        return False

    def invalidate(self, address: int) -> bool:
        """Drop the line holding `address`. Returns True if it was present."""
        blk = self.lookup(address)
        if blk is None:
            return False

        blk.valid = False
        blk.dirty = False
        self.policy.on_invalidate(blk)
        return True

    def reset(self) -> None:
        """Invalidate every line and clear statistics."""
        for cache_set in self.blocks:
            for blk in cache_set:
                blk.tag = 0
                blk.valid = False
                blk.dirty = False
                blk.timestamp = 0
                blk.prediction = 0
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.writebacks = 0
        self.policy.reset()

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def get_statistics(self) -> dict:
        return {
            'sets': self.num_sets,
            'associativity': self.associativity,
            'line_size': self.line_size,
            'hits': self.hits,
            'misses': self.misses,
            'evictions': self.evictions,
            'writebacks': self.writebacks,
            'hit_rate': self.hit_rate,
        }
