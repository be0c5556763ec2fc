"""
Block History — bounded, newest-first record of recently seen blocks.

When the ring is full the oldest block is dropped and its timestamp is
kept as the floor, so the block time of the new oldest entry can still be
derived.
"""

import logging
from dataclasses import replace
from typing import Iterator, List, Optional

from .metrics import average_block_time, compute_block_times, difficulty_series
from .models import Block

logger = logging.getLogger(__name__)

MAX_BLOCKS_HISTORY = 12


class BlockHistory:
    """Ring of at most ``capacity`` blocks, index 0 is the newest."""

    def __init__(self, capacity: int = MAX_BLOCKS_HISTORY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.floor_timestamp = 0
        self._blocks: List[Block] = []

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[Block]:
        return iter(self._blocks)

    def __getitem__(self, index: int) -> Block:
        return self._blocks[index]

    @property
    def head(self) -> Optional[Block]:
        return self._blocks[0] if self._blocks else None

    @property
    def tail(self) -> Optional[Block]:
        return self._blocks[-1] if self._blocks else None

    def numbers(self) -> List[int]:
        return [b.number for b in self._blocks]

    def insert(self, block: Block):
        """Prepend ``block``, evicting the oldest entry if the ring is full."""
        if len(self._blocks) >= self.capacity:
            evicted = self._blocks.pop()
            self.floor_timestamp = evicted.timestamp
            logger.debug("Evicted block #%d (floor timestamp now %d)",
                         evicted.number, self.floor_timestamp)
        self._blocks.insert(0, block)

    def clear(self):
        self._blocks = []
        self.floor_timestamp = 0

    def compute_block_times(self, floor: Optional[int] = None) -> List[int]:
        """
        Set ``blocktime`` on every entry and return the values, newest first.

        The oldest entry is measured against ``floor``, which defaults to
        the timestamp of the last evicted block (0 before any eviction).
        """
        if floor is None:
            floor = self.floor_timestamp
        return compute_block_times(self._blocks, floor)

    def average(self) -> float:
        return average_block_time(self._blocks)

    def difficulty_series(self) -> List[int]:
        return difficulty_series(self._blocks)

    def copy(self) -> 'BlockHistory':
        """Independent ring; blocks are copied so block times can be rewritten."""
        clone = BlockHistory(self.capacity)
        clone.floor_timestamp = self.floor_timestamp
        clone._blocks = [replace(b) for b in self._blocks]
        return clone

    def to_list(self) -> List[Block]:
        return list(self._blocks)
