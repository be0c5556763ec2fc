"""
Metrics derived from the block history.

All functions take blocks ordered newest first.
"""

from typing import List, Sequence

from .models import Block


def compute_block_times(blocks: Sequence[Block], floor: int = 0) -> List[int]:
    """
    Seconds between each block and its predecessor.

    The oldest block has no predecessor in ``blocks`` and is measured
    against ``floor`` instead. Each block's ``blocktime`` is updated.
    """
    times = []
    for i, block in enumerate(blocks):
        previous = blocks[i + 1].timestamp if i + 1 < len(blocks) else floor
        block.blocktime = block.timestamp - previous
        times.append(block.blocktime)
    return times


def average_block_time(blocks: Sequence[Block]) -> float:
    """Mean of the block times already set; 0.0 when there are none."""
    times = [b.blocktime for b in blocks if b.blocktime is not None]
    if not times:
        return 0.0
    return sum(times) / len(times)


def difficulty_series(blocks: Sequence[Block]) -> List[int]:
    return [b.difficulty for b in blocks]
