# Netstats Agent
# Samples a blockchain node and streams its stats to a collector

__version__ = "1.0.0"

from .core.agent import StatsAgent
from .core.block_history import BlockHistory, MAX_BLOCKS_HISTORY
from .core.models import Block, NodeIdentity, Stats

__all__ = [
    'StatsAgent',
    'BlockHistory',
    'MAX_BLOCKS_HISTORY',
    'Block',
    'NodeIdentity',
    'Stats'
]
