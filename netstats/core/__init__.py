# Stats aggregation engine

from .models import Block, ErrorCode, NodeIdentity, Stats, StatsError, Uptime
from .block_history import BlockHistory, MAX_BLOCKS_HISTORY
from .uptime import UptimeTracker
from .agent import AgentState, CycleResult, StatsAgent

__all__ = [
    'Block',
    'ErrorCode',
    'NodeIdentity',
    'Stats',
    'StatsError',
    'Uptime',
    'BlockHistory',
    'MAX_BLOCKS_HISTORY',
    'UptimeTracker',
    'AgentState',
    'CycleResult',
    'StatsAgent'
]
