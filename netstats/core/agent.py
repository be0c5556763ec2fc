"""
Stats Agent — samples a node, keeps the block history and pushes snapshots.

One poll cycle:
  1. count the attempt, clear last cycle's errors
  2. peer count (liveness); failure degrades the stats and skips to 7
  3. head block, reusing the known head when it has not moved
  4. backfill the history up to the head without refetching known blocks
  5. block times, average block time, difficulty series
  6. mining / gas price / listening
  7. uptime, then one "update" event to the collector

Cycles are triggered by a fixed timer and by the node's new-head watch.
They never overlap: a trigger that arrives mid-cycle is folded into a
single follow-up cycle.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..blockchain.node_client import LATEST, BlockId, NodeQuery, NodeQueryError
from ..network.transport import Transport
from .block_history import BlockHistory, MAX_BLOCKS_HISTORY
from .models import Block, ErrorCode, NodeIdentity, Stats, StatsError, to_number
from .uptime import UptimeTracker

logger = logging.getLogger(__name__)

# Node failures, plus node answers that fail numeric conversion.
QUERY_ERRORS = (NodeQueryError, ValueError, TypeError)


class AgentState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class CycleResult:
    """Everything one poll cycle learned; ``None`` means "leave as is"."""
    active: bool = False
    listening: Optional[bool] = None
    mining: Optional[bool] = None
    peers: Optional[int] = None
    gas_price: Optional[int] = None
    block: Optional[Block] = None
    history: Optional[BlockHistory] = None
    blocktime_avg: Optional[float] = None
    difficulty: Optional[List[int]] = None
    errors: List[StatsError] = field(default_factory=list)


class StatsAgent:
    """
    Owns the live ``Stats`` and drives the poll cycle.

    Args:
        node: NodeQuery used to sample the node.
        transport: Transport the snapshots are pushed through.
        identity: NodeIdentity announced as "hello" on every connect.
        update_interval: Seconds between timer-driven cycles.
        history_size: Capacity of the block history.
    """

    def __init__(
        self,
        node: NodeQuery,
        transport: Transport,
        identity: NodeIdentity,
        update_interval: float = 1.0,
        history_size: int = MAX_BLOCKS_HISTORY,
    ):
        self.node = node
        self.transport = transport
        self.identity = identity
        self.update_interval = update_interval

        self.stats = Stats()
        self.history = BlockHistory(history_size)
        self.tracker = UptimeTracker()
        self.state = AgentState.IDLE

        self._stats_lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        self._in_cycle = False
        self._rerun = False

        self._running = False
        self._stop = threading.Event()
        self._timer: Optional[threading.Thread] = None

        self.transport.on_open(self.send_hello)

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def update(self) -> bool:
        """
        Run a poll cycle now, or schedule one rerun if a cycle is in flight.

        Returns True if this call ran at least one cycle.
        """
        with self._cycle_lock:
            if self._in_cycle:
                self._rerun = True
                return False
            self._in_cycle = True

        try:
            while True:
                self._run_cycle()
                with self._cycle_lock:
                    if not self._rerun or self._stop.is_set():
                        self._in_cycle = False
                        self._rerun = False
                        return True
                    self._rerun = False
        except BaseException:
            with self._cycle_lock:
                self._in_cycle = False
                self._rerun = False
            raise

    def _on_pending(self, count: int):
        with self._stats_lock:
            self.stats.pending = count

    def _on_new_block(self):
        logger.debug("New block notification, requesting update")
        self.update()

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def _run_cycle(self):
        self.state = AgentState.POLLING
        try:
            result = self.poll()
        except Exception as exc:
            # Nothing below the adapters should get here; report the node as down.
            logger.exception("Unexpected error during poll cycle")
            result = CycleResult()
            self.tracker.record_failure(ErrorCode.LIVENESS_UNREACHABLE, str(exc), result)
            result.errors = list(self.tracker.errors)

        self.state = AgentState.FAILURE if result.errors else AgentState.SUCCESS
        uptime = self.tracker.refresh()

        with self._stats_lock:
            self._merge(result)
            self.stats.uptime = uptime
            snapshot = self.prepare_stats()

        self.transport.send("update", snapshot)
        self.state = AgentState.IDLE

    def poll(self) -> CycleResult:
        """Sample the node once. Never raises for node or parse errors."""
        tracker = self.tracker
        tracker.record_attempt()
        result = CycleResult()

        try:
            result.peers = to_number(self.node.peer_count())
            result.active = True
        except QUERY_ERRORS as exc:
            tracker.record_failure(ErrorCode.LIVENESS_UNREACHABLE, str(exc), result)
            result.errors = list(tracker.errors)
            return result

        history = self.history.copy()
        head = self._fetch_head(history)
        result.block = head

        if head.number > 0:
            self._backfill(history, head)
            history.compute_block_times()
            result.blocktime_avg = history.average()
            result.difficulty = history.difficulty_series()
        result.history = history

        self._sample_status(result)
        result.errors = list(tracker.errors)
        return result

    def _fetch_head(self, history: BlockHistory) -> Block:
        try:
            number = to_number(self.node.latest_block_number())
        except QUERY_ERRORS as exc:
            self.tracker.record_error(ErrorCode.HEAD_NUMBER_PARSE_FAILED, str(exc))
            return self._fetch_block(LATEST)

        # Non-verifying fast path: a block number already held is trusted as is.
        known = self._known_block(history, number)
        if known is not None:
            return known
        return self._fetch_block(number)

    def _known_block(self, history: BlockHistory, number: int) -> Optional[Block]:
        if number <= 0:
            return None
        for block in history:
            if block.number == number and block.is_known:
                return block
        return None

    def _fetch_block(self, number: BlockId) -> Block:
        try:
            return self.node.block_by_number(number)
        except QUERY_ERRORS as exc:
            self.tracker.record_error(ErrorCode.BLOCK_FETCH_FAILED, f"block {number}: {exc}")
            return Block.sentinel()

    def _backfill(self, history: BlockHistory, head: Block):
        newest = history.head
        if newest is not None and head.number < newest.number:
            # Chain went backwards (reorg or node resync); start over.
            logger.warning("Head moved back from #%d to #%d, resetting block history",
                           newest.number, head.number)
            history.clear()
            newest = None
        if newest is None:
            span = history.capacity
        else:
            span = min(head.number - newest.number, history.capacity)
        min_block = max(0, head.number - span)

        known = set(history.numbers())
        for number in range(min_block, head.number):
            if number in known:
                continue
            history.insert(self._fetch_block(number))

        if head.number not in known:
            history.insert(head)

    def _sample_status(self, result: CycleResult):
        queries = (
            ("mining", self.node.is_mining),
            ("gas_price", lambda: to_number(self.node.gas_price())),
            ("listening", self.node.is_listening),
        )
        for name, query in queries:
            try:
                setattr(result, name, query())
            except QUERY_ERRORS as exc:
                self.tracker.record_error(ErrorCode.STATUS_QUERY_FAILED, f"{name}: {exc}")

    def _merge(self, result: CycleResult):
        stats = self.stats
        stats.active = result.active
        for name in ("listening", "mining", "peers", "gas_price",
                     "block", "blocktime_avg", "difficulty"):
            value = getattr(result, name)
            if value is not None:
                setattr(stats, name, value)
        if result.history is not None:
            self.history = result.history
            stats.blocks = result.history.to_list()
        stats.errors = list(result.errors)

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def prepare_stats(self) -> Dict[str, Any]:
        return {"id": self.identity.id, "stats": self.stats.to_dict()}

    def snapshot(self) -> Dict[str, Any]:
        """Consistent copy of the current stats, safe from any thread."""
        with self._stats_lock:
            return self.prepare_stats()

    def send_hello(self):
        logger.info("Announcing node '%s' (%s)", self.identity.name, self.identity.id)
        self.transport.send("hello", self.identity.to_dict())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self):
        """Connect, run a first cycle, then start watches and the timer."""
        if self._running:
            return
        self._running = True
        self._stop.clear()

        self.transport.start()
        self.update()

        if not self.node.watch_pending_transactions(self._on_pending):
            logger.info("Pending transaction watch unavailable")
        if not self.node.watch_new_blocks(self._on_new_block):
            logger.info("New block watch unavailable, relying on the %.1fs timer",
                        self.update_interval)

        self._timer = threading.Thread(target=self._timer_loop, daemon=True,
                                       name="stats-timer")
        self._timer.start()
        logger.info("Stats agent started (interval=%.1fs)", self.update_interval)

    def _timer_loop(self):
        while not self._stop.wait(self.update_interval):
            try:
                self.update()
            except Exception:
                logger.exception("Stats update failed")

    def stop(self):
        self._running = False
        self._stop.set()
        if self._timer:
            self._timer.join(timeout=5)
        self.node.stop_watches()
        self.transport.stop()
        logger.info("Stats agent stopped")
