"""
Liveness & uptime bookkeeping for the poll loop.
"""

import logging
from dataclasses import replace
from typing import List

from .models import ErrorCode, StatsError, Uptime

logger = logging.getLogger(__name__)


class UptimeTracker:
    """
    Counts poll attempts and liveness failures.

    ``errors`` only ever holds the errors of the current cycle; it is
    reset by ``record_attempt``.
    """

    def __init__(self):
        self.uptime = Uptime()
        self.errors: List[StatsError] = []

    def record_attempt(self):
        self.uptime.inc += 1
        self.errors = []

    def record_error(self, code: ErrorCode, message: str):
        """Note a problem that does not count as downtime."""
        self.errors.append(StatsError(code=code, msg=message))
        logger.debug("Cycle error %s: %s", code.name, message)

    def record_failure(self, code: ErrorCode, message: str, status=None):
        """
        Note a liveness failure.

        ``status`` (anything with active/listening/mining/peers attributes)
        is forced into the degraded state.
        """
        self.errors.append(StatsError(code=code, msg=message))
        self.uptime.down += 1
        if status is not None:
            status.active = False
            status.listening = False
            status.mining = False
            status.peers = 0
        logger.warning("Node unreachable (%s): %s", code.name, message)

    def uptime_percent(self) -> float:
        # Nothing attempted yet counts as 0% rather than undefined.
        if self.uptime.inc == 0:
            return 0.0
        return (self.uptime.inc - self.uptime.down) / self.uptime.inc * 100

    def refresh(self) -> Uptime:
        """Recompute the total and return a detached copy of the counters."""
        self.uptime.total = self.uptime_percent()
        return replace(self.uptime)
