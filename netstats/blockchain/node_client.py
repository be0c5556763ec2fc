"""
Node client for Ethereum-style JSON-RPC nodes.

Wraps the handful of web3 calls the stats agent needs with Pythonic
return types, and turns RPC failures into ``NodeQueryError`` so callers
only deal with one exception type.
"""

import logging
import threading
from typing import Any, Callable, List, Optional, Union

from web3 import Web3
from web3.exceptions import BlockNotFound
from web3.middleware import ExtraDataToPOAMiddleware

from ..core.models import Block, to_number

logger = logging.getLogger(__name__)

LATEST = "latest"

BlockId = Union[int, str]


class NodeQueryError(Exception):
    """The node could not answer a query."""


# --------------------------------------------------------------------------
# Query interface
# --------------------------------------------------------------------------

class NodeQuery:
    """
    Read-only view of a blockchain node.

    Watches are optional: the defaults install nothing and return False, so
    a node without change notifications is simply polled on the timer.
    """

    def peer_count(self) -> int:
        raise NotImplementedError

    def latest_block_number(self) -> int:
        raise NotImplementedError

    def block_by_number(self, number: BlockId) -> Block:
        raise NotImplementedError

    def is_mining(self) -> bool:
        raise NotImplementedError

    def gas_price(self) -> int:
        raise NotImplementedError

    def is_listening(self) -> bool:
        raise NotImplementedError

    def client_version(self) -> str:
        raise NotImplementedError

    def watch_pending_transactions(self, callback: Callable[[int], None]) -> bool:
        return False

    def watch_new_blocks(self, callback: Callable[[], None]) -> bool:
        return False

    def stop_watches(self):
        pass


# --------------------------------------------------------------------------
# Filter polling
# --------------------------------------------------------------------------

class FilterWatch:
    """Installs a node filter and polls it for new entries in a daemon thread."""

    def __init__(self, w3, filter_params: str, on_entries: Callable[[list], None],
                 interval: float = 1.0):
        self.w3 = w3
        self.filter_params = filter_params
        self.on_entries = on_entries
        self.interval = interval
        self._filter = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> bool:
        try:
            self._filter = self.w3.eth.filter(self.filter_params)
        except Exception as exc:
            logger.warning("Node refused '%s' filter, falling back to polling: %s",
                           self.filter_params, exc)
            return False

        self._thread = threading.Thread(
            target=self._loop, daemon=True, name=f"watch-{self.filter_params}"
        )
        self._thread.start()
        logger.info("Watching '%s' (filter %s)", self.filter_params, self._filter.filter_id)
        return True

    def poll_once(self):
        entries = self._filter.get_new_entries()
        self.on_entries(entries)

    def _loop(self):
        while not self._stop.wait(self.interval):
            try:
                self.poll_once()
            except Exception:
                logger.exception("Error polling '%s' filter", self.filter_params)

    def stop(self):
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=5)
        if self._filter is not None:
            try:
                self.w3.eth.uninstall_filter(self._filter.filter_id)
            except Exception as exc:
                logger.debug("Could not uninstall '%s' filter: %s", self.filter_params, exc)
            self._filter = None


# --------------------------------------------------------------------------
# Web3 implementation
# --------------------------------------------------------------------------

def _hex(value: Any) -> str:
    if isinstance(value, str):
        return value
    return Web3.to_hex(value)


class Web3NodeClient(NodeQuery):
    """NodeQuery over HTTP JSON-RPC using web3.py."""

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 10,
        poa: bool = False,
        watch_interval: float = 1.0,
        w3: Optional[Web3] = None,
    ):
        """
        Args:
            rpc_url: Node endpoint, e.g. ``http://localhost:8545``.
            timeout: Per-request HTTP timeout in seconds.
            poa: Inject the extra-data middleware needed by PoA chains.
            watch_interval: Seconds between filter polls.
            w3: Pre-built Web3 instance (tests); overrides the above.
        """
        self.rpc_url = rpc_url
        self.watch_interval = watch_interval
        if w3 is None:
            w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
            if poa:
                w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        self.w3 = w3
        self._watches: List[FilterWatch] = []
        logger.info("Node client configured for %s", rpc_url)

    def _query(self, method: str, fn: Callable[[], Any]) -> Any:
        try:
            return fn()
        except Exception as exc:
            raise NodeQueryError(f"{method} failed: {exc}") from exc

    # ---- Status ----

    def peer_count(self) -> int:
        return self._query("net_peerCount", lambda: self.w3.net.peer_count)

    def is_listening(self) -> bool:
        return bool(self._query("net_listening", lambda: self.w3.net.listening))

    def is_mining(self) -> bool:
        return bool(self._query(
            "eth_mining", lambda: self.w3.manager.request_blocking("eth_mining", [])
        ))

    def gas_price(self) -> int:
        return self._query("eth_gasPrice", lambda: self.w3.eth.gas_price)

    def latest_block_number(self) -> int:
        return self._query("eth_blockNumber", lambda: self.w3.eth.block_number)

    def client_version(self) -> str:
        return self._query("web3_clientVersion", lambda: self.w3.client_version)

    # ---- Blocks ----

    def block_by_number(self, number: BlockId) -> Block:
        """
        Fetch a block. A block the node does not have yet comes back as
        ``Block.sentinel()``. A response with missing or unparsable fields
        raises ``NodeQueryError``.
        """
        try:
            raw = self.w3.eth.get_block(number)
        except BlockNotFound:
            logger.debug("Block %s not available yet", number)
            return Block.sentinel()
        except Exception as exc:
            raise NodeQueryError(f"eth_getBlockByNumber({number}) failed: {exc}") from exc

        if raw is None:
            return Block.sentinel()

        try:
            return Block(
                number=to_number(raw["number"]),
                hash=_hex(raw["hash"]) if raw.get("hash") else Block.sentinel().hash,
                difficulty=to_number(raw.get("difficulty", 0)),
                timestamp=to_number(raw["timestamp"]),
            )
        except (KeyError, ValueError, TypeError) as exc:
            raise NodeQueryError(f"eth_getBlockByNumber({number}) bad response: {exc!r}") from exc

    # ---- Watches ----

    def watch_pending_transactions(self, callback: Callable[[int], None]) -> bool:
        def on_entries(entries):
            if entries:
                callback(len(entries))
        return self._watch("pending", on_entries)

    def watch_new_blocks(self, callback: Callable[[], None]) -> bool:
        def on_entries(entries):
            if entries:
                logger.debug("New head notification (%d hashes)", len(entries))
                callback()
        return self._watch("latest", on_entries)

    def _watch(self, filter_params: str, on_entries: Callable[[list], None]) -> bool:
        watch = FilterWatch(self.w3, filter_params, on_entries, self.watch_interval)
        if not watch.start():
            return False
        self._watches.append(watch)
        return True

    def stop_watches(self):
        for watch in self._watches:
            watch.stop()
        self._watches = []
