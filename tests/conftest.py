import threading

import pytest

from netstats.blockchain.node_client import LATEST, NodeQuery, NodeQueryError
from netstats.core.agent import StatsAgent
from netstats.core.models import Block, NodeIdentity
from netstats.network.transport import Transport


class FakeNode(NodeQuery):
    """In-memory chain with a movable head and switchable failures."""

    def __init__(self, head: int = 20, block_time: int = 15, genesis_ts: int = 1_000_000):
        self.head = head
        self.block_time = block_time
        self.genesis_ts = genesis_ts
        self.peers = 5
        self.mining = True
        self.gas = 20_000_000_000
        self.listening = True

        self.fail_peers = False
        self.fail_number = False
        self.fail_blocks = set()
        self.bad_gas = False

        self.fetched = []
        self.peer_calls = 0
        self.new_block_callback = None
        self.pending_callback = None
        self.watches_stopped = False

    def make_block(self, number: int) -> Block:
        return Block(
            number=number,
            hash="0x%064x" % (number + 1),
            difficulty=1_000 + number,
            timestamp=self.genesis_ts + number * self.block_time,
        )

    def peer_count(self) -> int:
        self.peer_calls += 1
        if self.fail_peers:
            raise NodeQueryError("net_peerCount failed: connection refused")
        return self.peers

    def latest_block_number(self) -> int:
        if self.fail_number:
            raise NodeQueryError("eth_blockNumber failed: bad response")
        return self.head

    def block_by_number(self, number) -> Block:
        self.fetched.append(number)
        if number == LATEST:
            number = self.head
        if number in self.fail_blocks:
            raise NodeQueryError(f"eth_getBlockByNumber({number}) failed")
        if number > self.head:
            return Block.sentinel()
        return self.make_block(number)

    def is_mining(self) -> bool:
        return self.mining

    def gas_price(self):
        if self.bad_gas:
            return "not-a-number"
        return self.gas

    def is_listening(self) -> bool:
        return self.listening

    def client_version(self) -> str:
        return "FakeEth/v1.0.0"

    def watch_pending_transactions(self, callback) -> bool:
        self.pending_callback = callback
        return True

    def watch_new_blocks(self, callback) -> bool:
        self.new_block_callback = callback
        return True

    def stop_watches(self):
        self.watches_stopped = True


class FakeTransport(Transport):
    """Records every accepted send; drops sends while disconnected."""

    def __init__(self, connected: bool = True):
        self.connected = connected
        self.sent = []
        self.dropped = 0
        self.started = False
        self.stopped = False
        self._open_callbacks = []
        self._lock = threading.Lock()

    def is_connected(self) -> bool:
        return self.connected

    def send(self, event, payload) -> bool:
        with self._lock:
            if not self.connected:
                self.dropped += 1
                return False
            self.sent.append((event, payload))
            return True

    def on_open(self, callback):
        self._open_callbacks.append(callback)

    def open(self):
        self.connected = True
        for callback in self._open_callbacks:
            callback()

    def events(self, name):
        return [payload for event, payload in self.sent if event == name]

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True


@pytest.fixture
def node():
    return FakeNode()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def identity():
    return NodeIdentity(name="Test Node", node="FakeEth/v1.0.0", os="linux", os_v="6.1.0")


@pytest.fixture
def agent(node, transport, identity):
    return StatsAgent(node, transport, identity, update_interval=60)
