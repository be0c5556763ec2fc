"""
Netstats Agent — wires the node client, collector transport and stats
agent together from an ``AgentConfig`` and runs until signalled.
"""

import logging
import platform
import signal
import sys
import threading

from .blockchain.node_client import NodeQuery, NodeQueryError, Web3NodeClient
from .config import AgentConfig
from .core.agent import StatsAgent
from .core.models import NodeIdentity
from .network.transport import SocketIOTransport

logger = logging.getLogger(__name__)


def build_identity(config: AgentConfig, node: NodeQuery) -> NodeIdentity:
    """Identity from config, asking the node for its version when not set."""
    version = config.version_string
    if not version:
        try:
            version = node.client_version()
        except NodeQueryError as exc:
            logger.warning("Could not read node client version: %s", exc)
            version = "unknown"

    return NodeIdentity(
        name=config.instance_name,
        node=version,
        os=platform.system().lower(),
        os_v=platform.release(),
    )


class NetstatsService:
    """Owns the agent's collaborators and their lifecycle."""

    def __init__(self, config: AgentConfig):
        self.config = config
        self._done = threading.Event()

        self.node = Web3NodeClient(
            config.rpc_url,
            timeout=config.rpc_timeout,
            poa=config.poa,
            watch_interval=config.watch_interval,
        )
        self.transport = SocketIOTransport(
            config.collector_url,
            socketio_path=config.socketio_path,
        )
        self.identity = build_identity(config, self.node)
        self.agent = StatsAgent(
            self.node,
            self.transport,
            self.identity,
            update_interval=config.update_interval,
        )
        logger.info("Node identity: %s", self.identity.to_dict())

    def start(self):
        signal.signal(signal.SIGTERM, self._shutdown_handler)
        signal.signal(signal.SIGINT, self._shutdown_handler)

        logger.info("Reporting %s to %s", self.config.rpc_url, self.config.collector_url)
        self.agent.start()
        self._done.wait()

    def stop(self):
        logger.info("Shutting down netstats agent...")
        self.agent.stop()
        self._done.set()

    def _shutdown_handler(self, signum, frame):
        logger.info("Received signal %s, shutting down...", signum)
        self.stop()
        sys.exit(0)
