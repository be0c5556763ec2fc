"""
Collector transport over Socket.IO.

Keeps a client connection to the stats collector open, reconnecting with
exponential back-off, and emits named events while connected. Sends made
while the connection is down are dropped (and logged), never queued.
"""

import logging
import threading
from typing import Any, Callable, List, Optional

import socketio

logger = logging.getLogger(__name__)


class Transport:
    """Outbound event channel to the collector."""

    def is_connected(self) -> bool:
        raise NotImplementedError

    def send(self, event: str, payload: Any) -> bool:
        raise NotImplementedError

    def on_open(self, callback: Callable[[], None]):
        raise NotImplementedError

    def start(self):
        pass

    def stop(self):
        pass


class SocketIOTransport(Transport):
    """
    Transport backed by ``socketio.Client``.

    The initial connection is made from a background thread so the agent can
    start polling before the collector is reachable. Once connected, the
    Socket.IO client handles reconnects itself.
    """

    def __init__(
        self,
        url: str,
        socketio_path: str = "socket.io",
        base_backoff: float = 1.0,
        max_backoff: float = 30.0,
        client: Optional[socketio.Client] = None,
    ):
        self.url = url
        self.socketio_path = socketio_path
        self.base_backoff = base_backoff
        self.max_backoff = max_backoff

        self._client = client or socketio.Client(reconnection=True, logger=False)
        self._open_callbacks: List[Callable[[], None]] = []
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.dropped = 0

        self._register_handlers()

    def _register_handlers(self):
        client = self._client

        @client.event
        def connect():
            logger.info("Connected to collector %s", self.url)
            for callback in list(self._open_callbacks):
                try:
                    callback()
                except Exception:
                    logger.exception("Error in connection-open callback")

        @client.event
        def disconnect(*args):
            logger.info("Disconnected from collector %s", self.url)

        @client.event
        def connect_error(data):
            logger.warning("Collector connection error: %s", data)

    # ---- Lifecycle ----

    def on_open(self, callback: Callable[[], None]):
        self._open_callbacks.append(callback)

    def start(self):
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._connect_loop, daemon=True,
                                        name="collector-connect")
        self._thread.start()

    def _connect_loop(self):
        attempt = 0
        while not self._stop.is_set():
            try:
                self._client.connect(
                    self.url,
                    transports=["websocket"],
                    socketio_path=self.socketio_path,
                )
                return
            except Exception as exc:
                delay = min(self.base_backoff * (2 ** attempt), self.max_backoff)
                attempt += 1
                logger.warning("Collector %s unreachable (%s), retrying in %.1fs",
                               self.url, exc, delay)
                if self._stop.wait(delay):
                    return

    def stop(self):
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=5)
        if self._client.connected:
            try:
                self._client.disconnect()
            except Exception as exc:
                logger.debug("Error while disconnecting: %s", exc)
        logger.info("Collector transport stopped")

    # ---- Sending ----

    def is_connected(self) -> bool:
        return bool(self._client.connected)

    def send(self, event: str, payload: Any) -> bool:
        if not self.is_connected():
            self.dropped += 1
            logger.debug("Not connected, dropped '%s' event", event)
            return False
        try:
            self._client.emit(event, payload)
            return True
        except Exception as exc:
            logger.error("Failed to send '%s' event: %s", event, exc)
            return False
