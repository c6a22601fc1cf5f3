"""
Background websocket connection to the orchestrator.

Provides a managed daemon thread running a websocket-client ``WebSocketApp``.
The thread never touches session state: every callback only posts into the
session inbox, and the UI thread applies the events on its next pump.

One connection attempt is made per thread. When the socket errors or closes,
the session is told once and the thread ends; there is no reconnect.
"""

import logging
import threading
from typing import Any

import websocket

logger = logging.getLogger(__name__)


class SocketThread:
    """
    Daemon thread that owns the websocket to the orchestrator.

    Args:
        url: Websocket URL of the orchestrator.
        session: Receives frames and connection events (``post_frame``,
            ``post_connection_opened``, ``post_connection_lost``).
        ping_interval: Seconds between keep-alive pings; 0 disables them.
    """

    def __init__(self, url: str, session: Any, ping_interval: int = 20):
        self.url = url
        self.session = session
        self.ping_interval = ping_interval

        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._connected = threading.Event()
        self._app: websocket.WebSocketApp | None = None
        self._running = False

    @property
    def connected(self) -> bool:
        return self._connected.is_set()

    def start(self) -> None:
        """Start the background connection thread."""
        if self._running:
            logger.warning("Socket thread already running")
            return

        self._app = websocket.WebSocketApp(
            self.url,
            on_open=self._on_open,
            on_message=self._on_message,
            on_error=self._on_error,
            on_close=self._on_close,
        )
        self._running = True
        self._thread = threading.Thread(target=self._run, name="adoptimiser-socket", daemon=True)
        self._thread.start()
        logger.info(f"Connecting to orchestrator at {self.url}")

    def stop(self) -> None:
        """Close the socket and stop the background thread."""
        if not self._running:
            return

        self._connected.clear()
        if self._app is not None:
            self._app.close()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=5.0)
        self._running = False
        logger.info(f"Stopped socket thread for {self.url}")

    def send(self, text: str) -> bool:
        """Send one text frame; returns False when the socket is not open."""
        if not self.connected or self._app is None:
            logger.warning("Cannot send: socket is not connected")
            return False
        try:
            with self._lock:
                self._app.send(text)
        except websocket.WebSocketException as e:
            logger.error(f"Failed to send frame: {e}")
            return False
        return True

    def _run(self) -> None:
        try:
            self._app.run_forever(ping_interval=self.ping_interval or 0)
        except Exception as e:
            logger.error(f"Unexpected error in socket thread: {e}", exc_info=True)
            self._lost(str(e))

    def _on_open(self, ws: websocket.WebSocketApp) -> None:
        self._connected.set()
        self.session.post_connection_opened()

    def _on_message(self, ws: websocket.WebSocketApp, message: Any) -> None:
        self.session.post_frame(message)

    def _on_error(self, ws: websocket.WebSocketApp, error: Exception) -> None:
        logger.error(f"Websocket error: {error}")
        self._lost(str(error))

    def _on_close(self, ws: websocket.WebSocketApp, status_code: Any, reason: Any) -> None:
        logger.info(f"Websocket closed: {status_code} {reason}")
        self._lost(f"closed ({status_code})" if status_code else "closed")

    def _lost(self, reason: str) -> None:
        self._connected.clear()
        self.session.post_connection_lost(reason)
