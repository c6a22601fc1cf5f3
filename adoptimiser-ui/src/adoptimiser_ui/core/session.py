"""
The chat session: the single owner of all client-side conversation state.

A `ChatSession` holds the chat log, the activity timeline and the two run
trackers, and applies every change to them on one thread. Other threads never
mutate state directly. The socket thread posts raw frames and connection
events, and background jobs post their completions, into the session inbox (a
thread-safe FIFO queue). The UI thread calls `pump()` to apply whatever has
arrived, in arrival order, then renders.

Inbound frames go through the same pipeline every time:

    decode/classify -> echo and noise filter -> timeline (tool frames)
                                             -> tagged-content router (text)

Nothing in the pipeline raises out of `handle_frame`; problems with a frame
surface as diagnostic entries in the chat log.
"""
from __future__ import annotations

import logging
import queue
import threading
import time
from enum import Enum
from functools import partial
from typing import Callable, List, Optional, Protocol, Tuple

from adoptimiser_contracts import AGENT_SENDER, USER_SENDER, OutboundFrame, now_ms

from .. import config
from ..services.jobs import JobRunner
from ..services.queries import QueryBackendClient, QueryRunTracker
from ..services.sandbox import SandboxBackendClient, SandboxRunTracker
from .classifier import ClassifiedFrame, FrameKind, decode_frame
from .filters import screen_frame
from .router import RouteResult, TaggedContentRouter
from .state import ActivityBlock, DisplayItem, Message, MessageLog, build_display_timeline
from .timeline import ActivityTimeline

logger = logging.getLogger(__name__)

PARSE_ERROR_MESSAGE = "System error: Could not parse message from server."
NOT_CONNECTED_MESSAGE = "Not connected. Cannot send message."
SEND_FAILED_MESSAGE = "Failed to send message."
CONNECTION_LOST_MESSAGE = "Connection lost. Please refresh."


class SessionPhase(str, Enum):
    OPEN = "open"
    ACTIVE = "active"
    CLOSED = "closed"


class Transport(Protocol):
    """The outbound side of the orchestrator connection."""

    @property
    def connected(self) -> bool:
        ...

    def send(self, text: str) -> bool:
        ...

    def stop(self) -> None:
        ...


Event = Callable[[], None]


class ChatSession:
    """
    One browser session's conversation with the orchestrator.

    Args:
        query_client: Query backend client; built from config when omitted.
        sandbox_client: Sandbox backend client; built from config when omitted.
        jobs: Background job runner; a `JobRunner` posting into this session's
            inbox when omitted.
        transport: Outbound connection; may also be attached later.
        clock: Returns the current time in epoch milliseconds.
        show_welcome: Seed the log with the welcome message.
        welcome_message: Text of the welcome message.
        sandbox_template: Template put on sandbox fragments.
        sandbox_file_path: File path put on sandbox fragments.
    """

    def __init__(
        self,
        *,
        query_client: Optional[QueryBackendClient] = None,
        sandbox_client: Optional[SandboxBackendClient] = None,
        jobs: Optional[JobRunner] = None,
        transport: Optional[Transport] = None,
        clock: Callable[[], int] = now_ms,
        show_welcome: bool = config.UI_SHOW_WELCOME,
        welcome_message: str = config.WELCOME_MESSAGE,
        sandbox_template: Optional[str] = config.SANDBOX_TEMPLATE,
        sandbox_file_path: Optional[str] = config.SANDBOX_FILE_PATH,
    ) -> None:
        self._clock = clock
        self._inbox: "queue.SimpleQueue[Event]" = queue.SimpleQueue()
        self._pump_lock = threading.RLock()
        self._transport = transport
        self._phase = SessionPhase.OPEN
        self._loss_reported = False

        if query_client is None:
            query_client = QueryBackendClient(
                config.GATEWAY_URL, config.QUERY_ENDPOINT, timeout=config.HTTP_TIMEOUT_SECONDS
            )
        if sandbox_client is None:
            sandbox_client = SandboxBackendClient(
                config.GATEWAY_URL, config.SANDBOX_ENDPOINT, timeout=config.HTTP_TIMEOUT_SECONDS
            )
        self._query_client = query_client
        self._sandbox_client = sandbox_client
        self._jobs = jobs if jobs is not None else JobRunner(self.post_completion, max_workers=config.JOB_WORKERS)

        self._log = MessageLog()
        self._timeline = ActivityTimeline()
        self._queries = QueryRunTracker(query_client, self._jobs, self._log, clock)
        self._sandbox = SandboxRunTracker(sandbox_client, self._jobs, self._log, clock)
        self._router = TaggedContentRouter(
            self._timeline,
            self._log,
            self._queries,
            self._sandbox,
            sandbox_template=sandbox_template,
            sandbox_file_path=sandbox_file_path,
        )

        if show_welcome and welcome_message:
            self._log.append(AGENT_SENDER, welcome_message, clock())

    # ------------------------------------------------------------------ #
    # Inbox (any thread)
    # ------------------------------------------------------------------ #

    def post_frame(self, raw: object) -> None:
        self._inbox.put(partial(self.handle_frame, raw))

    def post_connection_opened(self) -> None:
        self._inbox.put(self._on_connection_opened)

    def post_connection_lost(self, reason: str = "") -> None:
        self._inbox.put(partial(self._on_connection_lost, reason))

    def post_completion(self, callback: Event) -> None:
        self._inbox.put(callback)

    # ------------------------------------------------------------------ #
    # State application (owning thread)
    # ------------------------------------------------------------------ #

    def pump(self, limit: Optional[int] = None) -> int:
        """
        Applies queued events in arrival order.

        Args:
            limit: Maximum number of events to apply; ``None`` drains the inbox.

        Returns:
            The number of events applied.
        """
        applied = 0
        with self._pump_lock:
            while limit is None or applied < limit:
                try:
                    event = self._inbox.get_nowait()
                except queue.Empty:
                    break
                try:
                    event()
                except Exception:
                    logger.exception("Failed to apply session event")
                applied += 1
        return applied

    def handle_frame(self, raw: object) -> Optional[RouteResult]:
        """Runs one inbound frame through the whole pipeline."""
        frame = decode_frame(raw)
        now = self._clock()

        if frame.kind is FrameKind.EMPTY:
            logger.debug("Dropping empty frame")
            return None
        if frame.kind is FrameKind.MALFORMED:
            self._report_malformed(frame, now)
            return None

        verdict = screen_frame(frame)
        if not verdict.deliver:
            if verdict.finishes_turn:
                self._timeline.finish_turn()
            return None

        if frame.kind is FrameKind.TOOL_CALL:
            added = self._timeline.add_tool_calls(frame.tool_calls, frame.thinking, now)
            logger.info("Agent announced %d tool calls", len(added))
            return None
        if frame.kind is FrameKind.TOOL_RESPONSE:
            self._timeline.resolve_tool_responses(frame.tool_responses, now)
            return None
        return self._router.route(frame, now)

    def _report_malformed(self, frame: ClassifiedFrame, now: int) -> None:
        logger.error("Malformed frame (%s): %.200s", frame.reason, frame.raw)
        reason = frame.reason or ""
        if reason.startswith("Malformed "):
            self._log.diagnostic(f"System error: {reason}", now)
        else:
            self._log.diagnostic(PARSE_ERROR_MESSAGE, now)

    def _on_connection_opened(self) -> None:
        if self._phase is SessionPhase.OPEN:
            self._phase = SessionPhase.ACTIVE
            logger.info("Connected to orchestrator")

    def _on_connection_lost(self, reason: str) -> None:
        self._phase = SessionPhase.CLOSED
        self._timeline.finish_turn()
        if self._loss_reported:
            return
        self._loss_reported = True
        logger.warning("Connection to orchestrator lost: %s", reason or "closed")
        self._log.diagnostic(CONNECTION_LOST_MESSAGE, self._clock())

    # ------------------------------------------------------------------ #
    # User actions
    # ------------------------------------------------------------------ #

    def attach_transport(self, transport: Transport) -> None:
        self._transport = transport

    def send_message(self, text: str) -> bool:
        """
        Sends the user's chat text to the orchestrator.

        Returns:
            True when the frame was handed to the transport.
        """
        if not isinstance(text, str) or not text.strip():
            return False
        text = text.strip()
        now = self._clock()

        if not self.connected:
            self._log.diagnostic(NOT_CONNECTED_MESSAGE, now)
            return False

        self._log.append(USER_SENDER, text, now)
        self._timeline.begin_turn()
        frame = OutboundFrame(content=text, timestamp=now)
        if self._transport.send(frame.to_wire()):
            return True

        logger.error("Transport refused outbound frame")
        self._timeline.finish_turn()
        self._log.diagnostic(SEND_FAILED_MESSAGE, self._clock())
        return False

    def toggle_activity(self) -> None:
        self._timeline.toggle_collapsed()

    def settle(self, timeout: float = 5.0) -> bool:
        """
        Waits for outstanding background jobs and applies their completions.

        Returns:
            True when no jobs or events remain.
        """
        deadline = time.monotonic() + timeout
        while True:
            self.pump()
            if self._jobs.pending == 0 and self._inbox.empty():
                return True
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            self._jobs.wait(timeout=min(remaining, 0.05))

    def close(self) -> None:
        if self._transport is not None:
            self._transport.stop()
        self._jobs.shutdown()
        self._query_client.close()
        self._sandbox_client.close()
        self._phase = SessionPhase.CLOSED
        logger.info("Chat session closed")

    # ------------------------------------------------------------------ #
    # Read side
    # ------------------------------------------------------------------ #

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def connected(self) -> bool:
        return (
            self._phase is not SessionPhase.CLOSED
            and self._transport is not None
            and self._transport.connected
        )

    @property
    def processing(self) -> bool:
        return self._timeline.processing

    @property
    def messages(self) -> Tuple[Message, ...]:
        return self._log.snapshot()

    @property
    def activity(self) -> Optional[ActivityBlock]:
        return self._timeline.block

    @property
    def queries(self) -> QueryRunTracker:
        return self._queries

    @property
    def sandbox(self) -> SandboxRunTracker:
        return self._sandbox

    def display_timeline(self) -> List[DisplayItem]:
        return build_display_timeline(self._log.snapshot(), self._timeline.block, user_sender=USER_SENDER)


__all__ = [
    "SessionPhase",
    "Transport",
    "ChatSession",
    "PARSE_ERROR_MESSAGE",
    "NOT_CONNECTED_MESSAGE",
    "CONNECTION_LOST_MESSAGE",
    "SEND_FAILED_MESSAGE",
]
