"""
Routing of agent text frames by sender role.

Each specialised agent embeds its structured output in a pseudo-XML tag: the
orchestrator wraps its trace in ``<thinking>``, the query generator wraps a
JSON list of graph queries in ``<query>``, the analyst wraps its finding in
``<insight>`` and the graph generator wraps a UI component in ``<code>``. The
router looks up a handler by sender, extracts the first matching block and
applies it to the timeline, the chat log or one of the run trackers. Senders
without a handler are plain chat: the full text is shown as a message.

Every frame takes exactly one route. A malformed tagged payload produces one
diagnostic message and no partial state.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from adoptimiser_contracts import (
    ANALYSIS_AGENT,
    GRAPH_GENERATOR_AGENT,
    ORCHESTRATOR_AGENT,
    QUERY_GENERATOR_AGENT,
    GraphFragment,
)

from .classifier import ClassifiedFrame
from .state import Message, MessageLog
from .tags import contains_tag, extract_tag, strip_tags
from .timeline import THINKING_TAG, ActivityTimeline

logger = logging.getLogger(__name__)

QUERY_TAG = "query"
INSIGHT_TAG = "insight"
CODE_TAG = "code"


class QueryPayloadError(ValueError):
    """A ``<query>`` block did not hold a usable query list."""


@dataclass
class RouteResult:
    """
    What routing one frame did.

    Attributes:
        route: Name of the handler that took the frame.
        messages: Chat log entries appended, diagnostics included.
        query_ids: Query executions created.
        sandbox_token: Token of the sandbox run started, if any.
    """

    route: str
    messages: List[Message] = field(default_factory=list)
    query_ids: List[str] = field(default_factory=list)
    sandbox_token: Optional[str] = None

    @property
    def visible(self) -> bool:
        return bool(self.messages or self.query_ids or self.sandbox_token)


Handler = Callable[[str, str, int], RouteResult]


def parse_query_payload(payload: str) -> List[str]:
    """
    Decodes the body of a ``<query>`` block into its runnable query strings.

    Raises:
        QueryPayloadError: The body is not JSON, has no ``queries`` list, or
            the list holds no non-blank string.
    """
    try:
        data = json.loads(payload)
    except ValueError as exc:
        raise QueryPayloadError(f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise QueryPayloadError("expected a JSON object")
    queries = data.get("queries")
    if not isinstance(queries, list):
        raise QueryPayloadError("'queries' must be a list")

    runnable: List[str] = []
    for index, query in enumerate(queries):
        if isinstance(query, str) and query.strip():
            runnable.append(query)
        else:
            logger.warning("Invalid query text at index %d: %r", index, query)
    if not runnable:
        raise QueryPayloadError("no runnable queries")
    return runnable


class TaggedContentRouter:
    """
    Dispatches delivered text frames to per-sender handlers.

    Args:
        timeline: Receives orchestrator thinking steps.
        log: The chat log.
        queries: Query run tracker (``submit(list[str]) -> list[str]``).
        sandbox: Sandbox run tracker (``submit(GraphFragment) -> str``).
        sandbox_template: Template put on fragments built from ``<code>``.
        sandbox_file_path: File path put on fragments built from ``<code>``.
    """

    def __init__(
        self,
        timeline: ActivityTimeline,
        log: MessageLog,
        queries,
        sandbox,
        sandbox_template: Optional[str] = None,
        sandbox_file_path: Optional[str] = None,
    ) -> None:
        self._timeline = timeline
        self._log = log
        self._queries = queries
        self._sandbox = sandbox
        self._sandbox_template = sandbox_template
        self._sandbox_file_path = sandbox_file_path
        self._handlers: Dict[str, Handler] = {
            ORCHESTRATOR_AGENT: self._route_orchestrator,
            QUERY_GENERATOR_AGENT: self._route_query,
            ANALYSIS_AGENT: self._route_insight,
            GRAPH_GENERATOR_AGENT: self._route_code,
        }

    def route(self, frame: ClassifiedFrame, now: int) -> RouteResult:
        """Routes one delivered text frame; never raises for bad payloads."""
        text = frame.text
        if text is None:
            logger.warning("No text to route in frame from %s", frame.sender)
            return RouteResult(route="unparseable")
        handler = self._handlers.get(frame.sender, self._route_plain)
        return handler(frame.sender, text, now)

    def _route_orchestrator(self, sender: str, text: str, now: int) -> RouteResult:
        result = RouteResult(route="orchestrator")
        if not contains_tag(text, THINKING_TAG):
            logger.debug("Ignoring %s text without a thinking block", sender)
            return result

        thinking = extract_tag(text, THINKING_TAG)
        if thinking is None:
            # Opening tag without a well-formed close: show the text as is.
            if text.strip():
                result.messages.append(self._log.append(sender, text, now))
            return result

        if thinking:
            self._timeline.add_thinking(thinking, now)
        remainder = strip_tags(text, THINKING_TAG)
        if remainder:
            result.messages.append(self._log.append(sender, remainder, now))
        return result

    def _route_query(self, sender: str, text: str, now: int) -> RouteResult:
        result = RouteResult(route="query")
        payload = extract_tag(text, QUERY_TAG)
        if not payload:
            logger.debug("%s sent no query block", sender)
            return result
        try:
            queries = parse_query_payload(payload)
        except QueryPayloadError as exc:
            logger.error("Failed to parse queries from %s: %s", sender, exc)
            result.messages.append(self._log.diagnostic(f"Error parsing queries from {sender}: {exc}", now))
            return result
        result.query_ids = list(self._queries.submit(queries))
        return result

    def _route_insight(self, sender: str, text: str, now: int) -> RouteResult:
        result = RouteResult(route="insight")
        insight = extract_tag(text, INSIGHT_TAG)
        if insight:
            result.messages.append(self._log.append(sender, insight, now))
        else:
            logger.debug("%s sent no insight block", sender)
        return result

    def _route_code(self, sender: str, text: str, now: int) -> RouteResult:
        result = RouteResult(route="code")
        code = extract_tag(text, CODE_TAG)
        if not code:
            logger.debug("%s sent no code block", sender)
            return result
        fragment = GraphFragment(
            template=self._sandbox_template,
            file_path=self._sandbox_file_path,
            code=code,
        )
        result.sandbox_token = self._sandbox.submit(fragment)
        return result

    def _route_plain(self, sender: str, text: str, now: int) -> RouteResult:
        result = RouteResult(route="plain")
        if text.strip():
            result.messages.append(self._log.append(sender, text, now))
        return result


__all__ = [
    "QUERY_TAG",
    "INSIGHT_TAG",
    "CODE_TAG",
    "QueryPayloadError",
    "RouteResult",
    "parse_query_payload",
    "TaggedContentRouter",
]
