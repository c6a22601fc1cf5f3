"""
Graph query execution for queries proposed by the query-generation agent.

The tracker creates a pending `QueryExecution` synchronously for each query so
the panel can show it at once, then runs the query on the query backend as an
independent background job. Each completion updates exactly its own record;
completions may arrive in any order.
"""
from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence

import httpx

from adoptimiser_contracts import AGENT_SENDER, QueryErrorBody, QueryRequest, QueryResponse

from ..core.state import MessageLog, QueryExecution, RunStatus
from .jobs import JobOutcome

logger = logging.getLogger(__name__)


class QueryBackendError(Exception):
    """The query backend answered with an error body and a non-2xx status."""

    def __init__(self, details: str, status_code: int, neo4j_error: Optional[str] = None) -> None:
        super().__init__(details)
        self.details = details
        self.status_code = status_code
        self.neo4j_error = neo4j_error


class JobSubmitter(Protocol):
    def submit(self, name: str, fn: Callable[[], Any], on_done: Callable[[JobOutcome], None]) -> Any:
        ...


class QueryBackendClient:
    """
    HTTP client for the query backend.

    Args:
        base_url: Root URL of the backend.
        endpoint: Path of the query route.
        timeout: Request timeout in seconds; ``None`` waits indefinitely.
        transport: Optional httpx transport (tests pass a ``MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        endpoint: str = "/api/neo4j",
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.endpoint = endpoint
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def run(self, query: str, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Executes one query and returns its normalized records.

        Raises:
            QueryBackendError: The backend rejected or failed the query.
            httpx.HTTPError: The request could not be completed.
        """
        body = QueryRequest(query=query, params=dict(params or {})).model_dump(exclude_defaults=True)
        response = self._client.post(self.endpoint, json=body)

        if not response.is_success:
            try:
                error = QueryErrorBody.model_validate(response.json())
            except ValueError:
                error = QueryErrorBody()
            raise QueryBackendError(
                details=error.details or response.reason_phrase or error.error,
                status_code=response.status_code,
                neo4j_error=error.neo4j_error,
            )

        try:
            return QueryResponse.model_validate(response.json()).records
        except ValueError as exc:
            raise QueryBackendError(details=f"Invalid query response: {exc}", status_code=response.status_code) from exc

    def close(self) -> None:
        self._client.close()


def _execution_id(now: int, index: int) -> str:
    return f"{now}-{index}-{uuid.uuid4().hex[:7]}"


class QueryRunTracker:
    """
    Tracks one `QueryExecution` per submitted query.

    Args:
        client: Executes queries; anything with a compatible ``run`` method.
        jobs: Background job submitter.
        log: Chat log for the diagnostics a completion appends.
        clock: Returns the current time in epoch milliseconds.
    """

    def __init__(
        self,
        client: QueryBackendClient,
        jobs: JobSubmitter,
        log: MessageLog,
        clock: Callable[[], int],
    ) -> None:
        self._client = client
        self._jobs = jobs
        self._log = log
        self._clock = clock
        self._executions: "OrderedDict[str, QueryExecution]" = OrderedDict()
        self.active_id: Optional[str] = None
        self.panel_visible = False
        self.panel_collapsed = False

    @property
    def executions(self) -> List[QueryExecution]:
        return list(self._executions.values())

    def get(self, execution_id: str) -> Optional[QueryExecution]:
        return self._executions.get(execution_id)

    def submit(self, queries: Sequence[Any]) -> List[str]:
        """
        Creates a pending execution per non-blank query string and starts them.

        The first created id becomes the active one. Returns the created ids
        in submission order.
        """
        now = self._clock()
        created: List[QueryExecution] = []
        for index, query in enumerate(queries):
            if not isinstance(query, str) or not query.strip():
                logger.warning("Skipping invalid query text at index %d: %r", index, query)
                continue
            execution = QueryExecution(id=_execution_id(now, index), query=query)
            self._executions[execution.id] = execution
            created.append(execution)

        for execution in created:
            self._start(execution)

        if created:
            self.active_id = created[0].id
        return [execution.id for execution in created]

    def _start(self, execution: QueryExecution) -> None:
        execution_id = execution.id
        query = execution.query
        logger.info("Executing query %s", execution_id)
        self._jobs.submit(
            f"query:{execution_id}",
            lambda: self._client.run(query),
            lambda outcome: self._complete(execution_id, outcome),
        )

    def _complete(self, execution_id: str, outcome: JobOutcome) -> None:
        execution = self._executions.get(execution_id)
        if execution is None:
            logger.info("Dropping result for cleared query %s", execution_id)
            return

        now = self._clock()
        error = outcome.error
        if error is None:
            records = list(outcome.value or [])
            execution.status = RunStatus.SUCCESS
            execution.records = records
            execution.error_details = None
            if not records:
                self._log.append(
                    AGENT_SENDER,
                    f"Query (ID {execution_id}) executed successfully but returned no data.",
                    now,
                )
        elif isinstance(error, QueryBackendError):
            logger.error("Query %s failed: %s", execution_id, error.details)
            execution.status = RunStatus.ERROR
            execution.records = None
            execution.error_details = error.details
            self._log.diagnostic(f"API Error for query (ID {execution_id}): {error.details}", now)
        else:
            logger.error("Failed to call query backend for %s: %s", execution_id, error)
            execution.status = RunStatus.ERROR
            execution.records = None
            execution.error_details = str(error)
            self._log.diagnostic(f"Failed to execute query (ID {execution_id}): {error}", now)
            return

        self.panel_visible = True
        self.panel_collapsed = False

    def set_active(self, execution_id: Optional[str]) -> None:
        if execution_id is None or execution_id in self._executions:
            self.active_id = execution_id

    def toggle_collapsed(self) -> None:
        self.panel_collapsed = not self.panel_collapsed

    def clear(self) -> None:
        self._executions.clear()
        self.active_id = None
        self.panel_visible = False


__all__ = ["QueryBackendError", "QueryBackendClient", "QueryRunTracker", "JobSubmitter"]
