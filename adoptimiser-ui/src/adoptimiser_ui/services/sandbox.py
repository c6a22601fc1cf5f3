"""
Preview sandbox runs for code fragments proposed by the graph-generation agent.

Only one sandbox run is tracked at a time. Submitting a fragment replaces the
current run; a completion is applied only if its token still matches the run
being tracked, so a late answer for a superseded or cleared run changes
nothing.
"""
from __future__ import annotations

import logging
import uuid
from typing import Callable, Optional

import httpx

from adoptimiser_contracts import GraphFragment, SandboxFailure, SandboxSuccess, parse_sandbox_failure

from ..core.state import MessageLog, SandboxRun
from .jobs import JobOutcome
from .queries import JobSubmitter

logger = logging.getLogger(__name__)

NETWORK_FAILURE = "Network or parsing error when calling sandbox API."


class SandboxBackendError(Exception):
    """The sandbox backend answered with an error body and a non-2xx status."""

    def __init__(self, failure: SandboxFailure, status_code: int = 500) -> None:
        super().__init__(failure.summary)
        self.failure = failure
        self.status_code = status_code


class SandboxBackendClient:
    """
    HTTP client for the sandbox backend.

    Args:
        base_url: Root URL of the backend.
        endpoint: Path of the sandbox route.
        timeout: Request timeout in seconds; ``None`` waits indefinitely.
        transport: Optional httpx transport (tests pass a ``MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        endpoint: str = "/api/sandbox/graph",
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.endpoint = endpoint
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def run(self, fragment: GraphFragment) -> SandboxSuccess:
        """
        Starts a preview of ``fragment`` and returns its public URL.

        Raises:
            SandboxBackendError: The backend could not build the preview.
            httpx.HTTPError: The request could not be completed.
            ValueError: The success body could not be decoded.
        """
        response = self._client.post(self.endpoint, json=fragment.to_request())
        if not response.is_success:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            failure = parse_sandbox_failure(payload, "Failed to execute sandbox code.")
            raise SandboxBackendError(failure, status_code=response.status_code)
        return SandboxSuccess.model_validate(response.json())

    def close(self) -> None:
        self._client.close()


class SandboxRunTracker:
    """Tracks the single current `SandboxRun` and its panel state."""

    def __init__(
        self,
        client: SandboxBackendClient,
        jobs: JobSubmitter,
        log: MessageLog,
        clock: Callable[[], int],
    ) -> None:
        self._client = client
        self._jobs = jobs
        self._log = log
        self._clock = clock
        self.run: Optional[SandboxRun] = None
        self.panel_visible = False
        self.panel_collapsed = False

    @property
    def loading(self) -> bool:
        return self.run is not None and self.run.loading

    def submit(self, fragment: GraphFragment) -> str:
        """Replaces the current run with a loading one for ``fragment`` and starts it."""
        token = uuid.uuid4().hex
        self.run = SandboxRun(token=token, fragment=fragment)
        self.panel_visible = True
        self.panel_collapsed = False
        logger.info("Starting sandbox run %s for %s", token, fragment.file_path)
        self._jobs.submit(
            f"sandbox:{token}",
            lambda: self._client.run(fragment),
            lambda outcome: self._complete(token, outcome),
        )
        return token

    def _complete(self, token: str, outcome: JobOutcome) -> None:
        run = self.run
        if run is None or run.token != token:
            logger.info("Ignoring completion of superseded sandbox run %s", token)
            return

        now = self._clock()
        error = outcome.error
        if error is None:
            run.result = outcome.value
            logger.info("Sandbox run %s ready at %s", token, run.result.url)
        elif isinstance(error, SandboxBackendError):
            logger.error("Sandbox run %s failed: %s", token, error.failure.summary)
            run.result = error.failure
            self._log.diagnostic(f"Sandbox Error: {error.failure.summary}", now)
        else:
            logger.error("Failed to call sandbox backend for %s: %s", token, error)
            run.result = SandboxFailure(error=NETWORK_FAILURE, details=str(error))
            self._log.diagnostic(f"Sandbox API Call Failed: {error}", now)

    def toggle_collapsed(self) -> None:
        self.panel_collapsed = not self.panel_collapsed

    def clear(self) -> None:
        self.run = None
        self.panel_visible = False


__all__ = ["SandboxBackendError", "SandboxBackendClient", "SandboxRunTracker", "NETWORK_FAILURE"]
