"""
Configuration for the pytest framework.

This file puts the `src` directories of `adoptimiser-ui` and
`adoptimiser-contracts` on the system path so tests import the packages
directly, and provides fakes for everything the chat session talks to: the
orchestrator transport, the two HTTP backends, the job runner and the clock.
"""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
for src in (PROJECT_ROOT / "src", PROJECT_ROOT.parent / "adoptimiser-contracts" / "src"):
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))

from adoptimiser_contracts import GraphFragment, SandboxSuccess  # noqa: E402
from adoptimiser_ui.services.jobs import JobOutcome  # noqa: E402


class FakeClock:
    """Monotonic millisecond clock advancing one step per reading."""

    def __init__(self, start: int = 1_000, step: int = 1):
        self.now = start
        self.step = step

    def __call__(self) -> int:
        self.now += self.step
        return self.now


class FakeTransport:
    def __init__(self, connected: bool = True, accept: bool = True):
        self.connected = connected
        self.accept = accept
        self.sent: list[str] = []
        self.stopped = False

    def send(self, text: str) -> bool:
        if not self.accept:
            return False
        self.sent.append(text)
        return True

    def stop(self) -> None:
        self.stopped = True
        self.connected = False

    def sent_frames(self) -> list[dict]:
        return [json.loads(text) for text in self.sent]


class ManualJobs:
    """
    Job submitter that runs nothing until the test says so.

    ``complete(index)`` runs the job's function and applies its completion,
    which lets tests finish jobs in any order.
    """

    def __init__(self):
        self.submitted: list[tuple[str, Callable[[], Any], Callable[[JobOutcome], None]]] = []
        self.done: set[int] = set()
        self.shut_down = False

    def submit(self, name: str, fn: Callable[[], Any], on_done: Callable[[JobOutcome], None]) -> None:
        self.submitted.append((name, fn, on_done))

    def complete(self, index: int) -> None:
        name, fn, on_done = self.submitted[index]
        try:
            outcome = JobOutcome(name=name, value=fn())
        except Exception as exc:
            outcome = JobOutcome(name=name, error=exc)
        self.done.add(index)
        on_done(outcome)

    def complete_all(self) -> None:
        for index in range(len(self.submitted)):
            if index not in self.done:
                self.complete(index)

    @property
    def names(self) -> list[str]:
        return [name for name, _fn, _done in self.submitted]

    @property
    def pending(self) -> int:
        return len(self.submitted) - len(self.done)

    def wait(self, timeout: float | None = None) -> bool:
        return self.pending == 0

    def shutdown(self, wait_for_jobs: bool = False) -> None:
        self.shut_down = True


class FakeQueryClient:
    """Answers queries from a table; values may be record lists or exceptions."""

    def __init__(self, answers: dict[str, Any] | None = None):
        self.answers = answers or {}
        self.calls: list[str] = []
        self.closed = False

    def run(self, query: str, params: dict | None = None) -> list[dict]:
        self.calls.append(query)
        answer = self.answers.get(query, [])
        if isinstance(answer, Exception):
            raise answer
        return answer

    def close(self) -> None:
        self.closed = True


class FakeSandboxClient:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.fragments: list[GraphFragment] = []
        self.closed = False

    def run(self, fragment: GraphFragment) -> SandboxSuccess:
        self.fragments.append(fragment)
        if self.error is not None:
            raise self.error
        return SandboxSuccess(url="https://3000-sbx.e2b.app", code=fragment.code, sandbox_id="sbx-1")

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def jobs() -> ManualJobs:
    return ManualJobs()


@pytest.fixture
def query_client() -> FakeQueryClient:
    return FakeQueryClient()


@pytest.fixture
def sandbox_client() -> FakeSandboxClient:
    return FakeSandboxClient()


@pytest.fixture
def make_session(clock, transport, jobs, query_client, sandbox_client):
    """Builds a `ChatSession` wired to the fakes; keyword overrides win."""
    from adoptimiser_ui.core.session import ChatSession

    def _make(**overrides: Any) -> ChatSession:
        options: dict[str, Any] = {
            "query_client": query_client,
            "sandbox_client": sandbox_client,
            "jobs": jobs,
            "transport": transport,
            "clock": clock,
            "show_welcome": False,
            "sandbox_template": "chatbot-ui-nextjs-preview",
            "sandbox_file_path": "src/components/GeneratedPreview.tsx",
        }
        options.update(overrides)
        session = ChatSession(**options)
        session.post_connection_opened()
        session.pump()
        return session

    return _make


@pytest.fixture
def frame():
    """Builds the JSON text of an inbound frame."""

    def _frame(frame_type: str, content: Any = None, sender: str | None = None, **extra: Any) -> str:
        payload: dict[str, Any] = {"type": frame_type}
        if content is not None:
            payload["content"] = content
        if sender is not None:
            payload["sender"] = sender
        payload.update(extra)
        return json.dumps(payload)

    return _frame
