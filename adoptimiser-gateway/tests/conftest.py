"""
Configuration for the pytest framework.

This file puts the `src` directories of `adoptimiser-gateway` and
`adoptimiser-contracts` on the system path so tests import the packages
directly, and provides fakes for the Neo4j driver and the e2b sandbox.
"""
from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
for src in (PROJECT_ROOT / "src", PROJECT_ROOT.parent / "adoptimiser-contracts" / "src"):
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))


class FakeRecord(dict):
    """Stands in for `neo4j.Record`: only ``items()`` is used."""


class FakeSession:
    def __init__(self, driver: "FakeDriver"):
        self.driver = driver

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.driver.sessions_closed += 1

    def run(self, query: str, params: dict) -> list:
        self.driver.calls.append((query, params))
        if self.driver.error is not None:
            raise self.driver.error
        return [FakeRecord(row) for row in self.driver.rows]


class FakeDriver:
    def __init__(self, rows: list | None = None, error: Exception | None = None):
        self.rows = rows or []
        self.error = error
        self.calls: list[tuple[str, dict]] = []
        self.sessions_closed = 0
        self.closed = False

    def session(self) -> FakeSession:
        return FakeSession(self)

    def close(self) -> None:
        self.closed = True


@dataclass
class FakeCommandResult:
    stdout: str = ""
    stderr: str = ""


@dataclass
class FakeCommands:
    executed: list[str] = field(default_factory=list)

    def run(self, cmd: str) -> FakeCommandResult:
        self.executed.append(cmd)
        return FakeCommandResult(stdout="", stderr="")


@dataclass
class FakeFiles:
    written: dict[str, str] = field(default_factory=dict)

    def write(self, path: str, data: str) -> None:
        self.written[path] = data


class FakeSandbox:
    def __init__(self, host: str | None = "3000-sbx.e2b.app"):
        self.sandbox_id = "sbx-123"
        self.commands = FakeCommands()
        self.files = FakeFiles()
        self.host = host
        self.ports: list[int] = []

    def get_host(self, port: int) -> str | None:
        self.ports.append(port)
        return self.host


@pytest.fixture
def fake_driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def fake_sandbox() -> FakeSandbox:
    return FakeSandbox()
