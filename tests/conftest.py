"""
Shared pytest fixtures for apphost tests.

This module provides:
- A config fixture writing artifacts into a temporary directory
- The HealthTracker builder and built model
- ``FakeDocker``: a scripted stand-in for ``DockerCli`` so runtime tests
  never touch a docker daemon
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from apphost.config import AppHostConfig
from apphost.healthtracker import create_builder


class FakeDocker:
    """Scripted ``DockerCli`` replacement.

    ``states`` / ``health`` map container names to a list of values returned
    on successive polls; the last value repeats once the list is exhausted.
    """

    def __init__(
        self,
        available: bool = True,
        states: dict[str, list[str]] | None = None,
        health: dict[str, list[str]] | None = None,
        ports: dict[str, int] | None = None,
        ps_rows: list[dict] | None = None,
    ) -> None:
        self.available = available
        self.states = states or {}
        self.health = health or {}
        self.ports = ports or {}
        self.ps_rows = ps_rows or []
        self.calls: list[tuple] = []
        self.polled: list[str] = []

    def is_available(self) -> bool:
        return self.available

    def compose_up(self, build: bool = True) -> None:
        self.calls.append(("up", build))

    def compose_down(self) -> None:
        self.calls.append(("down",))

    def compose_ps(self) -> list[dict]:
        return list(self.ps_rows)

    def mapped_port(self, service: str, internal_port: int) -> int | None:
        return self.ports.get(service)

    def container_status(self, name: str) -> str:
        self.polled.append(name)
        return self._next(self.states, name, "running")

    def container_health(self, name: str) -> str:
        return self._next(self.health, name, "healthy")

    def container_logs(self, name: str, tail: int = 20) -> str:
        return f"logs of {name}"

    @staticmethod
    def _next(script: dict[str, list[str]], name: str, default: str) -> str:
        values = script.get(name)
        if not values:
            return default
        return values.pop(0) if len(values) > 1 else values[0]


class FakeClock:
    """Monotonic clock advanced by the fake ``sleep``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def config(tmp_path: Path) -> AppHostConfig:
    return AppHostConfig(project_name="ht-test", output_dir=tmp_path, run_id="abc123def456")


@pytest.fixture
def builder(config: AppHostConfig):
    return create_builder([], config=config)


@pytest.fixture
def model(builder):
    return builder.build_model()


@pytest.fixture
def fake_docker() -> FakeDocker:
    return FakeDocker()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _clean_apphost_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep developer APPHOST_* variables out of the tests."""
    for key in list(os.environ):
        if key.startswith("APPHOST_"):
            monkeypatch.delenv(key, raising=False)
    yield
