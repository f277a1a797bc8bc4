"""Result models for app host runs.

Pydantic v2 models capturing what the runtime observed: one
``ResourceStatus`` per declared resource, rolled up into a ``RunResult``.
``mark_complete()`` finalises duration, overall status and summary, and
``model_dump_json()`` gives CI a machine-readable artifact.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from apphost.health import CheckResult

READY_STATES = ("running", "healthy")


class OverallStatus(str, Enum):
    """Overall status of a run."""

    PASSED = "PASSED"
    FAILED = "FAILED"
    PARTIAL = "PARTIAL"
    ERROR = "ERROR"
    PENDING = "PENDING"


class ResourceStatus(BaseModel):
    """Observed state of a single resource."""

    name: str
    kind: str = ""
    container_name: str | None = None
    status: Literal["running", "healthy", "unhealthy", "exited", "starting", "not_found"] = "not_found"
    health_path: str | None = None
    endpoint: str | None = None
    probe: CheckResult | None = None
    ready_ms: float | None = None
    error: str | None = None

    @property
    def ready(self) -> bool:
        return self.status in READY_STATES


class RunResult(BaseModel):
    """Result of starting (or inspecting) a distributed application."""

    run_id: str
    project_name: str
    started_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    completed_at: str | None = None
    duration_seconds: float = 0.0
    compose_file: str | None = None
    resources: list[ResourceStatus] = Field(default_factory=list)
    overall_status: OverallStatus = OverallStatus.PENDING
    error: str | None = None
    summary: str = ""

    def get(self, name: str) -> ResourceStatus | None:
        return next((r for r in self.resources if r.name == name), None)

    def mark_complete(self) -> None:
        """Compute duration, overall status and summary."""
        self.completed_at = datetime.now(UTC).isoformat()
        start = datetime.fromisoformat(self.started_at)
        end = datetime.fromisoformat(self.completed_at)
        self.duration_seconds = (end - start).total_seconds()

        ready = sum(1 for r in self.resources if r.ready)
        total = len(self.resources)
        if self.error:
            self.overall_status = OverallStatus.ERROR
        elif total and ready == total:
            self.overall_status = OverallStatus.PASSED
        elif ready:
            self.overall_status = OverallStatus.PARTIAL
        else:
            self.overall_status = OverallStatus.FAILED
        self.summary = f"{ready}/{total} resources ready"
