"""Structured error types for the app host.

Three families: ``ConfigError`` for invalid configuration values,
``ModelError`` for problems in the declared application model (raised at the
offending builder call) and ``RuntimeStartError`` for failures while the
runtime provisions and health-gates resources. Every error carries the
process ``exit_code`` the runtime reports when it aborts on it.

Hierarchy::

    AppHostError                      exit 1
      ├── ConfigError                 exit 2
      ├── ModelError                  exit 2
      │     ├── InvalidResourceNameError
      │     ├── DuplicateResourceError
      │     ├── UnknownResourceError
      │     ├── UnknownProjectError
      │     ├── InvalidHealthCheckError
      │     └── CycleDetectedError
      └── RuntimeStartError           exit 1
            ├── DockerNotFoundError
            ├── ComposeCommandError
            ├── ResourceUnhealthyError
            └── StartupCancelledError exit 0
"""

from __future__ import annotations

from typing import Any


class AppHostError(Exception):
    """Base exception for all app host errors."""

    exit_code: int = 1

    def __init__(self, message: str, *, resource: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.resource = resource

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "resource": self.resource,
            "exit_code": self.exit_code,
        }


# ── Configuration errors ─────────────────────────────────────────────────


class ConfigError(AppHostError):
    """Raised when an env var or process argument holds an invalid value."""

    exit_code = 2


# ── Model errors ─────────────────────────────────────────────────────────


class ModelError(AppHostError):
    """Raised when a resource declaration violates the model invariants."""

    exit_code = 2


class InvalidResourceNameError(ModelError):
    """Raised when a resource name is empty or not DNS-label safe."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Invalid resource name {name!r}: use lowercase letters, digits and '-', "
            "starting with a letter",
            resource=name,
        )


class DuplicateResourceError(ModelError):
    """Raised when two resources share a name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Resource already declared: {name}", resource=name)


class UnknownResourceError(ModelError):
    """Raised when an edge targets a resource not declared earlier in the same builder."""

    def __init__(self, source: str, target: str) -> None:
        self.target = target
        super().__init__(
            f"Resource '{source}' references '{target}', which is not declared in this application",
            resource=source,
        )


class UnknownProjectError(ModelError):
    """Raised when a project resource names an unregistered build target."""

    def __init__(self, name: str, available: list[str]) -> None:
        self.project = name
        super().__init__(f"Unknown project: {name!r}. Available: {', '.join(available)}")


class InvalidHealthCheckError(ModelError):
    """Raised when a health-check path is not an absolute URL path."""

    def __init__(self, name: str, path: str) -> None:
        self.path = path
        super().__init__(
            f"Health check path for '{name}' must start with '/': {path!r}",
            resource=name,
        )


class CycleDetectedError(ModelError):
    """Raised when the wait-for graph contains a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__(f"Cycle detected in wait-for graph: {' -> '.join(cycle)}")


# ── Runtime errors ───────────────────────────────────────────────────────


class RuntimeStartError(AppHostError):
    """Raised when the runtime cannot provision or health-gate a resource."""


class DockerNotFoundError(RuntimeStartError):
    """Raised when the docker CLI is missing or the daemon is unreachable."""


class ComposeCommandError(RuntimeStartError):
    """Raised when a ``docker compose`` invocation fails or times out."""

    def __init__(self, args: list[str], detail: str, *, returncode: int | None = None) -> None:
        self.args_ = args
        self.returncode = returncode
        exit_part = f"exit {returncode}" if returncode is not None else "no exit code"
        super().__init__(f"docker {' '.join(args)} failed ({exit_part}): {detail.strip()}")


class ResourceUnhealthyError(RuntimeStartError):
    """Raised when a resource exits or misses its health deadline."""

    def __init__(self, name: str, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Resource '{name}' did not become ready: {reason}", resource=name)


class StartupCancelledError(RuntimeStartError):
    """Raised when shutdown is requested while resources are still starting."""

    exit_code = 0
