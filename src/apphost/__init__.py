"""apphost: declare a distributed application and run it on docker compose.

A bootstrap script declares resources on a fluent builder, freezes them into
an immutable model, and hands the model to a runtime that provisions each
resource in wait-for order, gates startup on health checks, and blocks until
the process is stopped.

Key Concepts:
    DistributedApplicationBuilder: Accumulates resources. ``add_redis()`` and
        ``add_project()`` return ``ResourceBuilder`` handles that chain
        ``with_http_health_check()``, ``with_external_http_endpoints()``,
        ``with_reference()`` and ``wait_for()``.
    ApplicationModel: Frozen result of ``build()``; structurally comparable,
        topologically ordered via ``startup_order()``.
    DistributedApplication: Model + config bound to the compose runtime;
        ``run()`` returns the process exit code.
    AppHostConfig: Pydantic config with ``APPHOST_*`` env overrides.

Architecture::

    builder ──build()──▶ ApplicationModel ──▶ compose generator ──▶ docker compose
                                   │                                    │
                                   └──── startup_order() ──▶ health gating (docker inspect, httpx)

Example:
    >>> from apphost import DistributedApplication
    >>> builder = DistributedApplication.create_builder([])
    >>> cache = builder.add_redis("cache")
    >>> builder.build_model().describe()
    'cache:redis'
"""

from __future__ import annotations

from apphost.builder import DistributedApplicationBuilder, ResourceBuilder
from apphost.config import AppHostConfig
from apphost.errors import (
    AppHostError,
    ConfigError,
    CycleDetectedError,
    DuplicateResourceError,
    InvalidHealthCheckError,
    InvalidResourceNameError,
    ModelError,
    ResourceUnhealthyError,
    RuntimeStartError,
    StartupCancelledError,
    UnknownProjectError,
    UnknownResourceError,
)
from apphost.model import ApplicationModel, ResourceKind, ResourceSpec, describe
from apphost.projects import ProjectTarget
from apphost.results import OverallStatus, ResourceStatus, RunResult
from apphost.runtime import DistributedApplication

__all__ = [
    "AppHostConfig",
    "AppHostError",
    "ApplicationModel",
    "ConfigError",
    "CycleDetectedError",
    "DistributedApplication",
    "DistributedApplicationBuilder",
    "DuplicateResourceError",
    "InvalidHealthCheckError",
    "InvalidResourceNameError",
    "ModelError",
    "OverallStatus",
    "ProjectTarget",
    "ResourceBuilder",
    "ResourceKind",
    "ResourceSpec",
    "ResourceStatus",
    "ResourceUnhealthyError",
    "RunResult",
    "RuntimeStartError",
    "StartupCancelledError",
    "UnknownProjectError",
    "UnknownResourceError",
    "describe",
]
