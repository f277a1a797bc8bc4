"""Fluent builder for the application model.

``DistributedApplicationBuilder`` accumulates resource declarations; each
``add_*`` call returns a ``ResourceBuilder`` handle whose configuration
methods return the handle again, so declarations chain::

    builder = DistributedApplication.create_builder(args)
    cache = builder.add_redis("cache")
    api = builder.add_project("apiservice", HEALTHTRACKER_API_SERVICE).with_http_health_check("/health")
    (
        builder.add_project("webfrontend", HEALTHTRACKER_WEB)
        .with_external_http_endpoints()
        .with_reference(cache)
        .wait_for(cache)
    )
    builder.build().run()

Declaration errors raise at the offending call. Edges may only target
resources declared earlier on the same builder, which keeps the model
acyclic by construction.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import TYPE_CHECKING

from apphost.config import AppHostConfig
from apphost.errors import (
    DuplicateResourceError,
    InvalidHealthCheckError,
    InvalidResourceNameError,
    ModelError,
    UnknownResourceError,
)
from apphost.logging import get_logger
from apphost.model import ApplicationModel, ResourceKind, ResourceSpec
from apphost.projects import ProjectTarget, get_project

if TYPE_CHECKING:
    from apphost.runtime import DistributedApplication

logger = get_logger(__name__)

_NAME_RE = re.compile(r"^[a-z][a-z0-9-]{0,62}$")


class ResourceBuilder:
    """Handle for configuring one declared resource."""

    def __init__(
        self,
        builder: DistributedApplicationBuilder,
        name: str,
        kind: ResourceKind,
        project: ProjectTarget | None = None,
    ) -> None:
        self._builder = builder
        self.name = name
        self.kind = kind
        self.project = project
        self._health_check_paths: list[str] = []
        self._external = False
        self._references: list[str] = []
        self._waits_for: list[str] = []

    def __repr__(self) -> str:
        return f"ResourceBuilder(name={self.name!r}, kind={self.kind.value!r})"

    @property
    def has_http_endpoint(self) -> bool:
        return self.kind == ResourceKind.PROJECT

    def with_http_health_check(self, path: str) -> ResourceBuilder:
        """Register an HTTP readiness path the runtime polls after start."""
        if not self.has_http_endpoint:
            raise ModelError(
                f"Resource '{self.name}' ({self.kind.value}) has no HTTP endpoint to health-check",
                resource=self.name,
            )
        if not path.startswith("/"):
            raise InvalidHealthCheckError(self.name, path)
        if path not in self._health_check_paths:
            self._health_check_paths.append(path)
        return self

    def with_external_http_endpoints(self) -> ResourceBuilder:
        """Publish the resource's HTTP endpoint outside the application network."""
        if not self.has_http_endpoint:
            raise ModelError(
                f"Resource '{self.name}' ({self.kind.value}) has no HTTP endpoint to expose",
                resource=self.name,
            )
        self._external = True
        return self

    def with_reference(self, target: ResourceBuilder) -> ResourceBuilder:
        """Make ``target`` addressable from this resource (connection env injected)."""
        self._check_target(target)
        if target.name not in self._references:
            self._references.append(target.name)
        return self

    def wait_for(self, target: ResourceBuilder) -> ResourceBuilder:
        """Hold this resource's startup until ``target`` reports ready."""
        self._check_target(target)
        if target.name not in self._waits_for:
            self._waits_for.append(target.name)
        return self

    def freeze(self) -> ResourceSpec:
        return ResourceSpec(
            name=self.name,
            kind=self.kind,
            project=self.project,
            health_check_paths=tuple(self._health_check_paths),
            external=self._external,
            references=tuple(self._references),
            waits_for=tuple(self._waits_for),
        )

    def _check_target(self, target: ResourceBuilder) -> None:
        if target._builder is not self._builder or not self._builder.declared_before(target, self):
            raise UnknownResourceError(self.name, target.name)


class DistributedApplicationBuilder:
    """Accumulates resource declarations for one distributed application.

    Parameters
    ----------
    args
        Process arguments. ``--field-name=value`` entries override matching
        ``AppHostConfig`` fields; everything is kept on ``args``.
    config
        Base configuration. Defaults to ``AppHostConfig.from_env()``.
    """

    def __init__(
        self,
        args: Sequence[str] | None = None,
        config: AppHostConfig | None = None,
    ) -> None:
        self.args: tuple[str, ...] = tuple(args or ())
        base = config or AppHostConfig.from_env()
        self.config = base.apply_args(self.args)
        self._resources: list[ResourceBuilder] = []

    @property
    def resources(self) -> list[ResourceBuilder]:
        return list(self._resources)

    def add_redis(self, name: str) -> ResourceBuilder:
        """Declare a redis cache resource."""
        return self._add(ResourceBuilder(self, name, ResourceKind.REDIS))

    def add_project(self, name: str, project: ProjectTarget | str) -> ResourceBuilder:
        """Declare a service resource built from ``project``."""
        target = get_project(project) if isinstance(project, str) else project
        return self._add(ResourceBuilder(self, name, ResourceKind.PROJECT, project=target))

    def declared_before(self, earlier: ResourceBuilder, later: ResourceBuilder) -> bool:
        try:
            return self._resources.index(earlier) < self._resources.index(later)
        except ValueError:
            return False

    def build_model(self) -> ApplicationModel:
        """Freeze the current declarations into an immutable model."""
        return ApplicationModel(resources=tuple(r.freeze() for r in self._resources))

    def build(self) -> DistributedApplication:
        """Freeze declarations and bind them to the runtime."""
        from apphost.runtime import DistributedApplication

        model = self.build_model()
        logger.debug("model.built", resources=model.names, run_id=self.config.run_id)
        return DistributedApplication(model, self.config)

    def _add(self, resource: ResourceBuilder) -> ResourceBuilder:
        if not _NAME_RE.match(resource.name or ""):
            raise InvalidResourceNameError(resource.name)
        if any(r.name == resource.name for r in self._resources):
            raise DuplicateResourceError(resource.name)
        self._resources.append(resource)
        logger.debug("resource.declared", resource=resource.name, kind=resource.kind.value)
        return resource
