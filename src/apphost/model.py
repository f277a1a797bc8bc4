"""Immutable application model.

The builder accumulates declarations and freezes them into an
``ApplicationModel``: an ordered tuple of ``ResourceSpec`` entries plus the
directed edges between them. Frozen dataclasses give structural equality, so
two builds of the same declarations compare equal.

Key Concepts:
    ResourceKind: ``redis`` or ``project``.
    ResourceSpec: One named resource with its health-check paths, external
        exposure flag, references, and wait-for edges.
    ApplicationModel: The frozen set of resources in declaration order.
        ``startup_order()`` yields a stable topological order of wait-for
        edges; ``describe()`` renders the compact descriptor used by the CLI.
"""

from __future__ import annotations

from collections import defaultdict, deque
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from apphost.errors import CycleDetectedError, UnknownResourceError
from apphost.projects import ProjectTarget


class ResourceKind(str, Enum):
    """Kind of declared resource."""

    REDIS = "redis"  # In-memory cache container
    PROJECT = "project"  # Service built from a project target


@dataclass(frozen=True)
class ResourceSpec:
    """A single declared resource, frozen at build time."""

    name: str
    kind: ResourceKind
    project: ProjectTarget | None = None
    health_check_paths: tuple[str, ...] = ()
    external: bool = False
    references: tuple[str, ...] = ()
    waits_for: tuple[str, ...] = ()

    @property
    def health_check_path(self) -> str | None:
        """Path the runtime polls, if any."""
        return self.health_check_paths[0] if self.health_check_paths else None

    def describe(self) -> str:
        attrs: list[str] = []
        if self.health_check_path:
            attrs.append(f"health={self.health_check_path}")
        if self.external:
            attrs.append("external=true")
        if self.waits_for:
            attrs.append(f"waits_for=[{','.join(self.waits_for)}]")
        if not attrs:
            return f"{self.name}:{self.kind.value}"
        return f"{self.name}:{self.kind.value}({', '.join(attrs)})"

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        data["health_check_paths"] = list(self.health_check_paths)
        data["references"] = list(self.references)
        data["waits_for"] = list(self.waits_for)
        return data


@dataclass(frozen=True)
class ApplicationModel:
    """Frozen set of resources produced by ``DistributedApplicationBuilder.build()``."""

    resources: tuple[ResourceSpec, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        self._validate_edges()
        self._validate_no_cycles()

    @property
    def names(self) -> list[str]:
        return [r.name for r in self.resources]

    def get(self, name: str) -> ResourceSpec:
        for resource in self.resources:
            if resource.name == name:
                return resource
        raise KeyError(name)

    def __contains__(self, name: object) -> bool:
        return any(r.name == name for r in self.resources)

    def __len__(self) -> int:
        return len(self.resources)

    @property
    def external_resources(self) -> list[ResourceSpec]:
        return [r for r in self.resources if r.external]

    def dependents_of(self, name: str) -> list[str]:
        """Resources that wait for ``name``."""
        return [r.name for r in self.resources if name in r.waits_for]

    def startup_order(self) -> list[ResourceSpec]:
        """
        Topological sort of wait-for edges using Kahn's algorithm.

        Returns resources dependencies-first. Stable: independent resources
        keep their declaration order.
        """
        graph: dict[str, list[str]] = defaultdict(list)
        in_degree: dict[str, int] = {r.name: 0 for r in self.resources}
        by_name = {r.name: r for r in self.resources}

        for resource in self.resources:
            for dep in resource.waits_for:
                graph[dep].append(resource.name)
                in_degree[resource.name] += 1

        queue = deque(r.name for r in self.resources if in_degree[r.name] == 0)
        ordered: list[ResourceSpec] = []

        while queue:
            node = queue.popleft()
            ordered.append(by_name[node])
            for neighbor in graph[node]:
                in_degree[neighbor] -= 1
                if in_degree[neighbor] == 0:
                    queue.append(neighbor)

        return ordered

    def describe(self) -> str:
        """Compact one-line descriptor of resources and their edges."""
        return "; ".join(r.describe() for r in self.resources)

    def to_dict(self) -> dict[str, Any]:
        return {"resources": [r.to_dict() for r in self.resources]}

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate_edges(self) -> None:
        declared = {r.name for r in self.resources}
        for resource in self.resources:
            for target in (*resource.references, *resource.waits_for):
                if target not in declared:
                    raise UnknownResourceError(resource.name, target)

    def _validate_no_cycles(self) -> None:
        """
        Depth-first search with three-color marking.

        The builder only accepts edges to resources declared earlier, so a
        cycle means the model was assembled by hand.
        """
        WHITE, GRAY, BLACK = 0, 1, 2

        graph = {r.name: list(r.waits_for) for r in self.resources}
        color = {r.name: WHITE for r in self.resources}
        path: list[str] = []

        def dfs(node: str) -> list[str] | None:
            color[node] = GRAY
            path.append(node)
            for neighbor in graph.get(node, []):
                if color[neighbor] == GRAY:
                    return path[path.index(neighbor):] + [neighbor]
                if color[neighbor] == WHITE:
                    cycle = dfs(neighbor)
                    if cycle:
                        return cycle
            color[node] = BLACK
            path.pop()
            return None

        for resource in self.resources:
            if color[resource.name] == WHITE:
                cycle = dfs(resource.name)
                if cycle:
                    raise CycleDetectedError(cycle)


def describe(model: ApplicationModel) -> str:
    """Render ``model`` as ``name:kind(attrs); ...``."""
    return model.describe()
