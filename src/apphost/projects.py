"""Build targets for project resources.

A ``ProjectTarget`` names a buildable service project and where its build
context lives, relative to the app host's working directory. Project
resources bind to one target; the compose generator turns it into a
``build:`` section.

Targets are compile-time constants, so they are frozen dataclasses kept in a
small registry with case-insensitive lookup.
"""

from __future__ import annotations

from dataclasses import dataclass

from apphost.errors import UnknownProjectError


@dataclass(frozen=True)
class ProjectTarget:
    """A buildable project a resource is bound to."""

    name: str
    """Project identifier (e.g., 'HealthTracker.ApiService')."""

    path: str
    """Build context directory."""

    dockerfile: str | None = None
    """Dockerfile path relative to the build context (compose default if None)."""

    description: str = ""


HEALTHTRACKER_API_SERVICE = ProjectTarget(
    name="HealthTracker.ApiService",
    path="src/HealthTracker.ApiService",
    dockerfile="Dockerfile",
    description="HealthTracker backend API",
)

HEALTHTRACKER_WEB = ProjectTarget(
    name="HealthTracker.Web",
    path="src/HealthTracker.Web",
    dockerfile="Dockerfile",
    description="HealthTracker web frontend",
)


PROJECTS: dict[str, ProjectTarget] = {
    "healthtracker.apiservice": HEALTHTRACKER_API_SERVICE,
    "healthtracker.web": HEALTHTRACKER_WEB,
}


def get_project(name: str) -> ProjectTarget:
    """Look up a project target by name (case-insensitive).

    Raises
    ------
    UnknownProjectError
        If the project name is not registered.
    """
    key = name.lower().strip()
    if key not in PROJECTS:
        raise UnknownProjectError(name, sorted(p.name for p in PROJECTS.values()))
    return PROJECTS[key]
