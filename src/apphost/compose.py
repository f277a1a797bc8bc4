"""Docker Compose generation for the app host runtime.

Turns a frozen ``ApplicationModel`` into a ``docker-compose.yml``. The model
is the single source of truth: wait-for edges become ``depends_on``
conditions, health-check paths become container healthchecks, references
become connection environment variables, and only externally exposed
resources publish ports to the host.

Key Concepts:
    generate_compose: Model + config -> YAML string with a header comment.
    build_compose_dict: The same as a plain dict (used by tests and ``--json``).
    connection_env: Environment a resource receives for each reference.
    write_compose_file: Persists the YAML to disk.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from apphost.config import AppHostConfig
from apphost.logging import get_logger
from apphost.model import ApplicationModel, ResourceKind, ResourceSpec

logger = get_logger(__name__)

REDIS_PORT = 6379


def container_name(config: AppHostConfig, resource: str) -> str:
    return f"{config.project_name}-{resource}"


def internal_port(resource: ResourceSpec, config: AppHostConfig) -> int:
    if resource.kind == ResourceKind.REDIS:
        return REDIS_PORT
    return config.project_http_port


def connection_env(
    model: ApplicationModel,
    resource: ResourceSpec,
    config: AppHostConfig,
) -> dict[str, str]:
    """Environment injected into ``resource`` for each referenced resource.

    Redis references become ``ConnectionStrings__<name>``; project references
    become service-discovery entries ``services__<name>__http__0``.
    """
    env: dict[str, str] = {}
    for ref_name in resource.references:
        ref = model.get(ref_name)
        port = internal_port(ref, config)
        if ref.kind == ResourceKind.REDIS:
            env[f"ConnectionStrings__{ref.name}"] = f"{ref.name}:{port}"
        else:
            env[f"services__{ref.name}__http__0"] = f"http://{ref.name}:{port}"
    return env


def _healthcheck(resource: ResourceSpec, config: AppHostConfig) -> dict[str, Any] | None:
    if resource.kind == ResourceKind.REDIS:
        return {
            "test": ["CMD", "redis-cli", "ping"],
            "interval": "5s",
            "timeout": "3s",
            "retries": 10,
            "start_period": "5s",
        }
    path = resource.health_check_path
    if not path:
        return None
    return {
        "test": [
            "CMD-SHELL",
            f"curl -f http://localhost:{config.project_http_port}{path} || exit 1",
        ],
        "interval": "10s",
        "timeout": "5s",
        "retries": 5,
        "start_period": "30s",
    }


def has_healthcheck(resource: ResourceSpec) -> bool:
    return resource.kind == ResourceKind.REDIS or resource.health_check_path is not None


def build_compose_dict(model: ApplicationModel, config: AppHostConfig) -> dict[str, Any]:
    """Build the compose document for ``model`` as a dict."""
    network = f"{config.project_name}-net"

    compose: dict[str, Any] = {
        "name": config.project_name,
        "services": {},
        "networks": {
            network: {
                "driver": "bridge",
            },
        },
    }

    for resource in model.resources:
        port = internal_port(resource, config)
        service: dict[str, Any] = {
            "container_name": container_name(config, resource.name),
            "networks": [network],
            "labels": [
                f"apphost.run_id={config.run_id}",
                f"apphost.resource={resource.name}",
                f"apphost.kind={resource.kind.value}",
            ],
        }

        # Image or build
        if resource.kind == ResourceKind.REDIS:
            service["image"] = config.redis_image
        elif resource.project is not None:
            service["build"] = {"context": resource.project.path}
            if resource.project.dockerfile:
                service["build"]["dockerfile"] = resource.project.dockerfile

        # Ports: publish only external endpoints, ephemeral host port
        if resource.external:
            service["ports"] = [str(port)]
        else:
            service["expose"] = [str(port)]

        env: dict[str, str] = {}
        if resource.kind == ResourceKind.PROJECT:
            env["HTTP_PORTS"] = str(port)
        env.update(connection_env(model, resource, config))
        if env:
            service["environment"] = env

        if resource.waits_for:
            service["depends_on"] = {
                dep: {
                    "condition": "service_healthy"
                    if has_healthcheck(model.get(dep))
                    else "service_started"
                }
                for dep in resource.waits_for
            }

        healthcheck = _healthcheck(resource, config)
        if healthcheck:
            service["healthcheck"] = healthcheck

        compose["services"][resource.name] = service

    return compose


def generate_compose(model: ApplicationModel, config: AppHostConfig) -> str:
    """Generate a docker-compose YAML string for ``model``."""
    compose = build_compose_dict(model, config)
    header = (
        f"# Auto-generated by apphost for run {config.run_id}\n"
        f"# Project: {config.project_name}\n"
        f"# Resources: {', '.join(model.names)}\n\n"
    )
    return header + yaml.safe_dump(compose, default_flow_style=False, sort_keys=False)


def write_compose_file(content: str, path: Path) -> Path:
    """Write compose YAML to ``path``, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info("compose.written", path=str(path))
    return path
