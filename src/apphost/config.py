"""Configuration model for the app host runtime.

Pydantic v2 model controlling how a built application model is provisioned:
compose project naming, where generated artifacts land, health-gating
timeouts, and teardown behaviour. Every commonly tuned field can be
overridden through ``APPHOST_*`` environment variables via ``from_env()``,
and the bootstrap script's process arguments can override them again via
``apply_args()``.

Override precedence: process args > kwargs > env vars > field defaults.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator

from apphost.errors import ConfigError

_BOOL_TRUE = ("true", "1", "yes")


class AppHostConfig(BaseModel):
    """Runtime configuration for a distributed application.

    Example::

        config = AppHostConfig(project_name="demo", build=False)
    """

    # Naming
    project_name: str = Field(
        default="healthtracker",
        description="Docker Compose project name; prefixes container names",
    )

    # Output
    output_dir: Path = Field(
        default=Path(".apphost"),
        description="Directory for the generated compose file",
    )

    # Provisioning
    build: bool = Field(
        default=True,
        description="Build project images before starting (--build)",
    )
    redis_image: str = Field(
        default="redis:7.4",
        description="Image used for redis resources",
    )
    project_http_port: int = Field(
        default=8080,
        description="Container port project resources listen on",
    )

    # Health gating
    startup_timeout_seconds: int = Field(
        default=180,
        description="Per-resource deadline to become healthy",
    )
    health_poll_max_delay_seconds: float = Field(
        default=5.0,
        description="Cap for the exponential health polling backoff",
    )
    command_timeout_seconds: int = Field(
        default=600,
        description="Timeout for a single docker compose invocation",
    )

    # Teardown
    keep_resources: bool = Field(
        default=False,
        description="Leave containers running when the app host exits",
    )

    # Internal
    run_id: str = Field(default="", description="Unique run identifier (auto-generated)")

    @model_validator(mode="after")
    def _set_defaults(self) -> AppHostConfig:
        if not self.run_id:
            self.run_id = uuid.uuid4().hex[:12]
        return self

    @property
    def compose_path(self) -> Path:
        return self.output_dir / f"docker-compose.{self.project_name}.yml"

    @classmethod
    def from_env(cls, **overrides: Any) -> AppHostConfig:
        """Create config from APPHOST_* environment variables."""
        env_map = {
            "project_name": "APPHOST_PROJECT_NAME",
            "output_dir": "APPHOST_OUTPUT_DIR",
            "build": "APPHOST_BUILD",
            "redis_image": "APPHOST_REDIS_IMAGE",
            "startup_timeout_seconds": "APPHOST_STARTUP_TIMEOUT_SECONDS",
            "keep_resources": "APPHOST_KEEP_RESOURCES",
        }
        values: dict[str, Any] = {}
        for field_name, env_var in env_map.items():
            env_val = os.environ.get(env_var)
            if env_val is not None:
                if field_name in ("build", "keep_resources"):
                    values[field_name] = env_val.lower() in _BOOL_TRUE
                else:
                    values[field_name] = env_val
        values.update(overrides)
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigError(_describe_invalid(exc, "environment")) from exc

    def apply_args(self, args: Sequence[str]) -> AppHostConfig:
        """Return a copy with ``--field-name=value`` process args applied.

        Arguments that do not name a config field are ignored; they stay
        available to the caller through ``DistributedApplicationBuilder.args``.
        """
        updates: dict[str, Any] = {}
        for arg in args:
            if not arg.startswith("--") or "=" not in arg:
                continue
            key, _, value = arg[2:].partition("=")
            field_name = key.replace("-", "_")
            if field_name not in type(self).model_fields or field_name == "run_id":
                continue
            updates[field_name] = value
        if not updates:
            return self
        try:
            return type(self).model_validate({**self.model_dump(), **updates})
        except ValidationError as exc:
            raise ConfigError(_describe_invalid(exc, "process arguments")) from exc


def _describe_invalid(exc: ValidationError, source: str) -> str:
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return f"Invalid configuration from {source}: {problems}"
