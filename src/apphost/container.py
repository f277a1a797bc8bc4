"""Docker CLI wrapper for the app host runtime.

Drives ``docker compose`` and ``docker inspect`` through subprocess. No
``docker`` SDK: any runtime exposing a compatible ``docker`` CLI works
(Docker Desktop, Podman, Colima, CI runners).

Key Concepts:
    DockerCli: ``compose_up()``, ``compose_down()``, ``compose_ps()``,
        ``container_health()``, ``container_status()``, ``mapped_port()``.
    map_compose_state: Folds compose/inspect states onto
        ``ResourceStatus.status`` values.
"""

from __future__ import annotations

import json
import shutil
import subprocess
from pathlib import Path
from typing import Any

from apphost.errors import ComposeCommandError, DockerNotFoundError
from apphost.logging import get_logger

logger = get_logger(__name__)


class DockerCli:
    """Thin subprocess wrapper around the ``docker`` binary.

    Parameters
    ----------
    compose_file
        Compose file passed with ``-f``.
    project_name
        Compose project name (``--project-name``).
    command_timeout
        Seconds before a single invocation is abandoned.
    """

    def __init__(
        self,
        compose_file: Path,
        project_name: str,
        command_timeout: int = 600,
    ) -> None:
        self.compose_file = compose_file
        self.project_name = project_name
        self.command_timeout = command_timeout

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    @staticmethod
    def find_docker() -> str:
        docker = shutil.which("docker")
        if docker is None:
            raise DockerNotFoundError(
                "Docker CLI not found on PATH. Install Docker or add it to PATH."
            )
        return docker

    @staticmethod
    def is_available() -> bool:
        """Check if Docker is installed and the daemon is running."""
        docker = shutil.which("docker")
        if docker is None:
            return False
        try:
            result = subprocess.run(
                [docker, "info"],
                capture_output=True,
                timeout=10,
            )
            return result.returncode == 0
        except (subprocess.TimeoutExpired, OSError):
            return False

    # ------------------------------------------------------------------
    # Compose operations
    # ------------------------------------------------------------------

    def compose_up(self, build: bool = True) -> None:
        args = ["up", "--detach", "--remove-orphans"]
        if build:
            args.append("--build")
        self._run_compose(args)
        logger.info("compose.up", project=self.project_name)

    def compose_down(self) -> None:
        self._run_compose(["down", "--remove-orphans"], check=False)
        logger.info("compose.down", project=self.project_name)

    def compose_ps(self) -> list[dict[str, Any]]:
        """Return ``docker compose ps`` rows as dicts."""
        result = self._run_compose(["ps", "--all", "--format", "json"], check=False, timeout=30)
        if result.returncode != 0 or not result.stdout.strip():
            return []
        text = result.stdout.strip()
        # Newer compose releases emit a JSON array, older ones one object per line
        if text.startswith("["):
            try:
                return list(json.loads(text))
            except json.JSONDecodeError:
                return []
        rows = []
        for line in text.splitlines():
            try:
                rows.append(json.loads(line))
            except json.JSONDecodeError:
                logger.debug("compose.ps.unparsed", line=line)
        return rows

    def mapped_port(self, service: str, internal_port: int) -> int | None:
        """Host port published for ``service``'s ``internal_port``."""
        result = self._run_compose(["port", service, str(internal_port)], check=False, timeout=30)
        if result.returncode == 0 and result.stdout.strip():
            # Output format: "0.0.0.0:12345" or "[::]:12345"
            line = result.stdout.strip().splitlines()[0]
            try:
                return int(line.rsplit(":", 1)[-1])
            except ValueError:
                logger.debug("compose.port.unparsed", service=service, output=line)
        return None

    # ------------------------------------------------------------------
    # Container inspection
    # ------------------------------------------------------------------

    def container_status(self, container_name: str) -> str:
        """Container state (running, exited, ...) or ``not_found``."""
        result = self._run_docker(
            ["inspect", "--format", "{{.State.Status}}", container_name],
            check=False,
            timeout=30,
        )
        return result.stdout.strip() if result.returncode == 0 else "not_found"

    def container_health(self, container_name: str) -> str:
        """Health status (healthy, unhealthy, starting) or ``unknown``."""
        result = self._run_docker(
            ["inspect", "--format", "{{if .State.Health}}{{.State.Health.Status}}{{end}}", container_name],
            check=False,
            timeout=30,
        )
        status = result.stdout.strip()
        return status if status and result.returncode == 0 else "unknown"

    def container_logs(self, container_name: str, tail: int = 20) -> str:
        result = self._run_docker(["logs", "--tail", str(tail), container_name], check=False, timeout=30)
        return result.stdout + result.stderr

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _run_compose(
        self,
        args: list[str],
        check: bool = True,
        timeout: int | None = None,
    ) -> subprocess.CompletedProcess[str]:
        compose_args = [
            "compose",
            "-f", str(self.compose_file),
            "--project-name", self.project_name,
            *args,
        ]
        return self._run_docker(compose_args, check=check, timeout=timeout)

    def _run_docker(
        self,
        args: list[str],
        check: bool = True,
        timeout: int | None = None,
    ) -> subprocess.CompletedProcess[str]:
        cmd = [self.find_docker(), *args]
        timeout = timeout or self.command_timeout
        logger.debug("docker.exec", cmd=" ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise ComposeCommandError(args, f"timed out after {timeout}s") from exc
        if check and result.returncode != 0:
            raise ComposeCommandError(args, result.stderr, returncode=result.returncode)
        return result


def map_compose_state(state: str, health: str = "") -> str:
    """Map Docker Compose state and health onto ``ResourceStatus`` values."""
    state = state.lower()
    health = health.lower()
    if health in ("healthy", "unhealthy"):
        return health
    if health == "starting":
        return "starting"
    if state == "running":
        return "running"
    if "exit" in state or state == "dead":
        return "exited"
    if "starting" in state or "created" in state or "restarting" in state:
        return "starting"
    return "not_found"
