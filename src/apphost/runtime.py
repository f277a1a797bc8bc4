"""Runtime for a built application model.

``DistributedApplication`` takes the frozen model produced by
``DistributedApplicationBuilder.build()`` and drives it through docker
compose: validate docker → write compose file → ``compose up`` → health-gate
each resource in wait-for order → probe external endpoints → block until
shutdown → ``compose down``.

Key Concepts:
    create_builder(args): Entry point used by bootstrap scripts.
    start(): Provision and health-gate; returns a ``RunResult`` or raises
        ``AppHostError``.
    run(): ``start()`` plus blocking until SIGINT/SIGTERM; returns the
        process exit code (0 on normal shutdown, the error's ``exit_code``
        on failure).
    status(): Inspect a running deployment without changing it.
"""

from __future__ import annotations

import signal
import threading
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx

from apphost.compose import (
    container_name,
    generate_compose,
    has_healthcheck,
    internal_port,
    write_compose_file,
)
from apphost.config import AppHostConfig
from apphost.container import DockerCli, map_compose_state
from apphost.errors import (
    AppHostError,
    DockerNotFoundError,
    ResourceUnhealthyError,
    StartupCancelledError,
)
from apphost.health import probe_http
from apphost.logging import get_logger
from apphost.model import ApplicationModel, ResourceSpec
from apphost.results import ResourceStatus, RunResult

if TYPE_CHECKING:
    from apphost.builder import DistributedApplicationBuilder

logger = get_logger(__name__)

_SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class DistributedApplication:
    """A built application model bound to the compose runtime.

    Parameters
    ----------
    model
        Frozen application model.
    config
        Runtime configuration.
    docker
        Docker CLI wrapper; defaults to one targeting ``config.compose_path``.
    http_client
        Client used for host-side endpoint probes.
    sleep
        Pause between health polls. Defaults to waiting on the stop event,
        so a shutdown request interrupts the pause.
    """

    def __init__(
        self,
        model: ApplicationModel,
        config: AppHostConfig,
        docker: DockerCli | None = None,
        http_client: httpx.Client | None = None,
        sleep: Callable[[float], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.model = model
        self.config = config
        self.docker = docker or DockerCli(
            compose_file=config.compose_path,
            project_name=config.project_name,
            command_timeout=config.command_timeout_seconds,
        )
        self._http_client = http_client
        self._sleep = sleep
        self._clock = clock
        self._started = False

    @staticmethod
    def create_builder(
        args: Sequence[str] | None = None,
        config: AppHostConfig | None = None,
    ) -> DistributedApplicationBuilder:
        """Create a ``DistributedApplicationBuilder`` for ``args``."""
        from apphost.builder import DistributedApplicationBuilder

        return DistributedApplicationBuilder(args, config=config)

    # ------------------------------------------------------------------
    # Compose artifacts
    # ------------------------------------------------------------------

    def compose_content(self) -> str:
        return generate_compose(self.model, self.config)

    def write_compose(self, path: Path | None = None) -> Path:
        return write_compose_file(self.compose_content(), path or self.config.compose_path)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, stop_event: threading.Event | None = None) -> RunResult:
        """Provision every resource and wait until each is ready.

        Setting ``stop_event`` while resources are starting aborts startup
        with ``StartupCancelledError``.

        Raises
        ------
        AppHostError
            If docker is unavailable, compose fails, or a resource misses
            its health deadline.
        StartupCancelledError
            If ``stop_event`` is set before every resource is ready.
        """
        stop_event = stop_event or threading.Event()
        result = RunResult(run_id=self.config.run_id, project_name=self.config.project_name)

        if not self.docker.is_available():
            raise DockerNotFoundError(
                "Docker is required to run the application but is not available. "
                "Install Docker or start the daemon."
            )

        result.compose_file = str(self.write_compose())
        if stop_event.is_set():
            raise StartupCancelledError("Shutdown requested before resources were started")
        logger.info(
            "apphost.starting",
            project=self.config.project_name,
            run_id=self.config.run_id,
            resources=self.model.names,
        )

        self._started = True
        self.docker.compose_up(build=self.config.build)

        for resource in self.model.startup_order():
            status = self._wait_until_ready(resource, stop_event)
            if resource.external and resource.health_check_path:
                self._probe_endpoint(resource, status)
            result.resources.append(status)

        result.mark_complete()
        return result

    def stop(self) -> None:
        """Tear the deployment down unless ``keep_resources`` is set."""
        if self.config.keep_resources:
            logger.info("apphost.keep_resources", project=self.config.project_name)
            return
        self.docker.compose_down()
        self._started = False

    def run(self, stop_event: threading.Event | None = None) -> int:
        """Start, block until shutdown is requested, then stop.

        Returns the process exit code.
        """
        stop_event = stop_event or threading.Event()
        previous = self._install_signal_handlers(stop_event)
        try:
            try:
                result = self.start(stop_event)
            except StartupCancelledError as exc:
                logger.info("apphost.stopping", project=self.config.project_name, reason=exc.message)
                return exc.exit_code
            except AppHostError as exc:
                logger.error(
                    "apphost.start_failed",
                    error=exc.message,
                    resource=exc.resource,
                    exit_code=exc.exit_code,
                )
                return exc.exit_code

            logger.info(
                "apphost.ready",
                summary=result.summary,
                endpoints={r.name: r.endpoint for r in result.resources if r.endpoint},
            )
            stop_event.wait()
            logger.info("apphost.stopping", project=self.config.project_name)
            return 0
        finally:
            self._teardown()
            self._restore_signal_handlers(previous)

    def status(self) -> RunResult:
        """Inspect the deployment's current resource states."""
        result = RunResult(
            run_id=self.config.run_id,
            project_name=self.config.project_name,
            compose_file=str(self.config.compose_path),
        )
        rows = {row.get("Service", row.get("Name", "")): row for row in self.docker.compose_ps()}
        for resource in self.model.resources:
            row = rows.get(resource.name)
            status = ResourceStatus(
                name=resource.name,
                kind=resource.kind.value,
                container_name=container_name(self.config, resource.name),
                health_path=resource.health_check_path,
            )
            if row is not None:
                status.status = map_compose_state(row.get("State", ""), row.get("Health", ""))
            result.resources.append(status)
        result.mark_complete()
        return result

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _wait_until_ready(self, resource: ResourceSpec, stop_event: threading.Event) -> ResourceStatus:
        """Poll until the resource is healthy (or running, without a healthcheck).

        Uses exponential backoff: 1s, 2s, 4s, capped at
        ``health_poll_max_delay_seconds``.
        """
        name = container_name(self.config, resource.name)
        expects_health = has_healthcheck(resource)
        timeout = self.config.startup_timeout_seconds
        started = self._clock()
        deadline = started + timeout
        delay = 1.0

        while True:
            if stop_event.is_set():
                raise StartupCancelledError(
                    f"Shutdown requested while waiting for '{resource.name}'",
                    resource=resource.name,
                )
            state = self.docker.container_status(name)
            if state in ("exited", "dead"):
                logs = self.docker.container_logs(name)
                raise ResourceUnhealthyError(
                    resource.name,
                    f"container {name} exited before becoming ready.\nLast logs:\n{logs}",
                )

            health = self.docker.container_health(name) if expects_health else ""
            ready = health == "healthy" if expects_health else state == "running"
            if ready:
                ready_ms = round((self._clock() - started) * 1000, 1)
                logger.info("resource.ready", resource=resource.name, container=name, ready_ms=ready_ms)
                return ResourceStatus(
                    name=resource.name,
                    kind=resource.kind.value,
                    container_name=name,
                    status=map_compose_state(state, health),
                    health_path=resource.health_check_path,
                    ready_ms=ready_ms,
                )

            if self._clock() >= deadline:
                raise ResourceUnhealthyError(
                    resource.name,
                    f"not ready within {timeout}s (last status: {health or state})",
                )
            logger.debug("resource.waiting", resource=resource.name, status=health or state)
            self._pause(delay, stop_event)
            delay = min(delay * 2, self.config.health_poll_max_delay_seconds)

    def _pause(self, seconds: float, stop_event: threading.Event) -> None:
        if self._sleep is None:
            stop_event.wait(seconds)
        else:
            self._sleep(seconds)

    def _probe_endpoint(self, resource: ResourceSpec, status: ResourceStatus) -> None:
        port = self.docker.mapped_port(resource.name, internal_port(resource, self.config))
        if port is None:
            logger.warning("resource.endpoint_unpublished", resource=resource.name)
            return
        status.endpoint = f"http://localhost:{port}"
        status.probe = probe_http(
            resource.name,
            f"{status.endpoint}{resource.health_check_path}",
            client=self._http_client,
        )
        if status.probe.status == "healthy":
            logger.info("resource.endpoint", resource=resource.name, url=status.endpoint)
        else:
            logger.warning(
                "resource.endpoint_unhealthy",
                resource=resource.name,
                url=status.endpoint,
                error=status.probe.error,
            )

    def _teardown(self) -> None:
        if not self._started:
            return
        try:
            self.stop()
        except AppHostError as exc:
            logger.warning("apphost.teardown_failed", error=exc.message)

    @staticmethod
    def _install_signal_handlers(stop_event: threading.Event) -> dict[int, Any]:
        if threading.current_thread() is not threading.main_thread():
            return {}

        def _handler(signum: int, _frame: Any) -> None:
            logger.info("apphost.signal", signal=signal.Signals(signum).name)
            stop_event.set()

        return {sig: signal.signal(sig, _handler) for sig in _SHUTDOWN_SIGNALS}

    @staticmethod
    def _restore_signal_handlers(previous: dict[int, Any]) -> None:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
