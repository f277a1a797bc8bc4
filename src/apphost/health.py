"""Host-side HTTP health probes.

Container healthchecks gate startup inside the compose network; once an
externally exposed resource is healthy the runtime also probes its health
path from the host, through the published port, to confirm the endpoint the
outside world will use actually answers.

Examples:
    >>> result = probe_http("webfrontend", "http://localhost:49153/health")  # doctest: +SKIP
    >>> result.status  # doctest: +SKIP
    'healthy'
"""

from __future__ import annotations

import time
from typing import Literal

import httpx
from pydantic import BaseModel


class CheckResult(BaseModel):
    """Result of a single HTTP health probe."""

    name: str
    url: str
    status: Literal["healthy", "unhealthy"]
    status_code: int | None = None
    latency_ms: float | None = None
    error: str | None = None


def _get(url: str, timeout: float, client: httpx.Client | None) -> httpx.Response:
    if client is not None:
        resp = client.get(url, timeout=timeout)
    else:
        with httpx.Client(timeout=timeout) as owned:
            resp = owned.get(url)
    resp.raise_for_status()
    return resp


def check_http(url: str, *, timeout: float = 3.0, client: httpx.Client | None = None) -> bool:
    """``GET`` an HTTP endpoint and expect a 2xx response.

    Raises ``httpx.HTTPError`` on connection failure or non-2xx status.
    """
    _get(url, timeout, client)
    return True


def probe_http(
    name: str,
    url: str,
    *,
    timeout: float = 3.0,
    client: httpx.Client | None = None,
) -> CheckResult:
    """Probe ``url`` and fold the outcome into a ``CheckResult``."""
    start = time.monotonic()
    try:
        resp = _get(url, timeout, client)
    except httpx.HTTPStatusError as exc:
        return CheckResult(
            name=name,
            url=url,
            status="unhealthy",
            status_code=exc.response.status_code,
            latency_ms=round((time.monotonic() - start) * 1000, 2),
            error=f"HTTP {exc.response.status_code}",
        )
    except httpx.HTTPError as exc:
        return CheckResult(
            name=name,
            url=url,
            status="unhealthy",
            latency_ms=round((time.monotonic() - start) * 1000, 2),
            error=str(exc)[:200] or type(exc).__name__,
        )
    return CheckResult(
        name=name,
        url=url,
        status="healthy",
        status_code=resp.status_code,
        latency_ms=round((time.monotonic() - start) * 1000, 2),
    )
