"""HealthTracker app host.

Declares the HealthTracker application: a redis ``cache``, the
``apiservice`` backend, and the externally exposed ``webfrontend`` that
references and waits for both. Running the module builds the model and
hands it to the runtime until the process is stopped.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence

from apphost.builder import DistributedApplicationBuilder
from apphost.config import AppHostConfig
from apphost.errors import AppHostError
from apphost.logging import configure_logging, get_logger
from apphost.projects import HEALTHTRACKER_API_SERVICE, HEALTHTRACKER_WEB
from apphost.runtime import DistributedApplication

logger = get_logger(__name__)


def create_builder(
    args: Sequence[str] | None = None,
    config: AppHostConfig | None = None,
) -> DistributedApplicationBuilder:
    builder = DistributedApplication.create_builder(args, config=config)

    cache = builder.add_redis("cache")

    api_service = (
        builder.add_project("apiservice", HEALTHTRACKER_API_SERVICE)
        .with_http_health_check("/health")
    )

    (
        builder.add_project("webfrontend", HEALTHTRACKER_WEB)
        .with_external_http_endpoints()
        .with_http_health_check("/health")
        .with_reference(cache)
        .wait_for(cache)
        .with_reference(api_service)
        .wait_for(api_service)
    )

    return builder


def build_app(args: Sequence[str] | None = None, config: AppHostConfig | None = None) -> DistributedApplication:
    return create_builder(args, config=config).build()


def main(argv: Sequence[str] | None = None) -> int:
    configure_logging()
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        app = build_app(args)
    except AppHostError as exc:
        logger.error("apphost.build_failed", error=exc.message, resource=exc.resource)
        return exc.exit_code
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
