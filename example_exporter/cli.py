"""Command-line entry point: ``example-exporter <config-file>``."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import sys
from typing import List, Optional

from example_exporter.collectors.example import ExampleCollector
from example_exporter.config import Settings, load_config, settings as default_settings
from example_exporter.errors import ExporterError
from example_exporter.lifecycle.shutdown import ShutdownCoordinator
from example_exporter.logging import configure_logging, teardown_logging
from example_exporter.main import create_app
from example_exporter.observability.registry import Registry
from example_exporter.server import ScrapeServer

logger = logging.getLogger(__name__)


def build_server(config_path: str, settings: Settings) -> ScrapeServer:
    """Load config, register collectors and bind the scrape port."""
    config = load_config(config_path)

    registry = Registry(include_runtime_metrics=settings.runtime_metrics_enabled)
    registry.register(ExampleCollector(config))

    app = create_app(registry, metrics_path=settings.metrics_path, title=settings.app_name)
    server = ScrapeServer(app, host=settings.host, port=config.port)
    server.bind()
    logger.info("starting exporter on port %d", server.port)
    return server


async def run(server: ScrapeServer, coordinator: ShutdownCoordinator) -> None:
    coordinator.install()
    watcher = asyncio.create_task(coordinator.run())
    try:
        await server.serve()
    finally:
        if coordinator.shutdown_requested:
            await watcher
        else:
            watcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await watcher
        coordinator.uninstall()


def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        prog = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "example-exporter"
        print(f"Usage: {prog} config-file")
        return 1

    settings = settings or default_settings
    configure_logging(settings.log_file, settings.log_level)
    try:
        try:
            server = build_server(args[0], settings)
        except ExporterError as exc:
            logger.critical("Failed to start exporter: %s", exc)
            return 1

        coordinator = ShutdownCoordinator(server, timeout=settings.shutdown_timeout_seconds)
        asyncio.run(run(server, coordinator))
        return 0
    finally:
        teardown_logging()


if __name__ == "__main__":
    sys.exit(main())
