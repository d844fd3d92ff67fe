#!/usr/bin/env python3
"""
main.py
- HTTP surface of the chef exporter.
- Serves:
    - <telemetry path>: Prometheus exposition, one full Chef scrape per request
    - /: static landing page linking to the metrics path
    - /healthz: liveness probe, no scrape
"""

import sys

import sentry_sdk
import uvicorn
from fastapi import FastAPI
from fastapi.responses import HTMLResponse, Response
from loguru import logger
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from prometheus_client import PlatformCollector, ProcessCollector
from sentry_sdk.integrations.loguru import LoguruIntegration

from chef_exporter.core.config import parse_listen_address
from chef_exporter.core.constants import VERSION
from chef_exporter.core.errors import ConfigError
from chef_exporter.lib.collector import ChefCollector
from chef_exporter.lib.scraper import NodeScraper

LANDING_PAGE = """<html>
<head><title>Chef Exporter</title></head>
<body>
<h1>Chef Exporter</h1>
<p><a href='{metrics_path}'>Metrics</a></p>
</body>
</html>
"""


def init_sentry(dsn):
    if not dsn:
        return
    sentry_sdk.init(
        dsn=dsn,
        release=f"chef_exporter@{VERSION}",
        integrations=[LoguruIntegration()],
        traces_sample_rate=0.0,
    )
    logger.info("[main] Sentry error reporting enabled.")


def build_registry(collector):
    registry = CollectorRegistry()
    ProcessCollector(registry=registry)
    PlatformCollector(registry=registry)
    registry.register(collector)
    return registry


def create_app(config, collector=None, registry=None):
    """
    Build the FastAPI app for one exporter instance.

    Args:
        config (ExporterConfig): Startup configuration.
        collector (ChefCollector): Defaults to a collector over NodeScraper(config).
        registry (CollectorRegistry): Defaults to a fresh registry holding the collector.
    """
    collector = collector or ChefCollector(NodeScraper(config))
    registry = registry or build_registry(collector)
    landing = LANDING_PAGE.format(metrics_path=config.telemetry_path)

    api = FastAPI(title="Chef Exporter", version=VERSION)
    api.state.collector = collector
    api.state.registry = registry

    # Sync handlers run in the threadpool; the collector lock serializes scrapes.
    def metrics():
        return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    def index():
        return HTMLResponse(landing)

    def health():
        return {"status": "ok"}

    api.add_api_route(config.telemetry_path, metrics, methods=["GET"])
    if config.telemetry_path != "/":
        api.add_api_route("/", index, methods=["GET"], response_class=HTMLResponse)
    api.add_api_route("/healthz", health, methods=["GET"])
    return api


def run(config, sentry_dsn=None):
    """Start serving until the process is killed. Returns a process exit code."""
    try:
        host, port = parse_listen_address(config.listen_address)
    except ConfigError as e:
        logger.error(f"[main] {e}")
        return 1

    init_sentry(sentry_dsn)

    missing = config.missing_chef_settings()
    if missing:
        logger.warning(f"[main] Missing Chef settings: {', '.join(missing)}. Scrapes will report chef_up 0.")

    logger.info(f"[main] Starting chef_exporter {VERSION}")
    logger.info(f"[main] Listening on {host}:{port}, metrics at {config.telemetry_path}")
    uvicorn.run(create_app(config), host=host, port=port, log_level="debug" if config.debug else "warning")
    return 0


if __name__ == "__main__":
    from chef_exporter.cli.entrypoint import main
    sys.exit(main())
