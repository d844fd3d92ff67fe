#!/usr/bin/env python3
"""
entrypoint.py
- Command-line entrypoint for the chef exporter (`chef-exporter`).
- Usage:
    chef-exporter [--web.listen-address :9101] [--web.telemetry-path /metrics]
                  [--config exporter.yml] [--debug] [--version]

- Flags override the matching environment variables.
"""

import argparse
import os
import signal
import sys
from dataclasses import replace

from loguru import logger

from chef_exporter.core.config import ExporterConfig, configure_logging
from chef_exporter.core.constants import VERSION
from chef_exporter.main import run


def handle_exit(signum, frame):
    logger.info("📴 Received shutdown signal. Exiting...")
    sys.exit(0)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="chef-exporter",
        description="Prometheus exporter for Chef node Ohai staleness",
    )
    parser.add_argument("--web.listen-address", dest="listen_address",
                        help="Address to listen on for web interface and telemetry (default :9101).")
    parser.add_argument("--web.telemetry-path", dest="telemetry_path",
                        help="Path under which to expose metrics (default /metrics).")
    parser.add_argument("--config", dest="config_path",
                        help="Optional YAML file overlaying environment settings.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument("--version", action="store_true", help="Print version information.")
    return parser


def load_config(args, environ=None):
    config = ExporterConfig.from_env(environ=environ, config_path=args.config_path)
    overrides = {}
    if args.listen_address:
        overrides["listen_address"] = args.listen_address
    if args.telemetry_path:
        path = args.telemetry_path
        overrides["telemetry_path"] = path if path.startswith("/") else "/" + path
    if args.debug:
        overrides["debug"] = True
    return replace(config, **overrides)


def main(argv=None):
    args = build_parser().parse_args(argv)
    if args.version:
        print(f"chef_exporter, version {VERSION}")
        return 0

    # Register clean shutdown signals
    signal.signal(signal.SIGINT, handle_exit)
    signal.signal(signal.SIGTERM, handle_exit)

    config = load_config(args)
    configure_logging(config.debug)

    return run(config, sentry_dsn=os.getenv("SENTRY_DSN"))


if __name__ == "__main__":
    sys.exit(main())
