#!/usr/bin/env python3
"""
healthcheck.py
- Basic healthcheck script for Docker HEALTHCHECK.
- Returns exit code 0 if the exporter answers /healthz, 1 if not.
- Does not trigger a Chef scrape.
- Usage:
    python -m chef_exporter.utils.healthcheck [host:port]

- Without an argument the address comes from LISTEN_ADDRESS or the
  EXPORTER_CONFIG overlay. Pass the address explicitly when the exporter was
  started with --web.listen-address.
"""

import sys

import requests

from chef_exporter.core.config import ExporterConfig, parse_listen_address
from chef_exporter.core.errors import ConfigError


def health_url(listen_address):
    host, port = parse_listen_address(listen_address)
    if host in ("0.0.0.0", "::"):
        host = "127.0.0.1"
    return f"http://{host}:{port}/healthz"


def check(listen_address, timeout=3):
    try:
        response = requests.get(health_url(listen_address), timeout=timeout)
        return response.status_code == 200 and response.json().get("status") == "ok"
    except (ConfigError, requests.RequestException, ValueError) as e:
        print(f"❌ Healthcheck failed: {e}")
        return False


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    listen_address = argv[0] if argv else ExporterConfig.from_env().listen_address
    if check(listen_address):
        sys.exit(0)  # Healthy
    else:
        print("❌ Healthcheck failed: exporter did not answer /healthz")
        sys.exit(1)  # Unhealthy


if __name__ == "__main__":
    main()
