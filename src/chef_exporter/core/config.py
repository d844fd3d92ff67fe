"""
config.py
- Builds the exporter configuration once at startup from environment variables
  and an optional YAML overlay (EXPORTER_CONFIG).
- The resulting ExporterConfig is passed explicitly to the scraper and server.
- Also owns the loguru sink setup shared by every module.
"""

import os
import sys
from dataclasses import dataclass

from loguru import logger

from chef_exporter.core.config_loader import load_yaml
from chef_exporter.core.constants import (
    DEFAULT_LISTEN_ADDRESS,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TELEMETRY_PATH,
)
from chef_exporter.core.errors import ConfigError

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def configure_logging(debug=False):
    """Replace loguru's default sink with the project's stderr format."""
    logger.remove()
    logger.add(
        sink=sys.stderr,
        level="DEBUG" if debug else "INFO",
        format=LOG_FORMAT,
        colorize=True,
    )


def parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def parse_float(name, value, default):
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"[config] Invalid value for {name}: {value!r}. Using default {default}.")
        return default


def parse_int(name, value, default):
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"[config] Invalid value for {name}: {value!r}. Using default {default}.")
        return default


def parse_listen_address(address):
    """
    Split a "host:port" listen address into (host, port).

    An empty host (":9101") means all interfaces.

    Raises:
        ConfigError: if the port is missing or not a valid TCP port.
    """
    host, sep, port = str(address).rpartition(":")
    if not sep:
        raise ConfigError(f"Listen address {address!r} must be in host:port form")
    try:
        port_num = int(port)
    except ValueError:
        raise ConfigError(f"Invalid port in listen address {address!r}") from None
    if not 0 < port_num < 65536:
        raise ConfigError(f"Port out of range in listen address {address!r}")
    host = host.strip("[]") or "0.0.0.0"
    return host, port_num


@dataclass(frozen=True)
class ExporterConfig:
    """Immutable process-wide settings for one exporter instance."""

    client_name: str = ""
    client_key_path: str = ""
    server_url: str = ""
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    ssl_verify: bool = True
    search_rows: int = 0
    listen_address: str = DEFAULT_LISTEN_ADDRESS
    telemetry_path: str = DEFAULT_TELEMETRY_PATH
    debug: bool = False

    @classmethod
    def from_env(cls, environ=None, config_path=None):
        """
        Build a config from the environment, overlaid by an optional YAML file.

        Args:
            environ (Mapping): Environment to read. Defaults to os.environ.
            config_path (str): YAML file path. Defaults to $EXPORTER_CONFIG.

        Returns:
            ExporterConfig
        """
        env = dict(os.environ if environ is None else environ)
        config_path = config_path or env.get("EXPORTER_CONFIG")
        if config_path:
            overlay = {str(k).upper(): v for k, v in load_yaml(config_path).items() if v is not None}
            if overlay:
                logger.debug(f"[config] {config_path} overrides: {', '.join(sorted(overlay))}")
            env.update(overlay)

        telemetry_path = str(env.get("TELEMETRY_PATH") or DEFAULT_TELEMETRY_PATH)
        if not telemetry_path.startswith("/"):
            telemetry_path = "/" + telemetry_path

        return cls(
            client_name=str(env.get("CHEF_CLIENT_NAME") or ""),
            client_key_path=str(env.get("CHEF_CLIENT_KEY") or ""),
            server_url=str(env.get("CHEF_SERVER_URL") or "").rstrip("/"),
            request_timeout=parse_float("CHEF_REQUEST_TIMEOUT", env.get("CHEF_REQUEST_TIMEOUT"), DEFAULT_REQUEST_TIMEOUT),
            ssl_verify=parse_bool(env.get("CHEF_SSL_VERIFY"), default=True),
            search_rows=parse_int("CHEF_SEARCH_ROWS", env.get("CHEF_SEARCH_ROWS"), 0),
            listen_address=str(env.get("LISTEN_ADDRESS") or DEFAULT_LISTEN_ADDRESS),
            telemetry_path=telemetry_path,
            debug=parse_bool(env.get("DEBUG"), default=False),
        )

    def missing_chef_settings(self):
        """Return the names of unset Chef connection settings."""
        missing = []
        if not self.client_name:
            missing.append("CHEF_CLIENT_NAME")
        if not self.client_key_path:
            missing.append("CHEF_CLIENT_KEY")
        if not self.server_url:
            missing.append("CHEF_SERVER_URL")
        return missing
