"""
errors.py
- Exception types raised across the exporter.
- Scrape-level errors are caught by the collector and never crash the process.
"""


class ExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigError(ExporterError):
    """Startup configuration is invalid."""


class ChefAPIError(ExporterError):
    """A request to the Chef server failed or returned an unusable body."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class ScrapeError(ExporterError):
    """A scrape cycle could not complete its search."""


class RowDecodeError(ExporterError):
    """A search row did not have the expected shape."""
