"""
scraper.py
- Runs one scrape against the Chef server: read key, build client, partial search.
- Maps every returned row to a per-node seconds-since-last-Ohai-run sample.
- Malformed rows are skipped and counted; search failures raise ScrapeError.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, List

from cryptography.exceptions import UnsupportedAlgorithm
from loguru import logger

from chef_exporter.core.chef_client import ChefClient, load_private_key, read_client_key
from chef_exporter.core.config import ExporterConfig
from chef_exporter.core.constants import SEARCH_INDEX, SEARCH_KEYS, SEARCH_QUERY
from chef_exporter.core.errors import ChefAPIError, RowDecodeError, ScrapeError
from chef_exporter.lib.nodes import MetricSample, NodeRecord, to_sample


@dataclass
class ScrapeResult:
    samples: List[MetricSample] = field(default_factory=list)
    parse_failures: int = 0


def build_client(config: ExporterConfig, key_pem: bytes) -> ChefClient:
    """
    Construct a ChefClient for one scrape.

    A key that cannot be parsed is logged and the client is built unsigned,
    which the server will reject at search time.
    """
    private_key = None
    try:
        private_key = load_private_key(key_pem)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        logger.error(f"[scraper] Issue setting up chef client key: {e}")

    return ChefClient(
        config.server_url,
        config.client_name,
        private_key=private_key,
        timeout=config.request_timeout,
        verify_ssl=config.ssl_verify,
    )


class NodeScraper:
    """Produces node staleness samples from the Chef server's node index."""

    def __init__(self, config: ExporterConfig,
                 client_factory: Callable[[ExporterConfig, bytes], ChefClient] = build_client,
                 clock: Callable[[], float] = time.time):
        self.config = config
        self.client_factory = client_factory
        self.clock = clock

    def read_key(self) -> bytes:
        try:
            return read_client_key(self.config.client_key_path)
        except OSError as e:
            logger.warning(f"[scraper] Couldn't read chef client key {self.config.client_key_path!r}: {e}")
            return b""

    def scrape(self) -> ScrapeResult:
        """
        Run one partial search and decode every row.

        Returns:
            ScrapeResult: samples and the number of skipped rows.

        Raises:
            ScrapeError: if the client cannot be built or the search fails.
        """
        key_pem = self.read_key()

        try:
            client = self.client_factory(self.config, key_pem)
        except ValueError as e:
            raise ScrapeError(f"Issue setting up chef client: {e}") from e

        logger.debug("[scraper] Partial Search")
        try:
            response = client.partial_search(
                SEARCH_INDEX,
                SEARCH_QUERY,
                SEARCH_KEYS,
                rows=self.config.search_rows or None,
            )
        except ChefAPIError as e:
            raise ScrapeError(f"Error running partial search: {e}") from e
        finally:
            client.close()

        rows = response["rows"]
        total = response.get("total")
        if isinstance(total, int) and total > len(rows):
            logger.warning(f"[scraper] Search returned {len(rows)} of {total} nodes; raise CHEF_SEARCH_ROWS to see all.")

        result = ScrapeResult()
        now = int(self.clock())
        for row in rows:
            try:
                record = NodeRecord.from_row(row)
            except RowDecodeError as e:
                result.parse_failures += 1
                logger.warning(f"[scraper] Skipping malformed search row: {e}")
                continue
            result.samples.append(to_sample(record, now))

        logger.debug(f"[scraper] Scraped {len(result.samples)} nodes ({result.parse_failures} skipped)")
        return result
