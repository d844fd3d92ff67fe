"""
collector.py
- Prometheus collector that owns the exporter state.
- Every collect() is one locked reset -> scrape -> publish cycle, so
  overlapping polls are serialized and never see a half-updated gauge set.
- Scrape failures are logged and reported through chef_up; they never
  propagate to the HTTP server.
"""

import threading
import time
from dataclasses import dataclass, field

from loguru import logger
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily
from prometheus_client.registry import Collector

from chef_exporter.core.constants import NAMESPACE, NODE_LABEL_NAMES
from chef_exporter.core.errors import ScrapeError


@dataclass
class NodeMetric:
    """A gauge vector keyed by node label, rebuilt on every scrape."""

    name: str
    documentation: str
    values: dict = field(default_factory=dict)

    @property
    def full_name(self):
        return f"{NAMESPACE}_node_{self.name}"

    def reset(self):
        self.values.clear()

    def set(self, node, value):
        self.values[node] = value

    def family(self):
        gauge = GaugeMetricFamily(self.full_name, self.documentation, labels=NODE_LABEL_NAMES)
        for node, value in sorted(self.values.items()):
            gauge.add_metric([node], value)
        return gauge


def new_node_metrics():
    return {
        "ohai_time": NodeMetric("ohai_time", "Seconds since Ohai was last run on the node."),
    }


@dataclass
class ExporterState:
    up: float = 0.0
    total_scrapes: int = 0
    parse_failures: int = 0
    last_scrape_duration: float = 0.0
    node_metrics: dict = field(default_factory=new_node_metrics)


def build_families(state):
    """Render exporter state as Prometheus metric families."""
    up = GaugeMetricFamily(f"{NAMESPACE}_up", "Was the last scrape successful.", value=state.up)
    scrapes = CounterMetricFamily(f"{NAMESPACE}_exporter_scrapes", "Current total scrapes.", value=state.total_scrapes)
    failures = CounterMetricFamily(
        f"{NAMESPACE}_exporter_parse_failures",
        "Number of search rows that could not be parsed.",
        value=state.parse_failures,
    )
    duration = GaugeMetricFamily(
        f"{NAMESPACE}_exporter_last_scrape_duration_seconds",
        "Duration of the last scrape in seconds.",
        value=state.last_scrape_duration,
    )
    return [up, scrapes, failures, duration] + [m.family() for m in state.node_metrics.values()]


class ChefCollector(Collector):
    """Collects node staleness from the Chef server on every poll."""

    def __init__(self, scraper):
        self.scraper = scraper
        self.state = ExporterState()
        self._lock = threading.Lock()

    def describe(self):
        """Static metric families with no node samples. Safe before any scrape."""
        return build_families(ExporterState())

    def collect(self):
        with self._lock:
            self._reset()
            self._scrape()
            return build_families(self.state)

    def snapshot(self):
        """Copy of the current state, node values included."""
        with self._lock:
            return ExporterState(
                up=self.state.up,
                total_scrapes=self.state.total_scrapes,
                parse_failures=self.state.parse_failures,
                last_scrape_duration=self.state.last_scrape_duration,
                node_metrics={
                    key: NodeMetric(m.name, m.documentation, dict(m.values))
                    for key, m in self.state.node_metrics.items()
                },
            )

    def _reset(self):
        for metric in self.state.node_metrics.values():
            metric.reset()

    def _scrape(self):
        state = self.state
        state.total_scrapes += 1
        started = time.monotonic()

        try:
            result = self.scraper.scrape()
        except ScrapeError as e:
            logger.error(f"[collector] Scrape failed: {e}")
            state.up = 0.0
        except Exception:
            logger.exception("[collector] Unexpected error during scrape")
            state.up = 0.0
        else:
            for sample in result.samples:
                for metric in state.node_metrics.values():
                    metric.set(sample.node, sample.value)
            state.parse_failures += result.parse_failures
            state.up = 1.0
        finally:
            state.last_scrape_duration = time.monotonic() - started
