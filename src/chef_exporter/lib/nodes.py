"""
nodes.py
- Decodes partial search rows into typed node records.
- Converts each record into a seconds-since-last-Ohai-run sample.
"""

from dataclasses import dataclass
from collections.abc import Mapping
from typing import Any, Optional

from chef_exporter.core.constants import STALE_SENTINEL
from chef_exporter.core.errors import RowDecodeError


def _as_number(value: Any) -> Optional[float]:
    # bool is an int subclass but never a timestamp
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        return float(value)
    except OverflowError:
        return None


@dataclass(frozen=True)
class NodeRecord:
    """One node as returned by the partial search."""

    name: str
    ohai_time: Optional[float] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "NodeRecord":
        """Build a record from a {"data": {...}} search row.

        Raises RowDecodeError if the row has no data mapping or no usable name.
        A missing or non-numeric ohai_time is kept as None.
        """
        if not isinstance(row, Mapping):
            raise RowDecodeError(f"row is {type(row).__name__}, expected a mapping")
        data = row.get("data")
        if not isinstance(data, Mapping):
            raise RowDecodeError(f"row has no data mapping: {row!r}")
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise RowDecodeError(f"row data has no node name: {data!r}")
        return cls(name=name, ohai_time=_as_number(data.get("ohai_time")))


@dataclass(frozen=True)
class MetricSample:
    node: str
    value: float


def seconds_since_ohai(record: NodeRecord, now: float) -> float:
    if record.ohai_time is None:
        return STALE_SENTINEL
    return float(now) - record.ohai_time


def to_sample(record: NodeRecord, now: float) -> MetricSample:
    return MetricSample(node=record.name, value=seconds_since_ohai(record, now))
