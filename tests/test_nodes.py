import pytest

from chef_exporter.core.constants import STALE_SENTINEL
from chef_exporter.core.errors import RowDecodeError
from chef_exporter.lib.nodes import NodeRecord, seconds_since_ohai, to_sample

from conftest import NOW


def test_numeric_ohai_time_gives_elapsed_seconds():
    record = NodeRecord.from_row({"data": {"name": "web1", "ohai_time": 1700000000}})
    sample = to_sample(record, NOW)
    assert sample.node == "web1"
    assert sample.value == 100.0


def test_float_ohai_time_keeps_fraction():
    record = NodeRecord.from_row({"data": {"name": "web1", "ohai_time": 1700000099.5}})
    assert seconds_since_ohai(record, NOW) == pytest.approx(0.5)


@pytest.mark.parametrize("ohai_time", ["not-a-number", "1700000000", None, True, [1], {"t": 1}])
def test_non_numeric_ohai_time_uses_sentinel(ohai_time):
    record = NodeRecord.from_row({"data": {"name": "web2", "ohai_time": ohai_time}})
    assert record.ohai_time is None
    assert to_sample(record, NOW).value == STALE_SENTINEL == 999999999


def test_absent_ohai_time_uses_sentinel():
    record = NodeRecord.from_row({"url": "https://chef/nodes/web3", "data": {"name": "web3"}})
    assert to_sample(record, NOW).value == STALE_SENTINEL


@pytest.mark.parametrize("row", [
    {},
    {"data": None},
    {"data": "web1"},
    {"data": {"ohai_time": 1700000000}},
    {"data": {"name": 42, "ohai_time": 1700000000}},
    {"data": {"name": ""}},
    "web1",
])
def test_malformed_rows_raise(row):
    with pytest.raises(RowDecodeError):
        NodeRecord.from_row(row)


def test_ohai_time_too_large_for_a_float_uses_sentinel():
    record = NodeRecord.from_row({"data": {"name": "bad", "ohai_time": 10 ** 400}})
    assert record.ohai_time is None
    assert to_sample(record, NOW).value == STALE_SENTINEL
