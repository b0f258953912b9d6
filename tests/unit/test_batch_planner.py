"""
Unit tests for BatchPlanner partition discovery.
"""

import pytest

from mergesync.common.errors import ExecutionError
from mergesync.partition import PartitionSpec
from mergesync.processing.batch_planner import BatchPlanner


@pytest.fixture
def planner(connection):
    return BatchPlanner(connection)


def test_batches_follow_result_order(planner, connection):
    spec = PartitionSpec.of(["ds|string"])
    connection.query.return_value = [("2021-01-01", "5"), ("2021-01-02", "3")]

    batches = planner.create_partition_batches(spec, "db.src", "100")

    assert [b.partition_values for b in batches] == [("2021-01-01",), ("2021-01-02",)]
    assert [b.row_count for b in batches] == [5, 3]
    assert all(b.partition_spec is spec for b in batches)
    connection.query.assert_called_once_with(spec.distinct_partition_query("db.src", "100"))


def test_null_partition_values_become_empty(planner, connection):
    spec = PartitionSpec.of(["year|int", "country|string"])
    connection.query.return_value = [(None, "US", "7"), ("2015", None, "2")]

    batches = planner.create_partition_batches(spec, "db.src", "100")

    assert batches[0].partition_values == ("", "US")
    assert batches[1].partition_values == ("2015", "")
    assert batches[0].row_count == 7


def test_no_rows_no_batches(planner, connection):
    connection.query.return_value = []

    assert planner.create_partition_batches(PartitionSpec.of(["ds"]), "db.src", "100") == []


def test_query_failure_is_wrapped(planner, connection):
    cause = RuntimeError("connection reset by peer")
    connection.query.side_effect = cause
    spec = PartitionSpec.of(["ds"])

    with pytest.raises(ExecutionError) as excinfo:
        planner.create_partition_batches(spec, "db.src", "100")

    assert excinfo.value.sql == spec.distinct_partition_query("db.src", "100")
    assert excinfo.value.__cause__ is cause
    assert excinfo.value.retriable
