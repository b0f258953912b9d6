"""
Unit tests for SchemaResolver.

Covers describe parsing (Hive blank separator, Spark partition marker) and
the common-column reconciliation used for every select clause.
"""

import pytest

from mergesync.common.errors import SchemaResolutionError
from mergesync.partition import PartitionSpec
from mergesync.processing.schema import SchemaResolver


def _describe(*columns):
    return [(c, "string", "") for c in columns]


@pytest.fixture
def resolver(connection):
    return SchemaResolver(connection)


def test_stops_at_first_blank_row(resolver, connection):
    connection.query.return_value = [
        ("a", "int", ""),
        ("b", "string", ""),
        ("", "", ""),
        ("ds", "string", ""),
    ]

    assert resolver.resolve_table_schema("db.t") == ["a", "b"]


def test_stops_at_null_name(resolver, connection):
    connection.query.return_value = [("a", "int", ""), (None, None, None), ("ds", "string", "")]

    assert resolver.resolve_table_schema("db.t") == ["a"]


def test_stops_at_spark_partition_marker(resolver, connection):
    connection.query.return_value = [
        ("id", "int", None),
        ("ds", "string", None),
        ("# Partition Information", "", ""),
        ("# col_name", "data_type", "comment"),
        ("ds", "string", None),
    ]

    assert resolver.resolve_table_schema("db.t") == ["id", "ds"]


def test_switches_to_default_database_first(resolver, connection):
    resolver.resolve_table_schema("db.t")

    connection.execute.assert_called_once_with("use default")
    connection.query.assert_called_once_with("desc db.t")


def test_custom_default_database(connection):
    SchemaResolver(connection, default_database="neutral").resolve_table_schema("db.t")

    connection.execute.assert_called_once_with("use neutral")


def test_failure_is_wrapped(resolver, connection):
    cause = RuntimeError("Table not found t")
    connection.query.side_effect = cause

    with pytest.raises(SchemaResolutionError) as excinfo:
        resolver.resolve_table_schema("db.t")

    assert excinfo.value.sql == "desc db.t"
    assert excinfo.value.__cause__ is cause
    assert excinfo.value.details["original_error"] == "Table not found t"


def test_select_fields_follow_target_order(resolver, scripted_queries):
    scripted_queries({"desc db.src": _describe("b", "a", "c"), "desc db.tgt": _describe("a", "b", "d")})

    assert resolver.get_select_fields("db.src", "db.tgt", None) == ["a", "b"]


def test_select_fields_drop_partition_keys(resolver, scripted_queries):
    scripted_queries({"desc db.src": _describe("a", "b"), "desc db.tgt": _describe("a", "b")})
    spec = PartitionSpec.of(["a|string"])

    assert resolver.get_select_fields("db.src", "db.tgt", spec) == ["b"]


def test_select_fields_may_be_empty(resolver, scripted_queries):
    scripted_queries({"desc db.src": _describe("x"), "desc db.tgt": _describe("y")})

    assert resolver.get_select_fields("db.src", "db.tgt", PartitionSpec.non_partitioned()) == []
