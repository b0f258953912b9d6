"""
Schema inspection and column reconciliation between source and target tables.
"""

from __future__ import annotations

import logging

from mergesync.common.constants import DEFAULT_DATABASE, PARTITION_INFO_MARKER
from mergesync.common.errors import SchemaResolutionError
from mergesync.connection import SqlConnection
from mergesync.partition import PartitionSpec

logger = logging.getLogger(__name__)


class SchemaResolver:
    """
    Reads table column lists through ``desc <table>``.

    Args:
        connection: SQL connection used for the metadata queries.
        default_database: Namespace switched to before describing, so that
                          ``desc schema.table`` is never read as table.column.
    """

    def __init__(self, connection: SqlConnection, default_database: str = DEFAULT_DATABASE):
        self.connection = connection
        self.default_database = default_database

    def resolve_table_schema(self, qualified_table_name: str) -> list[str]:
        """
        Return the table's columns in declared order.

        The listing ends at the first row with an empty name (Hive) or a
        ``# Partition Information`` row (Spark); partition columns follow it.
        """
        sql = f"desc {qualified_table_name}"
        logger.info(f"Resolving table schema [{sql}]")
        try:
            self.connection.execute(f"use {self.default_database}")
            rows = self.connection.query(sql)
        except Exception as e:
            raise SchemaResolutionError(
                f"Failed to inspect schema of {qualified_table_name}", sql=sql, cause=e
            ) from e

        columns: list[str] = []
        for row in rows:
            name = row[0].strip() if row and row[0] else ""
            if not name or name.startswith(PARTITION_INFO_MARKER):
                break
            columns.append(name)
        return columns

    def get_select_fields(
        self,
        source_table: str,
        dest_table: str,
        partition_spec: PartitionSpec | None = None,
    ) -> list[str]:
        """
        Columns present in both tables, in the destination's order, with
        partition keys removed. Columns found on only one side are dropped
        silently.
        """
        src_fields = set(self.resolve_table_schema(source_table))
        dest_fields = self.resolve_table_schema(dest_table)

        common = [f for f in dest_fields if f in src_fields]

        if partition_spec is not None:
            keys = set(partition_spec.key_names())
            common = [f for f in common if f not in keys]

        if not common:
            logger.warning(
                f"No common columns between {source_table} and {dest_table}"
            )
        return common
