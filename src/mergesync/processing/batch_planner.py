"""
Partition batch discovery for deduplicating merges.

Only partitions that receive new rows in the current feed are rewritten by a
partitioned dedupe merge; this module finds them.
"""

from __future__ import annotations

import logging

from mergesync.common.errors import ExecutionError
from mergesync.connection import Row, SqlConnection
from mergesync.partition import PartitionBatch, PartitionSpec

logger = logging.getLogger(__name__)


class BatchPlanner:
    def __init__(self, connection: SqlConnection):
        self.connection = connection

    def create_partition_batches(
        self, spec: PartitionSpec, source_table: str, feed_value: str
    ) -> list[PartitionBatch]:
        """
        Query the distinct partition values present in the feed's source rows.

        Returns one PartitionBatch per distinct combination, in result-set
        order. The engine defines that order; it is usually not sorted.
        """
        sql = spec.distinct_partition_query(source_table, feed_value)
        logger.info(f"Executing batch query [{sql}]")
        try:
            rows = self.connection.query(sql)
        except Exception as e:
            logger.error(f"Failed to select partition batches SQL {sql} with error {e}")
            raise ExecutionError("Failed to select partition batches", sql=sql, cause=e) from e

        batches = self.to_partition_batches(spec, rows)
        logger.info(f"Number of partitions [{len(batches)}]")
        return batches

    @staticmethod
    def to_partition_batches(spec: PartitionSpec, rows: list[Row]) -> list[PartitionBatch]:
        """Leading cells are partition values (None -> ""), the last is the row count."""
        batches = []
        for row in rows:
            *values, count = row
            batches.append(
                PartitionBatch(
                    row_count=int(count) if count else 0,
                    partition_spec=spec,
                    partition_values=tuple(v if v is not None else "" for v in values),
                )
            )
        return batches
