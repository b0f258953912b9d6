from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from mergesync.common.constants import PROCESSING_DTTM_COLUMN
from mergesync.common.errors import ValidationError
from mergesync.partition import PartitionBatch, PartitionSpec


class QueryBuilder(ABC):
    """
    Abstract base class for the SQL shapes used by merge and sync.

    One method per shape; the engine picks the shape, the builder owns the
    dialect. Inputs are assumed validated (table names, feed value).
    """

    @abstractmethod
    def sync_non_partitioned(
        self, select_fields: Sequence[str], source_table: str, target_table: str, feed_value: str
    ) -> str:
        """Replace the whole target with the feed's rows."""

    @abstractmethod
    def sync_partitioned(
        self,
        select_fields: Sequence[str],
        spec: PartitionSpec,
        source_table: str,
        target_table: str,
        feed_value: str,
    ) -> str:
        """Replace the target with the feed's rows, routed into dynamic partitions."""

    @abstractmethod
    def merge_non_partitioned(
        self, select_fields: Sequence[str], source_table: str, target_table: str, feed_value: str
    ) -> str:
        """Append the feed's rows."""

    @abstractmethod
    def merge_non_partitioned_dedupe(
        self, select_fields: Sequence[str], source_table: str, target_table: str, feed_value: str
    ) -> str:
        """Rewrite the target as the distinct union of existing and new rows."""

    @abstractmethod
    def merge_partitioned(
        self,
        select_fields: Sequence[str],
        spec: PartitionSpec,
        source_table: str,
        target_table: str,
        feed_value: str,
    ) -> str:
        """Append the feed's rows into dynamic partitions."""

    @abstractmethod
    def merge_partitioned_dedupe(
        self,
        select_fields: Sequence[str],
        spec: PartitionSpec,
        batches: Sequence[PartitionBatch],
        source_table: str,
        target_table: str,
        feed_value: str,
    ) -> str:
        """Rewrite only the partitions touched by the feed, without duplicates."""


class HiveQueryBuilder(QueryBuilder):
    """
    HiveQL rendering of the merge and sync shapes.

    Spacing of the generated statements is stable; callers and tests may
    compare them literally.
    """

    def sync_non_partitioned(self, select_fields, source_table, target_table, feed_value):
        select_sql = _select_sql(select_fields)
        return (
            f"insert overwrite table {target_table}  select {select_sql}"
            f" from {source_table} {_feed_filter(feed_value)} "
        )

    def sync_partitioned(self, select_fields, spec, source_table, target_table, feed_value):
        select_sql = _select_sql(select_fields)
        return (
            f"insert overwrite table {target_table} {spec.dynamic_partition_clause()}"
            f" select {select_sql},{spec.dynamic_select_clause()}"
            f" from {source_table}  where  {PROCESSING_DTTM_COLUMN}='{feed_value}'"
        )

    def merge_non_partitioned(self, select_fields, source_table, target_table, feed_value):
        select_sql = _select_sql(select_fields)
        return (
            f"insert into {target_table}  select {select_sql}"
            f" from {source_table} {_feed_filter(feed_value)} "
        )

    def merge_non_partitioned_dedupe(self, select_fields, source_table, target_table, feed_value):
        select_sql = _select_sql(select_fields)
        return (
            f"insert overwrite table {target_table}  select {select_sql} from ("
            f" select {select_sql} from {source_table} {_feed_filter(feed_value)} "
            f" union all "
            f" select {select_sql} from {target_table}"
            f") x group by {select_sql}"
        )

    def merge_partitioned(self, select_fields, spec, source_table, target_table, feed_value):
        select_sql = _select_sql(select_fields)
        return (
            f"insert into table {target_table} {spec.dynamic_partition_clause()}"
            f" select {select_sql},{spec.dynamic_select_clause()}"
            f" from {source_table}  where  {PROCESSING_DTTM_COLUMN}='{feed_value}'"
        )

    def merge_partitioned_dedupe(
        self, select_fields, spec, batches, source_table, target_table, feed_value
    ):
        if not batches:
            raise ValidationError("Partitioned dedupe requires at least one partition batch")
        select_sql = _select_sql(select_fields)
        partition_sql = spec.partition_select_clause()
        target_where = " or ".join(f"({b.target_where_clause()})" for b in batches)
        return (
            f"insert overwrite table {target_table} {spec.dynamic_partition_clause()}"
            f" select DISTINCT {select_sql},{partition_sql} from ("
            f" select {select_sql},{spec.dynamic_select_clause()}"
            f" from {source_table}  where  {PROCESSING_DTTM_COLUMN}='{feed_value}'"
            f" union all "
            f" select {select_sql},{partition_sql}"
            f" from {target_table}  where {target_where}) t"
        )


def _select_sql(select_fields: Sequence[str]) -> str:
    return ",".join(select_fields)


def _feed_filter(feed_value: str) -> str:
    return f"where {PROCESSING_DTTM_COLUMN}='{feed_value}'"
