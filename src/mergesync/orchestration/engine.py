"""Merge and sync of ingested feed data into Hive warehouse tables.

Sync replaces the whole target table: a staging table is created next to the
target's storage location, populated from the feed, the old table is dropped
and the staging table renamed in its place. Consumers see a brief window in
which the target does not exist.

Merge appends the feed into the target, following the target's partitions.
With dedupe, duplicate rows (equal on every non-partition column) are
removed; for partitioned tables only the partitions receiving new rows are
rewritten.

NOTE: Sync is not transactional. A failure between dropping the old table
and renaming the staging table leaves the target absent; recover_sync()
finishes or discards such interrupted runs.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from enum import Enum

from mergesync.common.constants import (
    HIVE_CONF_DYNAMIC_PARTITION,
    HIVE_CONF_DYNAMIC_PARTITION_MODE,
    LOCATION_MARKER,
    STAGING_SUFFIX_PATTERN,
    TBLPROPERTY_EXTERNAL,
)
from mergesync.common.errors import (
    LocationNotFoundError,
    MergeSyncError,
    ValidationError,
    wrap_exception,
)
from mergesync.common.runtime import RuntimeOptions
from mergesync.common.utils import (
    split_qualified_name,
    validate_feed_value,
    validate_table_name,
)
from mergesync.connection import Row, SqlConnection
from mergesync.partition import PartitionBatch, PartitionSpec
from mergesync.processing.batch_planner import BatchPlanner
from mergesync.processing.query_builder import HiveQueryBuilder, QueryBuilder
from mergesync.processing.schema import SchemaResolver

logger = logging.getLogger(__name__)


class SyncState(Enum):
    VALIDATE = "validate"
    LOCATE = "locate"
    STAGE = "stage"
    POPULATE = "populate"
    DROP_OLD = "drop-old"
    RENAME_NEW = "rename-new"
    DONE = "done"


@dataclass
class SyncRecovery:
    """Outcome of recover_sync() for one target table."""

    target_table: str
    target_exists: bool
    staging_tables: list[str] = field(default_factory=list)
    restored_from: str | None = None
    dropped: list[str] = field(default_factory=list)

    @property
    def resumed(self) -> bool:
        return self.restored_from is not None


class TableMergeSyncEngine:
    """
    Coordinates merge and sync of a source table into a target table:
    1. Validate inputs
    2. Resolve common columns
    3. Choose the SQL shape (sync/merge, partitioned or not, dedupe or not)
    4. Execute, one statement at a time

    The connection belongs to the caller and is never closed here.

    Args:
        connection: SQL connection (Spark SQL or DB-API adapter).
        runtime_options: Runtime configuration; read from the environment if omitted.
        query_builder: SQL dialect, HiveQueryBuilder by default.
        schema_resolver: Column resolver, built on the connection by default.
        batch_planner: Partition discovery, built on the connection by default.
    """

    def __init__(
        self,
        connection: SqlConnection,
        runtime_options: RuntimeOptions | None = None,
        query_builder: QueryBuilder | None = None,
        schema_resolver: SchemaResolver | None = None,
        batch_planner: BatchPlanner | None = None,
    ):
        if connection is None:
            raise ValidationError("connection must not be None")
        self.connection = connection
        self.runtime_options = runtime_options or RuntimeOptions.from_environment()
        self.query_builder = query_builder or HiveQueryBuilder()
        self.schema_resolver = schema_resolver or SchemaResolver(
            connection, default_database=self.runtime_options.default_database
        )
        self.batch_planner = batch_planner or BatchPlanner(connection)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def enable_dynamic_partitions(self) -> None:
        self._execute(f"set {HIVE_CONF_DYNAMIC_PARTITION}=true")
        self._execute(f"set {HIVE_CONF_DYNAMIC_PARTITION_MODE}=nonstrict")

    def sync(
        self,
        source_table: str,
        fq_target_table: str,
        partition_spec: PartitionSpec | None,
        feed_partition_value: str,
    ) -> None:
        """
        Replace all data in the target table with the feed's rows.

        Args:
            source_table: Table holding ingested rows tagged by processing_dttm.
            fq_target_table: Target table, qualified as schema.table.
            partition_spec: Target partitioning; use PartitionSpec.non_partitioned()
                            for unpartitioned tables.
            feed_partition_value: processing_dttm value of the feed to apply.
        """
        state = SyncState.VALIDATE
        try:
            self._validate_sync(source_table, fq_target_table, partition_spec, feed_partition_value)
            schema, target_table = split_qualified_name(fq_target_table)
            millis = self._current_millis()

            state = self._transition(fq_target_table, SyncState.LOCATE)
            ref_table_location = self._extract_table_location(schema, target_table)

            state = self._transition(fq_target_table, SyncState.STAGE)
            sync_table_location = self._derive_sync_table_location(
                target_table, ref_table_location, millis
            )
            sync_table = self._create_sync_table(fq_target_table, sync_table_location, millis)

            state = self._transition(fq_target_table, SyncState.POPULATE)
            select_fields = self.get_select_fields(source_table, sync_table, partition_spec)
            if partition_spec.is_non_partitioned():
                sync_sql = self.query_builder.sync_non_partitioned(
                    select_fields, source_table, sync_table, feed_partition_value
                )
            else:
                sync_sql = self.query_builder.sync_partitioned(
                    select_fields, partition_spec, source_table, sync_table, feed_partition_value
                )
            self._execute(sync_sql)

            state = self._transition(fq_target_table, SyncState.DROP_OLD)
            self.drop_table(fq_target_table)

            state = self._transition(fq_target_table, SyncState.RENAME_NEW)
            self.rename_table(sync_table, fq_target_table)

            self._transition(fq_target_table, SyncState.DONE)
        except MergeSyncError as e:
            e.details["sync_state"] = state.value
            if state is SyncState.RENAME_NEW:
                logger.critical(
                    f"Sync of {fq_target_table} failed after the old table was dropped; "
                    f"the target is absent until recover_sync() is run"
                )
            else:
                logger.error(f"Sync of {fq_target_table} failed in state {state.value}: {e}")
            raise

    def merge(
        self,
        source_table: str,
        target_table: str,
        partition_spec: PartitionSpec | None,
        feed_partition_value: str,
        should_dedupe: bool = False,
    ) -> list[PartitionBatch]:
        """
        Append the feed's rows into the target table.

        Args:
            source_table: Table holding ingested rows tagged by processing_dttm.
            target_table: Target table.
            partition_spec: Target partitioning; None means non-partitioned.
            feed_partition_value: processing_dttm value of the feed to apply.
            should_dedupe: Strip rows duplicating existing target rows.

        Returns:
            Partition batches rewritten by a partitioned dedupe merge; empty
            for every other shape, and when the feed has no rows (in which
            case nothing is executed).
        """
        validate_table_name(source_table)
        validate_table_name(target_table)
        validate_feed_value(feed_partition_value, self.runtime_options.feed_value_pattern)
        spec = partition_spec or PartitionSpec.non_partitioned()

        batches: list[PartitionBatch] = []
        select_fields = self.get_select_fields(source_table, target_table, spec)
        sql = None
        if spec.is_non_partitioned():
            if should_dedupe:
                sql = self.query_builder.merge_non_partitioned_dedupe(
                    select_fields, source_table, target_table, feed_partition_value
                )
            else:
                sql = self.query_builder.merge_non_partitioned(
                    select_fields, source_table, target_table, feed_partition_value
                )
        else:
            if should_dedupe:
                batches = self.create_partition_batches(spec, source_table, feed_partition_value)
                if batches:
                    sql = self.query_builder.merge_partitioned_dedupe(
                        select_fields, spec, batches, source_table, target_table, feed_partition_value
                    )
                else:
                    logger.info(
                        f"No rows for feed {feed_partition_value} in {source_table}; "
                        f"nothing to merge into {target_table}"
                    )
            else:
                sql = self.query_builder.merge_partitioned(
                    select_fields, spec, source_table, target_table, feed_partition_value
                )

        if sql is not None:
            self._execute(sql)
        return batches

    def drop_table(self, table: str) -> None:
        """Drop a table together with its data (the table is made managed first)."""
        self._execute(
            f"alter table {table} SET TBLPROPERTIES ('{TBLPROPERTY_EXTERNAL}'='FALSE')"
        )
        self._execute(f"DROP TABLE {table}")

    def rename_table(self, old_name: str, new_name: str) -> None:
        self._execute(f"alter table {old_name} RENAME TO {new_name}")

    def recover_sync(self, fq_target_table: str) -> SyncRecovery:
        """
        Clean up after interrupted syncs of ``fq_target_table``.

        - Target missing, staging table present: the run failed between
          drop-old and rename-new, so the newest staging table is complete and
          is renamed into place. Older staging tables are dropped.
        - Otherwise every leftover staging table is dropped and the next sync
          starts again from staging.
        """
        schema, target_table = split_qualified_name(fq_target_table)
        staging_pattern = re.compile(
            rf"^{re.escape(target_table.lower())}{STAGING_SUFFIX_PATTERN}"
        )

        names = self._list_tables(schema, f"{target_table}*")
        target_exists = target_table.lower() in names
        staging = sorted(n for n in names if staging_pattern.match(n))
        recovery = SyncRecovery(
            target_table=fq_target_table,
            target_exists=target_exists,
            staging_tables=[f"{schema}.{n}" for n in staging],
        )
        if not staging:
            logger.info(f"No leftover staging tables for {fq_target_table}")
            return recovery

        to_drop = list(recovery.staging_tables)
        if not target_exists:
            # Millis suffixes share a width, so the last name is the newest
            newest = to_drop.pop()
            logger.warning(
                f"Target {fq_target_table} is missing; completing interrupted sync from {newest}"
            )
            self.rename_table(newest, fq_target_table)
            recovery.restored_from = newest

        for table in to_drop:
            logger.info(f"Dropping leftover staging table {table}")
            self.drop_table(table)
            recovery.dropped.append(table)
        return recovery

    # ------------------------------------------------------------------
    # Delegates
    # ------------------------------------------------------------------

    def resolve_table_schema(self, qualified_table_name: str) -> list[str]:
        return self.schema_resolver.resolve_table_schema(qualified_table_name)

    def get_select_fields(
        self, source_table: str, dest_table: str, partition_spec: PartitionSpec | None
    ) -> list[str]:
        return self.schema_resolver.get_select_fields(source_table, dest_table, partition_spec)

    def create_partition_batches(
        self, spec: PartitionSpec, source_table: str, feed_partition_value: str
    ) -> list[PartitionBatch]:
        return self.batch_planner.create_partition_batches(spec, source_table, feed_partition_value)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _validate_sync(
        self,
        source_table: str,
        fq_target_table: str,
        partition_spec: PartitionSpec | None,
        feed_partition_value: str,
    ) -> None:
        validate_table_name(source_table)
        validate_table_name(fq_target_table, qualified=True)
        if partition_spec is None:
            raise ValidationError(
                "partition_spec must not be None; use PartitionSpec.non_partitioned()"
            )
        validate_feed_value(feed_partition_value, self.runtime_options.feed_value_pattern)

    def _transition(self, fq_target_table: str, state: SyncState) -> SyncState:
        logger.info(f"Sync {fq_target_table}: {state.value}")
        return state

    def _execute(self, sql: str) -> None:
        logger.info(f"Executing sql {sql}")
        try:
            self.connection.execute(sql)
        except Exception as e:
            logger.error(f"Failed to execute {sql} with error {e}")
            raise wrap_exception(e, sql) from e

    def _query(self, sql: str) -> list[Row]:
        logger.info(f"Executing sql select {sql}")
        try:
            return self.connection.query(sql)
        except Exception as e:
            logger.error(f"Failed to execute {sql} with error {e}")
            raise wrap_exception(e, sql) from e

    def _list_tables(self, schema: str, pattern: str) -> set[str]:
        """Lower-cased table names in ``schema`` matching a Hive ``*`` pattern."""
        rows = self._query(f"show tables in {schema} like '{pattern}'")
        # Hive returns (tab_name), Spark (namespace, tableName, isTemporary)
        index = 1 if rows and len(rows[0]) > 1 else 0
        return {row[index].lower() for row in rows if row[index]}

    def _extract_table_location(self, schema: str, table: str) -> str:
        """Storage location of ``schema.table`` from ``show table extended``."""
        self._execute(f"use {schema}")
        sql = f"show table extended like {table}"
        for row in self._query(sql):
            # Hive returns one property per row, Spark one multi-line cell
            for cell in row:
                for line in (cell or "").splitlines():
                    line = line.strip()
                    if line.lower().startswith(LOCATION_MARKER):
                        return line[len(LOCATION_MARKER):].strip()
        raise LocationNotFoundError(
            f"Unable to identify HDFS location property of table [{table}]", sql=sql
        )

    def _derive_sync_table_location(self, table: str, old_location: str, millis: int) -> str:
        """Sibling of the old location named ``<table>_<millis>``."""
        parts = old_location.rstrip("/").split("/")
        parts[-1] = f"{table}_{millis}"
        return "/".join(parts)

    def _create_sync_table(self, table: str, sync_table_location: str, millis: int) -> str:
        sync_table = f"{table}_{millis}"
        self._execute(
            f"create external table {sync_table} like {table} location '{sync_table_location}'"
        )
        return sync_table

    def _current_millis(self) -> int:
        return int(time.time() * 1000)
