"""
Unit tests for JobRunner.

The engine is replaced by a mock; these tests cover job sequencing, result
reporting and the runtime options the runner honours.
"""

from unittest.mock import MagicMock

import pytest

from mergesync.common.config import TableJobConfig
from mergesync.common.errors import ExecutionError
from mergesync.common.runtime import RuntimeOptions
from mergesync.orchestration.engine import TableMergeSyncEngine
from mergesync.orchestration.runner import JobRunner
from mergesync.partition import PartitionBatch, PartitionSpec


@pytest.fixture
def merge_job():
    return TableJobConfig(
        source_table="db.emp_valid",
        target_table="db.emp",
        mode="merge",
        dedupe=True,
        partition_keys=["year|int|year(hired)"],
    )


@pytest.fixture
def sync_job():
    return TableJobConfig(source_table="db.dept_valid", target_table="db.dept", mode="sync")


def _runner(jobs, connection, **options):
    runner = JobRunner(jobs, connection, runtime_options=RuntimeOptions(**options))
    runner.engine = MagicMock(spec=TableMergeSyncEngine)
    return runner


def test_merge_job_reports_partitions(merge_job, connection):
    runner = _runner([merge_job], connection)
    spec = PartitionSpec.of(["year|int"])
    runner.engine.merge.return_value = [
        PartitionBatch(row_count=4, partition_spec=spec, partition_values=("2015",)),
        PartitionBatch(row_count=2, partition_spec=spec, partition_values=("2016",)),
    ]

    summary = runner.run(feed_partition_value="100")

    assert summary.successful == 1
    result = summary.results[0]
    assert result.status == "SUCCESS"
    assert result.partitions == [("2015",), ("2016",)]
    assert result.rows_merged == 6
    args = runner.engine.merge.call_args.args
    assert args[0] == "db.emp_valid"
    assert args[2].key_names() == ["year"]
    assert args[3:] == ("100", True)


def test_dynamic_partitions_enabled_once(merge_job, sync_job, connection):
    runner = _runner([merge_job, sync_job], connection)
    runner.engine.merge.return_value = []

    runner.run(feed_partition_value="100")

    runner.engine.enable_dynamic_partitions.assert_called_once()


def test_dynamic_partitions_can_be_disabled(merge_job, connection):
    runner = _runner([merge_job], connection, enable_dynamic_partitions=False)
    runner.engine.merge.return_value = []

    runner.run(feed_partition_value="100")

    runner.engine.enable_dynamic_partitions.assert_not_called()


def test_sync_recovers_first_when_enabled(sync_job, connection):
    runner = _runner([sync_job], connection, recover_stale_sync=True)

    summary = runner.run(feed_partition_value="100")

    assert summary.successful == 1
    runner.engine.recover_sync.assert_called_once_with("db.dept")
    runner.engine.sync.assert_called_once()
    assert runner.engine.sync.call_args.args[2].is_non_partitioned()


def test_missing_feed_value_fails_job(sync_job, connection):
    runner = _runner([sync_job], connection)

    result = runner.run_job(sync_job)

    assert result.status == "FAILED"
    assert "ConfigurationError" in result.error_message
    runner.engine.sync.assert_not_called()


def test_config_feed_value_used_when_not_overridden(connection):
    job = TableJobConfig(source_table="s.a", target_table="t.a", feed_partition_value="42")
    runner = _runner([job], connection)
    runner.engine.merge.return_value = []

    runner.run()

    assert runner.engine.merge.call_args.args[3] == "42"


def test_stop_on_failure_skips_remaining(merge_job, sync_job, connection):
    runner = _runner([merge_job, sync_job], connection)
    runner.engine.merge.side_effect = ExecutionError(
        "Failed to execute query", sql="insert", cause=RuntimeError("Lock wait timeout")
    )

    summary = runner.run(feed_partition_value="100")

    assert [r.status for r in summary.results] == ["FAILED", "SKIPPED"]
    assert summary.results[0].retriable
    runner.engine.sync.assert_not_called()


def test_continue_after_failure(merge_job, sync_job, connection):
    runner = _runner([merge_job, sync_job], connection)
    runner.stop_on_failure = False
    runner.engine.merge.side_effect = ExecutionError("Failed to execute query", sql="insert")

    summary = runner.run(feed_partition_value="100")

    assert [r.status for r in summary.results] == ["FAILED", "SUCCESS"]
    assert "Failed: 1" in str(summary)


def test_loads_yaml_jobs(tmp_path, connection):
    config_file = tmp_path / "job.yml"
    config_file.write_text("source_table: s.a\ntarget_table: t.a\n", encoding="utf-8")

    runner = _runner([str(config_file)], connection)

    assert runner.jobs[0].target_table == "t.a"
