"""JobRunner - sequential, config-driven merge and sync runs.

Runs one or more table jobs (YAML files or TableJobConfig objects) against a
single connection, one after another. Statements on a connection are
serialized by the engine anyway, and two jobs on the same target table must
never overlap.

Example:
    from mergesync import JobRunner, SparkSqlConnection

    runner = JobRunner(
        ["jobs/employees_merge.yml", "jobs/departments_sync.yml"],
        connection=SparkSqlConnection(),
    )
    summary = runner.run(feed_partition_value="1476201123123")
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from mergesync.common.config import ConfigLoader, TableJobConfig
from mergesync.common.errors import ConfigurationError, MergeSyncError
from mergesync.common.runtime import RuntimeOptions
from mergesync.connection import SqlConnection
from mergesync.orchestration.engine import TableMergeSyncEngine

logger = logging.getLogger(__name__)


@dataclass
class JobResult:
    """Result of a single merge or sync job."""

    job_name: str
    mode: str
    target_table: str
    status: str  # SUCCESS, FAILED, SKIPPED
    partitions: list[tuple[str, ...]] = field(default_factory=list)
    rows_merged: int = 0
    duration_seconds: float = 0.0
    error_message: str | None = None
    retriable: bool = False


@dataclass
class ExecutionSummary:
    """Summary of the entire run."""

    total_jobs: int
    successful: int
    failed: int
    skipped: int
    total_duration_seconds: float
    results: list[JobResult] = field(default_factory=list)

    def __str__(self) -> str:
        return (
            f"Execution Summary:\n"
            f"  Total Jobs: {self.total_jobs}\n"
            f"  Successful: {self.successful}\n"
            f"  Failed: {self.failed}\n"
            f"  Skipped: {self.skipped}\n"
            f"  Total Duration: {self.total_duration_seconds:.1f}s"
        )


class JobRunner:
    """
    Sequential runner for table merge/sync jobs.

    Args:
        jobs: Paths to YAML job configs, or TableJobConfig objects.
        connection: Connection shared by every job; not closed by the runner.
        runtime_options: Runtime configuration; read from the environment if omitted.
        stop_on_failure: Skip the remaining jobs after the first failure (default: True).
        config_loader: Loader used for YAML paths.
    """

    def __init__(
        self,
        jobs: list[str | TableJobConfig],
        connection: SqlConnection,
        runtime_options: RuntimeOptions | None = None,
        stop_on_failure: bool = True,
        config_loader: ConfigLoader | None = None,
    ):
        self.runtime_options = runtime_options or RuntimeOptions.from_environment()
        self.stop_on_failure = stop_on_failure
        self.config_loader = config_loader or ConfigLoader()
        self.jobs = [self._load(j) for j in jobs]
        self.engine = self._create_engine(connection)

    def _create_engine(self, connection: SqlConnection) -> TableMergeSyncEngine:
        """Factory method for the engine. Can be overridden for testing."""
        return TableMergeSyncEngine(connection, runtime_options=self.runtime_options)

    def _load(self, job: str | TableJobConfig) -> TableJobConfig:
        if isinstance(job, TableJobConfig):
            return job
        return self.config_loader.load_config(job)

    def run_job(
        self, config: TableJobConfig, feed_partition_value: str | None = None
    ) -> JobResult:
        """Execute a single job and return the result. Failures are reported, not raised."""
        start_time = time.time()
        feed_value = feed_partition_value or config.feed_partition_value

        try:
            if feed_value is None:
                raise ConfigurationError(
                    f"No feed_partition_value for job {config.name}",
                    {"job": config.name},
                )
            logger.info(f"  Starting: {config.name} (feed {feed_value})")
            spec = config.partition_spec()
            batches = []
            if config.mode == "sync":
                if self.runtime_options.recover_stale_sync:
                    self.engine.recover_sync(config.target_table)
                self.engine.sync(config.source_table, config.target_table, spec, feed_value)
            else:
                batches = self.engine.merge(
                    config.source_table, config.target_table, spec, feed_value, config.dedupe
                )
            duration = time.time() - start_time
            logger.info(f"  Completed: {config.name} ({duration:.1f}s, {len(batches)} partitions)")

            return JobResult(
                job_name=config.name,
                mode=config.mode,
                target_table=config.target_table,
                status="SUCCESS",
                partitions=[b.partition_values for b in batches],
                rows_merged=sum(b.row_count for b in batches),
                duration_seconds=duration,
            )

        except MergeSyncError as e:
            duration = time.time() - start_time
            error_msg = f"{type(e).__name__}: {str(e)}"
            logger.error(f"  Failed: {config.name} - {error_msg}")

            return JobResult(
                job_name=config.name,
                mode=config.mode,
                target_table=config.target_table,
                status="FAILED",
                duration_seconds=duration,
                error_message=error_msg,
                retriable=e.retriable,
            )

    def run(self, feed_partition_value: str | None = None) -> ExecutionSummary:
        """
        Execute all jobs in order.

        Args:
            feed_partition_value: Feed to apply; overrides the value in each config.

        Returns:
            ExecutionSummary with results for all jobs
        """
        overall_start = time.time()
        results: list[JobResult] = []

        logger.info(f"Running {len(self.jobs)} merge/sync jobs")
        if self.runtime_options.enable_dynamic_partitions:
            self.engine.enable_dynamic_partitions()

        failed = False
        for config in self.jobs:
            if failed and self.stop_on_failure:
                results.append(
                    JobResult(
                        job_name=config.name,
                        mode=config.mode,
                        target_table=config.target_table,
                        status="SKIPPED",
                        error_message="Skipped due to earlier failure",
                    )
                )
                continue
            result = self.run_job(config, feed_partition_value)
            results.append(result)
            failed = failed or result.status == "FAILED"

        summary = ExecutionSummary(
            total_jobs=len(results),
            successful=len([r for r in results if r.status == "SUCCESS"]),
            failed=len([r for r in results if r.status == "FAILED"]),
            skipped=len([r for r in results if r.status == "SKIPPED"]),
            total_duration_seconds=time.time() - overall_start,
            results=results,
        )
        logger.info(summary)
        return summary
