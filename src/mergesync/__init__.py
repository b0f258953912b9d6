from mergesync.connection import DbApiConnection, SparkSqlConnection, SqlConnection
from mergesync.partition import PartitionBatch, PartitionKey, PartitionSpec
from mergesync.orchestration.engine import SyncRecovery, SyncState, TableMergeSyncEngine
from mergesync.orchestration.runner import ExecutionSummary, JobResult, JobRunner
from mergesync.common.config import ConfigLoader, TableJobConfig
from mergesync.common.runtime import RuntimeOptions
from mergesync.common.errors import (
    MergeSyncError,
    RetriableError,
    NonRetriableError,
    ValidationError,
    ConfigurationError,
    ExecutionError,
    SchemaResolutionError,
    LocationNotFoundError,
)

__all__ = [
    "TableMergeSyncEngine",
    "SyncState",
    "SyncRecovery",
    "JobRunner",
    "JobResult",
    "ExecutionSummary",
    # Connections
    "SqlConnection",
    "SparkSqlConnection",
    "DbApiConnection",
    # Partitions
    "PartitionKey",
    "PartitionSpec",
    "PartitionBatch",
    # Configuration
    "ConfigLoader",
    "TableJobConfig",
    "RuntimeOptions",
    # Errors
    "MergeSyncError",
    "RetriableError",
    "NonRetriableError",
    "ValidationError",
    "ConfigurationError",
    "ExecutionError",
    "SchemaResolutionError",
    "LocationNotFoundError",
]
