"""
mergesync Error Classification

Errors are divided into two categories:
- RetriableError: Transient issues that may succeed on retry (engine/environment issues)
- NonRetriableError: Permanent issues that won't succeed on retry (bad input, bad SQL)

Nothing in mergesync retries on its own. The classification is exposed so
that callers can decide whether to re-run a merge or sync from scratch.
"""

from __future__ import annotations


class MergeSyncError(Exception):
    """Base exception for all mergesync errors."""

    retriable = False

    def __init__(self, message: str, details: dict[str, str] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# =============================================================================
# RETRIABLE / NON-RETRIABLE BASES
# =============================================================================


class RetriableError(MergeSyncError):
    """Errors that may succeed on retry (transient environment issues)."""

    retriable = True


class NonRetriableError(MergeSyncError):
    """Errors that will NOT succeed on retry (code/data issues)."""

    retriable = False


class ValidationError(NonRetriableError):
    """Bad or missing arguments, detected before any SQL is issued.

    Examples:
    - Empty source or target table name
    - Sync target not qualified as schema.table
    - Feed partition value carrying quotes or other unsafe characters
    """

    pass


class ConfigurationError(NonRetriableError):
    """Invalid YAML job configuration.

    Examples:
    - Missing source_table / target_table
    - dedupe requested for a sync job
    - Malformed partition key definition
    """

    pass


# =============================================================================
# EXECUTION ERRORS - carry the failing SQL and the engine's root cause
# =============================================================================


class ExecutionError(MergeSyncError):
    """A statement or query failed at the engine level.

    The failing SQL text is kept on ``sql`` and in ``details["sql"]``; the
    engine exception is chained as ``__cause__`` by the raiser. Whether the
    failure is worth retrying is decided from the cause message.
    """

    def __init__(
        self,
        message: str,
        sql: str | None = None,
        cause: BaseException | None = None,
        details: dict[str, str] | None = None,
    ):
        details = dict(details or {})
        if sql is not None:
            details["sql"] = sql
        if cause is not None:
            details["original_error"] = str(cause)
        super().__init__(message, details)
        self.sql = sql
        self.cause = cause
        self.retriable = cause is not None and is_retriable(cause)

    def __str__(self) -> str:
        parts = [self.message]
        if self.sql:
            parts.append(f"[sql: {self.sql}]")
        if self.cause is not None:
            parts.append(f"[cause: {self.cause}]")
        return " ".join(parts)


class SchemaResolutionError(ExecutionError):
    """Table metadata could not be read.

    Usually the table does not exist or the describe statement was rejected.
    """

    pass


class LocationNotFoundError(ExecutionError):
    """No storage location row was found for the sync target table."""

    pass


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def is_retriable(error: BaseException) -> bool:
    """Check if an error is retriable."""
    if isinstance(error, MergeSyncError):
        return error.retriable

    # Known Hive/Spark transient failures
    error_msg = str(error).lower()
    retriable_patterns = [
        "lock",
        "concurrent",
        "timeout",
        "timed out",
        "connection reset",
        "connection refused",
        "broken pipe",
        "executor lost",
    ]
    return any(pattern in error_msg for pattern in retriable_patterns)


def wrap_exception(
    original: BaseException, sql: str | None = None
) -> ExecutionError:
    """Wrap an engine exception in the appropriate ExecutionError type."""
    if isinstance(original, ExecutionError):
        return original

    error_msg = str(original).lower()

    if "table not found" in error_msg or "table or view not found" in error_msg:
        return SchemaResolutionError("Missing table", sql=sql, cause=original)

    return ExecutionError("Failed to execute query", sql=sql, cause=original)
