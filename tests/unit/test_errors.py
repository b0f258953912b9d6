import pytest

from mergesync.common.errors import (
    ConfigurationError,
    ExecutionError,
    MergeSyncError,
    NonRetriableError,
    SchemaResolutionError,
    ValidationError,
    is_retriable,
    wrap_exception,
)


@pytest.mark.parametrize(
    "message, expected",
    [
        ("Lock wait timeout exceeded", True),
        ("java.net.SocketException: Connection reset", True),
        ("Read timed out", True),
        ("ParseException: cannot recognize input near 'x'", False),
    ],
)
def test_is_retriable_by_message(message, expected):
    assert is_retriable(RuntimeError(message)) is expected


def test_validation_errors_are_not_retriable():
    assert not is_retriable(ValidationError("bad"))
    assert issubclass(ConfigurationError, NonRetriableError)


def test_wrap_exception_keeps_sql_and_cause():
    cause = RuntimeError("SemanticException")

    error = wrap_exception(cause, "insert into t select 1")

    assert type(error) is ExecutionError
    assert error.cause is cause
    assert error.details == {"sql": "insert into t select 1", "original_error": "SemanticException"}
    assert "[sql: insert into t select 1]" in str(error)


def test_wrap_exception_missing_table():
    error = wrap_exception(RuntimeError("Table not found 'emp'"), "desc db.emp")

    assert isinstance(error, SchemaResolutionError)


def test_wrap_exception_passes_through_execution_errors():
    original = ExecutionError("boom", sql="select 1")

    assert wrap_exception(original) is original


def test_base_error_details_default():
    error = MergeSyncError("x")

    assert error.details == {}
    assert error.message == "x"
