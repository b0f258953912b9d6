"""
SQL connections used by the merge/sync engine.

The engine only needs two things from a connection: run a statement, and
run a query returning rows of string-or-None cells. Two adapters are
provided:

- SparkSqlConnection: Spark SQL with Hive support (Databricks or local)
- DbApiConnection: any PEP 249 connection, e.g. a HiveServer2 driver

Connections are owned by the caller; neither adapter closes the underlying
session or connection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from mergesync.common.errors import wrap_exception
from mergesync.common.exceptions import PYSPARK_EXCEPTION_BASE
from mergesync.common.spark_session import get_spark

if TYPE_CHECKING:
    from pyspark.sql import SparkSession

Row = tuple[str | None, ...]


class SqlConnection(Protocol):
    """Minimal executor of statements and queries."""

    def execute(self, sql: str) -> None: ...

    def query(self, sql: str) -> list[Row]: ...


def _to_cell(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


class SparkSqlConnection:
    """
    Runs statements through SparkSession.sql.

    Supports dependency injection of SparkSession for testability.

    Args:
        spark_session: Optional SparkSession. If not provided, the session is
                       looked up lazily (Databricks runtime first, then a local
                       Hive-enabled builder).
    """

    def __init__(self, spark_session: SparkSession | None = None):
        self._spark = spark_session

    @property
    def spark(self) -> SparkSession:
        if self._spark is None:
            self._spark = get_spark()
        return self._spark

    def execute(self, sql: str) -> None:
        try:
            self.spark.sql(sql)
        except PYSPARK_EXCEPTION_BASE as e:
            raise wrap_exception(e, sql) from e

    def query(self, sql: str) -> list[Row]:
        try:
            rows = self.spark.sql(sql).collect()
        except PYSPARK_EXCEPTION_BASE as e:
            raise wrap_exception(e, sql) from e
        return [tuple(_to_cell(v) for v in row) for row in rows]


class DbApiConnection:
    """
    Adapts a PEP 249 connection. A cursor is opened per statement and closed
    as soon as the statement (and its fetch) completes.

    Driver errors are recognised through the optional ``Error`` attribute of
    the connection (PEP 249 extension); drivers without it are treated as
    raising any Exception.
    """

    def __init__(self, connection: Any):
        if connection is None:
            raise ValueError("connection must not be None")
        self.connection = connection
        error_type = getattr(connection, "Error", None)
        if not (isinstance(error_type, type) and issubclass(error_type, BaseException)):
            error_type = Exception
        self._error_types: type[BaseException] = error_type

    def execute(self, sql: str) -> None:
        cursor = self.connection.cursor()
        try:
            cursor.execute(sql)
        except self._error_types as e:
            raise wrap_exception(e, sql) from e
        finally:
            cursor.close()

    def query(self, sql: str) -> list[Row]:
        cursor = self.connection.cursor()
        try:
            cursor.execute(sql)
            rows = cursor.fetchall()
        except self._error_types as e:
            raise wrap_exception(e, sql) from e
        finally:
            cursor.close()
        return [tuple(_to_cell(v) for v in row) for row in rows]
