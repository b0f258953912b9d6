"""Lazy SparkSession accessor for Databricks/local compatibility.

mergesync can be imported without a running Spark driver (tests, DB-API
connections to HiveServer2); the session is only looked up when a Spark SQL
connection first issues a statement.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pyspark.sql import SparkSession


def get_spark() -> SparkSession:
    """Get SparkSession lazily.

    In Databricks: Returns the runtime-provided spark session.
    Outside Databricks: Falls back to a Hive-enabled
    SparkSession.builder.getOrCreate().

    Returns:
        Active SparkSession instance.

    Raises:
        RuntimeError: If no SparkSession can be obtained.
    """
    try:
        from databricks.sdk.runtime import spark

        return spark
    except ImportError:
        from pyspark.sql import SparkSession

        return SparkSession.builder.enableHiveSupport().getOrCreate()
    except Exception as e:
        # databricks-sdk installed, but not running inside a Databricks runtime
        try:
            from pyspark.sql import SparkSession

            return SparkSession.builder.enableHiveSupport().getOrCreate()
        except ImportError:
            raise RuntimeError(
                "No SparkSession available. Either run in Databricks or install pyspark."
            ) from e
