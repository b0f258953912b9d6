"""Engine exception types the Spark connection adapter catches.

PYSPARK_EXCEPTION_BASE is resolved once at import. Anything raised by
``SparkSession.sql`` that derives from it is wrapped into an ExecutionError
(see ``mergesync.common.errors.wrap_exception``); other exceptions, such as
a dead Py4J gateway, propagate unchanged.
"""

from __future__ import annotations

PYSPARK_EXCEPTION_BASE: type[Exception]

try:
    # PySpark 3.4+
    from pyspark.errors import PySparkException

    PYSPARK_EXCEPTION_BASE = PySparkException
except ImportError:
    from pyspark.sql.utils import AnalysisException

    PYSPARK_EXCEPTION_BASE = AnalysisException

__all__ = ["PYSPARK_EXCEPTION_BASE"]
