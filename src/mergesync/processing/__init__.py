"""
mergesync Processing Module.

SQL generation and metadata inspection used by the merge/sync engine.
"""

from mergesync.processing.batch_planner import BatchPlanner
from mergesync.processing.query_builder import HiveQueryBuilder, QueryBuilder
from mergesync.processing.schema import SchemaResolver

__all__ = [
    "BatchPlanner",
    "HiveQueryBuilder",
    "QueryBuilder",
    "SchemaResolver",
]
