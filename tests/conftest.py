from unittest.mock import MagicMock

import pytest

from mergesync.common.runtime import RuntimeOptions
from mergesync.orchestration.engine import TableMergeSyncEngine


@pytest.fixture
def connection():
    """A SqlConnection stand-in; queries return no rows unless scripted."""
    conn = MagicMock(spec=["execute", "query"])
    conn.query.return_value = []
    return conn


@pytest.fixture
def scripted_queries(connection):
    """Install query results keyed by SQL prefix (first match wins)."""

    def _install(responses):
        def _query(sql):
            for prefix, rows in responses.items():
                if sql.startswith(prefix):
                    return rows
            return []

        connection.query.side_effect = _query

    return _install


@pytest.fixture
def runtime_options():
    return RuntimeOptions(
        default_database="default",
        enable_dynamic_partitions=True,
        recover_stale_sync=False,
    )


@pytest.fixture
def engine(connection, runtime_options):
    return TableMergeSyncEngine(connection, runtime_options=runtime_options)
