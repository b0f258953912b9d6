"""Runtime configuration for mergesync.

This module provides a centralized RuntimeOptions class that encapsulates
all runtime configuration, replacing scattered environment variable checks.

Usage:
    # Create with defaults (reads from environment)
    options = RuntimeOptions.from_environment()

    # Create with explicit values (for testing/DI)
    options = RuntimeOptions(
        default_database="default",
        enable_dynamic_partitions=True,
        recover_stale_sync=True,
    )

    # Pass to the engine or the job runner
    engine = TableMergeSyncEngine(connection, runtime_options=options)
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from mergesync.common.constants import DEFAULT_DATABASE, FEED_VALUE_PATTERN


@dataclass
class RuntimeOptions:
    """Centralized runtime configuration for merge/sync runs.

    Attributes:
        default_database: Namespace switched to before describing tables.
        enable_dynamic_partitions: Issue the Hive dynamic partition settings
            before running jobs.
        recover_stale_sync: Clean up (or finish) interrupted syncs before
            starting a new one on the same target.
        feed_value_pattern: Regex every feed partition value must match.
    """

    default_database: str = DEFAULT_DATABASE
    enable_dynamic_partitions: bool = True
    recover_stale_sync: bool = False
    feed_value_pattern: str = FEED_VALUE_PATTERN

    @classmethod
    def from_environment(cls) -> RuntimeOptions:
        """Create RuntimeOptions from environment variables.

        Environment Variables:
            MERGESYNC_DEFAULT_DATABASE: Namespace used while describing tables.
            MERGESYNC_ENABLE_DYNAMIC_PARTITIONS: '0' to skip the Hive settings.
            MERGESYNC_RECOVER_STALE_SYNC: '1' to recover interrupted syncs.
            MERGESYNC_FEED_VALUE_PATTERN: Override the feed value validator.

        Returns:
            RuntimeOptions instance configured from environment.
        """

        def _flag(env_var: str, default: bool) -> bool:
            """Parse feature flag: '1' -> True, '0' -> False, missing -> default."""
            val = os.environ.get(env_var)
            if val == "1":
                return True
            if val == "0":
                return False
            return default

        return cls(
            default_database=os.environ.get(
                "MERGESYNC_DEFAULT_DATABASE", DEFAULT_DATABASE
            ),
            enable_dynamic_partitions=_flag("MERGESYNC_ENABLE_DYNAMIC_PARTITIONS", True),
            recover_stale_sync=_flag("MERGESYNC_RECOVER_STALE_SYNC", False),
            feed_value_pattern=os.environ.get(
                "MERGESYNC_FEED_VALUE_PATTERN", FEED_VALUE_PATTERN
            ),
        )
