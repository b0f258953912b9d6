from __future__ import annotations

import re

from mergesync.common.constants import FEED_VALUE_PATTERN, IDENTIFIER_PATTERN
from mergesync.common.errors import ValidationError


def is_valid_identifier(name: str) -> bool:
    """Validate that a name is a safe SQL identifier."""
    return bool(re.match(IDENTIFIER_PATTERN, name or ""))


def validate_table_name(table_name: str, qualified: bool = False) -> str:
    """
    Validate a one or two part table name.

    - 'table' is accepted unless ``qualified`` is set
    - 'schema.table' is always accepted
    """
    if not table_name:
        raise ValidationError("Table name must not be empty")
    parts = table_name.split(".")
    if qualified and len(parts) != 2:
        raise ValidationError(
            f"Expecting qualified table name schema.table, got: {table_name}"
        )
    if len(parts) > 2 or not all(is_valid_identifier(p) for p in parts):
        raise ValidationError(f"Invalid table name: {table_name}")
    return table_name


def split_qualified_name(table_name: str) -> tuple[str, str]:
    """Split 'schema.table' into its two parts."""
    validate_table_name(table_name, qualified=True)
    schema, table = table_name.split(".")
    return schema, table


def validate_feed_value(value: str | None, pattern: str = FEED_VALUE_PATTERN) -> str:
    """
    Reject feed partition values that could break out of the quoted literal.
    The value is interpolated into processing_dttm='<value>'.
    """
    if value is None:
        raise ValidationError("Feed partition value must not be None")
    if not re.match(pattern, value):
        raise ValidationError(f"Invalid feed partition value: {value!r}")
    return value


def escape_sql_string(value: str) -> str:
    """Escape a value for use inside a single-quoted Hive string literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")
