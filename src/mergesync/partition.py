"""
Partition model for merge and sync.

A PartitionSpec describes how a target table is partitioned and renders the
SQL fragments the query builder stitches together. A spec without keys is
the non-partitioned variant, so callers never branch on None.

Keys are written as ``key|type|formula``, for example::

    year|int|year(hired)
    country|string|country

``formula`` is evaluated against the source table to derive the partition
value; ``type`` decides whether values are rendered quoted.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from mergesync.common.constants import (
    NUMERIC_LITERAL_PATTERN,
    NUMERIC_TYPES,
    PARTITION_COUNT_ALIAS,
    PROCESSING_DTTM_COLUMN,
)
from mergesync.common.errors import ValidationError
from mergesync.common.utils import escape_sql_string, is_valid_identifier


@dataclass(frozen=True)
class PartitionKey:
    """One partition column of the target table."""

    key: str
    type: str = "string"
    formula: str = ""

    def __post_init__(self) -> None:
        if not is_valid_identifier(self.key):
            raise ValidationError(f"Invalid partition key name: {self.key!r}")
        if not self.type or not self.type.strip():
            raise ValidationError(f"Partition key {self.key} has no type")
        # Formula defaults to the column of the same name in the source
        if not self.formula:
            object.__setattr__(self, "formula", self.key)

    @classmethod
    def from_string(cls, value: str) -> PartitionKey:
        """Parse ``key|type|formula``; type and formula are optional."""
        parts = [p.strip() for p in value.split("|")]
        if not parts[0] or len(parts) > 3:
            raise ValidationError(f"Invalid partition key definition: {value!r}")
        key = parts[0]
        key_type = parts[1] if len(parts) > 1 and parts[1] else "string"
        formula = parts[2] if len(parts) > 2 else ""
        return cls(key=key, type=key_type, formula=formula)

    @property
    def is_numeric(self) -> bool:
        # decimal(10,2) -> decimal
        return self.type.lower().split("(")[0].strip() in NUMERIC_TYPES

    def to_literal(self, value: str) -> str:
        """Render a partition value as a SQL literal for this key's type."""
        if self.is_numeric:
            if not re.match(NUMERIC_LITERAL_PATTERN, value):
                raise ValidationError(
                    f"Partition value {value!r} is not valid for {self.type} key {self.key}"
                )
            return value
        return f"'{escape_sql_string(value)}'"

    def to_predicate(self, column: str, value: str) -> str:
        # Null partition values come back from discovery as empty strings
        if value == "":
            if self.is_numeric:
                return f"{column} is null"
            return f"({column} is null or {column}='')"
        return f"{column}={self.to_literal(value)}"


@dataclass(frozen=True)
class PartitionSpec:
    """Ordered partition keys of a table, able to render SQL fragments."""

    keys: tuple[PartitionKey, ...] = ()

    @classmethod
    def non_partitioned(cls) -> PartitionSpec:
        return cls(())

    @classmethod
    def of(cls, keys: Iterable[PartitionKey | str]) -> PartitionSpec:
        """Build a spec from PartitionKey objects or ``key|type|formula`` strings."""
        parsed = tuple(
            k if isinstance(k, PartitionKey) else PartitionKey.from_string(k)
            for k in keys
        )
        names = [k.key for k in parsed]
        if len(set(names)) != len(names):
            raise ValidationError(f"Duplicate partition keys: {names}")
        return cls(parsed)

    @classmethod
    def from_string(cls, value: str | None) -> PartitionSpec:
        """Parse newline separated key definitions; blank input is non-partitioned."""
        if not value:
            return cls.non_partitioned()
        return cls.of(line for line in value.splitlines() if line.strip())

    def key_names(self) -> list[str]:
        return [k.key for k in self.keys]

    def is_non_partitioned(self) -> bool:
        return not self.keys

    def dynamic_partition_clause(self) -> str:
        """``partition (k1,k2)`` for a dynamic partition insert."""
        return f"partition ({self.partition_select_clause()})"

    def dynamic_select_clause(self) -> str:
        """Source expressions deriving each key, aliased to the key name."""
        return ",".join(f"{k.formula} {k.key}" for k in self.keys)

    def partition_select_clause(self) -> str:
        """Key columns as they are stored in the target table."""
        return ",".join(self.key_names())

    def static_partition_clause(self, values: Sequence[str]) -> str:
        """``partition (k1=v1,k2='v2')`` for a single, fixed partition."""
        self._check_values(values)
        assignments = ",".join(
            f"{k.key}={k.to_literal(v)}" for k, v in zip(self.keys, values)
        )
        return f"partition ({assignments})"

    def source_where_clause(self, values: Sequence[str]) -> str:
        """Predicate selecting the given partition from the source table."""
        self._check_values(values)
        return " and ".join(
            k.to_predicate(k.formula, v) for k, v in zip(self.keys, values)
        )

    def target_where_clause(self, values: Sequence[str]) -> str:
        """Predicate selecting the given partition from the target table."""
        self._check_values(values)
        return " and ".join(
            k.to_predicate(k.key, v) for k, v in zip(self.keys, values)
        )

    def distinct_partition_query(self, source_table: str, feed_value: str) -> str:
        """Distinct partition values present in one feed, with a row count each."""
        formulas = ",".join(k.formula for k in self.keys)
        return (
            f"select {formulas},count(0) as {PARTITION_COUNT_ALIAS} from {source_table}"
            f" where {PROCESSING_DTTM_COLUMN}='{feed_value}' group by {formulas}"
        )

    def _check_values(self, values: Sequence[str]) -> None:
        if len(values) != len(self.keys):
            raise ValidationError(
                f"Expected {len(self.keys)} partition values for {self.key_names()}, "
                f"got {len(values)}"
            )


@dataclass(frozen=True)
class PartitionBatch:
    """One partition of new source data: its key values and row count."""

    row_count: int
    partition_spec: PartitionSpec = field(repr=False)
    partition_values: tuple[str, ...]

    def __post_init__(self) -> None:
        if self.row_count < 0:
            raise ValidationError(f"Row count must be >= 0, got {self.row_count}")
        object.__setattr__(self, "partition_values", tuple(self.partition_values))

    def target_where_clause(self) -> str:
        return self.partition_spec.target_where_clause(self.partition_values)
