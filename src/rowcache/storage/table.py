# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Wide-column table interface (driver boundary).

This module defines the minimal async row API the cache layer needs from a
wide-column store driver:
- point and batched reads, optionally filtered by a single column predicate,
- unconditional and conditional point writes, batched writes,
- point updates with atomic numeric increments,
- unconditional and conditional point deletes.

A row is addressed by a single string primary key and carries flat attribute
columns. Conditions are evaluated by the store against the current row state
atomically with the mutation. A failed condition MUST be reported as
`ConditionCheckFailed`; every other store failure as a plain `TableError`.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Final, Mapping, Protocol, Sequence, runtime_checkable

from ..core.types import Number, RowKey, TableName


__all__ = [
    "CONDITION_CHECK_FAIL",
    "TableError",
    "ConditionCheckFailed",
    "RowExistence",
    "Comparator",
    "ColumnCondition",
    "Condition",
    "PrimaryKey",
    "Row",
    "RowPut",
    "TableClient",
]


# Error code the store attaches to a failed row condition.
CONDITION_CHECK_FAIL: Final[str] = "OTSConditionCheckFail"


class TableError(RuntimeError):
    """
    Any failure reported by the store or its transport.

    Attributes:
        code: store error code (e.g. "OTSServerBusy"), or a driver-chosen code
              for transport failures.
        message: human readable detail.
    """

    def __init__(self, code: str, message: str = "") -> None:
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}" if message else code)


class ConditionCheckFailed(TableError):
    """The row condition (existence or column predicate) did not hold."""

    def __init__(self, message: str = "Condition check failed.") -> None:
        super().__init__(CONDITION_CHECK_FAIL, message)


class RowExistence(str, Enum):
    """Expectation about the row's existence, checked before a mutation."""

    IGNORE = "IGNORE"
    EXPECT_EXIST = "EXPECT_EXIST"
    EXPECT_NOT_EXIST = "EXPECT_NOT_EXIST"


class Comparator(str, Enum):
    """Relational operator of a single-column predicate (`column <op> value`)."""

    EQUAL = "EQUAL"
    NOT_EQUAL = "NOT_EQUAL"
    GREATER_THAN = "GREATER_THAN"
    GREATER_EQUAL = "GREATER_EQUAL"
    LESS_THAN = "LESS_THAN"
    LESS_EQUAL = "LESS_EQUAL"


@dataclass(frozen=True)
class ColumnCondition:
    """
    Single-column value predicate: `row[column] <comparator> value`.

    Attributes:
        filter_if_missing: when True (the store default) a row lacking the
            column fails the predicate; when False such a row passes it.
            Rows that do not exist at all are treated as lacking every column.
    """

    column: str
    comparator: Comparator
    value: Any
    filter_if_missing: bool = True


@dataclass(frozen=True)
class Condition:
    """Row condition attached to a write: existence expectation plus optional column predicate."""

    existence: RowExistence = RowExistence.IGNORE
    column: ColumnCondition | None = None


# (primary key column name, key value); tables have a single string primary key.
PrimaryKey = tuple[str, RowKey]

# Decoded row: column name -> value, primary key column included.
Row = dict[str, Any]


@dataclass(frozen=True)
class RowPut:
    """One put inside a batched write."""

    key: PrimaryKey
    attributes: Mapping[str, Any] = field(default_factory=dict)
    condition: Condition | None = None


@runtime_checkable
class TableClient(Protocol):
    """
    Minimal async row API of a wide-column store.

    Notes:
        - `key` is a `(column, value)` pair addressing the single string primary key.
        - Returned rows include the primary key column next to the attributes.
        - Batched calls are one round trip but NOT a transaction; each row is
          applied or rejected independently.
        - Drivers raise `ConditionCheckFailed` for failed conditions and
          `TableError` for everything else; they never return error sentinels.
    """

    async def get_row(
        self,
        table: TableName,
        key: PrimaryKey,
        *,
        column_filter: ColumnCondition | None = None,
    ) -> Row | None:
        """Return the row, or None when it does not exist or fails `column_filter`."""

    async def batch_get_row(
        self,
        table: TableName,
        keys: Sequence[PrimaryKey],
        *,
        column_filter: ColumnCondition | None = None,
    ) -> list[Row | None]:
        """
        Read many rows in a single request. The result is aligned with `keys`;
        absent or filtered rows are None.
        """

    async def put_row(
        self,
        table: TableName,
        key: PrimaryKey,
        attributes: Mapping[str, Any],
        *,
        condition: Condition | None = None,
    ) -> None:
        """Replace the whole row (upsert) if `condition` holds."""

    async def batch_write_row(self, table: TableName, puts: Sequence[RowPut]) -> None:
        """
        Write many rows in a single request. Raises `TableError` if any row
        was rejected.
        """

    async def update_row(
        self,
        table: TableName,
        key: PrimaryKey,
        *,
        put: Mapping[str, Any] | None = None,
        increment: Mapping[str, Number] | None = None,
        condition: Condition | None = None,
    ) -> Row:
        """
        Update columns in place if `condition` holds. Increments are applied
        atomically by the store. Returns the post-update values of the
        incremented columns.
        """

    async def delete_row(
        self,
        table: TableName,
        key: PrimaryKey,
        *,
        condition: Condition | None = None,
    ) -> None:
        """Delete the row if `condition` holds. Deleting an absent row with no condition succeeds."""
