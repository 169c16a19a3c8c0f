# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Driver-facing table interface consumed by the cache layer.
"""

from .table import (
    CONDITION_CHECK_FAIL,
    ColumnCondition,
    Comparator,
    Condition,
    ConditionCheckFailed,
    PrimaryKey,
    Row,
    RowExistence,
    RowPut,
    TableClient,
    TableError,
)

__all__ = [
    "CONDITION_CHECK_FAIL",
    "ColumnCondition",
    "Comparator",
    "Condition",
    "ConditionCheckFailed",
    "PrimaryKey",
    "Row",
    "RowExistence",
    "RowPut",
    "TableClient",
    "TableError",
]
