# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Error taxonomy for the cache layer.

Store-reported failures live in `rowcache.storage.table` (`TableError` and
its `ConditionCheckFailed` subclass). Only the condition-check failure is
translated into an ordinary return value by the cache; everything below is
raised to the caller.
"""


class RowCacheError(Exception):
    """Base class for all rowcache errors raised by the cache layer itself."""

    ...


class UnsupportedOperation(RowCacheError):
    """The backing table cannot perform the requested operation (e.g. flush)."""

    ...


class ValueDecodeError(RowCacheError):
    """
    A stored value has a kind that no encoding produces. Indicates corrupted
    data or a schema mismatch; never coerced silently.
    """

    ...


__all__ = ["RowCacheError", "UnsupportedOperation", "ValueDecodeError"]
