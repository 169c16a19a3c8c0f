from __future__ import annotations

# Runtime package version, resolved from the installed distribution.
from importlib.metadata import PackageNotFoundError, version as _pkg_version

try:
    __version__ = _pkg_version("rowcache")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

from .cache import CacheStore, JsonSerializer, PickleSerializer, TableLock
from .core.config import AttributeNames, StoreConfig
from .errors import RowCacheError, UnsupportedOperation, ValueDecodeError
from .storage import ConditionCheckFailed, TableClient, TableError

__all__ = [
    "AttributeNames",
    "CacheStore",
    "ConditionCheckFailed",
    "JsonSerializer",
    "PickleSerializer",
    "RowCacheError",
    "StoreConfig",
    "TableClient",
    "TableError",
    "TableLock",
    "UnsupportedOperation",
    "ValueDecodeError",
    "__version__",
]
