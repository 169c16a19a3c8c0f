from __future__ import annotations

"""
rowcache.core.config
====================

Store configuration loaded from an optional JSON file, then environment
variables, then explicit overrides (last wins). Validated with pydantic so a
bad deployment fails at startup, not at the first cache call.

Example file:
    {
      "table": "cache",
      "prefix": "app",
      "attributes": {"key": "key", "value": "value", "expiration": "expires_at"}
    }
"""

import json
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .types import (
    DEFAULT_EXPIRATION_ATTRIBUTE,
    DEFAULT_KEY_ATTRIBUTE,
    DEFAULT_VALUE_ATTRIBUTE,
    FOREVER_SECONDS,
)

__all__ = ["AttributeNames", "StoreConfig"]


# env var -> (section, field)
_ENV_FIELDS: dict[str, tuple[str | None, str]] = {
    "ROWCACHE_TABLE": (None, "table"),
    "ROWCACHE_PREFIX": (None, "prefix"),
    "ROWCACHE_SERIALIZER": (None, "serializer"),
    "ROWCACHE_KEY_ATTRIBUTE": ("attributes", "key"),
    "ROWCACHE_VALUE_ATTRIBUTE": ("attributes", "value"),
    "ROWCACHE_EXPIRATION_ATTRIBUTE": ("attributes", "expiration"),
}


def _load_json(path: Path | None) -> dict[str, Any]:
    if not path or not path.exists():
        return {}
    return json.loads(path.read_text(encoding="utf-8"))


class AttributeNames(BaseModel):
    """Column names of the cache table; fixed per deployment."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    key: str = Field(default=DEFAULT_KEY_ATTRIBUTE, min_length=1)
    value: str = Field(default=DEFAULT_VALUE_ATTRIBUTE, min_length=1)
    expiration: str = Field(default=DEFAULT_EXPIRATION_ATTRIBUTE, min_length=1)

    @model_validator(mode="after")
    def _distinct(self) -> AttributeNames:
        names = [self.key, self.value, self.expiration]
        if len(set(names)) != len(names):
            raise ValueError(f"attribute names must be distinct, got {names}")
        return self


class StoreConfig(BaseModel):
    """Cache store configuration."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    table: str = Field(min_length=1)
    prefix: str = ""
    attributes: AttributeNames = Field(default_factory=AttributeNames)
    forever_seconds: int = Field(default=FOREVER_SECONDS, gt=0)
    serializer: Literal["pickle", "json"] = "pickle"

    @classmethod
    def load(cls, path: Path | str | None = None, *, overrides: dict[str, Any] | None = None) -> StoreConfig:
        """
        Load config from JSON file (if provided), then apply env and overrides.

        Env overrides:
          - ROWCACHE_TABLE, ROWCACHE_PREFIX, ROWCACHE_SERIALIZER
          - ROWCACHE_KEY_ATTRIBUTE, ROWCACHE_VALUE_ATTRIBUTE, ROWCACHE_EXPIRATION_ATTRIBUTE
        """
        data: dict[str, Any] = {}

        # File
        data.update(_load_json(Path(path) if path else None))

        # Env
        for env_name, (section, name) in _ENV_FIELDS.items():
            val = os.getenv(env_name)
            if val is None:
                continue
            if section is None:
                data[name] = val
            else:
                data[section] = {**(data.get(section) or {}), name: val}

        # Overrides
        if overrides:
            data.update(overrides)

        return cls.model_validate(data)
