# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of JuliaBridge, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Central configuration module for JuliaBridge.

Defines the Pydantic model for config.json and provides load / save
helpers with a module-level singleton cache.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator

from juliabridge.exceptions import ConfigValidationError

logger = logging.getLogger("juliabridge.config")

# Largest string a spreadsheet cell accepts; callers on other hosts
# override it (0 disables the check).
DEFAULT_STRING_LENGTH_LIMIT = 32767

# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class BridgeConfig(BaseModel):
    """Settings shared by the supervisor, the call channel and the codec."""

    executable: str | None = None  # explicit julia path; None = search
    install_dir: str | None = None  # where to scan for Julia-* installs
    minimized: bool = True
    temp_dir: str | None = None  # None = system temp dir
    title_phrase: str = "JuliaBridge worker serving PID"
    serve_function: str = "srv_xl"
    startup_packages: list[str] = []  # `using` lines run before the worker reports ready

    string_length_limit: int = DEFAULT_STRING_LENGTH_LIMIT
    allow_nesting: bool = False
    vector_as_column: bool = True
    int64_supported: bool = sys.maxsize > 2**32

    call_poll_interval: float = 0.01
    launch_poll_interval: float = 0.5
    launch_timeout: float = 120.0

    log_level: str = "WARNING"

    @field_validator("string_length_limit")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("string_length_limit must be >= 0")
        return v

    @field_validator("call_poll_interval", "launch_poll_interval", "launch_timeout")
    @classmethod
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("intervals and timeouts must be > 0")
        return v

    @field_validator("serve_function")
    @classmethod
    def _identifier(cls, v: str) -> str:
        if not v.isidentifier():
            raise ValueError(f"serve_function must be an identifier, got {v!r}")
        return v

    @field_validator("log_level")
    @classmethod
    def _level_name(cls, v: str) -> str:
        if not isinstance(logging.getLevelName(v.upper()), int):
            raise ValueError(f"unknown log level {v!r}")
        return v.upper()

    @field_validator("startup_packages")
    @classmethod
    def _package_names(cls, v: list[str]) -> list[str]:
        bad = [name for name in v if not all(part.isidentifier() for part in name.split("."))]
        if bad:
            raise ValueError(f"invalid package names: {bad}")
        return v

    def decode_options(self) -> dict[str, Any]:
        """Keyword arguments for :func:`juliabridge.codec.decode`."""
        return {
            "allow_nesting": self.allow_nesting,
            "string_length_limit": self.string_length_limit,
            "vector_as_column": self.vector_as_column,
        }


# ---------------------------------------------------------------------------
# Singleton cache
# ---------------------------------------------------------------------------

_config: BridgeConfig | None = None
_config_path: Path | None = None
_config_mtime: float = 0.0


def invalidate_cache() -> None:
    """Reset the module-level singleton cache."""
    global _config, _config_path, _config_mtime
    _config = None
    _config_path = None
    _config_mtime = 0.0


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def get_config_path(data_dir: Path | None = None) -> Path:
    """Return the path to config.json inside *data_dir*.

    If *data_dir* is not given, it is resolved via ``juliabridge.paths.get_data_dir``.
    """
    if data_dir is None:
        from juliabridge.paths import get_data_dir

        data_dir = get_data_dir()
    return data_dir / "config.json"


# ---------------------------------------------------------------------------
# Load / Save
# ---------------------------------------------------------------------------


def load_config(path: Path | None = None) -> BridgeConfig:
    """Load configuration from disk, returning cached instance when possible.

    If *path* is ``None``, :func:`get_config_path` determines the location.
    When the file does not exist the default configuration is returned.
    The cache is invalidated when the file's mtime changes.
    """
    global _config, _config_path, _config_mtime

    if path is None:
        path = get_config_path()

    if _config is not None and _config_path == path:
        try:
            disk_mtime = path.stat().st_mtime
        except OSError:
            disk_mtime = 0.0
        if disk_mtime == _config_mtime:
            return _config
        logger.debug("Config file changed on disk (mtime %.3f → %.3f); reloading", _config_mtime, disk_mtime)

    if path.is_file():
        logger.debug("Loading config from %s", path)
        try:
            data: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
            config = BridgeConfig.model_validate(data)
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse %s: %s", path, exc)
            raise ConfigValidationError(f"Invalid JSON in {path}: {exc}") from exc
        except ValidationError as exc:
            logger.error("Invalid config in %s: %s", path, exc)
            raise ConfigValidationError(f"Invalid config in {path}: {exc}") from exc
    else:
        logger.info("Config file not found at %s; using defaults", path)
        config = BridgeConfig()

    _config = config
    _config_path = path
    try:
        _config_mtime = path.stat().st_mtime
    except OSError:
        _config_mtime = 0.0
    return config


def save_config(config: BridgeConfig, path: Path | None = None) -> None:
    """Persist *config* to disk as pretty-printed JSON.

    Updates the module-level singleton cache so subsequent :func:`load_config`
    calls return the freshly saved config.
    """
    global _config, _config_path, _config_mtime

    if path is None:
        path = get_config_path()

    path.parent.mkdir(parents=True, exist_ok=True)

    payload = config.model_dump(mode="json")
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    logger.debug("Config saved to %s", path)

    _config = config
    _config_path = path
    try:
        _config_mtime = path.stat().st_mtime
    except OSError:
        _config_mtime = 0.0
