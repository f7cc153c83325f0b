# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from juliabridge.config.models import (
    DEFAULT_STRING_LENGTH_LIMIT,
    BridgeConfig,
    get_config_path,
    invalidate_cache,
    load_config,
    save_config,
)

__all__ = [
    "DEFAULT_STRING_LENGTH_LIMIT",
    "BridgeConfig",
    "get_config_path",
    "invalidate_cache",
    "load_config",
    "save_config",
]
