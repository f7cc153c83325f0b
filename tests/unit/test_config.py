"""Unit tests for juliabridge.config: BridgeConfig model and load/save cache."""
# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from juliabridge.config import (
    DEFAULT_STRING_LENGTH_LIMIT,
    BridgeConfig,
    get_config_path,
    invalidate_cache,
    load_config,
    save_config,
)
from juliabridge.exceptions import ConfigValidationError


# ── Model ─────────────────────────────────────────────────


class TestBridgeConfig:
    def test_defaults(self):
        config = BridgeConfig()
        assert config.string_length_limit == DEFAULT_STRING_LENGTH_LIMIT == 32767
        assert config.allow_nesting is False
        assert config.vector_as_column is True
        assert config.minimized is True
        assert config.serve_function == "srv_xl"
        assert config.startup_packages == []

    def test_decode_options(self):
        config = BridgeConfig(string_length_limit=10, allow_nesting=True, vector_as_column=False)
        assert config.decode_options() == {
            "allow_nesting": True,
            "string_length_limit": 10,
            "vector_as_column": False,
        }

    def test_negative_limit_rejected(self):
        with pytest.raises(ValidationError):
            BridgeConfig(string_length_limit=-1)

    def test_zero_limit_allowed(self):
        assert BridgeConfig(string_length_limit=0).string_length_limit == 0

    def test_non_positive_interval_rejected(self):
        with pytest.raises(ValidationError):
            BridgeConfig(call_poll_interval=0)

    def test_serve_function_must_be_identifier(self):
        with pytest.raises(ValidationError):
            BridgeConfig(serve_function="srv xl")

    def test_package_names_validated(self):
        assert BridgeConfig(startup_packages=["DataFrames", "Base.Threads"]).startup_packages
        with pytest.raises(ValidationError):
            BridgeConfig(startup_packages=["Data Frames"])


# ── Load / Save ───────────────────────────────────────────


class TestLoadSave:
    def test_config_path_in_data_dir(self, _isolated_data_dir: Path):
        assert get_config_path() == _isolated_data_dir.resolve() / "config.json"

    def test_missing_file_gives_defaults(self, tmp_path: Path):
        assert load_config(tmp_path / "none.json") == BridgeConfig()

    def test_round_trip(self, tmp_path: Path):
        path = tmp_path / "config.json"
        save_config(BridgeConfig(string_length_limit=99, startup_packages=["Dates"]), path)
        invalidate_cache()
        loaded = load_config(path)
        assert loaded.string_length_limit == 99
        assert loaded.startup_packages == ["Dates"]

    def test_cached_until_mtime_changes(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"string_length_limit": 5}), encoding="utf-8")
        first = load_config(path)
        assert load_config(path) is first

        path.write_text(json.dumps({"string_length_limit": 6}), encoding="utf-8")
        stat = path.stat()
        os.utime(path, (stat.st_atime, stat.st_mtime + 10))
        assert load_config(path).string_length_limit == 6

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigValidationError, match="Invalid JSON"):
            load_config(path)

    def test_invalid_values(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"launch_timeout": -1}), encoding="utf-8")
        with pytest.raises(ConfigValidationError, match="Invalid config"):
            load_config(path)


class TestLogLevel:
    def test_normalised(self):
        assert BridgeConfig(log_level="debug").log_level == "DEBUG"

    def test_unknown_rejected(self):
        with pytest.raises(ValidationError):
            BridgeConfig(log_level="chatty")
