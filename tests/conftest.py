# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0
"""Global test fixtures for JuliaBridge.

Provides filesystem isolation, config cache management and a fake
window backend so no test needs a real julia install.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from juliabridge.config import BridgeConfig, invalidate_cache
from juliabridge.paths import ArtifactPaths
from juliabridge.supervisor.worker import WorkerSupervisor
from tests.helpers.fakes import HOST_PID, FakeBackend


@pytest.fixture(autouse=True)
def _isolated_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point JULIABRIDGE_DATA_DIR at a temp dir and reset the config cache."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setenv("JULIABRIDGE_DATA_DIR", str(data_dir))
    invalidate_cache()
    yield data_dir
    invalidate_cache()


@pytest.fixture
def shared_tmp(tmp_path: Path) -> Path:
    """Stand-in for the machine-wide temp directory."""
    d = tmp_path / "shared_tmp"
    d.mkdir()
    return d


@pytest.fixture
def config(shared_tmp: Path) -> BridgeConfig:
    return BridgeConfig(
        temp_dir=str(shared_tmp),
        call_poll_interval=0.005,
        launch_poll_interval=0.01,
        launch_timeout=2.0,
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def supervisor(config: BridgeConfig, backend: FakeBackend) -> WorkerSupervisor:
    return WorkerSupervisor(config, host_pid=HOST_PID, backend=backend)


@pytest.fixture
def paths(supervisor: WorkerSupervisor) -> ArtifactPaths:
    return supervisor.paths
