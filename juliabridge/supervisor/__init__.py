# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0
"""
Worker supervision and the synchronous call channel.

The worker is a separate julia process found by a PID-tagged title;
calls travel through PID-scoped files in the shared temp directory.
"""

from __future__ import annotations

from juliabridge.supervisor.channel import CallChannel, CallState, FlagWatcher
from juliabridge.supervisor.windows import (
    BeaconWindowBackend,
    Win32WindowBackend,
    WindowBackend,
    WorkerWindow,
    default_backend,
)
from juliabridge.supervisor.worker import LaunchStatus, WorkerSupervisor

__all__ = [
    "BeaconWindowBackend",
    "CallChannel",
    "CallState",
    "FlagWatcher",
    "LaunchStatus",
    "Win32WindowBackend",
    "WindowBackend",
    "WorkerSupervisor",
    "WorkerWindow",
    "default_backend",
]
