"""
Worker discovery and doorbell backends.

A worker announces itself with a title containing the host PID; the host
finds it by that marker, checks that the handle is still valid, and rings
a doorbell to make it serve a pending request.
"""

# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import psutil

from juliabridge.exceptions import WorkerTerminatedError
from juliabridge.paths import ArtifactPaths

logger = logging.getLogger(__name__)

WM_CHAR = 0x0102
SW_SHOWNORMAL = 1
SW_SHOWMINNOACTIVE = 7


@dataclass(frozen=True)
class WorkerWindow:
    """A discovered worker: an opaque handle plus the title it showed."""

    handle: int
    title: str


class WindowBackend(ABC):
    """OS seam for finding, probing, signalling and starting the worker."""

    executable_name: str = "julia"
    setup_template: str = ""
    loop_template: str | None = None

    @abstractmethod
    def find_window(self, marker: str) -> WorkerWindow | None:
        """Return the first worker whose title contains *marker*."""

    @abstractmethod
    def is_valid(self, handle: int) -> bool:
        """Whether *handle* still refers to a live worker."""

    @abstractmethod
    def ring(self, handle: int, command: str) -> None:
        """Wake the worker so it runs *command*."""

    @abstractmethod
    def launch_command(self, executable: Path, script: Path) -> list[str]:
        """Command line that starts the worker on *script*."""

    def popen_kwargs(self, minimized: bool) -> dict[str, Any]:
        return {}


# ── Win32 console windows ─────────────────────────────────────────


class Win32WindowBackend(WindowBackend):
    """Discovers the worker's console window by title via user32.

    The worker runs an interactive REPL; the doorbell types the serve
    command into it with ``WM_CHAR`` messages.
    """

    executable_name = "julia.exe"
    setup_template = "console"
    loop_template = None

    def __init__(self) -> None:
        import ctypes
        from ctypes import wintypes

        self._ctypes = ctypes
        self._wintypes = wintypes
        self._user32 = ctypes.WinDLL("user32", use_last_error=True)
        self._enum_proc = ctypes.WINFUNCTYPE(wintypes.BOOL, wintypes.HWND, wintypes.LPARAM)

    def find_window(self, marker: str) -> WorkerWindow | None:
        user32 = self._user32
        found: list[WorkerWindow] = []

        def callback(hwnd: int, _lparam: int) -> bool:
            length = user32.GetWindowTextLengthW(hwnd)
            if length:
                buf = self._ctypes.create_unicode_buffer(length + 1)
                user32.GetWindowTextW(hwnd, buf, length + 1)
                if marker in buf.value:
                    found.append(WorkerWindow(handle=int(hwnd), title=buf.value))
                    return False
            return True

        user32.EnumWindows(self._enum_proc(callback), 0)
        return found[0] if found else None

    def is_valid(self, handle: int) -> bool:
        return bool(self._user32.IsWindow(self._wintypes.HWND(handle)))

    def ring(self, handle: int, command: str) -> None:
        hwnd = self._wintypes.HWND(handle)
        for ch in command + "\r":
            if not self._user32.PostMessageW(hwnd, WM_CHAR, ord(ch), 0):
                raise WorkerTerminatedError(
                    f"PostMessage to window {handle} failed "
                    f"(error {self._ctypes.get_last_error()})"
                )

    def launch_command(self, executable: Path, script: Path) -> list[str]:
        return [str(executable), "-i", "-L", str(script)]

    def popen_kwargs(self, minimized: bool) -> dict[str, Any]:
        startupinfo = subprocess.STARTUPINFO()
        startupinfo.dwFlags |= subprocess.STARTF_USESHOWWINDOW
        startupinfo.wShowWindow = SW_SHOWMINNOACTIVE if minimized else SW_SHOWNORMAL
        return {
            "creationflags": subprocess.CREATE_NEW_CONSOLE,
            "startupinfo": startupinfo,
        }


# ── Beacon files (no console windows) ─────────────────────────────


class BeaconWindowBackend(WindowBackend):
    """Discovers the worker through a PID-scoped beacon file.

    The worker writes ``<os pid>\\n<title>`` to the beacon and watches the
    doorbell file; the handle is the worker's OS pid.
    """

    executable_name = "julia"
    setup_template = "beacon"
    loop_template = "beacon_loop"

    def __init__(self, paths: ArtifactPaths) -> None:
        self.paths = paths

    def find_window(self, marker: str) -> WorkerWindow | None:
        try:
            text = self.paths.beacon.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

        pid_line, _, title = text.partition("\n")
        try:
            pid = int(pid_line.strip())
        except ValueError:
            logger.warning("Ignoring malformed beacon %s", self.paths.beacon)
            return None

        title = title.strip()
        if marker not in title or not self.is_valid(pid):
            return None
        return WorkerWindow(handle=pid, title=title)

    def is_valid(self, handle: int) -> bool:
        try:
            return psutil.Process(handle).status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False
        except psutil.AccessDenied:
            return True

    def ring(self, handle: int, command: str) -> None:
        with open(self.paths.doorbell, "a", encoding="utf-8") as f:
            f.write(command + "\n")

    def launch_command(self, executable: Path, script: Path) -> list[str]:
        return [str(executable), str(script)]

    def popen_kwargs(self, minimized: bool) -> dict[str, Any]:
        return {
            "start_new_session": True,
            "stdin": subprocess.DEVNULL,
            "stdout": subprocess.DEVNULL,
            "stderr": subprocess.DEVNULL,
        }


def default_backend(paths: ArtifactPaths) -> WindowBackend:
    """Console windows on Windows, beacon files elsewhere."""
    if os.name == "nt":
        return Win32WindowBackend()
    return BeaconWindowBackend(paths)
