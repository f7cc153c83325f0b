"""
Synchronous call channel built on PID-scoped files and a doorbell.

One call runs through::

    IDLE -> REQUEST_WRITTEN -> SIGNALED -> WAITING -> (COMPLETED | WORKER_DIED)

The flag file is the pending-request marker: the host creates it and the
worker deletes it when the result file is written.  Its disappearance is
both necessary and sufficient for the call to complete.
"""

# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import os
import threading
import time
from enum import Enum
from pathlib import Path
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from juliabridge.codec import decode_file
from juliabridge.exceptions import (
    ChannelBusyError,
    ProcessError,
    WorkerTerminatedError,
    annotate,
)
from juliabridge.literals import build_call
from juliabridge.supervisor.windows import WorkerWindow
from juliabridge.supervisor.worker import WorkerSupervisor
from juliabridge.values import Value

logger = logging.getLogger(__name__)


class CallState(Enum):
    """Where the current (or last) call stands."""
    IDLE = "idle"
    REQUEST_WRITTEN = "request_written"   # Expression and flag on disk
    SIGNALED = "signaled"                 # Doorbell rung
    WAITING = "waiting"                   # Waiting for the flag to go
    COMPLETED = "completed"               # Flag gone, result read
    WORKER_DIED = "worker_died"           # Worker vanished mid-call


# ── Flag watcher ──────────────────────────────────────────────────


class FlagWatcher(FileSystemEventHandler):
    """Sets :attr:`cleared` whenever the flag file is deleted or moved away."""

    def __init__(self, flag: Path) -> None:
        super().__init__()
        self.flag = flag
        self.cleared = threading.Event()
        self.observer: Observer | None = None

    def _matches(self, path: str | bytes) -> bool:
        return Path(os.fsdecode(path)).name == self.flag.name

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._matches(event.src_path):
            self.cleared.set()

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._matches(event.src_path):
            self.cleared.set()

    def start(self) -> None:
        if self.observer is not None:
            return
        observer = Observer()
        observer.schedule(self, str(self.flag.parent), recursive=False)
        observer.start()
        self.observer = observer
        logger.debug("Watching %s for flag deletion", self.flag.parent)

    def stop(self) -> None:
        if self.observer is None:
            return
        self.observer.stop()
        self.observer.join(timeout=5.0)
        self.observer = None

    def wait(self, timeout: float) -> bool:
        """Block until the next deletion event or *timeout*; then re-arm."""
        fired = self.cleared.wait(timeout)
        self.cleared.clear()
        return fired


# ── Call channel ──────────────────────────────────────────────────


class CallChannel:
    """
    Runs one blocking call at a time against the supervisor's worker.

    There is no overall timeout: a worker that takes the request and
    never finishes leaves the caller blocked.  A vanished worker window
    is the only way out of WAITING other than completion.
    """

    def __init__(self, supervisor: WorkerSupervisor):
        self.supervisor = supervisor
        self.state = CallState.IDLE
        self._busy = threading.Lock()
        self._watcher: FlagWatcher | None = None
        self._watcher_failed = False

    @property
    def config(self):
        return self.supervisor.config

    def evaluate(self, expression: str) -> Value:
        """Send *expression* to the worker and decode what it returns."""
        if not self._busy.acquire(blocking=False):
            raise ChannelBusyError("A call is already in progress for this process")
        try:
            with annotate("evaluate"):
                return self._evaluate(expression)
        finally:
            self._busy.release()

    def call(self, function_name: str, *args: Any) -> Value:
        """Call ``function_name(args...)`` on the worker."""
        with annotate("call"):
            expression = build_call(function_name, *args)
        return self.evaluate(expression)

    def close(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None

    def _evaluate(self, expression: str) -> Value:
        window = self.supervisor.require_window()
        paths = self.supervisor.paths
        watcher = self._ensure_watcher()
        started = time.monotonic()

        self.state = CallState.IDLE
        try:
            with open(paths.expression, "w", encoding="utf-8", newline="") as f:
                f.write(expression)
            if watcher is not None:
                watcher.cleared.clear()
            paths.flag.touch()
        except OSError as exc:
            raise ProcessError(f"Cannot write request files: {exc}") from exc
        self.state = CallState.REQUEST_WRITTEN

        try:
            self.supervisor.backend.ring(window.handle, self.supervisor.doorbell_command)
        except WorkerTerminatedError:
            self._worker_died()
            raise
        self.state = CallState.SIGNALED
        logger.debug("Rang worker %s", window.handle)

        self._wait_for_flag(window, watcher)
        self.state = CallState.COMPLETED
        logger.debug("Call completed in %.3fs", time.monotonic() - started)

        return decode_file(paths.result, **self.config.decode_options())

    def _wait_for_flag(self, window: WorkerWindow, watcher: FlagWatcher | None) -> None:
        self.state = CallState.WAITING
        flag = self.supervisor.paths.flag
        interval = self.config.call_poll_interval
        backend = self.supervisor.backend

        while flag.exists():
            if not backend.is_valid(window.handle):
                self._worker_died()
                raise WorkerTerminatedError("Julia worker terminated mid-call")
            if watcher is not None:
                watcher.wait(interval)
            else:
                time.sleep(interval)

    def _worker_died(self) -> None:
        self.state = CallState.WORKER_DIED
        self.supervisor.invalidate()
        logger.error("Worker for host PID %s vanished during a call", self.supervisor.host_pid)

    def _ensure_watcher(self) -> FlagWatcher | None:
        if self._watcher is not None or self._watcher_failed:
            return self._watcher
        watcher = FlagWatcher(self.supervisor.paths.flag)
        try:
            watcher.start()
        except OSError as exc:
            # e.g. inotify watch limit reached; fall back to timed polling.
            logger.warning("Flag watcher unavailable (%s); polling only", exc)
            self._watcher_failed = True
            return None
        self._watcher = watcher
        return watcher
