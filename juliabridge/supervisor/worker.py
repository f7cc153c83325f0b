"""
Supervisor for the Julia worker serving this host process.
"""

# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

from juliabridge.config import BridgeConfig, load_config
from juliabridge.exceptions import WorkerNotRunningError, WorkerStartupError, annotate
from juliabridge.paths import ArtifactPaths, get_artifact_paths
from juliabridge.supervisor.bootstrap import write_bootstrap
from juliabridge.supervisor.locator import find_executable, validate_executable
from juliabridge.supervisor.windows import WindowBackend, WorkerWindow, default_backend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LaunchStatus:
    """Outcome of :meth:`WorkerSupervisor.launch`."""

    already_running: bool
    title: str
    pid: int | None = None

    @property
    def status_text(self) -> str:
        if self.already_running:
            return f"Julia is already running: {self.title}"
        return f"Julia launched: {self.title}"


class WorkerSupervisor:
    """
    Owns the single worker serving one host process.

    Caches the discovered worker window and the executable path, and
    drops the cached window as soon as it proves stale.
    """

    def __init__(
        self,
        config: BridgeConfig | None = None,
        *,
        host_pid: int | None = None,
        paths: ArtifactPaths | None = None,
        backend: WindowBackend | None = None,
    ):
        self.config = config if config is not None else load_config()
        self.host_pid = host_pid if host_pid is not None else os.getpid()
        temp_dir = Path(self.config.temp_dir) if self.config.temp_dir else None
        self.paths = paths if paths is not None else get_artifact_paths(self.host_pid, temp_dir)
        self.backend = backend if backend is not None else default_backend(self.paths)

        self.process: subprocess.Popen | None = None
        self._window: WorkerWindow | None = None
        self._executable: Path | None = None

    @property
    def marker(self) -> str:
        """Title substring that identifies this host's worker."""
        return f"{self.config.title_phrase} {self.host_pid}"

    @property
    def doorbell_command(self) -> str:
        return f"{self.config.serve_function}()"

    # ── Discovery ─────────────────────────────────────────────

    def discover(self) -> WorkerWindow | None:
        """Return the live worker window, re-scanning if the cache is stale."""
        if self._window is not None:
            if self.backend.is_valid(self._window.handle):
                return self._window
            logger.info("Cached worker window %s is gone", self._window.handle)
            self._window = None

        window = self.backend.find_window(self.marker)
        if window is not None and not self.backend.is_valid(window.handle):
            window = None
        self._window = window
        return window

    def invalidate(self) -> None:
        """Forget the cached window; the next lookup re-scans."""
        self._window = None

    def is_running(self) -> bool:
        return self.discover() is not None

    def require_window(self) -> WorkerWindow:
        window = self.discover()
        if window is None:
            raise WorkerNotRunningError(
                "Julia is not running for this process; launch it first"
            )
        return window

    # ── Executable ────────────────────────────────────────────

    def resolve_executable(self, override: str | Path | None = None) -> Path:
        """Validate an explicit path, or search PATH and the install dir."""
        name = self.backend.executable_name
        explicit = override or self.config.executable
        if explicit:
            self._executable = validate_executable(explicit, name)
            return self._executable

        if self._executable is not None and self._executable.is_file():
            return self._executable

        install_dir = Path(self.config.install_dir) if self.config.install_dir else None
        self._executable = find_executable(name, install_dir)
        return self._executable

    # ── Launch ────────────────────────────────────────────────

    def launch(
        self,
        executable: str | Path | None = None,
        minimized: bool | None = None,
    ) -> LaunchStatus:
        """
        Start the worker unless one already serves this host.

        Blocks until the start-up script deletes the flag file, or writes
        the LoadError artifact, or the worker exits, or the launch timeout
        passes.
        """
        with annotate("launch"):
            existing = self.discover()
            if existing is not None:
                logger.info("Worker already running: %s", existing.title)
                return LaunchStatus(already_running=True, title=existing.title)

            exe = self.resolve_executable(executable)
            if minimized is None:
                minimized = self.config.minimized

            try:
                self._clear_stale_artifacts()
                script = write_bootstrap(
                    self.paths,
                    title=self.marker,
                    serve_function=self.config.serve_function,
                    setup_template=self.backend.setup_template,
                    loop_template=self.backend.loop_template,
                    int64_supported=self.config.int64_supported,
                    startup_packages=self.config.startup_packages,
                )
                self.paths.flag.touch()
            except OSError as exc:
                raise WorkerStartupError(f"Cannot write start-up files: {exc}") from exc

            cmd = self.backend.launch_command(exe, script)
            logger.info("Starting worker for host PID %s", self.host_pid)
            logger.debug("Command: %s", " ".join(cmd))
            try:
                self.process = subprocess.Popen(cmd, **self.backend.popen_kwargs(minimized))
            except OSError as exc:
                self.paths.flag.unlink(missing_ok=True)
                raise WorkerStartupError(f"Failed to start '{exe}': {exc}") from exc
            logger.info("Worker process started (PID %s)", self.process.pid)

            self._wait_for_ready()

            window = self.discover()
            if window is None:
                raise WorkerStartupError(
                    f"Worker started but no window titled '{self.marker}' was found"
                )
            logger.info("Worker ready: %s", window.title)
            return LaunchStatus(already_running=False, title=window.title, pid=self.process.pid)

    def _clear_stale_artifacts(self) -> None:
        for path in (self.paths.load_error, self.paths.beacon):
            path.unlink(missing_ok=True)

    def _wait_for_ready(self) -> None:
        """Coarse busy-wait for the start-up flag to disappear."""
        timeout = self.config.launch_timeout
        deadline = time.monotonic() + timeout

        while True:
            self._raise_load_error()
            if not self.paths.flag.exists():
                # The script writes LoadError before it deletes the flag.
                self._raise_load_error()
                return
            if self.process is not None and self.process.poll() is not None:
                self.paths.flag.unlink(missing_ok=True)
                raise WorkerStartupError(
                    f"Worker exited with code {self.process.returncode} during start-up"
                )
            if time.monotonic() >= deadline:
                self.paths.flag.unlink(missing_ok=True)
                raise WorkerStartupError(f"Worker not ready within {timeout}s")
            time.sleep(self.config.launch_poll_interval)

    def _raise_load_error(self) -> None:
        path = self.paths.load_error
        if not path.exists():
            return
        try:
            text = path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            text = f"(unreadable: {exc})"
        logger.error("Worker start-up failed: %s", text)
        raise WorkerStartupError(f"Start-up script failed: {text}")
