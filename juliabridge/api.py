# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of JuliaBridge, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Host-facing entry points.

A formula cell cannot display a raised exception, so every entry point
here returns a :class:`CallResult` instead of raising.  Failures carry a
message that starts with :data:`ERROR_SENTINEL` and names the entry point,
e.g. ``#JuliaEval (evaluate: Julia is not running ...)``.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from juliabridge.codec import decode_file
from juliabridge.config import BridgeConfig, load_config
from juliabridge.exceptions import JuliaBridgeError
from juliabridge.literals import build_assignment, escape_string
from juliabridge.supervisor.channel import CallChannel
from juliabridge.supervisor.windows import WindowBackend
from juliabridge.supervisor.worker import WorkerSupervisor
from juliabridge.values import Value, ValueKind

logger = logging.getLogger(__name__)

ERROR_SENTINEL = "#"

# Prefix the worker puts on the string it returns when evaluation fails.
WORKER_ERROR_PREFIX = ERROR_SENTINEL + "Julia error: "


@dataclass(frozen=True)
class CallResult:
    """Either a value or an error message, never both."""

    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any) -> CallResult:
        # The worker reports its own failures as prefixed strings.
        if (
            isinstance(value, Value)
            and value.kind is ValueKind.STRING
            and value.payload.startswith(WORKER_ERROR_PREFIX)
        ):
            return cls(error=value.payload)
        return cls(value=value)

    @classmethod
    def failure(cls, operation: str, exc: BaseException) -> CallResult:
        return cls(error=f"{ERROR_SENTINEL}{operation} ({exc})")

    def to_host(self) -> Any:
        """The cell-ready result: natives on success, the message on failure."""
        if self.error is not None:
            return self.error
        if isinstance(self.value, Value):
            return self.value.to_python()
        return self.value


def _boundary(operation: str) -> Callable:
    """Turn any failure of the wrapped entry point into a CallResult."""

    def decorator(func: Callable[..., Any]) -> Callable[..., CallResult]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> CallResult:
            try:
                return CallResult.success(func(*args, **kwargs))
            except JuliaBridgeError as exc:
                logger.warning("%s failed: %s", operation, exc)
                return CallResult.failure(operation, exc)
            except Exception as exc:
                logger.exception("%s failed unexpectedly", operation)
                return CallResult.failure(operation, exc)

        return wrapper

    return decorator


class JuliaBridge:
    """The call surface the spreadsheet add-in consumes."""

    def __init__(
        self,
        config: BridgeConfig | None = None,
        *,
        host_pid: int | None = None,
        backend: WindowBackend | None = None,
        supervisor: WorkerSupervisor | None = None,
    ):
        self.config = config if config is not None else load_config()
        self.supervisor = supervisor or WorkerSupervisor(
            self.config, host_pid=host_pid, backend=backend
        )
        self.channel = CallChannel(self.supervisor)

    @_boundary("JuliaLaunch")
    def launch(self, executable: str | Path | None = None, minimized: bool | None = None) -> str:
        """Start the worker (idempotent) and return a status line."""
        return self.supervisor.launch(executable, minimized).status_text

    @_boundary("JuliaEval")
    def evaluate(self, expression: str) -> Value:
        return self.channel.evaluate(expression)

    @_boundary("JuliaCall")
    def call(self, function_name: str, *args: Any) -> Value:
        return self.channel.call(function_name, *args)

    @_boundary("JuliaInclude")
    def include(self, path: str | Path) -> Value:
        """Run a Julia source file on the worker."""
        return self.channel.evaluate(f"include({escape_string(str(path))})")

    @_boundary("JuliaSetVar")
    def set_var(self, name: str, value: Any) -> Value:
        """Assign a global on the worker and return what it now holds."""
        return self.channel.evaluate(build_assignment(name, value))

    @_boundary("JuliaUnserialiseFile")
    def unserialise_file(self, path: str | Path) -> Value:
        """Decode an encoded file without contacting the worker."""
        return decode_file(Path(path), **self.config.decode_options())

    @_boundary("JuliaResultFile")
    def result_file(self) -> str:
        return str(self.supervisor.paths.result)

    def close(self) -> None:
        self.channel.close()
