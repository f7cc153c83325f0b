# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of JuliaBridge, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Unified exception hierarchy for JuliaBridge.

All domain-specific exceptions derive from :class:`JuliaBridgeError`,
enabling callers to catch the entire family with a single clause::

    try:
        ...
    except JuliaBridgeError as e:
        logger.error("Bridge error: %s", e)

Errors accumulate context as they travel up the stack: each layer wraps
its work in :func:`annotate` and its operation name is prefixed to the
message, so the final text reads ``outer: inner: detail``.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager


class JuliaBridgeError(Exception):
    """Base exception for all JuliaBridge errors."""

    def __init__(self, message: str = "", *, context: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.detail = message
        self.context = context

    def __str__(self) -> str:
        if not self.context:
            return self.detail
        return ": ".join((*self.context, self.detail))

    def with_context(self, operation: str) -> JuliaBridgeError:
        """Return *self* with *operation* prepended to the context chain."""
        self.context = (operation, *self.context)
        return self


@contextmanager
def annotate(operation: str) -> Iterator[None]:
    """Prefix *operation* to any :class:`JuliaBridgeError` raised inside."""
    try:
        yield
    except JuliaBridgeError as exc:
        exc.with_context(operation)
        raise


# ── Codec ────────────────────────────────────────────────────


class CodecError(JuliaBridgeError):
    """Value encoding / decoding errors."""


class EncodeError(CodecError):
    """A value cannot be written in the wire format."""


class DecodeError(CodecError):
    """Malformed or unsupported wire text."""


class LiteralError(JuliaBridgeError):
    """A value cannot be expressed as Julia source text."""


# ── Process / IPC ────────────────────────────────────────────


class ProcessError(JuliaBridgeError):
    """Worker process and call channel errors."""


class ExecutableNotFoundError(ProcessError):
    """No usable julia executable could be located or validated."""


class WorkerNotRunningError(ProcessError):
    """No worker window is serving this host process."""


class WorkerStartupError(ProcessError):
    """The worker failed to run its bootstrap script."""


class WorkerTerminatedError(ProcessError):
    """The worker window vanished while a call was pending."""


class ChannelBusyError(ProcessError):
    """A call is already outstanding for this host process."""


# ── Configuration ────────────────────────────────────────────


class ConfigError(JuliaBridgeError):
    """Configuration errors."""


class ConfigValidationError(ConfigError):
    """Configuration validation failure."""
