# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of JuliaBridge, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Centralized logging configuration for JuliaBridge.

structlog runs in stdlib-compatible mode: modules keep calling
``logging.getLogger(__name__)`` and their records pick up the bound
context (the host PID) and a timestamp on the way out.

Provides:
- setup_logging(): console (stderr) + rotating file handler
- bind_host_pid() / get_host_pid(): tag every line with the host process
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import orjson
import structlog

LOG_FILE_NAME = "juliabridge.log"

# The flag watcher emits an event for every change in the temp dir.
_QUIET_LOGGERS = ("watchdog",)


def bind_host_pid(pid: int) -> None:
    """Bind the host PID via structlog contextvars."""
    structlog.contextvars.bind_contextvars(host_pid=pid)


def get_host_pid() -> int | None:
    return structlog.contextvars.get_contextvars().get("host_pid")


# ── Formatters ─────────────────────────────────────────────────


def _build_shared_processors() -> list:
    """Processor chain shared by structlog loggers and foreign stdlib records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _orjson_serializer(obj: object, **_kw) -> str:  # noqa: ANN001
    # Paths and Decimals show up in event dicts; stringify them.
    return orjson.dumps(obj, default=str).decode("utf-8")


def _formatter(renderer, pre_chain: list) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=pre_chain,
    )


# ── Main Setup ─────────────────────────────────────────────────


def setup_logging(
    level: str = "INFO",
    log_dir: Path | None = None,
    json_file: bool = True,
) -> None:
    """Configure logging for a host process.

    Console output goes to stderr so that CLI results on stdout stay
    machine-readable.

    Args:
        level: Root log level (DEBUG, INFO, WARNING, etc.).
        log_dir: Directory for ``juliabridge.log``. If None, file logging is disabled.
        json_file: Whether to write JSON lines (orjson) or plain text to the file.
    """
    shared_processors = _build_shared_processors()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()

    pre_chain = list(shared_processors)

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG)
    console.setFormatter(_formatter(structlog.dev.ConsoleRenderer(), pre_chain))
    root.addHandler(console)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        if json_file:
            renderer = structlog.processors.JSONRenderer(serializer=_orjson_serializer)
        else:
            renderer = structlog.dev.ConsoleRenderer(colors=False)

        file_handler = RotatingFileHandler(
            log_dir / LOG_FILE_NAME,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(_formatter(renderer, pre_chain))
        root.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
