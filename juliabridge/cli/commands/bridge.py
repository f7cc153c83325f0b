"""CLI commands that act as a host process for the Julia worker."""

# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from juliabridge.api import CallResult, JuliaBridge


def _bridge(args: argparse.Namespace, **overrides: Any) -> JuliaBridge:
    from juliabridge.config import load_config
    from juliabridge.logging_config import bind_host_pid

    config = load_config()
    if overrides:
        config = config.model_copy(update=overrides)
    bridge = JuliaBridge(config, host_pid=args.host_pid)
    bind_host_pid(bridge.supervisor.host_pid)
    return bridge


def parse_cli_arg(text: str) -> Any:
    """JSON when it parses (numbers, booleans, arrays), else the raw string."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def _emit(result: CallResult) -> None:
    """Print the host value; exit 1 when it is an error."""
    value = result.to_host()
    if result.ok and not isinstance(value, str):
        value = json.dumps(value, default=str, ensure_ascii=False)
    if result.ok:
        print(value)
        return
    print(value, file=sys.stderr)
    sys.exit(1)


def cmd_launch(args: argparse.Namespace) -> None:
    bridge = _bridge(args)
    minimized = False if args.no_minimize else None
    _emit(bridge.launch(args.exe, minimized))


def cmd_eval(args: argparse.Namespace) -> None:
    bridge = _bridge(args)
    try:
        _emit(bridge.evaluate(args.expression))
    finally:
        bridge.close()


def cmd_call(args: argparse.Namespace) -> None:
    bridge = _bridge(args)
    try:
        _emit(bridge.call(args.function, *(parse_cli_arg(a) for a in args.args)))
    finally:
        bridge.close()


def cmd_include(args: argparse.Namespace) -> None:
    bridge = _bridge(args)
    try:
        _emit(bridge.include(args.path))
    finally:
        bridge.close()


def cmd_decode(args: argparse.Namespace) -> None:
    overrides = {}
    if args.nesting:
        overrides["allow_nesting"] = True
    if args.column:
        overrides["vector_as_column"] = True
    _emit(_bridge(args, **overrides).unserialise_file(args.path))


def cmd_result_file(args: argparse.Namespace) -> None:
    _emit(_bridge(args).result_file())
