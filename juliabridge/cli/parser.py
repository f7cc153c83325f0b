# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import os
import sys


def cli_main(argv: list[str] | None = None) -> None:
    from dotenv import load_dotenv

    load_dotenv()

    parser = argparse.ArgumentParser(
        description="JuliaBridge - drive a long-running Julia worker"
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Override runtime data directory (default: ~/.juliabridge or JULIABRIDGE_DATA_DIR)",
    )
    parser.add_argument(
        "--host-pid", type=int, default=None,
        help="Act as host process PID (default: this process); lets separate "
             "invocations share one worker",
    )
    sub = parser.add_subparsers(dest="command")

    # ── Launch ────────────────────────────────────────────
    p_launch = sub.add_parser("launch", help="Start the worker unless it is already running")
    p_launch.add_argument("--exe", default=None, metavar="PATH", help="Path to the julia executable")
    p_launch.add_argument(
        "--no-minimize", action="store_true",
        help="Show the worker window instead of minimizing it",
    )
    p_launch.set_defaults(func=_lazy_launch)

    # ── Eval ──────────────────────────────────────────────
    p_eval = sub.add_parser("eval", help="Evaluate a Julia expression")
    p_eval.add_argument("expression", help="Julia source text")
    p_eval.set_defaults(func=_lazy_eval)

    # ── Call ──────────────────────────────────────────────
    p_call = sub.add_parser("call", help="Call a Julia function with literal arguments")
    p_call.add_argument("function", help="Julia function name")
    p_call.add_argument(
        "args", nargs="*",
        help="Arguments; parsed as JSON when possible, otherwise passed as strings",
    )
    p_call.set_defaults(func=_lazy_call)

    # ── Include ───────────────────────────────────────────
    p_include = sub.add_parser("include", help="Run a Julia source file on the worker")
    p_include.add_argument("path", help="Julia file")
    p_include.set_defaults(func=_lazy_include)

    # ── Decode ────────────────────────────────────────────
    p_decode = sub.add_parser("decode", help="Decode an encoded result file")
    p_decode.add_argument("path", help="Encoded file")
    p_decode.add_argument("--nesting", action="store_true", help="Allow arrays inside arrays")
    p_decode.add_argument("--column", action="store_true", help="Read 1-D arrays as N x 1 columns")
    p_decode.set_defaults(func=_lazy_decode)

    # ── Result File ───────────────────────────────────────
    p_result = sub.add_parser("result-file", help="Print the result file path for the host PID")
    p_result.set_defaults(func=_lazy_result_file)

    args = parser.parse_args(argv)

    # Apply --data-dir override before config and logging are resolved
    if args.data_dir:
        os.environ["JULIABRIDGE_DATA_DIR"] = args.data_dir

    from juliabridge.config import load_config
    from juliabridge.exceptions import ConfigError
    from juliabridge.logging_config import setup_logging
    from juliabridge.paths import get_log_dir

    try:
        config = load_config()
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    setup_logging(
        level=os.environ.get("JULIABRIDGE_LOG_LEVEL") or config.log_level,
        log_dir=get_log_dir(),
    )

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


# ── Lazy import wrappers ──────────────────────────────────


def _lazy_launch(args: argparse.Namespace) -> None:
    from juliabridge.cli.commands.bridge import cmd_launch

    cmd_launch(args)


def _lazy_eval(args: argparse.Namespace) -> None:
    from juliabridge.cli.commands.bridge import cmd_eval

    cmd_eval(args)


def _lazy_call(args: argparse.Namespace) -> None:
    from juliabridge.cli.commands.bridge import cmd_call

    cmd_call(args)


def _lazy_include(args: argparse.Namespace) -> None:
    from juliabridge.cli.commands.bridge import cmd_include

    cmd_include(args)


def _lazy_decode(args: argparse.Namespace) -> None:
    from juliabridge.cli.commands.bridge import cmd_decode

    cmd_decode(args)


def _lazy_result_file(args: argparse.Namespace) -> None:
    from juliabridge.cli.commands.bridge import cmd_result_file

    cmd_result_file(args)
