# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0

"""Rendering of the start-up script the worker runs at launch.

The script defines the worker-side encoder and ``serve`` entry point,
announces the worker (console title or beacon file), and deletes the
flag file once start-up succeeds.  On failure it writes the LoadError
artifact first, then deletes the flag.
"""

from __future__ import annotations

from pathlib import Path

from juliabridge.literals import escape_string
from juliabridge.paths import ArtifactPaths, load_template


def _quoted(path: Path) -> str:
    return escape_string(str(path))


def render_bootstrap(
    paths: ArtifactPaths,
    *,
    title: str,
    serve_function: str,
    setup_template: str,
    loop_template: str | None = None,
    int64_supported: bool = True,
    startup_packages: list[str] | tuple[str, ...] = (),
) -> str:
    files = {
        "expression_file": _quoted(paths.expression),
        "result_file": _quoted(paths.result),
        "flag_file": _quoted(paths.flag),
        "load_error_file": _quoted(paths.load_error),
        "beacon_file": _quoted(paths.beacon),
        "doorbell_file": _quoted(paths.doorbell),
    }

    worker_module = load_template(
        "worker",
        int64_supported="true" if int64_supported else "false",
        **files,
    )
    setup = load_template(setup_template, title=escape_string(title), **files)
    serve_loop = (
        load_template(loop_template, serve_function=serve_function, **files)
        if loop_template
        else ""
    )
    packages = "\n".join(f"    using {name}" for name in startup_packages)

    return load_template(
        "bootstrap",
        host_pid=paths.pid,
        worker_module=worker_module,
        serve_function=serve_function,
        startup_packages=packages,
        setup=setup.rstrip("\n"),
        serve_loop=serve_loop,
        **files,
    )


def write_bootstrap(paths: ArtifactPaths, **options) -> Path:
    """Render the script and write it to the PID-scoped StartUp file."""
    script = render_bootstrap(paths, **options)
    with open(paths.startup, "w", encoding="utf-8", newline="\n") as f:
        f.write(script)
    return paths.startup
