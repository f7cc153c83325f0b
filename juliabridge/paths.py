# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of JuliaBridge, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Centralized path resolution for JuliaBridge.

All modules import directory paths from here instead of computing them ad-hoc.
Runtime data directory can be overridden via JULIABRIDGE_DATA_DIR environment variable.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

# Package root: where the code lives
PACKAGE_DIR = Path(__file__).resolve().parent

# Templates shipped with the package
TEMPLATES_DIR = PACKAGE_DIR / "templates"

# Default runtime data directory
_DEFAULT_DATA_DIR = Path.home() / ".juliabridge"

# Every artifact shares this prefix so a temp-dir listing groups them.
ARTIFACT_PREFIX = "JuliaBridge"


def get_data_dir() -> Path:
    """Return the runtime data directory, respecting JULIABRIDGE_DATA_DIR env var."""
    env_val = os.environ.get("JULIABRIDGE_DATA_DIR")
    if env_val:
        return Path(env_val).expanduser().resolve()
    return _DEFAULT_DATA_DIR


def get_log_dir() -> Path:
    return get_data_dir() / "logs"


def get_temp_dir() -> Path:
    """Shared directory for the PID-scoped call artifacts."""
    return Path(tempfile.gettempdir())


@dataclass(frozen=True)
class ArtifactPaths:
    """PID-scoped filesystem artifacts shared by host and worker.

    Host processes on one machine share a temp directory; the host PID in
    every name keeps them apart.
    """

    temp_dir: Path
    pid: int

    def _named(self, stem: str, suffix: str = ".txt") -> Path:
        return self.temp_dir / f"{ARTIFACT_PREFIX}{stem}_{self.pid}{suffix}"

    @property
    def flag(self) -> Path:
        """Zero-byte marker: present while a request or start-up is pending."""
        return self._named("Flag")

    @property
    def expression(self) -> Path:
        return self._named("Expression")

    @property
    def result(self) -> Path:
        return self._named("Result")

    @property
    def startup(self) -> Path:
        return self._named("StartUp", ".jl")

    @property
    def load_error(self) -> Path:
        return self._named("LoadError")

    @property
    def beacon(self) -> Path:
        """Where a worker without a console window publishes its pid and title."""
        return self._named("Window")

    @property
    def doorbell(self) -> Path:
        return self._named("Doorbell")


def get_artifact_paths(pid: int | None = None, temp_dir: Path | None = None) -> ArtifactPaths:
    return ArtifactPaths(
        temp_dir=temp_dir if temp_dir is not None else get_temp_dir(),
        pid=pid if pid is not None else os.getpid(),
    )


# --- Bootstrap templates ---

BOOTSTRAP_TEMPLATES_DIR = TEMPLATES_DIR / "bootstrap"

# Cache loaded templates to avoid repeated disk reads
_template_cache: dict[str, str] = {}


class _SafeFormatDict(dict):
    """Dict that returns ``{key}`` for missing keys during format_map.

    This ensures ``{{`` always resolves to ``{`` (double-brace escaping)
    even when no kwargs are passed, while leaving unknown ``{placeholder}``
    patterns intact in the output.
    """

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def load_template(name: str, **kwargs: object) -> str:
    """Load templates/bootstrap/{name}.jl and format it.

    Templates use Python str.format_map() placeholders like {flag_file}.
    Literal braces (Julia type parameters) must be doubled: {{ and }}.
    """
    if name not in _template_cache:
        path = BOOTSTRAP_TEMPLATES_DIR / f"{name}.jl"
        _template_cache[name] = path.read_text(encoding="utf-8")
    template = _template_cache[name]
    return template.format_map(_SafeFormatDict(kwargs))
