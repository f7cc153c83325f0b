# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0

"""Locating and validating the julia executable."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from juliabridge.exceptions import ExecutableNotFoundError

logger = logging.getLogger(__name__)


def default_install_dir() -> Path | None:
    """Conventional parent directory of versioned Julia installs."""
    if os.name == "nt":
        local_app_data = os.environ.get("LOCALAPPDATA")
        return Path(local_app_data) / "Programs" if local_app_data else None
    return Path.home() / ".julia" / "juliaup"


def validate_executable(path: str | Path, executable_name: str) -> Path:
    """Check a caller-supplied path before anything is launched."""
    candidate = Path(path).expanduser()
    if candidate.name.lower() != executable_name.lower():
        raise ExecutableNotFoundError(
            f"Executable path must end with '{executable_name}', got '{path}'"
        )
    if not candidate.is_file():
        raise ExecutableNotFoundError(f"Cannot find file '{path}'")
    return candidate


def _created(path: Path) -> float:
    """Creation time where the platform records it, else st_ctime."""
    st = path.stat()
    return getattr(st, "st_birthtime", st.st_ctime)


def find_executable(executable_name: str, install_dir: Path | None = None) -> Path:
    """Find julia on PATH, else the newest install under *install_dir*.

    Installs are the immediate children of *install_dir* whose names start
    with ``julia`` (any case) and contain ``bin/<executable_name>``; the
    most recently created one wins.
    """
    on_path = shutil.which(executable_name)
    if on_path:
        logger.debug("Found %s on PATH: %s", executable_name, on_path)
        return Path(on_path)

    if install_dir is None:
        install_dir = default_install_dir()

    candidates: list[tuple[float, Path]] = []
    if install_dir is not None and install_dir.is_dir():
        for child in install_dir.iterdir():
            if not child.is_dir() or not child.name.lower().startswith("julia"):
                continue
            exe = child / "bin" / executable_name
            if exe.is_file():
                candidates.append((_created(child), exe))

    if not candidates:
        raise ExecutableNotFoundError(
            f"Cannot find {executable_name} on PATH or under '{install_dir}'"
        )

    _, newest = max(candidates, key=lambda c: c[0])
    logger.debug("Selected %s from %d install(s) under %s", newest, len(candidates), install_dir)
    return newest
