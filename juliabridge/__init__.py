# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0
"""Drive a long-running Julia process from a spreadsheet host."""

from __future__ import annotations

__version__ = "0.1.0"
