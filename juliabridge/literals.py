# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of JuliaBridge, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Render host values as Julia source text.

Used to build call expressions such as ``f(1.5,"x",[1,2,3])`` that the
worker parses back into equivalent Julia values.  Independent of the
result codec in :mod:`juliabridge.codec`.
"""

from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any

from juliabridge.exceptions import LiteralError, annotate
from juliabridge.values import Value, ValueKind, serial_to_datetime

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\r": "\\r",
    "\n": "\\n",
    "$": "\\$",
}

_IDENTIFIER = re.compile(r"^[^\W\d]\w*!*$")
_FUNCTION_NAME = re.compile(r"^[^\W\d]\w*!*(\.[^\W\d]\w*!*)*$")

# Element "families" as Julia sees them; an array is typed only when every
# element shares the first element's family.
_FAMILIES = {
    ValueKind.DOUBLE: "Float64",
    ValueKind.SINGLE: "Float64",
    ValueKind.CURRENCY: "Float64",
    ValueKind.DECIMAL: "Float64",
    ValueKind.INT16: "Int",
    ValueKind.INT32: "Int",
    ValueKind.INT64: "Int",
    ValueKind.BOOLEAN: "Bool",
    ValueKind.STRING: "String",
    ValueKind.DATE: "Date",
    ValueKind.EMPTY: "Missing",
    ValueKind.NULL: "Nothing",
    ValueKind.ARRAY: "Array",
}


def escape_string(text: str) -> str:
    """Quote *text* as a Julia string literal."""
    return '"' + "".join(_ESCAPES.get(ch, ch) for ch in text) + '"'


def float_literal(x: float) -> str:
    """Render a float so that Julia always parses a Float64."""
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "Inf" if x > 0 else "-Inf"
    return repr(float(x))


def _decimal_literal(d: Decimal) -> str:
    if not d.is_finite():
        return float_literal(float(d))
    text = format(d, "f")
    if "." not in text:
        text += ".0"
    return text


def _date_literal(serial: float) -> str:
    moment = serial_to_datetime(serial)
    if serial != math.floor(serial):
        return 'Dates.DateTime("' + moment.strftime("%Y-%m-%dT%H:%M:%S.") + f'{moment.microsecond // 1000:03d}")'
    return f'Dates.Date("{moment.strftime("%Y-%m-%d")}")'


def to_literal(obj: Any) -> str:
    """Render a Value or Python native as Julia source text."""
    with annotate("to_literal"):
        return _literal(Value.from_python(obj))


def _literal(value: Value) -> str:
    kind = value.kind
    payload = value.payload
    if kind is ValueKind.ARRAY:
        return _array_literal(value)
    if kind is ValueKind.STRING:
        return escape_string(payload)
    if kind in (ValueKind.DOUBLE, ValueKind.SINGLE):
        return float_literal(payload)
    if kind in (ValueKind.INT16, ValueKind.INT32, ValueKind.INT64):
        return str(payload)
    if kind in (ValueKind.CURRENCY, ValueKind.DECIMAL):
        return _decimal_literal(payload)
    if kind is ValueKind.BOOLEAN:
        return "true" if payload else "false"
    if kind is ValueKind.DATE:
        return _date_literal(payload)
    if kind is ValueKind.EMPTY:
        return "missing"
    if kind is ValueKind.NULL:
        return "nothing"
    raise LiteralError(f"Values of kind {kind.value} cannot be written as Julia literals")


def _is_homogeneous(elements: tuple[Value, ...]) -> bool:
    first = _FAMILIES.get(elements[0].kind)
    return all(_FAMILIES.get(e.kind) == first for e in elements)


def _array_literal(value: Value) -> str:
    elements = value.payload
    prefix = "" if _is_homogeneous(elements) else "Any"

    if value.ndim == 1:
        return prefix + "[" + ",".join(_literal(e) for e in elements) + "]"

    if value.ndim == 2:
        if any(e.is_array for e in elements):
            raise LiteralError("Nested arrays inside a 2-D array are not handled")
        n_rows, n_cols = value.shape
        body = ";".join(" ".join(_literal(e) for e in row) for row in value.rows())
        text = prefix + "[" + body + "]"
        if n_cols == 1:
            # Julia reads a one-column matrix literal as a vector.
            return f"reshape({text},{n_rows},1)"
        return text

    raise LiteralError(f"Arrays with {value.ndim} dimensions are not handled")


def build_call(function_name: str, *args: Any) -> str:
    """Build ``function_name(lit1,lit2,...)``."""
    if not _FUNCTION_NAME.match(function_name or ""):
        raise LiteralError(f"Invalid Julia function name {function_name!r}")
    with annotate(function_name):
        rendered = [to_literal(arg) for arg in args]
    return f"{function_name}({','.join(rendered)})"


def build_assignment(name: str, obj: Any) -> str:
    """Build ``name = literal`` for setting a global on the worker."""
    if not _IDENTIFIER.match(name or ""):
        raise LiteralError(f"Invalid Julia variable name {name!r}")
    return f"{name} = {to_literal(obj)}"
