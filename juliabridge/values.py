# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of JuliaBridge, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""The tagged value model shared by the codec and the literal encoder.

A :class:`Value` is either a scalar of one :class:`ValueKind` or an array
of Values plus a shape.  Array elements are always held in column-major
order (first index varies fastest), whatever the layout of the Python
containers they were built from.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any

from juliabridge.exceptions import EncodeError

# Day serial 0.0 is midnight on this date (spreadsheet convention).
DATE_EPOCH = datetime(1899, 12, 30)

INT16_RANGE = (-(2**15), 2**15 - 1)
INT32_RANGE = (-(2**31), 2**31 - 1)
INT64_RANGE = (-(2**63), 2**63 - 1)


class ValueKind(Enum):
    """Every kind of value that can cross the process boundary."""

    DOUBLE = "double"
    SINGLE = "single"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    CURRENCY = "currency"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATE = "date"
    STRING = "string"
    EMPTY = "empty"
    NULL = "null"
    ERROR = "error"
    ARRAY = "array"


@dataclass(frozen=True)
class ErrorCode:
    """An integer error sentinel carried as data, not raised."""

    code: int


def datetime_to_serial(value: date) -> float:
    """Convert a date or datetime to a fractional day serial."""
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    delta = value.replace(tzinfo=None) - DATE_EPOCH
    return delta.days + (delta.seconds + delta.microseconds / 1e6) / 86400.0


def serial_to_datetime(serial: float) -> datetime:
    """Convert a day serial back to a naive datetime, to the millisecond."""
    return DATE_EPOCH + timedelta(milliseconds=round(serial * 86_400_000))


def _in_range(value: int, bounds: tuple[int, int]) -> bool:
    return bounds[0] <= value <= bounds[1]


@dataclass(frozen=True)
class Value:
    """One value of the wire model.

    ``payload`` holds the Python representation of a scalar, or a tuple
    of element Values (column-major) for ``ValueKind.ARRAY``.  ``shape``
    is empty for scalars.
    """

    kind: ValueKind
    payload: Any = None
    shape: tuple[int, ...] = ()

    # ── Scalar constructors ───────────────────────────────────

    @classmethod
    def double(cls, value: float) -> Value:
        return cls(ValueKind.DOUBLE, float(value))

    @classmethod
    def single(cls, value: float) -> Value:
        return cls(ValueKind.SINGLE, float(value))

    @classmethod
    def int16(cls, value: int) -> Value:
        return cls(ValueKind.INT16, cls._checked_int(value, INT16_RANGE, "16-bit"))

    @classmethod
    def int32(cls, value: int) -> Value:
        return cls(ValueKind.INT32, cls._checked_int(value, INT32_RANGE, "32-bit"))

    @classmethod
    def int64(cls, value: int) -> Value:
        """Build a 64-bit integer; values that fit in 32 bits become INT32.

        The wire shares one tag between the two widths, so only values
        beyond 32 bits can keep the INT64 kind through a round trip.
        """
        value = cls._checked_int(value, INT64_RANGE, "64-bit")
        if _in_range(value, INT32_RANGE):
            return cls(ValueKind.INT32, value)
        return cls(ValueKind.INT64, value)

    @classmethod
    def currency(cls, value: Decimal | str | int) -> Value:
        return cls(ValueKind.CURRENCY, Decimal(value))

    @classmethod
    def decimal(cls, value: Decimal | str | int) -> Value:
        return cls(ValueKind.DECIMAL, Decimal(value))

    @classmethod
    def boolean(cls, value: bool) -> Value:
        return cls(ValueKind.BOOLEAN, bool(value))

    @classmethod
    def date(cls, value: date | float) -> Value:
        """Build a DATE from a date/datetime or an existing day serial."""
        if isinstance(value, date):
            value = datetime_to_serial(value)
        return cls(ValueKind.DATE, float(value))

    @classmethod
    def string(cls, value: str) -> Value:
        return cls(ValueKind.STRING, str(value))

    @classmethod
    def empty(cls) -> Value:
        return cls(ValueKind.EMPTY)

    @classmethod
    def null(cls) -> Value:
        return cls(ValueKind.NULL)

    @classmethod
    def error(cls, code: int) -> Value:
        return cls(ValueKind.ERROR, int(code))

    @staticmethod
    def _checked_int(value: int, bounds: tuple[int, int], label: str) -> int:
        value = int(value)
        if not _in_range(value, bounds):
            raise EncodeError(f"{value} does not fit in a {label} integer")
        return value

    # ── Arrays ────────────────────────────────────────────────

    @classmethod
    def array(cls, elements: list[Value] | tuple[Value, ...], shape: tuple[int, ...]) -> Value:
        """Build an array from column-major *elements* and *shape*."""
        shape = tuple(int(d) for d in shape)
        elements = tuple(elements)
        if not shape:
            raise EncodeError("Array shape must have at least one dimension")
        if any(d < 1 for d in shape):
            raise EncodeError(f"Array dimensions must be at least 1, got {shape}")
        if math.prod(shape) != len(elements):
            raise EncodeError(
                f"Array shape {shape} does not match element count {len(elements)}"
            )
        return cls(ValueKind.ARRAY, elements, shape)

    @classmethod
    def vector(cls, items: list[Any] | tuple[Any, ...]) -> Value:
        """Build a 1-D array from Python natives or Values."""
        return cls.array([cls.from_python(x) for x in items], (len(items),))

    @classmethod
    def from_rows(cls, rows: list[list[Any]] | tuple[tuple[Any, ...], ...]) -> Value:
        """Build a 2-D array from a row-major list of rows."""
        if not rows or not rows[0]:
            raise EncodeError("Array dimensions must be at least 1, got an empty grid")
        n_rows, n_cols = len(rows), len(rows[0])
        if any(len(r) != n_cols for r in rows):
            raise EncodeError("All rows of a 2-D array must have the same length")
        elements = [
            cls.from_python(rows[i][j]) for j in range(n_cols) for i in range(n_rows)
        ]
        return cls.array(elements, (n_rows, n_cols))

    @property
    def is_array(self) -> bool:
        return self.kind is ValueKind.ARRAY

    @property
    def ndim(self) -> int:
        return len(self.shape)

    def rows(self) -> list[list[Value]]:
        """Return a 2-D array's elements as row-major lists of Values."""
        if self.ndim != 2:
            raise EncodeError(f"rows() needs a 2-D array, got {self.ndim} dimension(s)")
        n_rows, n_cols = self.shape
        return [[self.payload[i + n_rows * j] for j in range(n_cols)] for i in range(n_rows)]

    # ── Python conversion ─────────────────────────────────────

    @classmethod
    def from_python(cls, obj: Any) -> Value:
        """Wrap a Python native (or pass through a Value)."""
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return cls.empty()
        if isinstance(obj, bool):
            return cls.boolean(obj)
        if isinstance(obj, int):
            if _in_range(obj, INT16_RANGE):
                return cls.int16(obj)
            if _in_range(obj, INT32_RANGE):
                return cls.int32(obj)
            return cls.int64(obj)
        if isinstance(obj, float):
            return cls.double(obj)
        if isinstance(obj, Decimal):
            return cls.decimal(obj)
        if isinstance(obj, str):
            return cls.string(obj)
        if isinstance(obj, (datetime, date)):
            return cls.date(obj)
        if isinstance(obj, ErrorCode):
            return cls.error(obj.code)
        if isinstance(obj, (list, tuple)):
            if not obj:
                raise EncodeError("Array dimensions must be at least 1, got an empty sequence")
            if all(isinstance(x, (list, tuple)) for x in obj):
                widths = {len(x) for x in obj}
                if len(widths) == 1:
                    return cls.from_rows(obj)
            return cls.vector(obj)
        raise EncodeError(f"Unsupported type {type(obj).__name__}")

    def to_python(self) -> Any:
        """Unwrap into Python natives; 2-D arrays become lists of rows."""
        kind = self.kind
        if kind is ValueKind.ARRAY:
            natives = [v.to_python() for v in self.payload]
            return _nest(natives, self.shape)
        if kind is ValueKind.DATE:
            return serial_to_datetime(self.payload)
        if kind is ValueKind.ERROR:
            return ErrorCode(self.payload)
        if kind in (ValueKind.EMPTY, ValueKind.NULL):
            return None
        return self.payload


def _nest(flat: list[Any], shape: tuple[int, ...]) -> list[Any]:
    """Nest column-major *flat* so that the first dimension is outermost."""
    if len(shape) == 1:
        return list(flat)
    stride = shape[0]
    inner_shape = shape[1:]

    def build(offset: int, dims: tuple[int, ...], step: int) -> list[Any]:
        if len(dims) == 1:
            return [flat[offset + step * k] for k in range(dims[0])]
        return [build(offset + step * k, dims[1:], step * dims[0]) for k in range(dims[0])]

    return [build(i, inner_shape, stride) for i in range(shape[0])]
