# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of JuliaBridge, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Compact, order-preserving text codec for :class:`Value` graphs.

Grammar (``TAG`` is one character)::

    scalar := TAG payload
    array  := '*' NDIMS ',' dim1 [',' dim2 ...] ';' len1 ',' len2 ',' ... ',' ';' enc1 enc2 ... encN

The length section lists, in column-major element order, the character
length of each element's encoding.  The content section concatenates the
element encodings with no delimiter, so a decoder recovers boundaries
from the lengths alone in a single pass.

Example::

    >>> encode([1, 2, 3.0, True, False, "Hello", "World"])
    '*1,7;2,2,2,1,1,6,6,;%1%2#3TF£Hello£World'
"""

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from juliabridge.exceptions import DecodeError, EncodeError, annotate
from juliabridge.values import (
    INT16_RANGE,
    INT32_RANGE,
    INT64_RANGE,
    Value,
    ValueKind,
    serial_to_datetime,
)

# ── Tags ───────────────────────────────────────────────────────

TAG_DOUBLE = "#"
TAG_STRING = "£"
TAG_TRUE = "T"
TAG_FALSE = "F"
TAG_DATE = "D"
TAG_EMPTY = "E"
TAG_NULL = "N"
TAG_INT16 = "%"
TAG_INT32 = "&"
TAG_SINGLE = "S"
TAG_CURRENCY = "C"
TAG_ERROR = "!"
TAG_DECIMAL = "@"
TAG_ARRAY = "*"

_SNIPPET_CHARS = 40
SUPPORTED_DECODE_DIMS = (1, 2)


def _snippet(text: str) -> str:
    if len(text) <= _SNIPPET_CHARS:
        return repr(text)
    return repr(text[:_SNIPPET_CHARS] + "...")


def format_number(x: float) -> str:
    """Locale-invariant, round-trip exact text for a float.

    Integral values below 1e16 drop the fractional part (``1.0 -> "1"``);
    everything else uses the shortest repr that round-trips.
    """
    if math.isfinite(x) and x == int(x) and abs(x) < 1e16:
        if x == 0 and math.copysign(1.0, x) < 0:
            return "-0"
        return str(int(x))
    return repr(x)


# ── Encode ─────────────────────────────────────────────────────


def encode(value: Any, *, int64_supported: bool = True) -> str:
    """Encode a Value (or a Python native wrapped on the fly).

    When *int64_supported* is False, INT64 scalars are down-cast to
    doubles.  That fallback is lossy above 2**53 and only exists for
    consumers that cannot hold 64-bit integers.
    """
    with annotate("encode"):
        return _encode(Value.from_python(value), int64_supported)


def _encode(value: Value, int64_supported: bool) -> str:
    kind = value.kind
    payload = value.payload

    if kind is ValueKind.ARRAY:
        return _encode_array(value, int64_supported)
    if kind is ValueKind.DOUBLE:
        return TAG_DOUBLE + format_number(payload)
    if kind is ValueKind.STRING:
        return TAG_STRING + payload
    if kind is ValueKind.BOOLEAN:
        return TAG_TRUE if payload else TAG_FALSE
    if kind is ValueKind.INT16:
        return TAG_INT16 + str(payload)
    if kind is ValueKind.INT32:
        return TAG_INT32 + str(payload)
    if kind is ValueKind.INT64:
        if int64_supported:
            return TAG_INT32 + str(payload)
        return TAG_DOUBLE + format_number(float(payload))
    if kind is ValueKind.DATE:
        return TAG_DATE + format_number(payload)
    if kind is ValueKind.EMPTY:
        return TAG_EMPTY
    if kind is ValueKind.NULL:
        return TAG_NULL
    if kind is ValueKind.SINGLE:
        return TAG_SINGLE + format_number(payload)
    if kind is ValueKind.CURRENCY:
        return TAG_CURRENCY + format(payload, "f")
    if kind is ValueKind.DECIMAL:
        return TAG_DECIMAL + format(payload, "f")
    if kind is ValueKind.ERROR:
        return TAG_ERROR + str(payload)
    raise EncodeError(f"Unsupported value kind {kind.value}")


def _encode_array(value: Value, int64_supported: bool) -> str:
    shape = value.shape
    if not shape or any(d < 1 for d in shape):
        raise EncodeError(f"Array dimensions must be at least 1, got {shape}")
    if math.prod(shape) != len(value.payload):
        raise EncodeError(
            f"Array shape {shape} does not match element count {len(value.payload)}"
        )

    parts = [_encode(element, int64_supported) for element in value.payload]
    header = f"{TAG_ARRAY}{len(shape)},{','.join(str(d) for d in shape)};"
    lengths = "".join(f"{len(p)}," for p in parts)
    return header + lengths + ";" + "".join(parts)


# ── Decode ─────────────────────────────────────────────────────


def decode(
    text: str,
    *,
    allow_nesting: bool = False,
    string_length_limit: int = 0,
    vector_as_column: bool = False,
) -> Value:
    """Decode wire text into a :class:`Value`.

    Args:
        text: Encoded text.
        allow_nesting: Permit arrays whose elements are arrays.
        string_length_limit: Reject strings of this length or longer
            (0 disables the check).
        vector_as_column: Materialise 1-D arrays as N x 1 columns.
    """
    decoder = _Decoder(allow_nesting, string_length_limit, vector_as_column)
    with annotate("decode"):
        return decoder.value(text, depth=0)


def decode_file(path: Path, **options: Any) -> Value:
    """Read an encoded file (UTF-8, newlines untouched) and decode it."""
    with annotate(f"decode_file {path}"):
        try:
            with open(path, encoding="utf-8", newline="") as f:
                text = f.read()
        except OSError as exc:
            raise DecodeError(f"Cannot read file: {exc}") from exc
        return decode(text, **options)


class _Decoder:
    """Single recursive-descent pass keyed on the leading tag."""

    def __init__(self, allow_nesting: bool, string_length_limit: int, vector_as_column: bool) -> None:
        self.allow_nesting = allow_nesting
        self.string_length_limit = string_length_limit
        self.vector_as_column = vector_as_column

    def value(self, text: str, depth: int) -> Value:
        if not text:
            raise DecodeError("Cannot decode empty text")

        tag, payload = text[0], text[1:]
        if tag == TAG_ARRAY:
            return self.array(text, depth + 1)
        if tag == TAG_DOUBLE:
            return Value.double(self._float(payload, text))
        if tag == TAG_STRING:
            return self.string(payload)
        if tag == TAG_TRUE:
            return Value.boolean(True)
        if tag == TAG_FALSE:
            return Value.boolean(False)
        if tag == TAG_INT16:
            number = self._int(payload, text)
            if not INT16_RANGE[0] <= number <= INT16_RANGE[1]:
                raise DecodeError(f"Value {_snippet(text)} is out of 16-bit range")
            return Value.int16(number)
        if tag == TAG_INT32:
            number = self._int(payload, text)
            if INT32_RANGE[0] <= number <= INT32_RANGE[1]:
                return Value.int32(number)
            if INT64_RANGE[0] <= number <= INT64_RANGE[1]:
                return Value.int64(number)
            raise DecodeError(f"Value {_snippet(text)} is out of 64-bit range")
        if tag == TAG_DATE:
            return self.date(self._float(payload, text), text)
        if tag == TAG_EMPTY:
            return Value.empty()
        if tag == TAG_NULL:
            return Value.null()
        if tag == TAG_SINGLE:
            return Value.single(self._float(payload, text))
        if tag == TAG_CURRENCY:
            return Value.currency(self._decimal(payload, text))
        if tag == TAG_DECIMAL:
            return Value.decimal(self._decimal(payload, text))
        if tag == TAG_ERROR:
            return Value.error(self._int(payload, text))
        raise DecodeError(f"Unrecognised type tag '{tag}' in {_snippet(text)}")

    def string(self, payload: str) -> Value:
        limit = self.string_length_limit
        if limit and len(payload) >= limit:
            raise DecodeError(
                f"String of length {len(payload)} exceeds the limit: "
                f"strings must be shorter than {limit} characters"
            )
        return Value.string(payload)

    def date(self, serial: float, text: str) -> Value:
        try:
            serial_to_datetime(serial)
        except (OverflowError, ValueError):
            raise DecodeError(f"Date serial {_snippet(text)} is out of range") from None
        return Value.date(serial)

    def array(self, text: str, depth: int) -> Value:
        if depth > 1 and not self.allow_nesting:
            raise DecodeError(
                "Nested arrays cannot be decoded unless nesting is allowed"
            )

        first = text.find(";")
        second = text.find(";", first + 1) if first >= 0 else -1
        if second < 0:
            raise DecodeError(f"Array header is missing ';' separators in {_snippet(text)}")

        header = text[1:first].split(",")
        try:
            ndims = int(header[0])
            dims = [int(d) for d in header[1:]]
        except ValueError:
            raise DecodeError(f"Malformed array dimensions in {_snippet(text)}") from None
        if ndims != len(dims):
            raise DecodeError(
                f"Array declares {ndims} dimension(s) but lists {len(dims)} in {_snippet(text)}"
            )
        if ndims not in SUPPORTED_DECODE_DIMS:
            raise DecodeError(
                f"Arrays with {ndims} dimensions are not supported, only 1 or 2"
            )
        if any(d < 1 for d in dims):
            raise DecodeError(f"Array dimensions must be at least 1, got {tuple(dims)}")

        length_fields = text[first + 1:second].split(",")
        if length_fields[-1] != "":
            raise DecodeError(f"Length section must end with ',' in {_snippet(text)}")
        try:
            lengths = [int(n) for n in length_fields[:-1]]
        except ValueError:
            raise DecodeError(f"Malformed length section in {_snippet(text)}") from None
        if len(lengths) != math.prod(dims):
            raise DecodeError(
                f"Array shape {tuple(dims)} does not match {len(lengths)} listed lengths"
            )

        elements: list[Value] = []
        pos = second + 1
        for n in lengths:
            chunk = text[pos:pos + n]
            if n < 0 or len(chunk) != n:
                raise DecodeError(f"Array content is truncated in {_snippet(text)}")
            elements.append(self.value(chunk, depth))
            pos += n
        if pos != len(text):
            raise DecodeError(
                f"Array has {len(text) - pos} unexpected trailing character(s)"
            )

        if ndims == 1 and self.vector_as_column:
            shape: tuple[int, ...] = (dims[0], 1)
        else:
            shape = tuple(dims)
        return Value.array(elements, shape)

    @staticmethod
    def _float(payload: str, text: str) -> float:
        try:
            return float(payload)
        except ValueError:
            raise DecodeError(f"Malformed number {_snippet(text)}") from None

    @staticmethod
    def _int(payload: str, text: str) -> int:
        try:
            return int(payload)
        except ValueError:
            raise DecodeError(f"Malformed integer {_snippet(text)}") from None

    @staticmethod
    def _decimal(payload: str, text: str) -> Decimal:
        try:
            return Decimal(payload)
        except InvalidOperation:
            raise DecodeError(f"Malformed decimal {_snippet(text)}") from None
