"""Unit tests for juliabridge.codec."""
# JuliaBridge - Spreadsheet to Julia bridge
# Copyright (C) 2026 JuliaBridge Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from juliabridge.codec import decode, decode_file, encode, format_number
from juliabridge.exceptions import DecodeError, EncodeError
from juliabridge.values import ErrorCode, Value, ValueKind

SEVEN = "*1,7;2,2,2,1,1,6,6,;%1%2#3TF£Hello£World"


# ── Encoding ────────────────────────────────────────────────


class TestEncodeScalars:
    def test_double(self):
        assert encode(Value.double(1.0)) == "#1"

    def test_int32(self):
        assert encode(Value.int32(1)) == "&1"

    def test_string(self):
        assert encode("Hello") == "£Hello"

    def test_booleans(self):
        assert encode(True) == "T"
        assert encode(False) == "F"

    def test_fractional_double_round_trips_exactly(self):
        text = encode(0.1)
        assert text == "#0.1"
        assert decode(text).payload == 0.1

    def test_empty_and_null(self):
        assert encode(None) == "E"
        assert encode(Value.null()) == "N"

    def test_date(self):
        assert encode(datetime(2024, 1, 15, 12)) == "D45306.5"

    def test_error(self):
        assert encode(ErrorCode(2042)) == "!2042"

    def test_currency_and_decimal(self):
        assert encode(Value.currency("12.5000")) == "C12.5000"
        assert encode(Decimal("0.1")) == "@0.1"

    def test_int64_uses_int32_tag_when_supported(self):
        assert encode(2**40) == f"&{2**40}"

    def test_int64_downcast_to_double(self):
        assert encode(2**40, int64_supported=False) == f"#{2**40}"


class TestFormatNumber:
    def test_integral(self):
        assert format_number(3.0) == "3"

    def test_negative_zero(self):
        assert format_number(-0.0) == "-0"

    def test_large_uses_repr(self):
        assert format_number(1e20) == "1e+20"

    def test_non_finite(self):
        assert format_number(float("inf")) == "inf"


class TestEncodeArrays:
    def test_mixed_vector(self):
        assert encode([1, 2, 3.0, True, False, "Hello", "World"]) == SEVEN

    def test_matrix_is_column_major(self):
        assert encode([[1, 2, 3], [4, 5, 6]]) == "*2,2,3;2,2,2,2,2,2,;%1%4%2%5%3%6"

    def test_strings_may_contain_delimiters(self):
        text = encode(["a;b,c", "*1,1;"])
        assert decode(text).to_python() == ["a;b,c", "*1,1;"]

    def test_zero_length_dimension_rejected(self):
        bad = Value(ValueKind.ARRAY, (), (0,))
        with pytest.raises(EncodeError, match="at least 1"):
            encode(bad)


# ── Decoding ────────────────────────────────────────────────


class TestDecodeScalars:
    def test_scalar_types(self):
        assert decode("#1") == Value.double(1.0)
        assert decode("&1") == Value.int32(1)
        assert decode("%1") == Value.int16(1)
        assert decode("£Hello") == Value.string("Hello")
        assert decode("T") == Value.boolean(True)
        assert decode("F") == Value.boolean(False)
        assert decode("E") == Value.empty()
        assert decode("N") == Value.null()
        assert decode("S1.5") == Value.single(1.5)
        assert decode("!7") == Value.error(7)

    def test_wide_integer_becomes_int64(self):
        assert decode(f"&{2**40}").kind is ValueKind.INT64

    def test_unrecognised_tag_echoed(self):
        with pytest.raises(DecodeError, match="Unrecognised type tag 'Z'") as exc_info:
            decode("Zebra")
        assert "Zebra" in str(exc_info.value)

    def test_empty_text(self):
        with pytest.raises(DecodeError):
            decode("")

    def test_malformed_number(self):
        with pytest.raises(DecodeError, match="Malformed number"):
            decode("#abc")

    def test_date_out_of_range(self):
        with pytest.raises(DecodeError, match="Date serial .* out of range"):
            decode("D1e400")

    def test_date_nan(self):
        with pytest.raises(DecodeError, match="out of range"):
            decode("Dnan")

    def test_int16_out_of_range(self):
        with pytest.raises(DecodeError, match="16-bit"):
            decode("%40000")

    def test_error_messages_carry_operation(self):
        with pytest.raises(DecodeError) as exc_info:
            decode("#abc")
        assert str(exc_info.value).startswith("decode: ")


class TestStringLimit:
    def test_shorter_than_limit_passes(self):
        assert decode("£abcd", string_length_limit=5).payload == "abcd"

    def test_length_equal_to_limit_fails(self):
        with pytest.raises(DecodeError, match="shorter than 5"):
            decode("£abcde", string_length_limit=5)

    def test_zero_disables(self):
        assert decode("£" + "x" * 40000, string_length_limit=0).payload == "x" * 40000

    def test_applies_inside_arrays(self):
        with pytest.raises(DecodeError, match="exceeds the limit"):
            decode(encode(["ok", "toolong"]), string_length_limit=4)


class TestDecodeArrays:
    def test_mixed_vector_types(self):
        v = decode(SEVEN)
        assert v.shape == (7,)
        kinds = [e.kind for e in v.payload]
        assert kinds == [
            ValueKind.INT16,
            ValueKind.INT16,
            ValueKind.DOUBLE,
            ValueKind.BOOLEAN,
            ValueKind.BOOLEAN,
            ValueKind.STRING,
            ValueKind.STRING,
        ]
        assert v.to_python() == [1, 2, 3.0, True, False, "Hello", "World"]

    def test_vector_as_column(self):
        v = decode(SEVEN, vector_as_column=True)
        assert v.shape == (7, 1)
        assert v.rows()[5][0].payload == "Hello"

    def test_non_square_matrix_orientation(self):
        v = decode("*2,2,3;2,2,2,2,2,2,;%1%4%2%5%3%6")
        assert v.shape == (2, 3)
        assert v.to_python() == [[1, 2, 3], [4, 5, 6]]

    def test_three_dimensions_rejected(self):
        text = encode(Value.array([Value.int16(n) for n in range(8)], (2, 2, 2)))
        with pytest.raises(DecodeError, match="3 dimensions are not supported"):
            decode(text)

    def test_zero_length_dimension_rejected(self):
        with pytest.raises(DecodeError, match="at least 1"):
            decode("*1,0;;")

    def test_nested_rejected_by_default(self):
        text = encode([[1, 2], [3]])
        with pytest.raises(DecodeError, match="Nested arrays"):
            decode(text)

    def test_nested_allowed(self):
        nested = Value.from_python([[1, 2], [3]])
        assert decode(encode(nested), allow_nesting=True) == nested

    def test_truncated_content(self):
        with pytest.raises(DecodeError, match="truncated"):
            decode("*1,2;2,2,;%1%")

    def test_trailing_content(self):
        with pytest.raises(DecodeError, match="trailing"):
            decode("*1,1;2,;%1xx")

    def test_lengths_must_match_shape(self):
        with pytest.raises(DecodeError, match="does not match"):
            decode("*1,2;2,;%1")

    def test_missing_separators(self):
        with pytest.raises(DecodeError, match="missing ';'"):
            decode("*1,2")


class TestDecodeFile:
    def test_preserves_line_endings(self, tmp_path):
        path = tmp_path / "result.txt"
        path.write_bytes("£line1\r\nline2".encode("utf-8"))
        assert decode_file(path).payload == "line1\r\nline2"

    def test_missing_file(self, tmp_path):
        path = tmp_path / "absent.txt"
        with pytest.raises(DecodeError, match="Cannot read file") as exc_info:
            decode_file(path)
        assert str(exc_info.value).startswith(f"decode_file {path}: ")

    def test_options_forwarded(self, tmp_path):
        path = tmp_path / "vec.txt"
        path.write_text(SEVEN, encoding="utf-8")
        assert decode_file(path, vector_as_column=True).shape == (7, 1)


# ── Round trips ─────────────────────────────────────────────


class TestRoundTrip:
    @pytest.mark.parametrize(
        "value",
        [
            Value.double(0.1),
            Value.double(-2.5e-300),
            Value.single(1.5),
            Value.int16(-32768),
            Value.int32(2**31 - 1),
            Value.int64(5),
            Value.int64(2**40),
            Value.int64(-(2**63)),
            Value.currency("12.5000"),
            Value.decimal("-0.0001"),
            Value.boolean(True),
            Value.boolean(False),
            Value.date(datetime(2024, 1, 15, 10, 30)),
            Value.string("a;b,c £ *1,1;"),
            Value.empty(),
            Value.null(),
            Value.error(2042),
        ],
        ids=lambda v: v.kind.value,
    )
    def test_every_scalar_kind(self, value):
        assert decode(encode(value)) == value

    def test_covers_every_scalar_kind(self):
        scalar_kinds = {k for k in ValueKind if k is not ValueKind.ARRAY}
        covered = {
            Value.double(1.0).kind,
            Value.single(1.0).kind,
            Value.int16(1).kind,
            Value.int32(1).kind,
            Value.int64(2**40).kind,
            Value.currency(1).kind,
            Value.decimal(1).kind,
            Value.boolean(True).kind,
            Value.date(1.0).kind,
            Value.string("").kind,
            Value.empty().kind,
            Value.null().kind,
            Value.error(1).kind,
        }
        assert covered == scalar_kinds

    def test_mixed_non_square_matrix(self):
        grid = Value.from_rows(
            [
                [Value.int64(1), "a", 2.5],
                [True, None, Value.date(3.25)],
            ]
        )
        decoded = decode(encode(grid))
        assert decoded == grid
        assert decoded.rows()[1][2] == Value.date(3.25)

    def test_wide_int64_downcast_is_lossy(self):
        value = Value.int64(2**53 + 1)
        assert decode(encode(value, int64_supported=False)) == Value.double(float(2**53))
