"""Unit tests for typed contract arguments and the numeric codec."""

from __future__ import annotations

import random
import re
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from stellar_sdk import scval

from conftest import CALLER, CONTRACT_ID

from tessera.pneuma.errors import EncodingError
from tessera.pneuma.scval import (
    I128,
    U32,
    U64,
    Address,
    Symbol,
    decode_wide_int,
    encode_amount,
    encode_symbol,
    encode_timestamp,
    encode_wide_int,
    from_dict,
    to_base_units,
)

SYMBOL_PATTERN = re.compile(r"^[A-Z0-9_]*$")


class TestEncodeSymbol:
    """Tests for encode_symbol."""

    def test_uppercases_and_keeps_valid_chars(self) -> None:
        assert encode_symbol("summer_1").value == "SUMMER_1"

    def test_replaces_invalid_chars(self) -> None:
        assert encode_symbol("a-b c!").value == "A_B_C_"

    def test_truncates_to_nine(self) -> None:
        assert encode_symbol("Summer Festival 2025").value == "SUMMER_FE"

    def test_custom_max_len(self) -> None:
        assert encode_symbol("abcdef", max_len=3).value == "ABC"

    def test_max_len_above_nine_is_clamped(self) -> None:
        assert encode_symbol("abcdefghijklmnop", max_len=20).value == "ABCDEFGHI"

    def test_negative_max_len_gives_empty_symbol(self) -> None:
        assert encode_symbol("abc", max_len=-1).value == ""

    def test_empty_text(self) -> None:
        assert encode_symbol("").value == ""

    def test_distinct_inputs_can_collide(self) -> None:
        assert encode_symbol("Jazz Night") == encode_symbol("jazz-nights")

    @pytest.mark.parametrize(
        "text",
        ["", "x", "ß" * 20, "Ωmega™ night", "🎉🎉🎉 party", "tab\tand\nnewline", "0123456789abcdef", "_" * 30],
    )
    def test_output_always_valid(self, text: str) -> None:
        symbol = encode_symbol(text)
        assert len(symbol.value) <= 9
        assert SYMBOL_PATTERN.match(symbol.value)

    def test_symbol_rejects_invalid_direct_construction(self) -> None:
        with pytest.raises(EncodingError):
            Symbol("lower")
        with pytest.raises(EncodingError):
            Symbol("TOOLONGSYMBOL")


class TestWideInt:
    """Tests for encode_wide_int / decode_wide_int."""

    def test_small_value_has_zero_hi(self) -> None:
        wide = encode_wide_int(10_000_000)
        assert wide == I128(hi=0, lo=10_000_000)

    def test_split_across_halves(self) -> None:
        wide = encode_wide_int(2**64 + 5)
        assert wide.hi == 1
        assert wide.lo == 5

    def test_low_half_is_unsigned(self) -> None:
        wide = encode_wide_int(2**64 - 1)
        assert wide.hi == 0
        assert wide.lo == 2**64 - 1

    def test_round_trip(self) -> None:
        rng = random.Random(1234)
        samples = [0, 1, 2**63, 2**64 - 1, 2**64, 2**127 - 1]
        samples += [rng.randrange(0, 2**127) for _ in range(50)]
        for value in samples:
            wide = encode_wide_int(value)
            assert wide.hi * 2**64 + wide.lo == value
            assert decode_wide_int(wide) == value

    def test_negative_rejected(self) -> None:
        with pytest.raises(EncodingError):
            encode_wide_int(-1)

    def test_out_of_range_rejected(self) -> None:
        with pytest.raises(EncodingError):
            encode_wide_int(2**127)

    def test_non_int_rejected(self) -> None:
        with pytest.raises(EncodingError):
            encode_wide_int(1.5)  # type: ignore[arg-type]

    def test_error_is_tagged_with_encode_stage(self) -> None:
        with pytest.raises(EncodingError) as exc_info:
            encode_wide_int(-5)
        assert exc_info.value.stage == "encode"
        assert exc_info.value.retryable is False


class TestToBaseUnits:
    """Tests for display → base unit conversion."""

    def test_one_unit(self) -> None:
        assert to_base_units(1.00) == 10_000_000

    def test_one_hundredth(self) -> None:
        assert to_base_units(0.01) == 100_000

    def test_one_thousandth_is_truncated(self) -> None:
        assert to_base_units(0.001) == 10_000

    def test_sub_base_unit_fraction_floored(self) -> None:
        assert to_base_units("0.00000019") == 1

    def test_decimal_string_is_exact(self) -> None:
        assert to_base_units("0.29") == 2_900_000
        assert to_base_units(Decimal("12.5")) == 125_000_000

    def test_integer_amount(self) -> None:
        assert to_base_units(3) == 30_000_000

    @pytest.mark.parametrize("bad", [-1, "-0.5", float("nan"), float("inf"), "abc"])
    def test_invalid_amounts(self, bad: object) -> None:
        with pytest.raises(EncodingError):
            to_base_units(bad)  # type: ignore[arg-type]

    def test_encode_amount(self) -> None:
        assert encode_amount(1) == I128(hi=0, lo=10_000_000)


class TestEncodeTimestamp:
    """Tests for encode_timestamp."""

    def test_aware_datetime(self) -> None:
        when = datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert encode_timestamp(when) == U64(1735689600)

    def test_iso_string_with_z(self) -> None:
        assert encode_timestamp("2025-01-01T00:00:00Z").value == 1735689600

    def test_fraction_floored(self) -> None:
        assert encode_timestamp(1735689600.999).value == 1735689600

    def test_date_uses_local_midnight(self) -> None:
        expected = int(datetime(2025, 1, 1).timestamp())
        assert encode_timestamp(date(2025, 1, 1)).value == expected

    def test_pre_epoch_rejected(self) -> None:
        with pytest.raises(EncodingError):
            encode_timestamp(datetime(1960, 1, 1, tzinfo=timezone.utc))

    def test_garbage_string_rejected(self) -> None:
        with pytest.raises(EncodingError):
            encode_timestamp("next tuesday")


class TestTypedValues:
    """Tests for typed value validation and wire form."""

    def test_u32_range(self) -> None:
        assert U32(100).to_dict() == {"type": "u32", "value": 100}
        with pytest.raises(EncodingError):
            U32(2**32)
        with pytest.raises(EncodingError):
            U32(-1)

    def test_u64_serialized_as_string(self) -> None:
        assert U64(1735689600).to_dict() == {"type": "u64", "value": "1735689600"}

    def test_i128_halves_validated(self) -> None:
        with pytest.raises(EncodingError):
            I128(hi=0, lo=-1)
        with pytest.raises(EncodingError):
            I128(hi=2**63, lo=0)

    def test_bool_is_not_an_integer(self) -> None:
        with pytest.raises(EncodingError):
            U32(True)

    def test_address_must_be_non_empty(self) -> None:
        with pytest.raises(EncodingError):
            Address("")

    @pytest.mark.parametrize("value", ["GABC", "G" + "A" * 55, CALLER.lower(), "not an address"])
    def test_address_must_be_valid_strkey(self, value: str) -> None:
        with pytest.raises(EncodingError):
            Address(value)

    def test_contract_address_accepted(self) -> None:
        assert Address(CONTRACT_ID).to_dict() == {"type": "address", "value": CONTRACT_ID}

    def test_from_dict(self) -> None:
        assert from_dict({"type": "address", "value": CALLER}) == Address(CALLER)
        assert from_dict({"type": "symbol", "value": "ROCK"}) == Symbol("ROCK")
        assert from_dict({"type": "u32", "value": "7"}) == U32(7)
        assert from_dict({"type": "u64", "value": "1735689600"}) == U64(1735689600)
        assert from_dict({"type": "i128", "value": {"hi": "0", "lo": "10000000"}}) == I128(0, 10_000_000)
        assert from_dict({"type": "i128", "value": 2**64}) == I128(1, 0)

    @pytest.mark.parametrize(
        "payload",
        [
            {"type": "float", "value": 1.0},
            {"type": "u32", "value": "seven"},
            {"type": "i128", "value": {"hi": "0"}},
            {"type": "symbol", "value": None},
            {"type": "address", "value": "GABC"},
            ["not", "an", "object"],
        ],
    )
    def test_from_dict_rejects_malformed(self, payload: object) -> None:
        with pytest.raises(EncodingError):
            from_dict(payload)  # type: ignore[arg-type]


class TestToScVal:
    """Tests for the ledger form of typed values."""

    def test_address(self) -> None:
        assert Address(CALLER).to_sc_val() == scval.to_address(CALLER)
        assert scval.from_address(Address(CONTRACT_ID).to_sc_val()).address == CONTRACT_ID

    def test_symbol(self) -> None:
        assert scval.from_symbol(encode_symbol("Summer Fest").to_sc_val()) == "SUMMER_FE"

    def test_integers(self) -> None:
        assert scval.from_uint32(U32(100).to_sc_val()) == 100
        assert scval.from_uint64(U64(1735689600).to_sc_val()) == 1735689600

    def test_i128_recombines_halves(self) -> None:
        wide = encode_wide_int(2**64 + 5)
        assert scval.from_int128(wide.to_sc_val()) == 2**64 + 5
        assert I128(hi=-1, lo=2**64 - 1).to_sc_val() == scval.to_int128(-1)
