"""
Contract-call argument values and the numeric codec that produces them.

The ledger's contract-call format is strongly typed: every argument is one of
a small set of tagged scalars. This module converts application values
(display prices, dates, free text) into those scalars, and each scalar knows
its ``stellar_sdk`` ``SCVal`` form.

The JSON form of a value is ``{"type": <tag>, "value": ...}``. 64- and
128-bit integers travel as decimal strings so that JSON consumers never round
them.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time as dt_time
from decimal import Decimal, InvalidOperation, ROUND_FLOOR
from typing import Any, Union

from stellar_sdk import Address as StrKeyAddress
from stellar_sdk import scval
from stellar_sdk import xdr as stellar_xdr

from .errors import EncodingError

SYMBOL_MAX_LEN = 9
SYMBOL_RE = re.compile(r"^[A-Z0-9_]*$")
_SYMBOL_INVALID = re.compile(r"[^A-Z0-9_]")

U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1
I64_MIN = -(2**63)
I64_MAX = 2**63 - 1
I128_MAX = 2**127 - 1
_LOW_64 = (1 << 64) - 1

# 1 display unit (XLM) = 10,000,000 base units (stroops)
BASE_UNITS_PER_DISPLAY = 10_000_000


# ---------------------------------------------------------------------------
# Typed values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Address:
    """Account (``G...``) or contract (``C...``) address."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value.strip():
            raise EncodingError("Address must be a non-empty string")
        try:
            StrKeyAddress(self.value)
        except ValueError as exc:
            raise EncodingError(f"Invalid address {self.value!r}: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        return {"type": "address", "value": self.value}

    def to_sc_val(self) -> stellar_xdr.SCVal:
        return scval.to_address(self.value)


@dataclass(frozen=True)
class Symbol:
    """Short symbol. Build it with :func:`encode_symbol` from free text."""

    value: str

    def __post_init__(self) -> None:
        if len(self.value) > SYMBOL_MAX_LEN or not SYMBOL_RE.match(self.value):
            raise EncodingError(
                f"Symbol {self.value!r} must match [A-Z0-9_]{{0,{SYMBOL_MAX_LEN}}}"
            )

    def to_dict(self) -> dict[str, Any]:
        return {"type": "symbol", "value": self.value}

    def to_sc_val(self) -> stellar_xdr.SCVal:
        return scval.to_symbol(self.value)


@dataclass(frozen=True)
class U32:
    value: int

    def __post_init__(self) -> None:
        _check_int_range("u32", self.value, 0, U32_MAX)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "u32", "value": self.value}

    def to_sc_val(self) -> stellar_xdr.SCVal:
        return scval.to_uint32(self.value)


@dataclass(frozen=True)
class U64:
    value: int

    def __post_init__(self) -> None:
        _check_int_range("u64", self.value, 0, U64_MAX)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "u64", "value": str(self.value)}

    def to_sc_val(self) -> stellar_xdr.SCVal:
        return scval.to_uint64(self.value)


@dataclass(frozen=True)
class I128:
    """Signed 128-bit integer split into a signed high half and unsigned low half."""

    hi: int
    lo: int

    def __post_init__(self) -> None:
        _check_int_range("i128.hi", self.hi, I64_MIN, I64_MAX)
        _check_int_range("i128.lo", self.lo, 0, U64_MAX)

    @property
    def value(self) -> int:
        return decode_wide_int(self)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "i128", "value": {"hi": str(self.hi), "lo": str(self.lo)}}

    def to_sc_val(self) -> stellar_xdr.SCVal:
        return scval.to_int128(self.value)


TypedValue = Union[Address, Symbol, U32, U64, I128]


def _check_int_range(kind: str, value: Any, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodingError(f"{kind} must be an integer, got {type(value).__name__}")
    if not low <= value <= high:
        raise EncodingError(f"{kind} value {value} outside [{low}, {high}]")


def from_dict(payload: dict[str, Any]) -> TypedValue:
    """Parse the JSON form of a typed value."""
    if not isinstance(payload, dict):
        raise EncodingError(f"Typed value must be an object, got {type(payload).__name__}")
    kind = payload.get("type")
    value = payload.get("value")
    try:
        if kind == "address":
            return Address(value)
        if kind == "symbol":
            return Symbol(value)
        if kind == "u32":
            return U32(int(value))
        if kind == "u64":
            return U64(int(value))
        if kind == "i128":
            if isinstance(value, dict):
                return I128(hi=int(value["hi"]), lo=int(value["lo"]))
            return encode_wide_int(int(value))
    except (KeyError, TypeError, ValueError) as exc:
        if isinstance(exc, EncodingError):
            raise
        raise EncodingError(f"Malformed {kind} value {value!r}: {exc}") from exc
    raise EncodingError(f"Unknown typed value tag: {kind!r}")


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


def encode_symbol(text: str, max_len: int = SYMBOL_MAX_LEN) -> Symbol:
    """
    Encode free text as a short symbol.

    Uppercases, replaces every character outside ``[A-Z0-9_]`` with ``_`` and
    truncates to ``max_len`` (never more than nine characters). Never fails.

    The encoding is lossy: distinct inputs can collapse to the same symbol
    (``"Jazz Night"`` and ``"jazz-nights"`` both become ``JAZZ_NIGH``).
    Callers that need uniqueness must enforce it on their side.
    """
    limit = max(min(max_len, SYMBOL_MAX_LEN), 0)
    normalized = _SYMBOL_INVALID.sub("_", str(text).upper())
    return Symbol(normalized[:limit])


def encode_wide_int(value: int) -> I128:
    """
    Split a non-negative integer into ``I128(hi, lo)``.

    ``hi`` is ``value >> 64`` and ``lo`` is ``value & (2**64 - 1)``, so
    ``hi * 2**64 + lo == value``.

    Raises:
        EncodingError: If ``value`` is negative or above ``2**127 - 1``.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodingError(f"Wide integer must be an int, got {type(value).__name__}")
    if value < 0:
        raise EncodingError(f"Wide integer must be non-negative, got {value}")
    if value > I128_MAX:
        raise EncodingError(f"Wide integer {value} exceeds i128 range")
    return I128(hi=value >> 64, lo=value & _LOW_64)


def decode_wide_int(wide: I128) -> int:
    return wide.hi * (1 << 64) + wide.lo


DateLike = Union[datetime, date, int, float, str]


def encode_timestamp(when: DateLike) -> U64:
    """
    Convert a date/time to whole seconds since the Unix epoch.

    Accepts ``datetime`` (naive values are local time), ``date`` (local
    midnight), ISO-8601 strings, or numeric epoch seconds. Fractions of a
    second are floored.
    """
    if isinstance(when, bool):
        raise EncodingError("Timestamp cannot be a bool")
    if isinstance(when, str):
        try:
            when = datetime.fromisoformat(when.strip().replace("Z", "+00:00"))
        except ValueError as exc:
            raise EncodingError(f"Unparseable timestamp {when!r}") from exc
    if isinstance(when, datetime):
        seconds = when.timestamp()
    elif isinstance(when, date):
        seconds = datetime.combine(when, dt_time.min).timestamp()
    elif isinstance(when, (int, float)):
        seconds = when
    else:
        raise EncodingError(f"Unsupported timestamp type {type(when).__name__}")

    if isinstance(seconds, float) and not math.isfinite(seconds):
        raise EncodingError(f"Timestamp must be finite, got {seconds}")
    floored = math.floor(seconds)
    if floored < 0:
        raise EncodingError(f"Timestamp {floored} precedes the Unix epoch")
    return U64(floored)


def to_base_units(display: Union[float, int, str, Decimal]) -> int:
    """
    Convert a display amount to base units, flooring sub-unit fractions.

    ``to_base_units(0.001) == 10_000``. Fractions below one base unit are
    truncated, never rounded. Floats are multiplied as floats, so the usual
    binary representation error applies; pass a ``str`` or ``Decimal`` for
    exact decimal input.
    """
    if isinstance(display, bool):
        raise EncodingError("Amount cannot be a bool")
    if isinstance(display, (str, Decimal)):
        try:
            amount = Decimal(display)
        except InvalidOperation as exc:
            raise EncodingError(f"Invalid amount {display!r}") from exc
        if not amount.is_finite():
            raise EncodingError(f"Amount must be finite, got {display!r}")
        units = int((amount * BASE_UNITS_PER_DISPLAY).to_integral_value(rounding=ROUND_FLOOR))
    elif isinstance(display, (int, float)):
        if isinstance(display, float) and not math.isfinite(display):
            raise EncodingError(f"Amount must be finite, got {display}")
        units = math.floor(display * BASE_UNITS_PER_DISPLAY)
    else:
        raise EncodingError(f"Unsupported amount type {type(display).__name__}")

    if units < 0:
        raise EncodingError(f"Amount must be non-negative, got {display}")
    return units


def encode_amount(display: Union[float, int, str, Decimal]) -> I128:
    """Display amount → base units → ``I128``."""
    return encode_wide_int(to_base_units(display))


__all__ = [
    "Address",
    "Symbol",
    "U32",
    "U64",
    "I128",
    "TypedValue",
    "BASE_UNITS_PER_DISPLAY",
    "SYMBOL_MAX_LEN",
    "from_dict",
    "encode_symbol",
    "encode_wide_int",
    "decode_wide_int",
    "encode_timestamp",
    "to_base_units",
    "encode_amount",
]
