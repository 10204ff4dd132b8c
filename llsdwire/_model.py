"""LLSD value model.

A value tree is built from native Python objects wherever Python already
has a distinct type, plus two small wrappers for the variants it lacks:

    undef    None
    boolean  bool
    integer  int (signed 32-bit)
    real     float
    uuid     uuid.UUID
    string   str
    uri      URI
    date     Date (signed 64-bit seconds since the epoch)
    binary   bytes (bytearray/memoryview accepted on encode)
    map      dict with str keys
    array    list (tuple accepted on encode)

llsd_type() is the single classification both encoders dispatch on.
llsd_equal() is strict structural equality: Python's own == treats
1, 1.0 and True as equal and NaN as unequal to itself, neither of which
is right for a typed tree.
"""

from __future__ import annotations

import struct
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from ._constants import (
    CANONICAL_NAN_BITS,
    INT32_MAX,
    INT32_MIN,
    INT64_MAX,
    INT64_MIN,
)
from ._errors import ERR_TYPE, LLSDError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

CANONICAL_NAN: float = struct.unpack(">d", struct.pack(">Q", CANONICAL_NAN_BITS))[0]
NIL_UUID = uuid.UUID(int=0)


@dataclass(frozen=True)
class URI:
    """A URI.  Same wire payload as a string, but a distinct variant."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise LLSDError(ERR_TYPE, "URI value must be str, not {}".format(
                type(self.value).__name__))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Date:
    """A timestamp with whole-second resolution."""

    seconds: int

    def __post_init__(self) -> None:
        # bool is an int subclass; Date(True) is almost certainly a bug.
        if isinstance(self.seconds, bool) or not isinstance(self.seconds, int):
            raise LLSDError(ERR_TYPE, "Date seconds must be int, not {}".format(
                type(self.seconds).__name__))
        if self.seconds < INT64_MIN or self.seconds > INT64_MAX:
            raise LLSDError(ERR_TYPE, "Date seconds outside int64 range")

    @classmethod
    def from_datetime(cls, dt: datetime) -> "Date":
        """Truncate `dt` to whole seconds.  Naive datetimes are taken as UTC."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return cls((dt - EPOCH) // timedelta(seconds=1))

    def to_datetime(self) -> datetime:
        """Return an aware UTC datetime.  Raises OverflowError past year 9999."""
        return EPOCH + timedelta(seconds=self.seconds)


def _real_bits(x: float) -> bytes:
    return struct.pack(">d", x)


def llsd_type(val: Any) -> str:
    """Classify a Python value as one LLSD variant name.

    Raises LLSDError(ERR_TYPE) for anything that has no LLSD representation,
    including ints outside the int32 range.
    """
    if val is None:
        return "undef"

    # bool before int: isinstance(True, int) is True.
    if isinstance(val, bool):
        return "boolean"

    if isinstance(val, int):
        if val < INT32_MIN or val > INT32_MAX:
            raise LLSDError(ERR_TYPE, "integer {} outside int32 range".format(val))
        return "integer"

    if isinstance(val, float):
        return "real"
    if isinstance(val, uuid.UUID):
        return "uuid"
    if isinstance(val, str):
        return "string"
    if isinstance(val, URI):
        return "uri"
    if isinstance(val, Date):
        return "date"
    if isinstance(val, (bytes, bytearray, memoryview)):
        return "binary"
    if isinstance(val, dict):
        return "map"
    if isinstance(val, (list, tuple)):
        return "array"

    raise LLSDError(ERR_TYPE, "unsupported type: {}".format(type(val).__name__))


def llsd_equal(a: Any, b: Any) -> bool:
    """Structural equality: same variant at every node, reals by bit pattern."""
    kind = llsd_type(a)
    if kind != llsd_type(b):
        return False

    if kind == "real":
        return _real_bits(a) == _real_bits(b)

    if kind == "binary":
        return bytes(a) == bytes(b)

    if kind == "map":
        if a.keys() != b.keys():
            return False
        return all(llsd_equal(a[k], b[k]) for k in a)

    if kind == "array":
        if len(a) != len(b):
            return False
        return all(llsd_equal(x, y) for x, y in zip(a, b))

    return a == b
