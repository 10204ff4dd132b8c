"""LLSD binary codec.

Wire layout: an optional sentinel (BINARY_HDR), then one value.  Every
value starts with a single ASCII tag byte; fixed-width fields are
big-endian, variable-length fields carry a u32be length.

    !          undef
    1 / 0      boolean true / false (no payload)
    i          int32
    r          float64
    u          16-byte uuid
    d          int64 seconds
    s / l      string / uri: u32be length + UTF-8
    b          binary: u32be length + raw bytes
    { ... }    map: u32be count, count x ('k' + u32be length + key, value)
    [ ... ]    array: u32be count, count x value

Decoding threads an explicit offset through every call and never slices
past the end of the buffer, so truncated input raises ERR_TRUNCATED with
the offset where the missing field should have started.
"""

from __future__ import annotations

import struct
import uuid
from typing import Any, Dict, List, Tuple

from ._constants import (
    BINARY_HDR,
    MAX_DEPTH,
    TAG_ARRAY,
    TAG_ARRAY_END,
    TAG_BINARY,
    TAG_DATE,
    TAG_FALSE,
    TAG_INTEGER,
    TAG_KEY,
    TAG_MAP,
    TAG_MAP_END,
    TAG_REAL,
    TAG_STRING,
    TAG_TRUE,
    TAG_UNDEF,
    TAG_URI,
    TAG_UUID,
)
from ._errors import (
    ERR_LIMIT_DEPTH,
    ERR_MALFORMED_HEADER,
    ERR_TRAILING_DATA,
    ERR_TRUNCATED,
    ERR_TYPE,
    ERR_UNKNOWN_TAG,
    ERR_UNTERMINATED,
    ERR_UTF8,
    LLSDError,
)
from ._model import URI, Date, llsd_type

_U32 = struct.Struct(">I")
_I32 = struct.Struct(">i")
_I64 = struct.Struct(">q")
_F64 = struct.Struct(">d")


def _tag_repr(tag: int) -> str:
    """Render a tag byte for error messages: 'x' when printable, else 0x.."""
    if 0x20 < tag < 0x7F:
        return "'{}'".format(chr(tag))
    return "0x{:02x}".format(tag)


# ── Decode ───────────────────────────────────────────────────

def _take(buf: bytes, off: int, n: int, what: str) -> Tuple[bytes, int]:
    if off + n > len(buf):
        raise LLSDError(
            ERR_TRUNCATED,
            "truncated {}: need {} bytes, have {}".format(what, n, len(buf) - off),
            offset=off,
        )
    return buf[off:off + n], off + n


def _read_u32be(buf: bytes, off: int, what: str) -> Tuple[int, int]:
    raw, off = _take(buf, off, 4, what)
    return _U32.unpack(raw)[0], off


def _read_text(buf: bytes, off: int, what: str) -> Tuple[str, int]:
    start = off
    n, off = _read_u32be(buf, off, what + " length")
    raw, off = _take(buf, off, n, what)
    try:
        return raw.decode("utf-8"), off
    except UnicodeDecodeError as e:
        raise LLSDError(ERR_UTF8, "invalid UTF-8 in {}: {}".format(what, e.reason),
                        offset=start + 4 + e.start) from e


def _expect_byte(buf: bytes, off: int, expected: int, code: str, what: str) -> int:
    if off >= len(buf):
        # A missing terminator is reported as such; anything else is truncation.
        eof_code = ERR_UNTERMINATED if code == ERR_UNTERMINATED else ERR_TRUNCATED
        raise LLSDError(
            eof_code,
            "expected {} {}, found end of data".format(what, _tag_repr(expected)),
            offset=off,
        )
    if buf[off] != expected:
        raise LLSDError(
            code,
            "expected {} {}, found {}".format(what, _tag_repr(expected), _tag_repr(buf[off])),
            offset=off,
        )
    return off + 1


def _decode_one(buf: bytes, off: int, depth: int) -> Tuple[Any, int]:
    """Decode one value from buf at offset.  Returns (value, next offset)."""
    if off >= len(buf):
        raise LLSDError(ERR_TRUNCATED, "truncated: expected a type tag", offset=off)
    tag_off = off
    tag = buf[off]
    off += 1

    if tag == TAG_UNDEF:
        return None, off
    if tag == TAG_TRUE:
        return True, off
    if tag == TAG_FALSE:
        return False, off

    if tag == TAG_INTEGER:
        raw, off = _take(buf, off, 4, "integer")
        return _I32.unpack(raw)[0], off

    if tag == TAG_REAL:
        raw, off = _take(buf, off, 8, "real")
        return _F64.unpack(raw)[0], off

    if tag == TAG_UUID:
        raw, off = _take(buf, off, 16, "uuid")
        return uuid.UUID(bytes=raw), off

    if tag == TAG_DATE:
        raw, off = _take(buf, off, 8, "date")
        return Date(_I64.unpack(raw)[0]), off

    if tag == TAG_STRING:
        return _read_text(buf, off, "string")

    if tag == TAG_URI:
        text, off = _read_text(buf, off, "uri")
        return URI(text), off

    if tag == TAG_BINARY:
        n, off = _read_u32be(buf, off, "binary length")
        return _take(buf, off, n, "binary")

    if tag == TAG_MAP:
        if depth + 1 > MAX_DEPTH:
            raise LLSDError(ERR_LIMIT_DEPTH, "nesting exceeds MAX_DEPTH", offset=tag_off)
        count, off = _read_u32be(buf, off, "map count")
        result: Dict[str, Any] = {}
        for _ in range(count):
            off = _expect_byte(buf, off, TAG_KEY, ERR_UNKNOWN_TAG, "map key tag")
            k, off = _read_text(buf, off, "map key")
            v, off = _decode_one(buf, off, depth + 1)
            # Repeated keys are legal; the last one wins.
            result[k] = v
        off = _expect_byte(buf, off, TAG_MAP_END, ERR_UNTERMINATED, "map terminator")
        return result, off

    if tag == TAG_ARRAY:
        if depth + 1 > MAX_DEPTH:
            raise LLSDError(ERR_LIMIT_DEPTH, "nesting exceeds MAX_DEPTH", offset=tag_off)
        count, off = _read_u32be(buf, off, "array count")
        items: List[Any] = []
        for _ in range(count):
            item, off = _decode_one(buf, off, depth + 1)
            items.append(item)
        off = _expect_byte(buf, off, TAG_ARRAY_END, ERR_UNTERMINATED, "array terminator")
        return items, off

    raise LLSDError(ERR_UNKNOWN_TAG, "unknown type tag {}".format(_tag_repr(tag)),
                    offset=tag_off)


def _decode_all(buf: bytes, off: int) -> Any:
    val, end = _decode_one(buf, off, depth=0)
    if end != len(buf):
        raise LLSDError(ERR_TRAILING_DATA,
                        "{} trailing bytes after root value".format(len(buf) - end),
                        offset=end)
    return val


def parse_binary(data: bytes) -> Any:
    """Decode a full binary message: sentinel, then exactly one value."""
    buf = bytes(data)
    if not buf.startswith(BINARY_HDR):
        raise LLSDError(ERR_MALFORMED_HEADER,
                        "expected binary header {!r}, found {!r}".format(
                            BINARY_HDR, buf[:len(BINARY_HDR)]),
                        offset=0)
    return _decode_all(buf, len(BINARY_HDR))


def parse_binary_body(data: bytes) -> Any:
    """Decode one value with no sentinel, for binary embedded in other framing."""
    return _decode_all(bytes(data), 0)


# ── Encode ───────────────────────────────────────────────────

def _u32be(n: int) -> bytes:
    if n > 0xFFFFFFFF:
        raise LLSDError(ERR_TYPE, "length {} does not fit in u32".format(n))
    return _U32.pack(n)


def _text_field(tag: int, text: str) -> bytes:
    try:
        raw = text.encode("utf-8")
    except UnicodeEncodeError as e:
        # Lone surrogates can't be written as UTF-8.
        raise LLSDError(ERR_UTF8, "unencodable text: {}".format(e.reason)) from e
    return bytes([tag]) + _u32be(len(raw)) + raw


def _encode_value(val: Any, parts: List[bytes], depth: int) -> None:
    """Append the encoding of val to parts.  Mirrors _decode_one."""
    kind = llsd_type(val)

    if kind == "undef":
        parts.append(bytes([TAG_UNDEF]))
    elif kind == "boolean":
        parts.append(bytes([TAG_TRUE if val else TAG_FALSE]))
    elif kind == "integer":
        parts.append(bytes([TAG_INTEGER]) + _I32.pack(val))
    elif kind == "real":
        # struct keeps the raw bit pattern, NaN payload included.
        parts.append(bytes([TAG_REAL]) + _F64.pack(val))
    elif kind == "uuid":
        parts.append(bytes([TAG_UUID]) + val.bytes)
    elif kind == "date":
        parts.append(bytes([TAG_DATE]) + _I64.pack(val.seconds))
    elif kind == "string":
        parts.append(_text_field(TAG_STRING, val))
    elif kind == "uri":
        parts.append(_text_field(TAG_URI, val.value))
    elif kind == "binary":
        raw = bytes(val)
        parts.append(bytes([TAG_BINARY]) + _u32be(len(raw)) + raw)
    elif kind == "map":
        if depth + 1 > MAX_DEPTH:
            raise LLSDError(ERR_LIMIT_DEPTH, "nesting exceeds MAX_DEPTH")
        parts.append(bytes([TAG_MAP]) + _u32be(len(val)))
        for k, v in val.items():
            if not isinstance(k, str):
                raise LLSDError(ERR_TYPE, "map key must be str, not {}".format(
                    type(k).__name__))
            parts.append(_text_field(TAG_KEY, k))
            _encode_value(v, parts, depth + 1)
        parts.append(bytes([TAG_MAP_END]))
    elif kind == "array":
        if depth + 1 > MAX_DEPTH:
            raise LLSDError(ERR_LIMIT_DEPTH, "nesting exceeds MAX_DEPTH")
        parts.append(bytes([TAG_ARRAY]) + _u32be(len(val)))
        for item in val:
            _encode_value(item, parts, depth + 1)
        parts.append(bytes([TAG_ARRAY_END]))


def format_binary_body(val: Any) -> bytes:
    """Encode one value with no sentinel."""
    parts: List[bytes] = []
    _encode_value(val, parts, depth=0)
    return b"".join(parts)


def format_binary(val: Any) -> bytes:
    """Encode a full binary message: sentinel + value."""
    return BINARY_HDR + format_binary_body(val)
