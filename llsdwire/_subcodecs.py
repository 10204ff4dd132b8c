"""Text sub-encodings used inside LLSD XML.

<binary> payloads may arrive as base64 (the default), base16 or base85
(Ascii85, with or without the Adobe <~ ~> framing); the generator only
ever writes base64.  <date> payloads are RFC 3339 timestamps, held as
whole seconds since the epoch.
"""

from __future__ import annotations

import base64
import binascii
import re
from datetime import datetime, timedelta, timezone

from ._constants import DEFAULT_BINARY_ENCODING
from ._errors import ERR_INVALID_ENCODING, ERR_INVALID_NUMBER, LLSDError
from ._model import EPOCH, Date

# ── Binary payloads ──────────────────────────────────────────

def _strip_ws(text: str) -> str:
    # Pretty-printers wrap long payloads; whitespace is never significant.
    return "".join(text.split())


def decode_binary_text(text: str, encoding: str = DEFAULT_BINARY_ENCODING) -> bytes:
    """Decode a <binary> element's text per its `encoding` attribute."""
    s = _strip_ws(text)
    try:
        if encoding == "base64":
            return base64.b64decode(s, validate=True)
        if encoding == "base16":
            return bytes.fromhex(s)
        if encoding == "base85":
            return base64.a85decode(s, adobe=s.startswith("<~"))
    except (binascii.Error, ValueError) as e:
        raise LLSDError(ERR_INVALID_ENCODING,
                        "malformed {} payload: {}".format(encoding, e)) from e
    raise LLSDError(ERR_INVALID_ENCODING,
                    'unknown encoding: <binary encoding="{}">'.format(encoding))


def encode_base64(data: bytes) -> str:
    return base64.b64encode(bytes(data)).decode("ascii")


# ── Dates ────────────────────────────────────────────────────
# RFC 3339 §5.6.  The offset is mandatory; fractional seconds are
# accepted and dropped.

_RFC3339 = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt ](\d{2}):(\d{2}):(\d{2})(?:\.\d+)?"
    r"(?:([Zz])|([+-])(\d{2}):(\d{2}))$"
)


def parse_date(text: str) -> int:
    """Parse an RFC 3339 timestamp into whole seconds since the epoch.

    Dropping the fraction floors toward negative infinity, which is what
    truncation to the containing second means for pre-epoch times too.
    """
    m = _RFC3339.match(text)
    if not m:
        raise LLSDError(ERR_INVALID_NUMBER, "invalid date: {!r}".format(text))
    year, month, day, hour, minute, second = (int(g) for g in m.group(1, 2, 3, 4, 5, 6))
    if m.group(7):
        tz = timezone.utc
    else:
        off = timedelta(hours=int(m.group(9)), minutes=int(m.group(10)))
        if m.group(8) == "-":
            off = -off
        try:
            tz = timezone(off)
        except ValueError as e:
            raise LLSDError(ERR_INVALID_NUMBER,
                            "invalid date offset: {!r}".format(text)) from e
    try:
        dt = datetime(year, month, day, hour, minute, second, tzinfo=tz)
    except ValueError as e:
        raise LLSDError(ERR_INVALID_NUMBER, "invalid date: {!r}: {}".format(text, e)) from e
    return (dt - EPOCH) // timedelta(seconds=1)


def format_date(seconds: int) -> str:
    """Format seconds since the epoch as YYYY-MM-DDTHH:MM:SSZ."""
    try:
        dt = Date(seconds).to_datetime()
    except OverflowError as e:
        raise LLSDError(ERR_INVALID_NUMBER,
                        "date {} outside representable range".format(seconds)) from e
    # Explicit fields: strftime("%Y") doesn't zero-pad years below 1000 on all libcs.
    return "{:04d}-{:02d}-{:02d}T{:02d}:{:02d}:{:02d}Z".format(
        dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second)
