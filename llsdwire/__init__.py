"""llsdwire: LLSD (Linden Lab Structured Data) codec.

One value tree, two interchangeable wire forms: LLSD binary and LLSD XML.
Either form decodes to the same tree and re-encodes losslessly.

Quick start:
    >>> from llsdwire import parse, format_binary, format_xml
    >>> tree = [123.5, 42, {"val1": 456.0, "val2": 999}, "Hello world"]
    >>> parse(format_binary(tree)) == tree
    True
    >>> format_xml(42)
    b'<?xml version="1.0" encoding="UTF-8"?><llsd><integer>42</integer></llsd>'

Python types map onto LLSD variants as follows: None (undef), bool,
int (int32), float (real), uuid.UUID, str (string), URI, Date, bytes
(binary), dict (map) and list (array).  Use llsd_equal() rather than ==
to compare trees: it is variant- and bit-exact.
"""

from __future__ import annotations

from ._binary import (
    format_binary,
    format_binary_body,
    parse_binary,
    parse_binary_body,
)
from ._constants import BINARY_HDR, MAX_DEPTH
from ._dispatch import parse, parse_notation
from ._errors import (
    ERR_FORMAT_UNRECOGNIZED,
    ERR_INVALID_ENCODING,
    ERR_INVALID_NUMBER,
    ERR_LIMIT_DEPTH,
    ERR_MALFORMED_HEADER,
    ERR_SCHEMA,
    ERR_TAG_MISMATCH,
    ERR_TRAILING_DATA,
    ERR_TRUNCATED,
    ERR_TYPE,
    ERR_UNKNOWN_TAG,
    ERR_UNSUPPORTED,
    ERR_UNTERMINATED,
    ERR_UTF8,
    ERR_XML,
    LLSDError,
)
from ._model import CANONICAL_NAN, NIL_UUID, URI, Date, llsd_equal, llsd_type
from ._xml import format_pretty_xml, format_xml, parse_xml

__version__ = "0.1.0"

__all__ = [
    # Decoding
    "parse",
    "parse_binary",
    "parse_binary_body",
    "parse_xml",
    "parse_notation",
    # Encoding
    "format_binary",
    "format_binary_body",
    "format_xml",
    "format_pretty_xml",
    # Value model
    "URI",
    "Date",
    "CANONICAL_NAN",
    "NIL_UUID",
    "llsd_type",
    "llsd_equal",
    "BINARY_HDR",
    "MAX_DEPTH",
    # Exception
    "LLSDError",
    # Error codes
    "ERR_MALFORMED_HEADER",
    "ERR_TRUNCATED",
    "ERR_UNKNOWN_TAG",
    "ERR_UNTERMINATED",
    "ERR_TAG_MISMATCH",
    "ERR_INVALID_ENCODING",
    "ERR_INVALID_NUMBER",
    "ERR_UTF8",
    "ERR_FORMAT_UNRECOGNIZED",
    "ERR_SCHEMA",
    "ERR_TRAILING_DATA",
    "ERR_LIMIT_DEPTH",
    "ERR_TYPE",
    "ERR_XML",
    "ERR_UNSUPPORTED",
]
