"""LLSD constants: sentinels, binary type tags, XML element names, limits.

Both wire forms share the value model; everything here is framing.
"""

from __future__ import annotations

from typing import Dict, FrozenSet

# ── Sentinels ────────────────────────────────────────────────
# Binary messages start with this exact byte string, trailing newline
# included.  It is emitted on encode and checked byte-for-byte on a
# full-message decode.
BINARY_HDR = b"<? LLSD/Binary ?>\n"

# Text documents are recognized by their XML declaration.  A bare <llsd>
# root (no declaration) is also accepted by the dispatcher.
XML_HDR = "<?xml"
XML_DECL = '<?xml version="1.0" encoding="UTF-8"?>'
XML_ROOT = "llsd"

# ── Binary type tags (single ASCII byte each) ────────────────
TAG_UNDEF: int = ord("!")
TAG_TRUE: int = ord("1")
TAG_FALSE: int = ord("0")
TAG_INTEGER: int = ord("i")   # int32 big-endian
TAG_REAL: int = ord("r")      # IEEE-754 double big-endian
TAG_UUID: int = ord("u")      # 16 raw bytes
TAG_DATE: int = ord("d")      # int64 seconds big-endian
TAG_STRING: int = ord("s")    # u32be length + UTF-8
TAG_URI: int = ord("l")       # same framing as STRING
TAG_BINARY: int = ord("b")    # u32be length + raw bytes
TAG_MAP: int = ord("{")
TAG_MAP_END: int = ord("}")
TAG_ARRAY: int = ord("[")
TAG_ARRAY_END: int = ord("]")

# Every map key is preceded by this byte.  Older writers used a bare
# length-prefixed key; other implementations of the format may not expect it.
TAG_KEY: int = ord("k")

# ── XML element names ────────────────────────────────────────
SCALAR_ELEMENTS: FrozenSet[str] = frozenset([
    "undef", "boolean", "integer", "real", "uuid",
    "string", "uri", "binary", "date",
])
COMPOSITE_ELEMENTS: FrozenSet[str] = frozenset(["map", "array"])
KEY_ELEMENT = "key"

# Binary payload encodings accepted on <binary encoding="...">.
DEFAULT_BINARY_ENCODING = "base64"
BINARY_ENCODINGS: FrozenSet[str] = frozenset(["base64", "base16", "base85"])

# XML text escaping.  Same five entities expat unescapes on the way in.
XML_ESCAPES: Dict[str, str] = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    "'": "&apos;",
    '"': "&quot;",
}

# ── Numeric ranges ───────────────────────────────────────────
# Python ints are unbounded, so both widths are range-checked explicitly.
INT32_MIN: int = -(2**31)
INT32_MAX: int = 2**31 - 1
INT64_MIN: int = -(2**63)
INT64_MAX: int = 2**63 - 1

# Quiet NaN with an all-zero payload.
CANONICAL_NAN_BITS: int = 0x7FF8000000000000

# ── Limits ───────────────────────────────────────────────────
# Recursion guard for adversarial nesting.  Well under CPython's default
# recursion limit even with the descent's own call depth per level.
MAX_DEPTH: int = 128

# Max code points of input echoed back in a format-not-recognized error.
SNIPPET_CHARS: int = 60
