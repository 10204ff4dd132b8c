"""Format detection: pick the right decoder for an arbitrary buffer.

Order of attempts:

  1. Binary sentinel present  -> parse_binary, no fallback.
  2. First/last bytes are a matching {...} or [...] pair -> try a
     headerless binary decode.  The decode must account for every byte of
     the buffer, so text that merely happens to be bracketed fails the
     attempt instead of being misread; the failure is remembered and
     detection continues.
  3. Buffer must be UTF-8 from here on; invalid UTF-8 is terminal.
  4. Text, minus any byte-order mark and surrounding whitespace, starts with "<?xml" (or "<llsd") -> parse_xml.
  5. Otherwise ERR_FORMAT_UNRECOGNIZED with a short snippet of the input.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ._binary import parse_binary, parse_binary_body
from ._constants import (
    BINARY_HDR,
    SNIPPET_CHARS,
    TAG_ARRAY,
    TAG_ARRAY_END,
    TAG_MAP,
    TAG_MAP_END,
    XML_HDR,
    XML_ROOT,
)
from ._errors import (
    ERR_FORMAT_UNRECOGNIZED,
    ERR_UNSUPPORTED,
    ERR_UTF8,
    LLSDError,
)
from ._xml import parse_xml

logger = logging.getLogger(__name__)

_BRACKETS = {TAG_MAP: TAG_MAP_END, TAG_ARRAY: TAG_ARRAY_END}
_BOM = "\ufeff"


def _snippet(buf: bytes) -> str:
    """First SNIPPET_CHARS code points of buf, never split mid-character."""
    # Four bytes per code point is the UTF-8 worst case, so this slice
    # always holds enough; "replace" keeps a bad tail from raising here.
    text = buf[:SNIPPET_CHARS * 4].decode("utf-8", errors="replace")
    if len(text) > SNIPPET_CHARS:
        return text[:SNIPPET_CHARS] + "..."
    return text


def _looks_headerless(buf: bytes) -> bool:
    return len(buf) >= 2 and _BRACKETS.get(buf[0]) == buf[-1]


def parse(data: bytes) -> Any:
    """Decode an LLSD buffer in whichever supported format it is in."""
    buf = bytes(data)

    if buf.startswith(BINARY_HDR):
        logger.debug("parse: binary sentinel found, %d bytes", len(buf))
        return parse_binary(buf)

    headerless_err: Optional[LLSDError] = None
    if _looks_headerless(buf):
        try:
            return parse_binary_body(buf)
        except LLSDError as e:
            logger.debug("parse: headerless binary attempt failed: %s", e)
            headerless_err = e

    try:
        text = buf.decode("utf-8")
    except UnicodeDecodeError as e:
        msg = "input is neither LLSD binary nor UTF-8 text: {} [{}]".format(
            e.reason, _snippet(buf))
        if headerless_err is not None:
            msg += " (headerless binary: {})".format(headerless_err)
        raise LLSDError(ERR_UTF8, msg, offset=e.start) from e

    if text.startswith(_BOM):
        text = text[1:]
    trimmed = text.strip()
    if trimmed.startswith(XML_HDR) or trimmed.startswith("<" + XML_ROOT):
        logger.debug("parse: XML document, %d chars", len(text))
        return parse_xml(trimmed)

    msg = "LLSD format not recognized: {!r}".format(_snippet(buf))
    if headerless_err is not None:
        msg += " (headerless binary: {})".format(headerless_err)
    raise LLSDError(ERR_FORMAT_UNRECOGNIZED, msg)


def parse_notation(data: bytes) -> Any:
    """LLSD notation is not supported; always raises ERR_UNSUPPORTED."""
    raise LLSDError(ERR_UNSUPPORTED, "LLSD notation format is not supported")
