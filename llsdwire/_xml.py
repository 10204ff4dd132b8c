"""LLSD XML codec.

Document shape:

    <?xml version="1.0" encoding="UTF-8"?>
    <llsd>
      <map>
        <key>region_id</key>
        <uuid>67153d5b-3659-afb4-8510-adda2c034649</uuid>
        <key>stats</key>
        <array><real>0.98</real><real>nan</real></array>
      </map>
    </llsd>

Parsing is two-stage.  expat turns the document into a flat list of pull
events (start/end/text/comment, each stamped with line and column), and a
recursive descent walks that list holding the currently open element
explicitly.  Empty elements (<undef />) always produce a start and an
end event.

expat enforces well-formedness on its own and stops at the first
violation.  Instead of surfacing that as an opaque ExpatError, the reader
turns it into a final "error" event so the descent raises it in document
order, with the open element and the offending tag both named.
"""

from __future__ import annotations

import logging
import re
import uuid
from typing import Any, Dict, List, NamedTuple, Optional, Union
from xml.parsers import expat

from ._constants import (
    COMPOSITE_ELEMENTS,
    DEFAULT_BINARY_ENCODING,
    INT32_MAX,
    INT32_MIN,
    KEY_ELEMENT,
    MAX_DEPTH,
    SCALAR_ELEMENTS,
    XML_DECL,
    XML_ESCAPES,
    XML_ROOT,
)
from ._errors import (
    ERR_INVALID_NUMBER,
    ERR_LIMIT_DEPTH,
    ERR_SCHEMA,
    ERR_TAG_MISMATCH,
    ERR_TYPE,
    ERR_UNKNOWN_TAG,
    ERR_UNTERMINATED,
    ERR_UTF8,
    ERR_XML,
    LLSDError,
)
from ._model import CANONICAL_NAN, NIL_UUID, URI, Date, llsd_type
from ._subcodecs import decode_binary_text, encode_base64, format_date, parse_date

logger = logging.getLogger(__name__)


# ── Event reader ─────────────────────────────────────────────

class _Event(NamedTuple):
    kind: str                   # start | end | text | comment | eof | error
    name: str = ""
    attrs: Optional[Dict[str, str]] = None
    text: str = ""
    line: int = 0
    column: int = 0
    error: Optional[LLSDError] = None


_TAG_MISMATCH = expat.errors.codes[expat.errors.XML_ERROR_TAG_MISMATCH]
_NO_ELEMENTS = expat.errors.codes[expat.errors.XML_ERROR_NO_ELEMENTS]
_UNCLOSED_TOKEN = expat.errors.codes[expat.errors.XML_ERROR_UNCLOSED_TOKEN]
_END_TAG_NAME = re.compile(r"</\s*([^\s>/]+)")


def _closing_tag_at(text: str, line: int, column: int) -> str:
    """Recover the name of the end tag expat choked on, for the message."""
    lines = text.split("\n")
    if not 1 <= line <= len(lines):
        return "?"
    row = lines[line - 1]
    start = row.rfind("</", 0, column + 2)
    m = _END_TAG_NAME.match(row, start) if start >= 0 else None
    return m.group(1) if m else "?"


class _Events:
    """Pull-style event source over one XML document."""

    def __init__(self, text: str) -> None:
        self._events: List[_Event] = []
        self._pos = 0
        self._read(text)

    def _read(self, text: str) -> None:
        parser = expat.ParserCreate()
        parser.buffer_text = True
        events = self._events
        open_tags: List[str] = []

        def here() -> Dict[str, int]:
            return {"line": parser.CurrentLineNumber,
                    "column": parser.CurrentColumnNumber + 1}

        def on_start(name: str, attrs: Dict[str, str]) -> None:
            open_tags.append(name)
            events.append(_Event("start", name=name, attrs=attrs, **here()))

        def on_end(name: str) -> None:
            open_tags.pop()
            events.append(_Event("end", name=name, **here()))

        def on_text(data: str) -> None:
            events.append(_Event("text", text=data, **here()))

        def on_comment(data: str) -> None:
            events.append(_Event("comment", text=data, **here()))

        parser.StartElementHandler = on_start
        parser.EndElementHandler = on_end
        parser.CharacterDataHandler = on_text
        parser.CommentHandler = on_comment

        try:
            parser.Parse(text, True)
        except expat.ExpatError as e:
            line, column = e.lineno, e.offset + 1
            if e.code == _NO_ELEMENTS or (e.code == _UNCLOSED_TOKEN and open_tags):
                # Input ran out, possibly mid-tag; let the descent report
                # what was still open.
                events.append(_Event("eof", line=line, column=column))
                return
            if e.code == _TAG_MISMATCH and open_tags:
                err = LLSDError(
                    ERR_TAG_MISMATCH,
                    "unmatched XML tags: <{}> .. </{}>".format(
                        open_tags[-1], _closing_tag_at(text, line, column)),
                    line=line, column=column,
                )
            else:
                err = LLSDError(ERR_XML, "XML syntax error: {}".format(
                    expat.errors.messages[e.code]), line=line, column=column)
            events.append(_Event("error", line=line, column=column, error=err))
            return
        events.append(_Event("eof", **here()))

    def next(self) -> _Event:
        ev = self._events[self._pos]
        if ev.kind == "error":
            raise ev.error
        # eof is sticky: every read past the end sees it again.
        if ev.kind != "eof":
            self._pos += 1
        return ev


# ── Recursive descent ────────────────────────────────────────

_INTEGER = re.compile(r"^[+-]?\d+$")
_REAL = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_REAL_NAN = re.compile(r"^[+-]?nan$", re.IGNORECASE)
_REAL_INF = re.compile(r"^[+-]?inf(?:inity)?$", re.IGNORECASE)
_UUID = re.compile(r"^[0-9a-fA-F]{8}-(?:[0-9a-fA-F]{4}-){3}[0-9a-fA-F]{12}$")


def _bad_literal(kind: str, text: str, ev: _Event) -> LLSDError:
    return LLSDError(ERR_INVALID_NUMBER, "invalid <{}> value {!r}".format(kind, text),
                     line=ev.line, column=ev.column)


def _to_real(text: str, ev: _Event) -> float:
    if _REAL_NAN.match(text):
        return CANONICAL_NAN
    if _REAL_INF.match(text) or _REAL.match(text):
        return float(text)
    raise _bad_literal("real", text, ev)


def _to_integer(text: str, ev: _Event) -> int:
    if not _INTEGER.match(text):
        raise _bad_literal("integer", text, ev)
    # Check the digit count first; int() refuses very long strings outright.
    if len(text.lstrip("+-").lstrip("0")) > 10:
        val = INT32_MAX + 1
    else:
        val = int(text)
    if val < INT32_MIN or val > INT32_MAX:
        raise LLSDError(ERR_INVALID_NUMBER, "integer {} outside int32 range".format(text),
                        line=ev.line, column=ev.column)
    return val


def _to_boolean(text: str, ev: _Event) -> bool:
    # LSL writes 0/1 as often as true/false.
    if text in ("1", "true"):
        return True
    if text in ("0", "false"):
        return False
    raise _bad_literal("boolean", text, ev)


def _to_uuid(text: str, ev: _Event) -> uuid.UUID:
    if not text:
        return NIL_UUID
    if not _UUID.match(text):
        raise _bad_literal("uuid", text, ev)
    return uuid.UUID(text)


def _convert_scalar(start: _Event, text: str) -> Any:
    kind = start.name
    if kind == "undef":
        return None
    if kind == "boolean":
        return _to_boolean(text, start)
    if kind == "integer":
        return _to_integer(text, start)
    if kind == "real":
        return _to_real(text, start)
    if kind == "uuid":
        return _to_uuid(text, start)
    if kind == "string":
        return text
    if kind == "uri":
        return URI(text)
    if kind == "date":
        try:
            return Date(parse_date(text))
        except LLSDError as e:
            raise LLSDError(e.code, str(e), line=start.line, column=start.column) from e
    if kind == "binary":
        encoding = (start.attrs or {}).get("encoding", DEFAULT_BINARY_ENCODING)
        try:
            return decode_binary_text(text, encoding)
        except LLSDError as e:
            raise LLSDError(e.code, str(e), line=start.line, column=start.column) from e
    raise LLSDError(ERR_UNKNOWN_TAG, "unknown data type <{}>".format(kind),
                    line=start.line, column=start.column)


def _check_end(open_name: str, ev: _Event) -> None:
    if ev.name != open_name:
        raise LLSDError(ERR_TAG_MISMATCH,
                        "unmatched XML tags: <{}> .. </{}>".format(open_name, ev.name),
                        line=ev.line, column=ev.column)


def _unterminated(open_name: str, ev: _Event) -> LLSDError:
    return LLSDError(ERR_UNTERMINATED,
                     "unexpected end of data inside <{}>".format(open_name),
                     line=ev.line, column=ev.column)


def _read_text(events: _Events, start: _Event) -> str:
    """Collect text up to start's end tag.  Comments are skipped."""
    chunks: List[str] = []
    while True:
        ev = events.next()
        if ev.kind == "text":
            chunks.append(ev.text)
        elif ev.kind == "end":
            _check_end(start.name, ev)
            return "".join(chunks).strip()
        elif ev.kind == "start":
            raise LLSDError(ERR_SCHEMA, "unexpected <{}> inside <{}>".format(
                ev.name, start.name), line=ev.line, column=ev.column)
        elif ev.kind == "eof":
            raise _unterminated(start.name, ev)


def _skip_stray_text(ev: _Event, container: str) -> None:
    if ev.text.strip():
        logger.debug("ignoring text %r inside <%s> at line %d", ev.text.strip(),
                     container, ev.line)


def _parse_map(events: _Events, start: _Event, depth: int) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    while True:
        ev = events.next()
        if ev.kind == "start":
            if ev.name != KEY_ELEMENT:
                raise LLSDError(ERR_SCHEMA, "expected <key> in map, found <{}>".format(ev.name),
                                line=ev.line, column=ev.column)
            key = _read_text(events, ev)
            value_ev = _next_element(events, "map entry {!r}".format(key))
            # Repeated keys are legal; the last one wins.
            result[key] = _parse_value(events, value_ev, depth + 1)
        elif ev.kind == "end":
            _check_end(start.name, ev)
            return result
        elif ev.kind == "text":
            _skip_stray_text(ev, start.name)
        elif ev.kind == "eof":
            raise _unterminated(start.name, ev)


def _next_element(events: _Events, what: str) -> _Event:
    """Skip whitespace and comments up to the next start tag."""
    while True:
        ev = events.next()
        if ev.kind == "start":
            return ev
        if ev.kind == "end":
            raise LLSDError(ERR_SCHEMA, "missing value for {}, found </{}>".format(what, ev.name),
                            line=ev.line, column=ev.column)
        if ev.kind == "eof":
            raise LLSDError(ERR_UNTERMINATED, "missing value for {}".format(what),
                            line=ev.line, column=ev.column)


def _parse_array(events: _Events, start: _Event, depth: int) -> List[Any]:
    items: List[Any] = []
    while True:
        ev = events.next()
        if ev.kind == "start":
            items.append(_parse_value(events, ev, depth + 1))
        elif ev.kind == "end":
            _check_end(start.name, ev)
            return items
        elif ev.kind == "text":
            _skip_stray_text(ev, start.name)
        elif ev.kind == "eof":
            raise _unterminated(start.name, ev)


def _parse_value(events: _Events, start: _Event, depth: int) -> Any:
    """Parse one value.  Entered with its start tag already consumed."""
    if start.name in SCALAR_ELEMENTS:
        text = _read_text(events, start)
        return _convert_scalar(start, text)
    if start.name in COMPOSITE_ELEMENTS:
        if depth + 1 > MAX_DEPTH:
            raise LLSDError(ERR_LIMIT_DEPTH, "nesting exceeds MAX_DEPTH",
                            line=start.line, column=start.column)
        if start.name == "map":
            return _parse_map(events, start, depth)
        return _parse_array(events, start, depth)
    raise LLSDError(ERR_UNKNOWN_TAG, "unknown data type <{}>".format(start.name),
                    line=start.line, column=start.column)


def parse_xml(data: Union[bytes, str]) -> Any:
    """Parse an LLSD XML document into a value tree."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        try:
            text = bytes(data).decode("utf-8")
        except UnicodeDecodeError as e:
            raise LLSDError(ERR_UTF8, "invalid UTF-8: {}".format(e.reason),
                            offset=e.start) from e
    else:
        text = data
    events = _Events(text)

    # Outer loop: find <llsd>.
    while True:
        ev = events.next()
        if ev.kind == "start":
            break
        if ev.kind == "eof":
            raise LLSDError(ERR_SCHEMA, "no <{}> element in data".format(XML_ROOT),
                            line=ev.line, column=ev.column)
    if ev.name != XML_ROOT:
        raise LLSDError(ERR_SCHEMA, "expected <{}>, found <{}>".format(XML_ROOT, ev.name),
                        line=ev.line, column=ev.column)
    root = ev

    found = False
    result: Any = None
    while True:
        ev = events.next()
        if ev.kind == "start":
            if found:
                raise LLSDError(ERR_SCHEMA, "more than one root value in <{}>".format(XML_ROOT),
                                line=ev.line, column=ev.column)
            result = _parse_value(events, ev, depth=0)
            found = True
        elif ev.kind == "end":
            _check_end(root.name, ev)
            break
        elif ev.kind == "text":
            _skip_stray_text(ev, root.name)
        elif ev.kind == "eof":
            raise _unterminated(root.name, ev)
    if not found:
        raise LLSDError(ERR_SCHEMA, "no value inside <{}>".format(XML_ROOT),
                        line=ev.line, column=ev.column)

    # Drain to the end so trailing junk still surfaces as an error.
    while events.next().kind != "eof":
        pass
    return result


# ── Generation ───────────────────────────────────────────────

# XML 1.0 Char production minus what we escape.  \r is written as a
# character reference because parsers normalize a literal one to \n.
_ESCAPE = re.compile(r"[&<>'\"\r]")
_NOT_XML_CHAR = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def _escape(text: str) -> str:
    bad = _NOT_XML_CHAR.search(text)
    if bad:
        raise LLSDError(ERR_TYPE, "character U+{:04X} cannot be written in XML".format(
            ord(bad.group())))
    return _ESCAPE.sub(lambda m: XML_ESCAPES.get(m.group(), "&#13;"), text)


def _real_text(val: float) -> str:
    if val != val:
        return "nan"
    if val in (float("inf"), float("-inf")):
        return "inf" if val > 0 else "-inf"
    return repr(val)


def _scalar_text(kind: str, val: Any) -> str:
    if kind == "boolean":
        return "true" if val else "false"
    if kind == "integer":
        return str(val)
    if kind == "real":
        return _real_text(val)
    if kind == "uuid":
        return str(val)
    if kind == "string":
        return _escape(val)
    if kind == "uri":
        return _escape(val.value)
    if kind == "date":
        return format_date(val.seconds)
    # binary
    return encode_base64(val)


def _generate(val: Any, out: List[str], level: int, indent: int, depth: int) -> None:
    kind = llsd_type(val)
    pad = " " * (indent * level)
    nl = "\n" if indent else ""

    if kind == "undef":
        out.append("{}<undef />{}".format(pad, nl))
    elif kind in ("map", "array"):
        if depth + 1 > MAX_DEPTH:
            raise LLSDError(ERR_LIMIT_DEPTH, "nesting exceeds MAX_DEPTH")
        if not val:
            out.append("{}<{} />{}".format(pad, kind, nl))
            return
        out.append("{}<{}>{}".format(pad, kind, nl))
        if kind == "map":
            inner = " " * (indent * (level + 1))
            for k, v in val.items():
                if not isinstance(k, str):
                    raise LLSDError(ERR_TYPE, "map key must be str, not {}".format(
                        type(k).__name__))
                out.append("{}<key>{}</key>{}".format(inner, _escape(k), nl))
                _generate(v, out, level + 1, indent, depth + 1)
        else:
            for item in val:
                _generate(item, out, level + 1, indent, depth + 1)
        out.append("{}</{}>{}".format(pad, kind, nl))
    else:
        out.append("{}<{}>{}</{}>{}".format(pad, kind, _scalar_text(kind, val), kind, nl))


def format_xml(val: Any, indent: int = 0) -> bytes:
    """Serialize a value tree as an LLSD XML document (UTF-8 bytes).

    `indent` is the number of spaces per nesting level; 0 writes the whole
    document on one line.
    """
    if indent < 0:
        raise LLSDError(ERR_TYPE, "indent must be >= 0, got {}".format(indent))
    nl = "\n" if indent else ""
    out: List[str] = [XML_DECL, nl, "<{}>".format(XML_ROOT), nl]
    _generate(val, out, 1 if indent else 0, indent, depth=0)
    out.append("</{}>{}".format(XML_ROOT, nl))
    return "".join(out).encode("utf-8")


def format_pretty_xml(val: Any, indent: int = 2) -> bytes:
    """format_xml() with pretty-printing on by default."""
    return format_xml(val, indent=indent)
