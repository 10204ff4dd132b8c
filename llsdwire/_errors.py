"""LLSD error codes and the exception class.

Every failure in the package surfaces as an LLSDError.  Callers branch on
`.code`; the message carries the diagnostic context (byte offset for
binary input, line/column for XML, and the conflicting tokens).
"""

from __future__ import annotations

from typing import Optional

# ── Error codes ──────────────────────────────────────────────
# Grep-friendly; the conformance vectors compare against these strings.

ERR_MALFORMED_HEADER: str = "ERR_MALFORMED_HEADER"        # binary sentinel mismatch
ERR_TRUNCATED: str = "ERR_TRUNCATED"                      # buffer ran out mid-field
ERR_UNKNOWN_TAG: str = "ERR_UNKNOWN_TAG"                  # bad tag byte / element name
ERR_UNTERMINATED: str = "ERR_UNTERMINATED"                # missing or wrong terminator
ERR_TAG_MISMATCH: str = "ERR_TAG_MISMATCH"                # <a>...</b>
ERR_INVALID_ENCODING: str = "ERR_INVALID_ENCODING"        # bad binary sub-encoding
ERR_INVALID_NUMBER: str = "ERR_INVALID_NUMBER"            # integer/real/bool/uuid/date literal
ERR_UTF8: str = "ERR_UTF8"                                # invalid UTF-8
ERR_FORMAT_UNRECOGNIZED: str = "ERR_FORMAT_UNRECOGNIZED"  # dispatcher gave up
ERR_SCHEMA: str = "ERR_SCHEMA"                            # bad document shape
ERR_TRAILING_DATA: str = "ERR_TRAILING_DATA"              # bytes after the root value
ERR_LIMIT_DEPTH: str = "ERR_LIMIT_DEPTH"                  # exceeds MAX_DEPTH
ERR_TYPE: str = "ERR_TYPE"                                # value not encodable
ERR_XML: str = "ERR_XML"                                  # other XML syntax error
ERR_UNSUPPORTED: str = "ERR_UNSUPPORTED"                  # notation format


class LLSDError(ValueError):
    """Exception for LLSD decode/encode errors.

    `.code` is one of the ERR_* strings above.  `.offset` is set for binary
    input, `.line` and `.column` for XML input, when the position is known.
    """

    def __init__(self, code: str, msg: str = "", *,
                 offset: Optional[int] = None,
                 line: Optional[int] = None,
                 column: Optional[int] = None) -> None:
        if offset is not None:
            msg = "{} at offset {}".format(msg or code, offset)
        elif line is not None:
            msg = "{} at line {}, column {}".format(msg or code, line, column)
        super().__init__(msg or code)
        self.code = code
        self.offset = offset
        self.line = line
        self.column = column
