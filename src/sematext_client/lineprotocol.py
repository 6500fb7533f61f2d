"""
Strict line protocol encoder.

    measurement,tag1=v1,tag2=v2 field1=1i,field2="x" 1628605794318000000

One encoder accumulates many lines in a single buffer. The first encoding
failure sticks in `err` and aborts the line in progress; the buffer always
ends on a complete line.
"""

from __future__ import annotations

import math
from datetime import datetime
from enum import IntEnum
from typing import Optional, Union

from .errors import EncodingError
from .models import FieldValue
from .utils import unix_nanos

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_MEASUREMENT_ESCAPES = str.maketrans({",": "\\,", " ": "\\ "})
_KEY_ESCAPES = str.maketrans({",": "\\,", "=": "\\=", " ": "\\ "})
_STRING_ESCAPES = str.maketrans({"\\": "\\\\", '"': '\\"'})


class Precision(IntEnum):
    """Timestamp unit, as nanoseconds per unit."""

    NANOSECOND = 1
    MICROSECOND = 1_000
    MILLISECOND = 1_000_000
    SECOND = 1_000_000_000


def coerce_field_value(value) -> Optional[FieldValue]:
    """Return `value` if it is representable on the wire, else None."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value if INT64_MIN <= value <= INT64_MAX else None
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        return value if _utf8(value) is not None else None
    return None


def _utf8(text: str) -> Optional[bytes]:
    """UTF-8 bytes of `text`, or None when it holds lone surrogates."""
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError:
        return None


def format_field_value(value: FieldValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"{value}i"
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, str):
        return '"' + value.translate(_STRING_ESCAPES) + '"'
    raise TypeError(f"unsupported field type {type(value).__name__}")


class LineEncoder:
    """
    Reusable line protocol encoder.

    Usage:
        enc = LineEncoder()
        enc.start_line("cpu")
        enc.add_tag("host", "a")          # tags in ascending key order
        enc.add_field("usage", 0.5)
        enc.end_line(datetime.now(timezone.utc))
        if enc.err: ...
        payload = enc.bytes()
    """

    def __init__(self, precision: Precision = Precision.NANOSECOND):
        self._precision = Precision(precision)
        self._buf = bytearray()
        self._err: Optional[EncodingError] = None
        self._line_start = 0
        self._in_line = False
        self._last_tag: Optional[str] = None
        self._nfields = 0

    # --------------------------- state

    @property
    def precision(self) -> Precision:
        return self._precision

    def set_precision(self, precision: Precision) -> None:
        self._precision = Precision(precision)

    @property
    def err(self) -> Optional[EncodingError]:
        return self._err

    def bytes(self) -> bytes:
        return bytes(self._buf)

    def __len__(self) -> int:
        return len(self._buf)

    def reset(self) -> None:
        """Drop buffered lines. Precision and error state are kept."""
        self._buf.clear()
        self._line_start = 0
        self._in_line = False
        self._last_tag = None
        self._nfields = 0

    def clear_err(self) -> None:
        self._err = None

    # --------------------------- encoding

    def start_line(self, measurement: str) -> None:
        if self._err:
            return
        if self._in_line:
            self._fail("start_line called with a line already in progress")
            return
        if not measurement:
            self._fail("empty measurement name")
            return
        if "\n" in measurement:
            self._fail(f"invalid measurement {measurement!r}: contains newline")
            return
        name = _utf8(measurement.translate(_MEASUREMENT_ESCAPES))
        if name is None:
            self._fail(f"invalid measurement {measurement!r}: not encodable as UTF-8")
            return
        self._line_start = len(self._buf)
        self._in_line = True
        self._last_tag = None
        self._nfields = 0
        self._buf += name

    def add_tag(self, key: str, value: str) -> None:
        if self._err:
            return
        if not self._in_line:
            self._fail("add_tag called outside of a line")
        elif self._nfields:
            self._fail(f"tag {key!r} added after fields")
        elif not key or not value:
            self._fail(f"empty tag key or value ({key!r}={value!r})")
        elif "\n" in key or "\n" in value:
            self._fail(f"invalid tag {key!r}: contains newline")
        elif self._last_tag is not None and key <= self._last_tag:
            self._fail(f"tag key {key!r} out of order (after {self._last_tag!r})")
        else:
            k = _utf8(key.translate(_KEY_ESCAPES))
            v = _utf8(value.translate(_KEY_ESCAPES))
            if k is None or v is None:
                self._fail(f"invalid tag {key!r}: not encodable as UTF-8")
                return
            self._last_tag = key
            self._buf += b"," + k + b"=" + v

    def add_field(self, key: str, value: FieldValue) -> None:
        if self._err:
            return
        if not self._in_line:
            self._fail("add_field called outside of a line")
            return
        if not key or "\n" in key:
            self._fail(f"invalid field key {key!r}")
            return
        if coerce_field_value(value) is None:
            self._fail(f"invalid value for field {key!r}: {value!r}")
            return
        k = _utf8(key.translate(_KEY_ESCAPES))
        if k is None:
            self._fail(f"invalid field key {key!r}: not encodable as UTF-8")
            return
        # value already checked by coerce_field_value
        v = format_field_value(value).encode("utf-8")
        self._buf += (b" " if self._nfields == 0 else b",") + k + b"=" + v
        self._nfields += 1

    def end_line(self, ts: Union[datetime, int]) -> None:
        if self._err:
            return
        if not self._in_line:
            self._fail("end_line called outside of a line")
            return
        if self._nfields == 0:
            self._fail("line has no fields")
            return

        if isinstance(ts, datetime):
            nanos = unix_nanos(ts)
        elif isinstance(ts, int) and not isinstance(ts, bool):
            nanos = ts
        else:
            self._fail(f"unsupported timestamp {ts!r}")
            return

        # truncate toward zero
        q = abs(nanos) // self._precision
        value = q if nanos >= 0 else -q
        if not INT64_MIN <= value <= INT64_MAX:
            self._fail(f"timestamp {ts!r} out of range for precision {self._precision.name}")
            return

        self._buf += b" " + str(value).encode("ascii") + b"\n"
        self._in_line = False

    def _fail(self, msg: str) -> None:
        self._err = EncodingError(msg)
        if self._in_line:
            del self._buf[self._line_start :]
        self._in_line = False
