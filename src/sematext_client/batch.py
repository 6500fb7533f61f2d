from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Union

from .errors import EncodingError, Outcome
from .lineprotocol import LineEncoder, coerce_field_value
from .metrics import FIELDS_DROPPED_TOTAL, LINES_ENCODED_TOTAL, POINTS_DROPPED_TOTAL
from .models import FieldValue

if TYPE_CHECKING:
    from .writer import LineProtocolWriter, WriterBase


@dataclass(frozen=True)
class BatchConfig:
    """Line/byte flush thresholds."""

    max_lines: int = 1000  # flush after N lines
    max_bytes: int = 300_000  # or after this many encoded bytes

    def __post_init__(self):
        if self.max_lines <= 0 or self.max_bytes <= 0:
            raise ValueError("max_lines and max_bytes must be > 0")


class BatchState(str, Enum):
    EMPTY = "empty"  # no encoder checked out
    ACCUMULATING = "accumulating"  # encoder held, lines buffered


class BatchCore:
    """Encoding half of a batch, shared by the sync and async batches."""

    def __init__(self, writer: "WriterBase"):
        self._writer = writer
        self._cfg: BatchConfig = writer.batch_config
        self._pool = writer.encoder_pool
        self._normalizer = writer.tag_normalizer
        self._log = writer.logger
        self._encoder: Optional[LineEncoder] = None
        self._lines = 0

    @property
    def line_count(self) -> int:
        return self._lines

    @property
    def byte_size(self) -> int:
        return len(self._encoder) if self._encoder is not None else 0

    @property
    def state(self) -> BatchState:
        return BatchState.EMPTY if self._encoder is None else BatchState.ACCUMULATING

    # --------------------------- internals

    def _encode(
        self,
        measurement: str,
        tags: Optional[Mapping[str, str]],
        fields: Optional[Mapping[str, Any]],
        ts: Union[datetime, int],
    ) -> bool:
        """Encode one point. Returns True once a flush threshold is reached."""
        values = self._convert_fields(fields)
        if not values:
            self._log.debug(f"point {measurement!r} has no valid fields, skipping")
            POINTS_DROPPED_TOTAL.labels(reason="no_fields").inc()
            return False

        if self._encoder is None:
            self._encoder = self._pool.get()
        enc = self._encoder

        enc.start_line(measurement)
        for tag in self._normalizer.normalize(tags):
            enc.add_tag(tag.k, tag.v)
        for k, v in values.items():
            enc.add_field(k, v)
        enc.end_line(ts)

        err = enc.err
        if err is not None:
            # The whole buffer goes: nothing partial is ever sent.
            self._release()
            POINTS_DROPPED_TOTAL.labels(reason="encoding_error").inc()
            raise EncodingError(f"failed to encode point: {err}") from err

        self._lines += 1
        LINES_ENCODED_TOTAL.inc()
        return self._lines >= self._cfg.max_lines or len(enc) >= self._cfg.max_bytes

    def _convert_fields(self, fields: Optional[Mapping[str, Any]]) -> Dict[str, FieldValue]:
        out: Dict[str, FieldValue] = {}
        for k, v in (fields or {}).items():
            if k == "":
                self._log.debug("empty field key")
                FIELDS_DROPPED_TOTAL.labels(reason="empty_key").inc()
                continue
            value = coerce_field_value(v)
            if value is None:
                self._log.debug(f"invalid field value key={k} value={v!r}")
                FIELDS_DROPPED_TOTAL.labels(reason="invalid_value").inc()
                continue
            out[k] = value
        return out

    def _payload(self) -> bytes:
        return self._encoder.bytes() if self._encoder is not None else b""

    def _release(self) -> None:
        """Reset the encoder, hand it back to the pool and zero the counters."""
        if self._encoder is not None:
            self._pool.put(self._encoder)
            self._encoder = None
        self._lines = 0


class WriterBatch(BatchCore):
    """
    Sync line protocol batch. Flushes on line count or byte size.

    Usage:
        writer = LineProtocolWriter(url, httpx.Client(), token="...")
        with writer.new_batch() as batch:
            for p in points:
                batch.enqueue_point(p.measurement, p.tags, p.fields, p.ts)
        # final write on exit
    """

    _writer: "LineProtocolWriter"

    def __enter__(self) -> "WriterBatch":
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.write_batch()
        else:
            self._release()

    # --------------------------- public API

    def enqueue_point(
        self,
        measurement: str,
        tags: Optional[Mapping[str, str]],
        fields: Optional[Mapping[str, Any]],
        ts: Union[datetime, int],
        *,
        timeout: Optional[float] = None,
    ) -> None:
        if self._encode(measurement, tags, fields, ts):
            self.write_batch(timeout=timeout)

    def write_batch(self, *, timeout: Optional[float] = None) -> Outcome:
        """Send buffered lines in one request. The encoder is released on every path."""
        try:
            body = self._payload()
            if not body:
                return Outcome.success()
            return self._writer.transmit(body, lines=self._lines, timeout=timeout)
        finally:
            self._release()

    def close(self) -> Outcome:
        """Write remaining lines; safe to call multiple times."""
        return self.write_batch()
