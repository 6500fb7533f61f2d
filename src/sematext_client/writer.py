"""
Line protocol writer: owns the encoder pool, the tag normalizer and the
HTTP client, hands out batches and transmits their payloads.
"""

from __future__ import annotations

from time import monotonic
from typing import Any, Dict, Optional

import httpx
from loguru import logger as _logger

from .batch import BatchConfig, WriterBatch
from .errors import Outcome, OutcomeKind, classify_status, map_http_error
from .lineprotocol import Precision
from .metrics import BYTES_SENT_TOTAL, WRITE_LATENCY, WRITES_TOTAL
from .pool import EncoderPool
from .tags import TagNormalizer
from .utils import detect_hostname, truncate

CONTENT_TYPE = "text/plain; charset=utf-8"


class WriterBase:
    """State shared by the sync and async writers."""

    def __init__(
        self,
        write_url: str,
        *,
        token: str,
        hostname: Optional[str] = None,
        config: Optional[BatchConfig] = None,
        pool: Optional[EncoderPool] = None,
        logger=None,
    ):
        self.write_url = write_url
        self.batch_config = config or BatchConfig()
        self.encoder_pool = pool or EncoderPool(Precision.NANOSECOND)
        self.logger = logger or _logger.bind(component="writer")
        self.hostname = hostname or detect_hostname()
        self.tag_normalizer = TagNormalizer(token, self.hostname, logger=self.logger)

    def _request_kwargs(self, body: bytes, timeout: Optional[float]) -> Dict[str, Any]:
        kw: Dict[str, Any] = {"content": body, "headers": {"Content-Type": CONTENT_TYPE}}
        if timeout is not None:
            kw["timeout"] = timeout
        return kw

    def _transport_failed(self, e: Exception):
        WRITES_TOTAL.labels(outcome="transport_error").inc()
        self.logger.warning(f"line protocol write to {self.write_url} failed: {e}")
        return map_http_error(e)

    def _handle_response(self, response: httpx.Response, size: int, lines: int) -> Outcome:
        """Classify the response; raise for retryable and permanent outcomes."""
        body = response.text
        outcome = classify_status(
            response.status_code,
            f"line protocol write returned {response.status_code} "
            f"{response.reason_phrase!r} {truncate(body)!r}",
        )
        WRITES_TOTAL.labels(outcome=outcome.kind.value).inc()

        if outcome.ok:
            BYTES_SENT_TOTAL.inc(size)
            self.logger.debug(f"wrote {lines} lines ({size} bytes), status {response.status_code}")
        elif outcome.kind is OutcomeKind.RETRYABLE:
            # the outer pipeline re-attempts; the payload is not kept here
            self.logger.warning(outcome.reason)
        else:
            self.logger.error(outcome.reason)

        outcome.raise_for_outcome(body)
        return outcome


class LineProtocolWriter(WriterBase):
    """
    Sync writer over a shared httpx.Client.

    Usage:
        writer = LineProtocolWriter(
            "https://spm-receiver.sematext.com/write?db=metrics",
            httpx.Client(timeout=5.0),
            token="...",
            config=BatchConfig(max_lines=1000, max_bytes=300_000),
        )
        batch = writer.new_batch()
        batch.enqueue_point("cpu", {"core": "0"}, {"usage": 0.4}, datetime.now(timezone.utc))
        batch.write_batch()
    """

    def __init__(self, write_url: str, client: httpx.Client, *, owns_client: bool = False, **kwargs):
        super().__init__(write_url, **kwargs)
        self._client = client
        self._owns_client = owns_client

    def __enter__(self) -> "LineProtocolWriter":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def new_batch(self) -> WriterBatch:
        return WriterBatch(self)

    def transmit(self, body: bytes, *, lines: int = 0, timeout: Optional[float] = None) -> Outcome:
        """POST `body` to the write URL once. Never retries."""
        if not body:
            return Outcome.success()

        request = self._client.build_request(
            "POST", self.write_url, **self._request_kwargs(body, timeout)
        )
        t0 = monotonic()
        try:
            response = self._client.send(request)
        except httpx.TransportError as e:
            raise self._transport_failed(e) from e
        finally:
            WRITE_LATENCY.observe(monotonic() - t0)

        return self._handle_response(response, len(body), lines)
