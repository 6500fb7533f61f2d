"""
Sematext Client Library

Line protocol batching writer for metrics and NDJSON bulk uploader for logs,
with retryable / permanent outcome classification for an outer retry pipeline.

Usage:
    from sematext_client import LineProtocolWriter, BatchConfig

    writer = LineProtocolWriter(write_url, httpx.Client(), token="...")
    batch = writer.new_batch()
    batch.enqueue_point("cpu", {"core": "0"}, {"usage": 0.4}, ts)
    batch.write_batch()

    # Async
    awriter = AsyncLineProtocolWriter(write_url, httpx.AsyncClient(), token="...")
    async with awriter.new_batch() as abatch:
        await abatch.enqueue_point("cpu", {}, {"usage": 0.4}, ts)
"""

from .abatch import AsyncWriterBatch
from .awriter import AsyncLineProtocolWriter
from .batch import BatchConfig, BatchState, WriterBatch
from .bulk import BulkLogUploader, BulkTransport, Destination, HttpBulkTransport
from .errors import (
    ConfigurationError,
    EncodingError,
    ExporterError,
    NoClientError,
    Outcome,
    OutcomeKind,
    PermanentClientError,
    PermanentError,
    RetryableError,
    RetryableServerError,
    TransportError,
    is_retryable,
)
from .lineprotocol import LineEncoder, Precision
from .models import BulkItemFailure, BulkResult, Point, Tag
from .pool import EncoderPool
from .tags import TagNormalizer
from .writer import LineProtocolWriter

__version__ = "0.1.0"
__all__ = [
    "LineProtocolWriter",
    "AsyncLineProtocolWriter",
    "WriterBatch",
    "AsyncWriterBatch",
    "BatchConfig",
    "BatchState",
    "BulkLogUploader",
    "BulkTransport",
    "HttpBulkTransport",
    "Destination",
    "LineEncoder",
    "Precision",
    "EncoderPool",
    "TagNormalizer",
    "Point",
    "Tag",
    "BulkResult",
    "BulkItemFailure",
    "Outcome",
    "OutcomeKind",
    "ExporterError",
    "RetryableError",
    "PermanentError",
    "TransportError",
    "EncodingError",
    "RetryableServerError",
    "PermanentClientError",
    "ConfigurationError",
    "NoClientError",
    "is_retryable",
]
