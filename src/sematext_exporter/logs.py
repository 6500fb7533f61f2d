"""
Log record adapter and logs exporter.

Turns host log records into bulk documents and ships them through the
BulkLogUploader in one request per push.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from pydantic import BaseModel

from sematext_client.bulk import BulkLogUploader
from sematext_client.errors import ExporterError
from sematext_client.models import BulkResult, LogDocument
from sematext_client.utils import rfc3339

DEFAULT_SEVERITY = "INFO"


class LogRecord(BaseModel):
    """One host log record."""

    timestamp: datetime
    body: str = ""
    severity_text: Optional[str] = None
    attributes: Dict[str, Any] = {}


def to_document(record: LogRecord) -> LogDocument:
    doc: LogDocument = dict(record.attributes)
    doc.update(
        {
            "@timestamp": rfc3339(record.timestamp),
            "message": record.body,
            "severity": record.severity_text or DEFAULT_SEVERITY,
        }
    )
    return doc


def to_documents(records: Iterable[LogRecord]) -> List[LogDocument]:
    return [to_document(r) for r in records]


class LogsExporter:
    """
    Pushes batches of LogRecords to one logs endpoint.

    Example:
        uploader = create_bulk_uploader(settings)
        exporter = LogsExporter(uploader, settings.logs_endpoint)
        exporter.start()
        exporter.push_logs(records)
    """

    def __init__(self, uploader: BulkLogUploader, endpoint: str):
        self._uploader = uploader
        self._endpoint = endpoint
        self._started = False

    def start(self) -> None:
        self._started = True
        logger.info(f"logs exporter started for {self._endpoint}")

    def shutdown(self) -> None:
        self._started = False
        logger.info("logs exporter shut down")

    def push_logs(self, records: Iterable[LogRecord]) -> BulkResult:
        if not self._started:
            logger.error("logs exporter is not started")
            raise ExporterError("logs exporter is not started")
        documents = to_documents(records)
        try:
            return self._uploader.bulk(documents, self._endpoint)
        except Exception as exc:
            logger.error(f"failed to send logs to {self._endpoint}: {exc}")
            raise
