"""
Bulk log uploader.

Serializes log documents into NDJSON index/document pairs and posts them in a
single `_bulk` request to a client registered for the destination endpoint.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Protocol, Sequence

import httpx
from loguru import logger as _logger

from .errors import NoClientError, map_http_error
from .metrics import BULK_DOCUMENTS_TOTAL, BULK_ITEM_FAILURES_TOTAL
from .models import BulkItemFailure, BulkResult
from .utils import detect_hostname, format_status, truncate

HOST_FIELD = "os.host"
BULK_TIMEOUT = 5.0
NDJSON_CONTENT_TYPE = "application/x-ndjson"


class BulkTransport(Protocol):
    """Anything that can post an NDJSON bulk body and return the response."""

    def bulk(self, body: bytes, *, timeout: float) -> httpx.Response: ...


class HttpBulkTransport:
    """BulkTransport over a shared httpx.Client, posting to `<endpoint>/_bulk`."""

    def __init__(self, client: httpx.Client, endpoint: str):
        self._client = client
        self.url = endpoint.rstrip("/") + "/_bulk"

    def bulk(self, body: bytes, *, timeout: float) -> httpx.Response:
        return self._client.post(
            self.url,
            content=body,
            headers={"Content-Type": NDJSON_CONTENT_TYPE},
            timeout=timeout,
        )


@dataclass(frozen=True)
class Destination:
    transport: BulkTransport
    token: str


def dump_document(doc: Mapping[str, Any], hostname: str) -> str:
    """
    One document line with `os.host` set. The input mapping is not modified.

    Raises TypeError or ValueError for documents that are not strict JSON
    (NaN/Infinity values, non-string keys, circular references).
    """
    doc = dict(doc)
    doc[HOST_FIELD] = hostname
    return json.dumps(doc, default=str, allow_nan=False)


def join_bulk(lines: Sequence[str], index: str) -> bytes:
    """NDJSON body: one index action line followed by one document line, per document."""
    if not lines:
        return b""
    action = json.dumps({"index": {"_index": index}})
    out: List[str] = []
    for line in lines:
        out.append(action)
        out.append(line)
    return ("\n".join(out) + "\n").encode("utf-8")


def parse_item_failures(payload: Any) -> List[BulkItemFailure]:
    """Failed items from a bulk response body (`errors: true` + per-item `error`)."""
    if not isinstance(payload, dict) or not payload.get("errors"):
        return []
    failures: List[BulkItemFailure] = []
    for item in payload.get("items") or []:
        if not isinstance(item, dict):
            continue
        for result in item.values():
            if not isinstance(result, dict) or "error" not in result:
                continue
            error = result["error"]
            if isinstance(error, dict):
                reason = f"{error.get('type', 'error')}: {error.get('reason', '')}".rstrip(": ")
            else:
                reason = str(error)
            failures.append(BulkItemFailure(result.get("_id"), result.get("status"), reason))
    return failures


class BulkLogUploader:
    """
    Per-push uploader for log documents.

    Destinations are registered once, keyed by endpoint.

    Usage:
        client = httpx.Client()
        uploader = BulkLogUploader(
            {endpoint: Destination(HttpBulkTransport(client, endpoint), token)}
        )
        result = uploader.bulk([{"message": "hi"}], endpoint)
    """

    def __init__(
        self,
        destinations: Mapping[str, Destination],
        *,
        hostname: Optional[str] = None,
        timeout: float = BULK_TIMEOUT,
        log_request_body: bool = False,
        log_response_body: bool = False,
        logger=None,
    ):
        self._destinations = dict(destinations)
        self._timeout = timeout
        self._log_request_body = log_request_body
        self._log_response_body = log_response_body
        self._log = logger or _logger.bind(component="bulk")
        self.hostname = hostname or detect_hostname()

    @property
    def endpoints(self) -> List[str]:
        return list(self._destinations)

    def bulk(self, documents: Sequence[Any], endpoint: str) -> BulkResult:
        """
        Post all documents in one request.

        Raises:
            NoClientError: nothing registered for `endpoint` (no request made).
            TransportError: the request did not get a response.
        """
        dest = self._destinations.get(endpoint)
        if dest is None:
            raise NoClientError(f"no client known for {endpoint} endpoint")

        docs: List[str] = []
        for doc in documents or ():
            if not isinstance(doc, Mapping):
                self._log.debug(f"skipping non-mapping log document of type {type(doc).__name__}")
                continue
            try:
                docs.append(dump_document(doc, self.hostname))
            except (TypeError, ValueError) as e:
                self._log.warning(f"skipping log document that is not valid JSON: {e}")
                BULK_DOCUMENTS_TOTAL.labels(outcome="invalid").inc()

        if not docs:
            return BulkResult()

        body = join_bulk(docs, dest.token)
        if self._log_request_body:
            self._log.debug(f"bulk request body: {body.decode('utf-8')}")
        try:
            response = dest.transport.bulk(body, timeout=self._timeout)
        except httpx.TransportError as e:
            self._log.error(f"bulk request to {endpoint} failed: {e}")
            BULK_DOCUMENTS_TOTAL.labels(outcome="transport_error").inc(len(docs))
            raise map_http_error(e) from e

        result = BulkResult(sent=len(docs), status_code=response.status_code)
        if self._log_response_body:
            self._log.debug(format_status("bulk response:", response.text))
        if not response.is_success:
            self._log.error(
                f"bulk request returned {response.status_code}: {truncate(response.text)}"
            )
            BULK_DOCUMENTS_TOTAL.labels(outcome="rejected").inc(len(docs))
            return result

        try:
            payload = response.json()
        except ValueError:
            payload = None
        result.failed = parse_item_failures(payload)
        for failure in result.failed:
            self._log.warning(
                f"bulk item {failure.id} failed (status {failure.status}): {failure.reason}"
            )
        BULK_ITEM_FAILURES_TOTAL.inc(len(result.failed))
        BULK_DOCUMENTS_TOTAL.labels(outcome="accepted").inc(len(docs) - len(result.failed))
        if not result.failed:
            self._log.info(f"bulk request successful: {len(docs)} documents")
        return result
