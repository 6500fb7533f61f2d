"""
Builds writers and uploaders from ExporterSettings.
"""

from __future__ import annotations

from typing import Optional

import httpx
from loguru import logger

from sematext_client.awriter import AsyncLineProtocolWriter
from sematext_client.bulk import BulkLogUploader, Destination, HttpBulkTransport
from sematext_client.errors import ConfigurationError
from sematext_client.utils import detect_hostname
from sematext_client.writer import LineProtocolWriter

from .config import ExporterSettings, build_async_http_client, build_http_client


def _writer_kwargs(settings: ExporterSettings, hostname: Optional[str]) -> dict:
    if not settings.metrics.app_token:
        raise ConfigurationError("metrics app_token is required to ship metrics")
    return {
        "token": settings.metrics.app_token,
        "hostname": hostname or detect_hostname(),
        "config": settings.batch_config,
    }


def create_metrics_writer(
    settings: ExporterSettings,
    client: Optional[httpx.Client] = None,
    *,
    hostname: Optional[str] = None,
) -> LineProtocolWriter:
    kwargs = _writer_kwargs(settings, hostname)
    owns = client is None
    writer = LineProtocolWriter(
        settings.write_url,
        client or build_http_client(settings),
        owns_client=owns,
        **kwargs,
    )
    logger.info(f"metrics writer ready: {settings.write_url}")
    return writer


def create_async_metrics_writer(
    settings: ExporterSettings,
    client: Optional[httpx.AsyncClient] = None,
    *,
    hostname: Optional[str] = None,
) -> AsyncLineProtocolWriter:
    kwargs = _writer_kwargs(settings, hostname)
    owns = client is None
    return AsyncLineProtocolWriter(
        settings.write_url,
        client or build_async_http_client(settings),
        owns_client=owns,
        **kwargs,
    )


def create_bulk_uploader(
    settings: ExporterSettings,
    client: Optional[httpx.Client] = None,
    *,
    hostname: Optional[str] = None,
) -> BulkLogUploader:
    """Registers the logs endpoint only when a logs app token is configured."""
    destinations = {}
    if settings.logs.app_token:
        endpoint = settings.logs_endpoint
        transport = HttpBulkTransport(client or build_http_client(settings), endpoint)
        destinations[endpoint] = Destination(transport, settings.logs.app_token)
        logger.info(f"bulk log destination registered: {endpoint}")
    else:
        logger.warning("no logs app_token configured; log shipping disabled")

    return BulkLogUploader(
        destinations,
        hostname=hostname or detect_hostname(),
        log_request_body=settings.logs.log_request_body,
        log_response_body=settings.logs.log_response_body,
    )
