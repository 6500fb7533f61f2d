"""
Sematext exporter: settings, factories, log adapter and CLI around
`sematext_client`.

Usage:
    from sematext_exporter import load_settings, create_metrics_writer

    settings = load_settings()  # SEMATEXT_* env vars / .env
    with create_metrics_writer(settings) as writer:
        batch = writer.new_batch()
        ...
"""

from .config import ExporterSettings, LogsSettings, MetricsSettings, get_settings, load_settings
from .factory import create_async_metrics_writer, create_bulk_uploader, create_metrics_writer
from .log import configure_logging
from .logs import LogRecord, LogsExporter, to_documents

__version__ = "0.1.0"
__all__ = [
    "ExporterSettings",
    "MetricsSettings",
    "LogsSettings",
    "load_settings",
    "get_settings",
    "create_metrics_writer",
    "create_async_metrics_writer",
    "create_bulk_uploader",
    "configure_logging",
    "LogRecord",
    "LogsExporter",
    "to_documents",
]
