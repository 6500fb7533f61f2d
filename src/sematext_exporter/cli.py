from __future__ import annotations

import json
import sys
from dataclasses import asdict
from typing import Optional

import typer
from loguru import logger
from pydantic import ValidationError

from sematext_client.errors import ExporterError
from sematext_client.models import Point
from sematext_client.utils import iter_ndjson

from .config import ExporterSettings, load_settings
from .factory import create_bulk_uploader, create_metrics_writer
from .log import configure_logging
from .logs import LogRecord, LogsExporter

app = typer.Typer(help="Sematext exporter CLI (metrics line protocol, bulk logs)")

# ---------------------------
# Common options
# ---------------------------


def region_opt() -> Optional[str]:
    return typer.Option(None, "--region", help="us | eu | custom (default from SEMATEXT_REGION)")


def metrics_token_opt() -> Optional[str]:
    return typer.Option(None, "--metrics-token", help="Monitoring app token")


def logs_token_opt() -> Optional[str]:
    return typer.Option(None, "--logs-token", help="Logs app token")


def endpoint_opt(kind: str) -> Optional[str]:
    return typer.Option(None, f"--{kind}-endpoint", help=f"{kind} endpoint for region=custom")


def _settings(
    region: Optional[str] = None,
    metrics_token: Optional[str] = None,
    metrics_endpoint: Optional[str] = None,
    logs_token: Optional[str] = None,
    logs_endpoint: Optional[str] = None,
    **metrics_extra,
) -> ExporterSettings:
    overrides: dict = {}
    if region:
        overrides["region"] = region
    metrics = {k: v for k, v in metrics_extra.items() if v is not None}
    if metrics_token:
        metrics["app_token"] = metrics_token
    if metrics_endpoint:
        metrics["endpoint"] = metrics_endpoint
    if metrics:
        overrides["metrics"] = metrics
    logs = {}
    if logs_token:
        logs["app_token"] = logs_token
    if logs_endpoint:
        logs["endpoint"] = logs_endpoint
    if logs:
        overrides["logs"] = logs
    return load_settings(**overrides)


def _fail(msg: str) -> None:
    logger.error(msg)
    sys.exit(1)


@app.callback()
def main(
    log_level: str = typer.Option("INFO", "--log-level", help="loguru level"),
    flat: bool = typer.Option(True, "--flat/--verbose", help="Flat one-line log format"),
):
    configure_logging(log_level, flat=flat)


# ---------------------------
# Config
# ---------------------------


@app.command("check-config")
def check_config(
    region: Optional[str] = region_opt(),
    metrics_endpoint: Optional[str] = endpoint_opt("metrics"),
    logs_endpoint: Optional[str] = endpoint_opt("logs"),
):
    """Validate settings and print the resolved endpoints."""
    try:
        s = _settings(region, metrics_endpoint=metrics_endpoint, logs_endpoint=logs_endpoint)
        out = {
            "region": s.region,
            "write_url": s.write_url,
            "logs_endpoint": s.logs_endpoint,
            "metrics_schema": s.metrics.schema_name,
            "payload_max_lines": s.metrics.payload_max_lines,
            "payload_max_bytes": s.metrics.payload_max_bytes,
            "logs_mapping_mode": s.logs.mapping_mode,
        }
    except ExporterError as e:
        _fail(f"invalid configuration: {e}")
        return
    typer.echo(json.dumps(out, indent=2))


# ---------------------------
# Metrics
# ---------------------------


@app.command("write-points")
def write_points(
    path: str = typer.Argument(..., help="NDJSON points file ('.gz' ok) or '-' for stdin"),
    region: Optional[str] = region_opt(),
    metrics_token: Optional[str] = metrics_token_opt(),
    metrics_endpoint: Optional[str] = endpoint_opt("metrics"),
    max_lines: Optional[int] = typer.Option(None, "--max-lines", help="Flush after N lines"),
    max_bytes: Optional[int] = typer.Option(None, "--max-bytes", help="Flush after N bytes"),
):
    """Encode points ({"measurement", "tags", "fields", "ts"}) and write them."""
    try:
        s = _settings(
            region,
            metrics_token,
            metrics_endpoint,
            payload_max_lines=max_lines,
            payload_max_bytes=max_bytes,
        )
        n = 0
        with create_metrics_writer(s) as writer, writer.new_batch() as batch:
            for obj in iter_ndjson(path):
                p = Point.model_validate(obj)
                batch.enqueue_point(p.measurement, p.tags, p.fields, p.ts)
                n += 1
    except ValidationError as e:
        _fail(f"invalid point: {e}")
        return
    except ExporterError as e:
        _fail(f"write failed ({type(e).__name__}): {e}")
        return
    typer.echo(json.dumps({"points": n}, indent=2))


# ---------------------------
# Logs
# ---------------------------


@app.command("ship-logs")
def ship_logs(
    path: str = typer.Argument(..., help="NDJSON log records file ('.gz' ok) or '-' for stdin"),
    region: Optional[str] = region_opt(),
    logs_token: Optional[str] = logs_token_opt(),
    logs_endpoint: Optional[str] = endpoint_opt("logs"),
):
    """Send log records ({"timestamp", "body", "severity_text"}) in one bulk request."""
    try:
        s = _settings(region, logs_token=logs_token, logs_endpoint=logs_endpoint)
        uploader = create_bulk_uploader(s)
        exporter = LogsExporter(uploader, s.logs_endpoint)
        exporter.start()
        records = [LogRecord.model_validate(obj) for obj in iter_ndjson(path)]
        result = exporter.push_logs(records)
        exporter.shutdown()
    except ValidationError as e:
        _fail(f"invalid log record: {e}")
        return
    except ExporterError as e:
        _fail(f"bulk upload failed ({type(e).__name__}): {e}")
        return
    typer.echo(
        json.dumps(
            {
                "sent": result.sent,
                "status": result.status_code,
                "failed": [asdict(f) for f in result.failed],
            },
            indent=2,
        )
    )


if __name__ == "__main__":
    app()
