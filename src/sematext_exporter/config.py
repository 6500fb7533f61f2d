from __future__ import annotations

from functools import lru_cache
from typing import Dict, Optional

import httpx
from pydantic import BaseModel, ValidationError, validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sematext_client.batch import BatchConfig
from sematext_client.errors import ConfigurationError

US = "us"
EU = "eu"
CUSTOM = "custom"

METRICS_ENDPOINTS = {
    US: "https://spm-receiver.sematext.com",
    EU: "https://spm-receiver.eu.sematext.com",
}
LOGS_ENDPOINTS = {
    US: "https://logsene-receiver.sematext.com",
    EU: "https://logsene-receiver.eu.sematext.com",
}

METRICS_SCHEMAS = {"telegraf-prometheus-v1", "telegraf-prometheus-v2", "otel-v1"}
MAPPING_MODES = {"": "none", "no": "none", "none": "none", "ecs": "ecs", "otel": "otel", "raw": "raw"}

TOKEN_LENGTH = 36
DEFAULT_USER_AGENT = "OpenTelemetry -> Sematext"


def _check_token(v: str) -> str:
    if v and len(v) != TOKEN_LENGTH:
        raise ValueError(f"invalid app_token: {v}. app_token should be {TOKEN_LENGTH} characters")
    return v


class MetricsSettings(BaseModel):
    app_token: str = ""
    endpoint: Optional[str] = None  # only used with region=custom
    schema_name: str = "telegraf-prometheus-v2"
    payload_max_lines: int = 1_000  # max lines per POST
    payload_max_bytes: int = 300_000  # max bytes per POST

    @validator("app_token")
    def _token(cls, v):
        return _check_token(v)

    @validator("schema_name")
    def _schema(cls, v):
        if v not in METRICS_SCHEMAS:
            raise ValueError(f"schema '{v}' not recognized")
        return v

    @validator("payload_max_lines", "payload_max_bytes")
    def _positive(cls, v):
        if v <= 0:
            raise ValueError("payload limits must be > 0")
        return v


class LogsSettings(BaseModel):
    app_token: str = ""
    endpoint: Optional[str] = None  # only used with region=custom
    mapping_mode: str = "none"
    log_request_body: bool = False
    log_response_body: bool = False

    @validator("app_token")
    def _token(cls, v):
        return _check_token(v)

    @validator("mapping_mode")
    def _mapping(cls, v):
        mode = (v or "").lower()
        if mode not in MAPPING_MODES:
            raise ValueError(f"unknown mapping mode {v!r}")
        return MAPPING_MODES[mode]


class ExporterSettings(BaseSettings):
    """Exporter settings, read from SEMATEXT_* env vars (nested with '__') and .env."""

    model_config = SettingsConfigDict(
        env_prefix="SEMATEXT_",
        env_nested_delimiter="__",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    region: str = US
    metrics: MetricsSettings = MetricsSettings()
    logs: LogsSettings = LogsSettings()
    timeout: float = 5.0
    headers: Dict[str, str] = {"User-Agent": DEFAULT_USER_AGENT}

    @validator("region")
    def _region(cls, v):
        region = (v or "").lower()
        if region not in (US, EU, CUSTOM):
            raise ValueError(f"invalid region: {v}. please use either 'EU' or 'US'")
        return region

    @property
    def metrics_endpoint(self) -> str:
        return resolve_endpoint(self.region, self.metrics.endpoint, METRICS_ENDPOINTS, "metrics")

    @property
    def logs_endpoint(self) -> str:
        return resolve_endpoint(self.region, self.logs.endpoint, LOGS_ENDPOINTS, "logs")

    @property
    def write_url(self) -> str:
        return compose_write_url(self.region, self.metrics.endpoint)

    @property
    def batch_config(self) -> BatchConfig:
        return BatchConfig(
            max_lines=self.metrics.payload_max_lines,
            max_bytes=self.metrics.payload_max_bytes,
        )


def resolve_endpoint(
    region: str, endpoint: Optional[str], table: Dict[str, str], kind: str
) -> str:
    """Regional endpoints win over configured ones; 'custom' requires one."""
    r = (region or "").lower()
    if r in table:
        return table[r]
    if r == CUSTOM:
        if not endpoint:
            raise ConfigurationError(f"region 'custom' requires an explicit {kind} endpoint")
        return endpoint.rstrip("/")
    raise ConfigurationError(f"invalid region: {region}. please use either 'eu' or 'us'")


def compose_write_url(region: str, endpoint: Optional[str] = None) -> str:
    """Line protocol write URL, e.g. https://spm-receiver.sematext.com/write?db=metrics."""
    base = resolve_endpoint(region, endpoint, METRICS_ENDPOINTS, "metrics")
    try:
        url = httpx.URL(base + "/write", params={"db": "metrics"})
    except httpx.InvalidURL as e:
        raise ConfigurationError(f"invalid metrics endpoint {base!r}: {e}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationError(f"invalid metrics endpoint {base!r}: expected http(s)://host")
    return str(url)


def load_settings(**overrides) -> ExporterSettings:
    """Build and fully validate settings. Fails fast with ConfigurationError."""
    try:
        settings = ExporterSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"invalid exporter settings: {e}") from e
    # resolve eagerly so a bad region/endpoint surfaces here, not on first write
    _ = settings.write_url
    if settings.logs.app_token:
        _ = settings.logs_endpoint
    return settings


@lru_cache()
def get_settings() -> ExporterSettings:
    return load_settings()


def build_http_client(settings: ExporterSettings) -> httpx.Client:
    return httpx.Client(timeout=settings.timeout, headers=settings.headers)


def build_async_http_client(settings: ExporterSettings) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.timeout, headers=settings.headers)
