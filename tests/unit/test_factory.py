"""
Unit tests for the settings-driven factories.
"""

import httpx
import pytest

from sematext_client import AsyncLineProtocolWriter, ConfigurationError, LineProtocolWriter
from sematext_exporter.config import load_settings
from sematext_exporter.factory import (
    create_async_metrics_writer,
    create_bulk_uploader,
    create_metrics_writer,
)

from conftest import HOST, TOKEN, Recorder

pytestmark = pytest.mark.usefixtures("clean_env")


def test_metrics_writer_requires_token():
    with pytest.raises(ConfigurationError, match="app_token"):
        create_metrics_writer(load_settings())


def test_metrics_writer_from_settings():
    s = load_settings(region="eu", metrics={"app_token": TOKEN, "payload_max_lines": 10})
    recorder = Recorder()
    client = httpx.Client(transport=httpx.MockTransport(recorder))

    with create_metrics_writer(s, client, hostname=HOST) as writer:
        assert isinstance(writer, LineProtocolWriter)
        assert writer.write_url == "https://spm-receiver.eu.sematext.com/write?db=metrics"
        assert writer.batch_config.max_lines == 10
        assert writer.hostname == HOST
        with writer.new_batch() as batch:
            batch.enqueue_point("m", {}, {"f": 1}, 1)

    assert recorder.bodies == [f"m,os.host={HOST},token={TOKEN} f=1i 1\n"]
    # caller-supplied client stays open
    assert not client.is_closed
    client.close()


def test_metrics_writer_builds_and_owns_client():
    s = load_settings(metrics={"app_token": TOKEN})
    writer = create_metrics_writer(s, hostname=HOST)
    client = writer._client
    assert client.timeout.read == 5.0
    assert client.headers["User-Agent"] == "OpenTelemetry -> Sematext"
    writer.close()
    assert client.is_closed


@pytest.mark.asyncio
async def test_async_metrics_writer():
    s = load_settings(metrics={"app_token": TOKEN})
    writer = create_async_metrics_writer(s, hostname=HOST)
    assert isinstance(writer, AsyncLineProtocolWriter)
    await writer.aclose()
    assert writer._client.is_closed


def test_bulk_uploader_registers_logs_endpoint():
    s = load_settings(logs={"app_token": TOKEN, "log_request_body": True})
    with httpx.Client() as client:
        uploader = create_bulk_uploader(s, client, hostname=HOST)
    assert uploader.endpoints == ["https://logsene-receiver.sematext.com"]
    assert uploader.hostname == HOST


def test_bulk_uploader_without_token_has_no_destinations(log_messages):
    uploader = create_bulk_uploader(load_settings(), hostname=HOST)
    assert uploader.endpoints == []
    assert any("log shipping disabled" in m for m in log_messages)
