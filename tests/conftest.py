"""
Pytest configuration and fixtures for sematext-exporter.

Provides HTTP doubles (httpx.MockTransport), writer factories and a loguru
capture fixture for diagnostic assertions.
"""

import asyncio
import json
import os
import sys
from typing import Callable, List, Optional, Tuple

import httpx
import pytest
from loguru import logger

from sematext_client import BatchConfig, LineProtocolWriter

# Set policy *before* pytest-asyncio creates any loops
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

TOKEN = "x" * 36
HOST = "test-host"
WRITE_URL = "http://receiver.test/write?db=metrics"


class Recorder:
    """MockTransport handler that records requests and answers with a fixed response."""

    def __init__(self, status: int = 204, body: bytes = b"", exc: Optional[Exception] = None):
        self.status = status
        self.body = body
        self.exc = exc
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status, content=self.body)

    @property
    def bodies(self) -> List[str]:
        return [r.content.decode("utf-8") for r in self.requests]


class FakeTransport:
    """BulkTransport double: records bodies/timeouts and replays one response."""

    def __init__(self, response: Optional[httpx.Response] = None, exc: Optional[Exception] = None):
        self.response = response if response is not None else httpx.Response(200, json={"errors": False})
        self.exc = exc
        self.calls: List[Tuple[bytes, float]] = []

    def bulk(self, body: bytes, *, timeout: float) -> httpx.Response:
        self.calls.append((body, timeout))
        if self.exc is not None:
            raise self.exc
        return self.response

    def lines(self, i: int = 0) -> List[dict]:
        return [json.loads(line) for line in self.calls[i][0].decode().splitlines()]


@pytest.fixture
def recorder():
    """Recorder answering 204 No Content."""
    return Recorder()


@pytest.fixture
def make_writer() -> Callable[..., LineProtocolWriter]:
    """Build a LineProtocolWriter over a MockTransport driven by `recorder`."""
    clients: List[httpx.Client] = []

    def _make(recorder: Recorder, max_lines: int = 1000, max_bytes: int = 300_000, **kwargs):
        client = httpx.Client(transport=httpx.MockTransport(recorder))
        clients.append(client)
        return LineProtocolWriter(
            WRITE_URL,
            client,
            token=TOKEN,
            hostname=HOST,
            config=BatchConfig(max_lines=max_lines, max_bytes=max_bytes),
            **kwargs,
        )

    yield _make
    for c in clients:
        c.close()


@pytest.fixture
def log_messages():
    """Collect loguru messages (DEBUG and up) emitted during the test."""
    messages: List[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No SEMATEXT_* leakage from the host environment or a local .env."""
    for key in list(os.environ):
        if key.upper().startswith("SEMATEXT_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    return tmp_path
