from __future__ import annotations

import asyncio
from datetime import datetime
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from .batch import BatchCore  # same encoding rules as the sync batch
from .errors import Outcome

if TYPE_CHECKING:
    from .awriter import AsyncLineProtocolWriter


class AsyncWriterBatch(BatchCore):
    """
    Async line protocol batch over AsyncLineProtocolWriter.

    Usage:

        async with writer.new_batch() as batch:
            for p in points:
                await batch.enqueue_point(p.measurement, p.tags, p.fields, p.ts)
        # auto-write on context exit
    """

    _writer: "AsyncLineProtocolWriter"

    def __init__(self, writer: "AsyncLineProtocolWriter"):
        super().__init__(writer)
        self._lock = asyncio.Lock()

    # --------------- context management

    async def __aenter__(self) -> "AsyncWriterBatch":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is None:
            await self.write_batch()
        else:
            async with self._lock:
                self._release()

    # --------------- public API

    async def enqueue_point(
        self,
        measurement: str,
        tags: Optional[Mapping[str, str]],
        fields: Optional[Mapping[str, Any]],
        ts: Union[datetime, int],
        *,
        timeout: Optional[float] = None,
    ) -> None:
        async with self._lock:
            full = self._encode(measurement, tags, fields, ts)
            if full:
                await self._write_locked(timeout)

    async def write_batch(self, *, timeout: Optional[float] = None) -> Outcome:
        async with self._lock:
            return await self._write_locked(timeout)

    async def close(self) -> Outcome:
        return await self.write_batch()

    # --------------- internals

    async def _write_locked(self, timeout: Optional[float]) -> Outcome:
        try:
            body = self._payload()
            if not body:
                return Outcome.success()
            return await self._writer.transmit(body, lines=self._lines, timeout=timeout)
        finally:
            self._release()
