from __future__ import annotations

from time import monotonic
from typing import Optional

import httpx

from .abatch import AsyncWriterBatch
from .errors import Outcome
from .metrics import WRITE_LATENCY
from .writer import WriterBase


class AsyncLineProtocolWriter(WriterBase):
    """
    Async writer over a shared httpx.AsyncClient.

    Usage:
        writer = AsyncLineProtocolWriter(url, httpx.AsyncClient(), token="...")
        async with writer.new_batch() as batch:
            await batch.enqueue_point("cpu", {}, {"usage": 0.4}, ts)
        await writer.aclose()
    """

    def __init__(
        self, write_url: str, client: httpx.AsyncClient, *, owns_client: bool = False, **kwargs
    ):
        super().__init__(write_url, **kwargs)
        self._client = client
        self._owns_client = owns_client

    async def __aenter__(self) -> "AsyncLineProtocolWriter":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def new_batch(self) -> AsyncWriterBatch:
        return AsyncWriterBatch(self)

    async def transmit(
        self, body: bytes, *, lines: int = 0, timeout: Optional[float] = None
    ) -> Outcome:
        if not body:
            return Outcome.success()

        request = self._client.build_request(
            "POST", self.write_url, **self._request_kwargs(body, timeout)
        )
        t0 = monotonic()
        try:
            response = await self._client.send(request)
        except httpx.TransportError as e:
            raise self._transport_failed(e) from e
        finally:
            WRITE_LATENCY.observe(monotonic() - t0)

        return self._handle_response(response, len(body), lines)
