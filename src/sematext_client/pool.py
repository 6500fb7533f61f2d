from __future__ import annotations

import threading
from typing import List

from .lineprotocol import LineEncoder, Precision


class EncoderPool:
    """
    Thread-safe pool of reusable LineEncoders.

    An encoder is either checked out (owned by exactly one batch) or idle in
    the pool. `put` resets and clears it before it becomes idle again.
    """

    def __init__(self, precision: Precision = Precision.NANOSECOND, *, max_idle: int = 64):
        if max_idle < 0:
            raise ValueError("max_idle must be >= 0")
        self._precision = precision
        self._max_idle = max_idle
        self._idle: List[LineEncoder] = []
        self._out: set[int] = set()
        self._lock = threading.Lock()

    @property
    def idle(self) -> int:
        return len(self._idle)

    @property
    def checked_out(self) -> int:
        return len(self._out)

    def get(self) -> LineEncoder:
        with self._lock:
            enc = self._idle.pop() if self._idle else LineEncoder(self._precision)
            self._out.add(id(enc))
            return enc

    def put(self, encoder: LineEncoder) -> None:
        with self._lock:
            if id(encoder) not in self._out:
                raise ValueError("encoder was not checked out from this pool")
            encoder.reset()
            encoder.clear_err()
            encoder.set_precision(self._precision)
            self._out.discard(id(encoder))
            if len(self._idle) < self._max_idle:
                self._idle.append(encoder)
