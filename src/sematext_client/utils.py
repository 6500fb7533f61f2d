"""
Utility functions for the Sematext client.

Includes hostname detection, timestamp conversion, response-body trimming and
NDJSON reading helpers.
"""

import gzip
import io
import json
import socket
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterator

from loguru import logger

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
UNKNOWN_HOST = "unknown"


def detect_hostname() -> str:
    """Local hostname, or 'unknown' when it cannot be determined."""
    try:
        hostname = socket.gethostname()
    except OSError as e:
        logger.debug(f"could not determine hostname ({e}), using '{UNKNOWN_HOST}' as os.host")
        return UNKNOWN_HOST
    return hostname or UNKNOWN_HOST


def unix_nanos(ts: datetime) -> int:
    """Exact nanoseconds since epoch. Naive datetimes are taken as UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    delta = ts - EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1_000


def rfc3339(ts: datetime) -> str:
    """Second-precision RFC 3339, 'Z' for UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    if ts.utcoffset().total_seconds() == 0:
        return ts.strftime("%Y-%m-%dT%H:%M:%SZ")
    return ts.isoformat(timespec="seconds")


def format_status(payload: str, status: str) -> str:
    """Join a payload with the first line of a response status/body."""
    s = status.lstrip("\n")
    i = s.find("\n")
    if i > 0:
        s = f"{s[:i]}..."
    return f"{payload.strip()} {s}"


def truncate(text: str, limit: int = 512) -> str:
    """First line of `text`, capped to `limit` characters."""
    line = format_status("", text).strip()
    if len(line) > limit:
        return line[:limit] + "..."
    return line


def iter_ndjson(path: str) -> Iterator[Dict[str, Any]]:
    """Yield JSON objects from a file ('.gz' ok) or '-' for stdin. Blank lines skipped."""
    if path == "-":
        stream = io.TextIOWrapper(sys.stdin.buffer, encoding="utf-8")
    elif path.endswith(".gz"):
        stream = gzip.open(path, "rt", encoding="utf-8")
    else:
        stream = open(path, "r", encoding="utf-8")

    try:
        for line in stream:
            line = line.strip()
            if not line:
                continue
            yield json.loads(line)
    finally:
        if path != "-":
            stream.close()
