"""
loguru setup for the exporter.

The flat format prints one line per entry: RFC 3339 UTC time and the raw
message, nothing else.
"""

import sys

from loguru import logger

FLAT_FORMAT = "{time:YYYY-MM-DDTHH:mm:ss!UTC}Z {message}"
VERBOSE_FORMAT = (
    "{time:YYYY-MM-DDTHH:mm:ss.SSS!UTC}Z | {level: <8} | {extra[component]} | {message}"
)


def configure_logging(level: str = "INFO", sink=sys.stderr, *, flat: bool = True) -> int:
    """Replace loguru's default handler. Returns the new handler id."""
    logger.remove()
    logger.configure(extra={"component": "exporter"})
    return logger.add(sink, level=level.upper(), format=FLAT_FORMAT if flat else VERBOSE_FORMAT)
