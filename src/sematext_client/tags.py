"""
Tag set normalization for line protocol points.

Injects the mandatory routing tags, drops empty keys/values, caps cardinality
and returns tags sorted by key, ready for `LineEncoder.add_tag`.
"""

from __future__ import annotations

from typing import List, Mapping, Optional

from loguru import logger as _logger

from .errors import ConfigurationError
from .metrics import TAGS_DROPPED_TOTAL
from .models import Tag
from .utils import UNKNOWN_HOST

TOKEN_TAG = "token"
HOST_TAG = "os.host"
MAX_TAGS = 20


class TagNormalizer:
    """
    Deterministic tag normalizer.

    Usage:
        norm = TagNormalizer(token="...", hostname="web-1")
        for tag in norm.normalize({"k": "v"}):
            encoder.add_tag(tag.k, tag.v)
    """

    def __init__(
        self,
        token: str,
        hostname: str,
        *,
        max_tags: int = MAX_TAGS,
        logger=None,
    ):
        if not token:
            raise ConfigurationError("metrics app token must not be empty")
        if max_tags < 2:
            raise ConfigurationError("max_tags must leave room for the token and os.host tags")
        self._mandatory = {TOKEN_TAG: token, HOST_TAG: hostname or UNKNOWN_HOST}
        self._max_caller = max_tags - len(self._mandatory)
        self._log = logger or _logger.bind(component="tags")

    @property
    def max_caller_tags(self) -> int:
        return self._max_caller

    def normalize(self, tags: Optional[Mapping[str, str]]) -> List[Tag]:
        """
        Sorted tags for one point, mandatory tags included.

        None and "" values are dropped like empty keys. Any other non-str
        value is converted with `str()`, so `{"core": 0}` becomes `core=0`.
        """
        caller: List[Tag] = []
        for k, v in (tags or {}).items():
            if k in self._mandatory:
                continue
            if k == "":
                self._log.debug("empty tag key")
                TAGS_DROPPED_TOTAL.labels(reason="empty_key").inc()
            elif v is None or v == "":
                self._log.debug(f"empty tag value key={k}")
                TAGS_DROPPED_TOTAL.labels(reason="empty_value").inc()
            else:
                caller.append(Tag(k, str(v)))

        # Order first, then truncate, so the survivors never depend on dict order.
        caller.sort(key=lambda t: t.k)
        if len(caller) > self._max_caller:
            dropped = caller[self._max_caller :]
            caller = caller[: self._max_caller]
            self._log.warning(
                f"tag cardinality cap reached, dropping {len(dropped)} tags: "
                f"{', '.join(t.k for t in dropped)}"
            )
            TAGS_DROPPED_TOTAL.labels(reason="cardinality").inc(len(dropped))

        out = caller + [Tag(k, v) for k, v in self._mandatory.items()]
        out.sort(key=lambda t: t.k)
        return out
