"""Interpret server-side throttling signals.

Given a response, decide whether the server asked us to back off and for how
long:
- ``Retry-After`` on 429/503, as delta-seconds or an HTTP-date.
- ``X-RateLimit-Remaining: 0`` with an epoch ``X-RateLimit-Reset`` on 429/403.
Delays are clamped to a configurable maximum to avoid long blocking. The
policy only computes; the caller does the sleeping.
"""

from __future__ import annotations

import time
from email.utils import parsedate_to_datetime
from typing import Mapping, Optional

import httpx


class RetryAfterPolicy:
    RETRY_AFTER_STATUSES = frozenset({429, 503})
    RESET_STATUSES = frozenset({403, 429})

    def __init__(self, *, max_sleep_seconds: float = 60.0) -> None:
        self._max_sleep_seconds = max(0.0, float(max_sleep_seconds))

    @property
    def max_sleep_seconds(self) -> float:
        return self._max_sleep_seconds

    def delay_for(self, response: httpx.Response) -> Optional[float]:
        # None means "not throttled"; a float is the advised back-off.
        status = response.status_code

        if status in self.RETRY_AFTER_STATUSES:
            retry_after = self._parse_retry_after(response.headers.get("Retry-After"))
            if retry_after is not None:
                return self._bounded(retry_after)

        if status in self.RESET_STATUSES and response.headers.get("X-RateLimit-Remaining") == "0":
            reset = self._parse_number(response.headers, "X-RateLimit-Reset")
            if reset is not None:
                return self._bounded(reset - time.time() + 1)

        return None

    def _bounded(self, seconds: float) -> float:
        return min(max(0.0, float(seconds)), self._max_sleep_seconds)

    def _parse_retry_after(self, value: Optional[str]) -> Optional[float]:
        if not value:
            return None
        value = value.strip()
        if value.isdigit():
            return float(value)
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if when is None:
            return None
        return when.timestamp() - time.time()

    def _parse_number(self, headers: Mapping[str, str], name: str) -> Optional[float]:
        value = (headers.get(name) or "").strip()
        if not value:
            return None
        try:
            return float(value)
        except ValueError:
            return None
