"""Paced JSON API client.

Every HTTP exchange is submitted to a ``PacedQueue`` as one job, so calls to
the remote API start one at a time and at least ``min_interval`` seconds
apart. Throttling signals (Retry-After, rate-limit reset) are honored by
backing off and resubmitting, which costs another paced turn.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional

import httpx

from config import (
    API_BASE_URL,
    API_MAX_RETRIES,
    API_MIN_INTERVAL,
    API_TOKEN,
    HTTP_TIMEOUT,
    HTTP_VERIFY,
    MAX_RETRY_SLEEP,
)
from core.errors import ExternalServiceError, NotFoundError, ValidationError
from core.pacing import PacedQueue
from core.rate_limiter import RetryAfterPolicy

logger = logging.getLogger(__name__)


class PacedApiClient:
    """Async client for a rate-limited JSON API.

    Purpose:
      - get_json(path, params=None) -> decoded JSON body
      - post_json(path, json=None, data=None) -> decoded JSON body
      - delete(path) -> None
      - request(method, path, ...) -> httpx.Response (status already checked)

    Key behavior:
      - The queue is passed in by the owner so several clients can share one
        pacing budget; a private queue is created when none is given.
      - 404 raises NotFoundError, other failures raise ExternalServiceError.
    """

    JSON_ACCEPT = "application/json"
    USER_AGENT = "paced-queue-client"

    def __init__(
        self,
        *,
        base_url: str,
        queue: Optional[PacedQueue] = None,
        min_interval: float = 1.0,
        timeout: float = 20.0,
        verify: bool = True,
        token: Optional[str] = None,
        retry_policy: Optional[RetryAfterPolicy] = None,
        max_retries: int = 2,
    ) -> None:
        base = (base_url or "").strip().rstrip("/")
        if not base:
            raise ValidationError("base_url must be non-empty")
        self._base_url = base
        self._timeout = float(timeout)
        self._verify = bool(verify)
        self._max_retries = max(0, int(max_retries))

        self._queue = queue if queue is not None else PacedQueue(min_interval)
        self._retry_policy = retry_policy or RetryAfterPolicy()

        self._token: Optional[str] = None
        self.set_token(token)

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def queue(self) -> PacedQueue:
        return self._queue

    def set_token(self, token: Optional[str]) -> None:
        # Swap credentials without touching the queue or its pacing clock.
        self._token = (token or "").strip() or None

    # --- Requests ---

    async def get_json(self, path: str, *, params: Optional[Mapping[str, Any]] = None) -> Any:
        resp = await self.request("GET", path, params=params)
        return self._decode(resp, context=f"GET {path}")

    async def post_json(
        self,
        path: str,
        *,
        json: Any = None,
        data: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        resp = await self.request("POST", path, json=json, data=data)
        return self._decode(resp, context=f"POST {path}")

    async def delete(self, path: str) -> None:
        await self.request("DELETE", path)

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send one request through the queue, retrying on explicit throttling."""
        method = method.upper()
        url = self._normalize_path(path)
        attempts = self._max_retries + 1

        for attempt in range(attempts):
            resp = await self._queue.run(lambda: self._send(method, url, kwargs))

            if attempt < attempts - 1:
                delay = self._retry_policy.delay_for(resp)
                if delay is not None:
                    logger.warning(
                        "%s %s throttled (HTTP %d), retrying in %.1fs (attempt %d/%d)",
                        method, url, resp.status_code, delay, attempt + 1, attempts,
                    )
                    # Back off outside the queue so other callers keep their turns.
                    await asyncio.sleep(delay)
                    continue

            self._raise_for_status(resp, context=f"{method} {url}")
            return resp

        raise RuntimeError("Unreachable: request did not return a response")

    # --- HTTP helpers ---

    def _build_headers(self) -> dict[str, str]:
        headers = {
            "Accept": self.JSON_ACCEPT,
            "User-Agent": self.USER_AGENT,
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._build_headers(),
            timeout=self._timeout,
            verify=self._verify,
        )

    async def _send(self, method: str, url: str, kwargs: Mapping[str, Any]) -> httpx.Response:
        # Runs inside a queue turn.
        options = {k: v for k, v in kwargs.items() if v is not None}
        try:
            async with self._create_client() as client:
                return await client.request(method, url, **options)
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"API request failed ({method} {url}): {e}") from e

    def _normalize_path(self, path: str) -> str:
        clean = (path or "").strip()
        if not clean:
            raise ValidationError("path must be non-empty")
        return "/" + clean.lstrip("/")

    def _raise_for_status(self, resp: httpx.Response, *, context: str) -> None:
        if resp.status_code == 404:
            raise NotFoundError(f"Not found: {context}")
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ExternalServiceError(f"API request failed ({context}): {e}") from e

    def _decode(self, resp: httpx.Response, *, context: str) -> Any:
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ExternalServiceError(f"Invalid JSON from API ({context})") from e


def build_api_client(*, queue: Optional[PacedQueue] = None) -> PacedApiClient:
    """Wire a client from environment configuration."""
    return PacedApiClient(
        base_url=API_BASE_URL,
        queue=queue,
        min_interval=API_MIN_INTERVAL,
        timeout=HTTP_TIMEOUT,
        verify=HTTP_VERIFY,
        token=API_TOKEN,
        retry_policy=RetryAfterPolicy(max_sleep_seconds=MAX_RETRY_SLEEP),
        max_retries=API_MAX_RETRIES,
    )
