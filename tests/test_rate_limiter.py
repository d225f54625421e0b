from email.utils import format_datetime
from datetime import datetime, timezone

import httpx
import pytest

import core.rate_limiter as rl_mod
from core.rate_limiter import RetryAfterPolicy


def _resp(status: int, headers: dict[str, str]):
    req = httpx.Request("GET", "https://api.example.test/x")
    return httpx.Response(status, headers=headers, request=req)


def test_429_honors_retry_after_seconds():
    policy = RetryAfterPolicy(max_sleep_seconds=60)
    assert policy.delay_for(_resp(429, {"Retry-After": "10"})) == 10.0


def test_503_honors_retry_after_seconds():
    policy = RetryAfterPolicy(max_sleep_seconds=60)
    assert policy.delay_for(_resp(503, {"Retry-After": "3"})) == 3.0


def test_429_without_retry_after_is_not_throttled():
    policy = RetryAfterPolicy(max_sleep_seconds=60)
    assert policy.delay_for(_resp(429, {})) is None


def test_retry_after_is_bounded():
    policy = RetryAfterPolicy(max_sleep_seconds=5)
    assert policy.delay_for(_resp(429, {"Retry-After": "10"})) == 5.0


def test_retry_after_http_date(monkeypatch):
    monkeypatch.setattr(rl_mod.time, "time", lambda: 1_700_000_000.0)
    when = datetime.fromtimestamp(1_700_000_007, tz=timezone.utc)

    policy = RetryAfterPolicy(max_sleep_seconds=60)
    delay = policy.delay_for(_resp(429, {"Retry-After": format_datetime(when, usegmt=True)}))

    assert delay == pytest.approx(7.0)


def test_retry_after_in_the_past_is_zero(monkeypatch):
    monkeypatch.setattr(rl_mod.time, "time", lambda: 1_700_000_000.0)
    when = datetime.fromtimestamp(1_699_999_000, tz=timezone.utc)

    policy = RetryAfterPolicy()
    assert policy.delay_for(_resp(503, {"Retry-After": format_datetime(when, usegmt=True)})) == 0.0


def test_garbage_retry_after_is_ignored():
    policy = RetryAfterPolicy()
    assert policy.delay_for(_resp(429, {"Retry-After": "later please"})) is None


def test_403_rate_limit_reset(monkeypatch):
    monkeypatch.setattr(rl_mod.time, "time", lambda: 100)

    policy = RetryAfterPolicy(max_sleep_seconds=60)
    r = _resp(403, {"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "120"})

    assert policy.delay_for(r) == 21.0


def test_403_with_remaining_quota_is_not_throttled():
    policy = RetryAfterPolicy()
    r = _resp(403, {"X-RateLimit-Remaining": "5", "X-RateLimit-Reset": "120"})

    assert policy.delay_for(r) is None


@pytest.mark.parametrize("status", [200, 201, 404, 500])
def test_other_statuses_are_not_throttled(status):
    policy = RetryAfterPolicy()
    assert policy.delay_for(_resp(status, {"Retry-After": "1"})) is None


def test_negative_max_sleep_clamps_to_zero():
    policy = RetryAfterPolicy(max_sleep_seconds=-3)
    assert policy.max_sleep_seconds == 0.0
    assert policy.delay_for(_resp(429, {"Retry-After": "10"})) == 0.0
