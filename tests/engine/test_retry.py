from __future__ import annotations

import asyncio

import pytest

from arxiv_digest.config import RetryPolicyConfig
from arxiv_digest.engine import CancelToken, Cancelled, FetchExhausted, MalformedDocument, RetryPolicy
from arxiv_digest.engine.retry import run_with_retry


def test_default_policy_doubles_from_one_second() -> None:
    policy = RetryPolicy.from_config(RetryPolicyConfig())
    assert policy.attempts == 3
    assert policy.delays() == [1.0, 2.0]


def test_run_with_retry_sleeps_between_attempts() -> None:
    delays: list[float] = []
    calls = {"count": 0}

    async def operation() -> str:
        calls["count"] += 1
        if calls["count"] < 3:
            raise FetchExhausted("https://example.test", 1)
        return "done"

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    result = asyncio.run(run_with_retry(operation, RetryPolicy(), sleep=fake_sleep))
    assert result == "done"
    assert delays == [1.0, 2.0]


def test_run_with_retry_raises_final_error() -> None:
    errors = [FetchExhausted(f"https://example.test/{n}", 1) for n in range(3)]

    async def operation() -> str:
        raise errors.pop(0)

    async def fake_sleep(_delay: float) -> None:
        return None

    with pytest.raises(FetchExhausted) as excinfo:
        asyncio.run(run_with_retry(operation, RetryPolicy(), sleep=fake_sleep))
    assert excinfo.value.url == "https://example.test/2"


def test_run_with_retry_does_not_retry_other_errors() -> None:
    calls = {"count": 0}

    async def operation() -> str:
        calls["count"] += 1
        raise MalformedDocument("garbage")

    with pytest.raises(MalformedDocument):
        asyncio.run(run_with_retry(operation, RetryPolicy(base_delay=0.0)))
    assert calls["count"] == 1


def test_cancellation_during_backoff_stops_retrying() -> None:
    calls = {"count": 0}

    async def _run() -> None:
        token = CancelToken()

        async def operation() -> str:
            calls["count"] += 1
            asyncio.get_running_loop().call_later(0.01, token.cancel)
            raise FetchExhausted("https://example.test", 1)

        await run_with_retry(operation, RetryPolicy(base_delay=5.0), token=token)

    with pytest.raises(Cancelled):
        asyncio.run(asyncio.wait_for(_run(), timeout=2))
    assert calls["count"] == 1


def test_single_attempt_policy_raises_without_sleeping() -> None:
    delays: list[float] = []

    async def operation() -> str:
        raise FetchExhausted("https://example.test/once", 1)

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    with pytest.raises(FetchExhausted) as excinfo:
        asyncio.run(run_with_retry(operation, RetryPolicy(attempts=1), sleep=fake_sleep))
    assert excinfo.value.url == "https://example.test/once"
    assert delays == []


def test_policy_requires_an_attempt() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(attempts=0)
