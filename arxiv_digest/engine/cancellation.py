"""Cooperative cancellation tokens for pipeline runs."""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from .errors import Cancelled

T = TypeVar("T")


class CancelToken:
    """Flag shared by every await point of one pipeline run.

    The token is checked before each network attempt and raced against
    in-flight requests and backoff sleeps, so a superseded run stops at the
    next suspension point and surfaces :class:`Cancelled`.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "superseded") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled(self.reason or "cancelled")

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first."""

        self.raise_if_cancelled()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()
        if task in done:
            return task.result()
        task.cancel()
        try:
            await task
        except (asyncio.CancelledError, Exception):  # noqa: BLE001
            pass
        raise Cancelled(self.reason or "cancelled")

    async def sleep(self, delay: float) -> None:
        """Backoff sleep that wakes early (and raises) on cancellation."""

        self.raise_if_cancelled()
        if delay <= 0:
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise Cancelled(self.reason or "cancelled")


def ensure_token(token: CancelToken | None) -> CancelToken:
    return token if token is not None else CancelToken()


__all__ = ["CancelToken", "ensure_token"]
