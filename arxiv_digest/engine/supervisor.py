"""Per-channel run supervision: a newer run cancels the one in flight."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, TypeVar

import structlog

from .cancellation import CancelToken
from .errors import Cancelled

T = TypeVar("T")


@dataclass
class _ActiveRun:
    epoch: int
    token: CancelToken
    task: asyncio.Future


class RunSupervisor:
    """Keep at most one live run per channel ("last writer wins").

    Starting a run cancels the previous run of the same channel, both through
    its token and its task. The epoch is compared again at write-back time so
    a superseded run can never deliver.
    """

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self.logger = logger or structlog.get_logger("arxiv_digest.supervisor")
        self._runs: Dict[str, _ActiveRun] = {}
        self._epochs: Dict[str, int] = {}

    def current_epoch(self, channel: str) -> int:
        return self._epochs.get(channel, 0)

    def is_active(self, channel: str) -> bool:
        return channel in self._runs

    def cancel(self, channel: str, reason: str = "superseded") -> None:
        run = self._runs.pop(channel, None)
        if run is None:
            return
        run.token.cancel(reason)
        run.task.cancel()
        self.logger.debug("run_cancelled", channel=channel, epoch=run.epoch, reason=reason)

    async def run(
        self,
        channel: str,
        factory: Callable[[CancelToken], Awaitable[T]],
        deliver: Callable[[T], None] | None = None,
    ) -> T:
        self.cancel(channel)
        epoch = self._epochs.get(channel, 0) + 1
        self._epochs[channel] = epoch
        token = CancelToken()
        task = asyncio.ensure_future(factory(token))
        self._runs[channel] = _ActiveRun(epoch=epoch, token=token, task=task)
        try:
            result = await task
        except asyncio.CancelledError:
            if token.cancelled:
                raise Cancelled(token.reason or "superseded") from None
            # The awaiting caller itself was cancelled.
            token.cancel("caller cancelled")
            task.cancel()
            raise
        except Exception:
            # Failures of a superseded run are as stale as its results.
            if token.cancelled or self._epochs.get(channel) != epoch:
                raise Cancelled(token.reason or "superseded") from None
            raise
        finally:
            active = self._runs.get(channel)
            if active is not None and active.epoch == epoch:
                del self._runs[channel]

        if token.cancelled or self._epochs.get(channel) != epoch:
            raise Cancelled(token.reason or "superseded")
        if deliver is not None:
            deliver(result)
        return result

    def shutdown(self) -> None:
        for channel in list(self._runs):
            self.cancel(channel, reason="shutdown")


__all__ = ["RunSupervisor"]
