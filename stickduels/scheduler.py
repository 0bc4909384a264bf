"""Deferred work for countdowns, match purges and delayed forfeits."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Runs callbacks later on the engine's thread of control."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        ...


class AsyncioScheduler:
    """Schedules callbacks on the running event loop.

    Callbacks run between awaits of the loop, so they never interleave with
    an engine operation that is already in progress.
    """

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback, *args)
