"""Shared fixtures: in-memory channels and a manually driven clock."""
from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from stickduels.config import EngineConfig
from stickduels.engine import MatchmakingEngine
from stickduels.protocol import InboundMessage


class FakeChannel:
    """Records every message the engine sends to one client."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.open = True
        self.sent: List[Dict[str, Any]] = []

    @property
    def is_open(self) -> bool:
        return self.open

    def send(self, message: Dict[str, Any]) -> None:
        self.sent.append(message)

    def types(self) -> List[str]:
        return [message["type"] for message in self.sent]

    def of_type(self, tag: str) -> List[Dict[str, Any]]:
        return [message for message in self.sent if message["type"] == tag]

    def last(self, tag: str) -> Dict[str, Any]:
        return self.of_type(tag)[-1]

    def clear(self) -> None:
        self.sent.clear()

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"FakeChannel({self.name!r})"


@dataclass
class _Timer:
    when: float
    seq: int
    callback: Callable[..., Any]
    args: Tuple[Any, ...]
    cancelled: bool = field(default=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic scheduler; time only moves when :meth:`advance` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self._timers: List[_Timer] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> _Timer:
        timer = _Timer(self.now + delay, next(self._seq), callback, args)
        self._timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [timer for timer in self._timers if not timer.cancelled and timer.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self._timers.remove(timer)
            self.now = timer.when
            timer.callback(*timer.args)
        self.now = target

    @property
    def pending(self) -> int:
        return sum(1 for timer in self._timers if not timer.cancelled)


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def engine(scheduler: ManualScheduler) -> MatchmakingEngine:
    return MatchmakingEngine(EngineConfig(), scheduler)


@pytest.fixture()
def channels() -> Callable[[int], List[FakeChannel]]:
    def _make(count: int) -> List[FakeChannel]:
        return [FakeChannel(f"client-{idx + 1}") for idx in range(count)]

    return _make


@pytest.fixture()
def dispatch(engine: MatchmakingEngine) -> Callable[..., None]:
    """Feed a decoded message from ``channel`` into the engine."""

    def _dispatch(channel: FakeChannel, tag: str, payload: Optional[Dict[str, Any]] = None) -> None:
        engine.handle_message(channel, InboundMessage(type=tag, payload=payload or {}))

    return _dispatch
