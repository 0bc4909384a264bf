"""First-come first-served pairing queues."""

from __future__ import annotations

from collections import deque
from typing import Callable, Deque, Dict, Iterator, List, Tuple

from .models import Player, PlayerMode

PairHandler = Callable[[Player, Player], None]


class PairingQueue:
    """Ordered waiting list that pairs players strictly by arrival.

    Entries leave the queue two at a time, oldest first.  A single odd
    entrant keeps waiting until a peer arrives or it is removed.
    """

    def __init__(self, mode: PlayerMode, on_pair: PairHandler) -> None:
        self.mode = mode
        self._on_pair = on_pair
        self._queue: Deque[Player] = deque()

    def enqueue(self, player: Player) -> List[Tuple[Player, Player]]:
        if player not in self:
            self._queue.append(player)
        return self.try_pair()

    def dequeue_if_waiting(self, player: Player) -> bool:
        try:
            self._queue.remove(player)
        except ValueError:
            return False
        return True

    def try_pair(self) -> List[Tuple[Player, Player]]:
        pairs: List[Tuple[Player, Player]] = []
        while len(self._queue) >= 2:
            first = self._queue.popleft()
            second = self._queue.popleft()
            pairs.append((first, second))
            self._on_pair(first, second)
        return pairs

    def __contains__(self, player: object) -> bool:
        return any(entry is player for entry in self._queue)

    def __iter__(self) -> Iterator[Player]:
        return iter(list(self._queue))

    def __len__(self) -> int:
        return len(self._queue)


class PairingQueues:
    """One :class:`PairingQueue` per playable mode."""

    def __init__(self, handlers: Dict[PlayerMode, PairHandler]) -> None:
        self._queues = {mode: PairingQueue(mode, handler) for mode, handler in handlers.items()}

    def __getitem__(self, mode: PlayerMode) -> PairingQueue:
        return self._queues[mode]

    def enqueue(self, mode: PlayerMode, player: Player) -> List[Tuple[Player, Player]]:
        return self._queues[mode].enqueue(player)

    def dequeue_if_waiting(self, mode: PlayerMode, player: Player) -> bool:
        return self._queues[mode].dequeue_if_waiting(player)

    def try_pair(self, mode: PlayerMode) -> List[Tuple[Player, Player]]:
        return self._queues[mode].try_pair()

    def remove_everywhere(self, player: Player) -> bool:
        removed = False
        for queue in self._queues.values():
            removed = queue.dequeue_if_waiting(player) or removed
        return removed

    def waiting_in(self, player: Player) -> PlayerMode:
        for mode, queue in self._queues.items():
            if player in queue:
                return mode
        return PlayerMode.NONE
