"""Runtime state for connected players, duels and co-op rooms.

The dataclasses are plain mutable records owned by the engine.  Players hold
a reference to their connection but never own it; matches and rooms refer to
their occupants directly and are reached only through the engine tables.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .protocol import Channel


class PlayerMode(str, Enum):
    """Which kind of session a player is queued for or taking part in."""

    DUEL = "duel"
    COOP = "coop"
    NONE = "none"


class MatchState(str, Enum):
    STARTING = "starting"
    PLAYING = "playing"
    FINISHED = "finished"


class RoomState(str, Enum):
    CREATED = "created"
    READY_ACKED = "ready_acked"
    ACTIVE = "active"
    TORN_DOWN = "torn_down"


@dataclass(eq=False)
class Player:
    """Runtime representation of a connected player."""

    connection: Channel
    player_id: Any
    display_name: str
    rating: int = 1000
    mode: PlayerMode = PlayerMode.NONE
    join_time: float = field(default_factory=time.time)
    match_id: Optional[str] = None
    room_id: Optional[str] = None
    seat_index: Optional[int] = None
    last_stats: Optional[Dict[str, Any]] = None
    rated: bool = False

    @property
    def is_engaged(self) -> bool:
        """True while the player belongs to a match or a room."""

        return self.match_id is not None or self.room_id is not None

    def public_profile(self) -> Dict[str, Any]:
        return {"name": self.display_name, "rating": self.rating}

    def clear_membership(self) -> None:
        self.match_id = None
        self.room_id = None
        self.seat_index = None
        self.mode = PlayerMode.NONE


@dataclass(eq=False)
class Match:
    """A head-to-head duel between two players."""

    id: str
    player1: Player
    player2: Player
    state: MatchState = MatchState.STARTING
    countdown: int = 3
    start_time: float = field(default_factory=time.time)
    pending_forfeit: Optional[int] = None
    winner_name: Optional[str] = None
    loser_name: Optional[str] = None
    winner_rating: Optional[int] = None
    loser_rating: Optional[int] = None

    @property
    def players(self) -> tuple[Player, Player]:
        return (self.player1, self.player2)

    def has_member(self, player: Player) -> bool:
        return player is self.player1 or player is self.player2

    def opponent_of(self, player: Player) -> Player:
        return self.player2 if player is self.player1 else self.player1

    def slot_of(self, player: Player) -> int:
        return 1 if player is self.player1 else 2

    def in_slot(self, slot: int) -> Player:
        return self.player1 if slot == 1 else self.player2


@dataclass(eq=False)
class Room:
    """A cooperative session shared by up to two seated players."""

    id: str
    players: List[Player] = field(default_factory=list)
    state: RoomState = RoomState.CREATED
    shared_state: Dict[str, Any] = field(default_factory=lambda: {"wave": 1, "started": False})

    @property
    def is_empty(self) -> bool:
        return not self.players

    def vacate(self, player: Player) -> bool:
        """Remove ``player`` from its seat; return whether it was seated."""

        for index, occupant in enumerate(self.players):
            if occupant is player:
                del self.players[index]
                return True
        return False
