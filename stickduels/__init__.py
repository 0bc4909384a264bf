"""Matchmaking and relay backend for two-player duels and co-op rooms.

The package exposes an engine that pairs waiting players, runs duel
countdowns and rating settlement, relays co-op gameplay events and a FastAPI
application that serves the engine over websockets.
"""

from .config import EngineConfig, ServerSettings
from .engine import MatchmakingEngine
from .models import Match, MatchState, Player, PlayerMode, Room, RoomState
from .rating import rating_change

__all__ = [
    "EngineConfig",
    "Match",
    "MatchState",
    "MatchmakingEngine",
    "Player",
    "PlayerMode",
    "Room",
    "RoomState",
    "ServerSettings",
    "rating_change",
]
