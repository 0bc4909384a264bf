"""Wire protocol shared by the engine and the websocket transport.

Every message in either direction is a JSON object carrying a ``type`` tag
and an optional ``payload``.  Payload contents are opaque to the server
except for the handful of fields the engine reads (player name, rating,
enemy id).
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Protocol

Message = Dict[str, Any]


class ProtocolError(ValueError):
    """Raised when an inbound frame cannot be decoded into a message."""


class Inbound(str, Enum):
    """Tags accepted from clients."""

    JOIN_QUEUE = "JOIN_QUEUE"
    LEAVE_QUEUE = "LEAVE_QUEUE"
    FIND_PARTNER = "FIND_PARTNER"
    COOP_FIND_PARTNER = "COOP_FIND_PARTNER"
    CANCEL_SEARCH = "CANCEL_SEARCH"
    LEAVE_ROOM = "LEAVE_ROOM"
    SPAWN_ENEMIES = "SPAWN_ENEMIES"
    STATS_UPDATE = "STATS_UPDATE"
    PLAYER_DEATH = "PLAYER_DEATH"
    READY = "READY"
    START_GAME = "START_GAME"
    PLAYER_POSITION = "PLAYER_POSITION"
    PLAYER_SHOOT = "PLAYER_SHOOT"
    ENEMY_KILLED = "ENEMY_KILLED"
    GAME_OVER = "GAME_OVER"
    PING = "PING"
    GET_STATUS = "GET_STATUS"


class Outbound(str, Enum):
    """Tags sent to clients."""

    MATCH_FOUND = "MATCH_FOUND"
    COUNTDOWN = "COUNTDOWN"
    MATCH_START = "MATCH_START"
    MATCH_END = "MATCH_END"
    SPAWN_ENEMIES = "SPAWN_ENEMIES"
    OPPONENT_STATS = "OPPONENT_STATS"
    OPPONENT_DISCONNECTED = "OPPONENT_DISCONNECTED"
    SEARCHING = "SEARCHING"
    SEARCH_CANCELLED = "SEARCH_CANCELLED"
    QUEUE_REJECTED = "QUEUE_REJECTED"
    PARTNER_READY = "PARTNER_READY"
    GAME_START = "GAME_START"
    PARTNER_POSITION = "PARTNER_POSITION"
    PARTNER_SHOOT = "PARTNER_SHOOT"
    ENEMY_KILLED_SYNC = "ENEMY_KILLED_SYNC"
    PARTNER_STATS = "PARTNER_STATS"
    PARTNER_DIED = "PARTNER_DIED"
    GAME_OVER_SYNC = "GAME_OVER_SYNC"
    PARTNER_DISCONNECTED = "PARTNER_DISCONNECTED"
    STATUS = "STATUS"
    PONG = "PONG"


class Channel(Protocol):
    """Duplex message channel bound to one client connection."""

    @property
    def is_open(self) -> bool:
        ...

    def send(self, message: Message) -> None:
        """Queue ``message`` for delivery without waiting for the write."""


@dataclass(slots=True)
class InboundMessage:
    """A decoded client message."""

    type: str
    payload: Dict[str, Any] = field(default_factory=dict)


def make_message(tag: Outbound, payload: Optional[Dict[str, Any]] = None) -> Message:
    message: Message = {"type": tag.value}
    if payload is not None:
        message["payload"] = payload
    return message


def decode_message(raw: str | bytes) -> InboundMessage:
    """Parse a raw text frame into an :class:`InboundMessage`.

    Payloads that are not JSON objects are replaced by an empty mapping so
    handlers can read optional fields without type checks.
    """

    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise ProtocolError(f"Malformed message: {exc}") from exc
    if not isinstance(data, dict):
        raise ProtocolError("Message must be a JSON object")
    tag = data.get("type")
    if not isinstance(tag, str) or not tag:
        raise ProtocolError("Message is missing a type tag")
    payload = data.get("payload")
    return InboundMessage(type=tag, payload=payload if isinstance(payload, dict) else {})
