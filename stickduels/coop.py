"""Co-op room lifecycle and partner relays."""

from __future__ import annotations

import itertools
import logging
from typing import Any, Dict, Optional

from . import relay
from .models import Player, PlayerMode, Room, RoomState
from .protocol import Inbound, Outbound, make_message

logger = logging.getLogger(__name__)

# Gameplay events forwarded to the partner only, keyed by inbound tag.  The
# second item names the field that carries the sender's seat index.
PARTNER_RELAYS: Dict[Inbound, tuple[Outbound, str]] = {
    Inbound.PLAYER_POSITION: (Outbound.PARTNER_POSITION, "playerId"),
    Inbound.PLAYER_SHOOT: (Outbound.PARTNER_SHOOT, "playerId"),
    Inbound.ENEMY_KILLED: (Outbound.ENEMY_KILLED_SYNC, "killerId"),
    Inbound.STATS_UPDATE: (Outbound.PARTNER_STATS, "playerId"),
    Inbound.PLAYER_DEATH: (Outbound.PARTNER_DIED, "playerId"),
}


class CoopLifecycle:
    """Registry of co-op rooms; a room lives until its last seat empties."""

    def __init__(self) -> None:
        self.rooms: Dict[str, Room] = {}
        self._ids = itertools.count(1)

    def create(self, player1: Player, player2: Player) -> Room:
        room = Room(id=f"coop_{next(self._ids)}", players=[player1, player2])
        self.rooms[room.id] = room
        for seat, player in enumerate(room.players, start=1):
            player.mode = PlayerMode.COOP
            player.room_id = room.id
            player.match_id = None
            player.seat_index = seat
            relay.send_to_player(player, make_message(Outbound.MATCH_FOUND, {"roomId": room.id, "playerId": seat}))
        logger.info("[CO-OP] Room %s created: %s + %s", room.id, player1.display_name, player2.display_name)
        return room

    def room_of(self, player: Player) -> Optional[Room]:
        if player.room_id is None:
            return None
        room = self.rooms.get(player.room_id)
        if room is None or player not in room.players:
            return None
        return room

    def ready(self, sender: Player) -> bool:
        room = self.room_of(sender)
        if room is None:
            return False
        if room.state is RoomState.CREATED:
            room.state = RoomState.READY_ACKED
        relay.broadcast(
            room.players,
            make_message(Outbound.PARTNER_READY, {"playerId": sender.seat_index}),
            exclude=sender.connection,
        )
        return True

    def start(self, sender: Player) -> bool:
        room = self.room_of(sender)
        if room is None:
            return False
        room.shared_state["started"] = True
        room.state = RoomState.ACTIVE
        relay.broadcast(room.players, make_message(Outbound.GAME_START))
        logger.info("[CO-OP] Game started in room %s", room.id)
        return True

    def relay(self, sender: Player, kind: Inbound, payload: Dict[str, Any]) -> bool:
        """Forward a gameplay event from ``sender`` to its partner.

        Game over is the exception: it is broadcast to both seats since it
        ends the session for everyone.
        """

        room = self.room_of(sender)
        if room is None:
            return False
        if kind is Inbound.GAME_OVER:
            relay.broadcast(room.players, make_message(Outbound.GAME_OVER_SYNC, payload))
            return True
        tag, seat_field = PARTNER_RELAYS[kind]
        forwarded = dict(payload)
        forwarded[seat_field] = sender.seat_index
        relay.broadcast(room.players, make_message(tag, forwarded), exclude=sender.connection)
        return True

    def leave(self, player: Player) -> bool:
        """Vacate ``player``'s seat; delete the room once nobody is left."""

        room = self.room_of(player)
        if room is None:
            return False
        room.vacate(player)
        player.clear_membership()
        relay.broadcast(room.players, make_message(Outbound.PARTNER_DISCONNECTED))
        if room.is_empty:
            room.state = RoomState.TORN_DOWN
            self.rooms.pop(room.id, None)
            logger.info("[CO-OP] Room %s deleted (empty)", room.id)
        return True

    def __len__(self) -> int:
        return len(self.rooms)
