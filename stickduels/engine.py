"""Matchmaking and relay engine shared by duels and co-op rooms.

The engine owns the session registry, both pairing queues and the match and
room tables.  Each inbound message is dispatched by tag to one handler that
runs to completion without awaiting, so no two operations ever interleave.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from . import relay
from .config import EngineConfig
from .coop import CoopLifecycle
from .duel import DuelLifecycle
from .matchmaking import PairingQueues
from .models import Player, PlayerMode
from .protocol import Channel, Inbound, InboundMessage, Outbound, make_message
from .registry import SessionRegistry
from .scheduler import AsyncioScheduler, Scheduler

logger = logging.getLogger(__name__)

TAG_ALIASES = {Inbound.COOP_FIND_PARTNER.value: Inbound.FIND_PARTNER.value}


class MatchmakingEngine:
    """Single entry point for connection events."""

    def __init__(self, config: Optional[EngineConfig] = None, scheduler: Optional[Scheduler] = None) -> None:
        self.config = config or EngineConfig()
        self.config.validate()
        self.scheduler = scheduler or AsyncioScheduler()
        self.registry = SessionRegistry(self.config.default_player_name, self.config.default_rating)
        self.duels = DuelLifecycle(self.config, self.scheduler)
        self.coop = CoopLifecycle()
        self.queues = PairingQueues({PlayerMode.DUEL: self.duels.create, PlayerMode.COOP: self.coop.create})

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def handle_message(self, connection: Channel, message: InboundMessage) -> None:
        tag = TAG_ALIASES.get(message.type, message.type)
        handler = getattr(self, f"_handle_{tag.lower()}", None) if tag.isupper() else None
        if handler is None:
            logger.info("Unknown message type: %s", message.type)
            return
        handler(connection, message.payload)

    def handle_disconnect(self, connection: Channel) -> None:
        """Tear down whatever the connection was part of and forget it."""

        player = self.registry.lookup(connection)
        if player is None:
            return
        self.queues.remove_everywhere(player)
        if player.match_id is not None:
            self.duels.resolve_disconnect(player)
        elif player.room_id is not None:
            self.coop.leave(player)
        self.registry.forget(connection)
        logger.info("Player %s disconnected", player.display_name)

    # ------------------------------------------------------------------
    # Queueing
    # ------------------------------------------------------------------
    def _join(self, connection: Channel, payload: Dict[str, Any], mode: PlayerMode) -> Optional[Player]:
        existing = self.registry.lookup(connection)
        if existing is not None and existing.is_engaged:
            relay.send_to(
                connection,
                make_message(
                    Outbound.QUEUE_REJECTED,
                    {"reason": "Leave your current match or room before joining a queue."},
                ),
            )
            logger.info("Rejected queue join from %s: already in a session", existing.display_name)
            return None
        player = self.registry.register(connection, payload)
        if self.queues.waiting_in(player) is mode:
            return None
        self.queues.remove_everywhere(player)
        player.mode = mode
        return player

    def _handle_join_queue(self, connection: Channel, payload: Dict[str, Any]) -> None:
        player = self._join(connection, payload, PlayerMode.DUEL)
        if player is None:
            return
        logger.info("[DUELS] Player %s joined queue (Rating: %d)", player.display_name, player.rating)
        self.queues.enqueue(PlayerMode.DUEL, player)

    def _handle_leave_queue(self, connection: Channel, payload: Dict[str, Any]) -> None:
        player = self.registry.lookup(connection)
        if player is None:
            return
        if self.queues.dequeue_if_waiting(PlayerMode.DUEL, player):
            player.mode = PlayerMode.NONE
            logger.info("[DUELS] Player %s left queue", player.display_name)

    def _handle_find_partner(self, connection: Channel, payload: Dict[str, Any]) -> None:
        player = self._join(connection, payload, PlayerMode.COOP)
        if player is None:
            return
        logger.info("[CO-OP] Player %s joined queue", player.display_name)
        relay.send_to(connection, make_message(Outbound.SEARCHING))
        self.queues.enqueue(PlayerMode.COOP, player)

    def _handle_cancel_search(self, connection: Channel, payload: Dict[str, Any]) -> None:
        player = self.registry.lookup(connection)
        if player is not None and self.queues.remove_everywhere(player):
            player.mode = PlayerMode.NONE
            logger.info("Player %s cancelled search", player.display_name)
        relay.send_to(connection, make_message(Outbound.SEARCH_CANCELLED))

    # ------------------------------------------------------------------
    # Gameplay
    # ------------------------------------------------------------------
    def _handle_spawn_enemies(self, connection: Channel, payload: Dict[str, Any]) -> None:
        player = self.registry.lookup(connection)
        if player is not None:
            self.duels.relay(player, payload, Outbound.SPAWN_ENEMIES)

    def _handle_stats_update(self, connection: Channel, payload: Dict[str, Any]) -> None:
        player = self.registry.lookup(connection)
        if player is None:
            return
        player.last_stats = dict(payload)
        if player.mode is PlayerMode.DUEL:
            self.duels.relay(player, payload, Outbound.OPPONENT_STATS)
        elif player.mode is PlayerMode.COOP:
            self.coop.relay(player, Inbound.STATS_UPDATE, payload)

    def _handle_player_death(self, connection: Channel, payload: Dict[str, Any]) -> None:
        player = self.registry.lookup(connection)
        if player is None:
            return
        if player.mode is PlayerMode.DUEL:
            self.duels.resolve_death(player)
        elif player.mode is PlayerMode.COOP:
            self.coop.relay(player, Inbound.PLAYER_DEATH, payload)

    def _handle_ready(self, connection: Channel, payload: Dict[str, Any]) -> None:
        player = self.registry.lookup(connection)
        if player is not None:
            self.coop.ready(player)

    def _handle_start_game(self, connection: Channel, payload: Dict[str, Any]) -> None:
        player = self.registry.lookup(connection)
        if player is not None:
            self.coop.start(player)

    def _coop_relay(self, connection: Channel, kind: Inbound, payload: Dict[str, Any]) -> None:
        player = self.registry.lookup(connection)
        if player is not None:
            self.coop.relay(player, kind, payload)

    def _handle_player_position(self, connection: Channel, payload: Dict[str, Any]) -> None:
        self._coop_relay(connection, Inbound.PLAYER_POSITION, payload)

    def _handle_player_shoot(self, connection: Channel, payload: Dict[str, Any]) -> None:
        self._coop_relay(connection, Inbound.PLAYER_SHOOT, payload)

    def _handle_enemy_killed(self, connection: Channel, payload: Dict[str, Any]) -> None:
        self._coop_relay(connection, Inbound.ENEMY_KILLED, payload)

    def _handle_game_over(self, connection: Channel, payload: Dict[str, Any]) -> None:
        self._coop_relay(connection, Inbound.GAME_OVER, payload)

    def _handle_leave_room(self, connection: Channel, payload: Dict[str, Any]) -> None:
        player = self.registry.lookup(connection)
        if player is not None and self.coop.leave(player):
            logger.info("[CO-OP] Player %s left their room", player.display_name)

    # ------------------------------------------------------------------
    # General
    # ------------------------------------------------------------------
    def _handle_ping(self, connection: Channel, payload: Dict[str, Any]) -> None:
        relay.send_to(connection, make_message(Outbound.PONG))

    def _handle_get_status(self, connection: Channel, payload: Dict[str, Any]) -> None:
        relay.send_to(connection, make_message(Outbound.STATUS, self.status()))

    def status(self) -> Dict[str, Any]:
        return {
            "status": "online",
            "duels": {
                "queueLength": len(self.queues[PlayerMode.DUEL]),
                "activeMatches": len(self.duels.matches),
                "finishedMatches": len(self.duels.finished),
            },
            "coop": {
                "queueLength": len(self.queues[PlayerMode.COOP]),
                "activeRooms": len(self.coop.rooms),
            },
            "connectedPlayers": len(self.registry),
        }
