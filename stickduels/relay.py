"""Fire-and-forget delivery helpers."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .models import Player
from .protocol import Channel, Message

logger = logging.getLogger(__name__)


def send_to(connection: Channel, message: Message) -> bool:
    """Deliver ``message`` if the channel is open; drop it otherwise."""

    if not connection.is_open:
        logger.debug("Dropping %s for closed connection", message.get("type"))
        return False
    connection.send(message)
    return True


def send_to_player(player: Optional[Player], message: Message) -> bool:
    if player is None:
        return False
    return send_to(player.connection, message)


def broadcast(players: Iterable[Player], message: Message, exclude: Optional[Channel] = None) -> int:
    """Send ``message`` to every player except the one on ``exclude``."""

    delivered = 0
    for player in list(players):
        if exclude is not None and player.connection is exclude:
            continue
        if send_to(player.connection, message):
            delivered += 1
    return delivered
