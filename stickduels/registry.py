"""Connection to player bookkeeping."""

from __future__ import annotations

import math
import time
from typing import Any, Dict, Iterator, Mapping, Optional

from .models import Player
from .protocol import Channel


class SessionRegistry:
    """Maps each live connection to its mutable :class:`Player` record."""

    def __init__(self, default_name: str = "Anonymous", default_rating: int = 1000) -> None:
        self._players: Dict[Channel, Player] = {}
        self._default_name = default_name
        self._default_rating = default_rating

    def register(self, connection: Channel, initial_data: Optional[Mapping[str, Any]] = None) -> Player:
        """Create the player for ``connection`` or refresh the existing one.

        Identity fields reported by the client overwrite the stored ones.  The
        client's rating is only taken until the connection settles a duel;
        after that the server-held rating wins.
        """

        data = initial_data or {}
        player = self._players.get(connection)
        if player is None:
            player = Player(
                connection=connection,
                player_id=data.get("playerId") or f"guest-{int(time.time() * 1000)}",
                display_name=data.get("playerName") or self._default_name,
                rating=_coerce_rating(data.get("rating"), self._default_rating),
            )
            self._players[connection] = player
            return player
        if data.get("playerId"):
            player.player_id = data["playerId"]
        if data.get("playerName"):
            player.display_name = data["playerName"]
        if not player.rated:
            player.rating = _coerce_rating(data.get("rating"), player.rating)
        player.join_time = time.time()
        return player

    def lookup(self, connection: Channel) -> Optional[Player]:
        return self._players.get(connection)

    def forget(self, connection: Channel) -> Optional[Player]:
        return self._players.pop(connection, None)

    def __len__(self) -> int:
        return len(self._players)

    def __iter__(self) -> Iterator[Player]:
        return iter(list(self._players.values()))


def _coerce_rating(value: Any, fallback: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0 or not math.isfinite(value):
        return fallback
    return int(value)
