"""Duel lifecycle: countdown, active play and rating settlement."""

from __future__ import annotations

import itertools
import logging
from typing import Any, Dict, Optional

from . import relay
from .config import EngineConfig
from .models import Match, MatchState, Player, PlayerMode
from .protocol import Outbound, make_message
from .rating import settle
from .scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class DuelLifecycle:
    """Owns every duel from pairing until its record is purged.

    Live matches sit in :attr:`matches`.  Once settled a match moves to
    :attr:`finished` where it stays for ``finished_match_ttl`` seconds.
    Timer callbacks receive the match id only and look the match up again
    when they fire.
    """

    def __init__(self, config: EngineConfig, scheduler: Scheduler) -> None:
        self.config = config
        self.scheduler = scheduler
        self.matches: Dict[str, Match] = {}
        self.finished: Dict[str, Match] = {}
        self._ids = itertools.count(1)
        self._countdowns: Dict[str, TimerHandle] = {}
        self._forfeits: Dict[str, TimerHandle] = {}

    # ------------------------------------------------------------------
    # Creation and countdown
    # ------------------------------------------------------------------
    def create(self, player1: Player, player2: Player) -> Match:
        match = Match(
            id=f"match_{next(self._ids)}",
            player1=player1,
            player2=player2,
            countdown=self.config.countdown_start,
        )
        self.matches[match.id] = match
        for player in match.players:
            player.mode = PlayerMode.DUEL
            player.match_id = match.id
            player.room_id = None
            opponent = match.opponent_of(player)
            relay.send_to_player(
                player,
                make_message(Outbound.MATCH_FOUND, {"matchId": match.id, "opponent": opponent.public_profile()}),
            )
        logger.info(
            "[DUELS] Match %s created: %s (%d) vs %s (%d)",
            match.id,
            player1.display_name,
            player1.rating,
            player2.display_name,
            player2.rating,
        )
        if match.countdown <= 0:
            self._begin(match.id)
        else:
            self._schedule_tick(match.id)
        return match

    def _schedule_tick(self, match_id: str) -> None:
        self._countdowns[match_id] = self.scheduler.call_later(self.config.countdown_interval, self._tick, match_id)

    def _tick(self, match_id: str) -> None:
        self._countdowns.pop(match_id, None)
        match = self.matches.get(match_id)
        if match is None or match.state is not MatchState.STARTING:
            return
        match.countdown -= 1
        relay.broadcast(match.players, make_message(Outbound.COUNTDOWN, {"count": match.countdown}))
        if match.countdown <= 0:
            self._begin(match_id)
        else:
            self._schedule_tick(match_id)

    def _begin(self, match_id: str) -> None:
        match = self.matches.get(match_id)
        if match is None or match.state is not MatchState.STARTING:
            return
        match.state = MatchState.PLAYING
        relay.broadcast(match.players, make_message(Outbound.MATCH_START))
        logger.info("[DUELS] Match %s started", match_id)

    def _cancel_countdown(self, match_id: str) -> None:
        handle = self._countdowns.pop(match_id, None)
        if handle is not None:
            handle.cancel()

    # ------------------------------------------------------------------
    # Active play
    # ------------------------------------------------------------------
    def match_of(self, player: Player) -> Optional[Match]:
        if player.match_id is None:
            return None
        match = self.matches.get(player.match_id)
        if match is None or not match.has_member(player):
            return None
        return match

    def relay(self, sender: Player, payload: Dict[str, Any], tag: Outbound) -> bool:
        """Forward ``payload`` verbatim to the sender's opponent."""

        match = self.match_of(sender)
        if match is None or match.state is not MatchState.PLAYING:
            return False
        return relay.send_to_player(match.opponent_of(sender), make_message(tag, payload))

    def resolve_death(self, loser: Player) -> bool:
        match = self.match_of(loser)
        if match is None or match.state is not MatchState.PLAYING:
            return False
        if match.pending_forfeit is not None:
            return self._settle_forfeit(match)
        self._settle(match, winner=match.opponent_of(loser), loser=loser)
        return True

    def resolve_disconnect(self, leaver: Player) -> bool:
        """Handle ``leaver`` dropping out of its duel.

        Before play starts the match is simply discarded.  During play the
        opponent is told they win by default and the leaver is settled as
        the loser, either now or after ``forfeit_delay``.
        """

        match = self.match_of(leaver)
        if match is None:
            return False
        remaining = match.opponent_of(leaver)
        if match.state is MatchState.STARTING:
            self._cancel_countdown(match.id)
            self.matches.pop(match.id, None)
            relay.send_to_player(
                remaining,
                make_message(
                    Outbound.OPPONENT_DISCONNECTED,
                    {"message": "Opponent disconnected before the match started.", "matchStarted": False},
                ),
            )
            for player in match.players:
                if player.match_id == match.id:
                    player.clear_membership()
            logger.info("[DUELS] Match %s abandoned during countdown", match.id)
            return True
        if match.state is not MatchState.PLAYING:
            return False
        if match.pending_forfeit is not None:
            return self._settle_forfeit(match)
        relay.send_to_player(
            remaining,
            make_message(
                Outbound.OPPONENT_DISCONNECTED,
                {"message": "Opponent disconnected. You win!", "matchStarted": True},
            ),
        )
        match.pending_forfeit = match.slot_of(leaver)
        if self.config.forfeit_delay > 0:
            self._forfeits[match.id] = self.scheduler.call_later(
                self.config.forfeit_delay, self._forfeit_due, match.id
            )
            return True
        return self._settle_forfeit(match)

    def _forfeit_due(self, match_id: str) -> None:
        self._forfeits.pop(match_id, None)
        match = self.matches.get(match_id)
        if match is None or match.state is not MatchState.PLAYING or match.pending_forfeit is None:
            return
        self._settle_forfeit(match)

    def _settle_forfeit(self, match: Match) -> bool:
        handle = self._forfeits.pop(match.id, None)
        if handle is not None:
            handle.cancel()
        loser = match.in_slot(match.pending_forfeit or 1)
        self._settle(match, winner=match.opponent_of(loser), loser=loser)
        return True

    # ------------------------------------------------------------------
    # Settlement and cleanup
    # ------------------------------------------------------------------
    def _settle(self, match: Match, winner: Player, loser: Player) -> None:
        match.state = MatchState.FINISHED
        result = settle(winner.rating, loser.rating, self.config.k_factor)
        winner.rating += result.winner_delta
        loser.rating += result.loser_delta
        winner.rated = loser.rated = True
        match.winner_name, match.winner_rating = winner.display_name, winner.rating
        match.loser_name, match.loser_rating = loser.display_name, loser.rating

        relay.send_to_player(
            winner,
            make_message(
                Outbound.MATCH_END,
                {
                    "won": True,
                    "ratingChange": result.winner_delta,
                    "newRating": winner.rating,
                    "opponentName": loser.display_name,
                },
            ),
        )
        relay.send_to_player(
            loser,
            make_message(
                Outbound.MATCH_END,
                {
                    "won": False,
                    "ratingChange": result.loser_delta,
                    "newRating": loser.rating,
                    "opponentName": winner.display_name,
                },
            ),
        )
        for player in match.players:
            if player.match_id == match.id:
                player.clear_membership()

        self.matches.pop(match.id, None)
        self.finished[match.id] = match
        self.scheduler.call_later(self.config.finished_match_ttl, self._purge, match.id)
        logger.info(
            "[DUELS] %s defeated %s in %s (%+d / %+d)",
            winner.display_name,
            loser.display_name,
            match.id,
            result.winner_delta,
            result.loser_delta,
        )

    def _purge(self, match_id: str) -> None:
        if self.finished.pop(match_id, None) is not None:
            logger.debug("[DUELS] Match %s purged", match_id)

    def __len__(self) -> int:
        return len(self.matches)
