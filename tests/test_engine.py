"""Dispatch, queue management, status and configuration."""
from __future__ import annotations

import pytest

from stickduels.config import EngineConfig, ServerSettings
from stickduels.engine import MatchmakingEngine
from stickduels.models import PlayerMode
from stickduels.protocol import ProtocolError, decode_message


def test_ping_replies_pong_without_registering(engine, dispatch, channels):
    (client,) = channels(1)
    dispatch(client, "PING")
    assert client.sent == [{"type": "PONG"}]
    assert engine.registry.lookup(client) is None


def test_unknown_tags_are_ignored(engine, dispatch, channels, caplog):
    (client,) = channels(1)
    with caplog.at_level("INFO", logger="stickduels.engine"):
        dispatch(client, "TELEPORT")
        dispatch(client, "ping")
        dispatch(client, "status")
    assert client.sent == []
    assert "Unknown message type: TELEPORT" in caplog.text


def test_status_counts_match_tables(engine, dispatch, channels, scheduler):
    clients = channels(6)
    dispatch(clients[0], "JOIN_QUEUE", {"playerName": "A"})
    dispatch(clients[1], "JOIN_QUEUE", {"playerName": "B"})
    dispatch(clients[2], "JOIN_QUEUE", {"playerName": "C"})
    dispatch(clients[3], "FIND_PARTNER", {"playerName": "D"})
    dispatch(clients[4], "FIND_PARTNER", {"playerName": "E"})
    dispatch(clients[5], "FIND_PARTNER", {"playerName": "F"})
    status = engine.status()
    assert status == {
        "status": "online",
        "duels": {"queueLength": 1, "activeMatches": 1, "finishedMatches": 0},
        "coop": {"queueLength": 1, "activeRooms": 1},
        "connectedPlayers": 6,
    }
    assert status["duels"]["queueLength"] == len(engine.queues[PlayerMode.DUEL])
    assert status["duels"]["activeMatches"] == len(engine.duels.matches)
    assert status["coop"]["activeRooms"] == len(engine.coop.rooms)

    dispatch(clients[0], "GET_STATUS")
    assert clients[0].last("STATUS")["payload"] == status


def test_leave_queue_removes_waiting_player(engine, dispatch, channels):
    first, second = channels(2)
    dispatch(first, "JOIN_QUEUE", {"playerName": "A"})
    dispatch(first, "LEAVE_QUEUE")
    assert len(engine.queues[PlayerMode.DUEL]) == 0
    assert engine.registry.lookup(first).mode is PlayerMode.NONE
    dispatch(second, "JOIN_QUEUE", {"playerName": "B"})
    assert second.of_type("MATCH_FOUND") == []


def test_cancel_search_clears_both_queues_and_acknowledges(engine, dispatch, channels):
    first, second = channels(2)
    dispatch(first, "FIND_PARTNER")
    dispatch(first, "CANCEL_SEARCH")
    dispatch(second, "CANCEL_SEARCH")
    assert first.types() == ["SEARCHING", "SEARCH_CANCELLED"]
    assert second.types() == ["SEARCH_CANCELLED"]
    assert len(engine.queues[PlayerMode.COOP]) == 0


def test_switching_queues_moves_the_player(engine, dispatch, channels):
    (client,) = channels(1)
    dispatch(client, "JOIN_QUEUE")
    dispatch(client, "FIND_PARTNER")
    assert len(engine.queues[PlayerMode.DUEL]) == 0
    assert len(engine.queues[PlayerMode.COOP]) == 1
    assert engine.registry.lookup(client).mode is PlayerMode.COOP


def test_rejoining_same_queue_keeps_position(engine, dispatch, channels):
    first, second, third = channels(3)
    dispatch(first, "JOIN_QUEUE", {"playerName": "First"})
    dispatch(first, "JOIN_QUEUE", {"playerName": "First"})
    assert len(engine.queues[PlayerMode.DUEL]) == 1
    dispatch(second, "JOIN_QUEUE", {"playerName": "Second"})
    assert first.last("MATCH_FOUND")["payload"]["opponent"]["name"] == "Second"
    dispatch(third, "JOIN_QUEUE", {"playerName": "Third"})
    assert third.of_type("MATCH_FOUND") == []


def test_disconnect_while_queued_removes_player(engine, dispatch, channels):
    first, second = channels(2)
    dispatch(first, "JOIN_QUEUE")
    engine.handle_disconnect(first)
    assert len(engine.queues[PlayerMode.DUEL]) == 0
    assert engine.registry.lookup(first) is None
    dispatch(second, "JOIN_QUEUE")
    assert second.of_type("MATCH_FOUND") == []
    engine.handle_disconnect(first)


def test_join_defaults_name_and_rating(engine, dispatch, channels):
    (client,) = channels(1)
    dispatch(client, "JOIN_QUEUE", {"playerId": "x", "rating": "high"})
    player = engine.registry.lookup(client)
    assert player.display_name == "Anonymous"
    assert player.rating == 1000
    assert player.player_id == "x"


@pytest.mark.parametrize("rating", [float("inf"), float("-inf"), float("nan")])
def test_join_with_non_finite_rating_uses_default(engine, dispatch, channels, rating):
    (client,) = channels(1)
    dispatch(client, "JOIN_QUEUE", {"playerName": "Edge", "rating": rating})
    assert engine.registry.lookup(client).rating == 1000
    assert len(engine.queues[PlayerMode.DUEL]) == 1


def test_stale_countdown_timer_is_harmless(engine, dispatch, channels, scheduler):
    first, second = channels(2)
    dispatch(first, "JOIN_QUEUE")
    dispatch(second, "JOIN_QUEUE")
    (match_id,) = engine.duels.matches
    engine.duels.matches.clear()
    scheduler.advance(5.0)
    assert first.of_type("COUNTDOWN") == []
    engine.duels._tick(match_id)
    engine.duels._begin(match_id)
    engine.duels._purge(match_id)


def test_decode_message_accepts_objects():
    message = decode_message('{"type": "JOIN_QUEUE", "payload": {"playerId": "p1"}}')
    assert message.type == "JOIN_QUEUE"
    assert message.payload == {"playerId": "p1"}
    assert decode_message('{"type": "PING", "payload": [1, 2]}').payload == {}
    assert decode_message(b'{"type": "PING"}').payload == {}


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"payload": {}}', '{"type": 7}', None])
def test_decode_message_rejects_noise(raw):
    with pytest.raises(ProtocolError):
        decode_message(raw)


def test_config_validation():
    EngineConfig().validate()
    with pytest.raises(ValueError):
        EngineConfig(countdown_interval=0).validate()
    with pytest.raises(ValueError):
        EngineConfig(k_factor=0).validate()
    with pytest.raises(ValueError):
        MatchmakingEngine(EngineConfig(forfeit_delay=-1))


def test_config_from_env():
    config = EngineConfig.from_env(
        {"STICKDUELS_COUNTDOWN_START": "5", "STICKDUELS_FINISHED_MATCH_TTL": "10", "STICKDUELS_K_FACTOR": "24"}
    )
    assert config.countdown_start == 5
    assert config.finished_match_ttl == 10.0
    assert config.k_factor == 24
    assert config.countdown_interval == 1.0

    settings = ServerSettings.from_env({"PORT": "9000", "LOG_LEVEL": "debug"})
    assert settings.port == 9000
    assert settings.log_level == "DEBUG"
    assert ServerSettings.from_env({}).port == 8080
    with pytest.raises(ValueError):
        ServerSettings.from_env({"PORT": "0"})
