"""Configuration objects for the matchmaking engine and server runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

ENV_PREFIX = "STICKDUELS_"


@dataclass(frozen=True)
class EngineConfig:
    """Static configuration describing how duels and rooms are run.

    Attributes
    ----------
    countdown_start:
        Value the pre-match countdown starts from.  Each tick decrements it
        and the match begins once it reaches zero.
    countdown_interval:
        Seconds between two countdown ticks.
    finished_match_ttl:
        How long a finished match is retained so late status queries can
        still see it before it is purged.
    forfeit_delay:
        Seconds between an opponent disconnecting mid-match and the forfeit
        being settled.  Zero settles immediately.
    k_factor:
        Maximum rating swing of a single duel.
    default_rating:
        Rating assigned to duel players that do not report one.
    default_player_name:
        Display name used when a player joins without one.
    status_log_interval:
        Period of the server status summary written to the log.  Zero
        disables the summary.
    """

    countdown_start: int = 3
    countdown_interval: float = 1.0
    finished_match_ttl: float = 60.0
    forfeit_delay: float = 0.0
    k_factor: int = 32
    default_rating: int = 1000
    default_player_name: str = "Anonymous"
    status_log_interval: float = 30.0

    def validate(self) -> None:
        if self.countdown_start < 0:
            raise ValueError("countdown_start cannot be negative")
        if self.countdown_interval <= 0:
            raise ValueError("countdown_interval must be positive")
        if self.finished_match_ttl < 0 or self.forfeit_delay < 0:
            raise ValueError("Delays cannot be negative")
        if self.k_factor <= 0:
            raise ValueError("k_factor must be positive")
        if self.status_log_interval < 0:
            raise ValueError("status_log_interval cannot be negative")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """Build a config from ``STICKDUELS_*`` environment variables."""

        env = os.environ if environ is None else environ
        defaults = cls()
        config = cls(
            countdown_start=int(env.get(f"{ENV_PREFIX}COUNTDOWN_START", defaults.countdown_start)),
            countdown_interval=float(env.get(f"{ENV_PREFIX}COUNTDOWN_INTERVAL", defaults.countdown_interval)),
            finished_match_ttl=float(env.get(f"{ENV_PREFIX}FINISHED_MATCH_TTL", defaults.finished_match_ttl)),
            forfeit_delay=float(env.get(f"{ENV_PREFIX}FORFEIT_DELAY", defaults.forfeit_delay)),
            k_factor=int(env.get(f"{ENV_PREFIX}K_FACTOR", defaults.k_factor)),
            default_rating=int(env.get(f"{ENV_PREFIX}DEFAULT_RATING", defaults.default_rating)),
            default_player_name=env.get(f"{ENV_PREFIX}DEFAULT_PLAYER_NAME", defaults.default_player_name),
            status_log_interval=float(env.get(f"{ENV_PREFIX}STATUS_LOG_INTERVAL", defaults.status_log_interval)),
        )
        config.validate()
        return config


@dataclass(frozen=True)
class ServerSettings:
    """Process level settings for the websocket server."""

    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerSettings":
        env = os.environ if environ is None else environ
        port = int(env.get("PORT", cls.port))
        if not 0 < port < 65536:
            raise ValueError("PORT must be between 1 and 65535")
        return cls(
            host=env.get("HOST", cls.host),
            port=port,
            log_level=env.get("LOG_LEVEL", cls.log_level).upper(),
        )
