"""Run the game server with uvicorn."""

from __future__ import annotations

import logging

import uvicorn

from .config import EngineConfig, ServerSettings
from .server import create_app


def main() -> None:
    settings = ServerSettings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    logger = logging.getLogger("stickduels")
    app = create_app(EngineConfig.from_env())
    logger.info("Game server starting on port %d", settings.port)
    logger.info("Status: http://localhost:%d/status", settings.port)
    logger.info("WebSocket: ws://localhost:%d", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
