"""FastAPI application exposing the matchmaking engine over websockets."""
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.websockets import WebSocketState

from .config import EngineConfig
from .engine import MatchmakingEngine
from .protocol import Message, ProtocolError, decode_message
from .scheduler import Scheduler

logger = logging.getLogger(__name__)

GAME_NAME = "Stick Duels"
BANNER = f"{GAME_NAME} game server is running!"
HTTP_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"]
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class WebSocketChannel:
    """Adapts an accepted websocket to the engine's channel interface.

    Outbound messages go into an unbounded outbox drained by a writer task,
    so :meth:`send` never suspends the engine.  The first failed write marks
    the channel closed and later messages are dropped by the relay layer.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket
        self._outbox: asyncio.Queue[Message] = asyncio.Queue()
        self._writer: Optional[asyncio.Task[None]] = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return (
            not self._closed
            and self.websocket.application_state == WebSocketState.CONNECTED
            and self.websocket.client_state == WebSocketState.CONNECTED
        )

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.create_task(self._drain())

    def send(self, message: Message) -> None:
        if not self._closed:
            self._outbox.put_nowait(message)

    def mark_closed(self) -> None:
        self._closed = True

    async def close(self) -> None:
        self.mark_closed()
        if self._writer:
            self._writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._writer
            self._writer = None

    async def _drain(self) -> None:
        while True:
            message = await self._outbox.get()
            try:
                await self.websocket.send_json(message)
            except (RuntimeError, WebSocketDisconnect) as exc:
                logger.debug("Write failed, closing channel: %s", exc)
                self._closed = True
                return


async def _log_status_periodically(engine: MatchmakingEngine, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        status = engine.status()
        logger.info(
            "Status: %d connected | Duels queue %d, active %d | Co-op queue %d, rooms %d",
            status["connectedPlayers"],
            status["duels"]["queueLength"],
            status["duels"]["activeMatches"],
            status["coop"]["queueLength"],
            status["coop"]["activeRooms"],
        )


def create_app(config: Optional[EngineConfig] = None, scheduler: Optional[Scheduler] = None) -> FastAPI:
    """Create the application with a fresh engine on ``app.state``."""

    config = config or EngineConfig()
    app = FastAPI(title=GAME_NAME)
    app.state.engine = MatchmakingEngine(config, scheduler)
    app.state.status_task = None

    @app.middleware("http")
    async def permissive_cors(request: Request, call_next) -> Response:
        if request.method == "OPTIONS":
            response: Response = Response(status_code=200)
        else:
            response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.on_event("startup")
    async def _start_status_log() -> None:
        if config.status_log_interval > 0:
            app.state.status_task = asyncio.create_task(
                _log_status_periodically(app.state.engine, config.status_log_interval)
            )

    @app.on_event("shutdown")
    async def _stop_status_log() -> None:
        task = app.state.status_task
        if task:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            app.state.status_task = None

    @app.api_route("/status", methods=HTTP_METHODS)
    async def status() -> JSONResponse:
        return JSONResponse(app.state.engine.status())

    @app.api_route("/{path:path}", methods=HTTP_METHODS)
    async def banner(path: str) -> PlainTextResponse:
        return PlainTextResponse(BANNER)

    async def websocket_endpoint(websocket: WebSocket) -> None:
        engine: MatchmakingEngine = app.state.engine
        await websocket.accept()
        channel = WebSocketChannel(websocket)
        channel.start()
        logger.info("New client connected")
        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    break
                raw = frame.get("text")
                if raw is None:
                    raw = frame.get("bytes")
                try:
                    message = decode_message(raw)
                except ProtocolError as exc:
                    logger.warning("Ignoring message: %s", exc)
                    continue
                try:
                    engine.handle_message(channel, message)
                except Exception:
                    logger.exception("Error handling %s message", message.type)
        finally:
            channel.mark_closed()
            engine.handle_disconnect(channel)
            await channel.close()

    app.add_api_websocket_route("/", websocket_endpoint)
    app.add_api_websocket_route("/ws", websocket_endpoint)
    return app


__all__ = ["BANNER", "WebSocketChannel", "create_app"]
