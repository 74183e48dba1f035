from __future__ import annotations

import asyncio
import contextlib
import json
from typing import Any, Awaitable, Callable, Optional, Protocol
from urllib.parse import quote

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from stepgoals.core.config import settings
from stepgoals.core.errors import RealtimeError
from stepgoals.core.logging import log

TokenProvider = Callable[[], Awaitable[Optional[str]]]
MessageListener = Callable[[dict[str, Any]], Awaitable[None]]


class Connection(Protocol):
    def __aiter__(self): ...  # pragma: no cover - protocol

    async def send(self, message: str) -> None: ...  # pragma: no cover - protocol

    async def close(self) -> None: ...  # pragma: no cover - protocol


Connector = Callable[[str], Awaitable[Connection]]


async def _default_connector(url: str) -> Connection:
    return await ws_connect(url)


def build_websocket_url(base_url: str, token: str) -> str:
    """``http(s)://host/api`` -> ``ws(s)://host/ws?token=...``."""
    if base_url.startswith("https://"):
        url = "wss://" + base_url[len("https://"):]
    elif base_url.startswith("http://"):
        url = "ws://" + base_url[len("http://"):]
    else:
        url = "ws://" + base_url
    url = url.rstrip("/")
    if url.endswith("/api"):
        url = url[: -len("/api")]
    return f"{url}/ws?token={quote(token, safe='')}"


class WebSocketService:
    """Live push channel.

    Decoded messages are fanned out to listeners. An unexpected close
    triggers reconnection with exponential backoff; ``disconnect`` never
    reconnects.
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        base_url: str | None = None,
        connector: Connector | None = None,
        max_reconnect_attempts: int | None = None,
        base_reconnect_delay: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._token_provider = token_provider
        self._base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self._connector = connector or _default_connector
        self._max_attempts = (
            settings.WS_MAX_RECONNECT_ATTEMPTS if max_reconnect_attempts is None else max_reconnect_attempts
        )
        self._base_delay = settings.WS_BASE_RECONNECT_DELAY_SECONDS if base_reconnect_delay is None else base_reconnect_delay
        self._sleep = sleep

        self._listeners: list[MessageListener] = []
        self._connection: Connection | None = None
        self._reader: asyncio.Task | None = None
        self._connected = False
        self._intentional_disconnect = False
        self.last_error: RealtimeError | None = None

    @property
    def is_connected(self) -> bool:
        return self._connected

    def add_listener(self, listener: MessageListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: MessageListener) -> None:
        with contextlib.suppress(ValueError):
            self._listeners.remove(listener)

    async def connect(self) -> None:
        if self._connected:
            return
        if self._reader is not None and not self._reader.done():
            # the reader is between attempts and owns reconnection
            log.debug("realtime_connect_skipped", reason="reconnecting")
            return
        self._intentional_disconnect = False
        self._connection = await self._open()
        self._connected = True
        self.last_error = None
        self._reader = asyncio.create_task(self._run())
        log.info("realtime_connected")

    async def disconnect(self) -> None:
        self._intentional_disconnect = True
        self._connected = False
        connection, self._connection = self._connection, None
        if connection is not None:
            await connection.close()
        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader
        log.info("realtime_disconnected")

    async def wait_closed(self) -> None:
        """Block until the reader stops (closed for good or reconnection gave up)."""
        if self._reader is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader

    async def send(self, message: dict[str, Any]) -> None:
        if not self._connected or self._connection is None:
            raise RealtimeError("WebSocket is not connected")
        try:
            await self._connection.send(json.dumps(message))
        except (TypeError, ValueError) as exc:
            raise RealtimeError(f"Failed to encode message: {exc}") from exc
        except (ConnectionClosed, OSError) as exc:
            raise RealtimeError(f"Failed to send message: {exc}") from exc

    async def _open(self) -> Connection:
        token = await self._token_provider()
        if not token:
            raise RealtimeError("No authentication token available", code="missing_token")
        url = build_websocket_url(self._base_url, token)
        try:
            return await self._connector(url)
        except (OSError, WebSocketException, asyncio.TimeoutError) as exc:
            raise RealtimeError(f"Failed to connect: {exc}") from exc

    async def _run(self) -> None:
        while self._connection is not None:
            await self._pump(self._connection)
            self._connected = False
            if self._intentional_disconnect:
                return
            log.warning("realtime_connection_lost")
            self._connection = await self._reconnect()
            if self._connection is not None:
                self._connected = True

    async def _pump(self, connection: Connection) -> None:
        try:
            async for raw in connection:
                message = self._decode(raw)
                if message is not None:
                    await self._dispatch(message)
        except (ConnectionClosed, OSError) as exc:
            log.warning("realtime_connection_error", error=str(exc))

    @staticmethod
    def _decode(raw: Any) -> dict[str, Any] | None:
        if isinstance(raw, dict):
            return raw
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8", errors="replace")
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            log.warning("realtime_malformed_message", preview=str(raw)[:120])
            return None
        if not isinstance(message, dict):
            log.warning("realtime_malformed_message", preview=str(raw)[:120])
            return None
        return message

    async def _dispatch(self, message: dict[str, Any]) -> None:
        for listener in list(self._listeners):
            try:
                await listener(message)
            except Exception:  # noqa: BLE001
                log.exception("realtime_listener_failed", event_type=message.get("eventType"))

    async def _reconnect(self) -> Connection | None:
        for attempt in range(1, self._max_attempts + 1):
            delay = self._base_delay * (2 ** (attempt - 1))
            log.info("realtime_reconnect_scheduled", attempt=attempt, delay_seconds=delay)
            await self._sleep(delay)
            if self._intentional_disconnect:
                return None
            try:
                connection = await self._open()
            except RealtimeError as exc:
                if exc.code == "missing_token":
                    log.warning("realtime_reconnect_aborted", reason="missing_token")
                    self.last_error = exc
                    return None
                log.warning("realtime_reconnect_failed", attempt=attempt, error=exc.message)
                continue
            log.info("realtime_reconnected", attempt=attempt)
            return connection

        self.last_error = RealtimeError(f"Max reconnection attempts ({self._max_attempts}) exceeded")
        log.error("realtime_reconnect_exhausted", attempts=self._max_attempts)
        return None
