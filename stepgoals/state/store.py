from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Generic, TypeVar

from stepgoals.core.errors import AppError, UnexpectedError, user_message
from stepgoals.core.logging import log

E = TypeVar("E")
S = TypeVar("S")

Listener = Callable[[Any], None]


class Store(Generic[E, S]):
    """Event -> state reducer holding one immutable state snapshot.

    Events are handled one at a time. Any error a handler lets through is
    turned into the store's error state via ``error_state``. Once closed,
    late results from in-flight requests are dropped instead of emitted.
    """

    def __init__(self, initial: S, *, error_state: Callable[[str], S]) -> None:
        self._state = initial
        self._error_state = error_state
        self._listeners: list[Listener] = []
        self._handlers: dict[type, Callable[[Any], Awaitable[None]]] = {}
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def state(self) -> S:
        return self._state

    @property
    def is_closed(self) -> bool:
        return self._closed

    def on(self, event_type: type, handler: Callable[[Any], Awaitable[None]]) -> None:
        self._handlers[event_type] = handler

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def dispatch(self, event: E) -> None:
        if self._closed:
            return
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"{type(self).__name__} has no handler for {type(event).__name__}")
        async with self._lock:
            try:
                await handler(event)
            except AppError as exc:
                self.emit(self._error_state(self.error_message(exc)))
            except Exception as exc:  # noqa: BLE001
                log.exception("store_unexpected_error", store=type(self).__name__, event_type=type(event).__name__)
                self.emit(self._error_state(user_message(UnexpectedError(str(exc) or type(exc).__name__))))

    def emit(self, state: S) -> None:
        if self._closed:
            log.debug("store_emit_after_close", store=type(self).__name__, state=type(state).__name__)
            return
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def close(self) -> None:
        self._closed = True
        self._listeners.clear()

    @staticmethod
    def error_message(exc: AppError) -> str:
        log.info("store_error", error=type(exc).__name__, code=exc.code)
        return user_message(exc)
