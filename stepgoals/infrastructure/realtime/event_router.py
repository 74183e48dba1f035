from __future__ import annotations

from collections import defaultdict
from typing import Any, Awaitable, Callable, DefaultDict, Iterable

from stepgoals.core.logging import log
from stepgoals.infrastructure.realtime.websocket_service import WebSocketService
from stepgoals.schemas.realtime import WebSocketEnvelope

Handler = Callable[[dict[str, Any]], Awaitable[None]]

GOALS = "goals"
SHARING = "sharing"


def topic_for(event_type: str) -> str | None:
    if event_type.startswith("goal_"):
        return GOALS
    if event_type.startswith(("step_", "steps_", "friend_")):
        return SHARING
    return None


class RealtimeEventRouter:
    """Routes decoded push messages to handlers by event-type prefix.

    Messages without an event type are dropped, unknown prefixes are
    ignored, and a failing handler never stops the others.

    The goal stores subscribe to ``GOALS``. ``SHARING`` carries step and
    friend pushes for consumers outside this package; register a handler
    for it (or pass ``sharing_handlers`` to ``di.create_realtime``) to
    receive them, otherwise they are dropped.
    """

    def __init__(self, handlers: Iterable[tuple[str, Handler]] | None = None) -> None:
        self._handlers: DefaultDict[str, list[Handler]] = defaultdict(list)
        for topic, handler in handlers or []:
            self.register(topic, handler)

    def register(self, topic: str, handler: Handler) -> None:
        self._handlers[topic].append(handler)

    def unregister(self, topic: str, handler: Handler) -> None:
        if handler in self._handlers.get(topic, []):
            self._handlers[topic].remove(handler)

    def attach(self, service: WebSocketService) -> None:
        service.add_listener(self.publish)

    def detach(self, service: WebSocketService) -> None:
        service.remove_listener(self.publish)

    async def publish(self, message: dict[str, Any]) -> None:
        envelope = WebSocketEnvelope.model_validate(message)
        if envelope.type is None:
            log.debug("realtime_message_dropped", reason="missing_event_type")
            return

        topic = topic_for(envelope.type)
        if topic is None:
            log.debug("realtime_message_ignored", event_type=envelope.type)
            return

        flat = envelope.flatten()
        for handler in list(self._handlers.get(topic, [])):
            try:
                await handler(flat)
            except Exception:  # noqa: BLE001
                log.exception("realtime_handler_failed", event_type=envelope.type, topic=topic)
