from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import Field, field_validator, model_validator

from stepgoals.domain.value_objects.timestamps import as_utc
from stepgoals.schemas.goals import WireModel

KNOWN_EVENT_TYPES = frozenset(
    {
        "steps_updated",
        "goal_progress",
        "friend_request_received",
        "friend_request_accepted",
        "friend_steps_updated",
        "goal_invite_received",
        "goal_member_joined",
        "goal_completed",
        "connected",
        "disconnected",
        "error",
    }
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _lenient_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _lenient_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, str):
        try:
            return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return _now()
    return _now()


def _lenient_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


class RealtimeGoalUpdatePayload(WireModel):
    """Push payload decoder. Never rejects a message; missing fields fall back to defaults."""

    event_type: str = ""
    goal_id: str = ""
    user_id: str | None = None
    current_progress: int | None = None
    target_steps: int | None = None
    timestamp: datetime = Field(default_factory=_now)

    @field_validator("event_type", "goal_id", mode="before")
    @classmethod
    def coerce_str(cls, value: Any) -> str:
        return _lenient_str(value)

    @field_validator("user_id", mode="before")
    @classmethod
    def coerce_optional_str(cls, value: Any) -> str | None:
        return None if value is None else str(value)

    @field_validator("current_progress", "target_steps", mode="before")
    @classmethod
    def coerce_int(cls, value: Any) -> int | None:
        return _lenient_int(value)

    @field_validator("timestamp", mode="before")
    @classmethod
    def coerce_timestamp(cls, value: Any) -> datetime:
        return _lenient_timestamp(value)


class WebSocketEnvelope(WireModel):
    """A frame in either the flat ``{"eventType": ...}`` or the ``{"type": ..., "data": {...}}`` form."""

    type: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_now)
    extra_fields: dict[str, Any] = Field(default_factory=dict, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def split_frame(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return {}
        event_type = data.get("eventType", data.get("type"))
        return {
            "type": event_type,
            "data": data.get("data"),
            "timestamp": data.get("timestamp"),
            "extra_fields": {k: v for k, v in data.items() if k not in ("type", "eventType", "data", "timestamp")},
        }

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, value: Any) -> str | None:
        return None if value is None else str(value)

    @field_validator("data", mode="before")
    @classmethod
    def coerce_data(cls, value: Any) -> dict[str, Any]:
        return value if isinstance(value, dict) else {}

    @field_validator("timestamp", mode="before")
    @classmethod
    def coerce_timestamp(cls, value: Any) -> datetime:
        return _lenient_timestamp(value)

    @property
    def is_known(self) -> bool:
        return self.type in KNOWN_EVENT_TYPES

    @property
    def event_kind(self) -> str:
        return self.type if self.is_known else "unknown"

    def flatten(self) -> dict[str, Any]:
        """Single-level message; top-level fields win over ``data`` fields."""
        message = {**self.data, **self.extra_fields, "timestamp": self.timestamp.isoformat()}
        if self.type is not None:
            message["eventType"] = self.type
        return message
