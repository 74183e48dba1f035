from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from stepgoals.domain.value_objects.timestamps import as_utc, utc_now

GOAL_STATUSES = ("active", "completed", "cancelled")

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


@dataclass(frozen=True)
class GroupGoal:
    """A named, time-boxed collective step target."""

    id: str
    name: str
    target_steps: int
    start_date: datetime
    end_date: datetime
    creator_id: str
    status: str
    created_at: datetime
    description: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("start_date", "end_date", "created_at"):
            object.__setattr__(self, name, as_utc(getattr(self, name)))
        if self.is_empty:
            return
        if self.target_steps <= 0:
            raise ValueError("target_steps must be positive")
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        if self.status not in GOAL_STATUSES:
            raise ValueError(f"status must be one of {GOAL_STATUSES}, got '{self.status}'")

    @classmethod
    def empty(cls) -> "GroupGoal":
        return cls(
            id="",
            name="",
            target_steps=0,
            start_date=_EPOCH,
            end_date=_EPOCH,
            creator_id="",
            status="",
            created_at=_EPOCH,
        )

    @property
    def is_empty(self) -> bool:
        return not self.id

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"

    @property
    def has_description(self) -> bool:
        return bool(self.description)

    def days_remaining(self, now: datetime | None = None) -> int:
        now = as_utc(now) if now is not None else utc_now()
        if now >= self.end_date:
            return 0
        return (self.end_date - now).days
