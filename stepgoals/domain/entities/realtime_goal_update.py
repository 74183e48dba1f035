from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from stepgoals.domain.value_objects.progress import clamp_percent, percent_complete

GOAL_PROGRESS = "goal_progress"
GOAL_MEMBER_JOINED = "goal_member_joined"

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


@dataclass(frozen=True)
class RealtimeGoalUpdate:
    """A pushed goal notification. Only ``event_type``, ``goal_id`` and ``timestamp`` are always set."""

    event_type: str
    goal_id: str
    timestamp: datetime
    user_id: Optional[str] = None
    current_progress: Optional[int] = None
    target_steps: Optional[int] = None

    @classmethod
    def empty(cls) -> "RealtimeGoalUpdate":
        return cls(event_type="", goal_id="", timestamp=_EPOCH)

    @property
    def is_empty(self) -> bool:
        return not self.event_type and not self.goal_id

    @property
    def is_goal_progress(self) -> bool:
        return self.event_type == GOAL_PROGRESS

    @property
    def is_member_joined(self) -> bool:
        # older backends emit the short form
        return self.event_type in (GOAL_MEMBER_JOINED, "member_joined")

    @property
    def has_progress(self) -> bool:
        return self.current_progress is not None

    @property
    def has_target(self) -> bool:
        return self.target_steps is not None

    @property
    def progress_percentage(self) -> Optional[float]:
        if self.current_progress is None or self.target_steps is None:
            return None
        return clamp_percent(percent_complete(self.current_progress, self.target_steps))
