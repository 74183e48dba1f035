from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional

from stepgoals.domain.value_objects import progress as derive

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


@dataclass(frozen=True)
class MemberProgress:
    user_id: str
    username: str
    steps: int
    rank: int
    contribution_percentage: float = 0.0

    def __post_init__(self) -> None:
        if self.steps < 0:
            raise ValueError("steps must not be negative")
        if self.rank < 1:
            raise ValueError("rank must be at least 1")

    @property
    def is_top_contributor(self) -> bool:
        return self.rank == 1

    @property
    def is_top_three(self) -> bool:
        return self.rank <= 3

    @property
    def has_contributed(self) -> bool:
        return self.steps > 0


@dataclass(frozen=True)
class GoalProgress:
    """Group total against the target plus the per-member breakdown.

    ``percent_complete`` is derived and never clamped; use ``display_percent``
    for anything rendered.
    """

    goal_id: str
    total_steps: int
    target_steps: int
    last_updated: datetime
    member_progress: tuple[MemberProgress, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "member_progress", tuple(self.member_progress))
        if self.is_empty:
            return
        if self.total_steps < 0:
            raise ValueError("total_steps must not be negative")
        if self.target_steps <= 0:
            raise ValueError("target_steps must be positive")
        for previous, current in zip(self.member_progress, self.member_progress[1:]):
            if current.rank <= previous.rank or current.steps > previous.steps:
                raise ValueError("member_progress must be ordered by rank with steps descending")

    @classmethod
    def empty(cls) -> "GoalProgress":
        return cls(goal_id="", total_steps=0, target_steps=0, last_updated=_EPOCH)

    @property
    def is_empty(self) -> bool:
        return not self.goal_id

    @property
    def percent_complete(self) -> float:
        return derive.percent_complete(self.total_steps, self.target_steps)

    @property
    def display_percent(self) -> float:
        return derive.clamp_percent(self.percent_complete)

    @property
    def progress_ratio(self) -> float:
        return self.display_percent / 100

    @property
    def steps_remaining(self) -> int:
        return derive.steps_remaining(self.total_steps, self.target_steps)

    @property
    def is_completed(self) -> bool:
        return derive.is_completed(self.total_steps, self.target_steps)

    @property
    def has_progress(self) -> bool:
        return self.total_steps > 0

    def top_contributors(self, n: int = 3) -> tuple[MemberProgress, ...]:
        return self.member_progress[:n]

    def member(self, user_id: str) -> Optional[MemberProgress]:
        return next((m for m in self.member_progress if m.user_id == user_id), None)

    def with_totals(
        self,
        *,
        total_steps: int | None = None,
        target_steps: int | None = None,
        last_updated: datetime | None = None,
    ) -> "GoalProgress":
        """Copy with whichever totals were supplied; ``None`` keeps the prior value."""
        return replace(
            self,
            total_steps=self.total_steps if total_steps is None else total_steps,
            target_steps=self.target_steps if target_steps is None else target_steps,
            last_updated=self.last_updated if last_updated is None else last_updated,
        )


def build_member_progress(entries: list[tuple[str, str, int]]) -> tuple[MemberProgress, ...]:
    """Rank ``(user_id, username, steps)`` triples into ``MemberProgress`` rows."""
    names = {user_id: username for user_id, username, _ in entries}
    ranked = derive.rank_members((user_id, steps) for user_id, _, steps in entries)
    return tuple(
        MemberProgress(
            user_id=row.user_id,
            username=names[row.user_id],
            steps=row.steps,
            rank=row.rank,
            contribution_percentage=row.contribution_percentage,
        )
        for row in ranked
    )
