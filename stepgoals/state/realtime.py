from __future__ import annotations

from stepgoals.domain.entities.goal_progress import GoalProgress
from stepgoals.domain.entities.realtime_goal_update import RealtimeGoalUpdate


def apply_realtime_update(progress: GoalProgress, update: RealtimeGoalUpdate) -> GoalProgress:
    """Substitute the totals carried by a ``goal_progress`` push.

    Absent fields keep their prior value. Arrival order is trusted as-is: an
    older update received later overwrites a newer one.
    """
    if not update.is_goal_progress or update.goal_id != progress.goal_id:
        return progress

    total_steps = update.current_progress
    if total_steps is not None and total_steps < 0:
        total_steps = None
    target_steps = update.target_steps
    if target_steps is not None and target_steps <= 0:
        target_steps = None

    return progress.with_totals(
        total_steps=total_steps,
        target_steps=target_steps,
        last_updated=update.timestamp,
    )
