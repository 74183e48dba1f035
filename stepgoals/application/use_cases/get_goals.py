from __future__ import annotations

from stepgoals.domain.entities.goal_membership import GoalMembership
from stepgoals.domain.entities.goal_progress import GoalProgress
from stepgoals.domain.entities.group_goal import GroupGoal
from stepgoals.domain.interfaces.goal_repository import GoalRepository


class GetUserGoals:
    def __init__(self, goal_repo: GoalRepository) -> None:
        self._goal_repo = goal_repo

    async def execute(self) -> list[GroupGoal]:
        return await self._goal_repo.list_user_goals()


class GetGoalDetails:
    def __init__(self, goal_repo: GoalRepository) -> None:
        self._goal_repo = goal_repo

    async def execute(self, *, goal_id: str) -> GroupGoal:
        return await self._goal_repo.get(goal_id)


class GetGoalProgress:
    def __init__(self, goal_repo: GoalRepository) -> None:
        self._goal_repo = goal_repo

    async def execute(self, *, goal_id: str) -> GoalProgress:
        return await self._goal_repo.get_progress(goal_id)


class GetGoalMembers:
    """Members of a goal; ``active_only`` drops pending invites and members who left."""

    def __init__(self, goal_repo: GoalRepository) -> None:
        self._goal_repo = goal_repo

    async def execute(self, *, goal_id: str, active_only: bool = False) -> list[GoalMembership]:
        members = await self._goal_repo.get_members(goal_id)
        if active_only:
            return [m for m in members if m.is_active]
        return members
