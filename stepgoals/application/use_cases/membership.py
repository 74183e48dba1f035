from __future__ import annotations

from stepgoals.core.logging import log
from stepgoals.domain.entities.goal_membership import GoalMembership
from stepgoals.domain.interfaces.goal_repository import GoalRepository


class InviteUser:
    def __init__(self, goal_repo: GoalRepository) -> None:
        self._goal_repo = goal_repo

    async def execute(self, *, goal_id: str, user_id: str) -> GoalMembership:
        membership = await self._goal_repo.invite_user(goal_id, user_id)
        log.info("goal_invite_sent", goal_id=goal_id, user_id=user_id)
        return membership


class RespondToInvite:
    def __init__(self, goal_repo: GoalRepository) -> None:
        self._goal_repo = goal_repo

    async def execute(self, *, goal_id: str, accept: bool) -> None:
        if accept:
            await self._goal_repo.accept_invite(goal_id)
        else:
            await self._goal_repo.reject_invite(goal_id)


class JoinGoal:
    def __init__(self, goal_repo: GoalRepository) -> None:
        self._goal_repo = goal_repo

    async def execute(self, *, goal_id: str) -> GoalMembership:
        return await self._goal_repo.join(goal_id)


class LeaveGoal:
    def __init__(self, goal_repo: GoalRepository) -> None:
        self._goal_repo = goal_repo

    async def execute(self, *, goal_id: str) -> None:
        await self._goal_repo.leave(goal_id)
        log.info("goal_left", goal_id=goal_id)
