from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from stepgoals.domain.entities.group_goal import GroupGoal
from stepgoals.domain.interfaces.goal_repository import GoalRepository


@dataclass
class CreateGoalRequest:
    name: str
    target_steps: int
    start_date: datetime
    end_date: datetime
    description: Optional[str] = None


class CreateGoal:
    def __init__(self, goal_repo: GoalRepository) -> None:
        self._goal_repo = goal_repo

    async def execute(self, request: CreateGoalRequest) -> GroupGoal:
        return await self._goal_repo.create(
            name=request.name,
            description=request.description,
            target_steps=request.target_steps,
            start_date=request.start_date,
            end_date=request.end_date,
        )


@dataclass
class UpdateGoalRequest:
    goal_id: str
    name: Optional[str] = None
    description: Optional[str] = None
    target_steps: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class UpdateGoal:
    def __init__(self, goal_repo: GoalRepository) -> None:
        self._goal_repo = goal_repo

    async def execute(self, request: UpdateGoalRequest) -> GroupGoal:
        return await self._goal_repo.update(
            request.goal_id,
            name=request.name,
            description=request.description,
            target_steps=request.target_steps,
            start_date=request.start_date,
            end_date=request.end_date,
        )
