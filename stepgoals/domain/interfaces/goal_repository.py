from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from stepgoals.domain.entities.goal_membership import GoalMembership
from stepgoals.domain.entities.goal_progress import GoalProgress
from stepgoals.domain.entities.group_goal import GroupGoal


class GoalRepository(ABC):
    @abstractmethod
    async def list_user_goals(self) -> list[GroupGoal]:
        raise NotImplementedError

    @abstractmethod
    async def get(self, goal_id: str) -> GroupGoal:
        raise NotImplementedError

    @abstractmethod
    async def create(
        self,
        *,
        name: str,
        target_steps: int,
        start_date: datetime,
        end_date: datetime,
        description: Optional[str] = None,
    ) -> GroupGoal:
        raise NotImplementedError

    @abstractmethod
    async def update(
        self,
        goal_id: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        target_steps: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> GroupGoal:
        raise NotImplementedError

    @abstractmethod
    async def get_members(self, goal_id: str) -> list[GoalMembership]:
        raise NotImplementedError

    @abstractmethod
    async def get_progress(self, goal_id: str) -> GoalProgress:
        raise NotImplementedError

    @abstractmethod
    async def invite_user(self, goal_id: str, user_id: str) -> GoalMembership:
        raise NotImplementedError

    @abstractmethod
    async def accept_invite(self, goal_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def reject_invite(self, goal_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def join(self, goal_id: str) -> GoalMembership:
        raise NotImplementedError

    @abstractmethod
    async def leave(self, goal_id: str) -> None:
        raise NotImplementedError
