from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Any, Optional, Union

from stepgoals.application.use_cases.get_goals import GetGoalDetails, GetGoalMembers, GetGoalProgress
from stepgoals.application.use_cases.membership import InviteUser, LeaveGoal
from stepgoals.core.errors import AppError
from stepgoals.core.logging import log
from stepgoals.domain.entities.goal_membership import GoalMembership
from stepgoals.domain.entities.goal_progress import GoalProgress
from stepgoals.domain.entities.group_goal import GroupGoal
from stepgoals.domain.entities.realtime_goal_update import RealtimeGoalUpdate
from stepgoals.infrastructure.mappers.goal_mapper import GoalMapper
from stepgoals.state.realtime import apply_realtime_update
from stepgoals.state.store import Store


# events


@dataclass(frozen=True)
class GoalDetailLoadRequested:
    goal_id: str


@dataclass(frozen=True)
class GoalDetailRefreshRequested:
    goal_id: str


@dataclass(frozen=True)
class GoalDetailInviteUserRequested:
    goal_id: str
    user_id: str


@dataclass(frozen=True)
class GoalDetailLeaveRequested:
    goal_id: str


@dataclass(frozen=True)
class GoalDetailRealtimeUpdateReceived:
    update: RealtimeGoalUpdate


GoalDetailEvent = Union[
    GoalDetailLoadRequested,
    GoalDetailRefreshRequested,
    GoalDetailInviteUserRequested,
    GoalDetailLeaveRequested,
    GoalDetailRealtimeUpdateReceived,
]


# states


@dataclass(frozen=True)
class GoalDetailInitial:
    pass


@dataclass(frozen=True)
class GoalDetailLoading:
    pass


@dataclass(frozen=True)
class GoalDetailLoaded:
    goal: GroupGoal
    progress: GoalProgress
    members: tuple[GoalMembership, ...] = ()

    @property
    def member_count(self) -> int:
        return len(self.members)

    @property
    def active_members(self) -> tuple[GoalMembership, ...]:
        return tuple(m for m in self.members if m.is_active)

    @property
    def is_completed(self) -> bool:
        return self.progress.is_completed

    @property
    def progress_label(self) -> str:
        return f"{self.progress.display_percent:.1f}%"


@dataclass(frozen=True)
class GoalDetailError:
    message: str


@dataclass(frozen=True)
class GoalDetailActionSuccess:
    message: str


GoalDetailState = Union[
    GoalDetailInitial,
    GoalDetailLoading,
    GoalDetailLoaded,
    GoalDetailError,
    GoalDetailActionSuccess,
]


class GoalDetailStore(Store[GoalDetailEvent, GoalDetailState]):
    """State of the goal currently on screen: details, progress and members."""

    def __init__(
        self,
        *,
        get_goal_details: GetGoalDetails,
        get_goal_progress: GetGoalProgress,
        get_goal_members: GetGoalMembers,
        invite_user: InviteUser,
        leave_goal: LeaveGoal,
    ) -> None:
        super().__init__(GoalDetailInitial(), error_state=lambda message: GoalDetailError(message=message))
        self._get_goal_details = get_goal_details
        self._get_goal_progress = get_goal_progress
        self._get_goal_members = get_goal_members
        self._invite_user = invite_user
        self._leave_goal = leave_goal
        self._current_goal_id: Optional[str] = None
        # last Loaded snapshot, so a realtime push can be merged after an ActionSuccess
        self._loaded: Optional[GoalDetailLoaded] = None

        self.on(GoalDetailLoadRequested, self._on_load)
        self.on(GoalDetailRefreshRequested, self._on_refresh)
        self.on(GoalDetailInviteUserRequested, self._on_invite)
        self.on(GoalDetailLeaveRequested, self._on_leave)
        self.on(GoalDetailRealtimeUpdateReceived, self._on_realtime_update)

    @property
    def current_goal_id(self) -> Optional[str]:
        return self._current_goal_id

    async def handle_realtime(self, message: dict[str, Any]) -> None:
        """Router handler for the goals topic."""
        await self.dispatch(GoalDetailRealtimeUpdateReceived(update=GoalMapper.realtime_to_domain(message)))

    async def _on_load(self, event: GoalDetailLoadRequested) -> None:
        self._current_goal_id = event.goal_id
        self._loaded = None
        self.emit(GoalDetailLoading())
        await self._fetch(event.goal_id)

    async def _on_refresh(self, event: GoalDetailRefreshRequested) -> None:
        self._current_goal_id = event.goal_id
        self.emit(GoalDetailLoading())
        await self._fetch(event.goal_id)

    async def _on_invite(self, event: GoalDetailInviteUserRequested) -> None:
        self.emit(GoalDetailLoading())
        try:
            await self._invite_user.execute(goal_id=event.goal_id, user_id=event.user_id)
        except AppError as exc:
            self.emit(GoalDetailError(message=self.error_message(exc)))
            return
        self.emit(GoalDetailActionSuccess(message="User invited successfully"))
        await self._fetch(event.goal_id)

    async def _on_leave(self, event: GoalDetailLeaveRequested) -> None:
        self.emit(GoalDetailLoading())
        try:
            await self._leave_goal.execute(goal_id=event.goal_id)
        except AppError as exc:
            self.emit(GoalDetailError(message=self.error_message(exc)))
            return
        if self._current_goal_id == event.goal_id:
            self._current_goal_id = None
            self._loaded = None
        self.emit(GoalDetailActionSuccess(message="You have left the goal"))

    async def _on_realtime_update(self, event: GoalDetailRealtimeUpdateReceived) -> None:
        update = event.update
        if self._current_goal_id is None or update.goal_id != self._current_goal_id:
            return
        if not update.event_type.startswith("goal_"):
            log.debug("goal_push_ignored", goal_id=update.goal_id, event_type=update.event_type)
            return

        if update.is_goal_progress:
            if self._loaded is None:
                return
            merged = replace(self._loaded, progress=apply_realtime_update(self._loaded.progress, update))
            log.debug(
                "goal_progress_merged",
                goal_id=update.goal_id,
                total_steps=merged.progress.total_steps,
                target_steps=merged.progress.target_steps,
            )
            self._loaded = merged
            self.emit(merged)
            return

        # membership/goal changes carry no snapshot data; refetch
        log.debug("goal_refresh_on_push", goal_id=update.goal_id, event_type=update.event_type)
        await self._fetch(update.goal_id)

    async def _fetch(self, goal_id: str) -> None:
        results = await asyncio.gather(
            self._get_goal_details.execute(goal_id=goal_id),
            self._get_goal_progress.execute(goal_id=goal_id),
            self._get_goal_members.execute(goal_id=goal_id),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, AppError):
                self.emit(GoalDetailError(message=self.error_message(result)))
                return
            if isinstance(result, BaseException):
                raise result
        goal, progress, members = results
        self._loaded = GoalDetailLoaded(goal=goal, progress=progress, members=tuple(members))
        self.emit(self._loaded)
