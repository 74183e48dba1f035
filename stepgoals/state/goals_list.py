from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from stepgoals.application.use_cases.get_goals import GetUserGoals
from stepgoals.application.use_cases.membership import JoinGoal
from stepgoals.core.errors import AppError
from stepgoals.core.logging import log
from stepgoals.domain.entities.group_goal import GroupGoal
from stepgoals.state.store import Store

# pushes that change which goals the user has, or their status
_REFRESH_EVENTS = frozenset(
    {
        "goal_completed",
        "goal_updated",
        "goal_invite_received",
        "goal_invitation_received",
        "goal_member_joined",
        "goal_member_left",
    }
)


@dataclass(frozen=True)
class GoalsListLoadRequested:
    pass


@dataclass(frozen=True)
class GoalsListRefreshRequested:
    pass


@dataclass(frozen=True)
class GoalsListJoinRequested:
    goal_id: str


GoalsListEvent = Union[GoalsListLoadRequested, GoalsListRefreshRequested, GoalsListJoinRequested]


@dataclass(frozen=True)
class GoalsListInitial:
    pass


@dataclass(frozen=True)
class GoalsListLoading:
    pass


@dataclass(frozen=True)
class GoalsListLoaded:
    goals: tuple[GroupGoal, ...] = ()

    @property
    def active(self) -> tuple[GroupGoal, ...]:
        return tuple(g for g in self.goals if g.is_active)

    @property
    def completed(self) -> tuple[GroupGoal, ...]:
        return tuple(g for g in self.goals if g.is_completed)

    @property
    def is_empty(self) -> bool:
        return not self.goals


@dataclass(frozen=True)
class GoalsListError:
    message: str


GoalsListState = Union[GoalsListInitial, GoalsListLoading, GoalsListLoaded, GoalsListError]


class GoalsListStore(Store[GoalsListEvent, GoalsListState]):
    """The signed-in user's goals."""

    def __init__(self, *, get_user_goals: GetUserGoals, join_goal: JoinGoal) -> None:
        super().__init__(GoalsListInitial(), error_state=lambda message: GoalsListError(message=message))
        self._get_user_goals = get_user_goals
        self._join_goal = join_goal

        self.on(GoalsListLoadRequested, self._on_load)
        self.on(GoalsListRefreshRequested, self._on_refresh)
        self.on(GoalsListJoinRequested, self._on_join)

    async def handle_realtime(self, message: dict[str, Any]) -> None:
        event_type = message.get("eventType")
        if event_type in _REFRESH_EVENTS and not isinstance(self.state, GoalsListInitial):
            log.debug("goals_list_refresh_on_push", event_type=event_type)
            await self.dispatch(GoalsListRefreshRequested())

    async def _on_load(self, event: GoalsListLoadRequested) -> None:
        self.emit(GoalsListLoading())
        await self._fetch()

    async def _on_refresh(self, event: GoalsListRefreshRequested) -> None:
        # keep showing the current list while refreshing
        await self._fetch()

    async def _on_join(self, event: GoalsListJoinRequested) -> None:
        try:
            await self._join_goal.execute(goal_id=event.goal_id)
        except AppError as exc:
            self.emit(GoalsListError(message=self.error_message(exc)))
            return
        log.info("goal_joined", goal_id=event.goal_id)
        await self._fetch()

    async def _fetch(self) -> None:
        try:
            goals = await self._get_user_goals.execute()
        except AppError as exc:
            self.emit(GoalsListError(message=self.error_message(exc)))
            return
        self.emit(GoalsListLoaded(goals=tuple(goals)))
