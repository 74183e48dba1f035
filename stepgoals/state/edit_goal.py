from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from stepgoals.application.use_cases.create_goal import UpdateGoal, UpdateGoalRequest
from stepgoals.application.use_cases.get_goals import GetGoalDetails
from stepgoals.core.errors import AppError, ValidationError
from stepgoals.core.logging import log
from stepgoals.domain.entities.group_goal import GroupGoal
from stepgoals.state.create_goal import GoalForm
from stepgoals.state.store import Store


@dataclass(frozen=True)
class EditGoalLoadRequested:
    goal_id: str


@dataclass(frozen=True)
class EditGoalSubmitted:
    goal_id: str
    form: GoalForm


@dataclass(frozen=True)
class EditGoalReset:
    pass


EditGoalEvent = Union[EditGoalLoadRequested, EditGoalSubmitted, EditGoalReset]


@dataclass(frozen=True)
class EditGoalInitial:
    pass


@dataclass(frozen=True)
class EditGoalLoading:
    pass


@dataclass(frozen=True)
class EditGoalLoaded:
    goal: GroupGoal


@dataclass(frozen=True)
class EditGoalSubmitting:
    goal: GroupGoal


@dataclass(frozen=True)
class EditGoalSuccess:
    goal: GroupGoal


@dataclass(frozen=True)
class EditGoalError:
    message: str
    # the goal being edited, so the form can stay on screen
    goal: Optional[GroupGoal] = None
    field_errors: dict[str, list[str]] | None = None


EditGoalState = Union[
    EditGoalInitial,
    EditGoalLoading,
    EditGoalLoaded,
    EditGoalSubmitting,
    EditGoalSuccess,
    EditGoalError,
]


class EditGoalStore(Store[EditGoalEvent, EditGoalState]):
    """Edit form for an existing goal: load it, submit changes, reset."""

    def __init__(self, *, get_goal_details: GetGoalDetails, update_goal: UpdateGoal) -> None:
        super().__init__(EditGoalInitial(), error_state=lambda message: EditGoalError(message=message))
        self._get_goal_details = get_goal_details
        self._update_goal = update_goal

        self.on(EditGoalLoadRequested, self._on_load)
        self.on(EditGoalSubmitted, self._on_submitted)
        self.on(EditGoalReset, self._on_reset)

    @property
    def current_goal(self) -> Optional[GroupGoal]:
        state = self.state
        if isinstance(state, (EditGoalLoaded, EditGoalSubmitting, EditGoalError)):
            return state.goal
        return None

    async def _on_load(self, event: EditGoalLoadRequested) -> None:
        self.emit(EditGoalLoading())
        try:
            goal = await self._get_goal_details.execute(goal_id=event.goal_id)
        except AppError as exc:
            self.emit(EditGoalError(message=self.error_message(exc)))
            return
        self.emit(EditGoalLoaded(goal=goal))

    async def _on_submitted(self, event: EditGoalSubmitted) -> None:
        goal = self.current_goal
        if goal is not None:
            self.emit(EditGoalSubmitting(goal=goal))

        form = event.form
        try:
            updated = await self._update_goal.execute(
                UpdateGoalRequest(
                    goal_id=event.goal_id,
                    name=form.name.strip(),
                    description=form.description or None,
                    target_steps=form.target_steps,
                    start_date=form.start_date,
                    end_date=form.end_date,
                )
            )
        except ValidationError as exc:
            self.emit(EditGoalError(message=self.error_message(exc), goal=goal, field_errors=exc.field_errors or None))
            return
        except AppError as exc:
            self.emit(EditGoalError(message=self.error_message(exc), goal=goal))
            return
        log.info("goal_updated", goal_id=updated.id)
        self.emit(EditGoalSuccess(goal=updated))

    async def _on_reset(self, event: EditGoalReset) -> None:
        self.emit(EditGoalInitial())
