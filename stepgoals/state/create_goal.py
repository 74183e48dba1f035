from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

import pydantic

from stepgoals.application.use_cases.create_goal import CreateGoal, CreateGoalRequest
from stepgoals.core.errors import AppError, ValidationError
from stepgoals.domain.entities.group_goal import GroupGoal
from stepgoals.schemas.goals import CreateGoalIn, field_errors_from
from stepgoals.state.store import Store


@dataclass(frozen=True)
class GoalForm:
    """Raw form input as typed by the user."""

    name: str
    target_steps: int
    start_date: datetime
    end_date: datetime
    description: Optional[str] = None


@dataclass(frozen=True)
class CreateGoalSubmitted:
    form: GoalForm


@dataclass(frozen=True)
class CreateGoalInitial:
    pass


@dataclass(frozen=True)
class CreateGoalInvalid:
    field_errors: dict[str, list[str]]


@dataclass(frozen=True)
class CreateGoalSubmitting:
    pass


@dataclass(frozen=True)
class CreateGoalCreated:
    goal: GroupGoal


@dataclass(frozen=True)
class CreateGoalError:
    message: str
    field_errors: dict[str, list[str]] | None = None


CreateGoalState = Union[CreateGoalInitial, CreateGoalInvalid, CreateGoalSubmitting, CreateGoalCreated, CreateGoalError]


class CreateGoalStore(Store[CreateGoalSubmitted, CreateGoalState]):
    def __init__(self, *, create_goal: CreateGoal) -> None:
        super().__init__(CreateGoalInitial(), error_state=lambda message: CreateGoalError(message=message))
        self._create_goal = create_goal
        self.on(CreateGoalSubmitted, self._on_submitted)

    async def _on_submitted(self, event: CreateGoalSubmitted) -> None:
        form = event.form
        try:
            valid = CreateGoalIn(
                name=form.name,
                description=form.description or None,
                target_steps=form.target_steps,
                start_date=form.start_date,
                end_date=form.end_date,
            )
        except pydantic.ValidationError as exc:
            self.emit(CreateGoalInvalid(field_errors=field_errors_from(exc)))
            return

        self.emit(CreateGoalSubmitting())
        try:
            goal = await self._create_goal.execute(
                CreateGoalRequest(
                    name=valid.name,
                    description=valid.description,
                    target_steps=valid.target_steps,
                    start_date=valid.start_date,
                    end_date=valid.end_date,
                )
            )
        except ValidationError as exc:
            # server-side rejections are shown next to the fields too
            self.emit(CreateGoalError(message=self.error_message(exc), field_errors=exc.field_errors or None))
            return
        except AppError as exc:
            self.emit(CreateGoalError(message=self.error_message(exc)))
            return
        self.emit(CreateGoalCreated(goal=goal))
