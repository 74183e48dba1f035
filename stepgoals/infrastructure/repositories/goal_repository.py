from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional, TypeVar

import pydantic

from stepgoals.core.errors import UnexpectedError, ValidationError
from stepgoals.core.logging import log
from stepgoals.domain.entities.goal_membership import GoalMembership, unique_memberships
from stepgoals.domain.entities.goal_progress import GoalProgress
from stepgoals.domain.entities.group_goal import GroupGoal
from stepgoals.domain.interfaces.goal_repository import GoalRepository
from stepgoals.infrastructure.http import endpoints
from stepgoals.infrastructure.http.api_client import ApiClient
from stepgoals.infrastructure.mappers.goal_mapper import GoalMapper
from stepgoals.schemas.goals import CreateGoalIn, InviteUserIn, UpdateGoalIn, field_errors_from

RequestT = TypeVar("RequestT", bound=pydantic.BaseModel)


@contextmanager
def _decoding(resource: str) -> Iterator[None]:
    try:
        yield
    except (pydantic.ValidationError, ValueError, TypeError) as exc:
        log.warning("payload_decode_failed", resource=resource, error=str(exc))
        raise UnexpectedError("Invalid data format received.", code="invalid_payload") from exc


def _request(model: type[RequestT], **values: Any) -> RequestT:
    try:
        return model(**values)
    except pydantic.ValidationError as exc:
        raise ValidationError("Validation failed", field_errors=field_errors_from(exc)) from exc


def _as_list(body: Any) -> list[Any]:
    if body is None:
        return []
    if isinstance(body, dict):
        # paginated form: {"items": [...]}
        body = body.get("items", [])
    return [item for item in body if isinstance(item, dict)] if isinstance(body, list) else []


class HttpGoalRepository(GoalRepository):
    def __init__(self, client: ApiClient, mapper: GoalMapper | None = None) -> None:
        self._client = client
        self._mapper = mapper or GoalMapper()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_user_goals(self) -> list[GroupGoal]:
        body = await self._client.get(endpoints.USER_GOALS)
        with _decoding("goals"):
            return [self._mapper.goal_to_domain(item) for item in _as_list(body)]

    async def get(self, goal_id: str) -> GroupGoal:
        body = await self._client.get(endpoints.goal(goal_id))
        with _decoding("goal"):
            return self._mapper.goal_to_domain(body)

    async def create(
        self,
        *,
        name: str,
        target_steps: int,
        start_date: datetime,
        end_date: datetime,
        description: Optional[str] = None,
    ) -> GroupGoal:
        payload = _request(
            CreateGoalIn,
            name=name,
            description=description,
            target_steps=target_steps,
            start_date=start_date,
            end_date=end_date,
        )
        body = await self._client.post(endpoints.GOALS, json=payload.model_dump(mode="json", by_alias=True))
        with _decoding("goal"):
            goal = self._mapper.goal_to_domain(body)
        log.info("goal_created", goal_id=goal.id, target_steps=goal.target_steps)
        return goal

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
        payload = _request(
            UpdateGoalIn,
            name=name,
            description=description,
            target_steps=target_steps,
            start_date=start_date,
            end_date=end_date,
        )
        body = await self._client.put(
            endpoints.goal(goal_id),
            json=payload.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        with _decoding("goal"):
            return self._mapper.goal_to_domain(body)

    async def get_members(self, goal_id: str) -> list[GoalMembership]:
        body = await self._client.get(endpoints.members(goal_id))
        with _decoding("members"):
            return unique_memberships([self._mapper.membership_to_domain(item) for item in _as_list(body)])

    async def get_progress(self, goal_id: str) -> GoalProgress:
        body = await self._client.get(endpoints.progress(goal_id))
        # some deployments wrap the single progress record in a list
        if isinstance(body, list):
            body = body[0] if body else None
        if body is None:
            raise UnexpectedError("Invalid data format received.", code="invalid_payload")
        with _decoding("progress"):
            return self._mapper.progress_to_domain(body)

    async def invite_user(self, goal_id: str, user_id: str) -> GoalMembership:
        payload = _request(InviteUserIn, user_id=user_id)
        body = await self._client.post(endpoints.invite(goal_id), json=payload.model_dump(by_alias=True))
        with _decoding("membership"):
            return self._mapper.membership_to_domain(body)

    async def accept_invite(self, goal_id: str) -> None:
        await self._client.put(endpoints.accept_invite(goal_id))

    async def reject_invite(self, goal_id: str) -> None:
        await self._client.put(endpoints.reject_invite(goal_id))

    async def join(self, goal_id: str) -> GoalMembership:
        body = await self._client.post(endpoints.join(goal_id))
        with _decoding("membership"):
            return self._mapper.membership_to_domain(body)

    async def leave(self, goal_id: str) -> None:
        await self._client.post(endpoints.leave(goal_id))
