from __future__ import annotations

from typing import Iterable

import httpx

from stepgoals.application.use_cases.create_goal import CreateGoal, UpdateGoal
from stepgoals.application.use_cases.get_goals import GetGoalDetails, GetGoalMembers, GetGoalProgress, GetUserGoals
from stepgoals.application.use_cases.membership import InviteUser, JoinGoal, LeaveGoal
from stepgoals.domain.interfaces.goal_repository import GoalRepository
from stepgoals.infrastructure.http.api_client import ApiClient, TokenProvider
from stepgoals.infrastructure.realtime.event_router import GOALS, SHARING, Handler, RealtimeEventRouter
from stepgoals.infrastructure.realtime.websocket_service import Connector, WebSocketService
from stepgoals.infrastructure.repositories.goal_repository import HttpGoalRepository
from stepgoals.state.create_goal import CreateGoalStore
from stepgoals.state.edit_goal import EditGoalStore
from stepgoals.state.goal_detail import GoalDetailStore
from stepgoals.state.goals_list import GoalsListStore


def create_goal_repository(
    token_provider: TokenProvider,
    *,
    base_url: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> HttpGoalRepository:
    client = ApiClient(base_url=base_url, token_provider=token_provider, transport=transport)
    return HttpGoalRepository(client)


def create_goal_detail_store(repo: GoalRepository) -> GoalDetailStore:
    return GoalDetailStore(
        get_goal_details=GetGoalDetails(repo),
        get_goal_progress=GetGoalProgress(repo),
        get_goal_members=GetGoalMembers(repo),
        invite_user=InviteUser(repo),
        leave_goal=LeaveGoal(repo),
    )


def create_goals_list_store(repo: GoalRepository) -> GoalsListStore:
    return GoalsListStore(get_user_goals=GetUserGoals(repo), join_goal=JoinGoal(repo))


def create_create_goal_store(repo: GoalRepository) -> CreateGoalStore:
    return CreateGoalStore(create_goal=CreateGoal(repo))


def create_edit_goal_store(repo: GoalRepository) -> EditGoalStore:
    return EditGoalStore(get_goal_details=GetGoalDetails(repo), update_goal=UpdateGoal(repo))


def create_realtime(
    token_provider: TokenProvider,
    *,
    base_url: str | None = None,
    connector: Connector | None = None,
    sharing_handlers: Iterable[Handler] = (),
) -> tuple[WebSocketService, RealtimeEventRouter]:
    service = WebSocketService(token_provider=token_provider, base_url=base_url, connector=connector)
    router = RealtimeEventRouter((SHARING, handler) for handler in sharing_handlers)
    router.attach(service)
    return service, router


def wire_goal_stores(router: RealtimeEventRouter, *stores: GoalDetailStore | GoalsListStore) -> None:
    """Subscribe stores to ``goal_*`` pushes."""
    for store in stores:
        router.register(GOALS, store.handle_realtime)
