from __future__ import annotations

import asyncio
import copy
import os
from datetime import datetime, timezone
from typing import Any, Callable

import httpx
import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

# Set env BEFORE importing stepgoals (settings are read at import time)
os.environ.setdefault("STEPGOALS_APP_ENV", "dev")
os.environ.setdefault("STEPGOALS_API_BASE_URL", "http://test/api")
os.environ.setdefault("STEPGOALS_LOG_LEVEL", "DEBUG")

from stepgoals.core.logging import configure_logging  # noqa: E402
from stepgoals.infrastructure.http.api_client import ApiClient  # noqa: E402
from stepgoals.infrastructure.repositories.goal_repository import HttpGoalRepository  # noqa: E402

configure_logging(level="DEBUG", json=False)

BASE_URL = "http://test/api"
TOKEN = "secret-token"

GOAL_ID = "goal-1"
COMPLETED_GOAL_ID = "goal-2"

GOALS: list[dict[str, Any]] = [
    {
        "_id": GOAL_ID,
        "name": "January Million",
        "description": "Walk together through January",
        "targetSteps": 100000,
        "startDate": "2026-01-01T00:00:00Z",
        "endDate": "2026-02-01T00:00:00Z",
        "creatorId": {"_id": "u-1", "username": "alice"},
        "status": "active",
        "createdAt": "2025-12-20T09:30:00Z",
    },
    {
        "_id": COMPLETED_GOAL_ID,
        "name": "December Sprint",
        "targetSteps": 50000,
        "startDate": "2025-12-01T00:00:00Z",
        "endDate": "2025-12-31T00:00:00Z",
        "creatorId": "u-2",
        "status": "completed",
        "createdAt": "2025-11-28T10:00:00Z",
    },
]

MEMBERS: dict[str, list[dict[str, Any]]] = {
    GOAL_ID: [
        {
            "_id": "m-1",
            "goalId": GOAL_ID,
            "userId": {"_id": "u-1", "username": "alice", "profileImageUrl": "https://cdn.test/alice.png"},
            "role": "owner",
            "status": "accepted",
            "joinedAt": "2025-12-20T09:30:00Z",
        },
        {
            "_id": "m-2",
            "goalId": GOAL_ID,
            "userId": {"_id": "u-2", "username": "bob"},
            "role": "member",
            "status": "active",
            "joinedAt": "2025-12-21T08:00:00Z",
        },
        {
            "_id": "m-3",
            "goalId": GOAL_ID,
            "userId": "u-3",
            "username": "carol",
            "role": "member",
            "status": "pending",
            "joinedAt": "2025-12-22T18:15:00Z",
        },
    ],
    COMPLETED_GOAL_ID: [],
}

PROGRESS: dict[str, dict[str, Any]] = {
    GOAL_ID: {
        "goalId": GOAL_ID,
        "totalSteps": 75000,
        "targetSteps": 100000,
        "percentComplete": 75,
        "memberProgress": [
            {"userId": {"_id": "u-2", "username": "bob"}, "totalSteps": 30000, "rank": 1},
            {"userId": "u-1", "username": "alice", "totalSteps": 45000, "rank": 2},
        ],
        "lastUpdated": "2026-01-15T12:00:00Z",
    },
    COMPLETED_GOAL_ID: {
        "goalId": COMPLETED_GOAL_ID,
        "totalSteps": 52000,
        "targetSteps": 50000,
        "memberProgress": [],
    },
}


def _error(status: int, code: str, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": {"code": code, "message": message, **extra}}, status_code=status)


def _special(goal_id: str) -> Response | None:
    # goal ids that make the fake misbehave
    if goal_id == "boom":
        return _error(500, "internal", "boom")
    if goal_id == "busy":
        return JSONResponse(
            {"error": {"code": "rate_limited", "message": "Slow down"}},
            status_code=429,
            headers={"Retry-After": "7"},
        )
    if goal_id == "forbidden":
        return _error(403, "forbidden", "Not a member of this goal")
    if goal_id == "broken":
        return PlainTextResponse("<html>gateway</html>", status_code=200)
    if goal_id == "corrupt":
        return JSONResponse({"_id": "corrupt", "name": "No target"})
    return None


def create_fake_backend() -> FastAPI:
    """In-process stand-in for the goals REST API, mounted under ``/api``."""
    app = FastAPI()
    app.state.goals = {goal["_id"]: copy.deepcopy(goal) for goal in GOALS}
    app.state.members = copy.deepcopy(MEMBERS)
    app.state.progress = copy.deepcopy(PROGRESS)
    app.state.seen = []
    app.state.last_body = None

    @app.middleware("http")
    async def auth(request: Request, call_next):
        app.state.seen.append(
            {"method": request.method, "path": request.url.path, "headers": dict(request.headers)}
        )
        header = request.headers.get("authorization")
        if header is None:
            return _error(401, "UNAUTHENTICATED", "Authentication required")
        if header == "Bearer expired":
            return _error(401, "TOKEN_EXPIRED", "Token expired")
        return await call_next(request)

    @app.get("/api/goals/user")
    async def list_user_goals():
        return {"data": list(app.state.goals.values()), "request_id": "r-1"}

    @app.post("/api/goals")
    async def create_goal(request: Request):
        body = await request.json()
        app.state.last_body = body
        if body.get("targetSteps", 0) > 10_000_000:
            return _error(
                422,
                "validation_error",
                "Validation failed",
                details={"fields": {"targetSteps": ["Target is too large"]}},
            )
        doc = {
            "_id": "goal-new",
            **body,
            "creatorId": "u-1",
            "status": "active",
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }
        app.state.goals[doc["_id"]] = doc
        app.state.members[doc["_id"]] = []
        return JSONResponse({"data": doc}, status_code=201)

    @app.get("/api/goals/{goal_id}")
    async def get_goal(goal_id: str):
        special = _special(goal_id)
        if special is not None:
            return special
        if goal_id not in app.state.goals:
            return _error(404, "not_found", "Goal not found")
        return app.state.goals[goal_id]

    @app.put("/api/goals/{goal_id}")
    async def update_goal(goal_id: str, request: Request):
        if goal_id not in app.state.goals:
            return _error(404, "not_found", "Goal not found")
        body = await request.json()
        app.state.last_body = body
        app.state.goals[goal_id].update(body)
        return {"data": app.state.goals[goal_id]}

    @app.get("/api/goals/{goal_id}/members")
    async def get_members(goal_id: str):
        special = _special(goal_id)
        if special is not None:
            return special
        if goal_id not in app.state.members:
            return _error(404, "not_found", "Goal not found")
        return {"data": app.state.members[goal_id]}

    @app.get("/api/goals/{goal_id}/progress")
    async def get_progress(goal_id: str):
        special = _special(goal_id)
        if special is not None:
            return special
        if goal_id not in app.state.progress:
            return _error(404, "not_found", "Goal not found")
        return app.state.progress[goal_id]

    @app.post("/api/goals/{goal_id}/invite")
    async def invite(goal_id: str, request: Request):
        body = await request.json()
        app.state.last_body = body
        members = app.state.members.get(goal_id)
        if members is None:
            return _error(404, "not_found", "Goal not found")
        user_id = body["userId"]
        if any(_member_user_id(m) == user_id for m in members):
            return JSONResponse(
                {"code": "already_member", "message": "User is already a member", "errors": {"userId": "already a member"}},
                status_code=400,
            )
        membership = {
            "_id": f"m-{len(members) + 1}",
            "goalId": goal_id,
            "userId": user_id,
            "username": user_id,
            "role": "member",
            "status": "pending",
            "joinedAt": datetime.now(timezone.utc).isoformat(),
        }
        members.append(membership)
        return JSONResponse({"data": membership}, status_code=201)

    @app.put("/api/goals/{goal_id}/accept")
    async def accept(goal_id: str):
        return Response(status_code=204)

    @app.put("/api/goals/{goal_id}/reject")
    async def reject(goal_id: str):
        return Response(status_code=204)

    @app.post("/api/goals/{goal_id}/join")
    async def join(goal_id: str):
        members = app.state.members.get(goal_id)
        if members is None:
            return _error(404, "not_found", "Goal not found")
        membership = {
            "_id": f"m-{len(members) + 1}",
            "goalId": goal_id,
            "userId": {"_id": "u-9", "username": "dave"},
            "role": "member",
            "status": "active",
            "joinedAt": datetime.now(timezone.utc).isoformat(),
        }
        members.append(membership)
        return {"data": membership}

    @app.post("/api/goals/{goal_id}/leave")
    async def leave(goal_id: str):
        if goal_id not in app.state.members:
            return _error(404, "not_found", "Goal not found")
        return Response(status_code=204)

    return app


def _member_user_id(membership: dict[str, Any]) -> str:
    user = membership["userId"]
    return user["_id"] if isinstance(user, dict) else user


@pytest.fixture()
def backend() -> FastAPI:
    return create_fake_backend()


@pytest.fixture()
def transport(backend) -> httpx.ASGITransport:
    return httpx.ASGITransport(app=backend)


@pytest.fixture()
def token_holder() -> dict[str, str | None]:
    return {"token": TOKEN}


@pytest.fixture()
def token_provider(token_holder) -> Callable:
    async def _provide() -> str | None:
        return token_holder["token"]

    return _provide


@pytest.fixture()
async def api_client(transport, token_provider):
    client = ApiClient(base_url=BASE_URL, token_provider=token_provider, transport=transport)
    yield client
    await client.aclose()


@pytest.fixture()
def goal_repo(api_client) -> HttpGoalRepository:
    return HttpGoalRepository(api_client)


@pytest.fixture()
def recorded_states():
    """Subscribe to a store and collect every emitted state."""

    def _record(store) -> list[Any]:
        states: list[Any] = []
        store.subscribe(states.append)
        return states

    return _record


# realtime fakes

_CLOSE = object()


class FakeConnection:
    """Scriptable stand-in for a websockets client connection."""

    def __init__(self, *frames: Any) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        for frame in frames:
            self._queue.put_nowait(frame)
        self.sent: list[str] = []
        self.closed = False

    def push(self, frame: Any) -> None:
        self._queue.put_nowait(frame)

    def drop(self) -> None:
        """Simulate the server closing the socket."""
        self._queue.put_nowait(_CLOSE)

    def __aiter__(self) -> "FakeConnection":
        return self

    async def __anext__(self) -> Any:
        if self.closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSE:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item

    async def send(self, message: str) -> None:
        if self.closed:
            raise OSError("connection closed")
        self.sent.append(message)

    async def close(self) -> None:
        self.closed = True
        self._queue.put_nowait(_CLOSE)


class FakeConnector:
    """Returns the scripted outcomes in order; refuses once they run out."""

    def __init__(self, *outcomes: Any) -> None:
        self._outcomes = list(outcomes)
        self.urls: list[str] = []

    async def __call__(self, url: str) -> FakeConnection:
        self.urls.append(url)
        outcome = self._outcomes.pop(0) if self._outcomes else OSError("connection refused")
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


async def eventually(predicate: Callable[[], bool], *, ticks: int = 500) -> None:
    for _ in range(ticks):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
