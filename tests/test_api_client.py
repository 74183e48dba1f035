from __future__ import annotations

import uuid

import httpx
import pytest

from stepgoals.core.errors import (
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
    UnauthorizedError,
    UnexpectedError,
    ValidationError,
    is_recoverable,
    should_logout,
)
from stepgoals.infrastructure.http.api_client import ApiClient

from conftest import BASE_URL, TOKEN


@pytest.mark.asyncio
async def test_envelope_is_unwrapped_and_headers_are_sent(api_client, backend):
    goals = await api_client.get("/goals/user")
    await api_client.get("/goals/goal-1")

    assert [g["_id"] for g in goals] == ["goal-1", "goal-2"]
    first, second = backend.state.seen
    assert first["path"] == "/api/goals/user"
    assert first["headers"]["authorization"] == f"Bearer {TOKEN}"
    uuid.UUID(first["headers"]["x-request-id"])
    assert first["headers"]["x-request-id"] != second["headers"]["x-request-id"]


@pytest.mark.asyncio
async def test_bare_payload_is_returned_as_is(api_client):
    goal = await api_client.get("/goals/goal-1")
    assert goal["_id"] == "goal-1"


@pytest.mark.asyncio
async def test_no_content_returns_none(api_client):
    assert await api_client.put("/goals/goal-1/accept") is None


@pytest.mark.asyncio
async def test_not_found(api_client):
    with pytest.raises(NotFoundError) as exc_info:
        await api_client.get("/goals/nope")
    assert exc_info.value.code == "not_found"
    assert exc_info.value.message == "Goal not found"


@pytest.mark.asyncio
async def test_server_error_is_recoverable(api_client):
    with pytest.raises(ServerError) as exc_info:
        await api_client.get("/goals/boom")
    assert exc_info.value.status_code == 500
    assert is_recoverable(exc_info.value)


@pytest.mark.asyncio
async def test_rate_limit_reads_retry_after(api_client):
    with pytest.raises(RateLimitError) as exc_info:
        await api_client.get("/goals/busy")
    assert exc_info.value.retry_after == 7.0


@pytest.mark.asyncio
async def test_forbidden_is_permission_denied(api_client):
    with pytest.raises(UnauthorizedError) as exc_info:
        await api_client.get("/goals/forbidden")
    assert exc_info.value.is_permission_denied
    assert not should_logout(exc_info.value)


@pytest.mark.asyncio
async def test_expired_token(api_client, token_holder):
    token_holder["token"] = "expired"
    with pytest.raises(UnauthorizedError) as exc_info:
        await api_client.get("/goals/user")
    assert exc_info.value.is_token_expired
    assert should_logout(exc_info.value)


@pytest.mark.asyncio
async def test_missing_token_sends_no_authorization(api_client, token_holder, backend):
    token_holder["token"] = None
    with pytest.raises(UnauthorizedError) as exc_info:
        await api_client.get("/goals/user")
    assert exc_info.value.code == "UNAUTHENTICATED"
    assert "authorization" not in backend.state.seen[0]["headers"]


@pytest.mark.asyncio
async def test_field_errors_from_flat_error_body(api_client):
    with pytest.raises(ValidationError) as exc_info:
        await api_client.post("/goals/goal-1/invite", json={"userId": "u-2"})
    assert exc_info.value.code == "already_member"
    assert exc_info.value.field_errors == {"userId": ["already a member"]}


@pytest.mark.asyncio
async def test_non_json_body_is_unexpected(api_client):
    with pytest.raises(UnexpectedError):
        await api_client.get("/goals/broken")


@pytest.mark.parametrize(
    "exc_type,flag",
    [(httpx.ReadTimeout, "is_timeout"), (httpx.ConnectError, "is_no_connection")],
)
@pytest.mark.asyncio
async def test_transport_failures_become_network_errors(exc_type, flag):
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_type("transport failed", request=request)

    async with ApiClient(base_url=BASE_URL, transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(NetworkError) as exc_info:
            await client.get("/goals/user")
    assert getattr(exc_info.value, flag) is True


@pytest.mark.asyncio
async def test_other_transport_errors_are_generic_network_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.RemoteProtocolError("peer reset", request=request)

    async with ApiClient(base_url=BASE_URL, transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(NetworkError) as exc_info:
            await client.get("/goals/user")
    assert not exc_info.value.is_timeout
    assert not exc_info.value.is_no_connection


@pytest.mark.asyncio
async def test_trailing_slash_in_base_url_is_ignored(transport, token_provider):
    async with ApiClient(base_url=BASE_URL + "/", token_provider=token_provider, transport=transport) as client:
        assert client.base_url == BASE_URL
        goals = await client.get("/goals/user")
    assert len(goals) == 2


@pytest.mark.asyncio
async def test_undecodable_body_is_unexpected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"Content-Encoding": "gzip"}, stream=httpx.ByteStream(b"not gzip at all"))

    async with ApiClient(base_url=BASE_URL, transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(UnexpectedError) as exc_info:
            await client.get("/goals/user")
    assert exc_info.value.code == "invalid_encoding"


@pytest.mark.asyncio
async def test_redirect_loop_is_a_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.TooManyRedirects("Exceeded maximum allowed redirects.", request=request)

    async with ApiClient(base_url=BASE_URL, transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(NetworkError) as exc_info:
            await client.get("/goals/user")
    assert "redirects" in exc_info.value.message
