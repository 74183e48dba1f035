from __future__ import annotations

import uuid
from typing import Any, Awaitable, Callable, Optional

import httpx

from stepgoals.core.config import settings
from stepgoals.core.errors import (
    AppError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
    UnauthorizedError,
    UnexpectedError,
    ValidationError,
)
from stepgoals.core.logging import log

TokenProvider = Callable[[], Awaitable[Optional[str]]]

_EXPIRED_TOKEN_CODES = {"TOKEN_EXPIRED", "token_expired"}


class ApiClient:
    """JSON-over-HTTP client for the goals backend.

    Every transport or HTTP failure is translated into an ``AppError``
    subclass; nothing is retried.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        token_provider: TokenProvider | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self._token_provider = token_provider
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout or settings.API_TIMEOUT_SECONDS,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, *, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, *, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        request_id = str(uuid.uuid4())
        headers = {"X-Request-Id": request_id}
        if self._token_provider is not None:
            token = await self._token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._client.request(method, path, params=params, json=json, headers=headers)
        except httpx.TimeoutException as exc:
            log.warning("api_timeout", method=method, path=path, request_id=request_id)
            raise NetworkError("Request timed out", is_timeout=True) from exc
        except httpx.ConnectError as exc:
            log.warning("api_no_connection", method=method, path=path, request_id=request_id)
            raise NetworkError("Unable to reach the server", is_no_connection=True) from exc
        except httpx.TransportError as exc:
            log.warning("api_transport_error", method=method, path=path, request_id=request_id, error=str(exc))
            raise NetworkError(str(exc) or "Network error") from exc
        except httpx.DecodingError as exc:
            log.warning("api_decoding_error", method=method, path=path, request_id=request_id, error=str(exc))
            raise UnexpectedError("Invalid data format received.", code="invalid_encoding") from exc
        except httpx.HTTPError as exc:
            log.warning("api_http_error", method=method, path=path, request_id=request_id, error=str(exc))
            raise NetworkError(str(exc) or "Network error") from exc

        log.debug("api_response", method=method, path=path, request_id=request_id, status_code=response.status_code)
        if response.status_code >= 400:
            raise self._error_for(response)
        return self._decode(response)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            body = response.json()
        except ValueError as exc:
            raise UnexpectedError("Invalid data format received.") from exc
        # envelope: {"data": ..., "request_id": ...}
        if isinstance(body, dict) and "data" in body and "id" not in body and "_id" not in body:
            return body["data"]
        return body

    @staticmethod
    def _error_for(response: httpx.Response) -> AppError:
        status = response.status_code
        code, message, field_errors = _parse_error_body(response)
        log.info("api_error", status_code=status, code=code, path=response.request.url.path)

        if status in (400, 422):
            return ValidationError(message or "Validation failed", field_errors=field_errors, code=code)
        if status == 401:
            return UnauthorizedError(
                message or "Unauthorized",
                is_token_expired=code in _EXPIRED_TOKEN_CODES,
                code=code,
            )
        if status == 403:
            return UnauthorizedError(message or "Forbidden", is_permission_denied=True, code=code)
        if status == 404:
            return NotFoundError(message or "Not found", code=code)
        if status == 429:
            return RateLimitError(message or "Too many requests", retry_after=_retry_after(response), code=code)
        return ServerError(message or f"HTTP {status}", status_code=status, code=code)


def _parse_error_body(response: httpx.Response) -> tuple[str | None, str | None, dict[str, list[str]]]:
    try:
        body = response.json()
    except ValueError:
        return None, response.text or None, {}
    if not isinstance(body, dict):
        return None, None, {}

    error = body.get("error")
    if isinstance(error, dict):
        code = error.get("code")
        message = error.get("message")
        raw_fields = (error.get("details") or {}).get("fields") or {}
    else:
        code = body.get("code")
        message = body.get("message") or (error if isinstance(error, str) else None)
        raw_fields = body.get("errors") or {}

    field_errors: dict[str, list[str]] = {}
    if isinstance(raw_fields, dict):
        for field, value in raw_fields.items():
            field_errors[field] = [str(v) for v in value] if isinstance(value, list) else [str(value)]
    return code, message, field_errors


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None
