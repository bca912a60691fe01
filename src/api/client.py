# wraps httpx for the SkyCart REST API: auth header, error shape, 401 handling
from __future__ import annotations

from typing import Any, Callable, Dict, Optional

import httpx

from api.errors import (
    GENERIC_MESSAGE,
    ApiError,
    AuthorizationError,
    NetworkError,
    NotFoundError,
)
from utils.logger import get_logger

_logger = get_logger(__name__)

TokenGetter = Callable[[], Optional[str]]


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for field in ("message", "detail", "error"):
            value = body.get(field)
            if isinstance(value, str) and value:
                return value
    return response.reason_phrase or GENERIC_MESSAGE


def _error_fields(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    if isinstance(body, dict) and isinstance(body.get("errors"), dict):
        return body["errors"]
    return {}


class ApiClient:
    """
    Thin async client over the SkyCart API.

    - ``Authorization: Bearer <token>`` is attached whenever ``token_getter``
      returns a token.
    - Every failure surfaces as an ``api.errors`` exception.
    - A 401 calls ``on_unauthorized`` once per token, however many requests
      carrying that token fail at the same time, and only while that token is
      still the current one.
    """

    def __init__(
        self,
        base_url: str,
        token_getter: Optional[TokenGetter] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )
        self._token_getter = token_getter or (lambda: None)
        self.on_unauthorized = on_unauthorized
        self._revoked_token: Optional[str] = None

    @property
    def base_url(self) -> str:
        return str(self._http.base_url)

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        token = self._token_getter()
        headers = {"Authorization": f"Bearer {token}"} if token else {}

        _logger.debug(f"{method} {url}")
        try:
            response = await self._http.request(
                method, url, params=params, json=json, headers=headers
            )
        except httpx.TimeoutException as e:
            _logger.warning(f"{method} {url} timed out")
            raise NetworkError("The server took too long to respond.") from e
        except httpx.HTTPError as e:
            _logger.warning(f"{method} {url} failed: {e!r}")
            raise NetworkError(str(e) or GENERIC_MESSAGE) from e

        if response.is_success:
            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as e:
                raise ApiError("Malformed response from server.", response.status_code) from e

        message = _error_message(response)
        status = response.status_code
        _logger.warning(f"{method} {url} -> {status}: {message}")

        if status == 401:
            self._handle_unauthorized(token)
            raise AuthorizationError(message, status)
        if status == 404:
            raise NotFoundError(message, status)
        raise ApiError(message, status, _error_fields(response))

    def _handle_unauthorized(self, token: Optional[str]) -> None:
        # a late 401 for a replaced token must not end the current session
        if token is None or token != self._token_getter():
            return
        # requests that went out with the same token all come back 401 together
        if token == self._revoked_token:
            return
        self._revoked_token = token
        _logger.info("Authorization rejected, ending session.")
        if self.on_unauthorized is not None:
            self.on_unauthorized()

    async def get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", url, params=params)

    async def post(self, url: str, json: Any = None) -> Any:
        return await self.request("POST", url, json=json)

    async def put(self, url: str, json: Any = None) -> Any:
        return await self.request("PUT", url, json=json)

    async def delete(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("DELETE", url, params=params)

    async def aclose(self) -> None:
        await self._http.aclose()
