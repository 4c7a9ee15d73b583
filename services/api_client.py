"""Thin async HTTP client for the LMS REST backend.

- every call returns the decoded JSON body (usually the
  {success, data, message} envelope; callers branch on `success`)
- every transport failure (non-2xx, network) is raised as ApiError
- 401 -> one refresh-token exchange, then the original request is retried once
- *_with_fallback walks a list of URLs and moves on only on 404
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, Optional

import httpx
from flask import current_app, session

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "서버 오류가 발생했습니다."
REFRESH_PATH = "/api/auth/refresh"


class ApiError(Exception):
    """Uniform transport error: status (None on network failure), message, data."""

    def __init__(self, message: str, status: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data

    @property
    def not_found(self) -> bool:
        return self.status == 404

    def __repr__(self) -> str:
        return f"<ApiError status={self.status} message={self.message!r}>"


def is_success(response: Any) -> bool:
    return isinstance(response, dict) and bool(response.get("success"))


def response_data(response: Any) -> Any:
    return response.get("data") if isinstance(response, dict) else None


def response_message(response: Any, fallback: str) -> str:
    if isinstance(response, dict) and response.get("message"):
        return str(response["message"])
    return fallback


def error_message(exc: Exception, fallback: str) -> str:
    # server message first, then whatever the exception says, then the fallback
    if isinstance(exc, ApiError):
        return exc.message or fallback
    return str(exc) or fallback


TokensCallback = Callable[[str, Optional[str]], None]


class ApiClient:
    def __init__(
        self,
        base_url: str,
        *,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_tokens_refreshed: Optional[TokensCallback] = None,
    ):
        if not base_url:
            raise ValueError("base_url is required")

        self.access_token = access_token
        self.refresh_token = refresh_token
        # set once a 401 survives the refresh attempt; the web layer logs out on it
        self.unauthorized = False
        self._on_tokens_refreshed = on_tokens_refreshed
        self._client = httpx.AsyncClient(
            base_url=str(base_url).rstrip("/"),
            timeout=float(timeout),
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        if self.access_token:
            return {"Authorization": f"Bearer {self.access_token}"}
        return {}

    @staticmethod
    def _decode(resp: httpx.Response) -> Any:
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return None

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        _retry: bool = False,
    ) -> Any:
        logger.debug("[API Request] %s %s", method, url)
        try:
            resp = await self._client.request(
                method, url, params=params, json=json, headers={**self._headers(), **(headers or {})}
            )
        except httpx.HTTPError as exc:
            logger.warning("[API Network Error] %s %s: %s", method, url, exc)
            raise ApiError(str(exc) or GENERIC_ERROR_MESSAGE) from exc

        if resp.status_code == 401 and not _retry and self.refresh_token:
            if await self._refresh_tokens():
                return await self.request(method, url, params=params, json=json, headers=headers, _retry=True)

        data = self._decode(resp)
        if resp.is_error:
            message = data.get("message") if isinstance(data, dict) else None
            logger.debug("[API Response Error] %s %s -> %s", method, url, resp.status_code)
            if resp.status_code == 401:
                self.unauthorized = True
            raise ApiError(message or GENERIC_ERROR_MESSAGE, status=resp.status_code, data=data)

        logger.debug("[API Response] %s %s -> %s", method, url, resp.status_code)
        return data

    async def _refresh_tokens(self) -> bool:
        try:
            resp = await self._client.post(REFRESH_PATH, json={"refreshToken": self.refresh_token})
        except httpx.HTTPError as exc:
            logger.warning("[Token Refresh Failed] %s", exc)
            return False

        body = self._decode(resp)
        # token pair comes either wrapped in the envelope or bare
        tokens = body.get("data") if isinstance(body, dict) and isinstance(body.get("data"), dict) else body
        if resp.is_error or not isinstance(tokens, dict) or not tokens.get("accessToken"):
            logger.warning("[Token Refresh Failed] status=%s", resp.status_code)
            return False

        self.access_token = tokens["accessToken"]
        self.refresh_token = tokens.get("refreshToken") or self.refresh_token
        if self._on_tokens_refreshed is not None:
            self._on_tokens_refreshed(self.access_token, self.refresh_token)
        return True

    async def get(self, url: str, *, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", url, params=params)

    async def post(self, url: str, json: Any = None) -> Any:
        return await self.request("POST", url, json=json)

    async def put(self, url: str, json: Any = None) -> Any:
        return await self.request("PUT", url, json=json)

    async def delete(self, url: str, json: Any = None) -> Any:
        return await self.request("DELETE", url, json=json)

    async def _with_fallback(self, method: str, urls: Iterable[str], **kwargs) -> Any:
        last_error: Optional[ApiError] = None
        for url in urls:
            try:
                return await self.request(method, url, **kwargs)
            except ApiError as exc:
                last_error = exc
                if exc.not_found:
                    continue
                raise
        raise last_error or ApiError("Request failed")

    async def get_with_fallback(self, urls: Iterable[str], *, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._with_fallback("GET", urls, params=params)

    async def post_with_fallback(self, urls: Iterable[str], json: Any = None) -> Any:
        return await self._with_fallback("POST", urls, json=json)

    async def put_with_fallback(self, urls: Iterable[str], json: Any = None) -> Any:
        return await self._with_fallback("PUT", urls, json=json)

    async def delete_with_fallback(self, urls: Iterable[str], json: Any = None) -> Any:
        return await self._with_fallback("DELETE", urls, json=json)


def _store_refreshed_tokens(access_token: str, refresh_token: Optional[str]) -> None:
    session["access_token"] = access_token
    if refresh_token:
        session["refresh_token"] = refresh_token


def client_for_session() -> ApiClient:
    """ApiClient bound to the current Flask session's tokens."""
    return ApiClient(
        current_app.config["API_BASE_URL"],
        access_token=session.get("access_token"),
        refresh_token=session.get("refresh_token"),
        timeout=current_app.config["API_TIMEOUT_SECONDS"],
        transport=current_app.extensions.get("api_transport"),
        on_tokens_refreshed=_store_refreshed_tokens,
    )
