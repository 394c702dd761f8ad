from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Protocol

import httpx

from . import config
from .errors import TransportError
from .identity import IdentityStore

logger = logging.getLogger(__name__)

API_PREFIX = "/rest/v15/analytics"


class Transport(Protocol):
    async def send_event(self, event_type: str, payload: dict[str, Any]) -> Optional[dict[str, Any]]: ...

    async def send_search_event(self, payload: dict[str, Any]) -> Optional[dict[str, Any]]: ...

    async def send_click_event(self, payload: dict[str, Any]) -> Optional[dict[str, Any]]: ...

    async def send_custom_event(self, payload: dict[str, Any]) -> Optional[dict[str, Any]]: ...

    def get_current_visitor_id(self) -> Optional[str]: ...

    def clear(self) -> None: ...


def _extract_error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except Exception:
        text = response.text.strip()
        return text if text else response.reason_phrase
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if detail is None:
            return str(body)
        return str(detail)
    return str(body)


def _raise_for_status(response: httpx.Response) -> None:
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        request = exc.request
        method = request.method if request else "REQUEST"
        url = request.url.path if request else str(response.url)
        detail = _extract_error_detail(response)
        raise TransportError(
            f"{method} {url} -> {response.status_code}: {detail}",
            status_code=response.status_code,
            detail=detail,
        ) from exc


def _parse_body(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError as exc:
        raise TransportError(
            f"{response.request.method} {response.request.url.path} -> malformed response body",
            status_code=response.status_code,
            detail=response.text[:200],
        ) from exc
    if not isinstance(data, dict):
        raise TransportError(
            f"{response.request.method} {response.request.url.path} -> expected a JSON object",
            status_code=response.status_code,
            detail=str(data)[:200],
        )
    return data


class HttpTransport:
    """
    Ships events to the collection endpoint.

    Pass `client` to share an `httpx.AsyncClient` (tests use one built on
    `httpx.MockTransport`); otherwise a short-lived client is opened per event.
    """

    def __init__(
        self,
        token: Optional[str],
        endpoint: str,
        identity: IdentityStore,
        client: Optional[httpx.AsyncClient] = None,
        timeout_s: float = config.DEFAULT_TIMEOUT_S,
    ):
        self.token = token
        self.endpoint = endpoint.rstrip("/")
        self.identity = identity
        self._client = client
        self.timeout_s = timeout_s

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _url(self, resource: str) -> str:
        return f"{self.endpoint}{API_PREFIX}/{resource}"

    async def _post(self, resource: str, payload: dict[str, Any], params: Optional[dict[str, str]] = None) -> dict[str, Any]:
        url = self._url(resource)
        logger.debug("POST %s (%d fields)", url, len(payload))
        try:
            if self._client is not None:
                r = await self._client.post(url, headers=self._headers(), json=payload, params=params)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                    r = await client.post(url, headers=self._headers(), json=payload, params=params)
        except httpx.HTTPError as exc:
            raise TransportError(f"POST {url} failed: {exc}") from exc

        _raise_for_status(r)
        data = _parse_body(r)
        self.identity.remember_client_id(data.get("visitorId"))
        return data

    def _visitor_params(self) -> Optional[dict[str, str]]:
        client_id = self.identity.get_client_id()
        return {"visitor": client_id} if client_id else None

    async def send_event(self, event_type: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._post("collect", payload)

    async def send_search_event(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._post("search", payload, self._visitor_params())

    async def send_click_event(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._post("click", payload, self._visitor_params())

    async def send_custom_event(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._post("custom", payload, self._visitor_params())

    def get_current_visitor_id(self) -> str:
        return self.identity.get_visitor_id()

    def clear(self) -> None:
        self.identity.forget_client_id()


class NoopTransport:
    """Same surface as `HttpTransport`; sends nothing."""

    async def send_event(self, event_type: str, payload: dict[str, Any]) -> None:
        return None

    async def send_search_event(self, payload: dict[str, Any]) -> None:
        return None

    async def send_click_event(self, payload: dict[str, Any]) -> None:
        return None

    async def send_custom_event(self, payload: dict[str, Any]) -> None:
        return None

    def get_current_visitor_id(self) -> None:
        return None

    def clear(self) -> None:
        return None


def select_transport(
    token: Optional[str],
    endpoint: str,
    identity: IdentityStore,
    *,
    enabled: bool = True,
    do_not_track: Callable[[], bool] = config.do_not_track,
    client: Optional[httpx.AsyncClient] = None,
    timeout_s: float = config.DEFAULT_TIMEOUT_S,
) -> Transport:
    if not enabled:
        logger.info("analytics disabled by configuration, events will not be sent")
        return NoopTransport()
    if do_not_track():
        logger.info("do-not-track is set, events will not be sent")
        return NoopTransport()
    return HttpTransport(token, endpoint, identity, client=client, timeout_s=timeout_s)
