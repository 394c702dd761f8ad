from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from conftest import ENDPOINT, TOKEN, Collector
from uatrack.errors import TransportError
from uatrack.identity import IdentityStore
from uatrack.transport import HttpTransport, NoopTransport, select_transport


def test_collect_posts_json_and_caches_client_id(collector: Collector) -> None:
    identity = IdentityStore()

    async def run() -> dict:
        async with collector.client() as http:
            transport = HttpTransport(TOKEN, ENDPOINT + "/", identity, client=http)
            assert transport.get_current_visitor_id() == identity.get_visitor_id()
            return await transport.send_event("pageview", {"t": "pageview", "cid": "abc"})

    out = asyncio.run(run())

    assert out == {"visitId": "firsttimevisiting", "visitorId": "abc"}
    assert identity.get_client_id() == "abc"
    [request] = collector.requests
    assert str(request.url) == "http://bloup/rest/v15/analytics/collect"
    assert request.method == "POST"
    assert request.headers["Content-Type"] == "application/json"
    assert json.loads(request.content) == {"t": "pageview", "cid": "abc"}


def test_sibling_resources_carry_visitor_param(collector: Collector) -> None:
    identity = IdentityStore()

    async def run() -> None:
        async with collector.client() as http:
            transport = HttpTransport(None, ENDPOINT, identity, client=http)
            await transport.send_search_event({"cid": "first"})
            await transport.send_click_event({"cid": "x"})
            await transport.send_custom_event({"cid": "y"})

    asyncio.run(run())

    assert collector.paths == [
        "/rest/v15/analytics/search",
        "/rest/v15/analytics/click",
        "/rest/v15/analytics/custom",
    ]
    assert "visitor" not in collector.requests[0].url.params
    assert collector.requests[1].url.params["visitor"] == "first"
    assert "Authorization" not in collector.requests[0].headers


def test_http_error_detail_is_surfaced(collector: Collector) -> None:
    collector.responder = lambda request: httpx.Response(
        status_code=401, json={"message": "Invalid token"}, request=request
    )

    async def run() -> None:
        async with collector.client() as http:
            transport = HttpTransport(TOKEN, ENDPOINT, IdentityStore(), client=http)
            await transport.send_event("event", {})

    with pytest.raises(TransportError) as exc:
        asyncio.run(run())
    assert "POST /rest/v15/analytics/collect -> 401: Invalid token" in str(exc.value)
    assert exc.value.status_code == 401
    assert exc.value.detail == "Invalid token"


def test_text_error_body(collector: Collector) -> None:
    collector.responder = lambda request: httpx.Response(status_code=500, text="upstream meltdown", request=request)

    async def run() -> None:
        async with collector.client() as http:
            await HttpTransport(TOKEN, ENDPOINT, IdentityStore(), client=http).send_event("event", {})

    with pytest.raises(TransportError, match="-> 500: upstream meltdown"):
        asyncio.run(run())


def test_malformed_body_is_a_transport_error(collector: Collector) -> None:
    collector.responder = lambda request: httpx.Response(status_code=200, text="<html>", request=request)

    async def run() -> None:
        async with collector.client() as http:
            await HttpTransport(TOKEN, ENDPOINT, IdentityStore(), client=http).send_event("event", {})

    with pytest.raises(TransportError, match="malformed response body"):
        asyncio.run(run())


def test_network_failure_is_a_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def run() -> None:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            await HttpTransport(TOKEN, ENDPOINT, IdentityStore(), client=http).send_event("event", {})

    with pytest.raises(TransportError, match="connection refused"):
        asyncio.run(run())


def test_empty_success_body_resolves_empty(collector: Collector) -> None:
    collector.responder = lambda request: httpx.Response(status_code=204, request=request)

    async def run() -> dict:
        async with collector.client() as http:
            return await HttpTransport(TOKEN, ENDPOINT, IdentityStore(), client=http).send_event("event", {})

    assert asyncio.run(run()) == {}


def test_noop_transport_does_nothing() -> None:
    transport = NoopTransport()

    async def run() -> list:
        return [
            await transport.send_event("pageview", {"a": 1}),
            await transport.send_search_event({}),
            await transport.send_click_event({}),
            await transport.send_custom_event({}),
        ]

    assert asyncio.run(run()) == [None, None, None, None]
    assert transport.get_current_visitor_id() is None
    transport.clear()


def test_select_transport() -> None:
    identity = IdentityStore()
    assert isinstance(select_transport(TOKEN, ENDPOINT, identity, do_not_track=lambda: False), HttpTransport)
    assert isinstance(select_transport(TOKEN, ENDPOINT, identity, do_not_track=lambda: True), NoopTransport)
    assert isinstance(
        select_transport(TOKEN, ENDPOINT, identity, enabled=False, do_not_track=lambda: False),
        NoopTransport,
    )


def test_do_not_track_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DO_NOT_TRACK", "1")
    assert isinstance(select_transport(TOKEN, ENDPOINT, IdentityStore()), NoopTransport)


def test_clear_drops_cached_client_id_but_keeps_visitor_id() -> None:
    identity = IdentityStore()
    identity.remember_client_id("server")
    transport = HttpTransport(TOKEN, ENDPOINT, identity)
    visitor_id = transport.get_current_visitor_id()
    assert visitor_id == identity.visitor_id
    transport.clear()
    assert identity.get_client_id() is None
    assert transport.get_current_visitor_id() == visitor_id
