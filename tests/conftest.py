from __future__ import annotations

import json
import re
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

# Pytest 9's import mode can omit repo root from sys.path when running `pytest tests/`.
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from uatrack.context import Environment

TOKEN = "token"
ENDPOINT = "http://bloup"
NOW = 1_700_000_000.0
GUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")


def make_environment() -> Environment:
    return Environment(
        location="http://localhost:8080/some/page?q=1#top",
        referrer="http://referrer.example/",
        title="Support portal",
        character_set="UTF-8",
        language="en-US",
        user_agent="pytest-agent",
        screen_width=1920,
        screen_height=1080,
        color_depth=24,
    )


def fixed_clock() -> float:
    return NOW


def default_context(body: dict[str, Any]) -> dict[str, Any]:
    """Context and identity fields every collected event carries."""
    for key in ("pid", "cid", "z"):
        assert GUID_RE.match(body[key]), key
    return {
        "dl": "http://localhost/some/page?q=1",
        "sr": "1920x1080",
        "sd": "24-bit",
        "ul": "en-US",
        "ua": "pytest-agent",
        "dr": "http://referrer.example/",
        "dt": "Support portal",
        "de": "UTF-8",
        "tm": "1700000000000",
        "pid": body["pid"],
        "cid": body["cid"],
        "z": body["z"],
    }


class Collector:
    """A fake collection endpoint recording every request it receives."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.responder: Optional[Callable[[httpx.Request], httpx.Response]] = None

    @property
    def bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responder is not None:
            return self.responder(request)
        body = json.loads(request.content)
        return httpx.Response(
            status_code=self.status_code,
            json={"visitId": "firsttimevisiting", "visitorId": body.get("cid", "server-visitor")},
            request=request,
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def collector() -> Collector:
    return Collector()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "DO_NOT_TRACK",
        "UATRACK_DO_NOT_TRACK",
        "UATRACK_ENABLED",
        "UATRACK_ENDPOINT",
        "UATRACK_TOKEN",
        "UATRACK_STORAGE_PATH",
        "UATRACK_TIMEOUT_S",
    ):
        monkeypatch.delenv(name, raising=False)
