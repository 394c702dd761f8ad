"""
Ambient, per-event facts about where an event happened.

A browser SDK reads these from `window`/`document`; here the host application
describes its surroundings with an `Environment` and may update it as the user
navigates (`ua("set", "dl", ...)` overrides individual fields per event).
"""

from __future__ import annotations

import locale
import platform
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional
from urllib.parse import urlsplit

from . import __version__


def _default_language() -> str:
    lang = locale.getlocale()[0] or "en_US"
    return lang.replace("_", "-")


def _default_user_agent() -> str:
    return f"uatrack/{__version__} ({platform.system()}; Python {platform.python_version()})"


@dataclass
class Environment:
    location: str = ""
    referrer: str = ""
    title: str = ""
    character_set: str = "UTF-8"
    language: str = field(default_factory=_default_language)
    user_agent: str = field(default_factory=_default_user_agent)
    screen_width: int = 0
    screen_height: int = 0
    color_depth: int = 24


def document_location(url: str) -> str:
    """Scheme, host, path and query of `url`; port and fragment are dropped."""
    if not url:
        return ""
    parts = urlsplit(url)
    path = parts.path if parts.path.startswith("/") else f"/{parts.path}"
    search = f"?{parts.query}" if parts.query else ""
    return f"{parts.scheme}://{parts.hostname or ''}{path}{search}"


def context_snapshot(
    env: Environment,
    *,
    clock: Callable[[], float] = time.time,
    nonce: Optional[str] = None,
) -> dict[str, str]:
    return {
        "dl": document_location(env.location),
        "sr": f"{env.screen_width}x{env.screen_height}",
        "sd": f"{env.color_depth}-bit",
        "ul": env.language,
        "ua": env.user_agent,
        "dr": env.referrer,
        "dt": env.title,
        "de": env.character_set,
        "tm": str(int(clock() * 1000)),
        "z": nonce or str(uuid.uuid4()),
    }
