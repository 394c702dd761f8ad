"""
Event assembly.

An event is one flat JSON object. Sources are merged in a fixed order, later
ones winning on collisions:

    context -> identity -> `set` overrides -> plugin fields -> inline fields

Inline fields come from the caller of `send` and go through the
measurement-protocol key map: long names are shortened (`page` -> `dp`), short
keys we know pass as-is, anything else is dropped.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Optional

from .plugins.ec import ACTION_KEYS, IMPRESSION_KEYS, PRODUCT_KEYS
from .plugins.svc import TICKET_KEYS

logger = logging.getLogger(__name__)

LONG_KEYS = {
    "anonymizeIp": "aip",
    "clientId": "cid",
    "userId": "uid",
    "location": "dl",
    "referrer": "dr",
    "page": "dp",
    "hostname": "dh",
    "title": "dt",
    "encoding": "de",
    "language": "ul",
    "userAgent": "ua",
    "screenResolution": "sr",
    "screenColor": "sd",
    "viewport": "vp",
    "pageViewId": "pid",
    "time": "tm",
    "eventCategory": "ec",
    "eventAction": "ea",
    "eventLabel": "el",
    "eventValue": "ev",
    "nonInteraction": "ni",
    "currencyCode": "cu",
    "appName": "an",
    "appVersion": "av",
    "appId": "aid",
    "exceptionDescription": "exd",
    "exceptionFatal": "exf",
}

_SHORT_KEYS = (
    set(LONG_KEYS.values())
    | {"z", "pa"}
    | set(ACTION_KEYS.values())
    | set(TICKET_KEYS.values())
    | {"svc_action", "svc_action_data"}
)

_product_codes = "|".join(PRODUCT_KEYS.values())
_impression_codes = "|".join(IMPRESSION_KEYS.values())
_PATTERNS = (
    re.compile(rf"^pr\d+({_product_codes})$"),
    re.compile(r"^il\d+nm$"),
    re.compile(rf"^il\d+pi\d+({_impression_codes})$"),
    re.compile(r"^c[dm]\d+$"),
)


def is_known_key(key: str) -> bool:
    return key in _SHORT_KEYS or any(p.match(key) for p in _PATTERNS)


def convert_inline_fields(fields: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in (fields or {}).items():
        short = LONG_KEYS.get(key, key)
        if is_known_key(short):
            out[short] = value
        else:
            logger.debug("dropping unknown event field %r", key)
    return out


def assemble_event(
    event_type: str,
    *,
    context: Mapping[str, Any],
    identity: Mapping[str, Any],
    overrides: Optional[Mapping[str, Any]] = None,
    plugin_fields: Optional[Mapping[str, Any]] = None,
    fields: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    event: dict[str, Any] = {}
    event.update(context)
    event.update(identity)
    event.update(overrides or {})
    event.update(plugin_fields or {})
    event.update(convert_inline_fields(fields))
    event["t"] = event_type
    return event
