#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from . import config
from .dispatcher import UATrack
from .identity import IdentityStore
from .storage import storage_for


def _read_text(maybe_path: str) -> str:
    p = Path(maybe_path)
    if p.exists():
        return p.read_text(encoding="utf-8")
    return maybe_path


def _read_json(maybe_path_or_json: str) -> dict[str, Any]:
    parsed = json.loads(_read_text(maybe_path_or_json))
    if not isinstance(parsed, dict):
        raise ValueError("expected a JSON object")
    return parsed


def _parse_pairs(pairs: Optional[list[str]]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"expected key=value, got {pair!r}")
        out[key] = value
    return out


def _emit(payload: Any, output_format: str) -> None:
    if output_format == "json":
        print(json.dumps(payload, sort_keys=True))
        return
    print(payload)


def _fail(message: str, output_format: str, *, code: int = 1) -> None:
    payload = {"status": "error", "error": message, "exit_code": code}
    _emit(payload if output_format == "json" else message, output_format)
    raise SystemExit(code)


async def _send(args: argparse.Namespace) -> Any:
    ua = UATrack(storage=storage_for(args.storage))
    ua("init", args.token, args.endpoint)
    overrides = _parse_pairs(args.set)
    if overrides:
        ua("set", overrides)
    if args.action:
        ua("svc:setAction", args.action, _read_json(args.action_data) if args.action_data else None)
    if args.ticket:
        ua("svc:setTicket", _read_json(args.ticket))
    return await ua("send", args.event_type, _parse_pairs(args.field))


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Send analytics events from the command line")
    parser.add_argument("--endpoint", default=config.get_endpoint())
    parser.add_argument("--token", default=config.get_token())
    parser.add_argument("--storage", default=os.getenv("UATRACK_STORAGE_PATH"), help="JSON file holding the visitor id")
    parser.add_argument("--format", choices=["json", "text"], default="json")
    parser.add_argument("-v", "--verbose", action="store_true")

    sub = parser.add_subparsers(dest="cmd", required=True)

    p_send = sub.add_parser("send", help="Send one event")
    p_send.add_argument("event_type", help="pageview, event, ...")
    p_send.add_argument("--field", action="append", help="Inline event field as key=value")
    p_send.add_argument("--set", action="append", help="Global override as key=value")
    p_send.add_argument("--action", help="Service action name")
    p_send.add_argument("--action-data", help="JSON object or path to JSON file")
    p_send.add_argument("--ticket", help="Ticket JSON object or path to JSON file")

    sub.add_parser("visitor", help="Print the visitor id, creating it if needed")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.cmd == "send":
            result = asyncio.run(_send(args))
            _emit(result if result is not None else {"status": "disabled"}, args.format)
        elif args.cmd == "visitor":
            visitor_id = IdentityStore(storage_for(args.storage)).get_visitor_id()
            _emit({"visitorId": visitor_id} if args.format == "json" else visitor_id, args.format)
        else:
            _fail(f"unknown cmd: {args.cmd}", args.format, code=2)
    except SystemExit:
        raise
    except Exception as exc:
        _fail(str(exc), args.format, code=1)


if __name__ == "__main__":
    main()
