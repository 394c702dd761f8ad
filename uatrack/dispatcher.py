"""
The command dispatcher: the one callable an application talks to.

    ua = UATrack()
    ua("svc:setAction", "ticket_create_start")   # buffered, not initialized yet
    ua("init", token, "https://analytics.example.com")
    await ua("send", "pageview")

Until `init` runs, commands are queued in order. `init` builds the transport,
requires the plugins and then replays the queue; from then on every command
is applied as soon as it is issued.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Callable, Mapping, Optional

import httpx

from . import config
from .assembler import assemble_event
from .config import ClientOptions
from .context import Environment, context_snapshot
from .errors import UnknownCommandError
from .history import HistoryElement, HistoryStore
from .identity import IdentityStore
from .plugins.registry import PluginCatalog, PluginFactory, Plugins, default_catalog
from .storage import FileStorage, Storage
from .transport import HttpTransport, NoopTransport, Transport, select_transport

logger = logging.getLogger(__name__)


class State(Enum):
    BUFFERING = "buffering"
    READY = "ready"


# Commands applied immediately even while buffering.
_UNBUFFERED = frozenset({"init", "reset"})


class Delivery:
    """
    Awaitable result of one `send`.

    Awaiting it hands the transport's answer, or its `TransportError`, to the
    caller. Failures nobody awaited are raised by `UATrack.flush()` instead.
    """

    def __init__(self, task: asyncio.Task, release: Callable[[Delivery], None]):
        self.task = task
        self.awaited = False
        self._release = release

    def __await__(self):
        self.awaited = True
        if self.task.done():
            self._release(self)
        return self.task.__await__()

    def done(self) -> bool:
        return self.task.done()


class UATrack:
    commands: Mapping[str, str] = {
        "init": "init",
        "set": "set",
        "send": "send",
        "reset": "reset",
        "require": "require",
        "provide": "provide",
        "enable": "enable",
        "disable": "disable",
    }

    def __init__(
        self,
        *,
        catalog: PluginCatalog = default_catalog,
        storage: Optional[Storage] = None,
        environment: Optional[Environment] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        do_not_track: Callable[[], bool] = config.do_not_track,
        clock: Callable[[], float] = time.time,
    ):
        self.plugins = Plugins(catalog)
        self.environment = environment or Environment()
        self.identity = IdentityStore(storage)
        self.history = HistoryStore(self.identity.storage, clock=clock)
        self.options = ClientOptions()
        self.state = State.BUFFERING

        self._explicit_storage = storage is not None
        self._http_client = http_client
        self._do_not_track = do_not_track
        self._clock = clock
        self._token: Optional[str] = None
        self._endpoint: str = config.DEFAULT_ENDPOINT
        self._transport: Optional[Transport] = None
        self._buffer: list[tuple[str, tuple[Any, ...]]] = []
        self._overrides: dict[str, Any] = {}
        self._provided: list[str] = []
        self._pending: dict[Delivery, None] = {}

    def __call__(self, command: str, *args: Any) -> Any:
        if self.state is State.BUFFERING and command not in _UNBUFFERED:
            logger.debug("client not initialized, queueing %s", command)
            self._buffer.append((command, args))
            return None
        return self._dispatch(command, args)

    def _dispatch(self, command: str, args: tuple[Any, ...]) -> Any:
        handler = self.commands.get(command)
        if handler is not None:
            return getattr(self, handler)(*args)
        name, sep, method = command.partition(":")
        if not sep:
            raise UnknownCommandError(f"unknown command: {command!r}")
        return self.plugins.execute(name, method, *args)

    @property
    def transport(self) -> Optional[Transport]:
        return self._transport

    @property
    def overrides(self) -> dict[str, Any]:
        return dict(self._overrides)

    @property
    def pending_commands(self) -> int:
        return len(self._buffer)

    # --- built-in commands ---
    def init(
        self,
        token: Optional[str] = None,
        endpoint: Optional[str] = None,
        options: Optional[Mapping[str, Any] | ClientOptions] = None,
    ) -> None:
        if self.state is State.READY:
            self.reset()

        if isinstance(options, ClientOptions):
            opts = options
        else:
            opts = ClientOptions.from_mapping(options or {}, base=ClientOptions.from_env())
        self.options = opts
        self._token = token or opts.token
        self._endpoint = endpoint or opts.endpoint or config.get_endpoint()

        if opts.storage_path and not self._explicit_storage:
            self.identity = IdentityStore(FileStorage(opts.storage_path), page_id=self.identity.page_id)
            self.history = HistoryStore(self.identity.storage, clock=self._clock)

        self._transport = select_transport(
            self._token,
            self._endpoint,
            self.identity,
            enabled=opts.enable_analytics,
            do_not_track=self._do_not_track,
            client=self._http_client,
            timeout_s=opts.timeout_s,
        )

        for name in dict.fromkeys([*opts.plugins, *self._provided]):
            self.plugins.require(name, opts.plugin_options.get(name))

        self.state = State.READY
        queued, self._buffer = self._buffer, []
        logger.debug("initialized for %s, replaying %d queued commands", self._endpoint, len(queued))
        failure: Optional[Exception] = None
        for command, args in queued:
            try:
                self._dispatch(command, args)
            except Exception as exc:
                # The rest of the queue is still applied, in order.
                logger.warning("queued command %s failed: %s", command, exc)
                if failure is None:
                    failure = exc
        if failure is not None:
            raise failure

    def set(self, key: str | Mapping[str, Any], value: Any = None) -> None:
        if isinstance(key, Mapping):
            self._overrides.update(key)
        else:
            self._overrides[key] = value

    def send(self, event_type: str, fields: Optional[Mapping[str, Any]] = None) -> Delivery:
        loop = asyncio.get_running_loop()
        payload = assemble_event(
            event_type,
            context=context_snapshot(self.environment, clock=self._clock),
            identity=self.identity.fields(),
            overrides=self._overrides,
            plugin_fields=self.plugins.materialize(),
            fields=fields,
        )
        if event_type == "pageview" and self.options.track_history:
            page = payload.get("dp") or payload.get("dl") or ""
            if page:
                self.history.add_element(HistoryElement(name="PageView", value=str(page)))

        task = loop.create_task(self._transport.send_event(event_type, payload))
        delivery = Delivery(task, self._release)
        self._pending[delivery] = None
        task.add_done_callback(lambda _: self._settle(delivery))
        return delivery

    def _release(self, delivery: Delivery) -> None:
        self._pending.pop(delivery, None)

    def _settle(self, delivery: Delivery) -> None:
        task = delivery.task
        if task.cancelled() or task.exception() is None or delivery.awaited:
            self._release(delivery)
            return
        # Nobody is waiting on it; kept until flush() so the failure reaches a caller.
        logger.warning("event delivery failed: %s", task.exception())

    @property
    def pending_sends(self) -> int:
        return len(self._pending)

    async def flush(self) -> None:
        """Wait for every send issued so far; re-raise the first failure no caller has awaited."""
        pending = list(self._pending)
        self._pending.clear()
        if not pending:
            return
        results = await asyncio.gather(*(d.task for d in pending), return_exceptions=True)
        for delivery, result in zip(pending, results):
            if isinstance(result, Exception) and not delivery.awaited:
                raise result

    def reset(self) -> None:
        if self._buffer:
            logger.warning("reset discards %d queued commands", len(self._buffer))
        self._buffer = []
        self.plugins.clear_required()
        self._overrides = {}
        self._transport = None
        self.state = State.BUFFERING

    def require(self, name: str, options: Optional[Mapping[str, Any]] = None) -> None:
        self.plugins.require(name, options)

    def provide(self, name: str, factory: PluginFactory) -> None:
        self.plugins.provide(name, factory)
        if name not in self._provided:
            self._provided.append(name)
        self.plugins.require(name, self.options.plugin_options.get(name))

    def disable(self) -> None:
        if self._transport is not None:
            self._transport.clear()
        self._transport = NoopTransport()

    def enable(self) -> None:
        self._transport = HttpTransport(
            self._token,
            self._endpoint,
            self.identity,
            client=self._http_client,
            timeout_s=self.options.timeout_s,
        )
