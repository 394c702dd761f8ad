from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from ..config import DEFAULT_PLUGINS
from ..errors import NotRequiredPluginError, UnregisteredPluginError
from .base import BasePlugin, PluginOptions
from .ec import ECPlugin
from .svc import SVCPlugin

logger = logging.getLogger(__name__)

PluginFactory = Callable[[PluginOptions], BasePlugin]

__all__ = ["DEFAULT_PLUGINS", "PluginCatalog", "Plugins", "default_catalog"]


class PluginCatalog:
    """
    What *can* be required: plugin name -> factory.

    One catalog is shared by every client in the process (`default_catalog`);
    third parties extend it with `provide` without touching uatrack itself.
    """

    def __init__(self, factories: Optional[dict[str, PluginFactory]] = None):
        self._factories: dict[str, PluginFactory] = dict(factories or {})

    def provide(self, name: str, factory: PluginFactory) -> None:
        if not callable(factory):
            raise TypeError(f"plugin factory for {name!r} must be callable")
        self._factories[name] = factory

    def unregister(self, name: str) -> None:
        self._factories.pop(name, None)

    def get(self, name: str) -> Optional[PluginFactory]:
        return self._factories.get(name)

    def names(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories


default_catalog = PluginCatalog({ECPlugin.id: ECPlugin, SVCPlugin.id: SVCPlugin})


class Plugins:
    """What *is* required for one client: plugin name -> live module."""

    def __init__(self, catalog: PluginCatalog):
        self.catalog = catalog
        self._required: dict[str, BasePlugin] = {}

    def require(self, name: str, options: PluginOptions = None) -> BasePlugin:
        factory = self.catalog.get(name)
        if factory is None:
            raise UnregisteredPluginError(name)
        plugin = factory(options)
        self._required[name] = plugin
        logger.debug("required plugin %s", name)
        return plugin

    def provide(self, name: str, factory: PluginFactory) -> None:
        self.catalog.provide(name, factory)

    def get(self, name: str) -> Optional[BasePlugin]:
        return self._required.get(name)

    def required(self) -> list[str]:
        return list(self._required)

    def execute(self, name: str, method: str, *args: Any) -> Any:
        plugin = self._required.get(name)
        if plugin is None:
            raise NotRequiredPluginError(name)
        return plugin.resolve(method, name)(*args)

    def materialize(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for plugin in self._required.values():
            out.update(plugin.materialize())
        return out

    def clear_required(self) -> None:
        self._required = {}
