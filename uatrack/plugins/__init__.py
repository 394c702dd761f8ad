"""
Capability modules.

Built in: `ec` (commerce) and `svc` (service/ticket). Anything else is added
with `provide(name, factory)`, where `factory(options)` returns a `BasePlugin`.
"""

from .base import BasePlugin
from .ec import ECPlugin
from .registry import DEFAULT_PLUGINS, PluginCatalog, Plugins, default_catalog
from .svc import SVCPlugin, Ticket

__all__ = [
    "BasePlugin",
    "ECPlugin",
    "SVCPlugin",
    "Ticket",
    "PluginCatalog",
    "Plugins",
    "DEFAULT_PLUGINS",
    "default_catalog",
]
