"""
uatrack: command-driven analytics client.

Commands go through one callable (`UATrack`); plugins accumulate domain state
(`ec`, `svc`, or anything `provide`d); every `send` flattens context, identity
and plugin state into one event and posts it to the collection endpoint.
"""

__version__ = "0.3.0"

from .config import ClientOptions, load_options
from .context import Environment
from .dispatcher import Delivery, State, UATrack
from .errors import (
    ConfigurationError,
    NotCallableError,
    NotRequiredPluginError,
    TransportError,
    UATrackError,
    UnknownCommandError,
    UnknownMethodError,
    UnregisteredPluginError,
)
from .identity import IdentityStore
from .insight import InsightClient
from .plugins import BasePlugin, PluginCatalog, default_catalog
from .storage import FileStorage, MemoryStorage
from .transport import HttpTransport, NoopTransport

__all__ = [
    "__version__",
    "UATrack",
    "State",
    "Delivery",
    "ClientOptions",
    "load_options",
    "Environment",
    "IdentityStore",
    "InsightClient",
    "BasePlugin",
    "PluginCatalog",
    "default_catalog",
    "FileStorage",
    "MemoryStorage",
    "HttpTransport",
    "NoopTransport",
    "UATrackError",
    "ConfigurationError",
    "UnknownCommandError",
    "UnregisteredPluginError",
    "NotRequiredPluginError",
    "UnknownMethodError",
    "NotCallableError",
    "TransportError",
]
