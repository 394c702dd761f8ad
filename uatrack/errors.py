from __future__ import annotations

from typing import Optional


class UATrackError(Exception):
    """Base class for every error raised by uatrack."""


class ConfigurationError(UATrackError):
    """Programmer error: the client was used in a way it was not set up for."""


class UnknownCommandError(ConfigurationError):
    pass


class UnregisteredPluginError(ConfigurationError):
    def __init__(self, name: str):
        self.plugin = name
        super().__init__(
            f'No plugin named "{name}" is currently registered. '
            "If you use a custom plugin, use 'provide' first."
        )


class NotRequiredPluginError(ConfigurationError):
    def __init__(self, name: str):
        self.plugin = name
        super().__init__(
            f'The plugin "{name}" is not required. Check that you required it on initialization.'
        )


class UnknownMethodError(ConfigurationError):
    def __init__(self, name: str, method: str, message: Optional[str] = None):
        self.plugin = name
        self.method = method
        super().__init__(message or f'The function "{method}" does not exists on the plugin "{name}".')


class NotCallableError(UnknownMethodError):
    def __init__(self, name: str, method: str):
        super().__init__(name, method, f'"{method}" of the plugin "{name}" is not a function.')


class TransportError(UATrackError, RuntimeError):
    """The collection endpoint could not be reached or refused the event."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, detail: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


__all__ = [
    "UATrackError",
    "ConfigurationError",
    "UnknownCommandError",
    "UnregisteredPluginError",
    "NotRequiredPluginError",
    "UnknownMethodError",
    "NotCallableError",
    "TransportError",
]
