from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Mapping, Optional

from ..errors import NotCallableError, UnknownMethodError

PluginOptions = Optional[Mapping[str, Any]]


class BasePlugin(ABC):
    """
    A capability module: pending domain state plus named operations.

    `api` maps the command names callers use (`"svc:setAction"`) onto Python
    methods. Subclasses add their own entries on top of the shared ones.
    """

    id: ClassVar[str] = ""
    api: ClassVar[Mapping[str, str]] = {"clearData": "clear"}

    def __init__(self, options: PluginOptions = None):
        self.options: dict[str, Any] = dict(options or {})

    def resolve(self, method: str, name: Optional[str] = None) -> Callable[..., Any]:
        name = name or self.id
        attr = self.api.get(method, method)
        if attr.startswith("_") or not hasattr(self, attr):
            raise UnknownMethodError(name, method)
        member = getattr(self, attr)
        if not callable(member):
            raise NotCallableError(name, method)
        return member

    @abstractmethod
    def materialize(self) -> dict[str, Any]:
        """Flat, allow-listed fields for the next event."""

    @abstractmethod
    def clear(self) -> None: ...


def non_empty(value: Any) -> bool:
    return value is not None and value != "" and value != {} and value != []
