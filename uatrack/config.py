"""
uatrack configuration: environment-driven defaults plus an optional YAML file.

Environment:
- UATRACK_ENDPOINT=https://analytics.example.com
- UATRACK_TOKEN=...
- UATRACK_TIMEOUT_S=10
- UATRACK_ENABLED=false      (disables tracking entirely)
- UATRACK_STORAGE_PATH=...   (JSON file holding the visitor id and history)
- DO_NOT_TRACK=1 or UATRACK_DO_NOT_TRACK=1
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

DEFAULT_ENDPOINT = "https://analytics.example.com"
DEFAULT_PLUGINS = ("ec", "svc")
DEFAULT_TIMEOUT_S = 10.0


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def get_endpoint() -> str:
    raw = os.environ.get("UATRACK_ENDPOINT", "").strip()
    return raw or DEFAULT_ENDPOINT


def get_token() -> Optional[str]:
    return os.environ.get("UATRACK_TOKEN", "").strip() or None


def get_timeout_s() -> float:
    return float(os.environ.get("UATRACK_TIMEOUT_S", str(DEFAULT_TIMEOUT_S)))


def analytics_enabled() -> bool:
    return _bool_env("UATRACK_ENABLED", True)


def get_storage_path() -> Optional[Path]:
    raw = os.environ.get("UATRACK_STORAGE_PATH", "").strip()
    return Path(raw) if raw else None


def do_not_track() -> bool:
    """Honour the DO_NOT_TRACK convention as well as our own variable."""
    return _bool_env("DO_NOT_TRACK") or _bool_env("UATRACK_DO_NOT_TRACK")


@dataclass(frozen=True)
class ClientOptions:
    token: Optional[str] = None
    endpoint: Optional[str] = None
    plugins: tuple[str, ...] = DEFAULT_PLUGINS
    # Per-plugin options handed to the plugin factory on require.
    plugin_options: dict[str, dict[str, Any]] = field(default_factory=dict)
    enable_analytics: bool = True
    timeout_s: float = DEFAULT_TIMEOUT_S
    storage_path: Optional[str] = None
    track_history: bool = True

    @classmethod
    def from_env(cls) -> "ClientOptions":
        storage_path = get_storage_path()
        return cls(
            token=get_token(),
            endpoint=get_endpoint(),
            enable_analytics=analytics_enabled(),
            timeout_s=get_timeout_s(),
            storage_path=str(storage_path) if storage_path else None,
        )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], base: Optional["ClientOptions"] = None) -> "ClientOptions":
        if not isinstance(raw, Mapping):
            raise ValueError("client options must be a mapping")
        base = base or cls()

        plugins = raw.get("plugins", base.plugins)
        if isinstance(plugins, str) or not all(isinstance(p, str) for p in plugins):
            raise ValueError("`plugins` must be a list of plugin names")

        plugin_options = raw.get("plugin_options", base.plugin_options)
        if not isinstance(plugin_options, Mapping):
            raise ValueError("`plugin_options` must be a mapping of plugin name to options")
        for name, opts in plugin_options.items():
            if opts is not None and not isinstance(opts, Mapping):
                raise ValueError(f"options for plugin {name!r} must be a mapping")

        storage_path = raw.get("storage_path", base.storage_path)
        return cls(
            token=raw.get("token", base.token),
            endpoint=raw.get("endpoint", base.endpoint),
            plugins=tuple(plugins),
            plugin_options={k: dict(v or {}) for k, v in plugin_options.items()},
            enable_analytics=bool(raw.get("enable_analytics", base.enable_analytics)),
            timeout_s=float(raw.get("timeout_s", base.timeout_s)),
            storage_path=str(storage_path) if storage_path else None,
            track_history=bool(raw.get("track_history", base.track_history)),
        )


def load_options(path: Path, base: Optional[ClientOptions] = None) -> ClientOptions:
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError("uatrack config must be a mapping")
    return ClientOptions.from_mapping(raw, base=base)
