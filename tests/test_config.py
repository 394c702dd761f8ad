from __future__ import annotations

from pathlib import Path

import pytest

from uatrack import config
from uatrack.config import ClientOptions, load_options


def test_load_options_from_yaml(tmp_path: Path) -> None:
    cfg = tmp_path / "uatrack.yaml"
    cfg.write_text(
        """
token: abc
endpoint: https://collect.example.com
plugins: [svc]
plugin_options:
  svc:
    team: support
timeout_s: 3
track_history: false
""".strip()
        + "\n",
        encoding="utf-8",
    )

    opts = load_options(cfg)
    assert opts.token == "abc"
    assert opts.endpoint == "https://collect.example.com"
    assert opts.plugins == ("svc",)
    assert opts.plugin_options == {"svc": {"team": "support"}}
    assert opts.timeout_s == 3.0
    assert opts.track_history is False
    assert opts.enable_analytics is True


def test_empty_yaml_gives_defaults(tmp_path: Path) -> None:
    cfg = tmp_path / "empty.yaml"
    cfg.write_text("", encoding="utf-8")
    assert load_options(cfg) == ClientOptions()


@pytest.mark.parametrize(
    "text",
    [
        "- just\n- a list\n",
        "plugins: svc\n",
        "plugin_options: [svc]\n",
        "plugin_options:\n  svc: nope\n",
    ],
)
def test_invalid_yaml_rejected(tmp_path: Path, text: str) -> None:
    cfg = tmp_path / "bad.yaml"
    cfg.write_text(text, encoding="utf-8")
    with pytest.raises(ValueError):
        load_options(cfg)


def test_env_driven_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    assert config.get_endpoint() == config.DEFAULT_ENDPOINT
    assert config.analytics_enabled() is True
    assert config.do_not_track() is False

    monkeypatch.setenv("UATRACK_ENDPOINT", "https://env.example.com")
    monkeypatch.setenv("UATRACK_TOKEN", "env-token")
    monkeypatch.setenv("UATRACK_ENABLED", "false")
    monkeypatch.setenv("UATRACK_TIMEOUT_S", "2.5")
    monkeypatch.setenv("UATRACK_STORAGE_PATH", str(tmp_path / "s.json"))
    monkeypatch.setenv("UATRACK_DO_NOT_TRACK", "yes")

    opts = ClientOptions.from_env()
    assert opts.endpoint == "https://env.example.com"
    assert opts.token == "env-token"
    assert opts.enable_analytics is False
    assert opts.timeout_s == 2.5
    assert opts.storage_path == str(tmp_path / "s.json")
    assert config.do_not_track() is True


def test_mapping_overrides_base() -> None:
    base = ClientOptions(token="base", endpoint="https://base")
    opts = ClientOptions.from_mapping({"endpoint": "https://override"}, base=base)
    assert opts.token == "base"
    assert opts.endpoint == "https://override"
