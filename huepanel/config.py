from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_SETTLE_DELAY_MS = 300.0
# Outlasts the bridge's own scene transition so the refetch sees final values.
DEFAULT_CONVERGENCE_DELAY_S = 10.0
DEFAULT_CLIENT_NAME = "huepanel"
DEFAULT_DISCOVERY_URL = "https://discovery.meethue.com/"


def _truthy_env(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    v = os.environ.get(name)
    if v is None or v.strip() == "":
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _opt_float(name: str) -> float | None:
    v = os.environ.get(name)
    if v is None or v.strip() == "":
        return None
    try:
        return float(v)
    except ValueError:
        return None


def _default_settings_path() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME", "").strip()
    root = Path(base) if base else Path.home() / ".config"
    return root / "huepanel" / "settings.json"


@dataclass(frozen=True, slots=True)
class PanelConfig:
    settle_delay_s: float = DEFAULT_SETTLE_DELAY_MS / 1000.0
    convergence_delay_s: float = DEFAULT_CONVERGENCE_DELAY_S
    refresh_interval_s: float = 0.0
    refresh_on_start: bool = True
    client_name: str = DEFAULT_CLIENT_NAME
    settings_path: Path | None = None
    http_timeout_s: float | None = None
    discovery_url: str = DEFAULT_DISCOVERY_URL

    @staticmethod
    def from_env() -> "PanelConfig":
        settle_ms = _env_float("HUEPANEL_SETTLE_DELAY_MS", DEFAULT_SETTLE_DELAY_MS)
        if settle_ms < 0:
            settle_ms = DEFAULT_SETTLE_DELAY_MS

        convergence = _env_float("HUEPANEL_CONVERGENCE_DELAY_S", DEFAULT_CONVERGENCE_DELAY_S)
        if convergence < 0:
            convergence = DEFAULT_CONVERGENCE_DELAY_S

        interval = max(0.0, _env_float("HUEPANEL_REFRESH_INTERVAL_S", 0.0))

        timeout = _opt_float("HUEPANEL_HTTP_TIMEOUT_S")
        if timeout is not None and timeout <= 0:
            timeout = None

        settings_path_s = os.environ.get("HUEPANEL_SETTINGS_PATH", "").strip()
        client_name = os.environ.get("HUEPANEL_CLIENT_NAME", DEFAULT_CLIENT_NAME).strip() or DEFAULT_CLIENT_NAME
        discovery_url = os.environ.get("HUEPANEL_DISCOVERY_URL", DEFAULT_DISCOVERY_URL).strip() or DEFAULT_DISCOVERY_URL

        return PanelConfig(
            settle_delay_s=settle_ms / 1000.0,
            convergence_delay_s=convergence,
            refresh_interval_s=interval,
            refresh_on_start=_truthy_env("HUEPANEL_REFRESH_ON_START", "1"),
            client_name=client_name,
            settings_path=Path(settings_path_s) if settings_path_s else _default_settings_path(),
            http_timeout_s=timeout,
            discovery_url=discovery_url,
        )
