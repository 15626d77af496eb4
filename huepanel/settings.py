"""
Bridge settings storage.

Only two fields persist between runs: the bridge address and the access
token the bridge issued when pairing.
"""

from __future__ import annotations

import ipaddress
import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Protocol

from huepanel.panel_logging import get_logger

logger = logging.getLogger(__name__)
log = get_logger("HUEPANEL.Settings")

_SETTINGS_VERSION = 1


@dataclass(frozen=True, slots=True)
class BridgeSettings:
    bridge_address: Optional[str] = None
    access_token: Optional[str] = None

    @property
    def credentials(self) -> Optional[tuple[str, str]]:
        """(address, token) when both are set, else None."""
        if not self.bridge_address or not self.access_token:
            return None
        return self.bridge_address, self.access_token

    def with_address(self, address: Optional[str]) -> "BridgeSettings":
        return replace(self, bridge_address=address)

    def with_token(self, token: Optional[str]) -> "BridgeSettings":
        return replace(self, access_token=token)


class SettingsStore(Protocol):
    def load(self) -> BridgeSettings:
        ...

    def save(self, settings: BridgeSettings) -> None:
        ...


class MemorySettingsStore:
    def __init__(self, settings: Optional[BridgeSettings] = None) -> None:
        self._settings = settings or BridgeSettings()

    def load(self) -> BridgeSettings:
        return self._settings

    def save(self, settings: BridgeSettings) -> None:
        self._settings = settings


def _valid_address(value: object) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None


class JsonSettingsStore:
    """Settings kept in a small JSON file. Unreadable files load as empty settings."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> BridgeSettings:
        if not self._path.exists():
            logger.info("No settings file found, starting unpaired")
            return BridgeSettings()

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            log.error("HUEPANEL.Settings.LoadError", extra={"fields": {
                "path": str(self._path),
                "error": str(e),
            }})
            return BridgeSettings()

        if not isinstance(data, dict):
            return BridgeSettings()

        address = _valid_address(data.get("bridge_address"))
        if data.get("bridge_address") and address is None:
            log.warning("HUEPANEL.Settings.InvalidAddress", extra={"fields": {
                "path": str(self._path),
                "value": data.get("bridge_address"),
            }})
        token = data.get("access_token")
        if not isinstance(token, str) or not token:
            token = None
        return BridgeSettings(bridge_address=address, access_token=token)

    def save(self, settings: BridgeSettings) -> None:
        data = {
            "version": _SETTINGS_VERSION,
            "bridge_address": settings.bridge_address,
            "access_token": settings.access_token,
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            log.error("HUEPANEL.Settings.SaveError", extra={"fields": {
                "path": str(self._path),
                "error": str(e),
            }})
            return
        logger.info(f"Saved settings: {self._path}")
