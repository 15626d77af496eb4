from __future__ import annotations

from typing import List, Protocol

from huepanel.models import Group, Light, ModificationReceipt, Scene, StateModifier


class BridgeError(RuntimeError):
    """Raised when a bridge operation fails."""


class DiscoveryError(BridgeError):
    """Raised when no bridge can be located."""


class PairingError(BridgeError):
    """Raised when the bridge refuses to issue an access token."""


class BridgeResponseError(BridgeError):
    """Raised when the bridge answers with error entries or an unexpected payload."""


class BridgeClient(Protocol):
    async def discover(self) -> str:
        ...

    async def register(self, address: str, client_name: str) -> str:
        ...

    async def fetch_lights(self, address: str, token: str) -> List[Light]:
        ...

    async def fetch_groups(self, address: str, token: str) -> List[Group]:
        ...

    async def fetch_scenes(self, address: str, token: str) -> List[Scene]:
        ...

    async def push_light_state(
        self, address: str, token: str, light_id: str, modifier: StateModifier
    ) -> List[ModificationReceipt]:
        ...

    async def push_group_state(
        self, address: str, token: str, group_id: str, modifier: StateModifier
    ) -> List[ModificationReceipt]:
        ...
