from __future__ import annotations

from typing import Any, Callable, List, Optional

import pytest

from huepanel.bridge.base import BridgeError, PairingError
from huepanel.config import PanelConfig
from huepanel.context import PanelContext
from huepanel.models import (
    Group,
    GroupState,
    Light,
    LightState,
    ModificationReceipt,
    Scene,
    StateModifier,
)
from huepanel.settings import BridgeSettings, MemorySettingsStore

BRIDGE_ADDRESS = "192.0.2.10"
TOKEN = "test-token"


def sample_lights() -> List[Light]:
    return [
        Light("1", "Kitchen", LightState(on=True, brightness=200, hue=0, saturation=254, reachable=True)),
        Light("2", "Desk", LightState(on=False, brightness=100, hue=21845, saturation=254, reachable=True)),
        Light("3", "bedroom lamp", LightState(on=True, brightness=50, hue=None, saturation=None, reachable=False)),
    ]


def sample_groups() -> List[Group]:
    return [
        Group("1", "Downstairs", ["1", "2"], GroupState(any_on=True)),
        Group("2", "Empty", [], GroupState(any_on=False)),
    ]


def sample_scenes() -> List[Scene]:
    return [
        Scene("abc", "Relax", "1"),
        Scene("def", "Light scene", None),
    ]


class FakeBridgeClient:
    """Records every call; answers from in-memory fixtures."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.lights = sample_lights()
        self.groups = sample_groups()
        self.scenes = sample_scenes()
        self.discover_address: Optional[str] = BRIDGE_ADDRESS
        self.register_token: Optional[str] = "new-token"
        self.push_error: Optional[str] = None
        self.fetch_error: Optional[str] = None

    def calls_named(self, name: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]

    async def discover(self) -> str:
        self.calls.append(("discover",))
        if self.discover_address is None:
            raise BridgeError("No bridge found")
        return self.discover_address

    async def register(self, address: str, client_name: str) -> str:
        self.calls.append(("register", address, client_name))
        if self.register_token is None:
            raise PairingError("link button not pressed")
        return self.register_token

    async def fetch_lights(self, address: str, token: str) -> List[Light]:
        self.calls.append(("fetch_lights", address, token))
        self._maybe_fail_fetch()
        return list(self.lights)

    async def fetch_groups(self, address: str, token: str) -> List[Group]:
        self.calls.append(("fetch_groups", address, token))
        self._maybe_fail_fetch()
        return list(self.groups)

    async def fetch_scenes(self, address: str, token: str) -> List[Scene]:
        self.calls.append(("fetch_scenes", address, token))
        self._maybe_fail_fetch()
        return list(self.scenes)

    async def push_light_state(
        self, address: str, token: str, light_id: str, modifier: StateModifier
    ) -> List[ModificationReceipt]:
        self.calls.append(("push_light_state", light_id, modifier))
        return self._receipts("lights", light_id, "state", modifier)

    async def push_group_state(
        self, address: str, token: str, group_id: str, modifier: StateModifier
    ) -> List[ModificationReceipt]:
        self.calls.append(("push_group_state", group_id, modifier))
        return self._receipts("groups", group_id, "action", modifier)

    def _maybe_fail_fetch(self) -> None:
        if self.fetch_error is not None:
            raise BridgeError(self.fetch_error)

    def _receipts(self, kind: str, resource_id: str, leaf: str, modifier: StateModifier) -> List[ModificationReceipt]:
        if self.push_error is not None:
            raise BridgeError(self.push_error)
        return [
            ModificationReceipt(f"/{kind}/{resource_id}/{leaf}/{key}", value)
            for key, value in modifier.to_payload().items()
        ]


@pytest.fixture
def fake_bridge() -> FakeBridgeClient:
    return FakeBridgeClient()


@pytest.fixture
def make_ctx(fake_bridge: FakeBridgeClient) -> Callable[..., PanelContext]:
    def _make(
        *,
        config: Optional[PanelConfig] = None,
        paired: bool = True,
        populated: bool = True,
        **settings: Any,
    ) -> PanelContext:
        if paired:
            stored = BridgeSettings(bridge_address=BRIDGE_ADDRESS, access_token=TOKEN)
        else:
            stored = BridgeSettings(**settings)
        ctx = PanelContext(
            config=config or PanelConfig(),
            client=fake_bridge,
            settings_store=MemorySettingsStore(stored),
        )
        if populated:
            ctx.store.replace_lights(sample_lights())
            ctx.store.replace_groups(sample_groups())
            ctx.store.replace_scenes(sample_scenes())
        return ctx

    return _make


@pytest.fixture
def ctx(make_ctx: Callable[..., PanelContext]) -> PanelContext:
    return make_ctx()
