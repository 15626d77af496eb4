"""
Events processed by the panel loop, and the effects handlers return.

Every state change happens while handling exactly one event. Anything slow
(network calls, delays) is an effect that resolves into a later event.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, Tuple, TypeVar, Union

from huepanel.color import HsvColor
from huepanel.models import EditKey, Group, Light, ModificationReceipt, ResourceRef, Scene, SelectionKey

T = TypeVar("T")

# (address, token) a fetch was issued under.
Credentials = Tuple[str, str]


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of a background call: a value, or an error message."""

    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @staticmethod
    def success(value: T) -> "Outcome[T]":
        return Outcome(value=value)

    @staticmethod
    def failure(error: str) -> "Outcome[Any]":
        return Outcome(error=error)


# ---------- Bridge session ----------


@dataclass(frozen=True)
class DiscoverBridge:
    pass


@dataclass(frozen=True)
class BridgeDiscovered:
    outcome: Outcome[str]


@dataclass(frozen=True)
class PairBridge:
    pass


@dataclass(frozen=True)
class BridgePaired:
    outcome: Outcome[str]


@dataclass(frozen=True)
class UnpairBridge:
    pass


# ---------- Fetches ----------


@dataclass(frozen=True)
class RefreshAll:
    pass


@dataclass(frozen=True)
class PeriodicRefresh:
    pass


@dataclass(frozen=True)
class LoadLights:
    pass


@dataclass(frozen=True)
class LoadGroups:
    pass


@dataclass(frozen=True)
class LoadScenes:
    pass


@dataclass(frozen=True)
class LightsLoaded:
    outcome: Outcome[List[Light]]
    issued_under: Optional[Credentials] = None


@dataclass(frozen=True)
class GroupsLoaded:
    outcome: Outcome[List[Group]]
    issued_under: Optional[Credentials] = None


@dataclass(frozen=True)
class ScenesLoaded:
    outcome: Outcome[List[Scene]]
    issued_under: Optional[Credentials] = None


# ---------- Gestures ----------


@dataclass(frozen=True)
class ToggleLight:
    light_id: str
    on: bool


@dataclass(frozen=True)
class ToggleGroup:
    group_id: str
    on: bool


@dataclass(frozen=True)
class ActivateScene:
    scene_id: str


@dataclass(frozen=True)
class SetBrightness:
    target: ResourceRef
    brightness: float


@dataclass(frozen=True)
class SetColor:
    target: ResourceRef
    color: HsvColor


@dataclass(frozen=True)
class ToggleColorPicker:
    selection: SelectionKey


@dataclass(frozen=True)
class PickColor:
    """Color reported by the open picker; applies to the active selection."""

    color: HsvColor


# ---------- Completions ----------


@dataclass(frozen=True)
class CommitFired:
    key: EditKey
    generation: int


@dataclass(frozen=True)
class PushCompleted:
    target: ResourceRef
    outcome: Outcome[List[ModificationReceipt]]


@dataclass(frozen=True)
class SceneActivated:
    scene_id: str
    group_id: str
    outcome: Outcome[List[ModificationReceipt]]


Event = Union[
    DiscoverBridge,
    BridgeDiscovered,
    PairBridge,
    BridgePaired,
    UnpairBridge,
    RefreshAll,
    PeriodicRefresh,
    LoadLights,
    LoadGroups,
    LoadScenes,
    LightsLoaded,
    GroupsLoaded,
    ScenesLoaded,
    ToggleLight,
    ToggleGroup,
    ActivateScene,
    SetBrightness,
    SetColor,
    ToggleColorPicker,
    PickColor,
    CommitFired,
    PushCompleted,
    SceneActivated,
]


# ---------- Effects ----------


@dataclass(frozen=True)
class Delay:
    """Post `event` back to the loop after `seconds`. Never cancelled."""

    seconds: float
    event: Event


@dataclass(frozen=True)
class Perform:
    """Run `call` off the loop; its outcome comes back as `on_done(outcome)`."""

    label: str
    call: Callable[[], Awaitable[Any]]
    on_done: Callable[[Outcome[Any]], Event]


Effect = Union[Delay, Perform]
