"""
Data models for the panel.

Remote records mirror what the bridge reports; view records are the
UI-facing representation owned by the ViewModelStore.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

Rgb = Tuple[float, float, float]
BLACK: Rgb = (0.0, 0.0, 0.0)


class ResourceKind(str, Enum):
    LIGHT = "light"
    GROUP = "group"


class AttributeClass(str, Enum):
    BRIGHTNESS = "brightness"
    COLOR = "color"


@dataclass(frozen=True)
class ResourceRef:
    """A light or a group. Light and group ids overlap on the bridge."""

    kind: ResourceKind
    resource_id: str

    @classmethod
    def light(cls, resource_id: str) -> "ResourceRef":
        return cls(ResourceKind.LIGHT, resource_id)

    @classmethod
    def group(cls, resource_id: str) -> "ResourceRef":
        return cls(ResourceKind.GROUP, resource_id)


@dataclass(frozen=True)
class EditKey:
    """Identifies one debounced attribute of one resource."""

    kind: ResourceKind
    resource_id: str
    attribute: AttributeClass

    @classmethod
    def of(cls, ref: ResourceRef, attribute: AttributeClass) -> "EditKey":
        return cls(ref.kind, ref.resource_id, attribute)

    @property
    def ref(self) -> ResourceRef:
        return ResourceRef(self.kind, self.resource_id)


@dataclass(frozen=True)
class SelectionKey:
    """Owner of the color-picker popup."""

    kind: ResourceKind
    resource_id: str

    @property
    def ref(self) -> ResourceRef:
        return ResourceRef(self.kind, self.resource_id)


# ---------- Remote records ----------


@dataclass
class LightState:
    on: Optional[bool] = None
    brightness: Optional[int] = None  # 0-254
    hue: Optional[int] = None  # 0-65535
    saturation: Optional[int] = None  # 0-254
    reachable: Optional[bool] = None


@dataclass
class Light:
    id: str
    name: str
    state: LightState = field(default_factory=LightState)


@dataclass
class GroupState:
    any_on: bool


@dataclass
class Group:
    id: str
    name: str
    lights: List[str] = field(default_factory=list)
    state: Optional[GroupState] = None


@dataclass
class Scene:
    id: str
    name: str
    group: Optional[str] = None  # None for light scenes


@dataclass(frozen=True)
class ModificationReceipt:
    """One success entry of a bridge state change, e.g. ("/lights/1/state/on", True)."""

    address: str
    value: Any


@dataclass(frozen=True)
class StateModifier:
    """Partial state sent to a light (`/state`) or group (`/action`)."""

    on: Optional[bool] = None
    brightness: Optional[int] = None
    hue: Optional[int] = None
    saturation: Optional[int] = None
    scene: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if self.on is not None:
            payload["on"] = self.on
        if self.brightness is not None:
            payload["bri"] = self.brightness
        if self.hue is not None:
            payload["hue"] = self.hue
        if self.saturation is not None:
            payload["sat"] = self.saturation
        if self.scene is not None:
            payload["scene"] = self.scene
        return payload


# ---------- View records ----------


@dataclass
class LightView:
    id: str
    name: str
    on: Optional[bool]
    brightness: Optional[int]
    color: Optional[Rgb]
    reachable: Optional[bool] = None


@dataclass
class GroupView:
    id: str
    name: str
    on: Optional[bool]
    brightness: Optional[int]
    color: Optional[Rgb]
    lights: List[str] = field(default_factory=list)


@dataclass
class SceneView:
    id: str
    name: str
    group: str


@dataclass(frozen=True)
class StoreSnapshot:
    """
    Read-only copy of the store for the presentation layer.

    Holds copies, so later store mutations never show through.
    """

    lights: Tuple[LightView, ...]
    groups: Tuple[GroupView, ...]
    scenes: Tuple[SceneView, ...]
