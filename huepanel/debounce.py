"""
Debounce coordinator.

Continuous adjustments (brightness sliders, color picker drags) are applied
to the store immediately, while the outbound command waits for the input
to settle. Each edit is stamped with a generation; a delayed commit only
pushes if its generation is still the latest for its key.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from huepanel.color import DeviceHsv, HsvColor, clamp_brightness, device_to_rgb, hsv_to_device
from huepanel.models import AttributeClass, EditKey, ResourceKind, ResourceRef, StateModifier
from huepanel.store import ViewModelStore

logger = logging.getLogger(__name__)

EditValue = Union[int, DeviceHsv]


class GenerationCounter:
    """Monotonic edit stamp. Shared by all keys of one context; never reset."""

    def __init__(self) -> None:
        self._value = 0

    @property
    def current(self) -> int:
        return self._value

    def next(self) -> int:
        self._value += 1
        return self._value


@dataclass(frozen=True)
class PendingEdit:
    value: EditValue
    generation: int


@dataclass(frozen=True)
class ScheduledCommit:
    """A commit the loop must fire after `delay` seconds."""

    key: EditKey
    generation: int
    delay: float


@dataclass(frozen=True)
class PushRequest:
    target: ResourceRef
    modifier: StateModifier


class DebounceCoordinator:
    def __init__(
        self,
        store: ViewModelStore,
        *,
        settle_delay: float = 0.3,
        generations: Optional[GenerationCounter] = None,
    ):
        self._store = store
        self._settle_delay = settle_delay
        self._generations = generations or GenerationCounter()
        self._pending: Dict[EditKey, PendingEdit] = {}

    @property
    def settle_delay(self) -> float:
        return self._settle_delay

    @property
    def generations(self) -> GenerationCounter:
        return self._generations

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def pending_edit(self, key: EditKey) -> Optional[PendingEdit]:
        return self._pending.get(key)

    def submit_edit(
        self,
        resource: ResourceRef,
        attribute: AttributeClass,
        new_value: Any,
    ) -> Optional[ScheduledCommit]:
        """
        Apply an edit locally and schedule its commit.

        Args:
            resource: Light or group being adjusted
            attribute: BRIGHTNESS (int 1-254) or COLOR (HsvColor)
            new_value: The adjusted value

        Returns:
            The commit to schedule, or None if the resource is unknown
        """
        if attribute is AttributeClass.BRIGHTNESS:
            value: EditValue = clamp_brightness(new_value)
            applied = self._apply_brightness(resource, value)
        elif attribute is AttributeClass.COLOR:
            if not isinstance(new_value, HsvColor):
                raise TypeError(f"Color edits take an HsvColor, got {type(new_value).__name__}")
            value = hsv_to_device(new_value)
            applied = self._apply_color(resource, value)
        else:
            raise ValueError(f"Unsupported attribute class: {attribute!r}")

        if not applied:
            logger.debug(f"Edit ignored, unknown {resource.kind.value} {resource.resource_id}")
            return None

        key = EditKey.of(resource, attribute)
        generation = self._generations.next()
        self._pending[key] = PendingEdit(value=value, generation=generation)
        return ScheduledCommit(key=key, generation=generation, delay=self._settle_delay)

    def on_commit_fire(self, key: EditKey, generation: int) -> Optional[PushRequest]:
        """
        Resolve a delayed commit.

        Returns the single push for the key when `generation` is still the
        latest edit, otherwise None (superseded or already committed).
        """
        pending = self._pending.get(key)
        if pending is None or pending.generation != generation:
            return None

        del self._pending[key]
        return PushRequest(target=key.ref, modifier=self._modifier_for(key.attribute, pending.value))

    def _apply_brightness(self, resource: ResourceRef, value: int) -> bool:
        if resource.kind is ResourceKind.LIGHT:
            return self._store.set_light_brightness(resource.resource_id, value)
        return self._store.set_group_brightness(resource.resource_id, value)

    def _apply_color(self, resource: ResourceRef, value: DeviceHsv) -> bool:
        rgb = device_to_rgb(value)
        if resource.kind is ResourceKind.LIGHT:
            return self._store.set_light_color(resource.resource_id, rgb)
        return self._store.set_group_color(resource.resource_id, rgb)

    @staticmethod
    def _modifier_for(attribute: AttributeClass, value: EditValue) -> StateModifier:
        if attribute is AttributeClass.BRIGHTNESS:
            return StateModifier(brightness=int(value))
        return StateModifier(hue=value.hue, saturation=value.saturation, brightness=value.brightness)
