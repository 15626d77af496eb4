"""
View model store.

Holds the UI-facing lights, groups and scenes. Contents are replaced by
fetches and mutated optimistically by local interaction.
"""

import copy
import logging
from typing import Iterable, List, Optional

from huepanel.color import hsv_to_rgb
from huepanel.models import (
    BLACK,
    Group,
    GroupView,
    Light,
    LightView,
    Rgb,
    Scene,
    SceneView,
    StoreSnapshot,
)

logger = logging.getLogger(__name__)

# Light scenes carry no group; the bridge recalls them through group 0.
ALL_LIGHTS_GROUP = "0"


def _display_order(item) -> str:
    return item.name.lower()


class ViewModelStore:
    """
    In-memory view state, mutated only from the event loop.

    Group brightness and color are mirrored from the group's first member
    light; they are never authoritative on their own.
    """

    def __init__(self):
        self.lights: List[LightView] = []
        self.groups: List[GroupView] = []
        self.scenes: List[SceneView] = []

    # ---------- Lookups ----------

    def light(self, light_id: str) -> Optional[LightView]:
        return next((light for light in self.lights if light.id == light_id), None)

    def group(self, group_id: str) -> Optional[GroupView]:
        return next((group for group in self.groups if group.id == group_id), None)

    def scene(self, scene_id: str) -> Optional[SceneView]:
        return next((scene for scene in self.scenes if scene.id == scene_id), None)

    def first_member(self, group: GroupView) -> Optional[LightView]:
        if not group.lights:
            return None
        return self.light(group.lights[0])

    def members(self, group: GroupView) -> List[LightView]:
        found = []
        for light_id in group.lights:
            light = self.light(light_id)
            if light is not None:
                found.append(light)
        return found

    # ---------- Fetch replacement ----------

    def replace_lights(self, lights: Iterable[Light]) -> None:
        views = [
            LightView(
                id=light.id,
                name=light.name,
                on=light.state.on,
                brightness=light.state.brightness,
                color=hsv_to_rgb(light.state.hue, light.state.saturation, light.state.brightness),
                reachable=light.state.reachable,
            )
            for light in lights
        ]
        views.sort(key=_display_order)
        self.lights = views

        # Keep groups tracking their first member whichever fetch lands last.
        for group in self.groups:
            self._mirror_first_member(group)

        logger.debug(f"Replaced lights: {len(views)}")

    def replace_groups(self, groups: Iterable[Group]) -> None:
        views = []
        for group in groups:
            view = GroupView(
                id=group.id,
                name=group.name,
                on=self._group_on(group),
                brightness=None,
                color=BLACK,
                lights=list(group.lights),
            )
            self._mirror_first_member(view)
            views.append(view)
        views.sort(key=_display_order)
        self.groups = views
        logger.debug(f"Replaced groups: {len(views)}")

    def replace_scenes(self, scenes: Iterable[Scene]) -> None:
        views = [
            SceneView(id=scene.id, name=scene.name, group=scene.group or ALL_LIGHTS_GROUP)
            for scene in scenes
        ]
        views.sort(key=_display_order)
        self.scenes = views
        logger.debug(f"Replaced scenes: {len(views)}")

    def clear(self) -> None:
        self.lights = []
        self.groups = []
        self.scenes = []

    def _group_on(self, group: Group) -> Optional[bool]:
        if group.state is not None:
            return group.state.any_on
        known = [light.on for light in (self.light(i) for i in group.lights) if light is not None and light.on is not None]
        if not known:
            return None
        return any(known)

    def _mirror_first_member(self, group: GroupView) -> None:
        first = self.first_member(group)
        if first is None:
            group.brightness = None
            group.color = BLACK
            return
        group.brightness = first.brightness
        group.color = first.color

    # ---------- Optimistic edits ----------

    def toggle_light(self, light_id: str, on: bool) -> bool:
        light = self.light(light_id)
        if light is None:
            return False
        light.on = on
        return True

    def toggle_group(self, group_id: str, on: bool) -> bool:
        group = self.group(group_id)
        if group is None:
            return False
        group.on = on
        for light in self.members(group):
            light.on = on
        self._mirror_first_member(group)
        return True

    def set_light_brightness(self, light_id: str, brightness: int) -> bool:
        light = self.light(light_id)
        if light is None:
            return False
        light.brightness = brightness
        return True

    def set_group_brightness(self, group_id: str, brightness: int) -> bool:
        group = self.group(group_id)
        if group is None:
            return False
        for light in self.members(group):
            light.brightness = brightness
        self._mirror_first_member(group)
        return True

    def set_light_color(self, light_id: str, color: Rgb) -> bool:
        light = self.light(light_id)
        if light is None:
            return False
        light.color = color
        return True

    def set_group_color(self, group_id: str, color: Rgb) -> bool:
        group = self.group(group_id)
        if group is None:
            return False
        for light in self.members(group):
            light.color = color
        self._mirror_first_member(group)
        return True

    # ---------- Read-only view ----------

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            lights=tuple(copy.deepcopy(self.lights)),
            groups=tuple(copy.deepcopy(self.groups)),
            scenes=tuple(copy.deepcopy(self.scenes)),
        )
