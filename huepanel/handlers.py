"""
Event handlers.

Each handler takes the loop's PanelContext and one event, mutates state
synchronously and returns the effects to run. Handlers never await.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Type

from huepanel.events import (
    ActivateScene,
    BridgeDiscovered,
    BridgePaired,
    CommitFired,
    Credentials,
    Delay,
    DiscoverBridge,
    Effect,
    Event,
    GroupsLoaded,
    LightsLoaded,
    LoadGroups,
    LoadLights,
    LoadScenes,
    PairBridge,
    PeriodicRefresh,
    Perform,
    PickColor,
    PushCompleted,
    RefreshAll,
    SceneActivated,
    ScenesLoaded,
    SetBrightness,
    SetColor,
    ToggleColorPicker,
    ToggleGroup,
    ToggleLight,
    UnpairBridge,
)
from huepanel.context import PanelContext
from huepanel.models import AttributeClass, ResourceKind, ResourceRef, StateModifier
from huepanel.panel_logging import get_logger
from huepanel.settings import BridgeSettings

logger = logging.getLogger(__name__)
log = get_logger("HUEPANEL.Panel")


def _push(ctx: PanelContext, target: ResourceRef, modifier: StateModifier) -> List[Effect]:
    creds = ctx.credentials()
    if creds is None:
        return []
    address, token = creds

    async def _call() -> Any:
        if target.kind is ResourceKind.LIGHT:
            return await ctx.client.push_light_state(address, token, target.resource_id, modifier)
        return await ctx.client.push_group_state(address, token, target.resource_id, modifier)

    return [
        Perform(
            label=f"push:{target.kind.value}:{target.resource_id}",
            call=_call,
            on_done=lambda outcome: PushCompleted(target=target, outcome=outcome),
        )
    ]


def _fetch(ctx: PanelContext, what: str, done: Callable[[Any, Credentials], Event]) -> List[Effect]:
    creds = ctx.credentials()
    if creds is None:
        return []
    address, token = creds
    fetcher = getattr(ctx.client, f"fetch_{what}")

    async def _call() -> Any:
        return await fetcher(address, token)

    return [Perform(label=f"fetch:{what}", call=_call, on_done=lambda outcome: done(outcome, creds))]


def _superseded(ctx: PanelContext, what: str, issued_under: Optional[Credentials]) -> bool:
    """True when the bridge or token changed (or was cleared) while the fetch was in flight."""
    if issued_under == ctx.credentials():
        return False
    logger.debug(f"Dropping {what} fetched under previous credentials")
    return True


# ---------- Bridge session ----------


def handle_discover_bridge(ctx: PanelContext, event: DiscoverBridge) -> List[Effect]:
    if ctx.session.is_scanning:
        return []
    ctx.session.begin_discovery()
    return [
        Perform(
            label="discover",
            call=ctx.client.discover,
            on_done=lambda outcome: BridgeDiscovered(outcome=outcome),
        )
    ]


def handle_bridge_discovered(ctx: PanelContext, event: BridgeDiscovered) -> List[Effect]:
    ctx.session.finish_discovery(event.outcome)
    if not event.outcome.ok:
        log.warning("HUEPANEL.Panel.DiscoveryFailed", extra={"fields": {"error": event.outcome.error}})
        return []
    ctx.update_settings(ctx.settings.with_address(event.outcome.value))
    log.info("HUEPANEL.Panel.BridgeFound", extra={"fields": {"address": event.outcome.value}})
    return []


def handle_pair_bridge(ctx: PanelContext, event: PairBridge) -> List[Effect]:
    address = ctx.settings.bridge_address
    if not address:
        return []
    client_name = ctx.config.client_name

    async def _call() -> Any:
        return await ctx.client.register(address, client_name)

    return [Perform(label="pair", call=_call, on_done=lambda outcome: BridgePaired(outcome=outcome))]


def handle_bridge_paired(ctx: PanelContext, event: BridgePaired) -> List[Effect]:
    if not event.outcome.ok:
        ctx.session.pairing_failed(event.outcome.error or "pairing failed")
        log.warning("HUEPANEL.Panel.PairingFailed", extra={"fields": {"error": event.outcome.error}})
        return []
    ctx.update_settings(ctx.settings.with_token(event.outcome.value))
    log.info("HUEPANEL.Panel.Paired", extra={"fields": {"address": ctx.settings.bridge_address}})
    return handle_refresh_all(ctx, RefreshAll())


def handle_unpair_bridge(ctx: PanelContext, event: UnpairBridge) -> List[Effect]:
    ctx.update_settings(BridgeSettings())
    ctx.store.clear()
    ctx.picker.close()
    ctx.session.reset()
    log.info("HUEPANEL.Panel.Unpaired")
    return []


# ---------- Fetches ----------


def handle_refresh_all(ctx: PanelContext, event: RefreshAll) -> List[Effect]:
    return (
        handle_load_lights(ctx, LoadLights())
        + handle_load_groups(ctx, LoadGroups())
        + handle_load_scenes(ctx, LoadScenes())
    )


def handle_periodic_refresh(ctx: PanelContext, event: PeriodicRefresh) -> List[Effect]:
    interval = ctx.config.refresh_interval_s
    if interval <= 0:
        return []
    return handle_refresh_all(ctx, RefreshAll()) + [Delay(interval, PeriodicRefresh())]


def handle_load_lights(ctx: PanelContext, event: LoadLights) -> List[Effect]:
    return _fetch(ctx, "lights", lambda outcome, creds: LightsLoaded(outcome=outcome, issued_under=creds))


def handle_load_groups(ctx: PanelContext, event: LoadGroups) -> List[Effect]:
    return _fetch(ctx, "groups", lambda outcome, creds: GroupsLoaded(outcome=outcome, issued_under=creds))


def handle_load_scenes(ctx: PanelContext, event: LoadScenes) -> List[Effect]:
    return _fetch(ctx, "scenes", lambda outcome, creds: ScenesLoaded(outcome=outcome, issued_under=creds))


def handle_lights_loaded(ctx: PanelContext, event: LightsLoaded) -> List[Effect]:
    if _superseded(ctx, "lights", event.issued_under):
        return []
    if not event.outcome.ok:
        # Keep the previous snapshot.
        log.error("HUEPANEL.Panel.LoadFailed", extra={"fields": {"what": "lights", "error": event.outcome.error}})
        return []
    ctx.store.replace_lights(event.outcome.value or [])
    logger.info(f"Lights loaded: {len(ctx.store.lights)}")
    return []


def handle_groups_loaded(ctx: PanelContext, event: GroupsLoaded) -> List[Effect]:
    if _superseded(ctx, "groups", event.issued_under):
        return []
    if not event.outcome.ok:
        log.error("HUEPANEL.Panel.LoadFailed", extra={"fields": {"what": "groups", "error": event.outcome.error}})
        return []
    ctx.store.replace_groups(event.outcome.value or [])
    logger.info(f"Groups loaded: {len(ctx.store.groups)}")
    return []


def handle_scenes_loaded(ctx: PanelContext, event: ScenesLoaded) -> List[Effect]:
    if _superseded(ctx, "scenes", event.issued_under):
        return []
    if not event.outcome.ok:
        log.error("HUEPANEL.Panel.LoadFailed", extra={"fields": {"what": "scenes", "error": event.outcome.error}})
        return []
    ctx.store.replace_scenes(event.outcome.value or [])
    logger.info(f"Scenes loaded: {len(ctx.store.scenes)}")
    return []


# ---------- Gestures ----------


def handle_toggle_light(ctx: PanelContext, event: ToggleLight) -> List[Effect]:
    if not ctx.store.toggle_light(event.light_id, event.on):
        return []
    return _push(ctx, ResourceRef.light(event.light_id), StateModifier(on=event.on))


def handle_toggle_group(ctx: PanelContext, event: ToggleGroup) -> List[Effect]:
    if not ctx.store.toggle_group(event.group_id, event.on):
        return []
    return _push(ctx, ResourceRef.group(event.group_id), StateModifier(on=event.on))


def handle_activate_scene(ctx: PanelContext, event: ActivateScene) -> List[Effect]:
    scene = ctx.store.scene(event.scene_id)
    if scene is None:
        return []
    creds = ctx.credentials()
    if creds is None:
        return []
    address, token = creds
    scene_id, group_id = scene.id, scene.group

    async def _call() -> Any:
        return await ctx.client.push_group_state(address, token, group_id, StateModifier(scene=scene_id))

    return [
        Perform(
            label=f"scene:{scene_id}",
            call=_call,
            on_done=lambda outcome: SceneActivated(scene_id=scene_id, group_id=group_id, outcome=outcome),
        )
    ]


def handle_scene_activated(ctx: PanelContext, event: SceneActivated) -> List[Effect]:
    if event.outcome.ok:
        log.info("HUEPANEL.Panel.SceneActivated", extra={"fields": {
            "scene_id": event.scene_id,
            "group_id": event.group_id,
            "changes": len(event.outcome.value or []),
        }})
    else:
        log.error("HUEPANEL.Panel.SceneActivationFailed", extra={"fields": {
            "scene_id": event.scene_id,
            "group_id": event.group_id,
            "error": event.outcome.error,
        }})
    # Even a failed recall may have partly applied; reconcile either way.
    return list(ctx.convergence.refresh_after_scene(event.scene_id, event.group_id))


def handle_set_brightness(ctx: PanelContext, event: SetBrightness) -> List[Effect]:
    commit = ctx.debounce.submit_edit(event.target, AttributeClass.BRIGHTNESS, event.brightness)
    if commit is None:
        return []
    return [Delay(commit.delay, CommitFired(key=commit.key, generation=commit.generation))]


def handle_set_color(ctx: PanelContext, event: SetColor) -> List[Effect]:
    commit = ctx.debounce.submit_edit(event.target, AttributeClass.COLOR, event.color)
    if commit is None:
        return []
    return [Delay(commit.delay, CommitFired(key=commit.key, generation=commit.generation))]


def handle_toggle_color_picker(ctx: PanelContext, event: ToggleColorPicker) -> List[Effect]:
    transition = ctx.picker.toggle(event.selection)
    logger.debug(f"Color picker {transition.value} for {event.selection.kind.value} {event.selection.resource_id}")
    return []


def handle_pick_color(ctx: PanelContext, event: PickColor) -> List[Effect]:
    active = ctx.picker.active
    if active is None:
        return []
    return handle_set_color(ctx, SetColor(target=active.ref, color=event.color))


# ---------- Completions ----------


def handle_commit_fired(ctx: PanelContext, event: CommitFired) -> List[Effect]:
    request = ctx.debounce.on_commit_fire(event.key, event.generation)
    if request is None:
        # Superseded by a newer edit; expected, not a failure.
        return []
    return _push(ctx, request.target, request.modifier)


def handle_push_completed(ctx: PanelContext, event: PushCompleted) -> List[Effect]:
    if event.outcome.ok:
        logger.debug(f"Push to {event.target.kind.value} {event.target.resource_id}: {event.outcome.value}")
        return []
    # No retry and no rollback; the next fetch reconciles.
    log.error("HUEPANEL.Panel.PushFailed", extra={"fields": {
        "kind": event.target.kind.value,
        "resource_id": event.target.resource_id,
        "error": event.outcome.error,
    }})
    return []


HANDLERS: Dict[Type[Any], Callable[[PanelContext, Any], List[Effect]]] = {
    DiscoverBridge: handle_discover_bridge,
    BridgeDiscovered: handle_bridge_discovered,
    PairBridge: handle_pair_bridge,
    BridgePaired: handle_bridge_paired,
    UnpairBridge: handle_unpair_bridge,
    RefreshAll: handle_refresh_all,
    PeriodicRefresh: handle_periodic_refresh,
    LoadLights: handle_load_lights,
    LoadGroups: handle_load_groups,
    LoadScenes: handle_load_scenes,
    LightsLoaded: handle_lights_loaded,
    GroupsLoaded: handle_groups_loaded,
    ScenesLoaded: handle_scenes_loaded,
    ToggleLight: handle_toggle_light,
    ToggleGroup: handle_toggle_group,
    ActivateScene: handle_activate_scene,
    SetBrightness: handle_set_brightness,
    SetColor: handle_set_color,
    ToggleColorPicker: handle_toggle_color_picker,
    PickColor: handle_pick_color,
    CommitFired: handle_commit_fired,
    PushCompleted: handle_push_completed,
    SceneActivated: handle_scene_activated,
}


def update(ctx: PanelContext, event: Event) -> List[Effect]:
    """Handle one event. Unknown event types are a programming error."""
    handler = HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"No handler for event {type(event).__name__}")
    return handler(ctx, event)
