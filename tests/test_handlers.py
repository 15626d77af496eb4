"""
Handler tests.

Handlers are synchronous; background calls are driven by hand so each step
of a flow can be inspected.
"""

from __future__ import annotations

import asyncio

import pytest

from conftest import BRIDGE_ADDRESS, TOKEN
from huepanel.color import HsvColor
from huepanel.config import PanelConfig
from huepanel.events import (
    ActivateScene,
    BridgeDiscovered,
    BridgePaired,
    CommitFired,
    Delay,
    DiscoverBridge,
    LightsLoaded,
    LoadGroups,
    LoadLights,
    Outcome,
    PairBridge,
    PeriodicRefresh,
    Perform,
    PickColor,
    PushCompleted,
    RefreshAll,
    SceneActivated,
    SetBrightness,
    SetColor,
    ToggleColorPicker,
    ToggleGroup,
    ToggleLight,
    UnpairBridge,
)
from huepanel.handlers import update
from huepanel.models import ResourceKind, ResourceRef, SelectionKey, StateModifier


def _complete(effect: Perform):
    """Run a Perform's call and return the event it resolves into."""
    try:
        outcome = Outcome.success(asyncio.run(effect.call()))
    except Exception as e:
        outcome = Outcome.failure(str(e))
    return effect.on_done(outcome)


class TestSceneActivation:
    def test_pushes_scene_to_its_group(self, ctx, fake_bridge) -> None:
        effects = update(ctx, ActivateScene("abc"))
        assert len(effects) == 1 and isinstance(effects[0], Perform)

        done = _complete(effects[0])
        assert fake_bridge.calls == [("push_group_state", "1", StateModifier(scene="abc"))]
        assert isinstance(done, SceneActivated)
        assert done.outcome.ok
        assert done.group_id == "1"

    def test_schedules_convergence_refresh(self, ctx) -> None:
        done = _complete(update(ctx, ActivateScene("abc"))[0])
        effects = update(ctx, done)

        assert effects == [Delay(10.0, LoadGroups()), Delay(10.0, LoadLights())]

    def test_converges_even_when_push_fails(self, ctx, fake_bridge) -> None:
        fake_bridge.push_error = "bridge busy"
        done = _complete(update(ctx, ActivateScene("abc"))[0])

        assert not done.outcome.ok
        effects = update(ctx, done)
        assert [type(e.event) for e in effects] == [LoadGroups, LoadLights]

    def test_light_scene_targets_all_lights_group(self, ctx, fake_bridge) -> None:
        _complete(update(ctx, ActivateScene("def"))[0])
        assert fake_bridge.calls == [("push_group_state", "0", StateModifier(scene="def"))]

    def test_convergence_delay_comes_from_config(self, make_ctx) -> None:
        ctx = make_ctx(config=PanelConfig(convergence_delay_s=2.5))
        effects = update(ctx, SceneActivated("abc", "1", Outcome.success([])))
        assert {e.seconds for e in effects} == {2.5}

    def test_unknown_scene_or_unpaired_is_noop(self, ctx, make_ctx) -> None:
        assert update(ctx, ActivateScene("nope")) == []
        unpaired = make_ctx(paired=False)
        assert update(unpaired, ActivateScene("abc")) == []


class TestToggles:
    def test_toggle_light_updates_store_and_pushes(self, ctx, fake_bridge) -> None:
        effects = update(ctx, ToggleLight("2", True))
        assert ctx.store.light("2").on is True

        done = _complete(effects[0])
        assert fake_bridge.calls == [("push_light_state", "2", StateModifier(on=True))]
        assert isinstance(done, PushCompleted)
        assert done.target == ResourceRef.light("2")
        assert done.outcome.value[0].address == "/lights/2/state/on"

    def test_toggle_group_fans_out(self, ctx, fake_bridge) -> None:
        effects = update(ctx, ToggleGroup("1", False))
        assert ctx.store.light("1").on is False
        assert ctx.store.light("2").on is False

        _complete(effects[0])
        assert fake_bridge.calls == [("push_group_state", "1", StateModifier(on=False))]

    def test_unknown_resource_is_noop(self, ctx) -> None:
        assert update(ctx, ToggleLight("99", True)) == []
        assert update(ctx, ToggleGroup("99", True)) == []

    def test_no_push_without_credentials(self, make_ctx) -> None:
        ctx = make_ctx(paired=False)
        assert update(ctx, ToggleLight("1", False)) == []
        assert ctx.store.light("1").on is False

    def test_failed_push_keeps_optimistic_state(self, ctx, fake_bridge) -> None:
        fake_bridge.push_error = "unreachable"
        done = _complete(update(ctx, ToggleLight("1", False))[0])

        assert update(ctx, done) == []
        assert ctx.store.light("1").on is False


class TestDebouncedEdits:
    def test_brightness_edit_schedules_commit(self, ctx) -> None:
        effects = update(ctx, SetBrightness(ResourceRef.light("1"), 180.0))

        assert len(effects) == 1
        delay = effects[0]
        assert isinstance(delay, Delay)
        assert delay.seconds == pytest.approx(0.3)
        assert isinstance(delay.event, CommitFired)
        assert ctx.store.light("1").brightness == 180

    def test_only_latest_commit_pushes(self, ctx, fake_bridge) -> None:
        first = update(ctx, SetBrightness(ResourceRef.group("1"), 10))[0].event
        second = update(ctx, SetBrightness(ResourceRef.group("1"), 90))[0].event

        assert update(ctx, first) == []
        effects = update(ctx, second)
        _complete(effects[0])

        assert fake_bridge.calls == [("push_group_state", "1", StateModifier(brightness=90))]

    def test_color_edit(self, ctx, fake_bridge) -> None:
        commit = update(ctx, SetColor(ResourceRef.light("1"), HsvColor(0.0, 1.0, 1.0)))[0].event
        _complete(update(ctx, commit)[0])

        assert fake_bridge.calls == [
            ("push_light_state", "1", StateModifier(hue=0, saturation=254, brightness=254))
        ]

    def test_unknown_resource_schedules_nothing(self, ctx) -> None:
        assert update(ctx, SetBrightness(ResourceRef.light("99"), 100)) == []


class TestEmptyGroup:
    def test_toggle_and_edits_do_not_crash(self, ctx, fake_bridge) -> None:
        empty = ResourceRef.group("2")

        toggle = update(ctx, ToggleGroup("2", True))
        brightness = update(ctx, SetBrightness(empty, 100))[0].event
        color = update(ctx, SetColor(empty, HsvColor(120.0, 1.0, 1.0)))[0].event

        group = ctx.store.group("2")
        assert group.on is True
        assert group.brightness is None
        assert group.color == (0.0, 0.0, 0.0)

        _complete(toggle[0])
        _complete(update(ctx, brightness)[0])
        _complete(update(ctx, color)[0])
        assert [c[1] for c in fake_bridge.calls_named("push_group_state")] == ["2", "2", "2"]


class TestColorPicker:
    def test_pick_color_routes_to_active_selection(self, ctx, fake_bridge) -> None:
        update(ctx, ToggleColorPicker(SelectionKey(ResourceKind.GROUP, "1")))
        effects = update(ctx, PickColor(HsvColor(240.0, 1.0, 1.0)))

        commit = effects[0].event
        assert commit.key.kind is ResourceKind.GROUP
        assert commit.key.resource_id == "1"

    def test_toggle_same_selection_closes(self, ctx) -> None:
        key = SelectionKey(ResourceKind.LIGHT, "1")
        update(ctx, ToggleColorPicker(key))
        assert ctx.picker.is_open
        update(ctx, ToggleColorPicker(key))
        assert not ctx.picker.is_open
        assert ctx.picker.active is None

    def test_pick_color_without_selection_is_noop(self, ctx) -> None:
        assert update(ctx, PickColor(HsvColor(0.0, 1.0, 1.0))) == []


class TestBridgeSession:
    def test_discovery_saves_address(self, make_ctx, fake_bridge) -> None:
        ctx = make_ctx(paired=False, populated=False)
        effects = update(ctx, DiscoverBridge())
        assert ctx.session.is_scanning
        assert ctx.session.status_text == "Searching for bridges…"

        # A second request while scanning is ignored.
        assert update(ctx, DiscoverBridge()) == []

        done = _complete(effects[0])
        update(ctx, done)
        assert ctx.settings.bridge_address == BRIDGE_ADDRESS
        assert ctx.settings_store.load().bridge_address == BRIDGE_ADDRESS
        assert ctx.session.status_text == f"Bridge found: {BRIDGE_ADDRESS}"

    def test_discovery_failure_reports_error(self, make_ctx) -> None:
        ctx = make_ctx(paired=False, populated=False)
        update(ctx, DiscoverBridge())
        update(ctx, BridgeDiscovered(Outcome.failure("No bridge found")))

        assert not ctx.session.is_scanning
        assert ctx.session.status_text == "Error: No bridge found"
        assert ctx.settings.bridge_address is None

    def test_pairing_stores_token_and_refreshes(self, make_ctx, fake_bridge) -> None:
        ctx = make_ctx(paired=False, populated=False, bridge_address=BRIDGE_ADDRESS)
        effects = update(ctx, PairBridge())
        done = _complete(effects[0])
        assert isinstance(done, BridgePaired)
        assert fake_bridge.calls == [("register", BRIDGE_ADDRESS, "huepanel")]

        refresh = update(ctx, done)
        assert ctx.credentials() == (BRIDGE_ADDRESS, "new-token")
        assert [e.label for e in refresh] == ["fetch:lights", "fetch:groups", "fetch:scenes"]

    def test_pairing_needs_address(self, make_ctx) -> None:
        ctx = make_ctx(paired=False, populated=False)
        assert update(ctx, PairBridge()) == []

    def test_pairing_failure(self, make_ctx, fake_bridge) -> None:
        ctx = make_ctx(paired=False, populated=False, bridge_address=BRIDGE_ADDRESS)
        fake_bridge.register_token = None
        done = _complete(update(ctx, PairBridge())[0])

        assert update(ctx, done) == []
        assert ctx.credentials() is None
        assert ctx.session.status_text == "Error: link button not pressed"

    def test_unpair_clears_everything(self, ctx) -> None:
        update(ctx, ToggleColorPicker(SelectionKey(ResourceKind.LIGHT, "1")))
        update(ctx, UnpairBridge())

        assert ctx.credentials() is None
        assert ctx.store.lights == []
        assert not ctx.picker.is_open
        assert ctx.session.status_text == "No bridge configured"


class TestFetches:
    def test_refresh_all_fetches_everything(self, ctx, fake_bridge) -> None:
        for effect in update(ctx, RefreshAll()):
            _complete(effect)
        assert [c[0] for c in fake_bridge.calls] == ["fetch_lights", "fetch_groups", "fetch_scenes"]
        assert fake_bridge.calls[0][1:] == (BRIDGE_ADDRESS, TOKEN)

    def test_failed_load_keeps_previous_snapshot(self, ctx) -> None:
        before = ctx.store.snapshot()
        event = LightsLoaded(Outcome.failure("timeout"), issued_under=(BRIDGE_ADDRESS, TOKEN))
        assert update(ctx, event) == []
        assert ctx.store.snapshot() == before

    def test_fetch_landing_after_unpair_is_dropped(self, make_ctx) -> None:
        ctx = make_ctx(populated=False)
        in_flight = update(ctx, RefreshAll())
        update(ctx, UnpairBridge())

        for effect in in_flight:
            update(ctx, _complete(effect))

        assert ctx.credentials() is None
        assert ctx.store.lights == []
        assert ctx.store.groups == []
        assert ctx.store.scenes == []

    def test_fetch_from_previous_token_is_dropped(self, ctx, fake_bridge) -> None:
        fake_bridge.lights = fake_bridge.lights[:1]
        in_flight = update(ctx, LoadLights())
        ctx.update_settings(ctx.settings.with_token("rotated"))

        update(ctx, _complete(in_flight[0]))

        assert len(ctx.store.lights) == 3

    def test_fetch_stamped_with_issuing_credentials(self, ctx) -> None:
        done = _complete(update(ctx, LoadGroups())[0])
        assert done.issued_under == (BRIDGE_ADDRESS, TOKEN)

    def test_loaded_lights_replace_store(self, ctx, fake_bridge) -> None:
        fake_bridge.lights = fake_bridge.lights[:1]
        done = _complete(update(ctx, LoadLights())[0])
        update(ctx, done)
        assert [light.id for light in ctx.store.lights] == ["1"]

    def test_no_fetch_when_unpaired(self, make_ctx) -> None:
        assert update(make_ctx(paired=False), RefreshAll()) == []

    def test_periodic_refresh_reschedules(self, make_ctx) -> None:
        ctx = make_ctx(config=PanelConfig(refresh_interval_s=30.0))
        effects = update(ctx, PeriodicRefresh())
        assert effects[-1] == Delay(30.0, PeriodicRefresh())
        assert len(effects) == 4

    def test_periodic_refresh_disabled(self, ctx) -> None:
        assert update(ctx, PeriodicRefresh()) == []


def test_unknown_event_type_raises(ctx) -> None:
    with pytest.raises(TypeError):
        update(ctx, object())
