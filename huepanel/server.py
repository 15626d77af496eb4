from __future__ import annotations

import contextlib
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, Optional

import httpx
from fastapi import APIRouter, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from huepanel.bridge.base import BridgeClient
from huepanel.bridge.hue_http import HueHttpClient
from huepanel.color import HsvColor, brightness_percent
from huepanel.config import PanelConfig
from huepanel.context import PanelContext
from huepanel.events import (
    ActivateScene,
    DiscoverBridge,
    PairBridge,
    PickColor,
    RefreshAll,
    SetBrightness,
    SetColor,
    ToggleColorPicker,
    ToggleGroup,
    ToggleLight,
    UnpairBridge,
)
from huepanel.models import ResourceKind, ResourceRef, SelectionKey
from huepanel.panel_logging import get_logger
from huepanel.runtime import PanelRuntime
from huepanel.settings import JsonSettingsStore, MemorySettingsStore, SettingsStore

log = get_logger("HUEPANEL")


class OnBody(BaseModel):
    on: bool


class BrightnessBody(BaseModel):
    value: float = Field(ge=1, le=254)


class ColorBody(BaseModel):
    hue: float = Field(allow_inf_nan=False)  # degrees
    saturation: float = Field(ge=0, le=1)
    value: float = Field(ge=0, le=1)

    def to_hsv(self) -> HsvColor:
        return HsvColor.from_degrees(self.hue, self.saturation, self.value)


def _accepted() -> dict[str, Any]:
    return {"accepted": True}


def _runtime(request: Request) -> PanelRuntime:
    return request.app.state.runtime


def _require(runtime: PanelRuntime, ref: ResourceRef) -> None:
    store = runtime.ctx.store
    found = store.light(ref.resource_id) if ref.kind is ResourceKind.LIGHT else store.group(ref.resource_id)
    if found is None:
        raise HTTPException(status_code=404, detail=f"{ref.kind.value} not found")


def serialize_state(ctx: PanelContext) -> dict[str, Any]:
    snapshot = ctx.store.snapshot()
    lights = []
    for light in snapshot.lights:
        item = asdict(light)
        item["brightness_percent"] = brightness_percent(light.brightness)
        lights.append(item)
    groups = []
    for group in snapshot.groups:
        item = asdict(group)
        item["brightness_percent"] = brightness_percent(group.brightness)
        groups.append(item)
    active = ctx.picker.active
    return {
        "bridge": {
            "address": ctx.settings.bridge_address,
            "paired": ctx.credentials() is not None,
            "scanning": ctx.session.is_scanning,
            "status": ctx.session.status_text,
        },
        "lights": lights,
        "groups": groups,
        "scenes": [asdict(scene) for scene in snapshot.scenes],
        "picker": {
            "open": ctx.picker.is_open,
            "kind": active.kind.value if active else None,
            "resource_id": active.resource_id if active else None,
        },
        "pending_edits": ctx.debounce.pending_count,
    }


def build_panel_router() -> APIRouter:
    """Routes a panel frontend uses to read state and submit gestures."""

    router = APIRouter()

    @router.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        runtime = _runtime(request)
        return {"status": "ok" if runtime.running else "stopped"}

    @router.get("/state")
    async def state(request: Request) -> dict[str, Any]:
        return serialize_state(_runtime(request).ctx)

    @router.post("/refresh", status_code=202)
    async def refresh(request: Request) -> dict[str, Any]:
        _runtime(request).post(RefreshAll())
        return _accepted()

    @router.post("/bridge/discover", status_code=202)
    async def discover(request: Request) -> dict[str, Any]:
        _runtime(request).post(DiscoverBridge())
        return _accepted()

    @router.post("/bridge/pair", status_code=202)
    async def pair(request: Request) -> dict[str, Any]:
        runtime = _runtime(request)
        if not runtime.ctx.settings.bridge_address:
            raise HTTPException(status_code=409, detail="no bridge address; discover first")
        runtime.post(PairBridge())
        return _accepted()

    @router.post("/bridge/unpair", status_code=202)
    async def unpair(request: Request) -> dict[str, Any]:
        _runtime(request).post(UnpairBridge())
        return _accepted()

    @router.post("/lights/{light_id}/on", status_code=202)
    async def light_on(light_id: str, body: OnBody, request: Request) -> dict[str, Any]:
        runtime = _runtime(request)
        _require(runtime, ResourceRef.light(light_id))
        runtime.post(ToggleLight(light_id=light_id, on=body.on))
        return _accepted()

    @router.post("/groups/{group_id}/on", status_code=202)
    async def group_on(group_id: str, body: OnBody, request: Request) -> dict[str, Any]:
        runtime = _runtime(request)
        _require(runtime, ResourceRef.group(group_id))
        runtime.post(ToggleGroup(group_id=group_id, on=body.on))
        return _accepted()

    # Registered before the generic "/{kind}/..." routes so they win.
    @router.post("/picker/color", status_code=202)
    async def picker_color(body: ColorBody, request: Request) -> dict[str, Any]:
        runtime = _runtime(request)
        if runtime.ctx.picker.active is None:
            raise HTTPException(status_code=409, detail="no color picker selection")
        runtime.post(PickColor(color=body.to_hsv()))
        return _accepted()

    @router.post("/picker/{kind}/{resource_id}", status_code=202)
    async def picker_toggle(kind: str, resource_id: str, request: Request) -> dict[str, Any]:
        runtime = _runtime(request)
        ref = _ref_from_path(kind, resource_id)
        _require(runtime, ref)
        runtime.post(ToggleColorPicker(selection=SelectionKey(ref.kind, ref.resource_id)))
        return _accepted()

    @router.post("/{kind}/{resource_id}/brightness", status_code=202)
    async def brightness(kind: str, resource_id: str, body: BrightnessBody, request: Request) -> dict[str, Any]:
        runtime = _runtime(request)
        ref = _ref_from_path(kind, resource_id)
        _require(runtime, ref)
        runtime.post(SetBrightness(target=ref, brightness=body.value))
        return _accepted()

    @router.post("/{kind}/{resource_id}/color", status_code=202)
    async def color(kind: str, resource_id: str, body: ColorBody, request: Request) -> dict[str, Any]:
        runtime = _runtime(request)
        ref = _ref_from_path(kind, resource_id)
        _require(runtime, ref)
        runtime.post(SetColor(target=ref, color=body.to_hsv()))
        return _accepted()

    @router.post("/scenes/{scene_id}/activate", status_code=202)
    async def activate(scene_id: str, request: Request) -> dict[str, Any]:
        runtime = _runtime(request)
        if runtime.ctx.store.scene(scene_id) is None:
            raise HTTPException(status_code=404, detail="scene not found")
        runtime.post(ActivateScene(scene_id=scene_id))
        return _accepted()

    return router


def _ref_from_path(kind: str, resource_id: str) -> ResourceRef:
    # Accept both "lights" (collection path) and "light".
    normalized = kind.rstrip("s")
    try:
        return ResourceRef(ResourceKind(normalized), resource_id)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"unknown resource kind {kind!r}") from None


def create_app(
    *,
    config: Optional[PanelConfig] = None,
    client: Optional[BridgeClient] = None,
    settings_store: Optional[SettingsStore] = None,
) -> FastAPI:
    cfg = config or PanelConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        http_client: httpx.AsyncClient | None = None
        bridge = client
        if bridge is None:
            http_client = httpx.AsyncClient(timeout=httpx.Timeout(cfg.http_timeout_s))
            bridge = HueHttpClient(client=http_client, discovery_url=cfg.discovery_url)

        store = settings_store
        if store is None:
            store = JsonSettingsStore(cfg.settings_path) if cfg.settings_path else MemorySettingsStore()

        ctx = PanelContext(config=cfg, client=bridge, settings_store=store)
        runtime = PanelRuntime(ctx)
        app.state.runtime = runtime
        await runtime.start()
        log.info("HUEPANEL.Server.Ready", extra={"fields": {
            "paired": ctx.credentials() is not None,
            "bridge_address": ctx.settings.bridge_address,
        }})

        yield

        await runtime.stop()
        if http_client is not None:
            with contextlib.suppress(Exception):
                await http_client.aclose()

    app = FastAPI(title="huepanel", lifespan=lifespan)
    app.include_router(build_panel_router())
    return app


app = create_app()
