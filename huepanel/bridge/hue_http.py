from __future__ import annotations

from typing import Any, Awaitable, Callable, List, TypeVar

import httpx

from huepanel.bridge.base import BridgeError, BridgeResponseError, DiscoveryError, PairingError
from huepanel.config import DEFAULT_DISCOVERY_URL
from huepanel.models import (
    Group,
    GroupState,
    Light,
    LightState,
    ModificationReceipt,
    Scene,
    StateModifier,
)
from huepanel.panel_logging import get_logger

log = get_logger("HUEPANEL.Bridge")

T = TypeVar("T")


def _opt_int(value: Any) -> int | None:
    # bool is an int subclass; the bridge never sends booleans for levels.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def _opt_bool(value: Any) -> bool | None:
    return value if isinstance(value, bool) else None


def _error_descriptions(data: Any) -> list[str]:
    """Collect v1 error entries: [{"error": {"type": 1, "description": "..."}}]."""
    if not isinstance(data, list):
        return []
    errors: list[str] = []
    for item in data:
        if isinstance(item, dict) and isinstance(item.get("error"), dict):
            err = item["error"]
            errors.append(str(err.get("description") or f"error type {err.get('type')}"))
    return errors


def _parse_light(light_id: str, raw: dict) -> Light:
    state = raw.get("state") if isinstance(raw.get("state"), dict) else {}
    return Light(
        id=str(light_id),
        name=str(raw.get("name") or light_id),
        state=LightState(
            on=_opt_bool(state.get("on")),
            brightness=_opt_int(state.get("bri")),
            hue=_opt_int(state.get("hue")),
            saturation=_opt_int(state.get("sat")),
            reachable=_opt_bool(state.get("reachable")),
        ),
    )


def _parse_group(group_id: str, raw: dict) -> Group:
    state = raw.get("state")
    group_state = None
    if isinstance(state, dict) and isinstance(state.get("any_on"), bool):
        group_state = GroupState(any_on=state["any_on"])
    lights = raw.get("lights") if isinstance(raw.get("lights"), list) else []
    return Group(
        id=str(group_id),
        name=str(raw.get("name") or group_id),
        lights=[str(i) for i in lights],
        state=group_state,
    )


def _parse_scene(scene_id: str, raw: dict) -> Scene:
    group = raw.get("group")
    return Scene(
        id=str(scene_id),
        name=str(raw.get("name") or scene_id),
        group=str(group) if group not in (None, "") else None,
    )


def _parse_receipts(data: Any) -> List[ModificationReceipt]:
    receipts: List[ModificationReceipt] = []
    if not isinstance(data, list):
        raise BridgeResponseError(f"Unexpected state change response: {data!r}")
    for item in data:
        success = item.get("success") if isinstance(item, dict) else None
        if isinstance(success, dict):
            for address, value in success.items():
                receipts.append(ModificationReceipt(address=str(address), value=value))
    return receipts


class HueHttpClient:
    """Hue bridge client over the v1 REST API.

    Pass `client` to share one httpx.AsyncClient; otherwise each call opens its own.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        timeout_s: float | None = None,
        discovery_url: str = DEFAULT_DISCOVERY_URL,
        scheme: str = "http",
    ) -> None:
        self._client = client
        self._timeout = httpx.Timeout(timeout_s)
        self._discovery_url = discovery_url
        self._scheme = scheme

    def _api(self, address: str, path: str = "") -> str:
        return f"{self._scheme}://{address}/api{path}"

    async def _with_client(self, fn: Callable[[httpx.AsyncClient], Awaitable[T]]) -> T:
        if self._client is not None:
            return await fn(self._client)
        async with httpx.AsyncClient(timeout=self._timeout) as c:
            return await fn(c)

    async def _request(self, method: str, url: str, *, json: Any = None) -> Any:
        async def _send(c: httpx.AsyncClient) -> Any:
            r = await c.request(method, url, json=json)
            r.raise_for_status()
            return r.json()

        try:
            data = await self._with_client(_send)
        except httpx.HTTPStatusError as exc:
            # The httpx message embeds the full URL, token included.
            status = exc.response.status_code
            log.warning(
                "HUEPANEL.Bridge.RequestFailed",
                extra={"fields": {"method": method, "url": _redact(url), "status": status}},
            )
            raise BridgeError(f"{method} {_redact(url)} returned HTTP {status}") from exc
        except httpx.HTTPError as exc:
            log.warning(
                "HUEPANEL.Bridge.RequestFailed",
                extra={"fields": {"method": method, "url": _redact(url), "error": repr(exc)}},
            )
            raise BridgeError(f"{method} {_redact(url)} failed: {exc}") from exc
        except ValueError as exc:
            raise BridgeResponseError(f"{method} {_redact(url)} returned invalid JSON") from exc

        errors = _error_descriptions(data)
        if errors:
            raise BridgeResponseError("; ".join(errors))
        return data

    async def discover(self) -> str:
        """Return the address of the first bridge the discovery endpoint reports."""

        try:
            data = await self._request("GET", self._discovery_url)
        except BridgeError as exc:
            raise DiscoveryError(f"Bridge discovery failed: {exc}") from exc

        if not isinstance(data, list):
            raise DiscoveryError("Bridge discovery returned an unexpected payload")
        for entry in data:
            address = entry.get("internalipaddress") if isinstance(entry, dict) else None
            if address:
                log.info("HUEPANEL.Bridge.Discovered", extra={"fields": {"address": address, "count": len(data)}})
                return str(address)
        raise DiscoveryError("No bridge found")

    async def register(self, address: str, client_name: str) -> str:
        """Create an access token. The bridge link button must have been pressed."""

        try:
            data = await self._request("POST", self._api(address), json={"devicetype": client_name})
        except BridgeResponseError as exc:
            # Typically "link button not pressed".
            raise PairingError(str(exc)) from exc

        for item in data if isinstance(data, list) else []:
            success = item.get("success") if isinstance(item, dict) else None
            if isinstance(success, dict) and success.get("username"):
                log.info("HUEPANEL.Bridge.Paired", extra={"fields": {"address": address}})
                return str(success["username"])
        raise PairingError(f"Unexpected registration response: {data!r}")

    async def fetch_lights(self, address: str, token: str) -> List[Light]:
        data = await self._fetch_map(address, token, "/lights")
        return [_parse_light(light_id, raw) for light_id, raw in data.items() if isinstance(raw, dict)]

    async def fetch_groups(self, address: str, token: str) -> List[Group]:
        data = await self._fetch_map(address, token, "/groups")
        return [_parse_group(group_id, raw) for group_id, raw in data.items() if isinstance(raw, dict)]

    async def fetch_scenes(self, address: str, token: str) -> List[Scene]:
        data = await self._fetch_map(address, token, "/scenes")
        return [_parse_scene(scene_id, raw) for scene_id, raw in data.items() if isinstance(raw, dict)]

    async def push_light_state(
        self, address: str, token: str, light_id: str, modifier: StateModifier
    ) -> List[ModificationReceipt]:
        url = self._api(address, f"/{token}/lights/{light_id}/state")
        return _parse_receipts(await self._request("PUT", url, json=modifier.to_payload()))

    async def push_group_state(
        self, address: str, token: str, group_id: str, modifier: StateModifier
    ) -> List[ModificationReceipt]:
        url = self._api(address, f"/{token}/groups/{group_id}/action")
        return _parse_receipts(await self._request("PUT", url, json=modifier.to_payload()))

    async def _fetch_map(self, address: str, token: str, path: str) -> dict:
        data = await self._request("GET", self._api(address, f"/{token}{path}"))
        if not isinstance(data, dict):
            raise BridgeResponseError(f"Unexpected {path} payload")
        return data


def _redact(url: str) -> str:
    # Tokens sit right after /api/; keep them out of logs and error messages.
    head, sep, tail = url.partition("/api/")
    if not sep:
        return url
    _token, slash, rest = tail.partition("/")
    return f"{head}/api/***{slash}{rest}"
