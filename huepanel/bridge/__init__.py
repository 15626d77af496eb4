"""
Bridge clients

Fetch lights, groups and scenes from a lighting bridge and push state changes.
"""

from huepanel.bridge.base import (
    BridgeClient,
    BridgeError,
    BridgeResponseError,
    DiscoveryError,
    PairingError,
)
from huepanel.bridge.hue_http import HueHttpClient

__all__ = [
    "BridgeClient",
    "BridgeError",
    "BridgeResponseError",
    "DiscoveryError",
    "PairingError",
    "HueHttpClient",
]
