"""Color conversions between picker HSV, bridge integer HSV and display RGB.

Bridge ranges: hue 0-65535 over 360 degrees, saturation and brightness 0-254.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from huepanel.models import BLACK, Rgb

HUE_MAX = 65535
SAT_MAX = 254
BRI_MAX = 254
BRI_MIN = 1


def _clamp01(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


@dataclass(frozen=True, slots=True)
class HsvColor:
    """Picker color: hue in degrees, saturation/value in [0, 1]."""

    hue: float
    saturation: float
    value: float

    @staticmethod
    def from_degrees(hue: float, saturation: float, value: float) -> "HsvColor":
        return HsvColor(float(hue) % 360.0, _clamp01(saturation), _clamp01(value))

    @staticmethod
    def from_turns(turns: float, saturation: float, value: float) -> "HsvColor":
        return HsvColor.from_degrees(float(turns) * 360.0, saturation, value)


@dataclass(frozen=True, slots=True)
class DeviceHsv:
    hue: int
    saturation: int
    brightness: int


def hsv_to_device(color: HsvColor) -> DeviceHsv:
    normalized = HsvColor.from_degrees(color.hue, color.saturation, color.value)
    # int() truncates toward zero, same as an integer cast on the device side.
    return DeviceHsv(
        hue=int(normalized.hue / 360.0 * HUE_MAX),
        saturation=int(normalized.saturation * SAT_MAX),
        brightness=int(normalized.value * BRI_MAX),
    )


def hsv_to_rgb(hue: Optional[int], saturation: Optional[int], brightness: Optional[int]) -> Rgb:
    """Convert bridge HSV to an RGB triple in [0, 1].

    Sectors are half-open [lo, hi); a hue of exactly 60, 120, ... belongs to the
    sector starting there, and 360 falls in the last one. Unknown state is black.
    """

    if hue is None or saturation is None or brightness is None:
        return BLACK

    h = hue * 360.0 / HUE_MAX
    s = saturation / float(SAT_MAX)
    v = brightness / float(BRI_MAX)

    c = v * s
    x = c * (1.0 - abs((h / 60.0) % 2.0 - 1.0))
    m = v - c

    if 0.0 <= h < 60.0:
        r1, g1, b1 = c, x, 0.0
    elif 60.0 <= h < 120.0:
        r1, g1, b1 = x, c, 0.0
    elif 120.0 <= h < 180.0:
        r1, g1, b1 = 0.0, c, x
    elif 180.0 <= h < 240.0:
        r1, g1, b1 = 0.0, x, c
    elif 240.0 <= h < 300.0:
        r1, g1, b1 = x, 0.0, c
    else:
        r1, g1, b1 = c, 0.0, x

    return (r1 + m, g1 + m, b1 + m)


def device_to_rgb(device: DeviceHsv) -> Rgb:
    return hsv_to_rgb(device.hue, device.saturation, device.brightness)


def clamp_brightness(value: float) -> int:
    # Sliders report floats; truncate like the device cast, then keep within 1-254.
    return min(BRI_MAX, max(BRI_MIN, int(value)))


def brightness_percent(brightness: Optional[int]) -> int:
    if brightness is None:
        return 0
    # Half away from zero, not banker's rounding.
    return int(max(0, brightness - 1) / 253.0 * 100.0 + 0.5)
