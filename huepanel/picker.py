from __future__ import annotations

from enum import Enum
from typing import Optional

from huepanel.models import SelectionKey


class PickerTransition(str, Enum):
    OPENED = "opened"
    CLOSED = "closed"
    REOPENED = "reopened"


class ColorPickerSelection:
    """Which light or group owns the color-picker popup. At most one."""

    def __init__(self) -> None:
        self._active: Optional[SelectionKey] = None
        self._open = False

    @property
    def active(self) -> Optional[SelectionKey]:
        return self._active

    @property
    def is_open(self) -> bool:
        return self._open

    def toggle(self, selection: SelectionKey) -> PickerTransition:
        if self._open and self._active == selection:
            self.close()
            return PickerTransition.CLOSED

        if self._open:
            # Popup is anchored to its owner's button, so switching owners reopens it.
            self._active = selection
            return PickerTransition.REOPENED

        self._active = selection
        self._open = True
        return PickerTransition.OPENED

    def close(self) -> None:
        self._active = None
        self._open = False
