from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from huepanel.bridge.base import BridgeClient
from huepanel.config import PanelConfig
from huepanel.convergence import ConvergenceScheduler
from huepanel.debounce import DebounceCoordinator
from huepanel.picker import ColorPickerSelection
from huepanel.session import BridgeSession
from huepanel.settings import BridgeSettings, SettingsStore
from huepanel.store import ViewModelStore


@dataclass
class PanelContext:
    """All mutable panel state, owned by one event loop and handed to every handler."""

    config: PanelConfig
    client: BridgeClient
    settings_store: SettingsStore
    store: ViewModelStore = field(default_factory=ViewModelStore)
    picker: ColorPickerSelection = field(default_factory=ColorPickerSelection)
    session: BridgeSession = field(default_factory=BridgeSession)
    debounce: Optional[DebounceCoordinator] = None
    convergence: Optional[ConvergenceScheduler] = None
    settings: BridgeSettings = field(default_factory=BridgeSettings)

    def __post_init__(self) -> None:
        if self.debounce is None:
            self.debounce = DebounceCoordinator(self.store, settle_delay=self.config.settle_delay_s)
        if self.convergence is None:
            self.convergence = ConvergenceScheduler(self.config.convergence_delay_s)
        self.settings = self.settings_store.load()

    def credentials(self) -> Optional[tuple[str, str]]:
        return self.settings.credentials

    def update_settings(self, settings: BridgeSettings) -> None:
        self.settings = settings
        self.settings_store.save(settings)
