from __future__ import annotations

from typing import Optional

from huepanel.events import Outcome


class BridgeSession:
    """Discovery and pairing status shown to the user."""

    def __init__(self) -> None:
        self.is_scanning = False
        self.last_discovery: Optional[Outcome[str]] = None

    def begin_discovery(self) -> None:
        self.is_scanning = True

    def finish_discovery(self, outcome: Outcome[str]) -> None:
        self.is_scanning = False
        self.last_discovery = outcome

    def pairing_failed(self, error: str) -> None:
        self.last_discovery = Outcome.failure(error)

    def reset(self) -> None:
        self.is_scanning = False
        self.last_discovery = None

    @property
    def status_text(self) -> str:
        if self.is_scanning:
            return "Searching for bridges…"
        if self.last_discovery is None:
            return "No bridge configured"
        if self.last_discovery.ok:
            return f"Bridge found: {self.last_discovery.value}"
        return f"Error: {self.last_discovery.error}"
