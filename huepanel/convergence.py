"""
Convergence scheduling.

Scene activation is fire-and-forget: the bridge fades lights over its own
transition time, so the store is re-fetched once that has surely finished.
"""

from __future__ import annotations

import logging
from typing import List

from huepanel.config import DEFAULT_CONVERGENCE_DELAY_S
from huepanel.events import Delay, LoadGroups, LoadLights

logger = logging.getLogger(__name__)


class ConvergenceScheduler:
    def __init__(self, delay: float = DEFAULT_CONVERGENCE_DELAY_S):
        self._delay = delay

    @property
    def delay(self) -> float:
        return self._delay

    def refresh_after_scene(self, scene_id: str, group_id: str) -> List[Delay]:
        """Deferred refetch of groups and lights after a scene recall."""
        logger.debug(f"Scheduling convergence refresh for scene {scene_id} (group {group_id}) in {self._delay}s")
        return [
            Delay(self._delay, LoadGroups()),
            Delay(self._delay, LoadLights()),
        ]
