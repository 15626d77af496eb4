"""Single-threaded panel loop.

Events are handled one at a time from an asyncio queue. Handlers return
effects: delays become `loop.call_later` timers, calls become tasks whose
outcome is posted back as a new event. Nothing outside a handler touches
the store or the pending-edit map, so no locks are needed.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import List, Optional

from huepanel.bridge.base import BridgeError
from huepanel.context import PanelContext
from huepanel.events import Delay, Effect, Event, Outcome, PeriodicRefresh, Perform, RefreshAll
from huepanel.handlers import update
from huepanel.panel_logging import get_logger

log = get_logger("HUEPANEL.Runtime")


class PanelRuntime:
    def __init__(self, ctx: PanelContext) -> None:
        self.ctx = ctx
        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._tasks: set[asyncio.Task] = set()
        self._timers: set[asyncio.TimerHandle] = set()
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def post(self, event: Event) -> None:
        """Queue an event. Must be called from the loop's thread."""
        self._queue.put_nowait(event)

    def dispatch(self, event: Event) -> List[Effect]:
        """Handle one event now and start its effects."""
        effects = update(self.ctx, event)
        for effect in effects:
            self._execute(effect)
        return effects

    async def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._run())
        if self.ctx.config.refresh_interval_s > 0:
            self.post(PeriodicRefresh())
        elif self.ctx.config.refresh_on_start:
            self.post(RefreshAll())
        log.info("HUEPANEL.Runtime.Started", extra={"fields": {
            "settle_delay_s": self.ctx.config.settle_delay_s,
            "convergence_delay_s": self.ctx.config.convergence_delay_s,
            "refresh_interval_s": self.ctx.config.refresh_interval_s,
        }})

    async def stop(self) -> None:
        for handle in list(self._timers):
            handle.cancel()
        self._timers.clear()

        tasks = list(self._tasks)
        if self._worker is not None:
            tasks.append(self._worker)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._worker = None
        log.info("HUEPANEL.Runtime.Stopped")

    async def wait_idle(self, poll: float = 0.005) -> None:
        """Wait until no events, timers or background calls remain."""
        while not self._queue.empty() or self._timers or self._tasks:
            await asyncio.sleep(poll)

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                self.dispatch(event)
            except Exception as e:
                log.error("HUEPANEL.Runtime.HandlerError", extra={"fields": {
                    "event": type(event).__name__,
                    "error": repr(e),
                }})
            finally:
                self._queue.task_done()

    def _execute(self, effect: Effect) -> None:
        loop = asyncio.get_running_loop()
        if isinstance(effect, Delay):
            event = effect.event

            def _fire() -> None:
                self._timers.discard(handle)
                self.post(event)

            handle = loop.call_later(max(0.0, effect.seconds), _fire)
            self._timers.add(handle)
        elif isinstance(effect, Perform):
            task = loop.create_task(self._perform(effect))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        else:
            raise TypeError(f"Unknown effect: {effect!r}")

    async def _perform(self, effect: Perform) -> None:
        try:
            outcome = Outcome.success(await effect.call())
        except BridgeError as e:
            outcome = Outcome.failure(str(e))
        except Exception as e:
            log.error("HUEPANEL.Runtime.CallError", extra={"fields": {
                "label": effect.label,
                "error": repr(e),
            }})
            outcome = Outcome.failure(repr(e))
        self.post(effect.on_done(outcome))
