"""Poll driver.

The monitor owns the current :class:`Generation`. Each cycle fetches a
full machine list, evaluates it against the current generation, hands the
events to the transition handler and only then swaps in the new
generation. Cycles never overlap: the next one starts ``poll_interval``
seconds after the previous one started, or right away if it overran.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol

from pylaundry.exceptions import LaundryError
from pylaundry.models.machine import MachineSnapshot
from pylaundry.notify import format_time_remaining
from pylaundry.state.events import Generation, TransitionEvent
from pylaundry.state.tracker import EngagementTracker
from pylaundry.state.transitions import evaluate_generation

_logger = logging.getLogger(__name__)

FetchMachines = Callable[[], Awaitable[Sequence[MachineSnapshot]]]


class TransitionHandler(Protocol):
    async def handle_transitions(self, events: Sequence[TransitionEvent], generation: Generation) -> None: ...


class MachineMonitor:
    """Periodically poll the feed and report transitions.

    Usage::

        monitor = MachineMonitor(feed.fetch_machines, dispatcher, tracker=tracker)
        await monitor.start()
        ...
        await monitor.stop()
    """

    def __init__(
        self,
        fetch: FetchMachines,
        handler: TransitionHandler | None = None,
        *,
        tracker: EngagementTracker | None = None,
        poll_interval: float = 30.0,
        stop_timeout: float = 10.0,
        debug: bool = False,
    ) -> None:
        self._fetch = fetch
        self._handler = handler
        self._tracker = tracker
        self._poll_interval = poll_interval
        self._stop_timeout = stop_timeout
        self._debug = debug
        self._generation = Generation.empty()
        self._cycle_lock = asyncio.Lock()
        self._stopping = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def generation(self) -> Generation:
        """The last fully evaluated generation."""
        return self._generation

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def current_machines(self) -> list[MachineSnapshot]:
        return self._generation.machines()

    async def poll_once(self) -> list[TransitionEvent]:
        """Run one full poll cycle and return its events.

        A failed fetch skips the cycle: no events, and the current
        generation stays the comparison baseline.
        """
        async with self._cycle_lock:
            _logger.debug("Polling machine status")
            try:
                snapshots = await self._fetch()
            except LaundryError as exc:
                _logger.warning("Skipping poll cycle, fetch failed: %s", exc)
                return []

            generation, events = evaluate_generation(self._generation, snapshots)

            if self._debug:
                for machine in generation.machines():
                    _logger.debug(
                        "%s: %s (%s remaining)",
                        machine.number or machine.id,
                        machine.status.value,
                        format_time_remaining(machine.remaining_seconds),
                    )

            if self._handler is not None:
                try:
                    await self._handler.handle_transitions(events, generation)
                except Exception:
                    _logger.exception("Transition handler failed")

            self._generation = generation
            return events

    async def start(self) -> None:
        """Start polling in the background; the first cycle runs immediately."""
        if self.is_running:
            return
        self._stopping.clear()
        self._task = asyncio.create_task(self._run(), name="pylaundry-monitor")
        _logger.info("Polling every %.0f seconds", self._poll_interval)

    async def stop(self) -> None:
        """Stop polling.

        An in-flight cycle gets ``stop_timeout`` seconds to finish; after
        that it is cancelled before its generation swap. Engagement state
        is cleared afterwards.
        """
        task = self._task
        if task is None:
            return
        _logger.info("Stopping machine monitor")
        self._stopping.set()
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=self._stop_timeout)
        except TimeoutError:
            _logger.warning("Poll cycle still running after %.1fs, cancelling it", self._stop_timeout)
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._task = None
        if self._tracker is not None:
            self._tracker.clear()

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while not self._stopping.is_set():
            started = loop.time()
            try:
                await self.poll_once()
            except Exception:
                _logger.exception("Poll cycle failed unexpectedly, continuing")
            delay = max(0.0, self._poll_interval - (loop.time() - started))
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stopping.wait(), timeout=delay)
