"""Periodic arrival refresh for the selected stop, with a staleness clock.

The scheduler owns two timers while a stop is selected: a refresh loop that
starts a fetch every `refresh_interval` seconds (without waiting for the
previous one to finish) and a tick loop that recomputes the seconds elapsed
since the last successful fetch.

Every fetch is tagged with a generation number when it starts. A result is
applied only if it belongs to the currently selected stop and no fetch
started later has already been applied, so a slow stale response can never
overwrite a fresher one.
"""

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from enum import Enum

from tusa_mcp.data.config import get_transit_config
from tusa_mcp.errors import TransitError
from tusa_mcp.models.transit import ArrivalGroup, NormalizedArrival, RefreshState
from tusa_mcp.services.aggregation import group_arrivals
from tusa_mcp.services.arrivals_service import fetch_arrivals

logger = logging.getLogger(__name__)

FetchArrivals = Callable[[str], Awaitable[list[NormalizedArrival]]]


class SchedulerState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    FETCHING = "fetching"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RefreshScheduler:
    """Keeps the arrivals board for one stop fresh.

    Usage:
        async with RefreshScheduler(on_update=render) as scheduler:
            scheduler.select("100123")
            ...
            await scheduler.refresh()  # manual refresh button

    `select` and the loops need a running event loop. Callbacks are plain
    callables invoked from the loop:
        on_update(groups), on_error(error), on_tick(elapsed_seconds)
    """

    def __init__(
        self,
        fetch: FetchArrivals | None = None,
        *,
        refresh_interval: float | None = None,
        tick_interval: float | None = None,
        on_update: Callable[[list[ArrivalGroup]], None] | None = None,
        on_error: Callable[[TransitError], None] | None = None,
        on_tick: Callable[[int], None] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if refresh_interval is None or tick_interval is None:
            config = get_transit_config()
            refresh_interval = refresh_interval or config.refresh_interval_seconds
            tick_interval = tick_interval or config.tick_interval_seconds

        self._fetch = fetch or fetch_arrivals
        self._refresh_interval = refresh_interval
        self._tick_interval = tick_interval
        self._on_update = on_update
        self._on_error = on_error
        self._on_tick = on_tick
        self._clock = clock

        self.refresh_state = RefreshState()
        self.groups: list[ArrivalGroup] = []
        self.elapsed_seconds: int | None = None

        self._min_generation = 0  # results started before the last select are dropped
        self._applied_generation = 0
        self._in_flight: set[int] = set()  # generations of fetches not yet returned
        self._timers: list[asyncio.Task] = []
        self._fetches: set[asyncio.Task] = set()

    async def __aenter__(self) -> "RefreshScheduler":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def stop_id(self) -> str | None:
        return self.refresh_state.stop_id

    @property
    def state(self) -> SchedulerState:
        if self.refresh_state.stop_id is None:
            return SchedulerState.IDLE
        if self._in_flight:
            return SchedulerState.FETCHING
        return SchedulerState.ACTIVE

    def select(self, stop_id: str | None) -> None:
        """Switch to another stop (or to none).

        Cancels the running timers and pending fetches, clears the board and
        the staleness clock, then starts fresh timers for the new stop. The
        first fetch starts immediately.
        """
        self._cancel_all()

        self.refresh_state = RefreshState(
            stop_id=stop_id or None,
            generation=self.refresh_state.generation + 1,
        )
        self._min_generation = self.refresh_state.generation
        self._applied_generation = self.refresh_state.generation
        self.groups = []
        self.elapsed_seconds = None

        if self.refresh_state.stop_id is None:
            logger.debug("No stop selected, refresh stopped")
            return

        logger.debug(f"Refreshing stop {stop_id} every {self._refresh_interval}s")
        self._timers = [
            asyncio.create_task(self._refresh_loop()),
            asyncio.create_task(self._tick_loop()),
        ]

    async def refresh(self) -> bool:
        """Fetch now (manual refresh). Returns True if the result was applied."""
        if self.refresh_state.stop_id is None:
            return False
        return await self._fetch_and_apply()

    def tick(self) -> int | None:
        """Recompute the seconds elapsed since the last successful fetch."""
        last = self.refresh_state.last_successful_fetch
        if last is None:
            return None
        elapsed = (self._clock() - last).total_seconds()
        self.elapsed_seconds = max(0, math.floor(elapsed))
        if self._on_tick:
            self._on_tick(self.elapsed_seconds)
        return self.elapsed_seconds

    async def close(self) -> None:
        """Stop all timers and pending fetches."""
        tasks = self._cancel_all()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _cancel_all(self) -> list[asyncio.Task]:
        tasks = [*self._timers, *self._fetches]
        for task in tasks:
            task.cancel()
        self._timers = []
        self._fetches = set()
        self._in_flight.clear()
        return tasks

    def _next_generation(self) -> int:
        self.refresh_state.generation += 1
        return self.refresh_state.generation

    def _is_current(self, stop_id: str, generation: int) -> bool:
        return (
            stop_id == self.refresh_state.stop_id
            and generation >= self._min_generation
            and generation > self._applied_generation
        )

    async def _fetch_and_apply(self) -> bool:
        stop_id = self.refresh_state.stop_id
        generation = self._next_generation()

        self._in_flight.add(generation)
        try:
            arrivals = await self._fetch(stop_id)
        except TransitError as e:
            if self._is_current(stop_id, generation):
                logger.info(f"Refresh of stop {stop_id} failed: {e}")
                if self._on_error:
                    self._on_error(e)
            return False
        finally:
            self._in_flight.discard(generation)

        if not self._is_current(stop_id, generation):
            logger.debug(f"Discarding stale result for stop {stop_id} (generation {generation})")
            return False

        self._applied_generation = generation
        self.groups = group_arrivals(arrivals)
        self.refresh_state.last_successful_fetch = self._clock()
        self.elapsed_seconds = 0
        if self._on_update:
            self._on_update(self.groups)
        if self._on_tick:
            self._on_tick(0)
        return True

    async def _background_fetch(self) -> None:
        try:
            await self._fetch_and_apply()
        except Exception:
            logger.exception(f"Unexpected error refreshing stop {self.refresh_state.stop_id}")

    async def _refresh_loop(self) -> None:
        # Time-based: a hung fetch never delays the next one.
        while True:
            task = asyncio.create_task(self._background_fetch())
            self._fetches.add(task)
            task.add_done_callback(self._fetches.discard)
            await asyncio.sleep(self._refresh_interval)

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self._tick_interval)
            try:
                self.tick()
            except Exception:
                logger.exception(f"Tick callback failed for stop {self.refresh_state.stop_id}")
