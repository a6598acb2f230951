"""Turn a noisy stream of hovered tract ids into chart loads.

Hover events are debounced and de-duplicated; variable changes reload the
active tract immediately. Every load is tagged with a generation number and
only the newest generation may touch visible state, so a slow load that
finishes after a newer one is dropped no matter how the network orders them.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterable

from components.tract_chart import TractChartRenderer
from utils.feature_service import RemoteQueryError
from utils.tract_queries import NoDataError, TractChartData, TractChartLoader
from utils.variables import MapVariable

logger = logging.getLogger(__name__)

HOVER_DEBOUNCE_SECONDS = 0.3

_UNSET = object()


class ChartStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"


@dataclass(frozen=True)
class LoadRequest:
    generation: int
    tract_id: str
    variable: MapVariable


class TractChartController:
    """Single writer for the tract chart's visible state."""

    def __init__(
        self,
        loader: TractChartLoader,
        renderer: TractChartRenderer,
        debounce_seconds: float = HOVER_DEBOUNCE_SECONDS,
    ):
        self.loader = loader
        self.renderer = renderer
        self.debounce_seconds = debounce_seconds

        # Visible state
        self.visible = False
        self.loading = False
        self.no_data = False
        self.tract_name = ""
        self.variable_name = ""
        self.last_data: TractChartData | None = None

        self.current_tract_id: str | None = None
        self.current_variable: MapVariable | None = None

        self._generation = 0
        self._active: LoadRequest | None = None
        self._last_emitted = _UNSET
        self._debounce_task: asyncio.Task | None = None
        self._load_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def status(self) -> ChartStatus:
        if not self.visible:
            return ChartStatus.IDLE
        if self.loading:
            return ChartStatus.LOADING
        return ChartStatus.LOADED

    # -- event sources --------------------------------------------------

    def on_hover(self, tract_id: str | None):
        """Raw hover event; restarts the quiet period."""
        if self._debounce_task is not None:
            self._debounce_task.cancel()
        self._debounce_task = self._spawn(self._debounced_hover(tract_id))

    def on_variable(self, variable: MapVariable | None):
        """Variable selection changed; reload the active tract right away."""
        self.current_variable = variable
        if self.current_tract_id:
            self._start_load(self.current_tract_id)

    async def run(
        self,
        hover_events: AsyncIterable[str | None],
        variable_events: AsyncIterable[MapVariable | None],
    ):
        """Consume both event sources until they end, then wait for pending work."""

        async def pump(events, handler):
            async for event in events:
                handler(event)

        await asyncio.gather(
            pump(variable_events, self.on_variable),
            pump(hover_events, self.on_hover),
        )
        await self.settle()

    async def select(self, tract_id: str | None, variable: MapVariable | None):
        """
        Apply one snapshot of the page selections and wait for the result.

        A tract that is already active, with no hover still pending, skips the
        debounce entirely.
        """
        if variable != self.current_variable:
            self.on_variable(variable)
        pending = self._debounce_task is not None and not self._debounce_task.done()
        if pending or tract_id != self.current_tract_id:
            self.on_hover(tract_id)
        await self.settle()

    async def settle(self):
        """Wait until no debounce timer or load is outstanding."""
        while pending := [t for t in self._tasks if not t.done()]:
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self):
        """Cancel outstanding work and drop the chart."""
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._generation += 1
        self._active = None
        self.loading = False
        self.visible = False
        self.renderer.destroy()

    # -- state transitions ----------------------------------------------

    async def _debounced_hover(self, tract_id: str | None):
        await asyncio.sleep(self.debounce_seconds)
        if tract_id == self._last_emitted:
            return
        self._last_emitted = tract_id
        self._apply_hover(tract_id)

    def _apply_hover(self, tract_id: str | None):
        self.current_tract_id = tract_id
        if tract_id:
            self.visible = True
            self._start_load(tract_id)
        else:
            # Hover cleared: anything still in flight is now stale
            self._supersede()
            self.visible = False
            self.loading = False
            logger.debug("Hover cleared; chart hidden")

    def _supersede(self):
        self._generation += 1
        self._active = None
        if self._load_task is not None:
            self._load_task.cancel()
            self._load_task = None

    def _start_load(self, tract_id: str):
        variable = self.current_variable
        if variable is None:
            # Nothing to chart until a variable is selected
            self._supersede()
            self.loading = False
            return

        self._supersede()
        request = LoadRequest(self._generation, tract_id, variable)
        self._active = request
        self.loading = True
        self.no_data = False
        logger.debug("Load %d started: tract %s, %s", request.generation, tract_id, variable.field_name)
        self._load_task = self._spawn(self._load(request))

    def _is_current(self, request: LoadRequest) -> bool:
        return self._active is not None and self._active.generation == request.generation

    async def _load(self, request: LoadRequest):
        try:
            data = await self.loader.load(request.tract_id, request.variable)
        except NoDataError:
            if self._is_current(request):
                logger.info("No data for tract %s", request.tract_id)
                self.loading = False
                self.no_data = True
            return
        except RemoteQueryError:
            if self._is_current(request):
                logger.exception("Tract chart query failed for %s", request.tract_id)
                self.loading = False
            else:
                logger.debug("Discarded failure of stale load %d", request.generation)
            return
        except Exception:
            # Malformed records or loader bugs: clear loading, keep the last chart
            if self._is_current(request):
                logger.exception("Unexpected error loading tract %s", request.tract_id)
                self.loading = False
            return

        if not self._is_current(request):
            logger.debug("Discarded stale load %d (active %d)", request.generation, self._generation)
            return

        self.loading = False
        try:
            self.renderer.render(
                data.years,
                data.tract_series,
                data.county_series,
                data.region_series,
                request.variable,
                tract_label=data.tract_label,
                county_label=data.county_label,
                region_label=data.region_label,
            )
        except Exception:
            logger.exception("Tract chart render failed for %s", request.tract_id)
            return

        self.tract_name = data.tract_label
        self.variable_name = request.variable.name
        self.last_data = data

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
