"""Chart controller — owns the single visualization on the stats page.

Switching mode never mutates the current chart: show() disposes the current
Visualization, fetches the new mode's rows, runs that mode's pipeline and
installs a freshly built Visualization.  If a newer show() starts while an
older one is still waiting on the network, the older result is dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Protocol

import plotly.graph_objects as go

from data.fetcher import ApiError, validate_bins
from data.models import DifficultyBinRow, DifficultyBucketRow, VintageStatRow
from stats.binning import (
    VINTAGE_ALL_ONLY,
    VINTAGE_CATEGORIES,
    ChartModel,
    build_bucket_chart,
    build_difficulty_chart,
    build_vintage_chart,
)
from ui.components import Notifier, build_chart_figure, log_notifier

logger = logging.getLogger(__name__)

DEFAULT_BINS = 20


class StatsSource(Protocol):
    async def vintage_stats(self) -> list[VintageStatRow]: ...

    async def difficulty_stats(self, bins: int) -> list[DifficultyBinRow]: ...

    async def difficulty_bucket_stats(self, bins: int) -> list[DifficultyBucketRow]: ...


class ChartMode(str, Enum):
    VINTAGE = "vintage"
    VINTAGE_ALL = "vintage_all"
    DIFFICULTY = "difficulty"
    DIFFICULTY_BUCKETS = "difficulty_buckets"


CHART_MODE_LABELS: dict[ChartMode, str] = {
    ChartMode.VINTAGE: "By vintage",
    ChartMode.VINTAGE_ALL: "By vintage (all songs)",
    ChartMode.DIFFICULTY: "By difficulty",
    ChartMode.DIFFICULTY_BUCKETS: "By difficulty (buckets)",
}

# Vintage modes share one endpoint and differ only in the categories drawn.
_VINTAGE_MODES = {
    ChartMode.VINTAGE: VINTAGE_CATEGORIES,
    ChartMode.VINTAGE_ALL: VINTAGE_ALL_ONLY,
}


@dataclass
class Visualization:
    mode: ChartMode
    model: ChartModel
    figure: go.Figure | None
    bins: int | None = None
    disposed: bool = False

    def dispose(self) -> None:
        self.figure = None
        self.disposed = True


class ChartController:
    def __init__(
        self,
        client: StatsSource,
        notify: Notifier | None = None,
        renderer: Callable[[ChartModel], Any] = build_chart_figure,
    ):
        self._client = client
        self._notify = notify or log_notifier
        self._renderer = renderer
        self._current: Visualization | None = None
        self._generation = 0

    @property
    def current(self) -> Visualization | None:
        return self._current

    def dispose(self) -> None:
        if self._current is not None:
            self._current.dispose()
            self._current = None

    async def show(self, mode: ChartMode | str, bins: int | None = None) -> Visualization | None:
        """Replace the current chart with a new one for *mode*.

        Returns the new Visualization, or None when the load failed or was
        superseded by a later call.
        """
        mode = ChartMode(mode)
        self._generation += 1
        generation = self._generation
        self.dispose()

        try:
            model, bins_used = await self._load(mode, bins)
        except (ApiError, ValueError) as err:
            if generation != self._generation:
                logger.info("Ignoring failure of superseded %s chart: %s", mode.value, err)
                return None
            logger.warning("Loading %s chart failed: %s", mode.value, err)
            self._notify(str(err))
            return None

        if generation != self._generation:
            logger.info("Discarding superseded %s chart", mode.value)
            return None

        self._current = Visualization(
            mode=mode,
            model=model,
            figure=self._renderer(model),
            bins=bins_used,
        )
        return self._current

    async def _load(self, mode: ChartMode, bins: int | None) -> tuple[ChartModel, int | None]:
        if mode in _VINTAGE_MODES:
            rows = await self._client.vintage_stats()
            return build_vintage_chart(rows, _VINTAGE_MODES[mode]), None

        bins_int = validate_bins(DEFAULT_BINS if bins is None else bins)
        if mode is ChartMode.DIFFICULTY:
            rows = await self._client.difficulty_stats(bins_int)
            return build_difficulty_chart(rows, bins_int), bins_int

        rows = await self._client.difficulty_bucket_stats(bins_int)
        return build_bucket_chart(rows), bins_int
