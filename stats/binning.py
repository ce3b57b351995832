"""Binning pipelines — route raw stat rows into assembled chart series.

Three chart modes share one routing step (_route_row) and differ in how the
x coordinate is derived and how rows are ordered:

- vintage            : x = season label on a contiguous category axis,
                       rows by descending season ordinal.
- difficulty         : x = bin-centre percentile ``(b - 0.5) / bins * 100``,
                       rows by ascending bin, rates shown as percentages.
- difficulty_buckets : x = bucket midpoint ``(min + max) / 2``,
                       rows by ascending x, rates shown as percentages.

Each pipeline returns a ChartModel carrying the populated SeriesSet plus the
axis configuration the renderer needs (labels, default zoom window, ranges).
Points are appended in processing order so every main series' ``radii``
stays index-aligned with its ``points``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Literal, Sequence

import numpy as np
import pandas as pd

from data.models import DifficultyBinRow, DifficultyBucketRow, VintageStatRow
from stats.codec import (
    ordinal_to_season,
    point_weight,
    season_labels,
    season_to_ordinal,
    wilson_bands,
)
from stats.series import CategoryDescriptor, Point, SeriesRole, SeriesSet, assemble_series

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VINTAGE_CATEGORIES: tuple[CategoryDescriptor, ...] = (
    CategoryDescriptor("All", "Guess Rate (All)", None),
    CategoryDescriptor("Opening", "Guess Rate (Openings)", "Total Plays (Opening)"),
    CategoryDescriptor("Ending", "Guess Rate (Endings)", "Total Plays (Ending)"),
    CategoryDescriptor("Insert", "Guess Rate (Inserts)", "Total Plays (Insert)"),
)

# Single-category vintage chart (guess rate over all songs only).
VINTAGE_ALL_ONLY: tuple[CategoryDescriptor, ...] = (
    CategoryDescriptor("All", "Guess Rate", None),
)

DIFFICULTY_CATEGORIES: tuple[CategoryDescriptor, ...] = (
    CategoryDescriptor("All", "Guess Rate", "Total Plays", weighted_points=False),
)

BUCKET_CATEGORIES: tuple[CategoryDescriptor, ...] = (
    CategoryDescriptor("All", "Guess Rate", None),
    CategoryDescriptor("Opening", "Guess Rate (Openings)", None),
    CategoryDescriptor("Ending", "Guess Rate (Endings)", None),
    CategoryDescriptor("Insert", "Guess Rate (Inserts)", None),
)

# Rows from the difficulty endpoint carry no kind.
_DIFFICULTY_TAG = "All"

# Default zoom window for the vintage chart.
VINTAGE_WINDOW = ("Winter 2007", "Fall 2020")

_PERCENT = 100.0


@dataclass
class ChartModel:
    """Everything a renderer needs to draw one chart.

    Attributes
    ----------
    mode : str
        Pipeline that produced the model.
    series : SeriesSet
        Populated series, in assembly order.
    x_kind : "category" | "linear"
        Category axis (vintage labels) or numeric percentile axis.
    labels : list[str]
        Category axis labels, contiguous; empty for linear axes.
    x_range : tuple[float, float] | None
        Default visible window.  Label indices on a category axis, axis
        units on a linear axis.
    y_range : tuple[float, float] | None
        Fixed rate-axis range; None lets the renderer start at zero.
    rate_scale : float
        1.0 when rates are fractions, 100.0 when they are percentages.
    """

    mode: str
    series: SeriesSet
    x_kind: Literal["category", "linear"]
    labels: list[str] = field(default_factory=list)
    x_range: tuple[float, float] | None = None
    y_range: tuple[float, float] | None = None
    rate_scale: float = 1.0
    title: str = ""

    @property
    def has_plays_axis(self) -> bool:
        return bool(self.series.by_role(SeriesRole.PLAYS))

    @property
    def is_empty(self) -> bool:
        return all(not s.points for s in self.series)


# ---------------------------------------------------------------------------
# Shared routing
# ---------------------------------------------------------------------------

def _nan_to_none(value: Any) -> float | None:
    if value is None:
        return None
    value = float(value)
    return None if math.isnan(value) else value


def _rows_frame(rows: Sequence[Any]) -> pd.DataFrame:
    return pd.DataFrame([r.model_dump() for r in rows])


def _route_row(
    series: SeriesSet,
    tag: str,
    x: Any,
    rate: float | None,
    count: int,
    lower: float,
    upper: float,
    plays: int | None,
    scale: float = 1.0,
) -> None:
    """Append the main, CI and plays points derived from one row."""
    has_sample = rate is not None and count > 0

    main = series.get(tag, SeriesRole.MAIN)
    if main is not None:
        y = rate * scale if has_sample else None
        radius = point_weight(count) if count > 0 else 0.0
        main.add_point(Point(x=x, y=y, z=int(count)), radius=radius)

    if has_sample and np.isfinite(lower) and np.isfinite(upper):
        ci_upper = series.get(tag, SeriesRole.CI_UPPER)
        if ci_upper is not None:
            ci_upper.add_point(Point(x=x, y=float(upper) * scale))
        ci_lower = series.get(tag, SeriesRole.CI_LOWER)
        if ci_lower is not None:
            ci_lower.add_point(Point(x=x, y=float(lower) * scale))

    plays_series = series.get(tag, SeriesRole.PLAYS)
    if plays_series is not None and plays is not None:
        plays_series.add_point(Point(x=x, y=int(plays)))


def _route_frame(
    series: SeriesSet,
    frame: pd.DataFrame,
    scale: float,
    plays_col: str | None = "times_played",
) -> None:
    lower, upper = wilson_bands(frame["guess_rate"], frame["guess_count"])
    for i, row in enumerate(frame.itertuples(index=False)):
        _route_row(
            series,
            tag=row.kind,
            x=row.x,
            rate=_nan_to_none(row.guess_rate),
            count=int(row.guess_count),
            lower=lower[i],
            upper=upper[i],
            plays=int(getattr(row, plays_col)) if plays_col else None,
            scale=scale,
        )


# ---------------------------------------------------------------------------
# Vintage (season) mode
# ---------------------------------------------------------------------------

def vintage_window(first: int, last: int) -> tuple[int, int]:
    """Default visible label-index window for a data span of ordinals first..last.

    The data span intersected with VINTAGE_WINDOW; the whole span when they
    do not overlap.
    """
    lo = max(first, season_to_ordinal(VINTAGE_WINDOW[0]))
    hi = min(last, season_to_ordinal(VINTAGE_WINDOW[1]))
    if lo > hi:
        return 0, last - first
    return lo - first, hi - first


def build_vintage_chart(
    rows: Sequence[VintageStatRow],
    categories: Sequence[CategoryDescriptor] = VINTAGE_CATEGORIES,
) -> ChartModel:
    """Guess rate by release season, one line per category."""
    model = ChartModel(
        mode="vintage",
        series=assemble_series(categories),
        x_kind="category",
        y_range=(0.0, 1.05),
        title="Guess rate by vintage",
    )
    if not rows:
        return model

    frame = _rows_frame(rows)
    frame["ordinal"] = frame["vintage"].map(season_to_ordinal)
    unknown = frame["ordinal"] < 0
    if unknown.any():
        logger.warning(
            "Dropping %d vintage rows with unrecognised season labels: %s",
            int(unknown.sum()),
            sorted(frame.loc[unknown, "vintage"].astype(str).unique().tolist()),
        )
        frame = frame[~unknown].copy()
    if frame.empty:
        return model

    frame = frame.sort_values("ordinal", ascending=False, kind="stable").reset_index(drop=True)
    frame["x"] = frame["ordinal"].map(ordinal_to_season)
    _route_frame(model.series, frame, scale=1.0)

    last = int(frame["ordinal"].iloc[0])
    first = int(frame["ordinal"].iloc[-1])
    model.labels = season_labels(first, last)
    model.x_range = vintage_window(first, last)
    return model


# ---------------------------------------------------------------------------
# Continuous difficulty-bin mode
# ---------------------------------------------------------------------------

def bin_center(diff_bin: int, bins: int) -> float:
    """Percentile at the centre of 1-indexed bin *diff_bin* out of *bins*."""
    return (diff_bin - 0.5) / bins * _PERCENT


def build_difficulty_chart(
    rows: Sequence[DifficultyBinRow],
    bins: int,
    categories: Sequence[CategoryDescriptor] = DIFFICULTY_CATEGORIES,
) -> ChartModel:
    """Guess rate and play counts by equal-width difficulty bin."""
    if bins < 1:
        raise ValueError("Bin count must be at least 1")
    model = ChartModel(
        mode="difficulty",
        series=assemble_series(categories),
        x_kind="linear",
        x_range=(0.0, _PERCENT),
        rate_scale=_PERCENT,
        title=f"Guess rate by difficulty ({bins} bins)",
    )
    if not rows:
        return model

    frame = _rows_frame(rows)
    missing = frame["diff_bin"].isna()
    if missing.any():
        logger.warning("Dropping %d difficulty rows without a bin", int(missing.sum()))
        frame = frame[~missing].copy()
    if frame.empty:
        return model

    frame = frame.sort_values("diff_bin", kind="stable").reset_index(drop=True)
    frame["kind"] = _DIFFICULTY_TAG
    frame["x"] = [bin_center(int(b), bins) for b in frame["diff_bin"]]
    _route_frame(model.series, frame, scale=_PERCENT)
    return model


# ---------------------------------------------------------------------------
# Categorical difficulty-bucket mode
# ---------------------------------------------------------------------------

def build_bucket_chart(
    rows: Sequence[DifficultyBucketRow],
    categories: Sequence[CategoryDescriptor] = BUCKET_CATEGORIES,
) -> ChartModel:
    """Guess rate by equal-population difficulty bucket, one line per category."""
    model = ChartModel(
        mode="difficulty_buckets",
        series=assemble_series(categories),
        x_kind="linear",
        x_range=(0.0, _PERCENT),
        y_range=(0.0, 101.0),
        rate_scale=_PERCENT,
        title="Guess rate by difficulty bucket",
    )
    if not rows:
        return model

    frame = _rows_frame(rows)
    missing = frame["bucket_min"].isna() | frame["bucket_max"].isna()
    if missing.any():
        logger.warning("Dropping %d bucket rows without bounds", int(missing.sum()))
        frame = frame[~missing].copy()
    if frame.empty:
        return model

    frame["x"] = (frame["bucket_min"].astype(float) + frame["bucket_max"].astype(float)) / 2.0
    frame = frame.sort_values("x", kind="stable").reset_index(drop=True)
    _route_frame(model.series, frame, scale=_PERCENT, plays_col=None)
    return model
