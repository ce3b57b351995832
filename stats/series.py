"""Series assembler — declarative chart series for a set of categories.

assemble_series() turns an ordered list of CategoryDescriptor into a
SeriesSet.  Each descriptor contributes, in order:

    main line   (iff main_label)   — guess rate, rate axis
    plays bar   (iff bar_label)    — times played, stacked on the plays axis
    CI upper                       — always, band anchored to the main line
    CI lower                       — always, band anchored to the main line

The binning pipelines never search the list by position; they route points
through ``SeriesSet.get(tag, role)``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Sequence

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PALETTE: tuple[str, ...] = (
    "#9E9E9E", "#36A2EB",
    "#FF6384", "#FF9F40",
    "#FFCD56", "#4BC0C0",
    "#9966FF", "#C9CBCF",
)

RATE_AXIS = "rate"
PLAYS_AXIS = "plays"


class SeriesRole(str, Enum):
    MAIN = "main"
    CI_UPPER = "ci_upper"
    CI_LOWER = "ci_lower"
    PLAYS = "plays"


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CategoryDescriptor:
    """One chart category (song kind) and the series it exposes.

    Attributes
    ----------
    tag : str
        Category tag matched against the ``kind`` of each stat row.
    main_label : str | None
        Legend label of the guess-rate line; None means no line.
    bar_label : str | None
        Legend label of the play-count bars; None means no bars.
    weighted_points : bool
        Whether the main line carries one marker radius per point.
    """

    tag: str
    main_label: str | None = None
    bar_label: str | None = None
    weighted_points: bool = True


@dataclass(frozen=True)
class Point:
    x: Any
    y: float | None
    z: int | None = None


@dataclass
class Series:
    category: str
    role: SeriesRole
    color: str
    label: str | None = None
    hidden: bool = False
    axis: str = RATE_AXIS
    fill_anchor: int | None = None
    points: list[Point] = field(default_factory=list)
    # Index-aligned with points when present.
    radii: list[float] | None = None

    @property
    def is_ci(self) -> bool:
        return self.role in (SeriesRole.CI_UPPER, SeriesRole.CI_LOWER)

    @property
    def in_legend(self) -> bool:
        return not self.is_ci

    def add_point(self, point: Point, radius: float | None = None) -> None:
        self.points.append(point)
        if self.radii is not None:
            self.radii.append(0.0 if radius is None else radius)


class SeriesSet:
    """Ordered series plus a ``(tag, role)`` lookup."""

    def __init__(self, series: Sequence[Series]):
        self._series = list(series)
        self._index: dict[tuple[str, SeriesRole], Series] = {}
        for s in self._series:
            key = (s.category, s.role)
            if key in self._index:
                raise ValueError(f"Duplicate series for category {s.category!r} role {s.role.value}")
            self._index[key] = s

    def get(self, tag: str, role: SeriesRole) -> Series | None:
        return self._index.get((tag, role))

    def by_role(self, role: SeriesRole) -> list[Series]:
        return [s for s in self._series if s.role is role]

    def __iter__(self) -> Iterator[Series]:
        return iter(self._series)

    def __len__(self) -> int:
        return len(self._series)

    def __getitem__(self, index: int) -> Series:
        return self._series[index]


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

def assemble_series(
    descriptors: Sequence[CategoryDescriptor],
    palette: Sequence[str] = PALETTE,
) -> SeriesSet:
    """Build the series for *descriptors*; only the first main line starts visible."""
    series: list[Series] = []
    main_shown = False

    for index, desc in enumerate(descriptors):
        color = palette[index % len(palette)]
        anchor = len(series)

        if desc.main_label:
            series.append(
                Series(
                    category=desc.tag,
                    role=SeriesRole.MAIN,
                    color=color,
                    label=desc.main_label,
                    hidden=main_shown,
                    radii=[] if desc.weighted_points else None,
                )
            )
            main_shown = True

        if desc.bar_label:
            series.append(
                Series(
                    category=desc.tag,
                    role=SeriesRole.PLAYS,
                    color=color,
                    label=desc.bar_label,
                    axis=PLAYS_AXIS,
                )
            )

        for role in (SeriesRole.CI_UPPER, SeriesRole.CI_LOWER):
            series.append(
                Series(
                    category=desc.tag,
                    role=role,
                    color=color,
                    fill_anchor=anchor,
                )
            )

    return SeriesSet(series)
