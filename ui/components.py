"""Reusable Streamlit UI components for the song stats dashboard.

All public render_* functions draw directly into the current Streamlit
context.  The transformation helpers (build_chart_figure, format_detail,
build_results_df, ...) are kept pure so they can be tested without a
Streamlit runtime.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, NamedTuple, Sequence

import numpy as np
import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from data.models import SongDetail, SongRow
from stats.binning import ChartModel
from stats.series import Series, SeriesRole

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]


def log_notifier(message: str) -> None:
    """Fallback notifier for controllers running without a page."""
    logger.error("%s", message)


# ---------------------------------------------------------------------------
# Formatting helpers (pure, no Streamlit calls)
# ---------------------------------------------------------------------------

RESULT_COLUMNS = ["Song", "Artist", "Anime", "Difficulty"]

_BAND_ALPHA = 0.5
_BAR_ALPHA = 0.5


def _rgba(hex_color: str, alpha: float) -> str:
    """'#36A2EB', 0.5 → 'rgba(54,162,235,0.5)'."""
    h = hex_color.lstrip("#")
    if len(h) == 3:
        h = "".join(c * 2 for c in h)
    r, g, b = int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)
    return f"rgba({r},{g},{b},{alpha})"


def format_difficulty(value: float | None) -> str:
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return "—"
    return f"{value:.1f}"


def build_results_df(rows: Sequence[SongRow]) -> pd.DataFrame:
    """Search results as a display DataFrame indexed by song id."""
    records = [
        {
            "song_id": row.song_id,
            "Song": row.song_name,
            "Artist": row.artist,
            "Anime": row.anime,
            "Difficulty": format_difficulty(row.difficulty),
        }
        for row in rows
    ]
    return pd.DataFrame(records, columns=["song_id"] + RESULT_COLUMNS).set_index("song_id")


# ---------------------------------------------------------------------------
# Song detail
# ---------------------------------------------------------------------------

class DetailCell(NamedTuple):
    text: str
    href: str | None = None


def format_detail(
    detail: SongDetail,
    asset_host: str,
) -> list[tuple[DetailCell | None, DetailCell | None]]:
    """Arrange song attributes into (left, right) presentation rows.

    Attributes are ordered by key.  ``id``, ``mp3`` and ``video`` go in the
    left column, ``name`` in the right; the columns are zipped row by row.
    Keys outside that set are not rendered.
    """
    host = asset_host.rstrip("/")
    left: list[DetailCell] = []
    right: list[DetailCell] = []
    for key, value in sorted(detail.attributes, key=lambda kv: kv[0]):
        if key == "id":
            left.append(DetailCell(f"ANN ID: {value}"))
        elif key == "mp3":
            left.append(DetailCell("Sound", f"{host}/{value}"))
        elif key == "video":
            left.append(DetailCell("Video", f"{host}/{value}"))
        elif key == "name":
            right.append(DetailCell(value))

    rows = []
    for i in range(max(len(left), len(right))):
        rows.append(
            (
                left[i] if i < len(left) else None,
                right[i] if i < len(right) else None,
            )
        )
    return rows


def _cell_markdown(cell: DetailCell | None) -> str:
    if cell is None:
        return ""
    if cell.href:
        return f"[{cell.text}]({cell.href})"
    return cell.text


def detail_markdown(rows: list[tuple[DetailCell | None, DetailCell | None]]) -> str:
    """Render presentation rows as a two-column markdown table."""
    if not rows:
        return "_No details available._"
    lines = ["| | |", "|---|---|"]
    for left, right in rows:
        lines.append(f"| {_cell_markdown(left)} | {_cell_markdown(right)} |")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Chart figure
# ---------------------------------------------------------------------------

def _rate_hover(scale: float) -> str:
    return "%{y:.1f}%" if scale != 1.0 else "%{y:.3f}"


def _anchor_of(model: ChartModel, s: Series) -> Series | None:
    if s.fill_anchor is None or s.fill_anchor >= len(model.series):
        return None
    anchor = model.series[s.fill_anchor]
    if anchor.role is SeriesRole.MAIN and anchor.category == s.category:
        return anchor
    return None


def _main_trace(model: ChartModel, s: Series) -> go.Scatter:
    xs = [p.x for p in s.points]
    ys = [p.y for p in s.points]
    counts = [p.z if p.z is not None else 0 for p in s.points]
    marker: dict = {"color": s.color}
    if s.radii is not None:
        marker["size"] = [2.0 * r + 2.0 if r > 0 else 0.0 for r in s.radii]
    else:
        marker["size"] = 6
    return go.Scatter(
        x=xs,
        y=ys,
        mode="lines+markers",
        name=s.label,
        legendgroup=s.category,
        showlegend=s.in_legend,
        line=dict(color=s.color, width=2),
        marker=marker,
        customdata=counts,
        hovertemplate=(
            f"{s.label}: {_rate_hover(model.rate_scale)}<br>"
            "%{customdata} songs"
            "<extra></extra>"
        ),
        connectgaps=True,
        visible="legendonly" if s.hidden else True,
    )


def _band_trace(model: ChartModel, s: Series) -> go.Scatter:
    anchor = _anchor_of(model, s)
    visible: bool | str = True
    if anchor is not None and anchor.hidden:
        visible = "legendonly"
    trace = dict(
        x=[p.x for p in s.points],
        y=[p.y for p in s.points],
        mode="lines",
        line=dict(width=0, color="rgba(0,0,0,0)"),
        legendgroup=s.category,
        showlegend=s.in_legend,
        hoverinfo="skip",
        connectgaps=True,
        visible=visible,
    )
    if s.role is SeriesRole.CI_LOWER:
        # CI lower directly follows its CI upper in series order.
        trace["fill"] = "tonexty"
        trace["fillcolor"] = _rgba(s.color, _BAND_ALPHA)
    return go.Scatter(**trace)


def _plays_trace(s: Series) -> go.Bar:
    return go.Bar(
        x=[p.x for p in s.points],
        y=[p.y for p in s.points],
        name=s.label,
        legendgroup=f"{s.category}:plays",
        showlegend=s.in_legend,
        marker=dict(color=_rgba(s.color, _BAR_ALPHA), line=dict(color=s.color, width=1)),
        yaxis="y2",
        hovertemplate=f"{s.label}: %{{y:,}}<extra></extra>",
        visible="legendonly" if s.hidden else True,
    )


def build_chart_figure(model: ChartModel, height: int = 520) -> go.Figure:
    """Turn a populated ChartModel into a Plotly figure.

    Trace order follows series order.  Plays bars sit on a secondary y axis
    and stack; CI bands share the legend group of their main line so toggling
    the line toggles its band.
    """
    fig = go.Figure()
    for s in model.series:
        if s.role is SeriesRole.MAIN:
            fig.add_trace(_main_trace(model, s))
        elif s.role is SeriesRole.PLAYS:
            fig.add_trace(_plays_trace(s))
        else:
            fig.add_trace(_band_trace(model, s))

    if model.x_kind == "category":
        xaxis = dict(
            type="category",
            categoryorder="array",
            categoryarray=list(model.labels),
        )
        if model.x_range is not None:
            lo, hi = model.x_range
            xaxis["range"] = [lo - 0.5, hi + 0.5]
    else:
        xaxis = dict(type="linear", title="Difficulty percentile")
        if model.x_range is not None:
            xaxis["range"] = list(model.x_range)

    yaxis: dict = dict(
        title="Guess rate (%)" if model.rate_scale != 1.0 else "Guess rate",
        showgrid=True,
        gridcolor="rgba(128,128,128,0.15)",
        zeroline=False,
    )
    if model.y_range is not None:
        yaxis["range"] = list(model.y_range)
    else:
        yaxis["rangemode"] = "tozero"

    layout: dict = dict(
        template="plotly_dark",
        height=height,
        margin=dict(l=10, r=10, t=40, b=40),
        plot_bgcolor="rgba(0,0,0,0)",
        paper_bgcolor="rgba(0,0,0,0)",
        hovermode="x unified",
        barmode="stack",
        dragmode="pan",
        showlegend=True,
        title=model.title,
        xaxis=xaxis,
        yaxis=yaxis,
    )
    if model.has_plays_axis:
        layout["yaxis2"] = dict(
            title="Total plays",
            overlaying="y",
            side="right",
            showgrid=False,
            rangemode="tozero",
        )
    fig.update_layout(**layout)
    return fig


# ---------------------------------------------------------------------------
# Streamlit renderers
# ---------------------------------------------------------------------------

def run_with_spinner(awaitable: Awaitable[Any], message: str) -> Any:
    """Drive a controller coroutine to completion behind a Streamlit spinner."""
    with st.spinner(message):
        return asyncio.run(awaitable)


def render_chart(model: ChartModel | None, figure: go.Figure | None) -> None:
    if model is None or figure is None:
        st.info("No chart loaded.")
        return
    if model.is_empty:
        st.info("No data for this chart.")
        return
    st.plotly_chart(
        figure,
        width="stretch",
        config={"scrollZoom": True, "displayModeBar": False},
    )


def render_song_detail(detail: SongDetail, asset_host: str) -> None:
    st.markdown(detail_markdown(format_detail(detail, asset_host)))


def results_header() -> None:
    cols = st.columns([0.6, 3, 2, 3, 1])
    for col, title in zip(cols[1:], RESULT_COLUMNS):
        col.markdown(f"**{title}**")
