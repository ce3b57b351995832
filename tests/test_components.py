"""Unit tests for the pure helpers in ui/components.py (no Streamlit runtime)."""

import asyncio
import logging
from unittest.mock import MagicMock, patch

import plotly.graph_objects as go
import pytest

from data.models import DifficultyBinRow, SongDetail, SongRow
from stats.binning import build_bucket_chart, build_difficulty_chart, build_vintage_chart
from tests.conftest import InstantClient
from ui.components import (
    RESULT_COLUMNS,
    DetailCell,
    _rgba,
    build_chart_figure,
    build_results_df,
    detail_markdown,
    format_detail,
    format_difficulty,
    log_notifier,
    render_chart,
    run_with_spinner,
)
from ui.table_controller import RowState, SearchTableController

HOST = "https://files.example"


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

class TestFormatting:
    def test_rgba(self):
        assert _rgba("#36A2EB", 0.5) == "rgba(54,162,235,0.5)"
        assert _rgba("#fff", 1) == "rgba(255,255,255,1)"

    def test_format_difficulty(self):
        assert format_difficulty(37.25) == "37.2"
        assert format_difficulty(None) == "—"
        assert format_difficulty(float("nan")) == "—"

    def test_results_df(self):
        rows = [
            SongRow(song_id="9", song_name="Song", artist="Artist", anime="Anime", difficulty=12.0),
            SongRow(song_id="10", song_name="S2", artist="A2", anime="An2", difficulty=None),
        ]
        df = build_results_df(rows)
        assert list(df.columns) == RESULT_COLUMNS
        assert list(df.index) == ["9", "10"]
        assert df.loc["10", "Difficulty"] == "—"

    def test_results_df_empty(self):
        df = build_results_df([])
        assert df.empty
        assert list(df.columns) == RESULT_COLUMNS


# ---------------------------------------------------------------------------
# Song detail
# ---------------------------------------------------------------------------

class TestFormatDetail:
    def test_columns_are_zipped(self, song_detail_42):
        rows = format_detail(song_detail_42, HOST)
        assert rows == [
            (DetailCell("ANN ID: 1234"), DetailCell("Sobakasu")),
            (DetailCell("Sound", f"{HOST}/abc123.mp3"), None),
            (DetailCell("Video", f"{HOST}/abc123.webm"), None),
        ]

    def test_unknown_keys_dropped(self):
        detail = SongDetail(song_id="1", attributes=(("internal_flag", "x"),))
        assert format_detail(detail, HOST) == []

    def test_trailing_slash_on_host(self):
        detail = SongDetail(song_id="1", attributes=(("mp3", "a.mp3"),))
        [(left, _)] = format_detail(detail, HOST + "/")
        assert left.href == f"{HOST}/a.mp3"

    def test_name_only(self):
        detail = SongDetail(song_id="1", attributes=(("name", "Only"),))
        assert format_detail(detail, HOST) == [(None, DetailCell("Only"))]

    def test_markdown(self, song_detail_42):
        md = detail_markdown(format_detail(song_detail_42, HOST))
        assert "| ANN ID: 1234 | Sobakasu |" in md
        assert f"[Sound]({HOST}/abc123.mp3)" in md

    def test_markdown_empty(self):
        assert detail_markdown([]) == "_No details available._"


# ---------------------------------------------------------------------------
# Chart figure
# ---------------------------------------------------------------------------

@pytest.fixture
def vintage_figure(vintage_row_factory):
    rows = [
        vintage_row_factory("Spring 2019", kind=kind, guess_count=count)
        for kind in ("All", "Opening", "Ending", "Insert")
        for count in (10,)
    ] + [vintage_row_factory("Winter 2020", kind="All", guess_count=0)]
    model = build_vintage_chart(rows)
    return model, build_chart_figure(model)


class TestVintageFigure:
    def test_one_trace_per_series(self, vintage_figure):
        model, fig = vintage_figure
        assert len(fig.data) == len(model.series) == 15

    def test_only_first_line_visible(self, vintage_figure):
        _, fig = vintage_figure
        lines = [t for t in fig.data if t.type == "scatter" and t.showlegend is not False]
        assert [t.visible for t in lines] == [True, "legendonly", "legendonly", "legendonly"]

    def test_bands_follow_their_line(self, vintage_figure):
        _, fig = vintage_figure
        bands = [t for t in fig.data if t.type == "scatter" and t.showlegend is False]
        assert len(bands) == 8
        assert [t.visible for t in bands if t.legendgroup == "All"] == [True, True]
        assert all(t.visible == "legendonly" for t in bands if t.legendgroup == "Opening")
        lowers = [t for t in bands if t.fill == "tonexty"]
        assert len(lowers) == 4

    def test_plays_on_secondary_axis(self, vintage_figure):
        _, fig = vintage_figure
        bars = [t for t in fig.data if t.type == "bar"]
        assert len(bars) == 3
        assert all(t.yaxis == "y2" for t in bars)
        assert fig.layout.yaxis2.overlaying == "y"
        assert fig.layout.barmode == "stack"

    def test_category_axis(self, vintage_figure):
        model, fig = vintage_figure
        assert fig.layout.xaxis.type == "category"
        assert list(fig.layout.xaxis.categoryarray) == model.labels
        lo, hi = model.x_range
        assert list(fig.layout.xaxis.range) == [lo - 0.5, hi + 0.5]

    def test_zero_sample_marker_hidden(self, vintage_figure):
        _, fig = vintage_figure
        all_line = fig.data[0]
        # Winter 2020 comes first (descending) and has no songs.
        assert all_line.y[0] is None
        assert all_line.marker.size[0] == 0
        assert all_line.marker.size[1] == pytest.approx(2 * 2.0 + 2)

    def test_unified_hover(self, vintage_figure):
        _, fig = vintage_figure
        assert fig.layout.hovermode == "x unified"


class TestDifficultyFigure:
    def test_linear_axis_and_fixed_markers(self):
        rows = [DifficultyBinRow(diff_bin=1, guess_rate=0.5, guess_count=100, times_played=100)]
        fig = build_chart_figure(build_difficulty_chart(rows, bins=10))
        assert fig.layout.xaxis.type == "linear"
        assert list(fig.layout.xaxis.range) == [0.0, 100.0]
        assert fig.data[0].marker.size == 6
        assert list(fig.data[0].x) == [5.0]
        assert list(fig.data[0].y) == [50.0]
        assert fig.data[1].type == "bar"
        assert list(fig.data[1].y) == [100]

    def test_empty_model_still_renders(self):
        fig = build_chart_figure(build_difficulty_chart([], bins=5))
        assert isinstance(fig, go.Figure)
        assert len(fig.data) == 4


class TestBucketFigure:
    def test_no_secondary_axis(self, bucket_row_factory):
        fig = build_chart_figure(build_bucket_chart([bucket_row_factory()]))
        assert all(t.type == "scatter" for t in fig.data)
        assert fig.layout.yaxis2.overlaying is None
        assert list(fig.layout.yaxis.range) == [0.0, 101.0]


# ---------------------------------------------------------------------------
# Streamlit wrappers (st patched with MagicMock)
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_st():
    with patch("ui.components.st") as st:
        st.spinner.return_value = MagicMock()
        yield st


class TestRunWithSpinner:
    def test_detail_fetch_shows_spinner(self, mock_st, song_detail_42):
        table = SearchTableController(InstantClient(songquery=song_detail_42))
        state = run_with_spinner(table.toggle_row("42"), "Loading song…")
        assert state is RowState.SHOWN
        mock_st.spinner.assert_called_once_with("Loading song…")
        mock_st.spinner.return_value.__enter__.assert_called_once()
        mock_st.spinner.return_value.__exit__.assert_called_once()

    def test_spinner_closed_on_error(self, mock_st):
        async def boom():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            run_with_spinner(boom(), "Searching…")
        mock_st.spinner.return_value.__exit__.assert_called_once()

    def test_runs_outside_an_event_loop(self, mock_st):
        async def answer():
            await asyncio.sleep(0)
            return 42

        assert run_with_spinner(answer(), "x") == 42


class TestRenderChart:
    def test_nothing_loaded(self, mock_st):
        render_chart(None, None)
        mock_st.info.assert_called_once_with("No chart loaded.")
        mock_st.plotly_chart.assert_not_called()

    def test_empty_model(self, mock_st):
        model = build_vintage_chart([])
        render_chart(model, build_chart_figure(model))
        mock_st.info.assert_called_once_with("No data for this chart.")
        mock_st.plotly_chart.assert_not_called()

    def test_populated_model(self, mock_st, vintage_row_factory):
        model = build_vintage_chart([vintage_row_factory()])
        fig = build_chart_figure(model)
        render_chart(model, fig)
        mock_st.info.assert_not_called()
        assert mock_st.plotly_chart.call_args.args[0] is fig


class TestLogNotifier:
    def test_logs_at_error(self, caplog):
        with caplog.at_level(logging.ERROR, logger="ui.components"):
            log_notifier("backend down")
        assert [(r.name, r.levelno, r.getMessage()) for r in caplog.records] == [
            ("ui.components", logging.ERROR, "backend down"),
        ]
