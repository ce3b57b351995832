import streamlit as st

from data.fetcher import AsyncSongStatsClient, SongStatsClient
from data.settings import configure_logging, load_settings
from ui.chart_controller import CHART_MODE_LABELS, DEFAULT_BINS, ChartController, ChartMode
from ui.components import (
    RESULT_COLUMNS,
    build_results_df,
    render_chart,
    render_song_detail,
    results_header,
    run_with_spinner,
)
from ui.glossary import render_glossary
from ui.table_controller import RowState, SearchTableController

st.set_page_config(
    page_title="Song Stats",
    page_icon="🎵",
    layout="wide",
)

# ---------------------------------------------------------------------------
# Session wiring
# ---------------------------------------------------------------------------

_NOTIFICATIONS_KEY = "_notifications"
_TABLE_KEY = "_table_controller"
_CHART_KEY = "_chart_controller"


@st.cache_resource(show_spinner=False)
def _get_client() -> AsyncSongStatsClient:
    settings = load_settings()
    configure_logging(settings.log_level)
    return AsyncSongStatsClient(SongStatsClient(settings))


def _notify(message: str) -> None:
    st.session_state.setdefault(_NOTIFICATIONS_KEY, []).append(message)


settings = load_settings()
client = _get_client()

if _TABLE_KEY not in st.session_state:
    st.session_state[_TABLE_KEY] = SearchTableController(client, notify=_notify)
if _CHART_KEY not in st.session_state:
    st.session_state[_CHART_KEY] = ChartController(client, notify=_notify)

table: SearchTableController = st.session_state[_TABLE_KEY]
charts: ChartController = st.session_state[_CHART_KEY]


def _toggle_row(song_id: str) -> None:
    run_with_spinner(table.toggle_row(song_id), "Loading song…")


def _show_notifications() -> None:
    for message in st.session_state.pop(_NOTIFICATIONS_KEY, []):
        st.error(message)


# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------

with st.sidebar:
    st.title("🎵 Song Stats")
    st.divider()
    page = st.radio("View", ["Search", "Stats"], horizontal=True)
    st.divider()
    render_glossary(mode="compact")


# ---------------------------------------------------------------------------
# Search page
# ---------------------------------------------------------------------------

def _render_search_page() -> None:
    st.header("Song search")

    with st.form("song_search", clear_on_submit=False):
        search_col, exact_col = st.columns([4, 1])
        with search_col:
            search = st.text_input("Search", placeholder="Song, artist or anime…", label_visibility="collapsed")
        with exact_col:
            exact = st.checkbox("Exact match")
        submitted = st.form_submit_button("Search")

    if submitted and search:
        run_with_spinner(table.submit_query(search, exact), "Searching…")

    _show_notifications()

    rows = table.rows
    if not rows:
        st.info("No results.")
        return

    page_index = 0
    if table.page_count > 1:
        page_number = st.number_input(
            "Page",
            min_value=1,
            max_value=table.page_count,
            value=1,
            step=1,
        )
        page_index = int(page_number) - 1
    st.caption(f"{len(rows):,} songs")

    results_header()
    page_df = build_results_df(table.page(page_index))
    for song_id, values in page_df.iterrows():
        state = table.row_state(song_id)
        cols = st.columns([0.6, 3, 2, 3, 1])
        with cols[0]:
            st.button(
                "▾" if state is RowState.SHOWN else "▸",
                key=f"toggle_{song_id}",
                on_click=_toggle_row,
                args=(song_id,),
            )
        for col, column in zip(cols[1:], RESULT_COLUMNS):
            col.write(values[column])

        if state is RowState.SHOWN:
            detail = table.detail(song_id)
            if detail is not None:
                with st.container(border=True):
                    render_song_detail(detail, settings.asset_host)


# ---------------------------------------------------------------------------
# Stats page
# ---------------------------------------------------------------------------

def _render_stats_page() -> None:
    st.header("Guess rate statistics")

    mode_col, bins_col, button_col = st.columns([3, 1, 1])
    with mode_col:
        mode = st.radio(
            "Chart",
            list(ChartMode),
            format_func=lambda m: CHART_MODE_LABELS[m],
            horizontal=True,
        )
    with bins_col:
        bins = st.number_input(
            "Bins",
            min_value=1,
            max_value=1000,
            value=DEFAULT_BINS,
            step=1,
            disabled=mode in (ChartMode.VINTAGE, ChartMode.VINTAGE_ALL),
        )
    with button_col:
        load = st.button("Load chart", use_container_width=True)

    if load:
        run_with_spinner(charts.show(mode, int(bins)), "Loading statistics…")

    _show_notifications()

    current = charts.current
    if current is None:
        render_chart(None, None)
    else:
        render_chart(current.model, current.figure)
    render_glossary(mode="full")


if page == "Search":
    _render_search_page()
else:
    _render_stats_page()
