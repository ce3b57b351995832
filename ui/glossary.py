"""Glossary definitions and chart-reading notes for the song stats dashboard.

All content lives in module-level constants so it can be tested independently
of a Streamlit runtime. The render_glossary() function wires it into the UI.
"""

from __future__ import annotations

from typing import Literal

import pandas as pd
import streamlit as st

# ---------------------------------------------------------------------------
# Term definitions
# ---------------------------------------------------------------------------

TERM_DEFINITIONS: dict[str, dict[str, str]] = {
    "Guess rate": {
        "definition": (
            "The fraction of plays in which the song was correctly identified. "
            "Shown as a fraction (0–1) on the vintage chart and as a percentage on "
            "the difficulty charts."
        ),
        "context": "Each point averages every play of every song in that season or bin.",
    },
    "Vintage": {
        "definition": (
            "The release season and year of a song's source anime, e.g. Spring 2015. "
            "Seasons run Winter, Spring, Summer, Fall."
        ),
        "context": "Seasons with no songs still get an empty slot on the axis.",
    },
    "Kind": {
        "definition": (
            "The song segment class a statistic belongs to: Opening, Ending or Insert. "
            "All combines the three."
        ),
        "context": "Only the All line is shown at first; click a legend entry to add others.",
    },
    "Wilson score interval": {
        "definition": (
            "A 95% confidence interval for a proportion. Unlike the plain normal "
            "approximation it stays inside 0–1 and behaves sensibly for small samples."
        ),
        "context": "Narrows as more songs back a point.",
    },
    "CI band": {
        "definition": (
            "The shaded region between the lower and upper Wilson bounds drawn around "
            "each guess-rate line."
        ),
        "context": "A wide band means the point rests on few songs; read it with care.",
    },
    "Difficulty bin": {
        "definition": (
            "Songs split into equal-width ranges of difficulty and plotted at the "
            "centre of each range on a 0–100 percentile axis, with total plays as bars."
        ),
        "context": "At most 1000 bins.",
    },
    "Difficulty bucket": {
        "definition": (
            "Songs split into buckets holding equal numbers of songs, plotted at the "
            "midpoint of each bucket's difficulty bounds, one line per kind."
        ),
        "context": "Marker size grows with the number of songs behind the point.",
    },
}

CHART_EXPLAINER = """
**How to read the charts**

- Lines show guess rate; the shaded band around each line is its 95% Wilson
  interval.
- Bigger markers mean more songs behind that point (``log10(songs) + 1``).
- Bars, where shown, are total plays on the right-hand axis and stack across
  kinds.
- Scroll to zoom and drag to pan; the vintage chart opens on Winter 2007 –
  Fall 2020 when the data covers it.
"""


def _compact_meaning_text(definition: str, max_len: int = 96) -> str:
    text = " ".join(definition.strip().split())
    if not text:
        return ""
    sentence = text.split(". ", 1)[0].strip()
    if not sentence.endswith("."):
        sentence += "."
    if len(sentence) <= max_len:
        return sentence
    return sentence[: max_len - 1].rstrip() + "…"


def glossary_df() -> pd.DataFrame:
    rows = [
        {"Term": term, "Meaning": _compact_meaning_text(info["definition"])}
        for term, info in TERM_DEFINITIONS.items()
    ]
    return pd.DataFrame(rows, columns=["Term", "Meaning"])


def render_glossary(mode: Literal["full", "compact"] = "full") -> None:
    """Render the glossary and chart explainer inside a Streamlit expander."""
    if mode == "compact":
        st.dataframe(
            glossary_df(),
            width="stretch",
            hide_index=True,
            column_config={
                "Term": st.column_config.TextColumn("Term", width="small"),
                "Meaning": st.column_config.TextColumn("Meaning", width="large"),
            },
        )
        return

    with st.expander("Glossary & How to Read the Charts", expanded=False):
        st.markdown(CHART_EXPLAINER)
        st.divider()

        st.markdown("#### Terms")
        for term, info in TERM_DEFINITIONS.items():
            st.markdown(f"**{term}**")
            st.markdown(info["definition"])
            st.caption(info["context"])
            st.markdown("")
