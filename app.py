"""Event Shuttle Planner — Main Entry Point."""
import logging

import streamlit as st

logging.basicConfig(level=logging.INFO)

st.set_page_config(
    page_title="Event Shuttle Planner",
    page_icon="🚌",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.title("Event Shuttle Planner")
st.subheader("Getting a few hundred festival visitors onto buses without anyone riding alone")

st.markdown("""
Here is the problem: a few hundred people have bought tickets to an event, and we know roughly
where each of them lives. We want to send buses to pick them up. A bus has **59 seats**, and
it is not worth sending one for fewer than **30 people**. Which visitors share a bus?

This sounds like a clustering problem, and it mostly is. The catch is that ordinary clustering
methods do not care about seat counts. K-Means will happily hand you a cluster of 140 people in
Utrecht and another of 4 in Culemborg. So we build something slightly more stubborn on top of
hierarchical clustering: keep cutting the tree until every group fits on a bus, keep the groups
that are big enough, and try again with the leftovers.

### The Dataset

Every row is one visitor: an id, the town they come from, and the latitude and longitude of
their home. The data is generated by `fetch_visitors.py`, which geocodes each hometown and
scatters visitors around it.

### How to Use This App

1. **Filter** hometowns and set the bus size bounds in the sidebar
2. **Look** at where visitors come from on the map
3. **Plan** buses and check every bus against the size limits
4. **Dig in** to each clustering round to see why the planner made the cuts it did

### Chapters
""")

parts = {
    "Part I: The Data (Ch 1)": "Where visitors live, and how many come from each town",
    "Part II: Planning Buses (Ch 2)": "Size-constrained clustering, bus sizes, spread per bus",
    "Part III: Under the Hood (Ch 3)": "Dendrograms, the cut search, and the size-floor waiver",
}

for part, desc in parts.items():
    st.markdown(f"**{part}** -- {desc}")

st.divider()
st.markdown("**Pick a chapter from the sidebar. The buses are not going to plan themselves.**")

# Show dataset preview
st.subheader("Dataset Preview")
from busplan.data_loader import load_data
try:
    df = load_data()
except FileNotFoundError:
    st.error("No visitors.csv found. Run `python fetch_visitors.py` first.")
    st.stop()
st.dataframe(df.head(20), use_container_width=True)

col1, col2, col3 = st.columns(3)
col1.metric("Visitors", f"{len(df):,}")
col2.metric("Hometowns", df["hometown"].nunique())
col3.metric("Missing Coordinates", int(df[["latitude", "longitude"]].isna().any(axis=1).sum()))
