"""Chapter 2: Bus Assignment -- Size-constrained hierarchical clustering."""
import streamlit as st

from busplan.data_loader import load_data, sidebar_filters
from busplan.ml_helpers import cached_assign_buses, silhouette_by_round
from busplan.plotting import bus_size_chart, visitor_map
from busplan.constants import DEFAULT_LINKAGE, LINKAGE_METHODS
from busplan.size_clustering import InvalidSizeBoundsError
from busplan.stats_helpers import bus_summary, constraint_report, size_descriptive_stats
from busplan.ui_components import (
    chapter_header, concept_box, insight_box, warning_box,
    code_example, quiz, takeaways, navigation,
)

# ── Page config ──────────────────────────────────────────────────────────────
st.set_page_config(page_title="Ch 2: Bus Assignment", layout="wide")
chapter_header(2, "Bus Assignment", part="II")
st.markdown(
    "Hierarchical clustering does not know about seats. We make it care by cutting the "
    "tree until every group fits on a bus, keeping groups that are big enough, and "
    "re-clustering whoever is left over."
)

# ── Load data ────────────────────────────────────────────────────────────────
df = load_data()
filt, max_size, min_size = sidebar_filters(df)
if filt.empty:
    st.warning("No visitors selected. Pick at least one hometown.")
    st.stop()

# ══════════════════════════════════════════════════════════════════════════════
# SECTION 1 -- The Algorithm
# ══════════════════════════════════════════════════════════════════════════════
st.header("1. Clustering in Rounds")

concept_box(
    "One Round of the Planner",
    "1. Build a dendrogram over everyone who has no bus yet<br>"
    "2. Cut it into k = 2, 3, 4, ... clusters until the largest cluster fits on a bus<br>"
    "3. Every cluster with at least the minimum number of passengers gets a bus<br>"
    "4. Clusters that are too small go back in the pool for the next round<br><br>"
    "Repeat until everybody has a seat."
)

warning_box(
    "If a cut produces only one or two clusters, the minimum is ignored for that round and "
    "every cluster gets a bus, however small. That is how the final stragglers get home, but it "
    "also means a plan can contain a bus with a single passenger."
)

# ══════════════════════════════════════════════════════════════════════════════
# SECTION 2 -- Run the Planner
# ══════════════════════════════════════════════════════════════════════════════
st.header("2. Plan the Buses")

method = st.selectbox(
    "Linkage method", LINKAGE_METHODS,
    index=LINKAGE_METHODS.index(DEFAULT_LINKAGE), key="ba_linkage",
)

try:
    assigned, result = cached_assign_buses(filt, max_size, min_size, method)
except InvalidSizeBoundsError as exc:
    st.error(str(exc))
    st.stop()
if assigned.empty:
    st.warning("None of the selected visitors have coordinates.")
    st.stop()

summary = bus_summary(assigned, min_size=min_size)
report = constraint_report(assigned, result, max_size, min_size)

col1, col2, col3, col4 = st.columns(4)
col1.metric("Visitors", f"{len(assigned):,}")
col2.metric("Buses", report["buses"])
col3.metric("Rounds", result.n_rounds)
col4.metric("Buses under minimum", report["under_min"])

fig_map = visitor_map(assigned, color="bus", title="Visitors Coloured by Bus")
st.plotly_chart(fig_map, use_container_width=True)

fig_sizes = bus_size_chart(summary, max_size, min_size, title="Passengers per Bus")
st.plotly_chart(fig_sizes, use_container_width=True)

if report["over_max"]:
    st.error(f"{report['over_max']} buses are over capacity. That should never happen.")
if report["under_min"]:
    insight_box(
        f"{report['under_min']} buses carry fewer than {min_size} passengers: "
        f"{report['under_min_waived']} from rounds where the minimum was waived"
        + (f", {report['under_min_stalled']} from rounds that stalled" if report["under_min_stalled"] else "")
        + "."
    )

# ══════════════════════════════════════════════════════════════════════════════
# SECTION 3 -- Per-Bus Summary
# ══════════════════════════════════════════════════════════════════════════════
st.header("3. Bus Summary")

st.dataframe(
    summary.style.format({
        "centroid_lat": "{:.4f}", "centroid_lon": "{:.4f}", "max_spread_km": "{:.2f}",
    }),
    use_container_width=True, hide_index=True,
)

size_stats = size_descriptive_stats(summary["size"])
st.markdown(
    f"Bus sizes range from **{size_stats['min']}** to **{size_stats['max']}** "
    f"(median {size_stats['median']:.0f}, mean {size_stats['mean']:.1f})."
)

st.subheader("Rounds")
rounds_df = result.rounds_frame()
rounds_df = rounds_df.join(silhouette_by_round(result), on="round")
st.dataframe(rounds_df, use_container_width=True, hide_index=True)

st.download_button(
    "Download bus plan (CSV)",
    assigned.to_csv(index=False).encode("utf-8"),
    file_name="bus_plan.csv",
    mime="text/csv",
)

code_example("""
from busplan.ml_helpers import assign_buses
from busplan.stats_helpers import bus_summary

assigned, result = assign_buses(visitors, max_size=59, min_size=30)
print(bus_summary(assigned, min_size=30))
print(result.rounds_frame())
""")

# ══════════════════════════════════════════════════════════════════════════════
# SECTION 4 -- Quiz & Takeaways
# ══════════════════════════════════════════════════════════════════════════════
st.divider()

quiz(
    "Why can the planner never produce a bus with more than max_size passengers?",
    [
        "Because it drops passengers who do not fit",
        "Because it keeps increasing the number of clusters until the largest one fits",
        "Because complete linkage always makes small clusters",
        "Because the minimum size is checked first",
    ],
    correct_idx=1,
    explanation="The cut search stops at the first k whose largest cluster is at most max_size. "
                "At worst k equals the number of remaining visitors, and then every cluster is a single person.",
    key="q_ba_1"
)

quiz(
    "A round cuts 40 leftover visitors into 2 clusters of 37 and 3. Which get a bus (min 30)?",
    ["Only the 37", "Neither", "Both", "Only the 3"],
    correct_idx=2,
    explanation="With fewer than 3 clusters the minimum is waived, so both clusters are accepted.",
    key="q_ba_2"
)

takeaways([
    "The maximum bus size is enforced by the cut search; no accepted cluster ever exceeds it.",
    "The minimum is enforced after the cut: small clusters are re-clustered in the next round.",
    "When a cut yields fewer than 3 clusters the minimum is waived for that round.",
    "Each round rebuilds the dendrogram from scratch over only the leftover visitors.",
])

navigation(
    prev_label="Visitor Map", prev_page="01_Visitor_Map.py",
    next_label="Cut Search", next_page="03_Cut_Search.py",
)
