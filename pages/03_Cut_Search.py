"""Chapter 3: Cut Search -- Inside one round of the planner."""
import streamlit as st

from busplan.data_loader import load_data, sidebar_filters
from busplan.ml_helpers import cached_assign_buses
from busplan.plotting import cut_search_chart, dendrogram_chart, visitor_map
from busplan.constants import DEFAULT_LINKAGE
from busplan.size_clustering import (
    InvalidSizeBoundsError, build_dendrogram, cut_curve, round_pool,
)
from busplan.ui_components import (
    chapter_header, concept_box, insight_box, warning_box, quiz, takeaways, navigation,
)

# ── Page config ──────────────────────────────────────────────────────────────
st.set_page_config(page_title="Ch 3: Cut Search", layout="wide")
chapter_header(3, "Cut Search", part="III")
st.markdown(
    "The planner's decisions all happen inside a round: one dendrogram, one search for the "
    "right number of clusters, one accept-or-defer decision per cluster. Let's open one up."
)

# ── Load data ────────────────────────────────────────────────────────────────
df = load_data()
filt, max_size, min_size = sidebar_filters(df)
if filt.empty:
    st.warning("No visitors selected. Pick at least one hometown.")
    st.stop()

method = st.session_state.get("ba_linkage", DEFAULT_LINKAGE)
try:
    assigned, result = cached_assign_buses(filt, max_size, min_size, method)
except InvalidSizeBoundsError as exc:
    st.error(str(exc))
    st.stop()

# ══════════════════════════════════════════════════════════════════════════════
# SECTION 1 -- Pick a Round
# ══════════════════════════════════════════════════════════════════════════════
st.header("1. Pick a Round")

if result.n_rounds == 0:
    st.warning("None of the selected visitors have coordinates.")
    st.stop()

rnd = 1
if result.n_rounds > 1:
    rnd = st.select_slider(
        "Round", options=[r.round for r in result.rounds], value=1, key="cs_round",
    )
record = result.rounds[rnd - 1]

# Everyone still without a bus at the start of this round
pool = round_pool(result, rnd)
pool_visitors = assigned[assigned["round"] >= rnd].copy()
pool_visitors["status"] = (pool_visitors["round"] == rnd).map({True: "gets a bus", False: "deferred"})

col1, col2, col3, col4 = st.columns(4)
col1.metric("Visitors in pool", record.n_points)
col2.metric("Chosen k", record.k)
col3.metric("Size threshold", record.threshold)
col4.metric("Accepted", record.n_accepted)

fig_pool = visitor_map(pool_visitors, color="status", title=f"Round {rnd}: Who Gets a Bus")
st.plotly_chart(fig_pool, use_container_width=True)

# ══════════════════════════════════════════════════════════════════════════════
# SECTION 2 -- The Dendrogram
# ══════════════════════════════════════════════════════════════════════════════
st.header("2. The Round's Dendrogram")

points = pool[["x0", "x1"]].to_numpy()
if len(points) >= 2:
    fig_dendro = dendrogram_chart(
        points, method=method, title=f"Round {rnd} Dendrogram ({method.title()} Linkage)",
    )
    st.plotly_chart(fig_dendro, use_container_width=True)
else:
    st.caption("A single visitor is left, so there is no tree to draw: it is its own cluster.")

concept_box(
    "Fresh Tree Every Round",
    "The dendrogram is rebuilt from scratch over only the visitors still in the pool. Reusing "
    "the first round's tree would keep the leftovers glued to the branches of the visitors "
    "who already left, and the sizes would never come out right."
)

# ══════════════════════════════════════════════════════════════════════════════
# SECTION 3 -- Searching for k
# ══════════════════════════════════════════════════════════════════════════════
st.header("3. Searching for k")

if len(points) >= 2:
    Z = build_dendrogram(points, method=method)
    curve = cut_curve(Z, len(points), record.k + 5)
    fig_curve = cut_search_chart(
        curve, max_size, chosen_k=record.k, title="Largest Cluster Size by Cut Count",
    )
    st.plotly_chart(fig_curve, use_container_width=True)

st.markdown(
    f"Starting at k = 2, the planner stops at the first cut whose largest cluster has at most "
    f"**{max_size}** visitors. Here that is **k = {record.k}**, giving cluster sizes "
    f"{', '.join(str(s) for s in record.sizes.values())}."
)

if record.waived:
    warning_box(
        f"This cut has only {record.n_clusters} cluster{'s' if record.n_clusters != 1 else ''}, "
        "so the minimum size is waived and every cluster gets a bus."
    )
elif record.stalled:
    warning_box(
        f"None of the {record.n_clusters} clusters reached {min_size} passengers. Repeating the "
        "round would give the same tree forever, so the largest cluster was accepted instead."
    )
else:
    insight_box(
        f"{len(record.accepted_labels)} of {record.n_clusters} clusters reach {min_size} passengers "
        f"and get a bus; {record.n_deferred} visitors go back into the pool."
    )

# ══════════════════════════════════════════════════════════════════════════════
# SECTION 4 -- Quiz & Takeaways
# ══════════════════════════════════════════════════════════════════════════════
st.divider()

quiz(
    "Why does the search for k always terminate?",
    [
        "Because k is capped at 10",
        "Because at k equal to the pool size every cluster has one visitor, which always fits",
        "Because the minimum size shrinks each round",
        "Because complete linkage is monotonic",
    ],
    correct_idx=1,
    explanation="Singletons fit under any max_size, so the search is bounded by the pool size.",
    key="q_cs_1"
)

takeaways([
    "Each round builds a fresh dendrogram over the leftover visitors only.",
    "k grows one at a time until the largest cluster fits on a bus.",
    "With fewer than 3 clusters at the chosen k the minimum is waived.",
    "A round where nothing reaches the minimum accepts its largest cluster so the plan still finishes.",
])

navigation(prev_label="Bus Assignment", prev_page="02_Bus_Assignment.py")
