"""Chapter 1: Visitor Map -- Where the passengers live."""
import streamlit as st
import plotly.express as px

from busplan.data_loader import load_data, sidebar_filters, get_hometown_data
from busplan.plotting import apply_common_layout, visitor_map
from busplan.constants import HOMETOWN_COLORS, VENUE
from busplan.stats_helpers import haversine_km
from busplan.ui_components import (
    chapter_header, concept_box, insight_box, warning_box, quiz, takeaways, navigation,
)

# ── Page config ──────────────────────────────────────────────────────────────
st.set_page_config(page_title="Ch 1: Visitor Map", layout="wide")
chapter_header(1, "Visitor Map", part="I")
st.markdown(
    "Before we group anyone onto a bus, it helps to look at the raw material: "
    "a cloud of home addresses, dense around big towns and thin everywhere else."
)

# ── Load data ────────────────────────────────────────────────────────────────
df = load_data()
filt, max_size, min_size = sidebar_filters(df)
if filt.empty:
    st.warning("No visitors selected. Pick at least one hometown.")
    st.stop()

# ══════════════════════════════════════════════════════════════════════════════
# SECTION 1 -- The Map
# ══════════════════════════════════════════════════════════════════════════════
st.header("1. Where Visitors Live")

fig_map = visitor_map(filt, color="hometown", title="Visitor Home Locations")
st.plotly_chart(fig_map, use_container_width=True)

concept_box(
    "Why Normalize Coordinates?",
    "Latitude and longitude are not measured on the same scale: near 52°N a degree of longitude "
    "is only about 60% as long as a degree of latitude. Before clustering we z-score both axes "
    "so neither one dominates the Euclidean distance.<br><br>"
    "This is a blunt fix (a proper job would project to kilometres), but over a region this "
    "small it is good enough."
)

# ══════════════════════════════════════════════════════════════════════════════
# SECTION 2 -- Counts per Hometown
# ══════════════════════════════════════════════════════════════════════════════
st.header("2. Visitors per Hometown")

counts = filt["hometown"].value_counts().rename_axis("hometown").reset_index(name="visitors")
fig_counts = px.bar(
    counts, x="hometown", y="visitors", color="hometown",
    color_discrete_map=HOMETOWN_COLORS, title="Visitors per Hometown",
)
fig_counts.add_hline(y=max_size, line_dash="dash", line_color="#E63946",
                     annotation_text=f"one full bus ({max_size})")
fig_counts.add_hline(y=min_size, line_dash="dot", line_color="#2A9D8F",
                     annotation_text=f"minimum ({min_size})")
apply_common_layout(fig_counts, title="Visitors per Hometown", height=400)
st.plotly_chart(fig_counts, use_container_width=True)

too_big = counts[counts["visitors"] > max_size]["hometown"].tolist()
too_small = counts[counts["visitors"] < min_size]["hometown"].tolist()
if too_big:
    insight_box(
        f"{', '.join(too_big)} {'has' if len(too_big) == 1 else 'have'} more visitors than fit on "
        "one bus, so those towns will have to be split."
    )
if too_small:
    warning_box(
        f"{', '.join(too_small)} cannot fill a bus on {'its' if len(too_small) == 1 else 'their'} "
        "own. Those visitors will need to share with a neighbouring town."
    )

# ══════════════════════════════════════════════════════════════════════════════
# SECTION 3 -- Distance to the Venue
# ══════════════════════════════════════════════════════════════════════════════
st.header("3. Distance to the Venue")

venue_name, venue_lat, venue_lon = VENUE
town = st.selectbox("Hometown", sorted(filt["hometown"].unique()), key="vm_town")
town_df = get_hometown_data(filt, town).dropna(subset=["latitude", "longitude"])
town_df["distance_km"] = haversine_km(
    town_df["latitude"].to_numpy(), town_df["longitude"].to_numpy(), venue_lat, venue_lon
)

col1, col2, col3 = st.columns(3)
col1.metric("Visitors", len(town_df))
col2.metric(f"Median km to {venue_name}", f"{town_df['distance_km'].median():.1f}")
col3.metric("Spread (std, km)", f"{town_df['distance_km'].std():.2f}")

fig_dist = px.histogram(
    town_df, x="distance_km", nbins=30,
    color_discrete_sequence=[HOMETOWN_COLORS.get(town, "#2E86C1")],
    labels={"distance_km": f"Distance to {venue_name} (km)"},
)
apply_common_layout(fig_dist, title=f"{town}: Distance to {venue_name}", height=350)
st.plotly_chart(fig_dist, use_container_width=True)

# ══════════════════════════════════════════════════════════════════════════════
# SECTION 4 -- Quiz & Takeaways
# ══════════════════════════════════════════════════════════════════════════════
st.divider()

quiz(
    "A town has 140 visitors and a bus has 59 seats. What is the fewest number of buses it needs?",
    ["2", "3", "4", "It depends on the minimum bus size"],
    correct_idx=1,
    explanation="140 / 59 is about 2.4, so at least 3 buses. The minimum size only decides whether "
                "small leftovers get their own bus.",
    key="q_vm_1"
)

takeaways([
    "Visitors cluster around hometowns, but town sizes vary wildly.",
    "Big towns have to be split across buses; small towns have to share.",
    "Coordinates are z-scored before clustering so latitude and longitude weigh the same.",
])

navigation(next_label="Bus Assignment", next_page="02_Bus_Assignment.py")
