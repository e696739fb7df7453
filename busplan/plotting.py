"""Shared Plotly plotting helpers."""
import numpy as np
import plotly.express as px
import plotly.figure_factory as ff
import plotly.graph_objects as go
from scipy.cluster.hierarchy import linkage

from busplan.constants import COLUMN_LABELS, HOMETOWN_COLORS, LAT_COL, LON_COL, VENUE


def apply_common_layout(fig, title=None, height=500):
    """Apply common layout settings to a Plotly figure."""
    fig.update_layout(
        template="plotly_white",
        height=height,
        title=title,
        title_x=0.5,
        margin=dict(t=60, b=40, l=60, r=40),
    )
    return fig


def _labels(extra=None):
    lab = {**(extra or {})}
    for k, v in COLUMN_LABELS.items():
        lab.setdefault(k, v)
    return lab


def visitor_map(df, color="hometown", title=None, height=550, opacity=0.6, show_venue=True):
    """Scatter visitors on a longitude/latitude plane."""
    plot_df = df.copy()
    color_map = None
    if color == "hometown":
        color_map = HOMETOWN_COLORS
    else:
        plot_df[color] = plot_df[color].astype(str)
    fig = px.scatter(
        plot_df, x=LON_COL, y=LAT_COL, color=color, color_discrete_map=color_map,
        hover_data=[c for c in ["visitor_id", "hometown", "round", "bus"] if c in plot_df.columns],
        labels=_labels(), title=title, opacity=opacity,
    )
    if show_venue:
        name, lat, lon = VENUE
        fig.add_trace(go.Scatter(
            x=[lon], y=[lat], mode="markers+text", text=[name], textposition="top center",
            marker=dict(symbol="star", size=16, color="black"), name="Venue",
        ))
    if len(df):
        # a degree of longitude shrinks with cos(latitude)
        fig.update_yaxes(scaleanchor="x", scaleratio=1 / np.cos(np.radians(df[LAT_COL].mean())))
    return apply_common_layout(fig, title, height)


def bus_size_chart(summary, max_size, min_size, title=None, height=450):
    """Bar chart of passengers per bus with the size bounds drawn in."""
    plot_df = summary.copy()
    plot_df["bus"] = plot_df["bus"].astype(str)
    plot_df["round"] = plot_df["round"].astype(str)
    fig = px.bar(plot_df, x="bus", y="size", color="round", labels=_labels(), title=title)
    fig.add_hline(y=max_size, line_dash="dash", line_color="#E63946",
                  annotation_text=f"max {max_size}")
    fig.add_hline(y=min_size, line_dash="dot", line_color="#2A9D8F",
                  annotation_text=f"min {min_size}")
    return apply_common_layout(fig, title, height)


def dendrogram_chart(points, method="complete", labels=None, title=None, height=450):
    """Dendrogram of a (small) point set."""
    fig = ff.create_dendrogram(
        points, labels=labels,
        linkagefun=lambda x: linkage(x, method=method),
    )
    fig.update_layout(xaxis_title="Visitor", yaxis_title="Distance")
    if labels is None:
        fig.update_xaxes(showticklabels=False)
    return apply_common_layout(fig, title, height)


def cut_search_chart(curve, max_size, chosen_k=None, title=None, height=400):
    """Largest cluster size against cut count k."""
    fig = px.line(curve, x="k", y="largest", markers=True,
                  labels={"k": "Cut count k", "largest": "Largest cluster"}, title=title)
    fig.add_hline(y=max_size, line_dash="dash", line_color="#E63946",
                  annotation_text=f"max {max_size}")
    if chosen_k is not None:
        fig.add_vline(x=chosen_k, line_dash="dot", line_color="#264653",
                      annotation_text=f"k = {chosen_k}")
    return apply_common_layout(fig, title, height)
