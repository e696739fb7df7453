"""Coordinate preprocessing, bus assignment and clustering quality wrappers."""
import logging

import numpy as np
import pandas as pd
import streamlit as st
from sklearn.metrics import silhouette_score
from sklearn.preprocessing import StandardScaler

from busplan.constants import (
    DEFAULT_LINKAGE, DEFAULT_MAX_BUS_SIZE, DEFAULT_MIN_BUS_SIZE, LAT_COL, LON_COL,
)
from busplan.size_clustering import size_constrained_clusters

logger = logging.getLogger(__name__)


def standardize_coordinates(df, lat_col=LAT_COL, lon_col=LON_COL):
    """Z-score latitude and longitude so both axes weigh the same."""
    coords = df[[lat_col, lon_col]].to_numpy(dtype=float)
    if len(coords) == 0:
        return np.empty((0, 2))
    return StandardScaler().fit_transform(coords)


def assign_buses(df, max_size=DEFAULT_MAX_BUS_SIZE, min_size=DEFAULT_MIN_BUS_SIZE,
                 method=DEFAULT_LINKAGE, lat_col=LAT_COL, lon_col=LON_COL):
    """Assign every visitor with known coordinates to a bus.

    Returns ``(assigned, result)``: the visitor rows (original columns plus
    ``round``, ``cluster`` and ``bus``) in acceptance order, and the raw
    ClusteringResult with its round trace.
    """
    clean = df.dropna(subset=[lat_col, lon_col])
    dropped = len(df) - len(clean)
    if dropped:
        logger.info(f"Skipping {dropped} visitors without coordinates")

    X = standardize_coordinates(clean, lat_col, lon_col)
    result = size_constrained_clusters(X, max_size=max_size, min_size=min_size, method=method)

    a = result.assignments
    assigned = clean.iloc[a["point_index"].to_numpy(dtype=int)].copy()
    assigned["round"] = a["round"].to_numpy(dtype=int)
    assigned["cluster"] = a["cluster"].to_numpy(dtype=int)
    assigned["bus"] = a["group"].to_numpy(dtype=int)
    return assigned, result


@st.cache_data(show_spinner="Planning buses...")
def cached_assign_buses(df, max_size, min_size, method):
    """Cache bus plans across Streamlit reruns."""
    return assign_buses(df, max_size=max_size, min_size=min_size, method=method)


def silhouette_by_round(result):
    """Silhouette score of the clusters accepted in each round.

    NaN when a round accepted a single cluster or only singletons, where the
    score is undefined.
    """
    a = result.assignments
    coord_cols = [c for c in a.columns if c.startswith("x")]
    scores = {}
    for rnd, part in a.groupby("round"):
        n_labels = part["cluster"].nunique()
        if 2 <= n_labels <= len(part) - 1:
            scores[rnd] = silhouette_score(part[coord_cols].to_numpy(), part["cluster"].to_numpy())
        else:
            scores[rnd] = np.nan
    return pd.Series(scores, name="silhouette", dtype=float)
