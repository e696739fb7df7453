"""Cached data loading and filtering utilities."""
import streamlit as st
import pandas as pd

from busplan.constants import (
    DATA_PATH, DEFAULT_MAX_BUS_SIZE, DEFAULT_MIN_BUS_SIZE, HOMETOWN_LIST, REQUIRED_COLS,
)


def validate_columns(df):
    """Raise ValueError if any required visitor column is missing."""
    missing = [c for c in REQUIRED_COLS if c not in df.columns]
    if missing:
        raise ValueError(f"Visitor data is missing columns: {', '.join(missing)}")
    return df


@st.cache_data
def load_data(path=DATA_PATH):
    """Load the visitor dataset and check it has the columns we need."""
    df = pd.read_csv(path)
    validate_columns(df)
    df["latitude"] = pd.to_numeric(df["latitude"], errors="coerce")
    df["longitude"] = pd.to_numeric(df["longitude"], errors="coerce")
    return df


def sidebar_filters(df):
    """Render sidebar hometown filter and bus size sliders.

    Returns ``(filtered_df, max_size, min_size)``.
    """
    st.sidebar.header("Filters")
    towns = [t for t in HOMETOWN_LIST if t in set(df["hometown"])]
    towns += sorted(set(df["hometown"]) - set(towns))
    if "selected_towns" not in st.session_state:
        st.session_state.selected_towns = towns.copy()
    selected = st.sidebar.multiselect(
        "Hometowns", towns,
        default=[t for t in st.session_state.selected_towns if t in towns],
        key="town_filter"
    )
    st.session_state.selected_towns = selected

    st.sidebar.header("Bus Sizes")
    max_size = st.sidebar.slider(
        "Seats per bus (max)", 5, 100, DEFAULT_MAX_BUS_SIZE, 1, key="max_bus_size"
    )
    min_size = st.sidebar.slider(
        "Minimum passengers (min)", 1, max_size - 1,
        min(DEFAULT_MIN_BUS_SIZE, max_size - 1), 1, key="min_bus_size"
    )

    return df[df["hometown"].isin(selected)].copy(), max_size, min_size


def get_hometown_data(df, hometown):
    """Filter DataFrame to a single hometown."""
    return df[df["hometown"] == hometown].copy()
