"""Shared fixtures: small point sets with known hierarchical structure."""
import numpy as np
import pandas as pd
import pytest


def grid(n_rows, n_cols, origin, spacing=0.1):
    """Tight rectangular block of points starting at ``origin``."""
    x0, y0 = origin
    return np.array([
        [x0 + i * spacing, y0 + j * spacing]
        for i in range(n_rows) for j in range(n_cols)
    ])


@pytest.fixture
def three_blobs():
    """50 + 20 points close together on the x axis, 5 points far up the y axis.

    Complete linkage merges the 50 and 20 blobs before either meets the 5.
    """
    return np.vstack([
        grid(5, 10, (0.0, 0.0)),
        grid(4, 5, (10.0, 0.0)),
        grid(1, 5, (0.0, 30.0)),
    ])


@pytest.fixture
def three_triplets():
    """Three well separated groups of three points each."""
    return np.vstack([
        grid(1, 3, (0.0, 0.0)),
        grid(1, 3, (10.0, 0.0)),
        grid(1, 3, (0.0, 100.0)),
    ])


@pytest.fixture
def hundred_points():
    rng = np.random.default_rng(0)
    centres = np.array([[0.0, 0.0], [3.0, 1.0], [1.0, 4.0], [5.0, 5.0]])
    return np.vstack([rng.normal(c, 0.6, size=(25, 2)) for c in centres])


@pytest.fixture
def visitors():
    """Visitor table around two towns, with one row missing coordinates."""
    rng = np.random.default_rng(7)
    rows = []
    for town, (lat, lon), n in [("Utrecht", (52.09, 5.12), 70), ("Gouda", (52.01, 4.71), 25)]:
        lats = rng.normal(lat, 0.02, size=n)
        lons = rng.normal(lon, 0.03, size=n)
        for i in range(n):
            rows.append({"hometown": town, "latitude": lats[i], "longitude": lons[i]})
    df = pd.DataFrame(rows)
    df.insert(0, "visitor_id", range(1, len(df) + 1))
    df.loc[3, "latitude"] = np.nan
    return df
