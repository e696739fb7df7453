"""Reusable summary statistics for bus plans."""
import numpy as np
import pandas as pd

from busplan.constants import LAT_COL, LON_COL

EARTH_RADIUS_KM = 6371.0088


def haversine_km(lat1, lon1, lat2, lon2):
    """Great-circle distance in km; works elementwise on arrays."""
    lat1, lon1, lat2, lon2 = map(np.radians, (lat1, lon1, lat2, lon2))
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(a))


def bus_summary(assigned, min_size=None, lat_col=LAT_COL, lon_col=LON_COL):
    """One row per bus: size, round, centroid and how far riders are spread."""
    columns = ["bus", "round", "cluster", "size", "centroid_lat", "centroid_lon", "max_spread_km"]
    if assigned.empty:
        return pd.DataFrame(columns=columns + (["meets_min"] if min_size is not None else []))

    rows = []
    for bus, grp in assigned.groupby("bus", sort=True):
        c_lat = grp[lat_col].mean()
        c_lon = grp[lon_col].mean()
        spread = haversine_km(grp[lat_col].to_numpy(), grp[lon_col].to_numpy(), c_lat, c_lon)
        rows.append({
            "bus": bus,
            "round": int(grp["round"].iloc[0]),
            "cluster": int(grp["cluster"].iloc[0]),
            "size": len(grp),
            "centroid_lat": c_lat,
            "centroid_lon": c_lon,
            "max_spread_km": float(spread.max()),
        })
    summary = pd.DataFrame(rows, columns=columns)
    if min_size is not None:
        summary["meets_min"] = summary["size"] >= min_size
    return summary


def size_descriptive_stats(sizes):
    """Descriptive statistics for a series of bus sizes."""
    sizes = pd.Series(sizes)
    return {
        "count": len(sizes),
        "mean": sizes.mean(),
        "median": sizes.median(),
        "std": sizes.std(),
        "min": sizes.min(),
        "max": sizes.max(),
    }


def constraint_report(assigned, result, max_size, min_size):
    """Check a plan against the size bounds.

    Buses under ``min_size`` are fine when their round waived the floor
    (fewer than 3 clusters) or stalled; anything else is a violation, as is
    any bus over ``max_size``.
    """
    summary = bus_summary(assigned)
    by_round = {r.round: r for r in result.rounds}
    under = summary[summary["size"] < min_size]
    waived = under["round"].map(lambda r: by_round[r].waived).astype(bool)
    stalled = under["round"].map(lambda r: by_round[r].stalled).astype(bool)
    return {
        "buses": len(summary),
        "over_max": int((summary["size"] > max_size).sum()),
        "under_min": len(under),
        "under_min_waived": int(waived.sum()),
        "under_min_stalled": int((stalled & ~waived).sum()),
        "unexplained": int((~waived & ~stalled).sum()),
    }
