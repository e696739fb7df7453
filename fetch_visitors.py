"""Build visitors.csv: geocode each hometown, then scatter visitors around it."""
import csv
import time

import numpy as np
import requests

from busplan.constants import DATA_PATH, HOMETOWNS, HOMETOWN_SPREAD_DEG

# Open-Meteo geocoding API (free, no key needed)
GEOCODE_URL = "https://geocoding-api.open-meteo.com/v1/search"
COUNTRY_CODE = "NL"

SEED = 42


def parse_geocode(payload, town):
    """Pull (lat, lon) for the best match out of a geocoding response."""
    results = payload.get("results") or []
    if not results:
        raise LookupError(f"No geocoding result for {town!r}")
    best = results[0]
    return best["latitude"], best["longitude"]


def geocode(town, session=None):
    """Look up a town's coordinates."""
    params = {
        "name": town,
        "count": 1,
        "language": "en",
        "format": "json",
        "countryCode": COUNTRY_CODE,
    }
    print(f"  Geocoding {town}...")
    resp = (session or requests).get(GEOCODE_URL, params=params, timeout=30)
    resp.raise_for_status()
    return parse_geocode(resp.json(), town)


def scatter_visitors(town, lat, lon, n, rng, spread=HOMETOWN_SPREAD_DEG, start_id=1):
    """Draw ``n`` visitor home locations normally distributed around a town centre."""
    lats = rng.normal(lat, spread, size=n)
    lons = rng.normal(lon, spread / np.cos(np.radians(lat)), size=n)
    return [
        {
            "visitor_id": start_id + i,
            "hometown": town,
            "latitude": round(float(lats[i]), 6),
            "longitude": round(float(lons[i]), 6),
        }
        for i in range(n)
    ]


def main():
    rng = np.random.default_rng(SEED)
    all_rows = []
    with requests.Session() as session:
        for town, n_visitors in HOMETOWNS.items():
            print(f"\n[{town}]")
            lat, lon = geocode(town, session=session)
            rows = scatter_visitors(town, lat, lon, n_visitors, rng, start_id=len(all_rows) + 1)
            all_rows.extend(rows)
            print(f"  -> {len(rows):,} visitors around ({lat:.4f}, {lon:.4f})")
            time.sleep(1)  # be polite to the free API

    fieldnames = ["visitor_id", "hometown", "latitude", "longitude"]
    with open(DATA_PATH, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(all_rows)

    print(f"\nDone! Wrote {len(all_rows):,} visitors to {DATA_PATH}")


if __name__ == "__main__":
    main()
