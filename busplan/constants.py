"""Shared constants: bus size defaults, colors, column names, hometowns."""
import os

DATA_PATH = os.environ.get(
    "BUSPLAN_DATA_PATH",
    os.path.join(os.path.dirname(os.path.dirname(__file__)), "visitors.csv"),
)

# Seats per bus, and the smallest group worth sending a bus for
DEFAULT_MAX_BUS_SIZE = 59
DEFAULT_MIN_BUS_SIZE = 30

DEFAULT_LINKAGE = "complete"
LINKAGE_METHODS = ["complete", "average", "single", "ward"]

LAT_COL = "latitude"
LON_COL = "longitude"
REQUIRED_COLS = ["visitor_id", "hometown", LAT_COL, LON_COL]

# Hometown -> number of visitors, used by fetch_visitors.py
HOMETOWNS = {
    "Utrecht": 140,
    "Amersfoort": 85,
    "Hilversum": 40,
    "Zeist": 55,
    "Nieuwegein": 60,
    "Houten": 25,
    "Veenendaal": 35,
    "Woerden": 30,
    "Gouda": 20,
    "Culemborg": 12,
}

# Event venue; buses drive from each group's centroid to here
VENUE = ("Arnhem", 51.9851, 5.8987)

# Standard deviation (in degrees) of the scatter around each hometown
HOMETOWN_SPREAD_DEG = 0.02

HOMETOWN_COLORS = {
    "Utrecht": "#E63946",
    "Amersfoort": "#F4A261",
    "Hilversum": "#2A9D8F",
    "Zeist": "#264653",
    "Nieuwegein": "#7209B7",
    "Houten": "#FB8500",
    "Veenendaal": "#3A86FF",
    "Woerden": "#8AC926",
    "Gouda": "#FF006E",
    "Culemborg": "#6D6875",
}

HOMETOWN_LIST = list(HOMETOWNS.keys())

COLUMN_LABELS = {
    LAT_COL: "Latitude",
    LON_COL: "Longitude",
    "bus": "Bus",
    "round": "Round",
    "cluster": "Cluster",
    "size": "Passengers",
    "max_spread_km": "Max Distance to Centroid (km)",
}
