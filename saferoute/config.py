"""SafeRoute — Configuration & Constants"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root (one level up from saferoute/)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path)

# ── API Keys ──
MAPBOX_ACCESS_TOKEN = os.environ.get("MAPBOX_ACCESS_TOKEN", "").strip()
NYC_OPEN_DATA_API_KEY = os.environ.get("NYC_OPEN_DATA_API_KEY", "").strip()

# ── Base URLs ──
MAPBOX_BASE_URL = os.environ.get("MAPBOX_BASE_URL", "https://api.mapbox.com")
NYC_OPEN_DATA_BASE = os.environ.get("NYC_OPEN_DATA_BASE", "https://data.cityofnewyork.us/resource")
NWS_BASE = os.environ.get("NWS_BASE", "https://api.weather.gov")

HTTP_TIMEOUT = float(os.environ.get("HTTP_TIMEOUT", "30"))

# ── Server ──
APP_HOST = os.environ.get("APP_HOST", "127.0.0.1")
APP_PORT = int(os.environ.get("APP_PORT", "5000"))
CORS_ORIGINS = [
    o.strip()
    for o in os.environ.get("CORS_ORIGINS", "http://localhost:8080,http://localhost:5173").split(",")
    if o.strip()
]

NWS_USER_AGENT = "SafeRoute/1.0"

# NYC Open Data (Socrata) datasets per incident category
SOCRATA_DATASETS = {
    "crash": {
        "dataset": "h9gi-nx95",
        "limit": 5000,
        "keep": 1000,
        "order": "crash_date DESC",
    },
    "crime": {
        "dataset": "5uac-w243",
        "limit": 5000,
        "keep": 1000,
        "order": "cmplnt_fr_dt DESC",
    },
    "speeding": {
        "dataset": "hez4-dxbm",
        "limit": 1000,
        "keep": 500,
        "order": None,
    },
    "construction": {
        "dataset": "3k2p-39jp",
        "limit": 1000,
        "keep": 500,
        "order": None,
    },
}

# Default recency windows (days); None = unwindowed
DEFAULT_RECENCY_DAYS = {
    "crash": 365,
    "crime": 90,
    "speeding": None,
    "construction": None,
}

# Geocoding bias toward New York City
GEOCODE_PROXIMITY = (-74.006, 40.7128)  # lng, lat
GEOCODE_BBOX = (-74.25909, 40.477399, -73.700272, 40.917577)
GEOCODE_LIMIT = 5

# Directions provider returns at most this many alternatives we care about
MAX_ROUTE_OPTIONS = 10
