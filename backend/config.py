"""Casemap Backend - Configuration & Constants"""

import os
from pathlib import Path
from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Load .env from project root (one level up from backend/)
_env_path = PROJECT_ROOT / ".env"
load_dotenv(_env_path)


def _labels(name: str, default: str) -> tuple[str, ...]:
    raw = os.environ.get(name, default)
    return tuple(label.strip() for label in raw.split(",") if label.strip())


# ── Data Sources ──
# Each source is either an http(s) URL or a path relative to the project root.
GEO_DATA_SOURCE = os.environ.get("GEO_DATA_SOURCE", "datasets/taiwan.json")
CASES_DATA_SOURCE = os.environ.get("CASES_DATA_SOURCE", "datasets/cases.csv")

# TopoJSON object holding the region geometries
GEO_OBJECT_NAME = os.environ.get("GEO_OBJECT_NAME", "map")

# ── Loading ──
FETCH_TIMEOUT = float(os.environ.get("FETCH_TIMEOUT", "15.0"))
LOAD_MAX_RETRIES = int(os.environ.get("LOAD_MAX_RETRIES", "3"))
LOAD_RETRY_DELAY = float(os.environ.get("LOAD_RETRY_DELAY", "2.0"))

# ── Interaction ──
SEARCH_DEBOUNCE_SECONDS = float(os.environ.get("SEARCH_DEBOUNCE_SECONDS", "0.3"))
QUERY_CACHE_SIZE = int(os.environ.get("QUERY_CACHE_SIZE", "256"))

# Locale used to collate case names for name sorting ("" = take it from the environment)
COLLATE_LOCALE = os.environ.get("COLLATE_LOCALE", "")

# ── Case Types ──
# Exact labels recognized per category; anything else counts as "other".
CHILD_ABUSE_LABELS = _labels("CHILD_ABUSE_LABELS", "虐童,child-abuse")
JUVENILE_LABELS = _labels("JUVENILE_LABELS", "少年案件,juvenile")

# ── Choropleth ──
# (exclusive lower bound, fill color), checked top-down
COLOR_BINS = [
    (10, "#800026"),
    (5, "#BD0026"),
    (2, "#E31A1C"),
    (1, "#FC4E2A"),
    (0, "#FD8D3C"),
]
NO_DATA_COLOR = "#999999"

# Messages shown to end users (internal diagnostics go to the log only)
LOAD_FAILED_MESSAGE = "無法載入地圖或案件資料，請稍後再試。"
NOT_LOADED_MESSAGE = "資料尚未載入完成。"

# Browser origins allowed to call the API (comma-separated)
ALLOWED_ORIGINS = _labels(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:8080,http://127.0.0.1:5173,http://127.0.0.1:8080",
)
