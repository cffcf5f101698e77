"""Central configuration for the territory claim engine.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Secrets are read from environment variables (optionally
via a local `.env`).
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Path recording
# ---------------------------------------------------------------------------
# Samples with a horizontal accuracy worse than this (metres) are GPS noise.
RECORDER_MAX_ACCURACY_M = _env_float("RECORDER_MAX_ACCURACY_M", 50.0)

# Debounce: a sample is kept only when it is at least this many seconds AND
# this many metres away from the last accepted sample.
RECORDER_MIN_INTERVAL_S = _env_float("RECORDER_MIN_INTERVAL_S", 3.0)
RECORDER_MIN_DISTANCE_M = _env_float("RECORDER_MIN_DISTANCE_M", 5.0)

# Implied speeds above this (km/h) are treated as GPS jumps and dropped.
RECORDER_MAX_SPEED_KMH = _env_float("RECORDER_MAX_SPEED_KMH", 100.0)

# Implied speeds above this (km/h) are kept but flagged.
RECORDER_WARN_SPEED_KMH = _env_float("RECORDER_WARN_SPEED_KMH", 50.0)

# Hard cap on recorded points per claim attempt. Bounds validation cost.
RECORDER_MAX_POINTS = _env_int("RECORDER_MAX_POINTS", 5000)


# ---------------------------------------------------------------------------
# Claim validation
# ---------------------------------------------------------------------------
# Distance (metres) from the start point at which the loop counts as closed.
CLAIM_CLOSURE_TOLERANCE_M = _env_float("CLAIM_CLOSURE_TOLERANCE_M", 15.0)

# Samples required before loop closure is reported to listeners.
CLAIM_CLOSURE_MIN_POINTS = _env_int("CLAIM_CLOSURE_MIN_POINTS", 4)

# Minimum distinct boundary points for a valid territory.
CLAIM_MIN_POINTS = _env_int("CLAIM_MIN_POINTS", 4)

# Minimum enclosed area (square metres).
CLAIM_MIN_AREA_M2 = _env_float("CLAIM_MIN_AREA_M2", 25.0)

# Minimum walked distance (metres). Set to 0 to disable the check.
CLAIM_MIN_TOTAL_DISTANCE_M = _env_float("CLAIM_MIN_TOTAL_DISTANCE_M", 0.0)

# Crossings closer than this (metres) to a shared segment are tolerated.
CLAIM_SELF_INTERSECTION_TOLERANCE_M = _env_float(
    "CLAIM_SELF_INTERSECTION_TOLERANCE_M", 0.5
)

# Overlap with an existing territory above this many square metres fails.
CLAIM_OVERLAP_TOLERANCE_M2 = _env_float("CLAIM_OVERLAP_TOLERANCE_M2", 1.0)

# Extra radius (metres) added around the candidate when querying neighbours.
CLAIM_OVERLAP_SEARCH_MARGIN_M = _env_float("CLAIM_OVERLAP_SEARCH_MARGIN_M", 200.0)

# Check the claimant's own territories for overlap as well.
CLAIM_CHECK_OWN_OVERLAP = _env_bool("CLAIM_CHECK_OWN_OVERLAP", True)


# ---------------------------------------------------------------------------
# Collision warnings
# ---------------------------------------------------------------------------
# Distance bands (metres) to the nearest foreign territory vertex.
COLLISION_CAUTION_DISTANCE_M = _env_float("COLLISION_CAUTION_DISTANCE_M", 100.0)
COLLISION_WARNING_DISTANCE_M = _env_float("COLLISION_WARNING_DISTANCE_M", 50.0)
COLLISION_DANGER_DISTANCE_M = _env_float("COLLISION_DANGER_DISTANCE_M", 25.0)


# ---------------------------------------------------------------------------
# Points of interest
# ---------------------------------------------------------------------------
# Radius (metres) inside which a POI triggers a scavenge prompt.
POI_PROXIMITY_THRESHOLD_M = _env_float("POI_PROXIMITY_THRESHOLD_M", 50.0)

# Default catalog search radius (metres).
POI_SEARCH_RADIUS_M = _env_float("POI_SEARCH_RADIUS_M", 1000.0)

# POIs closer than this (metres) to an already listed POI are duplicates.
POI_DUPLICATE_DISTANCE_M = _env_float("POI_DUPLICATE_DISTANCE_M", 30.0)

# Maximum POIs returned by a nearby query.
POI_MAX_RESULTS = _env_int("POI_MAX_RESULTS", 20)

# Seconds a dismissed POI stays silent before it may prompt again.
POI_PROMPT_COOLDOWN_S = _env_float("POI_PROMPT_COOLDOWN_S", 60.0)

# Nearby query cache (entries / seconds).
POI_CACHE_SIZE = _env_int("POI_CACHE_SIZE", 64)
POI_CACHE_TTL_S = _env_int("POI_CACHE_TTL_S", 3600)


# ---------------------------------------------------------------------------
# Backend (Supabase REST)
# ---------------------------------------------------------------------------
# Credentials pulled from the environment. Do not hardcode secrets.
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_KEY = os.getenv("SUPABASE_KEY", "")

SUPABASE_TERRITORY_TABLE = os.getenv("SUPABASE_TERRITORY_TABLE", "territories")

# HTTP session pool sizes and request timeout in seconds.
HTTP_POOL_CONNECTIONS = 10
HTTP_POOL_MAXSIZE = 10
REQUEST_TIMEOUT = _env_int("REQUEST_TIMEOUT", 15)


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------
# Records kept by the in-memory claim log buffer.
CLAIM_LOG_MAX_ENTRIES = _env_int("CLAIM_LOG_MAX_ENTRIES", 200)
