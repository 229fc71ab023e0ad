"""Central configuration for the trip optimizer.

Every tunable is read from the environment (after loading an optional
``.env`` file) so operators can adjust behaviour without code changes.
"""
from __future__ import annotations

import os
from typing import Dict

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


LOG_LEVEL: str = os.getenv("TRIP_OPTIMIZER_LOG_LEVEL", "INFO").upper()
ALLOWED_ORIGINS: str = os.getenv("TRIP_OPTIMIZER_ALLOWED_ORIGINS") or "*"

# ── Crowd forecast gateway ────────────────────────────────────────────────────
CROWD_API_BASE_URL: str = os.getenv("CROWD_API_BASE_URL", "")
CROWD_API_KEY: str = os.getenv("CROWD_API_KEY", "")
CROWD_API_TIMEOUT: float = _env_float("CROWD_API_TIMEOUT", 5.0)
# Upper bound on lookups in flight at once during a forecast fan-out.
CROWD_API_MAX_CONCURRENCY: int = max(1, _env_int("CROWD_API_MAX_CONCURRENCY", 8))

# ── Crowd scale ───────────────────────────────────────────────────────────────
# Used whenever a forecast is missing so absent data never biases a strategy.
NEUTRAL_CROWD_SCORE: float = _env_float("NEUTRAL_CROWD_SCORE", 5.0)
MAX_CROWD_SCORE: float = 10.0

# ── Scoring ───────────────────────────────────────────────────────────────────
FLEXIBILITY_WEIGHT: float = 70.0
DATA_QUALITY_WEIGHT: float = 30.0
MINUTES_SAVED_PER_CROWD_POINT: float = _env_float("MINUTES_SAVED_PER_CROWD_POINT", 15.0)

# ── Energy pacing ─────────────────────────────────────────────────────────────
# Static physical-intensity table; not derived from any live signal.
DESTINATION_INTENSITY: Dict[str, int] = {
    "magic-kingdom": 5,
    "hollywood-studios": 4,
    "animal-kingdom": 3,
    "epcot": 2,
    "typhoon-lagoon": 2,
    "blizzard-beach": 2,
    "disney-springs": 1,
}
DEFAULT_INTENSITY: int = 3

# ── LLM narration ─────────────────────────────────────────────────────────────
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL: str = os.getenv("TRIP_OPTIMIZER_OPENAI_MODEL", "gpt-4o-mini")
