"""
config.py - Runtime settings for dropfour

Values come from the environment (a local .env file is loaded first) and
fall back to the defaults below.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


# Rooms expire after this many seconds without a write
ROOM_TTL = int(_env_float("DROPFOUR_ROOM_TTL", 60 * 60 * 4))
ROOM_KEY_PREFIX = os.getenv("DROPFOUR_KEY_PREFIX", "c4:")
DATA_DIR = os.getenv("DROPFOUR_DATA_DIR", os.path.join("data", "rooms"))

# Client side timing, in seconds
POLL_INTERVAL = _env_float("DROPFOUR_POLL_INTERVAL", 0.7)
SEARCH_WATCHDOG = _env_float("DROPFOUR_SEARCH_WATCHDOG", 0.8)
REQUEST_TIMEOUT = _env_float("DROPFOUR_REQUEST_TIMEOUT", 5.0)

SERVER_URL = os.getenv("DROPFOUR_SERVER_URL", "http://127.0.0.1:5000")
DEBUG_LEVEL = os.getenv("DROPFOUR_DEBUG_LEVEL", "")
