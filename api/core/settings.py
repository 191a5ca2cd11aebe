"""
Environment-backed settings.

Only `main.py` reads these; everything below the app wiring receives its
configuration as explicit arguments.
"""

from __future__ import annotations

import os

DEFAULT_DGRAPH_URL = "http://localhost:8080"
DEFAULT_API_PORT = 4000
DEFAULT_CORS_ORIGINS = ("http://localhost:5173", "http://127.0.0.1:5173")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def dgraph_url() -> str:
    return os.environ.get("DGRAPH_URL", DEFAULT_DGRAPH_URL).strip() or DEFAULT_DGRAPH_URL


def dgraph_timeout_s() -> float:
    value = _env_float("DGRAPH_TIMEOUT_S", 30.0)
    return value if value > 0 else 30.0


def apply_schema_on_startup() -> bool:
    return _env_bool("DGRAPH_APPLY_SCHEMA", False)


def api_port() -> int:
    return _env_int("API_PORT", DEFAULT_API_PORT)


def log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"


def cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ORIGINS", "").strip()
    if not raw:
        return list(DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
