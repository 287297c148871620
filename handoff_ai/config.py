# handoff_ai/config.py
from __future__ import annotations

import os


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number of seconds, got {raw!r}") from e


def _default_db_url() -> str:
    """
    Async SQLite in a local file for dev; override with DATABASE_URL
    (PostgreSQL etc.).
    """
    return "sqlite+aiosqlite:///./handoff_ai.db"


DATABASE_URL = os.getenv("DATABASE_URL", _default_db_url())
SQL_ECHO = os.getenv("SQL_ECHO", "0") == "1"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
TENANT_ID = os.getenv("TENANT_ID", "default")

# Simulated "thinking" pause before a reply, and the delay between the
# farewell message and the session closing itself.
THINKING_DELAY = _float_env("ASSISTANT_THINKING_DELAY", 1.0)
CLOSE_DELAY = _float_env("ASSISTANT_CLOSE_DELAY", 3.0)
