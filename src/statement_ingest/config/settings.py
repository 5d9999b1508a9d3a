from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_LOT_MATCH_TOLERANCE = 0.01
DEFAULT_NAME_LOOKAHEAD = 4
DEFAULT_LOT_SCAN_WINDOW = 30


def _env_float(name: str, default: float) -> float:
    raw = str(os.getenv(name, "") or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _env_int(name: str, default: int) -> int:
    raw = str(os.getenv(name, "") or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class Settings:
    lot_match_tolerance: float
    name_lookahead: int
    lot_scan_window: int
    log_level: str


def get_settings() -> Settings:
    return Settings(
        lot_match_tolerance=_env_float("STATEMENT_LOT_TOLERANCE", DEFAULT_LOT_MATCH_TOLERANCE),
        name_lookahead=_env_int("STATEMENT_NAME_LOOKAHEAD", DEFAULT_NAME_LOOKAHEAD),
        lot_scan_window=_env_int("STATEMENT_LOT_SCAN_WINDOW", DEFAULT_LOT_SCAN_WINDOW),
        log_level=str(os.getenv("LOG_LEVEL", "INFO") or "INFO").strip().upper(),
    )
