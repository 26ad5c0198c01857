"""Settings helpers to centralize configuration access."""
from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Optional

from stock_valuation.config import Config


def load_settings(
    debug_override: Optional[bool] = None,
    *,
    database_path: Optional[Path] = None,
    discount_rate: Optional[float] = None,
    terminal_growth: Optional[float] = None,
) -> Config:
    """Return a Config instance, applying optional runtime overrides."""
    config = Config.from_env()
    overrides = {
        "debug": debug_override,
        "database_path": database_path,
        "dcf_discount_rate": discount_rate,
        "dcf_terminal_growth": terminal_growth,
    }
    applied = {key: value for key, value in overrides.items() if value is not None}
    if not applied:
        return config
    config = replace(config, **applied)
    config.ensure_directories()
    return config
