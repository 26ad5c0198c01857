"""Application-wide configuration defaults and helpers."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Runtime artifacts resolve against the working directory.
BASE_DIR = Path.cwd()


def _to_bool(value: Optional[str], default: bool = False) -> bool:
    """Parse truthy environment values like '1' or 'true'."""
    if value is None:
        return default
    if not isinstance(value, str):
        value = str(value)
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_int(value: Optional[str], default: int) -> int:
    """Safely parse an integer env var, falling back to ``default``."""
    if value is None:
        return default
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def _to_float(value: Optional[str], default: float) -> float:
    """Safely parse a float env var, falling back to ``default``."""
    if value is None:
        return default
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return default


@dataclass
class Config:
    """Runtime configuration loaded from environment variables."""

    debug: bool = False
    database_path: Path = BASE_DIR / "data" / "market.db"
    sqlite_echo: bool = False
    market_api_base_url: Optional[str] = None
    market_api_key: Optional[str] = None
    market_api_verify_tls: bool = True
    market_api_timeout: float = 30.0
    output_dir: Path = BASE_DIR / "reports"
    statement_limit: int = 6
    line_item_labels_path: Optional[Path] = None
    # DCF assumptions
    dcf_discount_rate: float = 0.10
    dcf_terminal_growth: float = 0.03
    dcf_growth_floor: float = -0.20
    dcf_growth_cap: float = 0.30
    dcf_projection_years: int = 5
    dcf_min_history: int = 3

    @classmethod
    def from_env(cls) -> "Config":
        """Build a configuration instance using environment overrides."""
        base = Path.cwd()
        labels_path = os.getenv("LINE_ITEM_LABELS_PATH")

        config = cls(
            debug=_to_bool(os.getenv("APP_DEBUG")),
            database_path=Path(os.getenv("DATABASE_PATH", base / "data" / "market.db")),
            sqlite_echo=_to_bool(os.getenv("SQLITE_ECHO")),
            market_api_base_url=os.getenv("API_BASE_URL"),
            market_api_key=os.getenv("API_KEY"),
            market_api_verify_tls=_to_bool(os.getenv("MARKET_API_VERIFY_TLS"), default=True),
            market_api_timeout=_to_float(os.getenv("MARKET_API_TIMEOUT"), 30.0),
            output_dir=Path(os.getenv("OUTPUT_DIR", base / "reports")),
            statement_limit=_to_int(os.getenv("STATEMENT_LIMIT"), 6),
            line_item_labels_path=Path(labels_path) if labels_path else None,
            dcf_discount_rate=_to_float(os.getenv("DCF_DISCOUNT_RATE"), 0.10),
            dcf_terminal_growth=_to_float(os.getenv("DCF_TERMINAL_GROWTH"), 0.03),
            dcf_growth_floor=_to_float(os.getenv("DCF_GROWTH_FLOOR"), -0.20),
            dcf_growth_cap=_to_float(os.getenv("DCF_GROWTH_CAP"), 0.30),
            dcf_projection_years=_to_int(os.getenv("DCF_PROJECTION_YEARS"), 5),
            dcf_min_history=_to_int(os.getenv("DCF_MIN_HISTORY"), 3),
        )
        config.ensure_directories()
        return config

    def ensure_directories(self) -> None:
        """Create directories needed for runtime artifacts."""
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self.output_dir.mkdir(parents=True, exist_ok=True)
