"""Convenience re-exports for workflow nodes."""
from __future__ import annotations

from . import (
    company_lookup,
    data_load,
    expert_valuation,
    ingest,
    scorecard,
)

__all__ = [
    "company_lookup",
    "data_load",
    "expert_valuation",
    "ingest",
    "scorecard",
]
