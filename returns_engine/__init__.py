"""Real-estate returns and distribution engine."""

from .engine import compute, analyze_risk, DealResult, RiskResult
from .models import (
    PropertyType,
    ProjectAssumptions,
    EquityStructure,
    WaterfallTier,
    SponsorFeeStructure,
    Waterfall,
    SponsorFee,
    CompensationMode,
)

__version__ = "0.1.0"

__all__ = [
    "compute",
    "analyze_risk",
    "DealResult",
    "RiskResult",
    "PropertyType",
    "ProjectAssumptions",
    "EquityStructure",
    "WaterfallTier",
    "SponsorFeeStructure",
    "Waterfall",
    "SponsorFee",
    "CompensationMode",
]
