"""Data models for the returns and distribution engine."""

from .lookups import (
    PropertyType,
    SiteWorkMethod,
    ParkingStructure,
    EscalationPattern,
    FeeStructureType,
    DevelopmentFeePayout,
    DispositionFeeStructure,
    Severity,
    DEFAULT_WATERFALL_TIERS,
    DEFAULT_SCENARIOS,
    SF_PER_ACRE,
)
from .project import (
    UnitMixEntry,
    Tenant,
    SalesPhase,
    HardCostInputs,
    SoftCostInputs,
    Timeline,
    ConstructionLoanTerms,
    PermanentLoanTerms,
    OperatingAssumptions,
    RentEscalations,
    ParkingInputs,
    SalesAssumptions,
    ProjectAssumptions,
)
from .compensation import (
    WaterfallTier,
    EquityStructure,
    FeeTiming,
    FeeCaps,
    SponsorFeeStructure,
    Waterfall,
    SponsorFee,
    CompensationMode,
)

__all__ = [
    "PropertyType",
    "SiteWorkMethod",
    "ParkingStructure",
    "EscalationPattern",
    "FeeStructureType",
    "DevelopmentFeePayout",
    "DispositionFeeStructure",
    "Severity",
    "DEFAULT_WATERFALL_TIERS",
    "DEFAULT_SCENARIOS",
    "SF_PER_ACRE",
    "UnitMixEntry",
    "Tenant",
    "SalesPhase",
    "HardCostInputs",
    "SoftCostInputs",
    "Timeline",
    "ConstructionLoanTerms",
    "PermanentLoanTerms",
    "OperatingAssumptions",
    "RentEscalations",
    "ParkingInputs",
    "SalesAssumptions",
    "ProjectAssumptions",
    "WaterfallTier",
    "EquityStructure",
    "FeeTiming",
    "FeeCaps",
    "SponsorFeeStructure",
    "Waterfall",
    "SponsorFee",
    "CompensationMode",
]
