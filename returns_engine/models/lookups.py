"""Lookup tables for property archetypes, default tiers, and risk ranges."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple

SF_PER_ACRE = 43_560


class PropertyType(Enum):
    """Property archetype determines which cash flow generator runs."""

    OFFICE = "office"
    RETAIL = "retail"
    APARTMENT = "apartment"
    FOR_SALE = "forSale"

    @property
    def is_unit_based(self) -> bool:
        """Apartment and for-sale projects are counted in units, not leased SF."""
        return self in (PropertyType.APARTMENT, PropertyType.FOR_SALE)


class SiteWorkMethod(Enum):
    """How site work cost is entered."""

    TOTAL = "total"  # Lump sum
    PER_UNIT = "perUnit"  # Amount per unit x unit count


class ParkingStructure(Enum):
    """Parking construction type for cost per space."""

    SURFACE = "surface"
    STRUCTURED = "structured"


class EscalationPattern(Enum):
    """Office rent escalation pattern."""

    STEPPED = "stepped"  # Fixed bump every N years
    ANNUAL = "annual"  # Compound annual increase


class FeeStructureType(Enum):
    """Ongoing sponsor fee structure."""

    STANDARD = "standard"
    PERFORMANCE = "performance"  # Reduced below a return hurdle


class DevelopmentFeePayout(Enum):
    """When the sponsor development fee is collected."""

    UPFRONT = "upfront"
    MILESTONE = "milestone"  # Equal installments
    COMPLETION = "completion"  # On lease-up completion


class DispositionFeeStructure(Enum):
    """How the sponsor disposition fee is earned at exit."""

    STANDARD = "standard"
    HURDLE = "hurdle"  # Reduced rate below a minimum project return
    WATERFALL = "waterfall"  # Subordinated to return of equity


class Severity(Enum):
    """Validation issue severity."""

    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class TierDefaults:
    """Default IRR tier: bounds are decimal IRRs, shares are fractions."""

    min_irr: float
    max_irr: float
    lp_share: float
    gp_share: float


DEFAULT_WATERFALL_TIERS: List[TierDefaults] = [
    TierDefaults(min_irr=0.00, max_irr=0.08, lp_share=0.90, gp_share=0.10),
    TierDefaults(min_irr=0.08, max_irr=0.12, lp_share=0.80, gp_share=0.20),
    TierDefaults(min_irr=0.12, max_irr=0.15, lp_share=0.70, gp_share=0.30),
    TierDefaults(min_irr=0.15, max_irr=1.00, lp_share=0.60, gp_share=0.40),
]


# Deposit milestones for for-sale units (fraction of price).
# Everything except "Closing" is collected while a phase is selling.
DEFAULT_DEPOSIT_STRUCTURE: Dict[str, float] = {
    "Contract": 0.10,
    "Construction Start": 0.05,
    "50% Complete": 0.05,
    "Closing": 0.80,
}

CLOSING_MILESTONE = "Closing"

# (units, start_month, delivery_month)
DEFAULT_SALES_PHASES: List[Tuple[int, int, int]] = [
    (40, 0, 24),
    (30, 6, 30),
    (30, 12, 36),
]

FOR_SALE_HORIZON_MONTHS = 60

# (unit_type, units, size_sf)
DEFAULT_UNIT_MIX: List[Tuple[str, int, int]] = [
    ("Studio", 10, 500),
    ("1BR", 30, 750),
    ("2BR", 20, 1_100),
    ("3BR", 5, 1_400),
]


# Single-variable sensitivity ranges
RENT_SENSITIVITY_PCT: List[float] = [-15, -10, -5, 0, 5, 10, 15]
CONSTRUCTION_SENSITIVITY_PCT: List[float] = [-10, -5, -2.5, 0, 2.5, 5, 10]
CAP_RATE_SENSITIVITY_BPS: List[float] = [-75, -50, -25, 0, 25, 50, 75]
INTEREST_RATE_SENSITIVITY_BPS: List[float] = [-100, -75, -50, -25, 0, 25, 50, 75, 100]

# IRR response per unit of perturbation, as a fraction of base IRR
SENSITIVITY_COEFFICIENTS: Dict[str, float] = {
    "rent": 1.5,
    "construction_cost": 0.8,
    "cap_rate": 0.02,
    "interest_rate": 0.005,
}


@dataclass(frozen=True)
class ScenarioDefaults:
    """Discrete scenario adjustment (percent and bps, probability as fraction)."""

    name: str
    probability: float
    rent_change_pct: float
    cost_change_pct: float
    cap_rate_change_bps: float


DEFAULT_SCENARIOS: List[ScenarioDefaults] = [
    ScenarioDefaults("base", 0.50, 0.0, 0.0, 0.0),
    ScenarioDefaults("upside", 0.25, 10.0, -5.0, -50.0),
    ScenarioDefaults("downside", 0.25, -10.0, 10.0, 50.0),
]
