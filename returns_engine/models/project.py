"""Project data model containing all inputs for a development scenario."""

from dataclasses import asdict, dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any, Dict, List, Tuple

from .lookups import (
    CLOSING_MILESTONE,
    DEFAULT_DEPOSIT_STRUCTURE,
    DEFAULT_SALES_PHASES,
    DEFAULT_UNIT_MIX,
    SF_PER_ACRE,
    EscalationPattern,
    ParkingStructure,
    PropertyType,
    SiteWorkMethod,
)


@dataclass(frozen=True)
class UnitMixEntry:
    """Single entry in the apartment unit mix."""

    unit_type: str  # "Studio", "1BR", ...
    units: int
    size_sf: int


@dataclass(frozen=True)
class Tenant:
    """Leased space in an office or retail building."""

    name: str
    sf: float


@dataclass(frozen=True)
class SalesPhase:
    """Release of for-sale units; months are relative to project start."""

    units: int
    start_month: int
    delivery_month: int


@dataclass(frozen=True)
class HardCostInputs:
    """Hard cost drivers. Per-SF amounts apply to building (or saleable) SF."""

    core_shell_psf: float = 200.0
    tenant_improvements_psf: float = 50.0
    site_work: float = 500_000.0
    site_work_per_unit: float = 15_000.0
    site_work_method: SiteWorkMethod = SiteWorkMethod.TOTAL
    parking_surface_per_space: float = 5_000.0
    parking_structured_per_space: float = 25_000.0
    landscaping_psf: float = 10.0  # Per SF of site area
    contingency: float = 0.05


@dataclass(frozen=True)
class SoftCostInputs:
    """Soft cost drivers; percentage items are fractions of their base."""

    architecture_engineering: float = 0.06  # Of hard cost with contingency
    permits_impact_fees_psf: float = 15.0  # Per SF of GFA
    legal_accounting: float = 150_000.0
    property_tax_construction: float = 0.012  # Of land cost
    insurance_construction: float = 0.005  # Of hard cost with contingency
    marketing_leasing: float = 200_000.0
    construction_mgmt_fee: float = 0.03  # Of hard cost with contingency
    developer_fee: float = 0.04  # Of land + hard + soft, before this fee


@dataclass(frozen=True)
class Timeline:
    """Development timeline in months."""

    construction_months: int = 24
    lease_up_months: int = 12


@dataclass(frozen=True)
class ConstructionLoanTerms:
    """Construction loan terms."""

    ltc: float = 0.65
    rate: float = 0.085
    origination_fee: float = 0.01
    avg_outstanding: float = 0.60  # Average drawn balance as share of commitment


@dataclass(frozen=True)
class PermanentLoanTerms:
    """Permanent (take-out) loan terms."""

    ltv: float = 0.70
    rate: float = 0.065
    amortization_years: int = 30
    term_years: int = 10
    io_years: int = 0


@dataclass(frozen=True)
class OperatingAssumptions:
    """Stabilized operating and exit assumptions.

    rent_psf is annual per SF for office/retail and monthly per SF for
    apartments. opex is annual per SF for office/retail and annual per
    unit for apartments.
    """

    rent_psf: float = 35.0
    vacancy: float = 0.05
    opex: float = 8.0
    cap_rate: float = 0.065
    rent_growth: float = 0.03
    expense_growth: float = 0.025
    hold_period: int = 10
    exit_costs: float = 0.02


@dataclass(frozen=True)
class RentEscalations:
    """Archetype-specific rent escalation drivers."""

    office_pattern: EscalationPattern = EscalationPattern.STEPPED
    office_step_years: int = 5
    office_step_increase: float = 0.10
    office_annual_increase: float = 0.03

    retail_annual_increase: float = 0.03
    retail_percentage_rent: bool = True
    retail_percentage_threshold: float = 0.05
    retail_sales_psf: float = 400.0

    apartment_annual_increase: float = 0.03
    apartment_loss_to_lease: float = 0.02
    apartment_turnover: float = 0.50
    apartment_other_income: float = 50.0  # Per unit per month


@dataclass(frozen=True)
class ParkingInputs:
    """Parking supply, cost basis, and revenue drivers."""

    include: bool = True
    ratio_per_1000_sf: float = 2.5
    structure: ParkingStructure = ParkingStructure.SURFACE
    monthly_rate: float = 150.0
    occupancy: float = 0.85  # Unreserved space occupancy
    reserved: float = 0.50  # Share of spaces leased as reserved


@dataclass(frozen=True)
class SalesAssumptions:
    """For-sale (condominium / townhome) sales assumptions."""

    total_units: int = 100
    avg_unit_size: float = 1_200.0
    avg_price: float = 750_000.0
    sales_pace: int = 5  # Units per month
    price_escalation: float = 0.04
    commission: float = 0.05
    marketing: float = 0.02
    closing_costs: float = 0.01
    deposit_structure: Tuple[Tuple[str, float], ...] = field(
        default_factory=lambda: tuple(DEFAULT_DEPOSIT_STRUCTURE.items())
    )
    phases: Tuple[SalesPhase, ...] = field(
        default_factory=lambda: tuple(SalesPhase(*p) for p in DEFAULT_SALES_PHASES)
    )

    @property
    def deposit_share(self) -> float:
        """Share of price collected before closing."""
        return sum(pct for name, pct in self.deposit_structure if name != CLOSING_MILESTONE)

    @property
    def closing_share(self) -> float:
        """Share of price collected at closing (defaults to 80% if no closing milestone)."""
        for name, pct in self.deposit_structure:
            if name == CLOSING_MILESTONE:
                return pct
        return 0.80

    @property
    def sales_cost_rate(self) -> float:
        """Commission, marketing and closing costs as a share of revenue."""
        return self.commission + self.marketing + self.closing_costs


_SECTION_TYPES = {
    "hard_costs": HardCostInputs,
    "soft_costs": SoftCostInputs,
    "timeline": Timeline,
    "construction_loan": ConstructionLoanTerms,
    "permanent_loan": PermanentLoanTerms,
    "operating": OperatingAssumptions,
    "escalations": RentEscalations,
    "parking": ParkingInputs,
}


@dataclass(frozen=True)
class ProjectAssumptions:
    """Complete, immutable input set for one calculation run.

    Defaults describe a 50,000 SF office building on a one-acre site.
    Use dataclasses.replace() to derive variants.
    """

    property_type: PropertyType = PropertyType.OFFICE

    # === Site & Building ===
    land_cost: float = 5_000_000.0
    site_area_acres: float = 1.0
    building_gfa: float = 50_000.0

    # === Cost & Financing ===
    hard_costs: HardCostInputs = field(default_factory=HardCostInputs)
    soft_costs: SoftCostInputs = field(default_factory=SoftCostInputs)
    timeline: Timeline = field(default_factory=Timeline)
    construction_loan: ConstructionLoanTerms = field(default_factory=ConstructionLoanTerms)
    permanent_loan: PermanentLoanTerms = field(default_factory=PermanentLoanTerms)

    # === Operations ===
    operating: OperatingAssumptions = field(default_factory=OperatingAssumptions)
    escalations: RentEscalations = field(default_factory=RentEscalations)
    parking: ParkingInputs = field(default_factory=ParkingInputs)

    # === Archetype-specific ===
    unit_mix: Tuple[UnitMixEntry, ...] = field(
        default_factory=lambda: tuple(UnitMixEntry(*u) for u in DEFAULT_UNIT_MIX)
    )
    tenants: Tuple[Tenant, ...] = ()
    sales: SalesAssumptions = field(default_factory=SalesAssumptions)

    @property
    def site_area_sf(self) -> float:
        """Site area in square feet."""
        return max(0.0, self.site_area_acres * SF_PER_ACRE)

    @property
    def total_units(self) -> int:
        """Unit count for unit-based archetypes (0 for office/retail)."""
        if self.property_type == PropertyType.APARTMENT:
            return sum(u.units for u in self.unit_mix)
        if self.property_type == PropertyType.FOR_SALE:
            return self.sales.total_units
        return 0

    @property
    def buildable_sf(self) -> float:
        """SF that per-SF hard costs apply to (saleable SF for for-sale)."""
        if self.property_type == PropertyType.FOR_SALE:
            return self.sales.total_units * self.sales.avg_unit_size
        return self.building_gfa

    @property
    def parking_spaces(self) -> int:
        """Parking spaces from the per-1,000 SF ratio."""
        if not self.parking.include:
            return 0
        return round(self.building_gfa / 1000 * self.parking.ratio_per_1000_sf)

    def validate(self) -> List[str]:
        """Validate input shape and ranges.

        Returns:
            List of error messages (empty if valid).
        """
        errors = []
        if not isinstance(self.property_type, PropertyType):
            errors.append(f"property_type must be a PropertyType, got {self.property_type!r}")
        if self.operating.hold_period < 1:
            errors.append(f"hold_period must be >= 1, got {self.operating.hold_period}")
        if self.building_gfa < 0:
            errors.append(f"building_gfa must be >= 0, got {self.building_gfa}")
        if self.land_cost < 0:
            errors.append(f"land_cost must be >= 0, got {self.land_cost}")
        if self.permanent_loan.amortization_years < 1:
            errors.append(
                f"amortization_years must be >= 1, got {self.permanent_loan.amortization_years}"
            )
        if self.property_type == PropertyType.APARTMENT and not self.unit_mix:
            errors.append("apartment projects require a unit mix")
        if self.property_type == PropertyType.FOR_SALE:
            if self.sales.sales_pace < 1:
                errors.append(f"sales_pace must be >= 1, got {self.sales.sales_pace}")
            if not self.sales.phases:
                errors.append("for-sale projects require at least one sales phase")
        for name in ("vacancy", "exit_costs"):
            value = getattr(self.operating, name)
            if not 0 <= value <= 1:
                errors.append(f"{name} must be 0-1, got {value}")
        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary (enums as values, tuples as lists)."""
        return _plain(asdict(self))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectAssumptions":
        """Rebuild assumptions from to_dict() output.

        Raises:
            ValueError: On keys that are not assumption fields.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown assumption fields: {sorted(unknown)}")

        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key == "property_type":
                kwargs[key] = PropertyType(value)
            elif key in _SECTION_TYPES:
                kwargs[key] = _section_from_dict(_SECTION_TYPES[key], value)
            elif key == "unit_mix":
                kwargs[key] = tuple(UnitMixEntry(**u) for u in value)
            elif key == "tenants":
                kwargs[key] = tuple(Tenant(**t) for t in value)
            elif key == "sales":
                sales = dict(value)
                if "deposit_structure" in sales:
                    sales["deposit_structure"] = tuple(
                        (name, pct) for name, pct in sales["deposit_structure"]
                    )
                if "phases" in sales:
                    sales["phases"] = tuple(SalesPhase(**p) for p in sales["phases"])
                kwargs[key] = SalesAssumptions(**sales)
            else:
                kwargs[key] = value
        return cls(**kwargs)


def _section_from_dict(section_cls, values: Dict[str, Any]):
    """Build a component dataclass, converting enum values back to members."""
    kwargs = {}
    types = {f.name: f.type for f in fields(section_cls)}
    for key, value in values.items():
        if key not in types:
            raise ValueError(f"Unknown field {key!r} for {section_cls.__name__}")
        field_type = types[key]
        if isinstance(field_type, type) and issubclass(field_type, Enum):
            value = field_type(value)
        kwargs[key] = value
    return section_cls(**kwargs)


def _plain(value: Any) -> Any:
    """Recursively convert enums and tuples for serialization."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if is_dataclass(value):
        return _plain(asdict(value))
    return value
