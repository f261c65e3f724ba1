"""Development cost build-up: hard costs, soft costs, and developer fee."""

import logging
from dataclasses import dataclass, field
from typing import List

from ..models.lookups import ParkingStructure, SiteWorkMethod
from ..models.project import ProjectAssumptions

logger = logging.getLogger(__name__)


@dataclass
class SoftCostBreakdown:
    """Soft cost line items."""

    architecture_engineering: float
    permits_impact_fees: float
    legal_accounting: float
    property_tax_construction: float
    insurance_construction: float
    marketing_leasing: float
    construction_mgmt_fee: float

    @property
    def total(self) -> float:
        return (
            self.architecture_engineering
            + self.permits_impact_fees
            + self.legal_accounting
            + self.property_tax_construction
            + self.insurance_construction
            + self.marketing_leasing
            + self.construction_mgmt_fee
        )


@dataclass
class CostResult:
    """Results of the total cost calculation."""

    land_cost: float
    site_area_sf: float
    parking_spaces: int
    site_work_total: float
    building_cost: float  # (Core & shell + TI) x SF
    parking_cost: float
    landscaping_cost: float
    hard_cost: float  # Before contingency
    contingency: float
    hard_cost_with_contingency: float
    soft_costs: SoftCostBreakdown
    soft_cost_total: float
    total_before_developer_fee: float
    developer_fee: float
    total: float  # Land + hard w/ contingency + soft + developer fee
    cost_per_sf: float
    cost_per_unit: float
    warnings: List[str] = field(default_factory=list)


def _non_negative(name: str, value: float, warnings: List[str]) -> float:
    """Clamp a cost component at zero, recording a warning if it was negative."""
    if value < 0:
        message = f"{name} was negative ({value:,.0f}) and was clamped to 0"
        logger.warning(message)
        warnings.append(message)
        return 0.0
    return value


def calculate_site_work(assumptions: ProjectAssumptions, warnings: List[str]) -> float:
    """Resolve site work from the lump-sum or per-unit input.

    Per-unit entry is only meaningful for unit-based archetypes; for office
    and retail the lump sum is used instead and a warning is recorded.
    """
    hard = assumptions.hard_costs
    if hard.site_work_method != SiteWorkMethod.PER_UNIT:
        return hard.site_work

    if not assumptions.property_type.is_unit_based:
        warnings.append(
            f"Per-unit site work is not available for {assumptions.property_type.value}; "
            "using the total site work amount"
        )
        return hard.site_work

    units = assumptions.total_units
    if units <= 0:
        warnings.append("Per-unit site work selected but unit count is 0; site work set to 0")
        return 0.0
    return hard.site_work_per_unit * units


def calculate_costs(assumptions: ProjectAssumptions) -> CostResult:
    """Calculate total development cost.

    Total = Land + Hard Costs x (1 + Contingency) + Soft Costs + Developer Fee

    The developer fee is a percentage of land + hard (with contingency) + soft
    costs; it is never part of its own base.

    Args:
        assumptions: Project assumptions.

    Returns:
        CostResult with every cost component and the total.

    Example:
        >>> result = calculate_costs(ProjectAssumptions())
        >>> result.hard_cost_with_contingency
        14763630.0  # Approximate
    """
    warnings: List[str] = []
    hard = assumptions.hard_costs
    soft = assumptions.soft_costs

    land_cost = _non_negative("Land cost", assumptions.land_cost, warnings)
    site_area_sf = assumptions.site_area_sf
    parking_spaces = assumptions.parking_spaces

    # Hard costs
    site_work_total = _non_negative(
        "Site work", calculate_site_work(assumptions, warnings), warnings
    )
    building_cost = _non_negative(
        "Building cost",
        (hard.core_shell_psf + hard.tenant_improvements_psf) * assumptions.buildable_sf,
        warnings,
    )
    per_space = (
        hard.parking_structured_per_space
        if assumptions.parking.structure == ParkingStructure.STRUCTURED
        else hard.parking_surface_per_space
    )
    parking_cost = _non_negative("Parking cost", parking_spaces * per_space, warnings)
    landscaping_cost = _non_negative(
        "Landscaping", hard.landscaping_psf * site_area_sf, warnings
    )

    hard_cost = building_cost + site_work_total + parking_cost + landscaping_cost
    contingency = _non_negative("Contingency", hard_cost * hard.contingency, warnings)
    hard_cost_with_contingency = hard_cost + contingency

    # Soft costs
    soft_costs = SoftCostBreakdown(
        architecture_engineering=_non_negative(
            "A&E", hard_cost_with_contingency * soft.architecture_engineering, warnings
        ),
        permits_impact_fees=_non_negative(
            "Permits & impact fees", assumptions.building_gfa * soft.permits_impact_fees_psf, warnings
        ),
        legal_accounting=_non_negative("Legal & accounting", soft.legal_accounting, warnings),
        property_tax_construction=_non_negative(
            "Construction property tax", land_cost * soft.property_tax_construction, warnings
        ),
        insurance_construction=_non_negative(
            "Construction insurance", hard_cost_with_contingency * soft.insurance_construction, warnings
        ),
        marketing_leasing=_non_negative("Marketing & leasing", soft.marketing_leasing, warnings),
        construction_mgmt_fee=_non_negative(
            "Construction management fee", hard_cost_with_contingency * soft.construction_mgmt_fee, warnings
        ),
    )
    soft_cost_total = soft_costs.total

    # Developer fee on the subtotal before the fee itself
    total_before_developer_fee = land_cost + hard_cost_with_contingency + soft_cost_total
    developer_fee = _non_negative(
        "Developer fee", total_before_developer_fee * soft.developer_fee, warnings
    )
    total = land_cost + hard_cost_with_contingency + soft_cost_total + developer_fee

    buildable_sf = assumptions.buildable_sf
    if buildable_sf > 0:
        cost_per_sf = total / buildable_sf
    else:
        cost_per_sf = 0.0
        warnings.append("Building size is 0; cost per SF set to 0")

    units = assumptions.total_units
    if units > 0:
        cost_per_unit = total / units
    else:
        cost_per_unit = 0.0
        if assumptions.property_type.is_unit_based:
            warnings.append("Unit count is 0; cost per unit set to 0")

    logger.debug(
        "Total cost %.0f (hard %.0f, soft %.0f, developer fee %.0f)",
        total, hard_cost_with_contingency, soft_cost_total, developer_fee,
    )

    return CostResult(
        land_cost=land_cost,
        site_area_sf=site_area_sf,
        parking_spaces=parking_spaces,
        site_work_total=site_work_total,
        building_cost=building_cost,
        parking_cost=parking_cost,
        landscaping_cost=landscaping_cost,
        hard_cost=hard_cost,
        contingency=contingency,
        hard_cost_with_contingency=hard_cost_with_contingency,
        soft_costs=soft_costs,
        soft_cost_total=soft_cost_total,
        total_before_developer_fee=total_before_developer_fee,
        developer_fee=developer_fee,
        total=total,
        cost_per_sf=cost_per_sf,
        cost_per_unit=cost_per_unit,
        warnings=warnings,
    )
