"""Reference inputs shared across the test suite."""

from dataclasses import replace

from returns_engine.models.compensation import EquityStructure, WaterfallTier
from returns_engine.models.lookups import PropertyType
from returns_engine.models.project import ProjectAssumptions


def get_office_inputs() -> ProjectAssumptions:
    """Reference office development (all defaults).

    These inputs should produce:
    - Hard cost with contingency: $14,763,630
    - Total cost: ~$23.22M
    - Construction loan: ~$15.09M
    - Equity required: ~$9.82M

    Returns:
        ProjectAssumptions for the reference office deal.
    """
    return ProjectAssumptions()


def get_retail_inputs() -> ProjectAssumptions:
    """Reference retail center with percentage rent in play."""
    base = ProjectAssumptions(property_type=PropertyType.RETAIL)
    return replace(
        base,
        escalations=replace(base.escalations, retail_sales_psf=1_000.0),
    )


def get_apartment_inputs() -> ProjectAssumptions:
    """Reference apartment building.

    Rent is monthly per SF and opex is annual per unit for apartments. The
    default unit mix totals 56,500 SF, so the building is sized at 65,000 SF.
    """
    base = ProjectAssumptions(property_type=PropertyType.APARTMENT, building_gfa=65_000)
    return replace(
        base,
        operating=replace(base.operating, rent_psf=2.50, opex=5_000.0),
    )


def get_for_sale_inputs() -> ProjectAssumptions:
    """Reference for-sale project: 100 units at $750,000, 5 sales per month."""
    return ProjectAssumptions(property_type=PropertyType.FOR_SALE)


def get_single_tier_equity() -> EquityStructure:
    """90/10 partnership with one 90/10 tier covering every IRR and no catch-up."""
    return EquityStructure(
        lp_share=0.90,
        gp_share=0.10,
        preferred_return=0.08,
        gp_coinvest=0.10,
        catch_up=False,
        tiers=(WaterfallTier(min_irr=0.0, max_irr=1.0, lp_share=0.90, gp_share=0.10),),
    )
