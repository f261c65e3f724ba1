"""Business-rule validation of a computed deal.

Issues are reported, never raised: a deal with errors still produces a
best-effort result.
"""

from dataclasses import dataclass
from typing import List

from ..models.compensation import CompensationMode, SponsorFee, Waterfall
from ..models.lookups import PropertyType, Severity
from ..models.project import ProjectAssumptions
from .costs import CostResult
from .metrics import ReturnsSummary
from .cashflow import CashFlowResult
from .waterfall import validate_waterfall_structure

# Thresholds
LTC_WARNING = 0.75
LTC_ERROR = 0.85
LTV_WARNING = 0.80
CAP_RATE_WARNING = 0.04
CAP_RATE_MIN = 0.03
CAP_RATE_MAX = 0.12
CONSTRUCTION_RATE_WARNING = 0.12
PERMANENT_RATE_WARNING = 0.10
COST_PSF_MIN = 100
COST_PSF_MAX = 1_000
DEBT_YIELD_WARNING = 0.08
DEBT_YIELD_ERROR = 0.06
SPREAD_WARNING_BPS = 100
SPREAD_ERROR_BPS = 50
APARTMENT_RENT_PSF_WARNING = 10.0  # Monthly; above this the input looks annual


@dataclass(frozen=True)
class ValidationIssue:
    """A single validation finding."""

    field: str
    message: str
    severity: Severity

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR


def validate_deal(
    assumptions: ProjectAssumptions,
    costs: CostResult,
    cash_flows: CashFlowResult,
    returns: ReturnsSummary,
    mode: CompensationMode,
) -> List[ValidationIssue]:
    """Check a computed deal against underwriting norms.

    Args:
        assumptions: Project assumptions.
        costs: Cost result.
        cash_flows: Gross cash flows.
        returns: Returns summary.
        mode: Compensation mode (its equity structure is checked).

    Returns:
        List of ValidationIssue, warnings and errors together.
    """
    issues: List[ValidationIssue] = []

    def warn(field: str, message: str) -> None:
        issues.append(ValidationIssue(field, message, Severity.WARNING))

    def error(field: str, message: str) -> None:
        issues.append(ValidationIssue(field, message, Severity.ERROR))

    property_type = assumptions.property_type

    # Leverage
    ltc = assumptions.construction_loan.ltc
    if ltc > LTC_ERROR:
        error("construction_loan.ltc", f"LTC of {ltc:.0%} exceeds the {LTC_ERROR:.0%} maximum")
    elif ltc > LTC_WARNING:
        warn("construction_loan.ltc", f"LTC of {ltc:.0%} is above the typical {LTC_WARNING:.0%}")

    ltv = assumptions.permanent_loan.ltv
    if property_type != PropertyType.APARTMENT and ltv > LTV_WARNING:
        warn("permanent_loan.ltv", f"LTV of {ltv:.0%} is above the typical {LTV_WARNING:.0%}")

    # Cap rate
    cap_rate = assumptions.operating.cap_rate
    if cap_rate < CAP_RATE_MIN or cap_rate > CAP_RATE_MAX:
        error(
            "operating.cap_rate",
            f"Cap rate of {cap_rate:.2%} is outside {CAP_RATE_MIN:.0%}-{CAP_RATE_MAX:.0%}",
        )
    elif cap_rate < CAP_RATE_WARNING:
        warn("operating.cap_rate", f"Cap rate of {cap_rate:.2%} is unusually low")

    # Interest rates
    construction_rate = assumptions.construction_loan.rate
    if construction_rate > CONSTRUCTION_RATE_WARNING:
        warn("construction_loan.rate", f"Construction rate of {construction_rate:.2%} is high")
    permanent_rate = assumptions.permanent_loan.rate
    if permanent_rate > PERMANENT_RATE_WARNING:
        warn("permanent_loan.rate", f"Permanent rate of {permanent_rate:.2%} is high")

    # Cost per SF
    if costs.cost_per_sf > 0 and not COST_PSF_MIN <= costs.cost_per_sf <= COST_PSF_MAX:
        warn(
            "costs.cost_per_sf",
            f"Cost of {costs.cost_per_sf:,.0f}/SF is outside {COST_PSF_MIN}-{COST_PSF_MAX:,}/SF",
        )

    # Debt yield
    loan = cash_flows.permanent_loan
    if loan is not None and loan.loan_amount > 0:
        if loan.debt_yield < DEBT_YIELD_ERROR:
            error("permanent_loan.debt_yield", f"Debt yield of {loan.debt_yield:.2%} is below {DEBT_YIELD_ERROR:.0%}")
        elif loan.debt_yield < DEBT_YIELD_WARNING:
            warn("permanent_loan.debt_yield", f"Debt yield of {loan.debt_yield:.2%} is below {DEBT_YIELD_WARNING:.0%}")

    # Loan maturity
    term_years = assumptions.permanent_loan.term_years
    hold_period = assumptions.operating.hold_period
    if property_type != PropertyType.FOR_SALE and hold_period > term_years:
        warn(
            "permanent_loan.term_years",
            f"Permanent loan matures in year {term_years}, before the year {hold_period} exit",
        )

    # Development spread (no stabilized NOI for for-sale)
    if property_type != PropertyType.FOR_SALE:
        spread = returns.development_spread_bps
        if spread < 0:
            warn("returns.development_spread", f"Negative development spread of {spread} bps")
        elif spread < SPREAD_ERROR_BPS:
            error("returns.development_spread", f"Development spread of {spread} bps is below {SPREAD_ERROR_BPS} bps")
        elif spread < SPREAD_WARNING_BPS:
            warn("returns.development_spread", f"Development spread of {spread} bps is below {SPREAD_WARNING_BPS} bps")

    # Returns
    if returns.project_irr.is_valid and returns.project_irr.irr < 0:
        warn("returns.project_irr", f"Project IRR is negative ({returns.project_irr.irr:.2%})")

    # Space
    gfa = assumptions.building_gfa
    if property_type == PropertyType.APARTMENT:
        rent_psf = assumptions.operating.rent_psf
        if rent_psf > APARTMENT_RENT_PSF_WARNING:
            warn(
                "operating.rent_psf",
                f"Apartment rent of {rent_psf:,.2f}/SF looks annual; apartment rent is monthly per SF",
            )
        unit_sf = sum(u.units * u.size_sf for u in assumptions.unit_mix)
        if unit_sf > gfa:
            error("unit_mix", f"Unit mix totals {unit_sf:,.0f} SF, more than the {gfa:,.0f} SF building")
    elif property_type in (PropertyType.OFFICE, PropertyType.RETAIL):
        leased_sf = sum(t.sf for t in assumptions.tenants)
        if leased_sf > gfa:
            error("tenants", f"Leased area of {leased_sf:,.0f} SF exceeds the {gfa:,.0f} SF building")
    elif property_type == PropertyType.FOR_SALE:
        phase_units = sum(p.units for p in assumptions.sales.phases)
        if phase_units != assumptions.sales.total_units:
            warn(
                "sales.phases",
                f"Sales phases release {phase_units} units but total units is {assumptions.sales.total_units}",
            )

    # Equity structure and tiers
    if isinstance(mode, Waterfall):
        equity = mode.equity
    elif isinstance(mode, SponsorFee):
        equity = mode.promote_equity
    else:
        equity = None
    if equity is not None:
        for message in validate_waterfall_structure(equity):
            error("equity", message)

    return issues
