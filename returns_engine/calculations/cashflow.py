"""Annual project cash flows for every property archetype.

Each archetype has its own generator with the same signature; the
generator is picked once from CASH_FLOW_GENERATORS. For-sale projects are
simulated monthly in for_sale.py and aggregated to the same annual rows.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional

import pandas as pd

from ..models.lookups import EscalationPattern, PropertyType
from ..models.project import ProjectAssumptions
from .costs import CostResult
from .debt import (
    FinancingResult,
    PermanentLoan,
    annual_debt_service,
    balance_at_exit,
    size_permanent_loan,
)
from .for_sale import ForSaleResult, simulate_sales

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CashFlowYear:
    """One year of project cash flow. Year 0 is the equity contribution."""

    year: int
    rent: float = 0.0  # Contract rent rate in effect
    rental_revenue: float = 0.0  # Effective (post-vacancy) rent revenue
    gross_revenue: float = 0.0  # Effective gross revenue incl. ancillary income
    operating_expenses: float = 0.0
    noi: float = 0.0
    debt_service: float = 0.0
    sponsor_fees: float = 0.0
    refinance_proceeds: float = 0.0
    sale_price: float = 0.0
    exit_costs: float = 0.0
    loan_payoff: float = 0.0
    disposition_fee: float = 0.0
    exit_proceeds: float = 0.0  # Sale - costs - payoff - disposition fee
    cash_flow: float = 0.0  # Net cash flow incl. one-time items
    cumulative_cash_flow: float = 0.0
    units_sold: int = 0  # For-sale only
    units_closed: int = 0  # For-sale only

    @property
    def operating_cash_flow(self) -> float:
        """Cash flow excluding exit proceeds."""
        return self.cash_flow - self.exit_proceeds


@dataclass
class CashFlowResult:
    """Annual cash flows plus the values derived while generating them."""

    property_type: PropertyType
    years: List[CashFlowYear]
    initial_equity: float
    hold_period: int
    year1_noi: float
    permanent_loan: Optional[PermanentLoan] = None
    for_sale: Optional[ForSaleResult] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def cash_flows(self) -> List[float]:
        """Net cash flow series, year 0 first."""
        return [y.cash_flow for y in self.years]

    @property
    def terminal(self) -> CashFlowYear:
        return self.years[-1]

    @property
    def total_distributions(self) -> float:
        """Sum of positive cash flows after the initial contribution."""
        return sum(y.cash_flow for y in self.years[1:] if y.cash_flow > 0)

    def to_frame(self) -> pd.DataFrame:
        """Annual cash flow table indexed by year."""
        rows = [
            {name: getattr(y, name) for name in CashFlowYear.__dataclass_fields__}
            for y in self.years
        ]
        return pd.DataFrame(rows).set_index("year")


CashFlowGenerator = Callable[[ProjectAssumptions, CostResult, FinancingResult], CashFlowResult]


def finite_or_zero(name: str, value: float, warnings: List[str]) -> float:
    """Replace NaN or infinity with 0, recording a warning."""
    if math.isfinite(value):
        return value
    message = f"{name} was not finite and was set to 0"
    logger.warning(message)
    warnings.append(message)
    return 0.0


def with_cumulative(years: List[CashFlowYear]) -> List[CashFlowYear]:
    """Recompute cumulative cash flow down the series."""
    running = 0.0
    result = []
    for y in years:
        running += y.cash_flow
        result.append(replace(y, cumulative_cash_flow=running))
    return result


def initial_year(equity_required: float) -> CashFlowYear:
    """Year 0 row: the equity contribution."""
    return CashFlowYear(year=0, cash_flow=-equity_required, cumulative_cash_flow=-equity_required)


@dataclass(frozen=True)
class IncomeProfile:
    """Archetype-specific revenue and expense drivers."""

    escalate: Callable[[float, int], float]  # (current rent, year) -> rent for year
    revenue_area: float  # Rent rate x area = gross potential rent
    opex_basis: float  # Opex rate x basis = operating expenses
    other_income_year1: float = 0.0
    percentage_rent: Callable[[float], float] = lambda rent: 0.0


def parking_revenue_year1(assumptions: ProjectAssumptions) -> float:
    """Annual parking income: reserved spaces fully paid, the rest at occupancy."""
    spaces = assumptions.parking_spaces
    if spaces <= 0:
        return 0.0
    parking = assumptions.parking
    monthly = (
        spaces * parking.reserved * parking.monthly_rate
        + spaces * (1 - parking.reserved) * parking.monthly_rate * parking.occupancy
    )
    return monthly * 12


def _office_profile(assumptions: ProjectAssumptions) -> IncomeProfile:
    esc = assumptions.escalations

    def escalate(rent: float, year: int) -> float:
        if year <= 1:
            return rent
        if esc.office_pattern == EscalationPattern.STEPPED:
            if esc.office_step_years > 0 and (year - 1) % esc.office_step_years == 0:
                return rent * (1 + esc.office_step_increase)
            return rent
        return rent * (1 + esc.office_annual_increase)

    return IncomeProfile(
        escalate=escalate,
        revenue_area=assumptions.building_gfa,
        opex_basis=assumptions.building_gfa,
    )


def _retail_profile(assumptions: ProjectAssumptions) -> IncomeProfile:
    esc = assumptions.escalations
    gfa = assumptions.building_gfa

    def escalate(rent: float, year: int) -> float:
        return rent * (1 + esc.retail_annual_increase) if year > 1 else rent

    def percentage_rent(rent: float) -> float:
        # Overage rent on tenant sales above the natural breakpoint
        if not esc.retail_percentage_rent or esc.retail_percentage_threshold <= 0:
            return 0.0
        total_sales = esc.retail_sales_psf * gfa
        breakpoint = rent * gfa / esc.retail_percentage_threshold
        if total_sales <= breakpoint:
            return 0.0
        return (total_sales - breakpoint) * esc.retail_percentage_threshold

    return IncomeProfile(
        escalate=escalate,
        revenue_area=gfa,
        opex_basis=gfa,
        percentage_rent=percentage_rent,
    )


def _apartment_profile(assumptions: ProjectAssumptions) -> IncomeProfile:
    esc = assumptions.escalations
    units = assumptions.total_units

    def escalate(rent: float, year: int) -> float:
        if year <= 1:
            return rent
        # Renewals at full increase, turnover re-leased below market
        renewal_rent = rent * (1 + esc.apartment_annual_increase)
        new_lease_rent = renewal_rent * (1 - esc.apartment_loss_to_lease)
        turnover = esc.apartment_turnover
        return renewal_rent * (1 - turnover) + new_lease_rent * turnover

    return IncomeProfile(
        escalate=escalate,
        revenue_area=assumptions.building_gfa * 12,  # Rent is monthly per SF
        opex_basis=units,
        other_income_year1=esc.apartment_other_income * units * 12,
    )


def _income_cash_flows(
    assumptions: ProjectAssumptions,
    costs: CostResult,
    financing: FinancingResult,
    profile: IncomeProfile,
) -> CashFlowResult:
    """Shared annual model for office, retail and apartment."""
    warnings: List[str] = []
    ops = assumptions.operating
    hold = ops.hold_period

    parking_year1 = parking_revenue_year1(assumptions)

    # Operating rows (revenue and expenses do not depend on debt)
    operating = []
    rent = ops.rent_psf
    opex_rate = ops.opex
    for year in range(1, hold + 1):
        rent = profile.escalate(rent, year)
        rental_revenue = rent * (1 - ops.vacancy) * profile.revenue_area
        growth = (1 + ops.rent_growth) ** (year - 1)
        gross_revenue = (
            rental_revenue
            + profile.percentage_rent(rent)
            + parking_year1 * growth
            + profile.other_income_year1 * growth
        )
        operating_expenses = opex_rate * profile.opex_basis
        operating.append((year, rent, rental_revenue, gross_revenue, operating_expenses))
        opex_rate *= 1 + ops.expense_growth

    year1_noi = operating[0][3] - operating[0][4]
    loan = size_permanent_loan(year1_noi, ops.cap_rate, assumptions.permanent_loan, warnings)

    refinance = loan.loan_amount - financing.construction_loan_amount - financing.construction_interest
    if refinance < 0:
        warnings.append(
            f"Permanent loan falls {-refinance:,.0f} short of construction loan payoff"
        )

    years = [initial_year(financing.equity_required)]
    for year, rent, rental_revenue, gross_revenue, operating_expenses in operating:
        noi = gross_revenue - operating_expenses
        debt_service = annual_debt_service(loan, year)
        refinance_proceeds = refinance if year == 1 and refinance > 0 else 0.0
        cash_flow = finite_or_zero(
            f"Year {year} cash flow", noi - debt_service + refinance_proceeds, warnings
        )
        years.append(
            CashFlowYear(
                year=year,
                rent=rent,
                rental_revenue=rental_revenue,
                gross_revenue=gross_revenue,
                operating_expenses=operating_expenses,
                noi=noi,
                debt_service=debt_service,
                refinance_proceeds=refinance_proceeds,
                cash_flow=cash_flow,
            )
        )

    # Terminal-year sale
    terminal = years[-1]
    if ops.cap_rate > 0:
        sale_price = terminal.noi / ops.cap_rate
    else:
        sale_price = 0.0
        message = "Exit cap rate is 0; exit value set to 0"
        logger.warning(message)
        warnings.append(message)
    sale_price = finite_or_zero("Exit value", sale_price, warnings)
    exit_costs = sale_price * ops.exit_costs
    loan_payoff = balance_at_exit(loan, hold)
    exit_proceeds = sale_price - exit_costs - loan_payoff
    years[-1] = replace(
        terminal,
        sale_price=sale_price,
        exit_costs=exit_costs,
        loan_payoff=loan_payoff,
        exit_proceeds=exit_proceeds,
        cash_flow=terminal.cash_flow + exit_proceeds,
    )

    return CashFlowResult(
        property_type=assumptions.property_type,
        years=with_cumulative(years),
        initial_equity=financing.equity_required,
        hold_period=hold,
        year1_noi=year1_noi,
        permanent_loan=loan,
        warnings=warnings,
    )


def generate_office_cash_flows(
    assumptions: ProjectAssumptions, costs: CostResult, financing: FinancingResult
) -> CashFlowResult:
    """Office: stepped (or annual) contract rent escalation."""
    return _income_cash_flows(assumptions, costs, financing, _office_profile(assumptions))


def generate_retail_cash_flows(
    assumptions: ProjectAssumptions, costs: CostResult, financing: FinancingResult
) -> CashFlowResult:
    """Retail: annual escalation plus percentage rent over breakpoint."""
    return _income_cash_flows(assumptions, costs, financing, _retail_profile(assumptions))


def generate_apartment_cash_flows(
    assumptions: ProjectAssumptions, costs: CostResult, financing: FinancingResult
) -> CashFlowResult:
    """Apartment: blended renewal / new-lease rent growth, per-unit opex and other income."""
    return _income_cash_flows(assumptions, costs, financing, _apartment_profile(assumptions))


def generate_for_sale_cash_flows(
    assumptions: ProjectAssumptions, costs: CostResult, financing: FinancingResult
) -> CashFlowResult:
    """For-sale: monthly sales simulation aggregated to years."""
    sales = simulate_sales(assumptions, financing)
    warnings = list(sales.warnings)

    years = [initial_year(financing.equity_required)]
    for year, row in sales.annual.iterrows():
        years.append(
            CashFlowYear(
                year=int(year),
                gross_revenue=float(row["revenue"]),
                operating_expenses=float(row["sales_costs"]),
                noi=float(row["net_revenue"]),
                debt_service=float(row["construction_interest"] + row["loan_repayment"]),
                cash_flow=finite_or_zero(f"Year {year} cash flow", float(row["cash_flow"]), warnings),
                units_sold=int(row["units_sold"]),
                units_closed=int(row["units_closed"]),
            )
        )

    return CashFlowResult(
        property_type=assumptions.property_type,
        years=with_cumulative(years),
        initial_equity=financing.equity_required,
        hold_period=len(years) - 1,
        year1_noi=0.0,
        warnings=warnings,
        for_sale=sales,
    )


CASH_FLOW_GENERATORS: Dict[PropertyType, CashFlowGenerator] = {
    PropertyType.OFFICE: generate_office_cash_flows,
    PropertyType.RETAIL: generate_retail_cash_flows,
    PropertyType.APARTMENT: generate_apartment_cash_flows,
    PropertyType.FOR_SALE: generate_for_sale_cash_flows,
}


def generate_cash_flows(
    assumptions: ProjectAssumptions,
    costs: CostResult,
    financing: FinancingResult,
) -> CashFlowResult:
    """Generate gross project cash flows (before sponsor fees).

    Args:
        assumptions: Project assumptions.
        costs: Result of calculate_costs().
        financing: Result of calculate_financing().

    Returns:
        CashFlowResult with year 0 = -equity required.

    Raises:
        ValueError: If the property type has no generator.
    """
    generator = CASH_FLOW_GENERATORS.get(assumptions.property_type)
    if generator is None:
        raise ValueError(f"Unknown property type: {assumptions.property_type!r}")
    result = generator(assumptions, costs, financing)
    logger.debug(
        "%s cash flows: %d years, equity %.0f",
        assumptions.property_type.value, len(result.years) - 1, result.initial_equity,
    )
    return result
