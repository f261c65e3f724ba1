"""Monthly sales simulation for for-sale (condominium / townhome) projects."""

import logging
import math
from dataclasses import asdict, dataclass, field
from typing import List

import pandas as pd

from ..models.lookups import FOR_SALE_HORIZON_MONTHS
from ..models.project import ProjectAssumptions
from .debt import FinancingResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SalesMonth:
    """One simulated month of sales activity."""

    month: int
    year: int
    units_sold: int  # New contracts
    units_closed: int
    deposit_revenue: float
    closing_revenue: float
    revenue: float
    sales_costs: float
    net_revenue: float
    construction_interest: float
    loan_repayment: float
    cash_flow: float


@dataclass
class ForSaleResult:
    """Monthly simulation and its annual roll-up."""

    months: List[SalesMonth]
    annual: pd.DataFrame  # Indexed by year
    sellout_months: int  # Months of absorption at the sales pace
    final_closing_month: int  # Last month with a closing (0 if none)
    units_unclosed: int  # Units still unclosed at the horizon
    warnings: List[str] = field(default_factory=list)


def calculate_sellout_months(total_units: int, sales_pace: int) -> int:
    """Months needed to absorb all units at the monthly sales pace.

    Returns 0 when the pace is not positive.
    """
    if sales_pace <= 0:
        return 0
    return math.ceil(total_units / sales_pace)


def unit_price(avg_price: float, escalation: float, month: int) -> float:
    """Unit price escalated monthly from month 1."""
    return avg_price * (1 + escalation) ** ((month - 1) / 12)


def simulate_sales(
    assumptions: ProjectAssumptions,
    financing: FinancingResult,
    horizon_months: int = FOR_SALE_HORIZON_MONTHS,
) -> ForSaleResult:
    """Simulate phased unit sales month by month.

    Each phase sells at the sales pace from its start month until delivery,
    collecting the pre-closing deposit share on contracted units. From
    delivery, units close at the sales pace: contracted units pay the closing
    share, unsold units pay the full price. Sales costs are netted from
    revenue. Construction loan interest is paid while month <= construction
    months, and net closing revenue sweeps to repay the construction loan.

    Args:
        assumptions: Project assumptions (sales, timeline, construction loan).
        financing: Construction financing.
        horizon_months: Simulation length.

    Returns:
        ForSaleResult with monthly detail and annual totals.
    """
    warnings: List[str] = []
    sales = assumptions.sales
    pace = sales.sales_pace
    monthly_rate = assumptions.construction_loan.rate / 12
    construction_months = assumptions.timeline.construction_months

    phase_units = sum(p.units for p in sales.phases)
    if phase_units != sales.total_units:
        warnings.append(
            f"Sales phases release {phase_units} units but total units is {sales.total_units}"
        )

    contracted = [0] * len(sales.phases)  # Sold, awaiting closing
    unsold = [p.units for p in sales.phases]
    loan_balance = financing.construction_loan_amount
    final_closing_month = 0
    months: List[SalesMonth] = []

    for month in range(1, horizon_months + 1):
        price = unit_price(sales.avg_price, sales.price_escalation, month)
        units_sold = 0
        units_closed = 0
        deposit_revenue = 0.0
        closing_revenue = 0.0

        for i, phase in enumerate(sales.phases):
            if phase.start_month <= month < phase.delivery_month:
                sold = min(pace, unsold[i])
                unsold[i] -= sold
                contracted[i] += sold
                units_sold += sold
                deposit_revenue += sold * price * sales.deposit_share
            elif month >= phase.delivery_month:
                # Contracted units close first, then remaining inventory
                closing_contracted = min(pace, contracted[i])
                contracted[i] -= closing_contracted
                closing_unsold = min(pace - closing_contracted, unsold[i])
                unsold[i] -= closing_unsold
                units_sold += closing_unsold
                units_closed += closing_contracted + closing_unsold
                closing_revenue += closing_contracted * price * sales.closing_share
                closing_revenue += closing_unsold * price

        if units_closed:
            final_closing_month = month

        revenue = deposit_revenue + closing_revenue
        sales_costs = revenue * sales.sales_cost_rate
        net_revenue = revenue - sales_costs

        construction_interest = loan_balance * monthly_rate if month <= construction_months else 0.0
        net_closing = closing_revenue * (1 - sales.sales_cost_rate)
        loan_repayment = min(loan_balance, max(0.0, net_closing))
        loan_balance -= loan_repayment

        months.append(
            SalesMonth(
                month=month,
                year=math.ceil(month / 12),
                units_sold=units_sold,
                units_closed=units_closed,
                deposit_revenue=deposit_revenue,
                closing_revenue=closing_revenue,
                revenue=revenue,
                sales_costs=sales_costs,
                net_revenue=net_revenue,
                construction_interest=construction_interest,
                loan_repayment=loan_repayment,
                cash_flow=net_revenue - construction_interest - loan_repayment,
            )
        )

    units_unclosed = sum(contracted) + sum(unsold)
    if units_unclosed:
        warnings.append(f"{units_unclosed} units remain unclosed after {horizon_months} months")
    if loan_balance > 0:
        warnings.append(f"Construction loan balance of {loan_balance:,.0f} is not repaid by sales")

    annual = (
        pd.DataFrame([asdict(m) for m in months])
        .drop(columns=["month"])
        .groupby("year")
        .sum()
    )

    sellout = calculate_sellout_months(sales.total_units, pace)
    logger.debug("For-sale sellout in %d months, last closing month %d", sellout, final_closing_month)

    return ForSaleResult(
        months=months,
        annual=annual,
        sellout_months=sellout,
        final_closing_month=final_closing_month,
        units_unclosed=units_unclosed,
        warnings=warnings,
    )
