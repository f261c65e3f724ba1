"""Returns metrics and summary table."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..models.lookups import PropertyType
from ..models.project import ProjectAssumptions
from .cashflow import CashFlowResult
from .costs import CostResult
from .debt import FinancingResult
from .irr import IRRResult, calculate_irr, calculate_npv
from .waterfall import DistributionResult

logger = logging.getLogger(__name__)

DEFAULT_DISCOUNT_RATE = 0.10


@dataclass
class ReturnsSummary:
    """Project and partner returns."""

    # Project returns
    project_irr: IRRResult
    npv: float
    discount_rate: float
    equity_multiple: float  # Positive distributions / initial equity
    total_distributions: float
    initial_equity: float

    # Yield
    cash_on_cash: List[float]  # Years 1..N, excluding exit proceeds
    average_cash_on_cash: float
    payback_period: int  # First year cumulative operating cash >= equity
    payback_reached: bool
    yield_on_cost: float  # Year-1 NOI / total cost
    yield_on_cost_by_year: List[float]
    development_spread_bps: int  # Yield on cost - exit cap

    # Valuation and profit
    stabilized_value: float
    development_profit: float
    profit_margin: float
    return_on_investment: float
    peak_equity: float
    break_even_occupancy: float
    debt_yield: float

    # Partner returns
    lp_irr: float = 0.0
    gp_irr: float = 0.0
    lp_multiple: float = 0.0
    gp_multiple: float = 0.0

    warnings: List[str] = field(default_factory=list)

    @property
    def irr(self) -> float:
        """Project IRR as a number (0.0 when undefined)."""
        return self.project_irr.value


def calculate_payback_period(operating_cash_flows: List[float], initial_equity: float) -> Tuple[int, bool]:
    """First year cumulative operating cash flow reaches initial equity.

    Args:
        operating_cash_flows: Years 1..N, excluding exit proceeds.
        initial_equity: Equity to recover.

    Returns:
        (year, reached). When never reached, year is the hold period.
    """
    if initial_equity <= 0:
        return 0, True
    cumulative = 0.0
    for year, cash in enumerate(operating_cash_flows, start=1):
        cumulative += cash
        if cumulative >= initial_equity:
            return year, True
    return len(operating_cash_flows), False


def calculate_returns(
    cash_flows: CashFlowResult,
    costs: CostResult,
    financing: FinancingResult,
    assumptions: ProjectAssumptions,
    distribution: Optional[DistributionResult] = None,
    discount_rate: float = DEFAULT_DISCOUNT_RATE,
) -> ReturnsSummary:
    """Calculate project and partner returns from the cash flow series.

    Args:
        cash_flows: Cash flows (net of fees in sponsor fee mode).
        costs: Cost result (yield on cost basis).
        financing: Financing result (total project cost).
        assumptions: Project assumptions (cap rate, vacancy).
        distribution: LP/GP allocation for partner returns.
        discount_rate: NPV discount rate.

    Returns:
        ReturnsSummary.
    """
    warnings: List[str] = []
    flows = cash_flows.cash_flows
    equity = cash_flows.initial_equity
    operating_years = cash_flows.years[1:]
    cap_rate = assumptions.operating.cap_rate
    is_for_sale = cash_flows.property_type == PropertyType.FOR_SALE

    project_irr = calculate_irr(flows)
    if not project_irr.is_valid:
        warnings.append(f"Project IRR unavailable: {project_irr.message}")
    npv = calculate_npv(discount_rate, flows)

    total_distributions = cash_flows.total_distributions
    equity_multiple = total_distributions / equity if equity > 0 else 0.0

    operating = [y.operating_cash_flow for y in operating_years]
    cash_on_cash = [cash / equity if equity > 0 else 0.0 for cash in operating]
    average_cash_on_cash = sum(cash_on_cash) / len(cash_on_cash) if cash_on_cash else 0.0
    payback_period, payback_reached = calculate_payback_period(operating, equity)

    if is_for_sale:
        # No stabilized NOI: value is what the units sell for
        yield_on_cost = 0.0
        yield_on_cost_by_year = [0.0] * len(operating_years)
        development_spread_bps = 0
        stabilized_value = sum(y.gross_revenue for y in operating_years)
    else:
        yield_on_cost = cash_flows.year1_noi / costs.total if costs.total > 0 else 0.0
        yield_on_cost_by_year = [
            y.noi / costs.total if costs.total > 0 else 0.0 for y in operating_years
        ]
        development_spread_bps = int(round((yield_on_cost - cap_rate) * 10_000))
        stabilized_value = cash_flows.year1_noi / cap_rate if cap_rate > 0 else 0.0

    development_profit = stabilized_value - financing.total_project_cost
    profit_margin = development_profit / stabilized_value if stabilized_value > 0 else 0.0
    return_on_investment = (total_distributions - equity) / equity if equity > 0 else 0.0
    peak_equity = max(0.0, -min(y.cumulative_cash_flow for y in cash_flows.years))

    break_even_occupancy = 0.0
    if operating_years and not is_for_sale:
        first = operating_years[0]
        occupancy = 1 - assumptions.operating.vacancy
        potential_revenue = first.gross_revenue / occupancy if occupancy > 0 else 0.0
        if potential_revenue > 0:
            break_even_occupancy = (first.operating_expenses + first.debt_service) / potential_revenue

    loan = cash_flows.permanent_loan
    debt_yield = loan.debt_yield if loan is not None else 0.0

    summary = ReturnsSummary(
        project_irr=project_irr,
        npv=npv,
        discount_rate=discount_rate,
        equity_multiple=equity_multiple,
        total_distributions=total_distributions,
        initial_equity=equity,
        cash_on_cash=cash_on_cash,
        average_cash_on_cash=average_cash_on_cash,
        payback_period=payback_period,
        payback_reached=payback_reached,
        yield_on_cost=yield_on_cost,
        yield_on_cost_by_year=yield_on_cost_by_year,
        development_spread_bps=development_spread_bps,
        stabilized_value=stabilized_value,
        development_profit=development_profit,
        profit_margin=profit_margin,
        return_on_investment=return_on_investment,
        peak_equity=peak_equity,
        break_even_occupancy=break_even_occupancy,
        debt_yield=debt_yield,
        warnings=warnings,
    )
    if distribution is not None:
        summary.lp_irr = distribution.lp_irr
        summary.gp_irr = distribution.gp_irr
        summary.lp_multiple = distribution.lp_multiple
        summary.gp_multiple = distribution.gp_multiple

    logger.debug("Project IRR %.4f, multiple %.2fx", summary.irr, equity_multiple)
    return summary


def format_returns_table(summary: ReturnsSummary) -> str:
    """Format the returns summary as a text table.

    Args:
        summary: Returns summary.

    Returns:
        Formatted string table.
    """
    irr = f"{summary.irr:>14.2%}" if summary.project_irr.is_valid else f"{'n/a':>14}"
    payback = f"{summary.payback_period} yrs" + ("" if summary.payback_reached else " (not reached)")

    lines = [
        "=" * 60,
        "RETURNS SUMMARY",
        "=" * 60,
        "",
        f"{'Project IRR':<30} {irr}",
        f"{'NPV @ ' + format(summary.discount_rate, '.1%'):<30} ${summary.npv:>13,.0f}",
        f"{'Equity Multiple':<30} {summary.equity_multiple:>14.2f}x",
        f"{'Initial Equity':<30} ${summary.initial_equity:>13,.0f}",
        f"{'Total Distributions':<30} ${summary.total_distributions:>13,.0f}",
        "",
        f"{'Avg Cash-on-Cash':<30} {summary.average_cash_on_cash:>14.2%}",
        f"{'Payback':<30} {payback:>14}",
        f"{'Yield on Cost':<30} {summary.yield_on_cost:>14.2%}",
        f"{'Development Spread':<30} {summary.development_spread_bps:>+10d} bps",
        "",
        f"{'Stabilized Value':<30} ${summary.stabilized_value:>13,.0f}",
        f"{'Development Profit':<30} ${summary.development_profit:>13,.0f}",
        f"{'Peak Equity':<30} ${summary.peak_equity:>13,.0f}",
        "",
        "-" * 60,
        f"{'LP IRR':<30} {summary.lp_irr:>14.2%}",
        f"{'GP IRR':<30} {summary.gp_irr:>14.2%}",
        f"{'LP Multiple':<30} {summary.lp_multiple:>14.2f}x",
        f"{'GP Multiple':<30} {summary.gp_multiple:>14.2f}x",
        "=" * 60,
    ]

    return "\n".join(lines)
