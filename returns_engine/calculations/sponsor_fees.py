"""Sponsor fee compensation: one-time, ongoing, and disposition fees.

Fees are earned on their bases (total cost, hard cost, effective gross
revenue, sale price) and collected according to the timing rules in
FeeTiming. Year 0 is never charged: fees earned at closing are collected
from year-1 cash flow onward, so the equity contribution is the same as
under the waterfall.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Dict, List

from ..models.compensation import SponsorFeeStructure
from ..models.lookups import DevelopmentFeePayout, DispositionFeeStructure, FeeStructureType
from ..models.project import ProjectAssumptions
from .cashflow import CashFlowResult, with_cumulative
from .costs import CostResult
from .irr import calculate_irr

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OneTimeFees:
    """Fees earned at closing."""

    acquisition: float
    development: float
    construction_management: float

    @property
    def total(self) -> float:
        return self.acquisition + self.development + self.construction_management


@dataclass(frozen=True)
class FeeScheduleYear:
    """Fee accounting for one year."""

    year: int
    earned: float
    collected: float
    deferred: float  # Earned this year but not collected
    forfeited: float  # Lost to fee caps
    balance: float  # Earned, uncollected fees carried forward
    one_time: float = 0.0  # Collected one-time fees
    ongoing: float = 0.0  # Collected asset / property management fees
    disposition: float = 0.0


@dataclass
class FeeSchedule:
    """Complete sponsor fee schedule."""

    one_time_fees: OneTimeFees
    years: List[FeeScheduleYear]
    disposition_fee: float
    warnings: List[str] = field(default_factory=list)

    @property
    def total_collected(self) -> float:
        return sum(y.collected for y in self.years)

    @property
    def total_forfeited(self) -> float:
        return sum(y.forfeited for y in self.years)

    @property
    def one_time_collected(self) -> float:
        return sum(y.one_time for y in self.years)

    @property
    def ongoing_collected(self) -> float:
        return sum(y.ongoing for y in self.years)

    def collected_in(self, year: int) -> FeeScheduleYear | None:
        for y in self.years:
            if y.year == year:
                return y
        return None


def calculate_one_time_fees(costs: CostResult, fees: SponsorFeeStructure) -> OneTimeFees:
    """Acquisition and development fees on total cost, CM fee on hard cost."""
    return OneTimeFees(
        acquisition=costs.total * fees.acquisition_fee,
        development=costs.total * fees.development_fee,
        construction_management=costs.hard_cost_with_contingency * fees.construction_management_fee,
    )


def _one_time_collections(
    one_time: OneTimeFees,
    fees: SponsorFeeStructure,
    assumptions: ProjectAssumptions,
    final_year: int,
) -> Dict[int, float]:
    """Map of collection year -> one-time fee amount."""
    timing = fees.timing
    plan: Dict[int, float] = {}

    def add(year: int, amount: float) -> None:
        year = min(max(1, year), final_year)
        plan[year] = plan.get(year, 0.0) + amount

    if timing.defer_acquisition_fee:
        add(math.ceil(timing.acquisition_fee_deferral_months / 12), one_time.acquisition)
    else:
        add(1, one_time.acquisition)

    payout = timing.development_fee_payout
    if payout == DevelopmentFeePayout.MILESTONE:
        installments = max(1, timing.milestone_installments)
        for i in range(1, installments + 1):
            add(i, one_time.development / installments)
    elif payout == DevelopmentFeePayout.COMPLETION:
        add(math.ceil(assumptions.timeline.lease_up_months / 12) + 1, one_time.development)
    else:
        add(1, one_time.development)

    add(1, one_time.construction_management)
    return plan


def calculate_disposition_fee(
    gross: CashFlowResult,
    fees: SponsorFeeStructure,
    net_before_disposition: List[float],
) -> float:
    """Disposition fee on gross sale price under the chosen structure.

    HURDLE pays the reduced rate when project IRR (before the fee) is below
    the hurdle. WATERFALL pays only out of distributions in excess of equity.
    """
    sale_price = gross.terminal.sale_price
    if sale_price <= 0:
        return 0.0

    full_fee = sale_price * fees.disposition_fee
    structure = fees.disposition_structure

    if structure == DispositionFeeStructure.HURDLE:
        irr = calculate_irr(net_before_disposition)
        if irr.value < fees.disposition_hurdle_return:
            return sale_price * fees.disposition_reduced_fee
        return full_fee

    if structure == DispositionFeeStructure.WATERFALL:
        distributions = sum(cf for cf in net_before_disposition[1:] if cf > 0)
        profit = max(0.0, distributions - gross.initial_equity)
        return min(full_fee, profit)

    return full_fee


def build_fee_schedule(
    gross: CashFlowResult,
    costs: CostResult,
    fees: SponsorFeeStructure,
    assumptions: ProjectAssumptions,
) -> FeeSchedule:
    """Build the year-by-year sponsor fee schedule.

    Ongoing fees are a share of effective gross revenue. Under the
    performance structure they are cut to reduced_fee_percent in years
    where cash-on-cash ((NOI - debt service) / equity) is below the hurdle.

    Args:
        gross: Cash flows before fees.
        costs: Cost result (fee bases).
        fees: Fee structure.
        assumptions: Project assumptions (timeline for completion payout).

    Returns:
        FeeSchedule with one row per year from 0 to the final year.
    """
    warnings: List[str] = []
    timing = fees.timing
    caps = fees.caps
    equity = gross.initial_equity
    final_year = gross.years[-1].year

    one_time = calculate_one_time_fees(costs, fees)
    one_time_plan = _one_time_collections(one_time, fees, assumptions, final_year)

    annual_cap = caps.annual_fee_cap * equity if caps.enabled else math.inf
    lifetime_cap = caps.total_fee_cap * equity if caps.enabled else math.inf
    collected_to_date = 0.0

    rows = [
        FeeScheduleYear(
            year=0,
            earned=one_time.total,
            collected=0.0,
            deferred=one_time.total,
            forfeited=0.0,
            balance=one_time.total,
        )
    ]
    balance = one_time.total
    deferred_management = 0.0
    net_before_disposition = [gross.years[0].cash_flow]

    for cf_year in gross.years[1:]:
        year = cf_year.year

        # Ongoing management fees
        ongoing = cf_year.gross_revenue * (fees.asset_management_fee + fees.property_management_fee)
        if fees.fee_structure == FeeStructureType.PERFORMANCE:
            cash_on_cash = (cf_year.noi - cf_year.debt_service) / equity if equity > 0 else 0.0
            if cash_on_cash < fees.performance_hurdle:
                ongoing *= fees.reduced_fee_percent
        ongoing = max(0.0, ongoing)

        accrual = deferred_management * timing.deferred_accrual_rate
        deferred_management += accrual
        earned = ongoing + accrual

        ongoing_collected = ongoing
        start_year = min(timing.asset_management_start_year, final_year)
        if timing.defer_asset_management and year < start_year:
            deferred_management += ongoing
            ongoing_collected = 0.0
        elif deferred_management > 0:
            ongoing_collected += deferred_management
            deferred_management = 0.0

        forfeited = 0.0
        if ongoing_collected > annual_cap:
            forfeited += ongoing_collected - annual_cap
            ongoing_collected = annual_cap

        one_time_collected = one_time_plan.get(year, 0.0)
        collected = ongoing_collected + one_time_collected
        if collected_to_date + collected > lifetime_cap:
            over = collected_to_date + collected - lifetime_cap
            forfeited += over
            # Ongoing fees are cut before one-time fees
            cut = min(over, ongoing_collected)
            ongoing_collected -= cut
            one_time_collected -= over - cut
            collected = ongoing_collected + one_time_collected
        collected_to_date += collected

        balance = balance + earned - collected - forfeited
        rows.append(
            FeeScheduleYear(
                year=year,
                earned=earned,
                collected=collected,
                deferred=max(0.0, earned - collected),
                forfeited=forfeited,
                balance=max(0.0, balance),
                one_time=one_time_collected,
                ongoing=ongoing_collected,
            )
        )
        net_before_disposition.append(cf_year.cash_flow - collected)

    # Disposition fee in the final year
    disposition = calculate_disposition_fee(gross, fees, net_before_disposition)
    if disposition > 0:
        if collected_to_date + disposition > lifetime_cap:
            allowed = max(0.0, lifetime_cap - collected_to_date)
            lost = disposition - allowed
            disposition = allowed
        else:
            lost = 0.0
        last = rows[-1]
        rows[-1] = replace(
            last,
            earned=last.earned + disposition + lost,
            collected=last.collected + disposition,
            forfeited=last.forfeited + lost,
            disposition=disposition,
        )

    total_forfeited = sum(r.forfeited for r in rows)
    if total_forfeited > 0:
        message = f"Fee caps reduced sponsor fees by {total_forfeited:,.0f}"
        logger.info(message)
        warnings.append(message)

    return FeeSchedule(
        one_time_fees=one_time,
        years=rows,
        disposition_fee=disposition,
        warnings=warnings,
    )


def apply_fee_schedule(gross: CashFlowResult, schedule: FeeSchedule) -> CashFlowResult:
    """Net sponsor fees out of project cash flows.

    Ongoing and one-time collections go to sponsor_fees; the disposition fee
    reduces exit proceeds in the final year. Year 0 is unchanged.
    """
    years = [gross.years[0]]
    for cf_year in gross.years[1:]:
        fee_year = schedule.collected_in(cf_year.year)
        sponsor_fees = fee_year.one_time + fee_year.ongoing if fee_year else 0.0
        disposition = fee_year.disposition if fee_year else 0.0
        years.append(
            replace(
                cf_year,
                sponsor_fees=sponsor_fees,
                disposition_fee=disposition,
                exit_proceeds=cf_year.exit_proceeds - disposition,
                cash_flow=cf_year.cash_flow - sponsor_fees - disposition,
            )
        )

    return replace(
        gross,
        years=with_cumulative(years),
        warnings=list(gross.warnings) + list(schedule.warnings),
    )
