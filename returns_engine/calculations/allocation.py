"""Single allocation entry point for both compensation modes.

Waterfall mode splits gross cash flow through the equity waterfall. Sponsor
fee mode pays the GP its fee schedule and passes all remaining cash to the
LP; compare_compensation() reports what the same deal would have looked
like under a promote.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..models.compensation import CompensationMode, EquityStructure, SponsorFee, Waterfall
from .cashflow import CashFlowResult
from .irr import calculate_irr
from .sponsor_fees import FeeSchedule
from .waterfall import DistributionResult, DistributionStep, allocate_waterfall

logger = logging.getLogger(__name__)


def allocate(
    cash_flows: CashFlowResult,
    mode: CompensationMode,
    project_irr: float,
    fee_schedule: Optional[FeeSchedule] = None,
) -> DistributionResult:
    """Allocate distributable cash under the chosen compensation mode.

    Args:
        cash_flows: Cash flows the partners share. Net of fees in sponsor
            fee mode.
        mode: Waterfall or SponsorFee.
        project_irr: Realized project IRR (tier selection).
        fee_schedule: Required in sponsor fee mode.

    Returns:
        DistributionResult.

    Raises:
        ValueError: For an unknown mode or a missing fee schedule.
    """
    if isinstance(mode, Waterfall):
        return allocate_waterfall(
            total_distributable=cash_flows.total_distributions,
            initial_equity=cash_flows.initial_equity,
            equity=mode.equity,
            hold_period=cash_flows.hold_period,
            project_irr=project_irr,
        )
    if isinstance(mode, SponsorFee):
        if fee_schedule is None:
            raise ValueError("Sponsor fee allocation requires a fee schedule")
        return allocate_sponsor_fees(cash_flows, fee_schedule)
    raise ValueError(f"Unknown compensation mode: {type(mode).__name__}")


def allocate_sponsor_fees(net_cash_flows: CashFlowResult, schedule: FeeSchedule) -> DistributionResult:
    """Fee mode allocation: GP receives its fees, LP all net distributions.

    The LP is treated as having funded all of the equity.
    """
    lp_distributions = net_cash_flows.total_distributions
    gp_items = [
        ("One-time Fees", schedule.one_time_collected),
        ("Ongoing Fees", schedule.ongoing_collected),
        ("Disposition Fee", schedule.disposition_fee),
    ]
    total = lp_distributions + sum(amount for _, amount in gp_items)

    steps: List[DistributionStep] = []
    remaining = total
    for name, amount in gp_items:
        remaining -= amount
        steps.append(DistributionStep(name, 0.0, amount, remaining))
    remaining -= lp_distributions
    steps.append(DistributionStep("LP Distributions", lp_distributions, 0.0, remaining))

    equity = net_cash_flows.initial_equity
    hold = net_cash_flows.hold_period
    lp_multiple = lp_distributions / equity if equity > 0 else 0.0
    if equity > 0 and hold > 0:
        lp_irr = lp_multiple ** (1 / hold) - 1 if lp_multiple > 0 else -1.0
    else:
        lp_irr = 0.0

    return DistributionResult(
        total_distributable=total,
        lp_total=lp_distributions,
        gp_total=total - lp_distributions,
        steps=steps,
        lp_capital=equity,
        gp_capital=0.0,
        lp_multiple=lp_multiple,
        gp_multiple=0.0,
        lp_irr=lp_irr,
        gp_irr=0.0,
    )


@dataclass(frozen=True)
class QuarterlyDistribution:
    """LP/GP cash for one quarter."""

    year: int
    quarter: int
    total: float
    lp_amount: float
    gp_amount: float


def quarterly_distributions(cash_flows: CashFlowResult, lp_share: float) -> List[QuarterlyDistribution]:
    """Spread each year's positive cash flow evenly over four quarters.

    Args:
        cash_flows: Annual cash flows.
        lp_share: LP fraction of each distribution (1.0 in fee mode).

    Returns:
        Quarterly rows for years 1..N; years without a distribution are zero.
    """
    rows = []
    for cf_year in cash_flows.years[1:]:
        quarterly = max(0.0, cf_year.cash_flow) / 4
        lp_amount = quarterly * lp_share
        for quarter in range(1, 5):
            rows.append(
                QuarterlyDistribution(
                    year=cf_year.year,
                    quarter=quarter,
                    total=quarterly,
                    lp_amount=lp_amount,
                    gp_amount=quarterly - lp_amount,
                )
            )
    return rows


@dataclass
class FeeComparison:
    """LP outcome under sponsor fees versus an equivalent promote."""

    gross_irr: float  # Project IRR before any GP compensation
    fee_lp_irr: float
    fee_lp_multiple: float
    fee_gp_compensation: float
    promote_lp_irr: float
    promote_lp_multiple: float
    promote_gp_compensation: float
    fee_drag_bps: int  # Gross IRR - LP IRR under fees
    promote_drag_bps: int  # Gross IRR - LP IRR under the promote
    lp_advantage_bps: int  # Fee LP IRR - promote LP IRR

    @property
    def preferred_structure(self) -> str:
        """Structure that leaves the LP better off."""
        return "fees" if self.lp_advantage_bps > 0 else "promote"


def _bps(value: float) -> int:
    return int(round(value * 10_000))


def compare_compensation(
    gross: CashFlowResult,
    net: CashFlowResult,
    schedule: FeeSchedule,
    promote_equity: EquityStructure,
) -> FeeComparison:
    """Compare LP returns under sponsor fees against a promote on the same deal.

    Under fees the LP funds all equity and receives the net cash flows. Under
    the promote the LP funds its equity share and receives its waterfall
    share of each year's gross cash flow.

    Args:
        gross: Cash flows before fees.
        net: Cash flows after fees.
        schedule: Sponsor fee schedule.
        promote_equity: Waterfall terms for the comparison.

    Returns:
        FeeComparison.
    """
    gross_irr = calculate_irr(gross.cash_flows).value
    fee_lp_irr = calculate_irr(net.cash_flows).value
    equity = gross.initial_equity
    fee_lp_multiple = net.total_distributions / equity if equity > 0 else 0.0

    promote = allocate_waterfall(
        total_distributable=gross.total_distributions,
        initial_equity=equity,
        equity=promote_equity,
        hold_period=gross.hold_period,
        project_irr=gross_irr,
    )
    lp_fraction = promote.lp_percent
    lp_series = [-promote.lp_capital] + [cf * lp_fraction for cf in gross.cash_flows[1:]]
    promote_lp_irr = calculate_irr(lp_series).value

    comparison = FeeComparison(
        gross_irr=gross_irr,
        fee_lp_irr=fee_lp_irr,
        fee_lp_multiple=fee_lp_multiple,
        fee_gp_compensation=schedule.total_collected,
        promote_lp_irr=promote_lp_irr,
        promote_lp_multiple=promote.lp_multiple,
        promote_gp_compensation=promote.gp_total,
        fee_drag_bps=_bps(gross_irr - fee_lp_irr),
        promote_drag_bps=_bps(gross_irr - promote_lp_irr),
        lp_advantage_bps=_bps(fee_lp_irr - promote_lp_irr),
    )
    logger.debug(
        "Fee drag %d bps, promote drag %d bps", comparison.fee_drag_bps, comparison.promote_drag_bps
    )
    return comparison
