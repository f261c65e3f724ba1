"""Engine entry points: full deal computation and risk analysis.

compute() runs costs -> financing -> cash flows -> allocation -> returns
and collects every warning raised along the way. analyze_risk() layers the
sensitivity table, Monte Carlo and discrete scenarios on top of a computed
deal.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from .calculations.allocation import (
    FeeComparison,
    QuarterlyDistribution,
    allocate,
    compare_compensation,
    quarterly_distributions,
)
from .calculations.cashflow import CashFlowResult, generate_cash_flows
from .calculations.costs import CostResult, calculate_costs
from .calculations.debt import EquitySplit, FinancingResult, calculate_financing, split_equity
from .calculations.irr import calculate_irr
from .calculations.metrics import DEFAULT_DISCOUNT_RATE, ReturnsSummary, calculate_returns
from .calculations.monte_carlo import MonteCarloConfig, MonteCarloResult, run_monte_carlo
from .calculations.sensitivity import (
    RiskBase,
    ScenarioSummary,
    SensitivityConfig,
    SensitivityTable,
    build_risk_base,
    run_scenarios,
    run_sensitivity,
)
from .calculations.sponsor_fees import FeeSchedule, apply_fee_schedule, build_fee_schedule
from .calculations.validation import ValidationIssue, validate_deal
from .calculations.waterfall import DistributionResult
from .models.compensation import CompensationMode, SponsorFee, Waterfall
from .models.lookups import DEFAULT_SCENARIOS, ScenarioDefaults, Severity
from .models.project import ProjectAssumptions

logger = logging.getLogger(__name__)


@dataclass
class DealResult:
    """Everything computed for one deal under one compensation mode."""

    assumptions: ProjectAssumptions
    mode: CompensationMode
    costs: CostResult
    financing: FinancingResult
    gross_cash_flows: CashFlowResult  # Before sponsor fees
    cash_flows: CashFlowResult  # What the partners share (net of fees in fee mode)
    distribution: DistributionResult
    returns: ReturnsSummary
    equity_split: EquitySplit
    quarterly_distributions: List[QuarterlyDistribution]
    issues: List[ValidationIssue]
    fee_schedule: Optional[FeeSchedule] = None
    fee_comparison: Optional[FeeComparison] = None

    @property
    def errors(self) -> List[str]:
        """Validation errors (the result is still a best effort)."""
        return [i.message for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[str]:
        """Calculation warnings and validation warnings, without duplicates."""
        collected = (
            self.costs.warnings
            + self.financing.warnings
            + self.cash_flows.warnings
            + self.distribution.warnings
            + self.returns.warnings
            + [i.message for i in self.issues if i.severity == Severity.WARNING]
        )
        errors = set(self.errors)
        return [w for w in dict.fromkeys(collected) if w not in errors]

    @property
    def is_valid(self) -> bool:
        return not self.errors


def compute(
    assumptions: ProjectAssumptions,
    mode: Optional[CompensationMode] = None,
    discount_rate: float = DEFAULT_DISCOUNT_RATE,
) -> DealResult:
    """Compute a complete deal.

    Business-rule problems are reported on the result, not raised.

    Args:
        assumptions: Project assumptions.
        mode: Waterfall(...) or SponsorFee(...). Defaults to Waterfall().
        discount_rate: NPV discount rate.

    Returns:
        DealResult.

    Raises:
        ValueError: If the assumptions are malformed (see
            ProjectAssumptions.validate()) or the mode is unknown.

    Example:
        >>> deal = compute(ProjectAssumptions())
        >>> deal.cash_flows.years[0].cash_flow
        -9817087.0  # Approximate
    """
    mode = mode if mode is not None else Waterfall()
    if not isinstance(mode, (Waterfall, SponsorFee)):
        raise ValueError(f"Unknown compensation mode: {type(mode).__name__}")

    errors = assumptions.validate()
    if errors:
        raise ValueError("Invalid assumptions: " + "; ".join(errors))

    costs = calculate_costs(assumptions)
    financing = calculate_financing(costs, assumptions)
    gross = generate_cash_flows(assumptions, costs, financing)

    fee_schedule = None
    fee_comparison = None
    if isinstance(mode, SponsorFee):
        fee_schedule = build_fee_schedule(gross, costs, mode.fees, assumptions)
        cash_flows = apply_fee_schedule(gross, fee_schedule)
        fee_comparison = compare_compensation(gross, cash_flows, fee_schedule, mode.promote_equity)
        equity = mode.promote_equity
        lp_share = 1.0  # LP receives all net cash flow
    else:
        cash_flows = gross
        equity = mode.equity
        lp_share = equity.lp_share

    project_irr = calculate_irr(cash_flows.cash_flows)
    distribution = allocate(cash_flows, mode, project_irr.value, fee_schedule)
    returns = calculate_returns(
        cash_flows, costs, financing, assumptions, distribution, discount_rate
    )
    issues = validate_deal(assumptions, costs, gross, returns, mode)

    logger.info(
        "Computed %s deal: IRR %.2f%%, %d warnings, %d errors",
        assumptions.property_type.value,
        returns.irr * 100,
        sum(1 for i in issues if i.severity == Severity.WARNING),
        sum(1 for i in issues if i.severity == Severity.ERROR),
    )

    return DealResult(
        assumptions=assumptions,
        mode=mode,
        costs=costs,
        financing=financing,
        gross_cash_flows=gross,
        cash_flows=cash_flows,
        distribution=distribution,
        returns=returns,
        equity_split=split_equity(
            financing.equity_required, equity.lp_share, equity.gp_share, equity.gp_coinvest
        ),
        quarterly_distributions=quarterly_distributions(cash_flows, lp_share),
        issues=issues,
        fee_schedule=fee_schedule,
        fee_comparison=fee_comparison,
    )


@dataclass
class RiskResult:
    """Sensitivity, Monte Carlo and scenario outputs for one deal."""

    base: RiskBase
    sensitivity: SensitivityTable
    monte_carlo: MonteCarloResult
    scenarios: ScenarioSummary
    warnings: List[str] = field(default_factory=list)


def analyze_risk(
    assumptions: ProjectAssumptions,
    sensitivity_config: Optional[SensitivityConfig] = None,
    monte_carlo_config: Optional[MonteCarloConfig] = None,
    scenarios: Sequence[ScenarioDefaults] = tuple(DEFAULT_SCENARIOS),
    mode: Optional[CompensationMode] = None,
    rng: Optional[np.random.Generator] = None,
) -> RiskResult:
    """Run sensitivity, Monte Carlo and scenario analysis.

    All three use heuristic IRR approximations around the computed base
    case rather than re-running the deal for each perturbation.

    Args:
        assumptions: Project assumptions.
        sensitivity_config: Sensitivity ranges. Defaults to SensitivityConfig().
        monte_carlo_config: Simulation settings. Defaults to MonteCarloConfig().
        scenarios: Named scenarios with probabilities.
        mode: Compensation mode for the base case.
        rng: Generator for Monte Carlo; same seed, same result.

    Returns:
        RiskResult.
    """
    deal = compute(assumptions, mode)
    base = build_risk_base(deal.gross_cash_flows, deal.costs, assumptions, deal.returns.irr)

    sensitivity = run_sensitivity(base.irr, sensitivity_config)
    monte_carlo = run_monte_carlo(base, monte_carlo_config, rng=rng)
    scenario_summary = run_scenarios(base, scenarios)

    return RiskResult(
        base=base,
        sensitivity=sensitivity,
        monte_carlo=monte_carlo,
        scenarios=scenario_summary,
        warnings=list(scenario_summary.warnings),
    )
