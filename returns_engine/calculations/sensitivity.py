"""Single-variable sensitivity and discrete scenario analysis.

Both use fast heuristics instead of re-running the full cash flow and
waterfall pipeline per perturbation:

- Sensitivity moves the base IRR linearly: each unit of change (1% or
  1 bp) shifts IRR by coefficient x 1% of the base IRR.
- Scenarios (and Monte Carlo) use the development spread approximation
  IRR ~ yield on cost + (yield on cost - cap rate) x 0.5.

The outputs are approximations and will differ from a full re-run.
"""

import concurrent.futures
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ..models.lookups import (
    CAP_RATE_SENSITIVITY_BPS,
    CONSTRUCTION_SENSITIVITY_PCT,
    DEFAULT_SCENARIOS,
    INTEREST_RATE_SENSITIVITY_BPS,
    RENT_SENSITIVITY_PCT,
    SENSITIVITY_COEFFICIENTS,
    PropertyType,
    ScenarioDefaults,
)
from ..models.project import ProjectAssumptions
from .cashflow import CashFlowResult
from .costs import CostResult

logger = logging.getLogger(__name__)

SPREAD_WEIGHT = 0.5
PROBABILITY_TOLERANCE = 1e-6

# Variables that raise IRR when they increase
POSITIVE_VARIABLES = {"rent"}


@dataclass(frozen=True)
class RiskBase:
    """Base-case values the risk heuristics perturb."""

    irr: float  # Base project IRR
    revenue: float  # Year-1 rental revenue (average annual revenue for for-sale)
    total_cost: float
    cap_rate: float

    @property
    def yield_on_cost(self) -> float:
        return self.revenue / self.total_cost if self.total_cost > 0 else 0.0


def build_risk_base(
    cash_flows: CashFlowResult,
    costs: CostResult,
    assumptions: ProjectAssumptions,
    project_irr: float,
) -> RiskBase:
    """Collect the base-case inputs for sensitivity, scenarios and Monte Carlo."""
    operating = cash_flows.years[1:]
    if assumptions.property_type == PropertyType.FOR_SALE:
        revenue = sum(y.gross_revenue for y in operating) / len(operating) if operating else 0.0
    else:
        revenue = operating[0].rental_revenue if operating else 0.0
    return RiskBase(
        irr=project_irr,
        revenue=revenue,
        total_cost=costs.total,
        cap_rate=assumptions.operating.cap_rate,
    )


def spread_irr(yield_on_cost: float, cap_rate: float) -> float:
    """Development spread IRR approximation."""
    return yield_on_cost + (yield_on_cost - cap_rate) * SPREAD_WEIGHT


def perturbed_yield(base: RiskBase, rent_change: float, cost_change: float) -> float:
    """Yield on cost after fractional rent and cost changes (0.10 = +10%)."""
    cost = base.total_cost * (1 + cost_change)
    return base.revenue * (1 + rent_change) / cost if cost > 0 else 0.0


def perturbed_irr(base: RiskBase, rent_change: float, cost_change: float, cap_change: float) -> float:
    """Approximate IRR after fractional rent/cost changes and a cap rate shift.

    Args:
        base: Base case.
        rent_change: Fractional rent change (0.10 = +10%).
        cost_change: Fractional cost change.
        cap_change: Cap rate change as a decimal (0.005 = +50 bps).
    """
    yield_on_cost = perturbed_yield(base, rent_change, cost_change)
    return spread_irr(yield_on_cost, base.cap_rate + cap_change)


# =============================================================================
# Single-variable sensitivity
# =============================================================================

@dataclass(frozen=True)
class SensitivityConfig:
    """Perturbation ranges (percent for rent/cost, bps for rates)."""

    rent_pct: Tuple[float, ...] = tuple(RENT_SENSITIVITY_PCT)
    construction_cost_pct: Tuple[float, ...] = tuple(CONSTRUCTION_SENSITIVITY_PCT)
    cap_rate_bps: Tuple[float, ...] = tuple(CAP_RATE_SENSITIVITY_BPS)
    interest_rate_bps: Tuple[float, ...] = tuple(INTEREST_RATE_SENSITIVITY_BPS)
    coefficients: Dict[str, float] = field(default_factory=lambda: dict(SENSITIVITY_COEFFICIENTS))
    parallel: bool = False
    max_workers: Optional[int] = None

    def ranges(self) -> List[Tuple[str, str, Tuple[float, ...]]]:
        """(variable, unit, changes) for each variable."""
        return [
            ("rent", "%", self.rent_pct),
            ("construction_cost", "%", self.construction_cost_pct),
            ("cap_rate", "bps", self.cap_rate_bps),
            ("interest_rate", "bps", self.interest_rate_bps),
        ]


@dataclass(frozen=True)
class SensitivityPoint:
    """Approximate IRR for one perturbation."""

    variable: str
    change: float
    unit: str  # "%" or "bps"
    irr: float
    irr_delta_bps: int


@dataclass
class SensitivityTable:
    """Sensitivity results for all variables."""

    base_irr: float
    points: List[SensitivityPoint]

    def for_variable(self, variable: str) -> List[SensitivityPoint]:
        return [p for p in self.points if p.variable == variable]

    def to_frame(self) -> pd.DataFrame:
        """One row per perturbation."""
        return pd.DataFrame(
            [
                {
                    "variable": p.variable,
                    "change": p.change,
                    "unit": p.unit,
                    "irr": p.irr,
                    "irr_delta_bps": p.irr_delta_bps,
                }
                for p in self.points
            ]
        )


def sensitivity_irr(base_irr: float, variable: str, change: float, coefficient: float) -> float:
    """Linear IRR response to a change in one variable."""
    direction = 1 if variable in POSITIVE_VARIABLES else -1
    return base_irr + direction * change * coefficient * 0.01 * base_irr


def _variable_points(
    base_irr: float, variable: str, unit: str, changes: Sequence[float], coefficient: float
) -> List[SensitivityPoint]:
    points = []
    for change in changes:
        irr = sensitivity_irr(base_irr, variable, change, coefficient)
        points.append(
            SensitivityPoint(
                variable=variable,
                change=change,
                unit=unit,
                irr=irr,
                irr_delta_bps=int(round((irr - base_irr) * 10_000)),
            )
        )
    return points


def run_sensitivity(base_irr: float, config: Optional[SensitivityConfig] = None) -> SensitivityTable:
    """Build the single-variable sensitivity table.

    Args:
        base_irr: Base project IRR.
        config: Ranges and coefficients. Defaults to SensitivityConfig().

    Returns:
        SensitivityTable ordered rent, construction cost, cap rate, interest rate.

    Raises:
        ValueError: If a coefficient is missing for a variable.
    """
    config = config or SensitivityConfig()
    ranges = config.ranges()
    for variable, _, _ in ranges:
        if variable not in config.coefficients:
            raise ValueError(f"No sensitivity coefficient for {variable!r}")

    if config.parallel:
        with concurrent.futures.ThreadPoolExecutor(max_workers=config.max_workers) as executor:
            futures = [
                executor.submit(
                    _variable_points, base_irr, variable, unit, changes, config.coefficients[variable]
                )
                for variable, unit, changes in ranges
            ]
            # Results are gathered in submission order
            groups = [future.result() for future in futures]
    else:
        groups = [
            _variable_points(base_irr, variable, unit, changes, config.coefficients[variable])
            for variable, unit, changes in ranges
        ]

    points = [point for group in groups for point in group]
    logger.debug("Sensitivity table with %d points around IRR %.4f", len(points), base_irr)
    return SensitivityTable(base_irr=base_irr, points=points)


# =============================================================================
# Discrete scenarios
# =============================================================================

@dataclass(frozen=True)
class ScenarioResult:
    """Approximate outcome of one named scenario."""

    name: str
    probability: float
    rent_change_pct: float
    cost_change_pct: float
    cap_rate_change_bps: float
    yield_on_cost: float
    irr: float


@dataclass
class ScenarioSummary:
    """Scenario outcomes and the probability-weighted IRR."""

    results: List[ScenarioResult]
    weighted_irr: float  # Sum of IRR x probability
    probability_total: float
    warnings: List[str] = field(default_factory=list)

    def get(self, name: str) -> Optional[ScenarioResult]:
        for result in self.results:
            if result.name == name:
                return result
        return None


def run_scenarios(
    base: RiskBase,
    scenarios: Sequence[ScenarioDefaults] = tuple(DEFAULT_SCENARIOS),
) -> ScenarioSummary:
    """Evaluate named scenarios and their probability-weighted IRR.

    Probabilities that do not add up to 100% are flagged, not normalized.

    Args:
        base: Base case.
        scenarios: Scenario adjustments (percent, bps) with probabilities.

    Returns:
        ScenarioSummary.
    """
    warnings: List[str] = []
    results = []
    for scenario in scenarios:
        yield_on_cost = perturbed_yield(
            base, scenario.rent_change_pct / 100, scenario.cost_change_pct / 100
        )
        irr = spread_irr(yield_on_cost, base.cap_rate + scenario.cap_rate_change_bps / 10_000)
        results.append(
            ScenarioResult(
                name=scenario.name,
                probability=scenario.probability,
                rent_change_pct=scenario.rent_change_pct,
                cost_change_pct=scenario.cost_change_pct,
                cap_rate_change_bps=scenario.cap_rate_change_bps,
                yield_on_cost=yield_on_cost,
                irr=irr,
            )
        )

    probability_total = sum(r.probability for r in results)
    if abs(probability_total - 1.0) > PROBABILITY_TOLERANCE:
        message = f"Scenario probabilities total {probability_total:.0%}, not 100%"
        logger.warning(message)
        warnings.append(message)

    weighted_irr = sum(r.irr * r.probability for r in results)

    return ScenarioSummary(
        results=results,
        weighted_irr=weighted_irr,
        probability_total=probability_total,
        warnings=warnings,
    )
