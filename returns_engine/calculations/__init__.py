"""Calculation modules for the returns and distribution engine."""

from .costs import calculate_costs, CostResult, SoftCostBreakdown
from .debt import (
    calculate_financing,
    size_permanent_loan,
    calculate_loan_balance,
    split_equity,
    FinancingResult,
    PermanentLoan,
    EquitySplit,
)
from .for_sale import simulate_sales, calculate_sellout_months, ForSaleResult, SalesMonth
from .cashflow import (
    generate_cash_flows,
    CASH_FLOW_GENERATORS,
    CashFlowResult,
    CashFlowYear,
)
from .irr import calculate_irr, calculate_npv, IRRResult

# Compensation
from .waterfall import (
    allocate_waterfall,
    select_tier,
    validate_waterfall_structure,
    DistributionResult,
    DistributionStep,
)
from .sponsor_fees import build_fee_schedule, apply_fee_schedule, FeeSchedule, FeeScheduleYear
from .allocation import (
    allocate,
    quarterly_distributions,
    compare_compensation,
    FeeComparison,
    QuarterlyDistribution,
)

from .metrics import calculate_returns, format_returns_table, ReturnsSummary
from .validation import validate_deal, ValidationIssue

# Risk
from .sensitivity import (
    build_risk_base,
    run_sensitivity,
    run_scenarios,
    RiskBase,
    SensitivityConfig,
    SensitivityTable,
    ScenarioSummary,
)
from .monte_carlo import (
    DistributionType,
    InputDistribution,
    MonteCarloConfig,
    MonteCarloResult,
    run_monte_carlo,
    volatility_distributions,
)

__all__ = [
    "calculate_costs",
    "CostResult",
    "SoftCostBreakdown",
    "calculate_financing",
    "size_permanent_loan",
    "calculate_loan_balance",
    "split_equity",
    "FinancingResult",
    "PermanentLoan",
    "EquitySplit",
    "simulate_sales",
    "calculate_sellout_months",
    "ForSaleResult",
    "SalesMonth",
    "generate_cash_flows",
    "CASH_FLOW_GENERATORS",
    "CashFlowResult",
    "CashFlowYear",
    "calculate_irr",
    "calculate_npv",
    "IRRResult",
    "allocate_waterfall",
    "select_tier",
    "validate_waterfall_structure",
    "DistributionResult",
    "DistributionStep",
    "build_fee_schedule",
    "apply_fee_schedule",
    "FeeSchedule",
    "FeeScheduleYear",
    "allocate",
    "quarterly_distributions",
    "compare_compensation",
    "FeeComparison",
    "QuarterlyDistribution",
    "calculate_returns",
    "format_returns_table",
    "ReturnsSummary",
    "validate_deal",
    "ValidationIssue",
    "build_risk_base",
    "run_sensitivity",
    "run_scenarios",
    "RiskBase",
    "SensitivityConfig",
    "SensitivityTable",
    "ScenarioSummary",
    "DistributionType",
    "InputDistribution",
    "MonteCarloConfig",
    "MonteCarloResult",
    "run_monte_carlo",
    "volatility_distributions",
]
