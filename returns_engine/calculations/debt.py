"""Debt calculations for construction and permanent loans."""

import logging
from dataclasses import dataclass, field
from typing import List

import numpy_financial as npf

from ..models.project import ConstructionLoanTerms, PermanentLoanTerms, ProjectAssumptions
from .costs import CostResult

logger = logging.getLogger(__name__)


@dataclass
class FinancingResult:
    """Construction financing and required equity."""

    construction_loan_amount: float
    avg_outstanding_balance: float
    construction_months: int
    construction_interest: float
    loan_fees: float  # Origination
    total_project_cost: float  # Total cost + interest + fees
    equity_required: float
    warnings: List[str] = field(default_factory=list)


@dataclass
class PermanentLoan:
    """Permanent loan sized on stabilized value."""

    loan_amount: float
    stabilized_value: float
    interest_rate: float
    amortization_years: int
    io_years: int
    io_payment: float  # Annual interest-only payment
    amortizing_payment: float  # Annual P&I payment
    debt_yield: float  # Year-1 NOI / loan


def calculate_construction_interest(
    loan_amount: float,
    terms: ConstructionLoanTerms,
    construction_months: int,
) -> float:
    """Interest carried during construction on the average drawn balance.

    Interest = Loan x Avg Outstanding % x (Rate / 12) x Months
    """
    avg_outstanding = loan_amount * terms.avg_outstanding
    return avg_outstanding * (terms.rate / 12) * construction_months


def calculate_financing(costs: CostResult, assumptions: ProjectAssumptions) -> FinancingResult:
    """Size the construction loan and derive the equity requirement.

    Equity = Total Cost + Construction Interest + Loan Fees - Loan

    Args:
        costs: Result of calculate_costs().
        assumptions: Project assumptions (construction loan terms and timeline).

    Returns:
        FinancingResult with loan, carry, and equity required.
    """
    warnings: List[str] = []
    terms = assumptions.construction_loan
    months = assumptions.timeline.construction_months

    loan_amount = costs.total * terms.ltc
    if loan_amount < 0:
        warnings.append("Construction loan amount was negative and was clamped to 0")
        loan_amount = 0.0

    avg_outstanding = loan_amount * terms.avg_outstanding
    construction_interest = calculate_construction_interest(loan_amount, terms, months)
    loan_fees = loan_amount * terms.origination_fee
    total_project_cost = costs.total + construction_interest + loan_fees
    equity_required = total_project_cost - loan_amount

    if equity_required < 0:
        message = f"Equity required was negative ({equity_required:,.0f}) and was clamped to 0"
        logger.warning(message)
        warnings.append(message)
        equity_required = 0.0

    logger.debug(
        "Construction loan %.0f, interest %.0f, equity %.0f",
        loan_amount, construction_interest, equity_required,
    )

    return FinancingResult(
        construction_loan_amount=loan_amount,
        avg_outstanding_balance=avg_outstanding,
        construction_months=months,
        construction_interest=construction_interest,
        loan_fees=loan_fees,
        total_project_cost=total_project_cost,
        equity_required=equity_required,
        warnings=warnings,
    )


def size_permanent_loan(
    year1_noi: float,
    cap_rate: float,
    terms: PermanentLoanTerms,
    warnings: List[str],
) -> PermanentLoan:
    """Size the permanent loan as LTV of stabilized value.

    Stabilized value = Year-1 NOI / cap rate. A non-positive cap rate gives
    a zero value (and so no loan) and records a warning.

    Args:
        year1_noi: First stabilized year NOI.
        cap_rate: Cap rate used for valuation.
        terms: Permanent loan terms.
        warnings: List that receives degeneracy warnings.

    Returns:
        PermanentLoan with annual payments.

    Example:
        >>> loan = size_permanent_loan(1_500_000, 0.065, PermanentLoanTerms(), [])
        >>> loan.loan_amount
        16153846.15  # Approximate
    """
    if cap_rate > 0:
        stabilized_value = year1_noi / cap_rate
    else:
        stabilized_value = 0.0
        warnings.append("Cap rate is 0; stabilized value and permanent loan set to 0")

    loan_amount = max(0.0, stabilized_value * terms.ltv)

    if loan_amount > 0:
        # numpy_financial returns the payment as a negative cash flow
        amortizing_payment = float(
            -npf.pmt(rate=terms.rate, nper=terms.amortization_years, pv=loan_amount, fv=0)
        )
    else:
        amortizing_payment = 0.0
    io_payment = loan_amount * terms.rate
    debt_yield = year1_noi / loan_amount if loan_amount > 0 else 0.0

    logger.debug("Permanent loan %.0f on value %.0f", loan_amount, stabilized_value)

    return PermanentLoan(
        loan_amount=loan_amount,
        stabilized_value=stabilized_value,
        interest_rate=terms.rate,
        amortization_years=terms.amortization_years,
        io_years=terms.io_years,
        io_payment=io_payment,
        amortizing_payment=amortizing_payment,
        debt_yield=debt_yield,
    )


def annual_debt_service(loan: PermanentLoan, year: int) -> float:
    """Debt service for an operating year: interest-only through the I/O period."""
    if loan.loan_amount <= 0:
        return 0.0
    if year <= loan.io_years:
        return loan.io_payment
    return loan.amortizing_payment


def calculate_loan_balance(
    original_principal: float,
    annual_rate: float,
    annual_payment: float,
    years_elapsed: int,
) -> float:
    """Calculate remaining loan balance after a number of annual payments.

    Uses the loan balance formula:
    Balance = P x (1 + r)^n - PMT x [((1 + r)^n - 1) / r]

    Args:
        original_principal: Original loan amount.
        annual_rate: Annual interest rate.
        annual_payment: Annual P&I payment.
        years_elapsed: Number of amortizing payments made.

    Returns:
        Remaining loan balance.
    """
    if years_elapsed <= 0:
        return original_principal

    if annual_rate == 0:
        return max(0.0, original_principal - annual_payment * years_elapsed)

    growth_factor = (1 + annual_rate) ** years_elapsed
    balance = (
        original_principal * growth_factor
        - annual_payment * ((growth_factor - 1) / annual_rate)
    )

    return max(0.0, balance)  # Balance can't go negative


def balance_at_exit(loan: PermanentLoan, hold_period: int) -> float:
    """Remaining permanent loan balance at sale, after the I/O period."""
    years_amortized = max(0, hold_period - loan.io_years)
    return calculate_loan_balance(
        original_principal=loan.loan_amount,
        annual_rate=loan.interest_rate,
        annual_payment=loan.amortizing_payment,
        years_elapsed=years_amortized,
    )


@dataclass(frozen=True)
class EquitySplit:
    """Equity requirement broken down by partner."""

    lp_equity: float
    gp_equity: float  # GP share of the equity slice
    gp_coinvest: float  # Portion of the GP slice the GP actually funds


def split_equity(equity_required: float, lp_share: float, gp_share: float, gp_coinvest: float) -> EquitySplit:
    """Break required equity into LP, GP and GP co-invest amounts."""
    gp_equity = equity_required * gp_share
    return EquitySplit(
        lp_equity=equity_required * lp_share,
        gp_equity=gp_equity,
        gp_coinvest=gp_equity * gp_coinvest,
    )
