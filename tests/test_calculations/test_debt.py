"""Tests for construction financing and permanent loan calculations."""

from dataclasses import replace

import numpy_financial as npf
import pytest

from returns_engine.calculations.debt import (
    annual_debt_service,
    balance_at_exit,
    calculate_construction_interest,
    calculate_financing,
    calculate_loan_balance,
    size_permanent_loan,
    split_equity,
)
from returns_engine.models.project import ConstructionLoanTerms, PermanentLoanTerms


class TestConstructionFinancing:
    """Tests for construction loan sizing and equity."""

    def test_construction_loan_is_ltc_of_total_cost(self, office_costs, office_financing):
        """Construction loan should be LTC ratio of total cost."""
        expected = office_costs.total * 0.65
        assert office_financing.construction_loan_amount == expected

    def test_interest_on_average_outstanding(self, office_financing):
        """Interest accrues on 60% of the loan for the construction period."""
        loan = office_financing.construction_loan_amount
        expected = loan * 0.60 * (0.085 / 12) * 24
        assert abs(office_financing.avg_outstanding_balance - loan * 0.60) < 0.01
        assert abs(office_financing.construction_interest - expected) < 0.01

    def test_equity_is_total_plus_financing_costs_less_loan(self, office_costs, office_financing):
        """Equity = total cost + interest + fees - loan."""
        expected = (
            office_costs.total
            + office_financing.construction_interest
            + office_financing.loan_fees
            - office_financing.construction_loan_amount
        )
        assert abs(office_financing.equity_required - expected) < 0.01
        assert abs(office_financing.equity_required - 9_817_087.0) < 1.0

    def test_reference_financing_values(self, office_financing):
        """Reference deal financing values."""
        assert abs(office_financing.construction_loan_amount - 15_092_494.2) < 1.0
        assert abs(office_financing.loan_fees - 150_924.94) < 0.1
        assert abs(office_financing.total_project_cost - 24_909_581.2) < 1.0

    def test_full_leverage_clamps_equity(self, office_inputs, office_costs):
        """Equity never goes negative."""
        inputs = replace(
            office_inputs,
            construction_loan=replace(office_inputs.construction_loan, ltc=1.5),
        )
        result = calculate_financing(office_costs, inputs)

        assert result.equity_required == 0
        assert any("Equity required was negative" in w for w in result.warnings)

    def test_interest_helper(self):
        """Interest = Loan x Avg Outstanding x Rate / 12 x Months."""
        terms = ConstructionLoanTerms(rate=0.06, avg_outstanding=0.5)
        interest = calculate_construction_interest(10_000_000, terms, 12)
        assert abs(interest - 300_000) < 0.01


class TestPermanentLoan:
    """Tests for permanent loan sizing."""

    def test_loan_is_ltv_of_stabilized_value(self):
        """Loan = NOI / cap x LTV."""
        loan = size_permanent_loan(1_300_000, 0.065, PermanentLoanTerms(), [])

        assert abs(loan.stabilized_value - 20_000_000) < 0.01
        assert abs(loan.loan_amount - 14_000_000) < 0.01

    def test_amortizing_payment_matches_pmt(self):
        """Annual payment is a standard amortizing payment."""
        loan = size_permanent_loan(1_300_000, 0.065, PermanentLoanTerms(), [])
        expected = -npf.pmt(0.065, 30, 14_000_000)

        assert abs(loan.amortizing_payment - expected) < 0.01
        assert abs(loan.io_payment - 14_000_000 * 0.065) < 0.01

    def test_debt_yield(self):
        """Debt yield = NOI / loan amount."""
        loan = size_permanent_loan(1_300_000, 0.065, PermanentLoanTerms(), [])
        assert abs(loan.debt_yield - 1_300_000 / 14_000_000) < 1e-12

    def test_zero_cap_rate(self):
        """Cap rate of 0 gives no value, no loan and a warning."""
        warnings = []
        loan = size_permanent_loan(1_300_000, 0.0, PermanentLoanTerms(), warnings)

        assert loan.stabilized_value == 0
        assert loan.loan_amount == 0
        assert loan.amortizing_payment == 0
        assert loan.debt_yield == 0
        assert len(warnings) == 1

    def test_interest_only_period(self):
        """Debt service is interest-only through the I/O years."""
        terms = PermanentLoanTerms(io_years=2)
        loan = size_permanent_loan(1_300_000, 0.065, terms, [])

        assert annual_debt_service(loan, 1) == loan.io_payment
        assert annual_debt_service(loan, 2) == loan.io_payment
        assert annual_debt_service(loan, 3) == loan.amortizing_payment


class TestLoanBalance:
    """Tests for remaining balance."""

    def test_balance_after_zero_years(self):
        """Balance with no payments is the original principal."""
        assert calculate_loan_balance(1_000_000, 0.06, 80_000, 0) == 1_000_000

    def test_balance_declines(self):
        """Amortizing payments reduce the balance."""
        payment = -npf.pmt(0.06, 30, 1_000_000)
        after_10 = calculate_loan_balance(1_000_000, 0.06, payment, 10)
        after_20 = calculate_loan_balance(1_000_000, 0.06, payment, 20)

        assert 0 < after_20 < after_10 < 1_000_000

    def test_fully_amortized(self):
        """Balance at the end of the amortization term is zero."""
        payment = -npf.pmt(0.06, 30, 1_000_000)
        assert calculate_loan_balance(1_000_000, 0.06, payment, 30) == pytest.approx(0, abs=1e-4)

    def test_balance_matches_fv(self):
        """Balance formula agrees with numpy_financial's future value."""
        payment = -npf.pmt(0.065, 30, 14_000_000)
        expected = -npf.fv(0.065, 10, -payment, 14_000_000)
        assert calculate_loan_balance(14_000_000, 0.065, payment, 10) == pytest.approx(expected)

    def test_zero_rate(self):
        """Zero interest amortizes linearly."""
        assert calculate_loan_balance(1_000, 0.0, 100, 3) == 700

    def test_balance_at_exit_skips_io_years(self):
        """Only post-I/O years amortize."""
        loan = size_permanent_loan(1_300_000, 0.065, PermanentLoanTerms(io_years=3), [])
        expected = calculate_loan_balance(loan.loan_amount, 0.065, loan.amortizing_payment, 7)
        assert balance_at_exit(loan, 10) == expected


class TestEquitySplit:
    """Tests for the LP/GP equity breakdown."""

    def test_split(self):
        """LP and GP shares of equity with GP co-invest."""
        split = split_equity(10_000_000, 0.9, 0.1, 0.1)

        assert split.lp_equity == pytest.approx(9_000_000)
        assert split.gp_equity == pytest.approx(1_000_000)
        assert split.gp_coinvest == pytest.approx(100_000)
