"""Tests for the for-sale monthly sales simulation."""

from dataclasses import replace

import pytest

from returns_engine.calculations.costs import calculate_costs
from returns_engine.calculations.debt import calculate_financing
from returns_engine.calculations.for_sale import (
    calculate_sellout_months,
    simulate_sales,
    unit_price,
)
from returns_engine.models.project import SalesPhase


@pytest.fixture
def for_sale_financing(for_sale_inputs):
    return calculate_financing(calculate_costs(for_sale_inputs), for_sale_inputs)


class TestSellout:
    """Tests for absorption timing."""

    def test_sellout_months(self):
        """100 units at 5 per month sell out in 20 months."""
        assert calculate_sellout_months(100, 5) == 20

    def test_sellout_rounds_up(self):
        """Partial months count as a full month."""
        assert calculate_sellout_months(101, 5) == 21

    @pytest.mark.parametrize("pace", [0, -3])
    def test_non_positive_pace(self, pace):
        """No absorption without a positive pace."""
        assert calculate_sellout_months(100, pace) == 0

    def test_simulation_reports_sellout(self, for_sale_inputs, for_sale_financing):
        """Simulation carries the sellout month count."""
        result = simulate_sales(for_sale_inputs, for_sale_financing)
        assert result.sellout_months == 20


class TestPricing:
    """Tests for monthly price escalation."""

    def test_month_one_is_base_price(self):
        assert unit_price(750_000, 0.04, 1) == 750_000

    def test_one_year_of_escalation(self):
        """Twelve months after month 1 the price is up one year of escalation."""
        assert unit_price(750_000, 0.04, 13) == pytest.approx(780_000)


class TestSimulation:
    """Tests for phased sales and closings."""

    def test_all_units_close(self, for_sale_inputs, for_sale_financing):
        """Default phases close every unit within the horizon."""
        result = simulate_sales(for_sale_inputs, for_sale_financing)

        assert sum(m.units_closed for m in result.months) == 100
        assert sum(m.units_sold for m in result.months) == 100
        assert result.units_unclosed == 0
        assert result.final_closing_month == 41

    def test_no_closings_before_first_delivery(self, for_sale_inputs, for_sale_financing):
        """Only deposits are collected before the first delivery month."""
        result = simulate_sales(for_sale_inputs, for_sale_financing)

        early = [m for m in result.months if m.month < 24]
        assert all(m.units_closed == 0 for m in early)
        assert all(m.closing_revenue == 0 for m in early)
        assert early[0].deposit_revenue == pytest.approx(5 * 750_000 * 0.20)

    def test_construction_loan_is_repaid(self, for_sale_inputs, for_sale_financing):
        """Net closing revenue sweeps the construction loan."""
        result = simulate_sales(for_sale_inputs, for_sale_financing)

        repaid = sum(m.loan_repayment for m in result.months)
        assert repaid == pytest.approx(for_sale_financing.construction_loan_amount)
        assert not any("not repaid" in w for w in result.warnings)

    def test_interest_only_during_construction(self, for_sale_inputs, for_sale_financing):
        """Construction interest stops after the construction period."""
        result = simulate_sales(for_sale_inputs, for_sale_financing)

        assert result.months[0].construction_interest == pytest.approx(
            for_sale_financing.construction_loan_amount * 0.085 / 12
        )
        assert all(m.construction_interest == 0 for m in result.months[24:])

    def test_sales_costs_netted(self, for_sale_inputs, for_sale_financing):
        """Commission, marketing and closing costs reduce revenue."""
        result = simulate_sales(for_sale_inputs, for_sale_financing)

        for m in result.months:
            assert m.sales_costs == pytest.approx(m.revenue * 0.08)
            assert m.net_revenue == pytest.approx(m.revenue - m.sales_costs)

    def test_annual_rollup(self, for_sale_inputs, for_sale_financing):
        """Annual table sums the months of each year."""
        result = simulate_sales(for_sale_inputs, for_sale_financing)

        assert list(result.annual.index) == [1, 2, 3, 4, 5]
        year3 = sum(m.revenue for m in result.months if m.year == 3)
        assert result.annual.loc[3, "revenue"] == pytest.approx(year3)

    def test_phase_mismatch_warning(self, for_sale_inputs, for_sale_financing):
        """Phases that do not add up to total units are flagged."""
        inputs = replace(
            for_sale_inputs,
            sales=replace(for_sale_inputs.sales, phases=(SalesPhase(50, 0, 24),)),
        )
        result = simulate_sales(inputs, for_sale_financing)

        assert any("release 50 units but total units is 100" in w for w in result.warnings)
        assert sum(m.units_closed for m in result.months) == 50

    def test_unclosed_units_warning(self, for_sale_inputs, for_sale_financing):
        """Units delivered too late to close within the horizon are flagged."""
        inputs = replace(
            for_sale_inputs,
            sales=replace(
                for_sale_inputs.sales,
                total_units=40,
                phases=(SalesPhase(40, 0, 55),),
            ),
        )
        result = simulate_sales(inputs, for_sale_financing)

        # Months 55-60 close 6 x 5 = 30 of 40 units
        assert result.units_unclosed == 10
        assert any("remain unclosed" in w for w in result.warnings)
