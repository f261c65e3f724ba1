"""Tests for annual cash flow generation."""

import math
from dataclasses import replace

import pytest

from returns_engine.calculations.cashflow import (
    CASH_FLOW_GENERATORS,
    generate_cash_flows,
    parking_revenue_year1,
)
from returns_engine.calculations.costs import calculate_costs
from returns_engine.calculations.debt import calculate_financing
from returns_engine.models.lookups import EscalationPattern, PropertyType


def _run(inputs):
    costs = calculate_costs(inputs)
    financing = calculate_financing(costs, inputs)
    return generate_cash_flows(inputs, costs, financing)


class TestCashFlowShape:
    """Tests for the common cash flow contract."""

    def test_year_zero_is_negative_equity(self, office_cash_flows, office_financing):
        """Year 0 is the equity contribution."""
        year0 = office_cash_flows.years[0]
        assert year0.year == 0
        assert year0.cash_flow == -office_financing.equity_required

    def test_one_row_per_hold_year(self, office_cash_flows):
        """Years 0 through the hold period."""
        assert [y.year for y in office_cash_flows.years] == list(range(0, 11))

    def test_cumulative_is_running_sum(self, office_cash_flows):
        """Cumulative cash flow accumulates year by year."""
        running = 0.0
        for year in office_cash_flows.years:
            running += year.cash_flow
            assert year.cumulative_cash_flow == pytest.approx(running)

    def test_every_archetype_has_a_generator(self):
        """Dispatch covers all property types."""
        assert set(CASH_FLOW_GENERATORS) == set(PropertyType)

    def test_to_frame(self, office_cash_flows):
        """Annual table is indexed by year."""
        frame = office_cash_flows.to_frame()

        assert list(frame.index) == list(range(0, 11))
        assert frame.loc[1, "noi"] == office_cash_flows.years[1].noi


class TestOfficeCashFlows:
    """Tests for office revenue and operations."""

    def test_year1_revenue(self, office_cash_flows):
        """Year 1 rent, vacancy, parking and NOI."""
        year1 = office_cash_flows.years[1]

        assert year1.rent == 35
        assert abs(year1.rental_revenue - 1_662_500) < 0.01  # 35 x 95% x 50,000
        assert abs(year1.gross_revenue - 1_870_625) < 0.01  # + 208,125 parking
        assert abs(year1.operating_expenses - 400_000) < 0.01
        assert abs(year1.noi - 1_470_625) < 0.01
        assert office_cash_flows.year1_noi == year1.noi

    def test_stepped_escalation(self, office_cash_flows):
        """Office rent steps up 10% every five years."""
        rents = [y.rent for y in office_cash_flows.years[1:]]

        assert rents[:5] == [35] * 5
        assert all(r == pytest.approx(38.5) for r in rents[5:])

    def test_annual_escalation(self, office_inputs):
        """Annual pattern compounds every year after year 1."""
        inputs = replace(
            office_inputs,
            escalations=replace(office_inputs.escalations, office_pattern=EscalationPattern.ANNUAL),
        )
        result = _run(inputs)

        assert result.years[2].rent == pytest.approx(35 * 1.03)
        assert result.years[3].rent == pytest.approx(35 * 1.03 ** 2)

    def test_expenses_escalate(self, office_cash_flows):
        """Operating expenses grow at the expense growth rate."""
        years = office_cash_flows.years
        assert years[2].operating_expenses == pytest.approx(400_000 * 1.025)

    def test_parking_revenue(self, office_inputs):
        """Reserved spaces fully paid, unreserved at occupancy."""
        assert parking_revenue_year1(office_inputs) == pytest.approx(208_125)


class TestRefinance:
    """Tests for the year-1 refinance event."""

    def test_shortfall_is_warned(self, office_cash_flows):
        """A permanent loan smaller than the construction payoff is flagged."""
        assert office_cash_flows.years[1].refinance_proceeds == 0
        assert any("short of construction loan payoff" in w for w in office_cash_flows.warnings)

    def test_positive_refinance_in_year1_only(self, office_inputs):
        """Excess permanent proceeds are distributed in year 1."""
        inputs = replace(
            office_inputs,
            permanent_loan=replace(office_inputs.permanent_loan, ltv=0.90),
        )
        costs = calculate_costs(inputs)
        financing = calculate_financing(costs, inputs)
        result = generate_cash_flows(inputs, costs, financing)

        expected = (
            result.permanent_loan.loan_amount
            - financing.construction_loan_amount
            - financing.construction_interest
        )
        assert expected > 0
        assert result.years[1].refinance_proceeds == pytest.approx(expected)
        assert all(y.refinance_proceeds == 0 for y in result.years[2:])


class TestExit:
    """Tests for the terminal-year sale."""

    def test_exit_proceeds(self, office_cash_flows):
        """Exit proceeds = sale - exit costs - loan payoff."""
        terminal = office_cash_flows.terminal

        assert terminal.sale_price == pytest.approx(terminal.noi / 0.065)
        assert terminal.exit_costs == pytest.approx(terminal.sale_price * 0.02)
        assert terminal.exit_proceeds == pytest.approx(
            terminal.sale_price - terminal.exit_costs - terminal.loan_payoff
        )
        assert terminal.operating_cash_flow == pytest.approx(terminal.noi - terminal.debt_service)

    def test_only_terminal_year_has_sale(self, office_cash_flows):
        """No sale before the final year."""
        assert all(y.sale_price == 0 for y in office_cash_flows.years[:-1])

    def test_zero_cap_rate_gives_zero_exit_value(self, office_inputs):
        """Cap rate 0 yields exit value 0 and a warning, never NaN."""
        inputs = replace(office_inputs, operating=replace(office_inputs.operating, cap_rate=0.0))
        result = _run(inputs)

        assert result.terminal.sale_price == 0
        assert "Exit cap rate is 0; exit value set to 0" in result.warnings
        assert all(math.isfinite(cf) for cf in result.cash_flows)
        assert result.permanent_loan.loan_amount == 0


class TestRetailCashFlows:
    """Tests for retail percentage rent."""

    def test_percentage_rent_over_breakpoint(self, retail_inputs):
        """Overage rent = (sales - natural breakpoint) x percentage."""
        result = _run(retail_inputs)
        year1 = result.years[1]

        # Sales 1,000 x 50,000 = 50M; breakpoint 35 x 50,000 / 5% = 35M
        overage = year1.gross_revenue - year1.rental_revenue - parking_revenue_year1(retail_inputs)
        assert overage == pytest.approx(750_000)

    def test_no_percentage_rent_below_breakpoint(self, retail_inputs):
        """Sales below the breakpoint produce no overage."""
        inputs = replace(
            retail_inputs,
            escalations=replace(retail_inputs.escalations, retail_sales_psf=400.0),
        )
        result = _run(inputs)
        year1 = result.years[1]

        assert year1.gross_revenue == pytest.approx(
            year1.rental_revenue + parking_revenue_year1(inputs)
        )

    def test_retail_annual_escalation(self, retail_inputs):
        """Retail rent escalates every year."""
        result = _run(retail_inputs)
        assert result.years[2].rent == pytest.approx(35 * 1.03)


class TestApartmentCashFlows:
    """Tests for apartment revenue."""

    def test_year1_revenue_and_opex(self, apartment_inputs):
        """Monthly rent per SF, other income per unit, opex per unit."""
        result = _run(apartment_inputs)
        year1 = result.years[1]

        assert year1.rental_revenue == pytest.approx(2.5 * 0.95 * 65_000 * 12)
        other_income = 50 * 65 * 12
        assert year1.gross_revenue == pytest.approx(
            year1.rental_revenue + other_income + parking_revenue_year1(apartment_inputs)
        )
        assert year1.operating_expenses == pytest.approx(5_000 * 65)

    def test_blended_rent_growth(self, apartment_inputs):
        """Renewals at full increase, turnover at a loss-to-lease discount."""
        result = _run(apartment_inputs)

        renewal = 2.5 * 1.03
        expected = renewal * 0.5 + renewal * (1 - 0.02) * 0.5
        assert result.years[2].rent == pytest.approx(expected)


class TestDispatch:
    """Tests for archetype dispatch."""

    def test_unknown_property_type(self, office_inputs, office_costs, office_financing):
        """A property type without a generator raises."""
        inputs = replace(office_inputs, property_type="warehouse")

        with pytest.raises(ValueError):
            generate_cash_flows(inputs, office_costs, office_financing)

    def test_for_sale_dispatch(self, for_sale_inputs):
        """For-sale projects are simulated and aggregated by year."""
        result = _run(for_sale_inputs)

        assert result.property_type == PropertyType.FOR_SALE
        assert result.for_sale is not None
        assert result.hold_period == 5
        assert sum(y.units_closed for y in result.years) == 100
