"""Tests for the LP/GP equity waterfall."""

from dataclasses import replace

import pytest

from returns_engine.calculations.waterfall import (
    allocate_waterfall,
    select_tier,
    validate_waterfall_structure,
)
from returns_engine.models.compensation import EquityStructure, WaterfallTier


@pytest.fixture
def default_tiers():
    return EquityStructure().tiers


@pytest.fixture
def no_catch_up():
    return EquityStructure(catch_up=False)


class TestCapitalAndPreferredReturn:
    """Tests for the first two waterfall steps."""

    def test_reference_scenario(self, no_catch_up):
        """$15M distributable on $7M equity over 10 years at 10% IRR."""
        result = allocate_waterfall(15_000_000, 7_000_000, no_catch_up, 10, 0.10)
        steps = {s.name: s for s in result.steps}

        assert result.lp_capital == pytest.approx(6_300_000)
        assert result.gp_capital == pytest.approx(70_000)
        assert steps["Return of LP Capital"].lp_amount == pytest.approx(6_300_000)
        assert steps["Return of GP Capital"].gp_amount == pytest.approx(70_000)
        lp_pref = 6_300_000 * (1.08 ** 10 - 1)
        gp_pref = 70_000 * (1.08 ** 10 - 1)
        residual = 15_000_000 - 6_300_000 - 70_000 - lp_pref - gp_pref
        assert steps["LP Preferred Return"].lp_amount == pytest.approx(lp_pref)
        assert steps["GP Preferred Return"].gp_amount == pytest.approx(gp_pref)

        promote = steps["Promote Split (8%-12% IRR)"]
        assert promote.total == pytest.approx(residual)
        assert promote.lp_amount == pytest.approx(residual * 0.80)
        assert result.lp_total + result.gp_total == pytest.approx(15_000_000)

    def test_step_order(self):
        """Steps run capital, preferred return, catch-up, promote."""
        result = allocate_waterfall(15_000_000, 7_000_000, EquityStructure(), 10, 0.10)

        assert [s.name for s in result.steps] == [
            "Return of LP Capital",
            "Return of GP Capital",
            "LP Preferred Return",
            "GP Preferred Return",
            "GP Catch-up",
            "Promote Split (8%-12% IRR)",
        ]

    def test_remaining_runs_down_to_zero(self):
        """Each step records the cash left after it."""
        result = allocate_waterfall(15_000_000, 7_000_000, EquityStructure(), 10, 0.10)

        running = 15_000_000
        for step in result.steps:
            running -= step.total
            assert step.remaining == pytest.approx(running)
        assert result.steps[-1].remaining == pytest.approx(0, abs=1e-6)

    def test_insufficient_cash_returns_lp_capital_only(self, no_catch_up):
        """Cash below LP capital goes entirely to LP capital."""
        result = allocate_waterfall(5_000_000, 7_000_000, no_catch_up, 10, 0.0)

        assert result.lp_total == pytest.approx(5_000_000)
        assert result.gp_total == 0
        assert [s.name for s in result.steps] == [
            "Return of LP Capital",
            "LP Preferred Return",
            "Promote Split (0%-8% IRR)",
        ]

    def test_no_gp_coinvest_skips_gp_steps(self):
        """Without a GP co-investment there is no GP capital or pref."""
        equity = EquityStructure(gp_coinvest=0.0, catch_up=False)
        result = allocate_waterfall(15_000_000, 7_000_000, equity, 10, 0.10)

        names = [s.name for s in result.steps]
        assert "Return of GP Capital" not in names
        assert "GP Preferred Return" not in names
        assert result.gp_multiple == 0


class TestCatchUp:
    """Tests for the GP catch-up step."""

    def test_catch_up_reaches_target_share(self):
        """GP catches up to exactly 20% of distributions when cash allows."""
        result = allocate_waterfall(30_000_000, 10_000_000, EquityStructure(), 5, 0.10)

        gp_through_catch_up = 0.0
        for step in result.steps:
            gp_through_catch_up += step.gp_amount
            if step.name == "GP Catch-up":
                break
        assert gp_through_catch_up == pytest.approx(6_000_000)

        promote = result.steps[-1]
        assert promote.gp_amount == pytest.approx(promote.total * 0.20)

    def test_catch_up_limited_by_percentage(self):
        """Catch-up takes at most the catch-up percentage of remaining cash."""
        result = allocate_waterfall(15_000_000, 7_000_000, EquityStructure(), 10, 0.10)
        catch_up = next(s for s in result.steps if s.name == "GP Catch-up")

        remaining_before = 1_247_647.6
        assert catch_up.gp_amount == pytest.approx(remaining_before * 0.5, abs=0.1)

    def test_catch_up_counts_as_promote(self):
        """Promote includes catch-up and the GP share of the residual split."""
        result = allocate_waterfall(30_000_000, 10_000_000, EquityStructure(), 5, 0.10)
        expected = sum(
            s.gp_amount for s in result.steps
            if s.name in ("GP Catch-up", result.steps[-1].name)
        )
        assert result.gp_promote == pytest.approx(expected)


class TestConservation:
    """Allocations always add up to the distributable total."""

    @pytest.mark.parametrize(
        "total,equity_amount,hold,irr",
        [
            (15_000_000, 7_000_000, 10, 0.10),
            (30_000_000, 10_000_000, 5, 0.20),
            (1_000, 10_000_000, 10, -0.5),
            (0, 5_000_000, 7, 0.0),
            (50_000_000, 0, 3, 2.0),
        ],
    )
    def test_lp_plus_gp_equals_total(self, total, equity_amount, hold, irr):
        result = allocate_waterfall(total, equity_amount, EquityStructure(), hold, irr)

        assert abs(result.lp_total + result.gp_total - total) < 1e-6
        assert abs(sum(s.total for s in result.steps) - total) < 1e-6
        assert result.lp_total >= 0
        assert result.gp_total >= 0

    def test_negative_distributable_is_clamped(self):
        """Negative distributable cash is treated as zero with a warning."""
        result = allocate_waterfall(-100, 7_000_000, EquityStructure(), 10, 0.10)

        assert result.total_distributable == 0
        assert result.lp_total == 0 and result.gp_total == 0
        assert any("clamped" in w for w in result.warnings)

    def test_percentages(self, no_catch_up):
        result = allocate_waterfall(15_000_000, 7_000_000, no_catch_up, 10, 0.10)
        assert result.lp_percent + result.gp_percent == pytest.approx(1.0)

    def test_approximate_partner_irr(self, no_catch_up):
        """Partner IRR is annualized from the multiple over the hold."""
        result = allocate_waterfall(15_000_000, 7_000_000, no_catch_up, 10, 0.10)
        assert result.lp_irr == pytest.approx(result.lp_multiple ** 0.1 - 1)


class TestTierSelection:
    """Tests for picking the promote tier."""

    @pytest.mark.parametrize(
        "irr,expected_index",
        [
            (0.0, 0),
            (0.05, 0),
            (0.08, 1),
            (0.1199, 1),
            (0.12, 2),
            (0.15, 3),
            (0.99, 3),
            (1.5, 3),
            (-0.05, 0),
        ],
    )
    def test_default_tiers(self, default_tiers, irr, expected_index):
        """Half-open tiers with fallback above the last and below the first."""
        tier, exact = select_tier(irr, default_tiers)

        assert tier == default_tiers[expected_index]
        assert exact

    def test_gap_uses_closest_tier(self):
        """An IRR in a gap between tiers uses the nearest tier, flagged inexact."""
        tiers = (
            WaterfallTier(0.0, 0.08, 0.9, 0.1),
            WaterfallTier(0.10, 0.20, 0.8, 0.2),
        )
        tier, exact = select_tier(0.095, tiers)

        assert tier == tiers[1]
        assert not exact

    def test_gap_warning_in_allocation(self):
        tiers = (
            WaterfallTier(0.0, 0.08, 0.9, 0.1),
            WaterfallTier(0.10, 0.20, 0.8, 0.2),
        )
        equity = EquityStructure(tiers=tiers, catch_up=False)
        result = allocate_waterfall(15_000_000, 7_000_000, equity, 10, 0.095)

        assert result.selected_tier == tiers[1]
        assert any("not covered by any tier" in w for w in result.warnings)

    def test_empty_tiers_raise(self):
        with pytest.raises(ValueError):
            select_tier(0.1, ())

    def test_allocation_with_empty_tiers_raises(self):
        with pytest.raises(ValueError):
            allocate_waterfall(15_000_000, 7_000_000, EquityStructure(tiers=()), 10, 0.1)

    def test_above_last_tier_step_name(self):
        """IRR beyond the last tier's maximum is labelled as open-ended."""
        result = allocate_waterfall(15_000_000, 7_000_000, EquityStructure(), 10, 1.5)
        assert result.steps[-1].name == "Promote Split (>15% IRR)"

    def test_single_tier(self, single_tier_equity):
        """A single tier covering all IRRs splits 90/10."""
        result = allocate_waterfall(15_000_000, 7_000_000, single_tier_equity, 10, 0.25)
        promote = result.steps[-1]

        assert promote.name == "Promote Split (0%-100% IRR)"
        assert promote.lp_amount == pytest.approx(promote.total * 0.9)


class TestStructureValidation:
    """Tests for equity structure validation."""

    def test_default_structure_is_valid(self):
        assert validate_waterfall_structure(EquityStructure()) == []

    def test_shares_must_total_100(self):
        errors = validate_waterfall_structure(EquityStructure(lp_share=0.8, gp_share=0.1))
        assert any("must total 100%" in e for e in errors)

    def test_preferred_return_range(self):
        errors = validate_waterfall_structure(EquityStructure(preferred_return=0.25))
        assert any("Preferred return" in e for e in errors)

    def test_coinvest_and_catch_up_ranges(self):
        errors = validate_waterfall_structure(
            EquityStructure(gp_coinvest=1.5, catch_up_percentage=-0.1)
        )
        assert any("co-investment" in e for e in errors)
        assert any("Catch-up percentage" in e for e in errors)

    def test_no_tiers(self):
        errors = validate_waterfall_structure(EquityStructure(tiers=()))
        assert "At least one waterfall tier is required" in errors

    def test_tier_shares_and_bounds(self):
        tiers = (WaterfallTier(0.10, 0.05, 0.7, 0.2),)
        errors = validate_waterfall_structure(EquityStructure(tiers=tiers))

        assert any("Tier 1" in e and "must total 100%" in e for e in errors)
        assert any("maximum IRR must exceed minimum IRR" in e for e in errors)

    def test_gap_and_overlap(self):
        gap = (WaterfallTier(0.0, 0.08, 0.9, 0.1), WaterfallTier(0.10, 1.0, 0.8, 0.2))
        overlap = (WaterfallTier(0.0, 0.10, 0.9, 0.1), WaterfallTier(0.08, 1.0, 0.8, 0.2))

        gap_errors = validate_waterfall_structure(EquityStructure(tiers=gap))
        overlap_errors = validate_waterfall_structure(EquityStructure(tiers=overlap))

        assert any("Tiers 1 and 2 have a gap" in e for e in gap_errors)
        assert any("Tiers 1 and 2 overlap" in e for e in overlap_errors)

    def test_decreasing_gp_share(self):
        tiers = (WaterfallTier(0.0, 0.08, 0.8, 0.2), WaterfallTier(0.08, 1.0, 0.9, 0.1))
        errors = validate_waterfall_structure(EquityStructure(tiers=tiers))
        assert "Tier 2 GP share is lower than tier 1" in errors

    def test_structure_problems_are_warnings_in_allocation(self):
        """Allocation still runs and carries structure messages as warnings."""
        equity = replace(EquityStructure(), preferred_return=0.5)
        result = allocate_waterfall(15_000_000, 7_000_000, equity, 10, 0.10)

        assert any("Preferred return" in w for w in result.warnings)
        assert result.lp_total + result.gp_total == pytest.approx(15_000_000)
