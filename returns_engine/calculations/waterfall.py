"""LP/GP equity waterfall.

Distributable cash is allocated in strict order:

1. Return of LP capital, then GP co-invested capital
2. Compounded preferred return, LP first, then GP on its co-investment
3. GP catch-up toward the target promote share (optional)
4. Residual split under the tier bracketing the realized project IRR

Every step is recorded so the allocation can be audited, and the step
amounts always add up to the distributable total.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from ..models.compensation import EquityStructure, WaterfallTier

logger = logging.getLogger(__name__)

SHARE_TOLERANCE = 1e-6
MAX_PREFERRED_RETURN = 0.20


@dataclass(frozen=True)
class DistributionStep:
    """One allocation step of the waterfall."""

    name: str
    lp_amount: float
    gp_amount: float
    remaining: float  # Cash left after this step

    @property
    def total(self) -> float:
        return self.lp_amount + self.gp_amount


@dataclass
class DistributionResult:
    """LP/GP allocation with its step-by-step audit trail."""

    total_distributable: float
    lp_total: float
    gp_total: float
    steps: List[DistributionStep]
    lp_capital: float
    gp_capital: float
    lp_multiple: float
    gp_multiple: float
    lp_irr: float  # Approximate: multiple ** (1 / hold) - 1
    gp_irr: float
    selected_tier: WaterfallTier | None = None
    warnings: List[str] = field(default_factory=list)

    @property
    def gp_promote(self) -> float:
        """GP distributions in excess of its own capital and preferred return."""
        return sum(
            s.gp_amount for s in self.steps
            if s.name.startswith("GP Catch-up") or s.name.startswith("Promote Split")
        )

    @property
    def lp_percent(self) -> float:
        return self.lp_total / self.total_distributable if self.total_distributable > 0 else 0.0

    @property
    def gp_percent(self) -> float:
        return self.gp_total / self.total_distributable if self.total_distributable > 0 else 0.0


def validate_waterfall_structure(equity: EquityStructure) -> List[str]:
    """Check the equity structure and tiers for structural problems.

    Returns:
        List of error messages (empty if valid).
    """
    errors = []

    if abs(equity.lp_share + equity.gp_share - 1.0) > SHARE_TOLERANCE:
        errors.append(
            f"LP and GP equity shares must total 100% (got {(equity.lp_share + equity.gp_share) * 100:g}%)"
        )
    if not 0 <= equity.preferred_return <= MAX_PREFERRED_RETURN:
        errors.append(f"Preferred return must be between 0% and {MAX_PREFERRED_RETURN * 100:g}%")
    if not 0 <= equity.gp_coinvest <= 1:
        errors.append("GP co-investment must be between 0% and 100%")
    if not 0 <= equity.catch_up_percentage <= 1:
        errors.append("Catch-up percentage must be between 0% and 100%")

    tiers = equity.tiers
    if not tiers:
        errors.append("At least one waterfall tier is required")
        return errors

    for i, tier in enumerate(tiers, start=1):
        if abs(tier.lp_share + tier.gp_share - 1.0) > SHARE_TOLERANCE:
            errors.append(f"Tier {i} ({tier.label}): LP and GP shares must total 100%")
        if tier.max_irr <= tier.min_irr:
            errors.append(f"Tier {i} ({tier.label}): maximum IRR must exceed minimum IRR")

    for i, (current, following) in enumerate(zip(tiers, tiers[1:]), start=1):
        if abs(current.max_irr - following.min_irr) > SHARE_TOLERANCE:
            kind = "have a gap" if following.min_irr > current.max_irr else "overlap"
            errors.append(
                f"Tiers {i} and {i + 1} {kind} between {current.max_irr:.2%} and {following.min_irr:.2%}"
            )
        if following.gp_share < current.gp_share:
            errors.append(f"Tier {i + 1} GP share is lower than tier {i}")

    return errors


def select_tier(irr: float, tiers: Sequence[WaterfallTier]) -> Tuple[WaterfallTier, bool]:
    """Pick the promote tier for a realized IRR.

    Tiers are half-open [min_irr, max_irr). An IRR at or above the last
    tier's minimum falls back to the last tier, and an IRR below the first
    tier uses the first tier. Any other IRR (one that lands in a gap) uses
    the closest tier and is reported as inexact.

    Args:
        irr: Realized project IRR.
        tiers: Ordered tiers.

    Returns:
        (tier, exact) where exact is False for the closest-tier fallback.

    Raises:
        ValueError: If no tiers are given.
    """
    if not tiers:
        raise ValueError("Waterfall requires at least one tier")

    for tier in tiers:
        if tier.min_irr <= irr < tier.max_irr:
            return tier, True

    if irr >= tiers[-1].min_irr:
        return tiers[-1], True
    if irr < tiers[0].min_irr:
        return tiers[0], True

    def distance(tier: WaterfallTier) -> float:
        if irr < tier.min_irr:
            return tier.min_irr - irr
        return irr - tier.max_irr

    return min(tiers, key=distance), False


def _tier_step_name(tier: WaterfallTier, irr: float) -> str:
    if irr >= tier.max_irr:
        return f"Promote Split (>{tier.min_irr * 100:g}% IRR)"
    return f"Promote Split ({tier.label} IRR)"


def _approximate_irr(multiple: float, capital: float, hold_period: int) -> float:
    if capital <= 0 or hold_period <= 0:
        return 0.0
    if multiple <= 0:
        return -1.0
    return multiple ** (1 / hold_period) - 1


def allocate_waterfall(
    total_distributable: float,
    initial_equity: float,
    equity: EquityStructure,
    hold_period: int,
    project_irr: float,
) -> DistributionResult:
    """Allocate distributable cash between LP and GP.

    Args:
        total_distributable: Sum of positive cash flows after year 0.
        initial_equity: Total equity contributed at year 0.
        equity: Partnership terms and promote tiers.
        hold_period: Years, for compounding the preferred return.
        project_irr: Realized project IRR used for tier selection.

    Returns:
        DistributionResult with every step recorded.

    Raises:
        ValueError: If the tier list is empty.

    Example:
        >>> result = allocate_waterfall(15_000_000, 7_000_000, EquityStructure(), 10, 0.10)
        >>> result.lp_total + result.gp_total
        15000000.0
    """
    warnings = validate_waterfall_structure(equity)
    for message in warnings:
        logger.warning("Waterfall structure: %s", message)

    if total_distributable < 0:
        warnings.append("Distributable cash was negative and was clamped to 0")
        total_distributable = 0.0

    lp_capital = initial_equity * equity.lp_share
    gp_capital = initial_equity * equity.gp_share * equity.gp_coinvest

    steps: List[DistributionStep] = []
    remaining = total_distributable
    lp_total = 0.0
    gp_total = 0.0

    def record(name: str, lp_amount: float, gp_amount: float) -> None:
        nonlocal remaining, lp_total, gp_total
        remaining -= lp_amount + gp_amount
        lp_total += lp_amount
        gp_total += gp_amount
        steps.append(DistributionStep(name, lp_amount, gp_amount, remaining))

    # Step 1: Return of capital
    record("Return of LP Capital", min(remaining, lp_capital), 0.0)
    if gp_capital > 0 and remaining > 0:
        record("Return of GP Capital", 0.0, min(remaining, gp_capital))

    # Step 2: Preferred return, compounded over the hold
    pref_factor = (1 + equity.preferred_return) ** hold_period - 1
    record("LP Preferred Return", min(remaining, lp_capital * pref_factor), 0.0)
    if gp_capital > 0 and remaining > 0:
        record("GP Preferred Return", 0.0, min(remaining, gp_capital * pref_factor))

    # Step 3: GP catch-up
    if equity.catch_up and remaining > 0:
        distributed = total_distributable - remaining
        needed = max(0.0, equity.target_gp_promote * (distributed + remaining) - gp_total)
        catch_up = min(remaining, needed, remaining * equity.catch_up_percentage)
        if catch_up > 0:
            record("GP Catch-up", 0.0, catch_up)

    # Step 4: Residual split under the selected tier
    tier, exact = select_tier(project_irr, equity.tiers)
    if not exact:
        message = (
            f"Project IRR {project_irr:.2%} is not covered by any tier; "
            f"closest tier {tier.label} was used"
        )
        logger.warning(message)
        warnings.append(message)
    residual = remaining
    lp_amount = residual * tier.lp_share
    record(_tier_step_name(tier, project_irr), lp_amount, residual - lp_amount)

    logger.debug(
        "Waterfall: LP %.0f, GP %.0f, tier %s", lp_total, gp_total, tier.label
    )

    lp_multiple = lp_total / lp_capital if lp_capital > 0 else 0.0
    gp_multiple = gp_total / gp_capital if gp_capital > 0 else 0.0

    return DistributionResult(
        total_distributable=total_distributable,
        lp_total=lp_total,
        gp_total=gp_total,
        steps=steps,
        lp_capital=lp_capital,
        gp_capital=gp_capital,
        lp_multiple=lp_multiple,
        gp_multiple=gp_multiple,
        lp_irr=_approximate_irr(lp_multiple, lp_capital, hold_period),
        gp_irr=_approximate_irr(gp_multiple, gp_capital, hold_period),
        selected_tier=tier,
        warnings=warnings,
    )
