"""Internal rate of return and net present value."""

import logging
import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np
import numpy_financial as npf

logger = logging.getLogger(__name__)

MIN_RATE = -0.99
MAX_RATE = 10.0
NEWTON_GUESSES = (0.1, 0.0, -0.5, 0.5, -0.9, 0.9)
NEWTON_MAX_ITERATIONS = 100
BISECTION_MAX_ITERATIONS = 200
RATE_TOLERANCE = 1e-10


@dataclass(frozen=True)
class IRRResult:
    """IRR with an explicit validity flag.

    When is_valid is False, irr carries the degenerate indicator (-1.0 for a
    total loss, inf for an unbounded return, 0.0 otherwise) and message
    explains why.
    """

    irr: float
    is_valid: bool
    message: str = ""

    @property
    def value(self) -> float:
        """IRR for arithmetic use: the rate when valid, otherwise 0.0."""
        return self.irr if self.is_valid else 0.0


def _npv(rate: float, flows: np.ndarray, periods: np.ndarray) -> float:
    return float(np.sum(flows / (1 + rate) ** periods))


def _npv_derivative(rate: float, flows: np.ndarray, periods: np.ndarray) -> float:
    return float(np.sum(-periods * flows / (1 + rate) ** (periods + 1)))


def _in_range(rate: float) -> bool:
    return math.isfinite(rate) and MIN_RATE < rate < MAX_RATE


def _newton(flows: np.ndarray, periods: np.ndarray, guess: float) -> float | None:
    """Newton-Raphson from a single starting guess; None if it fails."""
    rate = guess
    for _ in range(NEWTON_MAX_ITERATIONS):
        value = _npv(rate, flows, periods)
        slope = _npv_derivative(rate, flows, periods)
        if slope == 0 or not math.isfinite(slope):
            return None
        new_rate = rate - value / slope
        if not _in_range(new_rate):
            return None
        if abs(new_rate - rate) < RATE_TOLERANCE:
            return new_rate
        rate = new_rate
    return None


def _bisection(flows: np.ndarray, periods: np.ndarray) -> float | None:
    """Bisection over the valid rate range; None without a sign change."""
    low, high = MIN_RATE, MAX_RATE
    npv_low = _npv(low, flows, periods)
    npv_high = _npv(high, flows, periods)
    if npv_low * npv_high > 0:
        return None

    mid = (low + high) / 2
    for _ in range(BISECTION_MAX_ITERATIONS):
        mid = (low + high) / 2
        npv_mid = _npv(mid, flows, periods)
        if npv_mid == 0 or (high - low) / 2 < RATE_TOLERANCE:
            return mid
        if npv_low * npv_mid < 0:
            high = mid
        else:
            low, npv_low = mid, npv_mid
    return mid


def calculate_irr(cash_flows: Sequence[float]) -> IRRResult:
    """Calculate IRR of a periodic cash flow series (period 0 first).

    Degenerate series are reported rather than solved:
    - fewer than two flows
    - no positive flows (total loss, irr = -1.0)
    - no negative flows (unbounded return, irr = inf)

    Otherwise numpy_financial.irr is tried first, then Newton-Raphson from
    several starting guesses, then bisection over (-99%, 1000%).

    Args:
        cash_flows: Cash flows, negative for contributions.

    Returns:
        IRRResult.

    Example:
        >>> calculate_irr([-1000, 100, 100, 1100]).irr
        0.1  # Approximate
    """
    if len(cash_flows) == 0:
        return IRRResult(0.0, False, "No cash flows provided")
    if len(cash_flows) < 2:
        return IRRResult(0.0, False, "Need at least 2 cash flows")

    flows = np.asarray(cash_flows, dtype=float)
    if not np.all(np.isfinite(flows)):
        return IRRResult(0.0, False, "Cash flows contain non-finite values")

    has_positive = bool(np.any(flows > 0))
    has_negative = bool(np.any(flows < 0))
    if not has_positive:
        return IRRResult(-1.0, False, "No positive cash flows - 100% loss")
    if not has_negative:
        return IRRResult(math.inf, False, "No negative cash flows - infinite return")

    periods = np.arange(len(flows), dtype=float)

    rate = float(npf.irr(flows))
    if _in_range(rate):
        return IRRResult(rate, True)

    for guess in NEWTON_GUESSES:
        rate = _newton(flows, periods, guess)
        if rate is not None:
            return IRRResult(rate, True)

    rate = _bisection(flows, periods)
    if rate is not None:
        return IRRResult(rate, True)

    logger.warning("IRR did not converge for %d cash flows", len(flows))
    if flows.sum() < 0:
        return IRRResult(0.0, False, "Investment loses money overall")
    return IRRResult(0.0, False, "IRR calculation did not converge")


def calculate_npv(rate: float, cash_flows: Sequence[float]) -> float:
    """Net present value with the first flow undiscounted.

    Args:
        rate: Periodic discount rate.
        cash_flows: Cash flows starting at period 0.

    Returns:
        NPV, or 0.0 for an empty series or a rate of -100%.
    """
    if len(cash_flows) == 0 or rate <= -1:
        return 0.0
    return float(npf.npv(rate, cash_flows))
