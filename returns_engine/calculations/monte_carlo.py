"""Monte Carlo simulation of project IRR.

Rent, construction cost and cap rate are drawn independently per iteration
and fed through the development spread approximation (see sensitivity.py).
The output is an IRR distribution with nearest-rank percentiles.

Typical usage:
    from returns_engine.calculations.monte_carlo import MonteCarloConfig, run_monte_carlo

    config = MonteCarloConfig(n_iterations=1000, seed=42)
    result = run_monte_carlo(base, config)
    print(f"P50 IRR: {result.p50:.2%}")

Randomness comes only from the generator passed in (or one seeded from
config.seed), so runs with the same seed are identical.
"""

import concurrent.futures
import logging
import math
import multiprocessing
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

import numpy as np

from .sensitivity import RiskBase, perturbed_irr

logger = logging.getLogger(__name__)

PARAMETERS = ("rent_change", "cost_change", "cap_rate_change")


class DistributionType(str, Enum):
    """Supported probability distributions for inputs."""
    UNIFORM = "uniform"       # Equal probability between min and max
    NORMAL = "normal"         # Gaussian distribution
    TRIANGULAR = "triangular" # Triangular with mode (most likely value)


@dataclass
class InputDistribution:
    """Definition of a probability distribution for a perturbation.

    Attributes:
        parameter: One of rent_change, cost_change, cap_rate_change
        distribution: Type of probability distribution
        min_value: Minimum value (for uniform, triangular)
        max_value: Maximum value (for uniform, triangular)
        mean: Mean value (for normal)
        std: Standard deviation (for normal)
        mode: Most likely value (for triangular)
        clip_min: Optional hard floor on sampled values
        clip_max: Optional hard ceiling on sampled values
    """
    parameter: str
    distribution: DistributionType

    min_value: Optional[float] = None
    max_value: Optional[float] = None
    mean: Optional[float] = None
    std: Optional[float] = None
    mode: Optional[float] = None

    clip_min: Optional[float] = None
    clip_max: Optional[float] = None

    def sample(self, rng: np.random.Generator) -> float:
        """Draw a random sample from this distribution.

        Args:
            rng: NumPy random number generator

        Returns:
            Sampled value
        """
        if self.distribution == DistributionType.UNIFORM:
            value = rng.uniform(self.min_value, self.max_value)
        elif self.distribution == DistributionType.NORMAL:
            value = rng.normal(self.mean, self.std)
        elif self.distribution == DistributionType.TRIANGULAR:
            if self.min_value == self.max_value:
                value = self.min_value
            else:
                value = rng.triangular(self.min_value, self.mode, self.max_value)
        else:
            raise ValueError(f"Unknown distribution type: {self.distribution}")

        if self.clip_min is not None:
            value = max(value, self.clip_min)
        if self.clip_max is not None:
            value = min(value, self.clip_max)

        return float(value)


def volatility_distributions(
    rent_volatility: float = 0.10,
    cost_volatility: float = 0.05,
    cap_rate_volatility_bps: float = 50,
) -> List[InputDistribution]:
    """Standard perturbation set.

    Rent changes are normal with std = volatility / 3, so nearly all draws
    stay within the volatility band. Cost and cap rate changes are uniform
    over +/- their volatility.

    Args:
        rent_volatility: Rent band as a fraction (0.10 = 10%).
        cost_volatility: Cost band as a fraction.
        cap_rate_volatility_bps: Cap rate band in basis points.

    Returns:
        Distributions for rent_change, cost_change and cap_rate_change.
    """
    cap_band = cap_rate_volatility_bps / 10_000
    return [
        InputDistribution("rent_change", DistributionType.NORMAL, mean=0.0, std=rent_volatility / 3),
        InputDistribution(
            "cost_change", DistributionType.UNIFORM, min_value=-cost_volatility, max_value=cost_volatility
        ),
        InputDistribution(
            "cap_rate_change", DistributionType.UNIFORM, min_value=-cap_band, max_value=cap_band
        ),
    ]


@dataclass
class MonteCarloConfig:
    """Configuration for Monte Carlo simulation.

    Attributes:
        distributions: Perturbation distributions (parameters not listed stay at 0)
        n_iterations: Number of simulation iterations
        seed: Random seed for reproducibility (ignored when a generator is passed)
        target_irr: Target IRR for the exceedance probability
        parallel: Whether to run iterations in parallel
        max_workers: Max parallel workers (None = CPU count, at most 8)
    """
    distributions: List[InputDistribution] = field(default_factory=volatility_distributions)
    n_iterations: int = 1000
    seed: Optional[int] = None
    target_irr: float = 0.10
    parallel: bool = False
    max_workers: Optional[int] = None


@dataclass
class IterationResult:
    """Result from a single Monte Carlo iteration."""
    iteration: int
    inputs: Dict[str, float]  # Sampled perturbations
    irr: float


@dataclass
class SensitivityResult:
    """Correlation of one sampled perturbation with simulated IRR."""
    parameter: str
    correlation: float


@dataclass
class MonteCarloResult:
    """Complete Monte Carlo simulation results."""

    n_iterations: int  # Valid iterations
    iterations: List[IterationResult]

    mean: float
    std: float
    median: float
    min: float
    max: float
    p10: float  # Nearest-rank: sorted[floor(n x 0.1)]
    p50: float
    p90: float
    percentiles: Dict[int, float]  # 5th, 10th, 25th, 50th, 75th, 90th, 95th (interpolated)

    sensitivities: List[SensitivityResult]

    prob_positive: float  # P(IRR > 0)
    prob_above_target: float
    target_irr: float
    n_discarded: int = 0  # Iterations dropped for a non-finite IRR

    def get_irr_distribution(self) -> np.ndarray:
        """Get array of all simulated IRR values."""
        return np.array([r.irr for r in self.iterations])

    def summary(self) -> str:
        """Return a formatted summary of results."""
        lines = [
            "=" * 60,
            "MONTE CARLO SIMULATION RESULTS",
            "=" * 60,
            f"Iterations: {self.n_iterations:,}",
            "",
            "PROJECT IRR",
            "-" * 40,
            f"  Mean:   {self.mean:>8.2%}",
            f"  Median: {self.median:>8.2%}",
            f"  Std:    {self.std:>8.2%}",
            f"  Min:    {self.min:>8.2%}",
            f"  Max:    {self.max:>8.2%}",
            f"  P10:    {self.p10:>8.2%}",
            f"  P50:    {self.p50:>8.2%}",
            f"  P90:    {self.p90:>8.2%}",
            "",
            "PROBABILITIES",
            "-" * 40,
            f"  P(IRR > 0%):      {self.prob_positive:>6.1%}",
            f"  P(IRR > {self.target_irr:.0%}):    {self.prob_above_target:>6.1%}",
            "",
            "SENSITIVITY (Correlation with IRR)",
            "-" * 40,
        ]

        sorted_sens = sorted(self.sensitivities, key=lambda s: abs(s.correlation), reverse=True)
        for s in sorted_sens:
            lines.append(f"  {s.parameter:<30} {s.correlation:>+6.3f}")

        lines.append("=" * 60)
        return "\n".join(lines)


def _run_single_iteration(
    iteration: int,
    base: RiskBase,
    distributions: List[InputDistribution],
    seed: int,
) -> IterationResult:
    """Run a single Monte Carlo iteration.

    Args:
        iteration: Iteration number
        base: Base case
        distributions: Perturbation distributions
        seed: Random seed for this iteration

    Returns:
        IterationResult with sampled perturbations and IRR
    """
    rng = np.random.default_rng(seed)

    sampled = {name: 0.0 for name in PARAMETERS}
    for dist in distributions:
        sampled[dist.parameter] = dist.sample(rng)

    irr = perturbed_irr(
        base,
        rent_change=sampled["rent_change"],
        cost_change=sampled["cost_change"],
        cap_change=sampled["cap_rate_change"],
    )
    return IterationResult(iteration=iteration, inputs=sampled, irr=irr)


def nearest_rank(sorted_values: np.ndarray, fraction: float) -> float:
    """Value at index floor(n x fraction) of an ascending array."""
    index = min(len(sorted_values) - 1, math.floor(len(sorted_values) * fraction))
    return float(sorted_values[index])


def run_monte_carlo(
    base: RiskBase,
    config: Optional[MonteCarloConfig] = None,
    rng: Optional[np.random.Generator] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> MonteCarloResult:
    """Run Monte Carlo simulation.

    Args:
        base: Base case from build_risk_base()
        config: Simulation configuration
        rng: Generator for the per-iteration seeds; defaults to one seeded
            from config.seed
        progress_callback: Optional callback(completed, total) for progress updates

    Returns:
        MonteCarloResult with all statistics and iteration data

    Raises:
        ValueError: If n_iterations < 1, a distribution names an unknown
            parameter, or no iteration produced a finite IRR.
    """
    config = config or MonteCarloConfig()
    if config.n_iterations < 1:
        raise ValueError(f"n_iterations must be >= 1, got {config.n_iterations}")
    for dist in config.distributions:
        if dist.parameter not in PARAMETERS:
            raise ValueError(f"Unknown Monte Carlo parameter: {dist.parameter!r}")

    # Master RNG for reproducibility
    master_rng = rng if rng is not None else np.random.default_rng(config.seed)

    # Generate seeds for each iteration
    iteration_seeds = master_rng.integers(0, 2**31, size=config.n_iterations)

    results: List[IterationResult] = []

    if config.parallel and config.n_iterations > 10:
        max_workers = config.max_workers or min(multiprocessing.cpu_count(), 8)

        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(
                    _run_single_iteration,
                    i,
                    base,
                    config.distributions,
                    int(iteration_seeds[i]),
                )
                for i in range(config.n_iterations)
            ]

            for i, future in enumerate(concurrent.futures.as_completed(futures)):
                results.append(future.result())
                if progress_callback:
                    progress_callback(i + 1, config.n_iterations)
    else:
        for i in range(config.n_iterations):
            results.append(
                _run_single_iteration(i, base, config.distributions, int(iteration_seeds[i]))
            )
            if progress_callback:
                progress_callback(i + 1, config.n_iterations)

    # Sort by iteration number
    results.sort(key=lambda r: r.iteration)

    valid_results = [r for r in results if math.isfinite(r.irr)]
    n_discarded = len(results) - len(valid_results)
    if n_discarded:
        logger.warning("Discarded %d Monte Carlo iterations with non-finite IRR", n_discarded)
    if len(valid_results) == 0:
        raise ValueError("All iterations failed - check input distributions")

    irrs = np.array([r.irr for r in valid_results])
    sorted_irrs = np.sort(irrs)

    percentile_levels = [5, 10, 25, 50, 75, 90, 95]
    percentiles = {p: float(np.percentile(irrs, p)) for p in percentile_levels}

    sensitivities = []
    for dist in config.distributions:
        values = np.array([r.inputs[dist.parameter] for r in valid_results])
        if np.std(values) > 0 and np.std(irrs) > 0:
            correlation = float(np.corrcoef(values, irrs)[0, 1])
        else:
            correlation = 0.0
        sensitivities.append(SensitivityResult(parameter=dist.parameter, correlation=correlation))

    logger.debug("Monte Carlo: %d iterations, mean IRR %.4f", len(valid_results), float(np.mean(irrs)))

    return MonteCarloResult(
        n_iterations=len(valid_results),
        iterations=results,
        mean=float(np.mean(irrs)),
        std=float(np.std(irrs)),
        median=float(np.median(irrs)),
        min=float(np.min(irrs)),
        max=float(np.max(irrs)),
        p10=nearest_rank(sorted_irrs, 0.10),
        p50=nearest_rank(sorted_irrs, 0.50),
        p90=nearest_rank(sorted_irrs, 0.90),
        percentiles=percentiles,
        sensitivities=sensitivities,
        prob_positive=float(np.mean(irrs > 0)),
        prob_above_target=float(np.mean(irrs > config.target_irr)),
        target_irr=config.target_irr,
        n_discarded=n_discarded,
    )
