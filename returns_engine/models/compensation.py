"""GP compensation structures: equity waterfall and sponsor fees."""

from dataclasses import dataclass, field
from typing import Tuple, Union

from .lookups import (
    DEFAULT_WATERFALL_TIERS,
    DevelopmentFeePayout,
    DispositionFeeStructure,
    FeeStructureType,
)


@dataclass(frozen=True)
class WaterfallTier:
    """Promote tier applied when project IRR falls in [min_irr, max_irr)."""

    min_irr: float
    max_irr: float
    lp_share: float  # Fraction of residual to LP (0-1)
    gp_share: float  # Fraction of residual to GP (0-1)

    @property
    def label(self) -> str:
        """Readable IRR range, e.g. '8%-12%'."""
        return f"{self.min_irr * 100:g}%-{self.max_irr * 100:g}%"


def _default_tiers() -> Tuple[WaterfallTier, ...]:
    return tuple(
        WaterfallTier(t.min_irr, t.max_irr, t.lp_share, t.gp_share)
        for t in DEFAULT_WATERFALL_TIERS
    )


@dataclass(frozen=True)
class EquityStructure:
    """LP/GP partnership terms for the waterfall."""

    lp_share: float = 0.90
    gp_share: float = 0.10
    preferred_return: float = 0.08  # Compounded annually
    gp_coinvest: float = 0.10  # Share of the GP slice actually funded by the GP
    catch_up: bool = True
    catch_up_percentage: float = 0.50  # Max share of remaining cash paid as catch-up
    target_gp_promote: float = 0.20  # GP share of total distributions after catch-up
    tiers: Tuple[WaterfallTier, ...] = field(default_factory=_default_tiers)


@dataclass(frozen=True)
class FeeTiming:
    """Deferral and payout timing for sponsor fees."""

    defer_acquisition_fee: bool = False
    acquisition_fee_deferral_months: int = 12
    defer_asset_management: bool = False
    asset_management_start_year: int = 3  # First year asset management is paid
    deferred_accrual_rate: float = 0.0  # Annual accrual on deferred balance
    development_fee_payout: DevelopmentFeePayout = DevelopmentFeePayout.UPFRONT
    milestone_installments: int = 4


@dataclass(frozen=True)
class FeeCaps:
    """Caps on sponsor fees as a share of equity."""

    enabled: bool = False
    total_fee_cap: float = 0.15  # Lifetime
    annual_fee_cap: float = 0.02  # Ongoing fees per year


@dataclass(frozen=True)
class SponsorFeeStructure:
    """Fee-based GP compensation; rates are fractions of their base."""

    # One-time
    acquisition_fee: float = 0.015  # Of total cost
    development_fee: float = 0.04  # Of total cost
    construction_management_fee: float = 0.03  # Of hard cost with contingency
    disposition_fee: float = 0.01  # Of gross sale price

    # Ongoing (of effective gross revenue)
    asset_management_fee: float = 0.015
    property_management_fee: float = 0.0

    # Performance adjustment of ongoing fees
    fee_structure: FeeStructureType = FeeStructureType.STANDARD
    performance_hurdle: float = 0.08  # Current-year cash-on-cash
    reduced_fee_percent: float = 0.50  # Share of ongoing fees paid below hurdle

    # Disposition fee structure
    disposition_structure: DispositionFeeStructure = DispositionFeeStructure.STANDARD
    disposition_hurdle_return: float = 0.12
    disposition_reduced_fee: float = 0.005

    timing: FeeTiming = field(default_factory=FeeTiming)
    caps: FeeCaps = field(default_factory=FeeCaps)


@dataclass(frozen=True)
class Waterfall:
    """Compensation mode: GP earns a promote through the equity waterfall."""

    equity: EquityStructure = field(default_factory=EquityStructure)


@dataclass(frozen=True)
class SponsorFee:
    """Compensation mode: GP earns fees, LP receives all net cash flow.

    promote_equity is only used for the side-by-side fee/promote comparison.
    """

    fees: SponsorFeeStructure = field(default_factory=SponsorFeeStructure)
    promote_equity: EquityStructure = field(default_factory=EquityStructure)


CompensationMode = Union[Waterfall, SponsorFee]
