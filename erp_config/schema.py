"""
Engine settings schema.

Defines the reviewable settings document of the core: costing policies,
the trial-balance tolerance, presentation defaults, liquidity thresholds,
loader concurrency and the chart of account codes.  YAML documents are
parsed into these types by ``erp_config.loader``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from erp_kernel.domain.chart import ChartCodes
from erp_kernel.domain.values import CostMethod

# ---------------------------------------------------------------------------
# Liquidity
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LiquidityThresholds:
    """Current-ratio thresholds for the liquidity status, plus the ratio sentinel."""

    excellent: Decimal = Decimal("2.0")
    good: Decimal = Decimal("1.5")
    warning: Decimal = Decimal("1.0")
    ratio_sentinel: Decimal = Decimal("999")


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineSettings:
    """
    Complete settings document.

    ``valuation_method`` values inventory on the trial balance, balance
    sheet and inventory reports; ``cogs_method`` values beginning and ending
    inventory on the income statement.
    """

    valuation_method: CostMethod = CostMethod.WEIGHTED_AVERAGE
    cogs_method: CostMethod = CostMethod.WEIGHTED_AVERAGE
    tolerance: Decimal = Decimal("0.01")
    default_currency: str = "SAR"
    display_precision: int = 2
    max_workers: int = 4
    liquidity: LiquidityThresholds = field(default_factory=LiquidityThresholds)
    chart: ChartCodes = field(default_factory=ChartCodes)
