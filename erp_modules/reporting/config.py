"""
Reporting Configuration Schema.

Defines costing choices, the trial-balance tolerance, presentation options
and liquidity thresholds used by the statement builders.  Built from
defaults, from a plain dict, or from the active ``EngineSettings``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Self

from erp_config.schema import EngineSettings, LiquidityThresholds
from erp_kernel.domain.chart import ChartCodes
from erp_kernel.domain.values import CostMethod
from erp_kernel.logging_config import get_logger

logger = get_logger("modules.reporting.config")


@dataclass
class ReportingConfig:
    """
    Configuration schema for the reporting module.

    Controls valuation policy, formatting, and report generation.
    """

    # Costing policy for inventory on the trial balance and balance sheet
    valuation_method: CostMethod = CostMethod.WEIGHTED_AVERAGE

    # Costing policy for beginning/ending inventory in COGS
    cogs_method: CostMethod = CostMethod.WEIGHTED_AVERAGE

    # Trial balance tolerance (strict: |debit - credit| < tolerance)
    tolerance: Decimal = Decimal("0.01")

    # Default currency for reports
    default_currency: str = "SAR"

    # Rounding precision for display
    display_precision: int = 2

    # Whether to include lines with an all-zero record in reports
    include_zero_balances: bool = True

    liquidity: LiquidityThresholds = field(default_factory=LiquidityThresholds)

    chart: ChartCodes = field(default_factory=ChartCodes)

    def __post_init__(self):
        self.valuation_method = CostMethod.parse(self.valuation_method)
        self.cogs_method = CostMethod.parse(self.cogs_method)
        self.tolerance = Decimal(str(self.tolerance))
        if self.display_precision < 0:
            raise ValueError("display_precision cannot be negative")
        if len(self.default_currency) != 3:
            raise ValueError("default_currency must be a 3-letter ISO 4217 code")
        if self.tolerance <= 0:
            raise ValueError("tolerance must be positive")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("reporting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        data = dict(data)
        if "liquidity" in data and isinstance(data["liquidity"], dict):
            data["liquidity"] = LiquidityThresholds(
                **{k: Decimal(str(v)) for k, v in data["liquidity"].items()}
            )
        if "chart" in data and isinstance(data["chart"], dict):
            data["chart"] = ChartCodes(**data["chart"])
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> Self:
        """Create config from the active engine settings."""
        return cls(
            valuation_method=settings.valuation_method,
            cogs_method=settings.cogs_method,
            tolerance=settings.tolerance,
            default_currency=settings.default_currency,
            display_precision=settings.display_precision,
            liquidity=settings.liquidity,
            chart=settings.chart,
        )
