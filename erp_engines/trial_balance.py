"""
erp_engines.trial_balance -- Trial Balance Validator.

Responsibility:
    Sum the six columns of a reconciled chart and decide, per column pair,
    whether debits equal credits within a tolerance.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Consumes the lines produced
    by ``erp_engines.reconciliation``.

Invariants enforced:
    - A pair is balanced when |debit - credit| < tolerance (strict).
    - The validator never adjusts a line to force balance; an imbalance is a
      finding, reported with its magnitude.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from erp_kernel.domain.balances import AccountBalanceRecord
from erp_kernel.logging_config import get_logger

logger = get_logger("engines.trial_balance")

ZERO = Decimal("0")
DEFAULT_TOLERANCE = Decimal("0.01")


@dataclass(frozen=True)
class TrialBalanceValidation:
    """Column totals of a trial balance and their balance status."""

    opening_debit: Decimal
    opening_credit: Decimal
    period_debit: Decimal
    period_credit: Decimal
    closing_debit: Decimal
    closing_credit: Decimal
    tolerance: Decimal = DEFAULT_TOLERANCE

    @property
    def opening_difference(self) -> Decimal:
        return self.opening_debit - self.opening_credit

    @property
    def period_difference(self) -> Decimal:
        return self.period_debit - self.period_credit

    @property
    def closing_difference(self) -> Decimal:
        return self.closing_debit - self.closing_credit

    @property
    def opening_balanced(self) -> bool:
        return abs(self.opening_difference) < self.tolerance

    @property
    def period_balanced(self) -> bool:
        return abs(self.period_difference) < self.tolerance

    @property
    def closing_balanced(self) -> bool:
        return abs(self.closing_difference) < self.tolerance

    @property
    def is_balanced(self) -> bool:
        return self.opening_balanced and self.period_balanced and self.closing_balanced

    @property
    def imbalance(self) -> Decimal:
        """Largest absolute difference across the three pairs."""
        return max(
            abs(self.opening_difference),
            abs(self.period_difference),
            abs(self.closing_difference),
        )


def _record(line: Any) -> AccountBalanceRecord:
    return getattr(line, "record", line)


def validate_trial_balance(
    lines: Iterable[Any],
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> TrialBalanceValidation:
    """
    Total the six columns of ``lines`` (chart lines or bare balance records).
    """
    totals = [ZERO] * 6
    count = 0
    for line in lines:
        record = _record(line)
        count += 1
        totals[0] += record.opening_debit
        totals[1] += record.opening_credit
        totals[2] += record.period_debit
        totals[3] += record.period_credit
        totals[4] += record.closing_debit
        totals[5] += record.closing_credit

    result = TrialBalanceValidation(*totals, tolerance=Decimal(tolerance))
    log = logger.info if result.is_balanced else logger.warning
    log(
        "trial_balance_validated",
        extra={
            "line_count": count,
            "balanced": result.is_balanced,
            "opening_difference": str(result.opening_difference),
            "period_difference": str(result.period_difference),
            "closing_difference": str(result.closing_difference),
        },
    )
    return result
