"""
Balances -- Opening / period / closing balance records.

Responsibility:
    ``AccountBalanceRecord`` is the six-figure balance of one account over a
    reporting period.  ``split_net`` implements net-then-split: a signed net
    figure becomes a non-negative debit or a non-negative credit, never both.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Opening and closing are net-then-split: at most one of
      ``opening_debit``/``opening_credit`` (and of the closing pair) is
      non-zero.
    - Period figures are gross totals and may both be non-zero.
    - closing_net == opening_net + period_debit - period_credit.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

ZERO = Decimal("0")


def split_net(net: Decimal) -> tuple[Decimal, Decimal]:
    """Split a signed net (debit positive) into (debit, credit)."""
    if net > ZERO:
        return net, ZERO
    if net < ZERO:
        return ZERO, -net
    return ZERO, ZERO


@dataclass(frozen=True)
class AccountBalanceRecord:
    """Opening, period and closing figures for one account."""

    opening_debit: Decimal = ZERO
    opening_credit: Decimal = ZERO
    period_debit: Decimal = ZERO
    period_credit: Decimal = ZERO
    closing_debit: Decimal = ZERO
    closing_credit: Decimal = ZERO

    @classmethod
    def from_movements(
        cls,
        opening_net: Decimal,
        period_debit: Decimal,
        period_credit: Decimal,
    ) -> AccountBalanceRecord:
        """Build a record from a signed opening net and gross period totals."""
        opening_debit, opening_credit = split_net(opening_net)
        closing_debit, closing_credit = split_net(
            opening_net + period_debit - period_credit
        )
        return cls(
            opening_debit=opening_debit,
            opening_credit=opening_credit,
            period_debit=period_debit,
            period_credit=period_credit,
            closing_debit=closing_debit,
            closing_credit=closing_credit,
        )

    @property
    def opening_net(self) -> Decimal:
        return self.opening_debit - self.opening_credit

    @property
    def period_net(self) -> Decimal:
        return self.period_debit - self.period_credit

    @property
    def closing_net(self) -> Decimal:
        return self.closing_debit - self.closing_credit

    def swapped(self) -> AccountBalanceRecord:
        """The same record with debit and credit exchanged on every pair."""
        return AccountBalanceRecord(
            opening_debit=self.opening_credit,
            opening_credit=self.opening_debit,
            period_debit=self.period_credit,
            period_credit=self.period_debit,
            closing_debit=self.closing_credit,
            closing_credit=self.closing_debit,
        )

    def __add__(self, other: AccountBalanceRecord) -> AccountBalanceRecord:
        """Aggregate two records, re-applying net-then-split to the sum."""
        if not isinstance(other, AccountBalanceRecord):
            return NotImplemented
        return AccountBalanceRecord.from_movements(
            self.opening_net + other.opening_net,
            self.period_debit + other.period_debit,
            self.period_credit + other.period_credit,
        )
