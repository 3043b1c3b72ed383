"""
erp_engines.reconciliation -- Account Balance Reconciler.

Responsibility:
    Derive opening, period and closing balances for every line of the chart
    (control accounts, inventory, equity and nominal accounts) over a
    reporting period, from normalized ledgers and master data.  Also
    produces per-counterparty statements (one record per customer, supplier,
    safe, ...).

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Depends on the normalizer's
    output and on ``erp_engines.inventory`` for the inventory line.  Its
    output feeds ``erp_engines.trial_balance`` and the reporting builders.

Invariants enforced:
    - Inclusion and sign rules are DATA: one ``LedgerRule`` table per account
      kind (``RULE_TABLES``).  No account kind is special-cased in code except
      the valuation-driven inventory lines and the derived equity lines.
    - Opening = master opening + net of documents dated before the period,
      net-then-split.  Period = gross debit and credit of documents inside
      the period.  Closing = opening net + period debit - period credit,
      net-then-split.
    - Undated documents fall in no bucket.
    - Inventory is valued, not posted: opening is the valuation the day
      before the period, closing the valuation at its end, and the period
      movement is the difference.  The inventory change line carries the
      mirror entry.
    - Nominal accounts open at zero; their pre-period movement is the
      retained earnings opening.
    - VAT and other payable lines present the raw table with debit and
      credit swapped (``PRESENTATION_SWAP``).  The partner table is already
      in display orientation: receipts debit, payments credit.

Failure modes:
    - InvalidEngineInputError when master data or ledgers are missing.
    - InvalidReportPeriodError when the period starts after it ends.
    - InvalidAccountKindError when a per-account statement is requested for
      a kind that has none.
    - Dangling counterparty references are excluded from every account; the
      resulting imbalance is reported by the trial balance validator.

Audit relevance:
    ``RULE_TABLES`` is the complete, reviewable statement of which document
    touches which account on which side.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum

from erp_engines.inventory import (
    InventoryValuation,
    aggregate_opening_balances,
    calculate_valuation,
)
from erp_engines.tracer import traced_engine
from erp_kernel.domain.balances import AccountBalanceRecord
from erp_kernel.domain.chart import LINE_TITLES, ChartCodes
from erp_kernel.domain.ledger import Account, AccountRef, LedgerSet, MasterData, Transaction
from erp_kernel.domain.values import AccountKind, CostMethod, RefType, Side, TransactionKind
from erp_kernel.exceptions import (
    InvalidAccountKindError,
    InvalidEngineInputError,
    InvalidReportPeriodError,
)
from erp_kernel.logging_config import get_logger

logger = get_logger("engines.reconciliation")

ZERO = Decimal("0")

ENGINE_NAME = "account_reconciliation"


# =========================================================================
# Period
# =========================================================================


@dataclass(frozen=True)
class ReportPeriod:
    """Inclusive reporting period; either bound may be open."""

    from_date: date | None = None
    to_date: date | None = None

    def __post_init__(self):
        if (
            self.from_date is not None
            and self.to_date is not None
            and self.from_date > self.to_date
        ):
            raise InvalidReportPeriodError(self.from_date, self.to_date)

    @property
    def opening_cutoff(self) -> date:
        """Last day before the period (the epoch when the period is open)."""
        if self.from_date is None or self.from_date == date.min:
            return date.min
        return self.from_date - timedelta(days=1)

    @property
    def closing_cutoff(self) -> date:
        return self.to_date if self.to_date is not None else date.max

    def is_opening(self, tx: Transaction) -> bool:
        return self.from_date is not None and tx.before(self.from_date)

    def is_current(self, tx: Transaction) -> bool:
        return tx.in_range(self.from_date, self.to_date)


# =========================================================================
# Rule tables
# =========================================================================


class Measure(str, Enum):
    """Which amount of a document a rule posts."""

    NET = "net"
    SUBTOTAL = "subtotal"
    TAX = "tax"
    DISCOUNT = "discount"
    AMOUNT = "amount"
    SETTLED = "settled"
    VOUCHER_TAX = "voucher_tax"
    PRICE_BEFORE_TAX = "price_before_tax"


class Match(str, Enum):
    """Which documents of the rule's source kind a rule applies to."""

    ALL = "all"
    PARTY = "party"
    CASH_PARTY = "cash_party"
    SETTLEMENT = "settlement"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    PARTY_TYPE = "party_type"


@dataclass(frozen=True)
class LedgerRule:
    """One inclusion rule: documents of ``source`` matching ``match`` post ``measure`` to ``side``."""

    source: TransactionKind
    side: Side
    measure: Measure
    match: Match
    party_types: frozenset[RefType] = frozenset()


_D, _C = Side.DEBIT, Side.CREDIT
_K = TransactionKind
_VAT_VOUCHER = frozenset({RefType.VAT})
_EXPENSE_VOUCHER = frozenset({RefType.EXPENSE, RefType.EXPENSE_TYPE})

_CASH_ACCOUNT_RULES = (
    LedgerRule(_K.RECEIPT_VOUCHER, _D, Measure.SETTLED, Match.SETTLEMENT),
    LedgerRule(_K.SALES_INVOICE, _D, Measure.SETTLED, Match.SETTLEMENT),
    LedgerRule(_K.PURCHASE_RETURN, _D, Measure.SETTLED, Match.SETTLEMENT),
    LedgerRule(_K.INTERNAL_TRANSFER, _D, Measure.AMOUNT, Match.TRANSFER_IN),
    LedgerRule(_K.PAYMENT_VOUCHER, _C, Measure.SETTLED, Match.SETTLEMENT),
    LedgerRule(_K.PURCHASE_INVOICE, _C, Measure.SETTLED, Match.SETTLEMENT),
    LedgerRule(_K.SALES_RETURN, _C, Measure.SETTLED, Match.SETTLEMENT),
    LedgerRule(_K.INTERNAL_TRANSFER, _C, Measure.AMOUNT, Match.TRANSFER_OUT),
)

RULE_TABLES: dict[AccountKind, tuple[LedgerRule, ...]] = {
    AccountKind.CUSTOMER: (
        LedgerRule(_K.SALES_INVOICE, _D, Measure.NET, Match.PARTY),
        LedgerRule(_K.SALES_RETURN, _D, Measure.NET, Match.CASH_PARTY),
        LedgerRule(_K.PAYMENT_VOUCHER, _D, Measure.AMOUNT, Match.PARTY),
        LedgerRule(_K.SALES_INVOICE, _C, Measure.NET, Match.CASH_PARTY),
        LedgerRule(_K.SALES_RETURN, _C, Measure.NET, Match.PARTY),
        LedgerRule(_K.RECEIPT_VOUCHER, _C, Measure.AMOUNT, Match.PARTY),
    ),
    AccountKind.SUPPLIER: (
        LedgerRule(_K.PURCHASE_INVOICE, _D, Measure.NET, Match.CASH_PARTY),
        LedgerRule(_K.PURCHASE_RETURN, _D, Measure.NET, Match.PARTY),
        LedgerRule(_K.PAYMENT_VOUCHER, _D, Measure.AMOUNT, Match.PARTY),
        LedgerRule(_K.RECEIPT_VOUCHER, _D, Measure.AMOUNT, Match.PARTY),
        LedgerRule(_K.PURCHASE_INVOICE, _C, Measure.NET, Match.PARTY),
        LedgerRule(_K.PURCHASE_RETURN, _C, Measure.NET, Match.CASH_PARTY),
    ),
    AccountKind.SAFE: _CASH_ACCOUNT_RULES,
    AccountKind.BANK: _CASH_ACCOUNT_RULES,
    AccountKind.VAT: (
        LedgerRule(_K.SALES_INVOICE, _D, Measure.TAX, Match.ALL),
        LedgerRule(_K.PURCHASE_RETURN, _D, Measure.TAX, Match.ALL),
        LedgerRule(_K.RECEIPT_VOUCHER, _D, Measure.AMOUNT, Match.PARTY_TYPE, _VAT_VOUCHER),
        LedgerRule(_K.PURCHASE_INVOICE, _C, Measure.TAX, Match.ALL),
        LedgerRule(_K.SALES_RETURN, _C, Measure.TAX, Match.ALL),
        LedgerRule(_K.PAYMENT_VOUCHER, _C, Measure.AMOUNT, Match.PARTY_TYPE, _VAT_VOUCHER),
        LedgerRule(_K.PAYMENT_VOUCHER, _C, Measure.VOUCHER_TAX, Match.PARTY_TYPE, _EXPENSE_VOUCHER),
    ),
    AccountKind.OTHER_RECEIVABLE: (
        LedgerRule(_K.PAYMENT_VOUCHER, _D, Measure.AMOUNT, Match.PARTY),
        LedgerRule(_K.RECEIPT_VOUCHER, _C, Measure.AMOUNT, Match.PARTY),
    ),
    AccountKind.OTHER_PAYABLE: (
        LedgerRule(_K.RECEIPT_VOUCHER, _D, Measure.AMOUNT, Match.PARTY),
        LedgerRule(_K.PAYMENT_VOUCHER, _C, Measure.AMOUNT, Match.PARTY),
    ),
    AccountKind.PARTNER: (
        LedgerRule(_K.RECEIPT_VOUCHER, _D, Measure.AMOUNT, Match.PARTY),
        LedgerRule(_K.PAYMENT_VOUCHER, _C, Measure.AMOUNT, Match.PARTY),
    ),
    AccountKind.SALES: (
        LedgerRule(_K.SALES_INVOICE, _C, Measure.SUBTOTAL, Match.ALL),
    ),
    AccountKind.SALES_RETURNS: (
        LedgerRule(_K.SALES_RETURN, _D, Measure.SUBTOTAL, Match.ALL),
    ),
    AccountKind.DISCOUNT_ALLOWED: (
        LedgerRule(_K.SALES_INVOICE, _D, Measure.DISCOUNT, Match.ALL),
        LedgerRule(_K.SALES_RETURN, _C, Measure.DISCOUNT, Match.ALL),
    ),
    AccountKind.PURCHASES: (
        LedgerRule(_K.PURCHASE_INVOICE, _D, Measure.SUBTOTAL, Match.ALL),
    ),
    AccountKind.PURCHASE_RETURNS: (
        LedgerRule(_K.PURCHASE_RETURN, _C, Measure.SUBTOTAL, Match.ALL),
    ),
    AccountKind.DISCOUNT_EARNED: (
        LedgerRule(_K.PURCHASE_INVOICE, _C, Measure.DISCOUNT, Match.ALL),
        LedgerRule(_K.PURCHASE_RETURN, _D, Measure.DISCOUNT, Match.ALL),
    ),
    AccountKind.OTHER_REVENUE: (
        LedgerRule(_K.RECEIPT_VOUCHER, _C, Measure.AMOUNT, Match.PARTY),
        LedgerRule(_K.PAYMENT_VOUCHER, _D, Measure.AMOUNT, Match.PARTY),
    ),
    AccountKind.EXPENSE: (
        LedgerRule(_K.PAYMENT_VOUCHER, _D, Measure.PRICE_BEFORE_TAX, Match.PARTY),
        LedgerRule(_K.RECEIPT_VOUCHER, _C, Measure.AMOUNT, Match.PARTY),
    ),
}

PRESENTATION_SWAP: frozenset[AccountKind] = frozenset({
    AccountKind.VAT,
    AccountKind.OTHER_PAYABLE,
})

# Sign applied to a master opening balance to express it as a raw debit.
# Supplier and partner openings are credit balances.  The other payable table
# is kept in its swapped orientation, so its credit opening enters the raw
# table on the debit side.
OPENING_SIGN: dict[AccountKind, int] = {
    AccountKind.SAFE: 1,
    AccountKind.BANK: 1,
    AccountKind.CUSTOMER: 1,
    AccountKind.OTHER_RECEIVABLE: 1,
    AccountKind.SUPPLIER: -1,
    AccountKind.OTHER_PAYABLE: 1,
    AccountKind.PARTNER: -1,
}

CONTROL_KINDS: tuple[tuple[AccountKind, str], ...] = (
    (AccountKind.SAFE, "safes"),
    (AccountKind.BANK, "banks"),
    (AccountKind.CUSTOMER, "customers"),
    (AccountKind.OTHER_RECEIVABLE, "receivable_accounts"),
    (AccountKind.SUPPLIER, "suppliers"),
    (AccountKind.OTHER_PAYABLE, "payable_accounts"),
    (AccountKind.PARTNER, "partner_accounts"),
)

_SIMPLE_NOMINAL_KINDS = (
    AccountKind.SALES,
    AccountKind.SALES_RETURNS,
    AccountKind.DISCOUNT_ALLOWED,
    AccountKind.PURCHASES,
    AccountKind.PURCHASE_RETURNS,
    AccountKind.DISCOUNT_EARNED,
)


# =========================================================================
# Rule evaluation
# =========================================================================


def settled_amount(tx: Transaction, refs: frozenset[AccountRef]) -> Decimal:
    """Portion of a cash document settled to the given safes/banks."""
    full = tx.net if tx.kind.is_invoice_like else tx.amount
    if tx.is_split_payment:
        total = ZERO
        if tx.split_safe in refs:
            total += tx.split_cash_amount
        if tx.settlement in refs:
            total += full - tx.split_cash_amount
        return total
    return full if tx.settlement in refs else ZERO


def _matches(rule: LedgerRule, tx: Transaction, refs: frozenset[AccountRef]) -> bool:
    match = rule.match
    if match == Match.ALL:
        return True
    if match == Match.PARTY:
        return tx.counterparty in refs
    if match == Match.CASH_PARTY:
        return tx.is_cash and tx.counterparty in refs
    if match == Match.SETTLEMENT:
        if tx.kind.is_invoice_like and not tx.is_cash:
            return False
        return tx.settlement in refs or (tx.is_split_payment and tx.split_safe in refs)
    if match == Match.TRANSFER_IN:
        return tx.destination in refs
    if match == Match.TRANSFER_OUT:
        return tx.source in refs
    return tx.counterparty is not None and tx.counterparty.ref_type in rule.party_types


def _measure(rule: LedgerRule, tx: Transaction, refs: frozenset[AccountRef]) -> Decimal:
    measure = rule.measure
    if measure == Measure.SETTLED:
        return settled_amount(tx, refs)
    return getattr(tx, measure.value)


@dataclass(frozen=True)
class Movements:
    """Raw (un-presented) movement of one account: opening net and period gross totals."""

    opening_net: Decimal = ZERO
    period_debit: Decimal = ZERO
    period_credit: Decimal = ZERO

    def __add__(self, other: Movements) -> Movements:
        return Movements(
            self.opening_net + other.opening_net,
            self.period_debit + other.period_debit,
            self.period_credit + other.period_credit,
        )

    def record(self) -> AccountBalanceRecord:
        return AccountBalanceRecord.from_movements(
            self.opening_net, self.period_debit, self.period_credit
        )


def account_movements(
    rules: Iterable[LedgerRule],
    refs: frozenset[AccountRef],
    ledgers: LedgerSet,
    period: ReportPeriod,
    opening: Decimal = ZERO,
) -> Movements:
    """Apply a rule table to the ledgers for one account (or account group)."""
    opening_net = opening
    period_debit = ZERO
    period_credit = ZERO
    for rule in rules:
        for tx in ledgers.of_kind(rule.source):
            in_opening = period.is_opening(tx)
            in_period = period.is_current(tx)
            if not (in_opening or in_period) or not _matches(rule, tx, refs):
                continue
            amount = _measure(rule, tx, refs)
            if in_opening:
                opening_net += amount if rule.side == Side.DEBIT else -amount
            elif rule.side == Side.DEBIT:
                period_debit += amount
            else:
                period_credit += amount
    return Movements(opening_net, period_debit, period_credit)


def present(kind: AccountKind, record: AccountBalanceRecord) -> AccountBalanceRecord:
    """Apply the kind's display convention to a raw record."""
    return record.swapped() if kind in PRESENTATION_SWAP else record


def _account_movements(
    kind: AccountKind,
    account: Account,
    ledgers: LedgerSet,
    period: ReportPeriod,
) -> Movements:
    return account_movements(
        RULE_TABLES[kind],
        account.references(),
        ledgers,
        period,
        opening=OPENING_SIGN.get(kind, 0) * account.opening_balance,
    )


# =========================================================================
# Results
# =========================================================================


@dataclass(frozen=True)
class ChartLine:
    """One presented trial-balance line."""

    code: str
    name: str
    kind: AccountKind
    record: AccountBalanceRecord


@dataclass(frozen=True)
class CounterpartyBalance:
    """Presented balance of a single master account."""

    account: Account
    kind: AccountKind
    record: AccountBalanceRecord


@dataclass(frozen=True)
class ChartReconciliation:
    """Every chart line for one period, plus the valuations behind the inventory line."""

    lines: tuple[ChartLine, ...]
    period: ReportPeriod
    method: CostMethod
    opening_inventory: InventoryValuation
    closing_inventory: InventoryValuation

    def line(self, kind: AccountKind) -> ChartLine | None:
        for line in self.lines:
            if line.kind == kind:
                return line
        return None

    def lines_of(self, kind: AccountKind) -> tuple[ChartLine, ...]:
        return tuple(line for line in self.lines if line.kind == kind)


# =========================================================================
# Entry points
# =========================================================================


def _require(master: MasterData | None, ledgers: LedgerSet | None) -> None:
    if master is None:
        raise InvalidEngineInputError(ENGINE_NAME, "master")
    if ledgers is None:
        raise InvalidEngineInputError(ENGINE_NAME, "ledgers")


def reconcile_counterparties(
    kind: AccountKind,
    *,
    accounts: Iterable[Account] | None,
    ledgers: LedgerSet | None,
    period: ReportPeriod,
) -> tuple[CounterpartyBalance, ...]:
    """
    Per-account statements for one control kind, each account net-then-split
    on its own.
    """
    if accounts is None:
        raise InvalidEngineInputError(ENGINE_NAME, "accounts")
    if ledgers is None:
        raise InvalidEngineInputError(ENGINE_NAME, "ledgers")
    if kind not in RULE_TABLES or kind == AccountKind.VAT:
        raise InvalidAccountKindError(kind.value, "no per-account statement")

    return tuple(
        CounterpartyBalance(
            account=account,
            kind=kind,
            record=present(kind, _account_movements(kind, account, ledgers, period).record()),
        )
        for account in accounts
    )


@traced_engine(ENGINE_NAME, "1.0", fingerprint_fields=("period", "method"))
def reconcile_chart(
    *,
    master: MasterData | None,
    ledgers: LedgerSet | None,
    period: ReportPeriod,
    method: CostMethod | str,
    codes: ChartCodes | None = None,
) -> ChartReconciliation:
    """
    Reconcile every line of the chart for ``period``.

    Control lines aggregate all accounts of their kind and are net-then-split
    at the aggregate level.
    """
    _require(master, ledgers)
    codes = codes or ChartCodes()
    method = CostMethod.parse(method)

    lines: list[ChartLine] = []

    def _add(kind: AccountKind, record: AccountBalanceRecord, code: str | None = None,
             name: str | None = None) -> None:
        lines.append(ChartLine(
            code=code or codes.code_for(kind),
            name=name or LINE_TITLES[kind],
            kind=kind,
            record=present(kind, record),
        ))

    # Control accounts
    for kind, attr in CONTROL_KINDS:
        total = Movements()
        for account in getattr(master, attr):
            total = total + _account_movements(kind, account, ledgers, period)
        _add(kind, total.record())

    _add(
        AccountKind.VAT,
        account_movements(RULE_TABLES[AccountKind.VAT], frozenset(), ledgers, period).record(),
    )

    # Inventory, valued at both ends of the period
    opening_balances = aggregate_opening_balances(master.store_items)

    def _valuation(cutoff: date) -> InventoryValuation:
        return calculate_valuation(
            items=master.items,
            ledgers=ledgers,
            end_date=cutoff,
            method=method,
            opening_balances=opening_balances,
        )

    epoch_inventory = _valuation(date.min)
    opening_inventory = _valuation(period.opening_cutoff)
    closing_inventory = _valuation(period.closing_cutoff)
    inventory_change = closing_inventory.total_value - opening_inventory.total_value
    increase = max(inventory_change, ZERO)
    decrease = max(-inventory_change, ZERO)

    _add(
        AccountKind.INVENTORY,
        AccountBalanceRecord.from_movements(opening_inventory.total_value, increase, decrease),
    )

    # Equity
    _add(AccountKind.CAPITAL, AccountBalanceRecord.from_movements(-master.capital, ZERO, ZERO))

    # Nominal accounts: period movement only; history rolls into retained earnings
    prior_profit_net = ZERO
    nominal: list[tuple[AccountKind, Movements, str | None, str | None]] = []
    for kind in _SIMPLE_NOMINAL_KINDS:
        nominal.append(
            (kind, account_movements(RULE_TABLES[kind], frozenset(), ledgers, period), None, None)
        )

    revenue_refs = frozenset().union(*(a.references() for a in master.revenue_codes))
    nominal.append((
        AccountKind.OTHER_REVENUE,
        account_movements(RULE_TABLES[AccountKind.OTHER_REVENUE], revenue_refs, ledgers, period),
        None,
        None,
    ))
    for index, expense_type in enumerate(master.expense_types):
        nominal.append((
            AccountKind.EXPENSE,
            account_movements(
                RULE_TABLES[AccountKind.EXPENSE], expense_type.references(), ledgers, period
            ),
            codes.expense_code(index),
            expense_type.name or expense_type.id,
        ))

    prior_inventory_change = opening_inventory.total_value - epoch_inventory.total_value
    nominal.append((
        AccountKind.INVENTORY_CHANGE,
        Movements(-prior_inventory_change, decrease, increase),
        None,
        None,
    ))

    for kind, movement, code, name in nominal:
        prior_profit_net += movement.opening_net
        _add(
            kind,
            AccountBalanceRecord.from_movements(ZERO, movement.period_debit, movement.period_credit),
            code=code,
            name=name,
        )

    _add(
        AccountKind.RETAINED_EARNINGS,
        AccountBalanceRecord.from_movements(prior_profit_net, ZERO, ZERO),
    )

    ordered = tuple(sorted(lines, key=lambda line: line.code))
    logger.info(
        "chart_reconciled",
        extra={
            "from_date": period.from_date,
            "to_date": period.to_date,
            "method": method.value,
            "line_count": len(ordered),
            "closing_inventory": str(closing_inventory.total_value),
        },
    )
    return ChartReconciliation(
        lines=ordered,
        period=period,
        method=method,
        opening_inventory=opening_inventory,
        closing_inventory=closing_inventory,
    )
