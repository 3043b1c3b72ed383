"""
Financial Reporting Domain Models (``erp_modules.reporting.models``).

Responsibility
--------------
Frozen dataclass value objects representing report outputs: trial balance,
income statement, balance sheet, liquidity analysis, inventory valuation
and counterparty statements.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by
``ReportingService`` and returned to callers.  No dependency on services,
database, or engines.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.

Audit relevance
---------------
* ``ReportMetadata`` records carry the generation timestamp, the period and
  the input fingerprint of the ledger snapshot the report was derived from.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum


# =========================================================================
# Enums
# =========================================================================


class ReportType(str, Enum):
    """Types of reports."""

    TRIAL_BALANCE = "trial_balance"
    INCOME_STATEMENT = "income_statement"
    BALANCE_SHEET = "balance_sheet"
    LIQUIDITY_ANALYSIS = "liquidity_analysis"
    INVENTORY_VALUATION = "inventory_valuation"
    COUNTERPARTY_STATEMENT = "counterparty_statement"


class LiquidityStatus(str, Enum):
    """Safety status derived from the current ratio."""

    EXCELLENT = "excellent"
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


# =========================================================================
# Report Metadata (common to all reports)
# =========================================================================


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata attached to every report."""

    report_type: ReportType
    entity_name: str
    currency: str
    generated_at: str  # ISO format timestamp from injected clock
    period_start: date | None = None
    period_end: date | None = None
    valuation_method: str | None = None
    input_fingerprint: str = ""


# =========================================================================
# Trial Balance
# =========================================================================


@dataclass(frozen=True)
class TrialBalanceLineItem:
    """A single line in the trial balance."""

    account_code: str
    account_name: str
    account_kind: str
    opening_debit: Decimal
    opening_credit: Decimal
    period_debit: Decimal
    period_credit: Decimal
    closing_debit: Decimal
    closing_credit: Decimal


@dataclass(frozen=True)
class TrialBalanceTotals:
    """Column totals and balance checks at the three checkpoints."""

    opening_debit: Decimal
    opening_credit: Decimal
    period_debit: Decimal
    period_credit: Decimal
    closing_debit: Decimal
    closing_credit: Decimal
    opening_balanced: bool
    period_balanced: bool
    closing_balanced: bool
    imbalance: Decimal


@dataclass(frozen=True)
class TrialBalanceReport:
    """Complete trial balance report."""

    metadata: ReportMetadata
    lines: tuple[TrialBalanceLineItem, ...]
    totals: TrialBalanceTotals
    is_balanced: bool


# =========================================================================
# Income Statement
# =========================================================================


@dataclass(frozen=True)
class StatementLine:
    """One labelled amount of a statement."""

    code: str
    label: str
    amount: Decimal


@dataclass(frozen=True)
class IncomeStatementReport:
    """
    Income statement of a trading company.

    Net sales - COGS = Gross profit
    Gross profit + other revenues + discount earned - discount allowed
        - expenses = Net profit
    """

    metadata: ReportMetadata

    sales: Decimal
    sales_returns: Decimal
    net_sales: Decimal

    beginning_inventory: Decimal
    purchases: Decimal
    purchase_returns: Decimal
    net_purchases: Decimal
    ending_inventory: Decimal
    cost_of_goods_sold: Decimal
    gross_profit: Decimal

    other_revenues: Decimal
    discount_earned: Decimal
    discount_allowed: Decimal
    expenses: tuple[StatementLine, ...]
    total_expenses: Decimal

    net_profit: Decimal


# =========================================================================
# Balance Sheet
# =========================================================================


@dataclass(frozen=True)
class BalanceSheetSection:
    """A section of the balance sheet (e.g., Assets)."""

    label: str
    lines: tuple[StatementLine, ...]
    total: Decimal


@dataclass(frozen=True)
class BalanceSheetReport:
    """
    Balance sheet at the end of the period, in natural signs.

    Assets = Liabilities + Equity holds whenever the trial balance closes.
    """

    metadata: ReportMetadata
    assets: BalanceSheetSection
    liabilities: BalanceSheetSection
    equity: BalanceSheetSection
    current_profit: Decimal
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    total_liabilities_and_equity: Decimal
    difference: Decimal
    is_balanced: bool


# =========================================================================
# Liquidity Analysis
# =========================================================================


@dataclass(frozen=True)
class LiquidityAnalysisReport:
    """Short-term solvency ratios at the end of the period."""

    metadata: ReportMetadata

    cash: Decimal
    bank: Decimal
    receivables: Decimal
    other_receivables: Decimal
    inventory: Decimal
    vat_asset: Decimal
    current_assets: Decimal

    payables: Decimal
    other_payables: Decimal
    vat_liability: Decimal
    current_liabilities: Decimal

    working_capital: Decimal
    current_ratio: Decimal
    quick_ratio: Decimal
    cash_ratio: Decimal
    status: LiquidityStatus


# =========================================================================
# Inventory Valuation
# =========================================================================


@dataclass(frozen=True)
class InventoryValuationLine:
    """Balance, unit cost and value of one item."""

    item_code: str
    item_name: str
    balance: Decimal
    unit_cost: Decimal
    value: Decimal


@dataclass(frozen=True)
class InventoryValuationReport:
    """Per-item valuation as of a date, optionally branch/store scoped."""

    metadata: ReportMetadata
    as_of_date: date | None
    branch_id: str | None
    store_id: str | None
    lines: tuple[InventoryValuationLine, ...]
    total_value: Decimal


# =========================================================================
# Counterparty Statements
# =========================================================================


@dataclass(frozen=True)
class CounterpartyLine:
    """Opening, period and closing figures of one counterparty."""

    account_id: str
    account_name: str
    opening_debit: Decimal
    opening_credit: Decimal
    period_debit: Decimal
    period_credit: Decimal
    closing_debit: Decimal
    closing_credit: Decimal


@dataclass(frozen=True)
class CounterpartyStatementReport:
    """Balances of every account of one kind (customers, suppliers, ...)."""

    metadata: ReportMetadata
    account_kind: str
    lines: tuple[CounterpartyLine, ...]
    total_closing_debit: Decimal
    total_closing_credit: Decimal
