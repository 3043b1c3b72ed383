"""
Pure report transformation functions.

These functions transform a reconciled chart (and inventory valuations)
into structured reports. ZERO I/O. ZERO side effects.

All monetary values are Decimal. All inputs/outputs are frozen dataclasses.

Functions in this module follow the erp_engines purity convention:
- No database access
- No clock access
- No file I/O
- Deterministic: same inputs always produce same outputs
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from erp_engines.inventory import InventoryValuation
from erp_engines.reconciliation import ChartLine, ChartReconciliation, CounterpartyBalance
from erp_engines.trial_balance import validate_trial_balance
from erp_kernel.domain.balances import AccountBalanceRecord
from erp_kernel.domain.values import AccountKind, Side
from erp_modules.reporting.config import ReportingConfig
from erp_modules.reporting.models import (
    BalanceSheetReport,
    BalanceSheetSection,
    CounterpartyLine,
    CounterpartyStatementReport,
    IncomeStatementReport,
    InventoryValuationLine,
    InventoryValuationReport,
    LiquidityAnalysisReport,
    LiquidityStatus,
    ReportMetadata,
    StatementLine,
    TrialBalanceLineItem,
    TrialBalanceReport,
    TrialBalanceTotals,
)

ZERO = Decimal("0")

# =========================================================================
# Classification
# =========================================================================

NORMAL_BALANCE: dict[AccountKind, Side] = {
    AccountKind.SAFE: Side.DEBIT,
    AccountKind.BANK: Side.DEBIT,
    AccountKind.CUSTOMER: Side.DEBIT,
    AccountKind.OTHER_RECEIVABLE: Side.DEBIT,
    AccountKind.INVENTORY: Side.DEBIT,
    AccountKind.SUPPLIER: Side.CREDIT,
    AccountKind.OTHER_PAYABLE: Side.CREDIT,
    AccountKind.VAT: Side.CREDIT,
    AccountKind.CAPITAL: Side.CREDIT,
    AccountKind.PARTNER: Side.CREDIT,
    AccountKind.RETAINED_EARNINGS: Side.CREDIT,
    AccountKind.SALES: Side.CREDIT,
    AccountKind.SALES_RETURNS: Side.DEBIT,
    AccountKind.OTHER_REVENUE: Side.CREDIT,
    AccountKind.DISCOUNT_EARNED: Side.CREDIT,
    AccountKind.PURCHASES: Side.DEBIT,
    AccountKind.PURCHASE_RETURNS: Side.CREDIT,
    AccountKind.DISCOUNT_ALLOWED: Side.DEBIT,
    AccountKind.INVENTORY_CHANGE: Side.DEBIT,
    AccountKind.EXPENSE: Side.DEBIT,
}

ASSET_KINDS = (
    AccountKind.SAFE,
    AccountKind.BANK,
    AccountKind.CUSTOMER,
    AccountKind.OTHER_RECEIVABLE,
    AccountKind.INVENTORY,
)
LIABILITY_KINDS = (AccountKind.SUPPLIER, AccountKind.OTHER_PAYABLE, AccountKind.VAT)
EQUITY_KINDS = (AccountKind.CAPITAL, AccountKind.PARTNER, AccountKind.RETAINED_EARNINGS)


# =========================================================================
# Helpers
# =========================================================================


def compute_natural_balance(
    debit_total: Decimal,
    credit_total: Decimal,
    normal_balance: Side,
) -> Decimal:
    """
    Compute balance adjusted for normal balance side.

    DEBIT-normal (assets, costs, expenses): balance = debit_total - credit_total
    CREDIT-normal (liabilities, equity, revenue): balance = credit_total - debit_total

    Result is positive when the account has its expected normal direction.
    """
    if normal_balance == Side.DEBIT:
        return debit_total - credit_total
    return credit_total - debit_total


def _closing(line: ChartLine) -> Decimal:
    return compute_natural_balance(
        line.record.closing_debit, line.record.closing_credit, NORMAL_BALANCE[line.kind]
    )


def _period(line: ChartLine) -> Decimal:
    return compute_natural_balance(
        line.record.period_debit, line.record.period_credit, NORMAL_BALANCE[line.kind]
    )


def _sum_period(reconciliation: ChartReconciliation, kind: AccountKind) -> Decimal:
    return sum((_period(line) for line in reconciliation.lines_of(kind)), ZERO)


def _sum_closing(reconciliation: ChartReconciliation, kind: AccountKind) -> Decimal:
    return sum((_closing(line) for line in reconciliation.lines_of(kind)), ZERO)


def compute_net_profit_from_chart(lines: Iterable[ChartLine]) -> Decimal:
    """
    Net profit as the negated sum of nominal period movements.

    Revenue accounts move on the credit side, so a profit leaves the nominal
    accounts with a net credit movement.
    """
    return -sum(
        (line.record.period_net for line in lines if line.kind.is_nominal),
        ZERO,
    )


def _is_zero(record: AccountBalanceRecord) -> bool:
    return all(
        getattr(record, f.name) == ZERO for f in dataclasses.fields(AccountBalanceRecord)
    )


def _ratio(numerator: Decimal, denominator: Decimal, sentinel: Decimal) -> Decimal:
    if denominator > ZERO:
        return numerator / denominator
    return sentinel if numerator > ZERO else ZERO


# =========================================================================
# 1. TRIAL BALANCE
# =========================================================================


def build_trial_balance(
    reconciliation: ChartReconciliation,
    config: ReportingConfig,
    metadata: ReportMetadata,
) -> TrialBalanceReport:
    """Build the six-column trial balance with its three balance checks."""
    validation = validate_trial_balance(reconciliation.lines, config.tolerance)

    items = tuple(
        TrialBalanceLineItem(
            account_code=line.code,
            account_name=line.name,
            account_kind=line.kind.value,
            opening_debit=line.record.opening_debit,
            opening_credit=line.record.opening_credit,
            period_debit=line.record.period_debit,
            period_credit=line.record.period_credit,
            closing_debit=line.record.closing_debit,
            closing_credit=line.record.closing_credit,
        )
        for line in reconciliation.lines
        if config.include_zero_balances or not _is_zero(line.record)
    )

    totals = TrialBalanceTotals(
        opening_debit=validation.opening_debit,
        opening_credit=validation.opening_credit,
        period_debit=validation.period_debit,
        period_credit=validation.period_credit,
        closing_debit=validation.closing_debit,
        closing_credit=validation.closing_credit,
        opening_balanced=validation.opening_balanced,
        period_balanced=validation.period_balanced,
        closing_balanced=validation.closing_balanced,
        imbalance=validation.imbalance,
    )
    return TrialBalanceReport(
        metadata=metadata,
        lines=items,
        totals=totals,
        is_balanced=validation.is_balanced,
    )


# =========================================================================
# 2. INCOME STATEMENT
# =========================================================================


def build_income_statement(
    reconciliation: ChartReconciliation,
    metadata: ReportMetadata,
) -> IncomeStatementReport:
    """
    Build the income statement for the reconciled period.

    Beginning and ending inventory are the valuations behind the
    reconciliation's inventory line, so COGS follows its costing method.
    """
    sales = _sum_period(reconciliation, AccountKind.SALES)
    sales_returns = _sum_period(reconciliation, AccountKind.SALES_RETURNS)
    net_sales = sales - sales_returns

    beginning = reconciliation.opening_inventory.total_value
    ending = reconciliation.closing_inventory.total_value
    purchases = _sum_period(reconciliation, AccountKind.PURCHASES)
    purchase_returns = _sum_period(reconciliation, AccountKind.PURCHASE_RETURNS)
    net_purchases = purchases - purchase_returns
    cogs = beginning + net_purchases - ending
    gross_profit = net_sales - cogs

    other_revenues = _sum_period(reconciliation, AccountKind.OTHER_REVENUE)
    discount_earned = _sum_period(reconciliation, AccountKind.DISCOUNT_EARNED)
    discount_allowed = _sum_period(reconciliation, AccountKind.DISCOUNT_ALLOWED)

    expenses = tuple(
        StatementLine(code=line.code, label=line.name, amount=_period(line))
        for line in reconciliation.lines_of(AccountKind.EXPENSE)
    )
    total_expenses = sum((line.amount for line in expenses), ZERO)

    net_profit = (
        gross_profit + other_revenues + discount_earned - discount_allowed - total_expenses
    )

    return IncomeStatementReport(
        metadata=metadata,
        sales=sales,
        sales_returns=sales_returns,
        net_sales=net_sales,
        beginning_inventory=beginning,
        purchases=purchases,
        purchase_returns=purchase_returns,
        net_purchases=net_purchases,
        ending_inventory=ending,
        cost_of_goods_sold=cogs,
        gross_profit=gross_profit,
        other_revenues=other_revenues,
        discount_earned=discount_earned,
        discount_allowed=discount_allowed,
        expenses=expenses,
        total_expenses=total_expenses,
        net_profit=net_profit,
    )


# =========================================================================
# 3. BALANCE SHEET
# =========================================================================


def _make_section(
    label: str,
    reconciliation: ChartReconciliation,
    kinds: tuple[AccountKind, ...],
    extra: tuple[StatementLine, ...] = (),
) -> BalanceSheetSection:
    """Create a balance sheet section from the closing balances of ``kinds``."""
    lines = tuple(
        StatementLine(code=line.code, label=line.name, amount=_closing(line))
        for kind in kinds
        for line in reconciliation.lines_of(kind)
    ) + extra
    return BalanceSheetSection(
        label=label,
        lines=lines,
        total=sum((line.amount for line in lines), ZERO),
    )


def build_balance_sheet(
    reconciliation: ChartReconciliation,
    config: ReportingConfig,
    metadata: ReportMetadata,
) -> BalanceSheetReport:
    """
    Build the balance sheet at the end of the reconciled period.

    Current period profit is the negated closing movement of the nominal
    accounts and is reported inside equity.
    """
    current_profit = -sum(
        (line.record.closing_net for line in reconciliation.lines if line.kind.is_nominal),
        ZERO,
    )
    assets = _make_section("Assets", reconciliation, ASSET_KINDS)
    liabilities = _make_section("Liabilities", reconciliation, LIABILITY_KINDS)
    equity = _make_section(
        "Equity",
        reconciliation,
        EQUITY_KINDS,
        extra=(StatementLine(code="", label="Current period profit", amount=current_profit),),
    )

    total_l_and_e = liabilities.total + equity.total
    difference = assets.total - total_l_and_e
    return BalanceSheetReport(
        metadata=metadata,
        assets=assets,
        liabilities=liabilities,
        equity=equity,
        current_profit=current_profit,
        total_assets=assets.total,
        total_liabilities=liabilities.total,
        total_equity=equity.total,
        total_liabilities_and_equity=total_l_and_e,
        difference=difference,
        is_balanced=abs(difference) < config.tolerance,
    )


# =========================================================================
# 4. LIQUIDITY ANALYSIS
# =========================================================================


def classify_liquidity_status(current_ratio: Decimal, config: ReportingConfig) -> LiquidityStatus:
    thresholds = config.liquidity
    if current_ratio >= thresholds.excellent:
        return LiquidityStatus.EXCELLENT
    if current_ratio >= thresholds.good:
        return LiquidityStatus.GOOD
    if current_ratio >= thresholds.warning:
        return LiquidityStatus.WARNING
    return LiquidityStatus.CRITICAL


def build_liquidity_analysis(
    reconciliation: ChartReconciliation,
    config: ReportingConfig,
    metadata: ReportMetadata,
) -> LiquidityAnalysisReport:
    """
    Current, quick and cash ratios from closing balances.

    Balances keep their natural sign.  VAT counts as an asset when it
    closes on the debit side and as a liability otherwise.  A ratio with a
    zero (or negative) denominator is the configured sentinel when its
    numerator is positive, else zero.
    """
    cash = _sum_closing(reconciliation, AccountKind.SAFE)
    bank = _sum_closing(reconciliation, AccountKind.BANK)
    receivables = _sum_closing(reconciliation, AccountKind.CUSTOMER)
    other_receivables = _sum_closing(reconciliation, AccountKind.OTHER_RECEIVABLE)
    inventory = _sum_closing(reconciliation, AccountKind.INVENTORY)
    vat = _sum_closing(reconciliation, AccountKind.VAT)
    vat_asset = max(-vat, ZERO)
    vat_liability = max(vat, ZERO)
    payables = _sum_closing(reconciliation, AccountKind.SUPPLIER)
    other_payables = _sum_closing(reconciliation, AccountKind.OTHER_PAYABLE)

    current_assets = cash + bank + receivables + other_receivables + inventory + vat_asset
    current_liabilities = payables + other_payables + vat_liability
    sentinel = config.liquidity.ratio_sentinel

    current_ratio = _ratio(current_assets, current_liabilities, sentinel)
    return LiquidityAnalysisReport(
        metadata=metadata,
        cash=cash,
        bank=bank,
        receivables=receivables,
        other_receivables=other_receivables,
        inventory=inventory,
        vat_asset=vat_asset,
        current_assets=current_assets,
        payables=payables,
        other_payables=other_payables,
        vat_liability=vat_liability,
        current_liabilities=current_liabilities,
        working_capital=current_assets - current_liabilities,
        current_ratio=current_ratio,
        quick_ratio=_ratio(current_assets - inventory, current_liabilities, sentinel),
        cash_ratio=_ratio(cash + bank, current_liabilities, sentinel),
        status=classify_liquidity_status(current_ratio, config),
    )


# =========================================================================
# 5. INVENTORY VALUATION
# =========================================================================


def build_inventory_valuation_report(
    valuation: InventoryValuation,
    metadata: ReportMetadata,
) -> InventoryValuationReport:
    lines = tuple(
        InventoryValuationLine(
            item_code=result.item.code,
            item_name=result.item.name,
            balance=result.balance,
            unit_cost=result.cost,
            value=result.value,
        )
        for result in valuation.results
    )
    return InventoryValuationReport(
        metadata=metadata,
        as_of_date=valuation.end_date,
        branch_id=valuation.scope.branch_id,
        store_id=valuation.scope.store_id,
        lines=lines,
        total_value=valuation.total_value,
    )


# =========================================================================
# 6. COUNTERPARTY STATEMENTS
# =========================================================================


def build_counterparty_statement(
    kind: AccountKind,
    balances: Iterable[CounterpartyBalance],
    metadata: ReportMetadata,
) -> CounterpartyStatementReport:
    lines = tuple(
        CounterpartyLine(
            account_id=balance.account.id,
            account_name=balance.account.name,
            opening_debit=balance.record.opening_debit,
            opening_credit=balance.record.opening_credit,
            period_debit=balance.record.period_debit,
            period_credit=balance.record.period_credit,
            closing_debit=balance.record.closing_debit,
            closing_credit=balance.record.closing_credit,
        )
        for balance in balances
    )
    return CounterpartyStatementReport(
        metadata=metadata,
        account_kind=kind.value,
        lines=lines,
        total_closing_debit=sum((line.closing_debit for line in lines), ZERO),
        total_closing_credit=sum((line.closing_credit for line in lines), ZERO),
    )


# =========================================================================
# 7. RENDERER (dict/JSON output)
# =========================================================================


def render_to_dict(
    obj: object,
    precision: int | None = None,
) -> dict | list | str | int | float | bool | None:
    """
    Convert any report dataclass to a plain dict for JSON serialization.

    Handles:
    - Decimal -> str (rounded half-up to ``precision`` places when given)
    - date -> ISO format string
    - Enum -> .value
    - Nested frozen dataclasses -> nested dicts
    - Tuples -> lists
    - None preserved
    """
    if obj is None:
        return None
    if isinstance(obj, Decimal):
        if precision is not None:
            obj = obj.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP)
        return str(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item, precision) for item in obj]
    if isinstance(obj, dict):
        return {str(k): render_to_dict(v, precision) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: render_to_dict(getattr(obj, f.name), precision)
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)
