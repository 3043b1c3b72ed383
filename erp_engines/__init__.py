"""
Module: erp_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines: ledger normalization, costing, inventory valuation,
    account reconciliation and trial balance validation.  This is the
    canonical import surface for erp_services and erp_modules.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import erp_kernel (and sibling engine modules).
    MUST NOT import erp_services or erp_modules.

Invariants enforced:
    - Purity: engines never read the clock.  Report dates are passed in.
    - Decimal-only arithmetic for money and quantities.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Valuation and reconciliation are traced via ``@traced_engine`` (see
    ``erp_engines.tracer``), emitting ERP_ENGINE_TRACE log records with the
    engine name, version, input fingerprint and duration.
"""

from erp_engines.costing import last_purchase_price, unit_cost, weighted_average_cost
from erp_engines.inventory import (
    COMPANY_WIDE,
    InventoryScope,
    InventoryValuation,
    ValuationResult,
    aggregate_opening_balances,
    calculate_valuation,
    item_balances,
)
from erp_engines.normalizer import (
    ALL_COLLECTIONS,
    LEDGER_COLLECTIONS,
    MASTER_COLLECTIONS,
    normalize,
    normalize_date,
    normalize_ledgers,
    normalize_master_data,
    to_decimal,
)
from erp_engines.reconciliation import (
    RULE_TABLES,
    ChartLine,
    ChartReconciliation,
    CounterpartyBalance,
    LedgerRule,
    ReportPeriod,
    reconcile_chart,
    reconcile_counterparties,
)
from erp_engines.trial_balance import TrialBalanceValidation, validate_trial_balance

__all__ = [
    "ALL_COLLECTIONS",
    "COMPANY_WIDE",
    "LEDGER_COLLECTIONS",
    "MASTER_COLLECTIONS",
    "RULE_TABLES",
    "ChartLine",
    "ChartReconciliation",
    "CounterpartyBalance",
    "InventoryScope",
    "InventoryValuation",
    "LedgerRule",
    "ReportPeriod",
    "TrialBalanceValidation",
    "ValuationResult",
    "aggregate_opening_balances",
    "calculate_valuation",
    "item_balances",
    "last_purchase_price",
    "normalize",
    "normalize_date",
    "normalize_ledgers",
    "normalize_master_data",
    "reconcile_chart",
    "reconcile_counterparties",
    "to_decimal",
    "unit_cost",
    "validate_trial_balance",
    "weighted_average_cost",
]
