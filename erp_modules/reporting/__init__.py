"""
Reporting Module (``erp_modules.reporting``).

Responsibility
--------------
Read-only module that generates reports from the raw ledgers: the
six-column trial balance, income statement, balance sheet, liquidity
analysis, inventory valuation and counterparty statements.

Architecture position
---------------------
**Modules layer** -- read-only.  All report computations are pure
functions over the engines' output; ``ReportingService`` only wires the
loader, the recomputation graph and the builders together.

Invariants enforced
-------------------
* Nothing is written to the ledger store.
* Every figure derives from the raw documents at query time; no balance is
  stored.

Audit relevance
---------------
Report metadata includes the generation timestamp, the period and the
snapshot fingerprint for audit trail purposes.
"""

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
    ReportType,
    StatementLine,
    TrialBalanceLineItem,
    TrialBalanceReport,
    TrialBalanceTotals,
)
from erp_modules.reporting.service import ReportingService

__all__ = [
    # Service
    "ReportingService",
    # Config
    "ReportingConfig",
    # Models
    "ReportType",
    "LiquidityStatus",
    "ReportMetadata",
    "TrialBalanceLineItem",
    "TrialBalanceTotals",
    "TrialBalanceReport",
    "StatementLine",
    "IncomeStatementReport",
    "BalanceSheetSection",
    "BalanceSheetReport",
    "LiquidityAnalysisReport",
    "InventoryValuationLine",
    "InventoryValuationReport",
    "CounterpartyLine",
    "CounterpartyStatementReport",
]
