"""
Reporting Module Service (``erp_modules.reporting.service``).

Responsibility
--------------
Orchestrates report generation -- trial balance, income statement, balance
sheet, liquidity analysis, inventory valuation and counterparty statements
-- by loading a ledger snapshot through ``LedgerLoader``, deriving figures
through the recomputation graph, and handing them to the pure builders in
``statements.py``.  This is a **read-only** service.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``ReportingService`` is the sole public
entry point for report generation.  Constructor: ``loader`` + ``clock`` +
``config``.

Invariants enforced
-------------------
* Read-only -- the ledger store is never written.
* Derived figures are recomputed only when the snapshot fingerprint of an
  upstream collection group, or the report parameters, change.
* Report metadata carries the generation timestamp (injected clock) and
  the snapshot fingerprint for reproducibility.

Failure modes
-------------
* Ledger read failure  -> ``LedgerSourceError`` propagates.
* Invalid period (from_date after to_date)  -> ``InvalidReportPeriodError``
  raised before any derivation runs.
* Unknown costing method  -> ``UnknownValuationMethodError``.
* Counterparty statement for a non-control kind  -> ``InvalidAccountKindError``.

Audit relevance
---------------
A structured log event is emitted for every report, carrying the report
type, period, and the snapshot fingerprint.
"""

from __future__ import annotations

from datetime import date
from uuid import uuid4

from erp_engines.inventory import (
    InventoryScope,
    InventoryValuation,
    aggregate_opening_balances,
    calculate_valuation,
)
from erp_engines.normalizer import LEDGER_COLLECTIONS, MASTER_COLLECTIONS
from erp_engines.reconciliation import (
    CONTROL_KINDS,
    ChartReconciliation,
    ReportPeriod,
    reconcile_chart,
    reconcile_counterparties,
)
from erp_kernel.domain.clock import Clock, SystemClock
from erp_kernel.domain.ledger import LedgerSet, MasterData
from erp_kernel.domain.values import AccountKind, CostMethod
from erp_kernel.exceptions import InvalidAccountKindError
from erp_kernel.logging_config import LogContext, get_logger
from erp_services.ledger_loader import LedgerLoader
from erp_services.recompute import DerivationGraph
from erp_services.snapshot import LedgerSnapshot
from erp_modules.reporting.config import ReportingConfig
from erp_modules.reporting.models import (
    BalanceSheetReport,
    CounterpartyStatementReport,
    IncomeStatementReport,
    InventoryValuationReport,
    LiquidityAnalysisReport,
    ReportMetadata,
    ReportType,
    TrialBalanceReport,
)
from erp_modules.reporting.statements import (
    build_balance_sheet,
    build_counterparty_statement,
    build_income_statement,
    build_inventory_valuation_report,
    build_liquidity_analysis,
    build_trial_balance,
    render_to_dict,
)

logger = get_logger("modules.reporting.service")

_COUNTERPARTY_ACCOUNTS = dict(CONTROL_KINDS)


def _report_context(report_type: ReportType, **scope: str | None):
    """Bind a fresh report id, the report type and any branch or store scope to the logs."""
    return LogContext.bind(report_id=str(uuid4()), report_type=report_type.value, **scope)


class ReportingService:
    """
    Report generation service.

    Contract
    --------
    * Every public report method returns a typed report DTO.
    * All methods are **read-only**.
    * ``refresh()`` reloads the snapshot; report methods load one lazily
      when none is held.

    Guarantees
    ----------
    * No financial logic lives in this class; it delegates to the engines
      and to the pure builders in ``statements.py``.
    * Clock is injectable for deterministic testing.
    """

    def __init__(
        self,
        loader: LedgerLoader,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
    ):
        self._loader = loader
        self._clock = clock or SystemClock()
        self._config = config or ReportingConfig.with_defaults()
        self._graph = DerivationGraph()
        self._snapshot: LedgerSnapshot | None = None
        self._define_derivations()

        logger.info(
            "reporting_service_initialized",
            extra={
                "default_currency": self._config.default_currency,
                "valuation_method": self._config.valuation_method.value,
                "cogs_method": self._config.cogs_method.value,
            },
        )

    @property
    def graph(self) -> DerivationGraph:
        return self._graph

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _define_derivations(self) -> None:
        codes = self._config.chart

        def _chart(ledgers: LedgerSet, master: MasterData, period: ReportPeriod,
                   method: CostMethod) -> ChartReconciliation:
            return reconcile_chart(
                master=master, ledgers=ledgers, period=period, method=method, codes=codes,
            )

        def _valuation(ledgers: LedgerSet, master: MasterData, as_of_date: date,
                       method: CostMethod, scope: InventoryScope) -> InventoryValuation:
            return calculate_valuation(
                items=master.items,
                ledgers=ledgers,
                end_date=as_of_date,
                method=method,
                opening_balances=aggregate_opening_balances(master.store_items),
                scope=scope,
                store_items=master.store_items,
                stores=master.stores,
            )

        self._graph.define("ledgers", lambda ledgers_raw: ledgers_raw.ledgers(), ["ledgers_raw"])
        self._graph.define("master", lambda master_raw: master_raw.master_data(), ["master_raw"])
        self._graph.define("chart", _chart, ["ledgers", "master"], params=["period", "method"])
        self._graph.define(
            "valuation",
            _valuation,
            ["ledgers", "master"],
            params=["as_of_date", "method", "scope"],
        )

    def refresh(self) -> LedgerSnapshot:
        """Load a fresh snapshot; derivations recompute only where content changed."""
        snapshot = self._loader.load()
        self._graph.set_input(
            "ledgers_raw", snapshot, snapshot.fingerprint(LEDGER_COLLECTIONS.values()),
        )
        self._graph.set_input("master_raw", snapshot, snapshot.fingerprint(MASTER_COLLECTIONS))
        self._snapshot = snapshot
        return snapshot

    def _ensure_snapshot(self) -> LedgerSnapshot:
        if self._snapshot is None:
            return self.refresh()
        return self._snapshot

    def _master(self) -> MasterData:
        self._ensure_snapshot()
        return self._graph.evaluate("master")

    def _chart(self, period: ReportPeriod, method: CostMethod) -> ChartReconciliation:
        self._ensure_snapshot()
        return self._graph.evaluate("chart", period=period, method=method)

    def _build_metadata(
        self,
        report_type: ReportType,
        period: ReportPeriod | None = None,
        method: CostMethod | None = None,
    ) -> ReportMetadata:
        """Build report metadata with injected clock timestamp."""
        snapshot = self._ensure_snapshot()
        return ReportMetadata(
            report_type=report_type,
            entity_name=self._master().entity_name,
            currency=self._config.default_currency,
            generated_at=self._clock.now().isoformat(),
            period_start=period.from_date if period else None,
            period_end=period.to_date if period else None,
            valuation_method=method.value if method else None,
            input_fingerprint=snapshot.fingerprint()[:16],
        )

    def _log_report(self, report_type: ReportType, metadata: ReportMetadata, **extra) -> None:
        logger.info(
            f"{report_type.value}_generated",
            extra={
                "period_start": metadata.period_start,
                "period_end": metadata.period_end,
                "input_fingerprint": metadata.input_fingerprint,
                **extra,
            },
        )

    # =========================================================================
    # Public API
    # =========================================================================

    def trial_balance(
        self,
        from_date: date | None = None,
        to_date: date | None = None,
        method: CostMethod | str | None = None,
    ) -> TrialBalanceReport:
        """
        Generate the six-column trial balance for ``[from_date, to_date]``.

        Args:
            from_date: First day of the period (open when None).
            to_date: Last day of the period (open when None).
            method: Inventory costing method (defaults to config).
        """
        period = ReportPeriod(from_date, to_date)
        method = CostMethod.parse(method or self._config.valuation_method)
        with _report_context(ReportType.TRIAL_BALANCE):
            metadata = self._build_metadata(ReportType.TRIAL_BALANCE, period, method)
            report = build_trial_balance(self._chart(period, method), self._config, metadata)
            self._log_report(
                ReportType.TRIAL_BALANCE,
                metadata,
                line_count=len(report.lines),
                is_balanced=report.is_balanced,
                imbalance=str(report.totals.imbalance),
            )
        return report

    def income_statement(
        self,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> IncomeStatementReport:
        """Generate the income statement; inventory uses the COGS method."""
        period = ReportPeriod(from_date, to_date)
        method = self._config.cogs_method
        with _report_context(ReportType.INCOME_STATEMENT):
            metadata = self._build_metadata(ReportType.INCOME_STATEMENT, period, method)
            report = build_income_statement(self._chart(period, method), metadata)
            self._log_report(
                ReportType.INCOME_STATEMENT,
                metadata,
                net_sales=str(report.net_sales),
                net_profit=str(report.net_profit),
            )
        return report

    def balance_sheet(
        self,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> BalanceSheetReport:
        """Generate the balance sheet at ``to_date``; profit since ``from_date`` is shown apart."""
        period = ReportPeriod(from_date, to_date)
        method = self._config.valuation_method
        with _report_context(ReportType.BALANCE_SHEET):
            metadata = self._build_metadata(ReportType.BALANCE_SHEET, period, method)
            report = build_balance_sheet(self._chart(period, method), self._config, metadata)
            self._log_report(
                ReportType.BALANCE_SHEET,
                metadata,
                total_assets=str(report.total_assets),
                total_l_and_e=str(report.total_liabilities_and_equity),
                is_balanced=report.is_balanced,
            )
        return report

    def liquidity_analysis(
        self,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> LiquidityAnalysisReport:
        period = ReportPeriod(from_date, to_date)
        method = self._config.valuation_method
        with _report_context(ReportType.LIQUIDITY_ANALYSIS):
            metadata = self._build_metadata(ReportType.LIQUIDITY_ANALYSIS, period, method)
            report = build_liquidity_analysis(self._chart(period, method), self._config, metadata)
            self._log_report(
                ReportType.LIQUIDITY_ANALYSIS,
                metadata,
                current_ratio=str(report.current_ratio),
                status=report.status.value,
            )
        return report

    def inventory_valuation(
        self,
        as_of_date: date,
        method: CostMethod | str | None = None,
        branch_id: str | None = None,
        store_id: str | None = None,
    ) -> InventoryValuationReport:
        """
        Value every stocked item as of ``as_of_date``, company-wide or
        restricted to a branch and/or store.
        """
        method = CostMethod.parse(method or self._config.valuation_method)
        scope = InventoryScope(branch_id=branch_id, store_id=store_id)
        with _report_context(
            ReportType.INVENTORY_VALUATION, branch_id=branch_id, store_id=store_id
        ):
            metadata = self._build_metadata(
                ReportType.INVENTORY_VALUATION, ReportPeriod(None, as_of_date), method,
            )
            valuation = self._graph.evaluate(
                "valuation", as_of_date=as_of_date, method=method, scope=scope,
            )
            report = build_inventory_valuation_report(valuation, metadata)
            self._log_report(
                ReportType.INVENTORY_VALUATION,
                metadata,
                item_count=len(report.lines),
                total_value=str(report.total_value),
            )
        return report

    def counterparty_statement(
        self,
        kind: AccountKind | str,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> CounterpartyStatementReport:
        """
        Per-account balances of one control kind (customers, suppliers,
        safes, banks, other receivables/payables, partners).

        Raises:
            InvalidAccountKindError: If ``kind`` is not a control kind.
        """
        try:
            kind = AccountKind(kind)
        except ValueError:
            raise InvalidAccountKindError(str(kind), "unknown account kind") from None
        if kind not in _COUNTERPARTY_ACCOUNTS:
            raise InvalidAccountKindError(kind.value, "not a control account kind")
        period = ReportPeriod(from_date, to_date)
        with _report_context(ReportType.COUNTERPARTY_STATEMENT):
            metadata = self._build_metadata(ReportType.COUNTERPARTY_STATEMENT, period)
            master = self._master()
            balances = reconcile_counterparties(
                kind,
                accounts=getattr(master, _COUNTERPARTY_ACCOUNTS[kind]),
                ledgers=self._graph.evaluate("ledgers"),
                period=period,
            )
            report = build_counterparty_statement(kind, balances, metadata)
            self._log_report(
                ReportType.COUNTERPARTY_STATEMENT,
                metadata,
                account_kind=kind.value,
                account_count=len(report.lines),
            )
        return report

    def render(self, report: object) -> dict:
        """Render a report to a JSON-ready dict at the configured display precision."""
        return render_to_dict(report, self._config.display_precision)
