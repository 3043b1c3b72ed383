"""
Pure function unit tests for statements.py.

NO database, NO I/O. Builds every report from the sample company's
reconciled February chart.
"""

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal

import pytest

from erp_engines.inventory import InventoryScope, aggregate_opening_balances, calculate_valuation
from erp_engines.normalizer import normalize_ledgers, normalize_master_data
from erp_engines.reconciliation import ReportPeriod, reconcile_chart, reconcile_counterparties
from erp_kernel.domain.values import AccountKind, Side
from erp_modules.reporting.config import ReportingConfig
from erp_modules.reporting.models import LiquidityStatus, ReportType
from erp_modules.reporting.statements import (
    build_balance_sheet,
    build_counterparty_statement,
    build_income_statement,
    build_inventory_valuation_report,
    build_liquidity_analysis,
    build_trial_balance,
    classify_liquidity_status,
    compute_natural_balance,
    compute_net_profit_from_chart,
    render_to_dict,
)

D = Decimal


def _chart_for(master_raw: dict, ledgers_raw: dict | None = None):
    return reconcile_chart(
        master=normalize_master_data(master_raw),
        ledgers=normalize_ledgers(ledgers_raw or {}),
        period=ReportPeriod(date(2024, 2, 1), date(2024, 2, 29)),
        method="averageCost",
    )


# =========================================================================
# Helpers
# =========================================================================


class TestNaturalBalance:
    """compute_natural_balance()"""

    def test_debit_normal(self):
        assert compute_natural_balance(D("100"), D("30"), Side.DEBIT) == D("70")

    def test_credit_normal(self):
        assert compute_natural_balance(D("100"), D("30"), Side.CREDIT) == D("-70")

    def test_net_profit_from_chart(self, february_chart):
        assert compute_net_profit_from_chart(february_chart.lines) == D("-1.5")


# =========================================================================
# Trial balance
# =========================================================================


class TestTrialBalanceReport:
    """build_trial_balance()"""

    def test_lines_and_totals(self, february_chart, reporting_config, make_metadata):
        report = build_trial_balance(february_chart, reporting_config, make_metadata())
        assert len(report.lines) == 20
        assert report.is_balanced
        assert report.totals.opening_debit == D("1841.5")
        assert report.totals.closing_credit == D("2142.2")
        assert report.totals.imbalance == D("0")
        customer = next(line for line in report.lines if line.account_code == "1201")
        assert customer.account_name == "Customers"
        assert customer.account_kind == "customer"
        assert customer.closing_debit == D("126.45")

    def test_zero_lines_excluded_on_request(self, make_metadata):
        chart = _chart_for({"safes": [{"id": "SAFE1", "openingBalance": 10}],
                            "company": [{"capital": 10}]})
        config = ReportingConfig(include_zero_balances=False)
        report = build_trial_balance(chart, config, make_metadata())
        assert [line.account_kind for line in report.lines] == ["safe", "capital"]
        assert report.is_balanced

    def test_zero_lines_kept_by_default(self, reporting_config, make_metadata):
        chart = _chart_for({})
        report = build_trial_balance(chart, reporting_config, make_metadata())
        assert len(report.lines) == len(chart.lines)

    def test_unbalanced_flagged(self, reporting_config, make_metadata):
        chart = _chart_for(
            {"safes": [{"id": "SAFE1"}]},
            {"sales_invoices": [{"id": "S", "date": "2024-02-03", "paymentMethod": "cash",
                                 "paymentTargetType": "safe", "paymentTargetId": "SAFE1",
                                 "subtotal": 100, "net": 115}]},
        )
        report = build_trial_balance(chart, reporting_config, make_metadata())
        assert not report.is_balanced
        assert report.totals.opening_balanced
        assert not report.totals.period_balanced
        assert report.totals.imbalance == D("15")


# =========================================================================
# Income statement
# =========================================================================


class TestIncomeStatement:
    """build_income_statement()"""

    def test_figures(self, february_chart, make_metadata):
        report = build_income_statement(february_chart, make_metadata(ReportType.INCOME_STATEMENT))
        assert report.sales == D("86")
        assert report.sales_returns == D("12")
        assert report.net_sales == D("74")
        assert report.beginning_inventory == D("82.5")
        assert report.purchases == D("28")
        assert report.purchase_returns == D("12")
        assert report.net_purchases == D("16")
        assert report.ending_inventory == D("92")
        assert report.cost_of_goods_sold == D("6.5")
        assert report.gross_profit == D("67.5")
        assert report.other_revenues == D("30")
        assert report.discount_earned == D("2")
        assert report.discount_allowed == D("1")
        assert report.total_expenses == D("100")
        assert report.net_profit == D("-1.5")

    def test_expense_lines_by_type(self, february_chart, make_metadata):
        report = build_income_statement(february_chart, make_metadata(ReportType.INCOME_STATEMENT))
        assert [(line.code, line.label, line.amount) for line in report.expenses] == [
            ("5201", "Rent", D("100")),
        ]

    def test_net_profit_agrees_with_chart(self, february_chart, make_metadata):
        report = build_income_statement(february_chart, make_metadata(ReportType.INCOME_STATEMENT))
        assert report.net_profit == compute_net_profit_from_chart(february_chart.lines)


# =========================================================================
# Balance sheet
# =========================================================================


class TestBalanceSheet:
    """build_balance_sheet()"""

    def test_totals(self, february_chart, reporting_config, make_metadata):
        report = build_balance_sheet(
            february_chart, reporting_config, make_metadata(ReportType.BALANCE_SHEET)
        )
        assert report.total_assets == D("1976.05")
        assert report.total_liabilities == D("305.05")
        assert report.total_equity == D("1671")
        assert report.total_liabilities_and_equity == D("1976.05")
        assert report.difference == D("0")
        assert report.is_balanced

    def test_sections(self, february_chart, reporting_config, make_metadata):
        report = build_balance_sheet(
            february_chart, reporting_config, make_metadata(ReportType.BALANCE_SHEET)
        )
        assert [line.code for line in report.assets.lines] == [
            "1101", "1102", "1201", "1202", "1301",
        ]
        liabilities = {line.code: line.amount for line in report.liabilities.lines}
        assert liabilities == {"2101": D("105.2"), "2102": D("225"), "2201": D("-25.15")}
        equity = {line.label: line.amount for line in report.equity.lines}
        assert equity["Capital"] == D("1650")
        assert equity["Partners current accounts"] == D("0")
        assert equity["Retained earnings"] == D("22.5")
        assert equity["Current period profit"] == D("-1.5")
        assert report.current_profit == D("-1.5")


# =========================================================================
# Liquidity
# =========================================================================


class TestLiquidity:
    """build_liquidity_analysis() and classify_liquidity_status()"""

    def test_figures(self, february_chart, reporting_config, make_metadata):
        report = build_liquidity_analysis(
            february_chart, reporting_config, make_metadata(ReportType.LIQUIDITY_ANALYSIS)
        )
        assert report.cash == D("1017.5")
        assert report.bank == D("700.1")
        assert report.receivables == D("126.45")
        assert report.other_receivables == D("40")
        assert report.inventory == D("92")
        assert report.vat_asset == D("25.15")
        assert report.vat_liability == D("0")
        assert report.current_assets == D("2001.2")
        assert report.payables == D("105.2")
        assert report.other_payables == D("225")
        assert report.current_liabilities == D("330.2")
        assert report.working_capital == D("1671.0")
        assert report.current_ratio == D("2001.2") / D("330.2")
        assert report.quick_ratio == D("1909.2") / D("330.2")
        assert report.cash_ratio == D("1717.6") / D("330.2")
        assert report.status == LiquidityStatus.EXCELLENT

    def test_no_liabilities_uses_sentinel(self, reporting_config, make_metadata):
        chart = _chart_for({"safes": [{"id": "SAFE1", "openingBalance": 100}]})
        report = build_liquidity_analysis(chart, reporting_config, make_metadata())
        assert report.current_liabilities == D("0")
        assert report.current_ratio == D("999")
        assert report.cash_ratio == D("999")
        assert report.status == LiquidityStatus.EXCELLENT

    def test_nothing_at_all_is_zero_ratio(self, reporting_config, make_metadata):
        report = build_liquidity_analysis(_chart_for({}), reporting_config, make_metadata())
        assert report.current_ratio == D("0")
        assert report.status == LiquidityStatus.CRITICAL

    def test_vat_payable_is_liability(self, reporting_config, make_metadata):
        chart = _chart_for(
            {"safes": [{"id": "SAFE1"}]},
            {"sales_invoices": [{"id": "S", "date": "2024-02-03", "paymentMethod": "cash",
                                 "paymentTargetType": "safe", "paymentTargetId": "SAFE1",
                                 "subtotal": 100, "tax": 15, "net": 115}]},
        )
        report = build_liquidity_analysis(chart, reporting_config, make_metadata())
        assert report.vat_liability == D("15")
        assert report.vat_asset == D("0")
        assert report.current_ratio == D("115") / D("15")

    @pytest.mark.parametrize(
        ("ratio", "expected"),
        [
            ("2.0", LiquidityStatus.EXCELLENT),
            ("1.99", LiquidityStatus.GOOD),
            ("1.5", LiquidityStatus.GOOD),
            ("1.0", LiquidityStatus.WARNING),
            ("0.99", LiquidityStatus.CRITICAL),
        ],
    )
    def test_status_thresholds(self, reporting_config, ratio, expected):
        assert classify_liquidity_status(D(ratio), reporting_config) == expected


# =========================================================================
# Inventory valuation and counterparties
# =========================================================================


class TestInventoryValuationReport:
    """build_inventory_valuation_report()"""

    def test_scoped_report(self, company_master, company_ledgers, make_metadata):
        valuation = calculate_valuation(
            items=company_master.items,
            ledgers=company_ledgers,
            end_date=date(2024, 2, 29),
            method="averageCost",
            opening_balances=aggregate_opening_balances(company_master.store_items),
            scope=InventoryScope(branch_id="B2"),
            store_items=company_master.store_items,
            stores=company_master.stores,
        )
        report = build_inventory_valuation_report(
            valuation, make_metadata(ReportType.INVENTORY_VALUATION)
        )
        assert report.as_of_date == date(2024, 2, 29)
        assert report.branch_id == "B2"
        assert report.store_id is None
        (line,) = report.lines
        assert (line.item_code, line.item_name) == ("X", "Widget")
        assert line.balance == D("3")
        assert line.unit_cost == D("5.75")
        assert report.total_value == D("17.25")


class TestCounterpartyStatement:
    """build_counterparty_statement()"""

    def test_supplier_statement(self, company_master, company_ledgers, make_metadata):
        balances = reconcile_counterparties(
            AccountKind.SUPPLIER,
            accounts=company_master.suppliers,
            ledgers=company_ledgers,
            period=ReportPeriod(date(2024, 2, 1), date(2024, 2, 29)),
        )
        report = build_counterparty_statement(
            AccountKind.SUPPLIER, balances, make_metadata(ReportType.COUNTERPARTY_STATEMENT)
        )
        assert report.account_kind == "supplier"
        (line,) = report.lines
        assert line.account_id == "V1"
        assert line.account_name == "Widget supplier"
        assert line.opening_credit == D("169")
        assert line.closing_credit == D("105.2")
        assert report.total_closing_credit == D("105.2")
        assert report.total_closing_debit == D("0")


# =========================================================================
# Rendering
# =========================================================================


class TestRenderToDict:
    """render_to_dict()"""

    def test_rounded_half_up(self):
        assert render_to_dict(D("0.125"), precision=2) == "0.13"
        assert render_to_dict(D("-0.125"), precision=2) == "-0.13"

    def test_unrounded_by_default(self):
        assert render_to_dict(D("0.125")) == "0.125"

    def test_report_is_json_ready(self, february_chart, reporting_config, make_metadata):
        report = build_balance_sheet(
            february_chart, reporting_config, make_metadata(ReportType.BALANCE_SHEET)
        )
        rendered = render_to_dict(report, precision=2)
        json.dumps(rendered)
        assert rendered["metadata"]["report_type"] == "balance_sheet"
        assert rendered["metadata"]["period_end"] == "2024-02-29"
        assert rendered["total_assets"] == "1976.05"
        assert rendered["equity"]["lines"][-1] == {
            "code": "", "label": "Current period profit", "amount": "-1.50",
        }
        assert rendered["is_balanced"] is True
