"""
Chart -- Account codes and titles of the reconciled chart.

Responsibility:
    ``ChartCodes`` assigns a code to every trial-balance line kind.  Codes
    follow the usual prefix structure: 1xxx assets, 2xxx liabilities,
    3xxx equity, 4xxx revenue, 5xxx cost and expense.  Expense types receive
    sequential codes under ``expense_prefix`` in master-data order.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Built by
    ``erp_config`` from settings; read by the reconciler and the reporting
    builders.
"""

from __future__ import annotations

from dataclasses import dataclass

from erp_kernel.domain.values import AccountKind


@dataclass(frozen=True)
class ChartCodes:
    """Account code per line kind."""

    safes: str = "1101"
    banks: str = "1102"
    customers: str = "1201"
    other_receivables: str = "1202"
    inventory: str = "1301"
    suppliers: str = "2101"
    other_payables: str = "2102"
    vat: str = "2201"
    capital: str = "3101"
    partners: str = "3201"
    retained_earnings: str = "3301"
    sales: str = "4101"
    sales_returns: str = "4102"
    other_revenues: str = "4201"
    discount_earned: str = "4301"
    purchases: str = "5101"
    purchase_returns: str = "5102"
    discount_allowed: str = "5103"
    inventory_change: str = "5104"
    expense_prefix: str = "52"

    def code_for(self, kind: AccountKind) -> str:
        if kind == AccountKind.EXPENSE:
            raise ValueError("expense codes are assigned per expense type; use expense_code()")
        return getattr(self, _FIELD_BY_KIND[kind])

    def expense_code(self, index: int) -> str:
        """Code of the ``index``-th expense type (zero-based)."""
        return f"{self.expense_prefix}{index + 1:02d}"


_FIELD_BY_KIND: dict[AccountKind, str] = {
    AccountKind.SAFE: "safes",
    AccountKind.BANK: "banks",
    AccountKind.CUSTOMER: "customers",
    AccountKind.OTHER_RECEIVABLE: "other_receivables",
    AccountKind.INVENTORY: "inventory",
    AccountKind.SUPPLIER: "suppliers",
    AccountKind.OTHER_PAYABLE: "other_payables",
    AccountKind.VAT: "vat",
    AccountKind.CAPITAL: "capital",
    AccountKind.PARTNER: "partners",
    AccountKind.RETAINED_EARNINGS: "retained_earnings",
    AccountKind.SALES: "sales",
    AccountKind.SALES_RETURNS: "sales_returns",
    AccountKind.OTHER_REVENUE: "other_revenues",
    AccountKind.DISCOUNT_EARNED: "discount_earned",
    AccountKind.PURCHASES: "purchases",
    AccountKind.PURCHASE_RETURNS: "purchase_returns",
    AccountKind.DISCOUNT_ALLOWED: "discount_allowed",
    AccountKind.INVENTORY_CHANGE: "inventory_change",
}

LINE_TITLES: dict[AccountKind, str] = {
    AccountKind.SAFE: "Safes",
    AccountKind.BANK: "Banks",
    AccountKind.CUSTOMER: "Customers",
    AccountKind.OTHER_RECEIVABLE: "Other receivables",
    AccountKind.INVENTORY: "Inventory",
    AccountKind.SUPPLIER: "Suppliers",
    AccountKind.OTHER_PAYABLE: "Other payables",
    AccountKind.VAT: "VAT",
    AccountKind.CAPITAL: "Capital",
    AccountKind.PARTNER: "Partners current accounts",
    AccountKind.RETAINED_EARNINGS: "Retained earnings",
    AccountKind.SALES: "Sales",
    AccountKind.SALES_RETURNS: "Sales returns",
    AccountKind.OTHER_REVENUE: "Other revenues",
    AccountKind.DISCOUNT_EARNED: "Discount earned",
    AccountKind.PURCHASES: "Purchases",
    AccountKind.PURCHASE_RETURNS: "Purchase returns",
    AccountKind.DISCOUNT_ALLOWED: "Discount allowed",
    AccountKind.INVENTORY_CHANGE: "Inventory change",
}
