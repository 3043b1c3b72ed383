"""
Values -- Enumerations shared by every layer of the ERP core.

Responsibility:
    Names the closed vocabularies of the ledger: transaction kinds, payment
    methods, reference types, item types, costing methods, balance sides and
    account kinds.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Failure modes:
    - UnknownValuationMethodError from CostMethod.parse() for an unrecognised
      method string.
"""

from __future__ import annotations

from enum import Enum

from erp_kernel.exceptions import UnknownValuationMethodError


class TransactionKind(str, Enum):
    """The ten ledger document kinds."""

    PURCHASE_INVOICE = "purchase_invoice"
    SALES_INVOICE = "sales_invoice"
    PURCHASE_RETURN = "purchase_return"
    SALES_RETURN = "sales_return"
    WAREHOUSE_RECEIPT = "warehouse_receipt"
    WAREHOUSE_ISSUE = "warehouse_issue"
    WAREHOUSE_TRANSFER = "warehouse_transfer"
    RECEIPT_VOUCHER = "receipt_voucher"
    PAYMENT_VOUCHER = "payment_voucher"
    INTERNAL_TRANSFER = "internal_transfer"

    @property
    def is_invoice_like(self) -> bool:
        return self in _INVOICE_LIKE

    @property
    def is_warehouse_voucher(self) -> bool:
        return self in _WAREHOUSE_VOUCHERS

    @property
    def is_voucher(self) -> bool:
        return self in (TransactionKind.RECEIPT_VOUCHER, TransactionKind.PAYMENT_VOUCHER)


_INVOICE_LIKE = frozenset({
    TransactionKind.PURCHASE_INVOICE,
    TransactionKind.SALES_INVOICE,
    TransactionKind.PURCHASE_RETURN,
    TransactionKind.SALES_RETURN,
})

_WAREHOUSE_VOUCHERS = frozenset({
    TransactionKind.WAREHOUSE_RECEIPT,
    TransactionKind.WAREHOUSE_ISSUE,
    TransactionKind.WAREHOUSE_TRANSFER,
})


class PaymentMethod(str, Enum):
    """Settlement method of an invoice-like document."""

    CASH = "cash"
    CREDIT = "credit"


class RefType(str, Enum):
    """Type tag of a reference to a counterparty, account or location."""

    CUSTOMER = "customer"
    SUPPLIER = "supplier"
    SAFE = "safe"
    BANK = "bank"
    STORE = "store"
    VAT = "vat"
    PARTNER = "current-account"
    RECEIVABLE = "receivable"
    PAYABLE = "payable"
    REVENUE = "revenue"
    EXPENSE = "expense"
    EXPENSE_TYPE = "expense-Type"


class ItemType(str, Enum):
    """Stock-tracked items are valued; services are not."""

    STOCKED = "STOCKED"
    SERVICE = "SERVICE"


class CostMethod(str, Enum):
    """Costing policy used to price inventory."""

    WEIGHTED_AVERAGE = "averageCost"
    LAST_PURCHASE_PRICE = "purchasePrice"
    SALE_PRICE = "salePrice"

    @classmethod
    def parse(cls, value: CostMethod | str) -> CostMethod:
        """Resolve a method name, accepting the legacy aliases."""
        if isinstance(value, CostMethod):
            return value
        method = _COST_METHOD_ALIASES.get(str(value).strip().lower())
        if method is None:
            raise UnknownValuationMethodError(str(value))
        return method


_COST_METHOD_ALIASES: dict[str, CostMethod] = {
    "averagecost": CostMethod.WEIGHTED_AVERAGE,
    "weightedaveragecost": CostMethod.WEIGHTED_AVERAGE,
    "weighted_average": CostMethod.WEIGHTED_AVERAGE,
    "purchaseprice": CostMethod.LAST_PURCHASE_PRICE,
    "lastpurchaseprice": CostMethod.LAST_PURCHASE_PRICE,
    "last_purchase_price": CostMethod.LAST_PURCHASE_PRICE,
    # FIFO was never implemented; it has always priced at the last purchase.
    "fifo": CostMethod.LAST_PURCHASE_PRICE,
    "saleprice": CostMethod.SALE_PRICE,
    "sale_price": CostMethod.SALE_PRICE,
}


class Side(str, Enum):
    """Debit or credit side of a movement."""

    DEBIT = "debit"
    CREDIT = "credit"


class AccountKind(str, Enum):
    """Trial-balance account kinds, each with its own inclusion rule table."""

    SAFE = "safe"
    BANK = "bank"
    CUSTOMER = "customer"
    OTHER_RECEIVABLE = "other_receivable"
    INVENTORY = "inventory"
    SUPPLIER = "supplier"
    OTHER_PAYABLE = "other_payable"
    VAT = "vat"
    CAPITAL = "capital"
    PARTNER = "partner"
    RETAINED_EARNINGS = "retained_earnings"
    SALES = "sales"
    SALES_RETURNS = "sales_returns"
    OTHER_REVENUE = "other_revenue"
    DISCOUNT_EARNED = "discount_earned"
    PURCHASES = "purchases"
    PURCHASE_RETURNS = "purchase_returns"
    DISCOUNT_ALLOWED = "discount_allowed"
    INVENTORY_CHANGE = "inventory_change"
    EXPENSE = "expense"

    @property
    def is_nominal(self) -> bool:
        """Income-statement accounts; they close into retained earnings."""
        return self in _NOMINAL_KINDS


_NOMINAL_KINDS = frozenset({
    AccountKind.SALES,
    AccountKind.SALES_RETURNS,
    AccountKind.OTHER_REVENUE,
    AccountKind.DISCOUNT_EARNED,
    AccountKind.PURCHASES,
    AccountKind.PURCHASE_RETURNS,
    AccountKind.DISCOUNT_ALLOWED,
    AccountKind.INVENTORY_CHANGE,
    AccountKind.EXPENSE,
})
