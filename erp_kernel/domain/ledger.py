"""
Ledger -- Canonical transaction and master-data value objects.

Responsibility:
    Defines the one canonical ``Transaction`` shape every raw ledger record is
    normalized into, plus the read-only master data (items, stores, accounts,
    company) the engines consume.  Also bundles the ledgers into a
    ``LedgerSet`` and the master data into ``MasterData``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Produced by
    ``erp_engines.normalizer``; consumed by every engine.

Invariants enforced:
    - All value objects are frozen; collections are tuples.
    - Every monetary or quantity field is a finite ``Decimal`` (the
      normalizer coerces anything else to zero).
    - ``date`` is a calendar ``date`` or ``None``.  ``None`` marks an
      unparseable date and never matches any date filter.

Audit relevance:
    ``Transaction.doc_id`` and ``seq`` tie every engine figure back to the
    raw document and its position in the source ledger.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from erp_kernel.domain.values import ItemType, PaymentMethod, RefType, TransactionKind

ZERO = Decimal("0")


@dataclass(frozen=True)
class AccountRef:
    """Typed reference to a counterparty, cash account or store."""

    ref_type: RefType
    ref_id: str


@dataclass(frozen=True)
class LineItem:
    """One item line of an invoice-like document or warehouse voucher."""

    item_code: str
    quantity: Decimal = ZERO
    unit_price: Decimal = ZERO
    line_total: Decimal = ZERO


@dataclass(frozen=True)
class Transaction:
    """
    Canonical ledger document.

    Invoice-like kinds use ``lines`` and the header totals; vouchers use
    ``amount`` and ``counterparty``; transfers use ``source`` and
    ``destination``.  Fields that do not apply to a kind keep their zero or
    ``None`` default.
    """

    kind: TransactionKind
    doc_id: str
    date: date | None
    seq: int = 0
    branch_id: str | None = None
    store_id: str | None = None
    payment_method: PaymentMethod | None = None
    counterparty: AccountRef | None = None
    lines: tuple[LineItem, ...] = ()
    subtotal: Decimal = ZERO
    discount: Decimal = ZERO
    tax: Decimal = ZERO
    net: Decimal = ZERO
    amount: Decimal = ZERO
    voucher_tax: Decimal = ZERO
    price_before_tax: Decimal = ZERO
    settlement: AccountRef | None = None
    split_cash_amount: Decimal = ZERO
    split_safe: AccountRef | None = None
    source: AccountRef | None = None
    destination: AccountRef | None = None
    status: str | None = None

    @property
    def is_cash(self) -> bool:
        return self.payment_method == PaymentMethod.CASH

    @property
    def is_split_payment(self) -> bool:
        return self.split_safe is not None and self.split_cash_amount > ZERO

    def in_range(self, start: date | None, end: date | None) -> bool:
        """True when the document is dated within [start, end] (open bounds allowed)."""
        if self.date is None:
            return False
        if start is not None and self.date < start:
            return False
        if end is not None and self.date > end:
            return False
        return True

    def before(self, cutoff: date) -> bool:
        return self.date is not None and self.date < cutoff


@dataclass(frozen=True)
class Item:
    """Master item, keyed by ``code`` across every ledger."""

    code: str
    name: str = ""
    item_type: ItemType = ItemType.STOCKED
    initial_purchase_price: Decimal | None = None
    purchase_price: Decimal | None = None
    sale_price: Decimal | None = None

    @property
    def is_stocked(self) -> bool:
        return self.item_type != ItemType.SERVICE


@dataclass(frozen=True)
class Store:
    id: str
    name: str = ""
    branch_id: str | None = None


@dataclass(frozen=True)
class StoreItem:
    """Per-store opening quantity of an item."""

    store_id: str
    item_code: str
    opening_balance: Decimal = ZERO


@dataclass(frozen=True)
class Account:
    """
    A master account the reconciler reports on: a safe, bank, customer,
    supplier, other receivable/payable, partner current account, revenue
    code or expense type.

    ``opening_balance`` is in the account's own convention: positive means
    a debit balance for assets and a credit balance for liabilities and
    partner accounts.  ``aliases`` lists extra references that post to this
    account (expense codes belonging to an expense type).
    """

    ref: AccountRef
    name: str = ""
    opening_balance: Decimal = ZERO
    branch_id: str | None = None
    aliases: tuple[AccountRef, ...] = ()

    @property
    def id(self) -> str:
        return self.ref.ref_id

    def references(self) -> frozenset[AccountRef]:
        return frozenset((self.ref, *self.aliases))


@dataclass(frozen=True)
class LedgerSet:
    """The ten normalized ledgers, each in source insertion order."""

    purchase_invoices: tuple[Transaction, ...] = ()
    sales_invoices: tuple[Transaction, ...] = ()
    purchase_returns: tuple[Transaction, ...] = ()
    sales_returns: tuple[Transaction, ...] = ()
    warehouse_receipts: tuple[Transaction, ...] = ()
    warehouse_issues: tuple[Transaction, ...] = ()
    warehouse_transfers: tuple[Transaction, ...] = ()
    receipt_vouchers: tuple[Transaction, ...] = ()
    payment_vouchers: tuple[Transaction, ...] = ()
    internal_transfers: tuple[Transaction, ...] = ()

    def of_kind(self, kind: TransactionKind) -> tuple[Transaction, ...]:
        return getattr(self, LEDGER_FIELDS[kind])

    def all(self) -> tuple[Transaction, ...]:
        return tuple(tx for kind in TransactionKind for tx in self.of_kind(kind))


LEDGER_FIELDS: dict[TransactionKind, str] = {
    TransactionKind.PURCHASE_INVOICE: "purchase_invoices",
    TransactionKind.SALES_INVOICE: "sales_invoices",
    TransactionKind.PURCHASE_RETURN: "purchase_returns",
    TransactionKind.SALES_RETURN: "sales_returns",
    TransactionKind.WAREHOUSE_RECEIPT: "warehouse_receipts",
    TransactionKind.WAREHOUSE_ISSUE: "warehouse_issues",
    TransactionKind.WAREHOUSE_TRANSFER: "warehouse_transfers",
    TransactionKind.RECEIPT_VOUCHER: "receipt_vouchers",
    TransactionKind.PAYMENT_VOUCHER: "payment_vouchers",
    TransactionKind.INTERNAL_TRANSFER: "internal_transfers",
}


@dataclass(frozen=True)
class MasterData:
    """Read-only master data consumed by the reconciler and valuation."""

    items: tuple[Item, ...] = ()
    stores: tuple[Store, ...] = ()
    store_items: tuple[StoreItem, ...] = ()
    safes: tuple[Account, ...] = ()
    banks: tuple[Account, ...] = ()
    customers: tuple[Account, ...] = ()
    suppliers: tuple[Account, ...] = ()
    receivable_accounts: tuple[Account, ...] = ()
    payable_accounts: tuple[Account, ...] = ()
    partner_accounts: tuple[Account, ...] = ()
    revenue_codes: tuple[Account, ...] = ()
    expense_types: tuple[Account, ...] = ()
    capital: Decimal = ZERO
    entity_name: str = ""
