"""
erp_engines.normalizer -- Ledger Normalizer.

Responsibility:
    Map every raw source document (invoices, returns, warehouse vouchers,
    cash/bank vouchers, internal transfers) and every master-data row into
    the canonical value objects of ``erp_kernel.domain``.  This is the ONLY
    place in the system that probes field-name variants of raw records;
    downstream engines read typed attributes only.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Leaf component: depends on
    kernel domain types only.

Invariants enforced:
    - Never raises on malformed data.  Non-numeric amounts become 0,
      unparseable dates become ``None`` (never matches a date filter),
      non-mapping records are skipped.
    - Warehouse transfers are kept only when their status is ACCEPTED.
    - Every Decimal produced is finite.
    - Output order equals input order; ``seq`` records the input position.

Failure modes:
    - Only a contract violation raises: an unknown transaction kind name
      (``ValueError`` from ``TransactionKind``).

Audit relevance:
    ``doc_id`` and ``seq`` on each Transaction identify the raw document
    behind every engine figure.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from erp_kernel.domain.ledger import (
    LEDGER_FIELDS,
    Account,
    AccountRef,
    Item,
    LedgerSet,
    LineItem,
    MasterData,
    Store,
    StoreItem,
    Transaction,
)
from erp_kernel.domain.values import ItemType, PaymentMethod, RefType, TransactionKind
from erp_kernel.logging_config import get_logger

logger = get_logger("engines.normalizer")

ZERO = Decimal("0")

ACCEPTED = "ACCEPTED"

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Raw collection names as stored in the ledger source.
LEDGER_COLLECTIONS: dict[TransactionKind, str] = {
    TransactionKind.PURCHASE_INVOICE: "purchase_invoices",
    TransactionKind.SALES_INVOICE: "sales_invoices",
    TransactionKind.PURCHASE_RETURN: "purchase_returns",
    TransactionKind.SALES_RETURN: "sales_returns",
    TransactionKind.WAREHOUSE_RECEIPT: "store_receipt_vouchers",
    TransactionKind.WAREHOUSE_ISSUE: "store_issue_vouchers",
    TransactionKind.WAREHOUSE_TRANSFER: "store_transfer_vouchers",
    TransactionKind.RECEIPT_VOUCHER: "receipt_vouchers",
    TransactionKind.PAYMENT_VOUCHER: "payment_vouchers",
    TransactionKind.INTERNAL_TRANSFER: "internal_transfers",
}

MASTER_COLLECTIONS: tuple[str, ...] = (
    "items",
    "stores",
    "store_items",
    "safes",
    "banks",
    "customers",
    "suppliers",
    "receivable_accounts",
    "payable_accounts",
    "current_accounts",
    "revenue_codes",
    "expense_types",
    "expense_codes",
    "company",
)

ALL_COLLECTIONS: tuple[str, ...] = tuple(LEDGER_COLLECTIONS.values()) + MASTER_COLLECTIONS

# Voucher entityType tag -> (reference type, raw id field)
_VOUCHER_ENTITIES: dict[str, tuple[RefType, str]] = {
    "customer": (RefType.CUSTOMER, "customerId"),
    "supplier": (RefType.SUPPLIER, "supplierId"),
    "current-account": (RefType.PARTNER, "currentAccountId"),
    "receivable": (RefType.RECEIVABLE, "receivableAccountId"),
    "payable": (RefType.PAYABLE, "payableAccountId"),
    "revenue": (RefType.REVENUE, "revenueCodeId"),
    "expense": (RefType.EXPENSE, "expenseCodeId"),
    "expense-type": (RefType.EXPENSE_TYPE, "expenseTypeId"),
    "vat": (RefType.VAT, "vatId"),
}

VAT_REF_ID = "vat"


# =========================================================================
# Scalars
# =========================================================================


def normalize_date(value: Any) -> date | None:
    """
    Reduce a raw date to a calendar date.

    Canonical ``YYYY-MM-DD`` strings pass through; longer strings use their
    first ten characters when those form a date, else are parsed as ISO
    date-times; ``date``/``datetime`` values drop their time of day.
    Anything else is unparseable and yields ``None``.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if _ISO_DATE.match(text[:10]):
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def to_decimal(value: Any) -> Decimal:
    """Coerce a raw amount to a finite Decimal; anything else becomes 0."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        return Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            return ZERO
    else:
        return ZERO
    return result if result.is_finite() else ZERO


def _optional_decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    return to_decimal(value)


def _first(raw: Mapping[str, Any], *paths: str) -> Any:
    """First non-None value among dotted paths (``"item.code"``)."""
    for path in paths:
        current: Any = raw
        for part in path.split("."):
            if not isinstance(current, Mapping):
                current = None
                break
            current = current.get(part)
        if current is not None and current != "":
            return current
    return None


def _text(value: Any) -> str | None:
    return None if value is None else str(value)


def resolve_amount(raw: Mapping[str, Any]) -> Decimal:
    """Header amount: net, then total, then amount, then debit, then credit."""
    return to_decimal(_first(raw, "net", "total", "amount", "debit", "credit"))


# =========================================================================
# Transactions
# =========================================================================


def _line_item(raw: Mapping[str, Any], kind: TransactionKind) -> LineItem | None:
    if kind.is_warehouse_voucher:
        code = _first(raw, "item.code", "itemId", "itemCode", "id")
    else:
        code = _first(raw, "itemCode", "id", "code", "item.code")
    if code is None:
        return None
    quantity = to_decimal(_first(raw, "qty", "quantity"))
    unit_price = to_decimal(_first(raw, "price", "unitPrice"))
    total = _first(raw, "total", "totalPrice", "lineTotal")
    line_total = to_decimal(total) if total is not None else quantity * unit_price
    return LineItem(
        item_code=str(code),
        quantity=quantity,
        unit_price=unit_price,
        line_total=line_total,
    )


def _lines(raw: Mapping[str, Any], kind: TransactionKind) -> tuple[LineItem, ...]:
    raw_lines = _first(raw, "items", "lines")
    if not isinstance(raw_lines, Sequence) or isinstance(raw_lines, str):
        return ()
    lines = []
    for raw_line in raw_lines:
        if isinstance(raw_line, Mapping):
            line = _line_item(raw_line, kind)
            if line is not None:
                lines.append(line)
    return tuple(lines)


def _payment_method(raw: Mapping[str, Any]) -> PaymentMethod | None:
    method = _first(raw, "paymentMethod")
    try:
        return PaymentMethod(str(method).lower()) if method is not None else None
    except ValueError:
        return None


def _cash_ref(kind_value: Any, safe_id: Any, bank_id: Any, target_id: Any = None) -> AccountRef | None:
    """Resolve a safe/bank reference from a type tag and candidate ids."""
    tag = str(kind_value).lower() if kind_value is not None else None
    if tag == "safe":
        ref_id = safe_id if safe_id is not None else target_id
        return AccountRef(RefType.SAFE, str(ref_id)) if ref_id is not None else None
    if tag == "bank":
        ref_id = bank_id if bank_id is not None else target_id
        return AccountRef(RefType.BANK, str(ref_id)) if ref_id is not None else None
    if safe_id is not None:
        return AccountRef(RefType.SAFE, str(safe_id))
    if bank_id is not None:
        return AccountRef(RefType.BANK, str(bank_id))
    return None


def _invoice_counterparty(raw: Mapping[str, Any], kind: TransactionKind) -> AccountRef | None:
    if kind in (TransactionKind.SALES_INVOICE, TransactionKind.SALES_RETURN):
        party = _first(raw, "customerId", "customer.id", "customerOrSupplier.id")
        return AccountRef(RefType.CUSTOMER, str(party)) if party is not None else None
    party = _first(raw, "supplierId", "supplier.id", "customerOrSupplier.id")
    return AccountRef(RefType.SUPPLIER, str(party)) if party is not None else None


def _voucher_counterparty(raw: Mapping[str, Any]) -> AccountRef | None:
    entity = _first(raw, "entityType")
    if entity is None:
        return None
    resolved = _VOUCHER_ENTITIES.get(str(entity).strip().lower())
    if resolved is None:
        return None
    ref_type, id_field = resolved
    if ref_type == RefType.VAT:
        return AccountRef(RefType.VAT, VAT_REF_ID)
    ref_id = _first(raw, id_field, "entityId")
    if ref_id is None and ref_type == RefType.EXPENSE_TYPE:
        ref_id = _first(raw, "expenseCodeId")
    return AccountRef(ref_type, str(ref_id)) if ref_id is not None else None


def _header(raw: Mapping[str, Any], kind: TransactionKind, seq: int) -> dict[str, Any]:
    doc_id = _first(raw, "id", "code", "voucherNumber")
    return {
        "kind": kind,
        "doc_id": str(doc_id) if doc_id is not None else f"{kind.value}-{seq}",
        "date": normalize_date(_first(raw, "date", "invoiceDate", "transactionDate")),
        "seq": seq,
        "branch_id": _text(_first(raw, "branchId", "branch.id")),
        "store_id": _text(_first(raw, "storeId", "store.id")),
        "status": _text(_first(raw, "status")),
    }


def _invoice_like(raw: Mapping[str, Any], kind: TransactionKind, seq: int) -> Transaction:
    lines = _lines(raw, kind)
    subtotal_raw = _first(raw, "subtotal")
    subtotal = (
        to_decimal(subtotal_raw)
        if subtotal_raw is not None
        else sum((line.line_total for line in lines), ZERO)
    )
    settlement = _cash_ref(
        _first(raw, "paymentTargetType"),
        _first(raw, "safeId"),
        _first(raw, "bankId"),
        _first(raw, "paymentTargetId"),
    )
    split_safe = None
    split_cash = ZERO
    if _first(raw, "isSplitPayment"):
        split_cash = to_decimal(_first(raw, "splitCashAmount"))
        split_safe_id = _first(raw, "splitSafeId")
        if split_safe_id is not None:
            split_safe = AccountRef(RefType.SAFE, str(split_safe_id))
        split_bank_id = _first(raw, "splitBankId")
        if split_bank_id is not None:
            settlement = AccountRef(RefType.BANK, str(split_bank_id))
    return Transaction(
        **_header(raw, kind, seq),
        payment_method=_payment_method(raw),
        counterparty=_invoice_counterparty(raw, kind),
        lines=lines,
        subtotal=subtotal,
        discount=to_decimal(_first(raw, "discount")),
        tax=to_decimal(_first(raw, "tax", "taxAmount")),
        net=resolve_amount(raw),
        settlement=settlement,
        split_cash_amount=split_cash,
        split_safe=split_safe,
    )


def _warehouse_voucher(raw: Mapping[str, Any], kind: TransactionKind, seq: int) -> Transaction:
    source = destination = None
    if kind == TransactionKind.WAREHOUSE_TRANSFER:
        from_store = _first(raw, "fromStoreId", "fromStore.id")
        to_store = _first(raw, "toStoreId", "toStore.id")
        source = AccountRef(RefType.STORE, str(from_store)) if from_store is not None else None
        destination = AccountRef(RefType.STORE, str(to_store)) if to_store is not None else None
    lines = _lines(raw, kind)
    return Transaction(
        **_header(raw, kind, seq),
        lines=lines,
        amount=to_decimal(_first(raw, "totalAmount", "total", "amount")),
        source=source,
        destination=destination,
    )


def _voucher(raw: Mapping[str, Any], kind: TransactionKind, seq: int) -> Transaction:
    amount = resolve_amount(raw)
    voucher_tax = to_decimal(_first(raw, "taxPrice", "taxAmount", "tax"))
    before_tax_raw = _first(raw, "priceBeforeTax")
    price_before_tax = (
        to_decimal(before_tax_raw) if before_tax_raw is not None else amount - voucher_tax
    )
    return Transaction(
        **_header(raw, kind, seq),
        counterparty=_voucher_counterparty(raw),
        amount=amount,
        voucher_tax=voucher_tax,
        price_before_tax=price_before_tax,
        settlement=_cash_ref(
            _first(raw, "paymentMethod"), _first(raw, "safeId"), _first(raw, "bankId")
        ),
    )


def _internal_transfer(raw: Mapping[str, Any], kind: TransactionKind, seq: int) -> Transaction:
    return Transaction(
        **_header(raw, kind, seq),
        amount=resolve_amount(raw),
        source=_cash_ref(
            _first(raw, "fromType"), _first(raw, "fromSafeId"), _first(raw, "fromBankId")
        ),
        destination=_cash_ref(
            _first(raw, "toType"), _first(raw, "toSafeId"), _first(raw, "toBankId")
        ),
    )


def _builder(kind: TransactionKind):
    if kind.is_invoice_like:
        return _invoice_like
    if kind.is_warehouse_voucher:
        return _warehouse_voucher
    if kind.is_voucher:
        return _voucher
    return _internal_transfer


def normalize(
    raw_records: Iterable[Any] | None,
    kind: TransactionKind | str,
) -> tuple[Transaction, ...]:
    """
    Convert raw records of one kind into canonical transactions.

    Warehouse transfers whose status is not ACCEPTED are dropped.  Records
    that are not mappings are skipped.  Never raises on record content.
    """
    kind = TransactionKind(kind)
    build = _builder(kind)
    records = list(raw_records or ())
    transactions: list[Transaction] = []
    for seq, raw in enumerate(records):
        if not isinstance(raw, Mapping):
            continue
        tx = build(raw, kind, seq)
        if kind == TransactionKind.WAREHOUSE_TRANSFER and (tx.status or "").upper() != ACCEPTED:
            continue
        transactions.append(tx)

    logger.debug(
        "ledger_normalized",
        extra={
            "kind": kind.value,
            "raw_count": len(records),
            "kept": len(transactions),
            "undated": sum(1 for tx in transactions if tx.date is None),
        },
    )
    return tuple(transactions)


def normalize_ledgers(raw_by_collection: Mapping[str, Sequence[Any]]) -> LedgerSet:
    """Normalize every ledger collection present in a raw bundle."""
    return LedgerSet(**{
        LEDGER_FIELDS[kind]: normalize(raw_by_collection.get(name, ()), kind)
        for kind, name in LEDGER_COLLECTIONS.items()
    })


# =========================================================================
# Master data
# =========================================================================


def _rows(raw_rows: Any) -> list[Mapping[str, Any]]:
    if isinstance(raw_rows, Mapping):
        return [raw_rows]
    if not isinstance(raw_rows, Sequence) or isinstance(raw_rows, str):
        return []
    return [row for row in raw_rows if isinstance(row, Mapping)]


def normalize_items(raw_rows: Any) -> tuple[Item, ...]:
    items = []
    for raw in _rows(raw_rows):
        code = _first(raw, "code", "itemCode", "id")
        if code is None:
            continue
        raw_type = str(_first(raw, "type") or "").upper()
        items.append(Item(
            code=str(code),
            name=str(_first(raw, "name") or ""),
            item_type=ItemType.SERVICE if raw_type == ItemType.SERVICE.value else ItemType.STOCKED,
            initial_purchase_price=_optional_decimal(_first(raw, "initialPurchasePrice")),
            purchase_price=_optional_decimal(_first(raw, "purchasePrice")),
            sale_price=_optional_decimal(_first(raw, "salePrice")),
        ))
    return tuple(items)


def normalize_stores(raw_rows: Any) -> tuple[Store, ...]:
    stores = []
    for raw in _rows(raw_rows):
        store_id = _first(raw, "id")
        if store_id is None:
            continue
        stores.append(Store(
            id=str(store_id),
            name=str(_first(raw, "name") or ""),
            branch_id=_text(_first(raw, "branchId", "branch.id")),
        ))
    return tuple(stores)


def normalize_store_items(raw_rows: Any) -> tuple[StoreItem, ...]:
    store_items = []
    for raw in _rows(raw_rows):
        store_id = _first(raw, "storeId", "store.id")
        code = _first(raw, "item.code", "itemCode", "itemId")
        if store_id is None or code is None:
            continue
        store_items.append(StoreItem(
            store_id=str(store_id),
            item_code=str(code),
            opening_balance=to_decimal(_first(raw, "openingBalance")),
        ))
    return tuple(store_items)


def normalize_accounts(raw_rows: Any, ref_type: RefType) -> tuple[Account, ...]:
    accounts = []
    for raw in _rows(raw_rows):
        account_id = _first(raw, "id", "code")
        if account_id is None:
            continue
        accounts.append(Account(
            ref=AccountRef(ref_type, str(account_id)),
            name=str(_first(raw, "name") or ""),
            opening_balance=to_decimal(_first(raw, "openingBalance")),
            branch_id=_text(_first(raw, "branchId", "branch.id")),
        ))
    return tuple(accounts)


def normalize_expense_types(raw_types: Any, raw_codes: Any) -> tuple[Account, ...]:
    """Expense types, each aliased by the expense codes that belong to it."""
    codes_by_type: dict[str, list[AccountRef]] = {}
    for raw in _rows(raw_codes):
        code_id = _first(raw, "id")
        type_id = _first(raw, "expenseTypeId", "expenseType.id")
        if code_id is None or type_id is None:
            continue
        codes_by_type.setdefault(str(type_id), []).append(
            AccountRef(RefType.EXPENSE, str(code_id))
        )
    return tuple(
        Account(
            ref=account.ref,
            name=account.name,
            opening_balance=account.opening_balance,
            aliases=tuple(codes_by_type.get(account.id, ())),
        )
        for account in normalize_accounts(raw_types, RefType.EXPENSE_TYPE)
    )


def normalize_company(raw: Any) -> tuple[str, Decimal]:
    """Entity name and capital from the company record."""
    rows = _rows(raw)
    if not rows:
        return "", ZERO
    company = rows[0]
    return str(_first(company, "name") or ""), to_decimal(_first(company, "capital"))


def normalize_master_data(raw_by_collection: Mapping[str, Any]) -> MasterData:
    """Normalize every master-data collection present in a raw bundle."""
    entity_name, capital = normalize_company(raw_by_collection.get("company"))
    get = raw_by_collection.get
    return MasterData(
        items=normalize_items(get("items")),
        stores=normalize_stores(get("stores")),
        store_items=normalize_store_items(get("store_items")),
        safes=normalize_accounts(get("safes"), RefType.SAFE),
        banks=normalize_accounts(get("banks"), RefType.BANK),
        customers=normalize_accounts(get("customers"), RefType.CUSTOMER),
        suppliers=normalize_accounts(get("suppliers"), RefType.SUPPLIER),
        receivable_accounts=normalize_accounts(get("receivable_accounts"), RefType.RECEIVABLE),
        payable_accounts=normalize_accounts(get("payable_accounts"), RefType.PAYABLE),
        partner_accounts=normalize_accounts(get("current_accounts"), RefType.PARTNER),
        revenue_codes=normalize_accounts(get("revenue_codes"), RefType.REVENUE),
        expense_types=normalize_expense_types(get("expense_types"), get("expense_codes")),
        capital=capital,
        entity_name=entity_name,
    )
