"""
erp_engines.inventory -- Inventory Balance Aggregator.

Responsibility:
    Compute the signed quantity balance of every stock-tracked item as of an
    end date, price it with the Cost Valuation Engine, and total the value.
    Supports company-wide valuation and branch/store-scoped valuation.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Depends on
    ``erp_engines.costing`` and on normalized ledgers; its result is the
    authoritative inventory line of the reconciled chart.

Invariants enforced:
    - balance = aggregated opening + purchases + sales returns + warehouse
      receipts - sales - purchase returns - warehouse issues, over documents
      dated on or before the end date.
    - Company-wide, warehouse transfers are a no-op: the quantity leaves one
      store and enters another, so the aggregate is unchanged for any
      quantity and any date.
    - Scoped, transfers are applied: subtracted at a source store in scope,
      added at a destination store in scope.
    - Service items are never valued.
    - Identical inputs give identical results.

Failure modes:
    - InvalidEngineInputError when ``items``, ``ledgers`` or
      ``opening_balances`` is missing.
    - An unparseable end date yields an empty valuation, not an error.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from erp_engines.costing import unit_cost
from erp_engines.normalizer import normalize_date
from erp_engines.tracer import traced_engine
from erp_kernel.domain.ledger import Item, LedgerSet, Store, StoreItem, Transaction
from erp_kernel.domain.values import CostMethod, TransactionKind
from erp_kernel.exceptions import InvalidEngineInputError
from erp_kernel.logging_config import get_logger

logger = get_logger("engines.inventory")

ZERO = Decimal("0")

ENGINE_NAME = "inventory_valuation"

INBOUND_KINDS = (
    TransactionKind.PURCHASE_INVOICE,
    TransactionKind.SALES_RETURN,
    TransactionKind.WAREHOUSE_RECEIPT,
)
OUTBOUND_KINDS = (
    TransactionKind.SALES_INVOICE,
    TransactionKind.PURCHASE_RETURN,
    TransactionKind.WAREHOUSE_ISSUE,
)


@dataclass(frozen=True)
class InventoryScope:
    """Restricts valuation to one branch and/or one store."""

    branch_id: str | None = None
    store_id: str | None = None

    @property
    def is_company_wide(self) -> bool:
        return self.branch_id is None and self.store_id is None

    def includes_store(self, store_id: str | None, stores: Mapping[str, Store]) -> bool:
        if store_id is None:
            return False
        if self.store_id is not None and store_id != self.store_id:
            return False
        if self.branch_id is not None:
            store = stores.get(store_id)
            return store is not None and store.branch_id == self.branch_id
        return True

    def includes(self, tx: Transaction, stores: Mapping[str, Store]) -> bool:
        """Whether a non-transfer document belongs to the scope."""
        if self.store_id is not None:
            return tx.store_id == self.store_id
        if tx.branch_id is not None:
            return tx.branch_id == self.branch_id
        return self.includes_store(tx.store_id, stores)


COMPANY_WIDE = InventoryScope()


@dataclass(frozen=True)
class ValuationResult:
    """Balance, unit cost and value of one item."""

    item: Item
    balance: Decimal
    cost: Decimal
    value: Decimal


@dataclass(frozen=True)
class InventoryValuation:
    """Per-item valuation results and their total."""

    results: tuple[ValuationResult, ...]
    total_value: Decimal
    end_date: date | None
    method: CostMethod
    scope: InventoryScope = COMPANY_WIDE

    def result_for(self, item_code: str) -> ValuationResult | None:
        for result in self.results:
            if result.item.code == item_code:
                return result
        return None


def aggregate_opening_balances(
    store_items: Iterable[StoreItem],
    stores: Iterable[Store] = (),
    scope: InventoryScope | None = None,
) -> dict[str, Decimal]:
    """Sum per-store opening quantities by item code, optionally within a scope."""
    scope = scope or COMPANY_WIDE
    stores_by_id = {store.id: store for store in stores}
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for row in store_items:
        if scope.is_company_wide or scope.includes_store(row.store_id, stores_by_id):
            totals[row.item_code] += row.opening_balance
    return dict(totals)


def item_balances(
    ledgers: LedgerSet,
    end_date: date,
    opening_balances: Mapping[str, Decimal],
    scope: InventoryScope | None = None,
    stores: Iterable[Store] = (),
) -> dict[str, Decimal]:
    """Signed quantity per item code as of ``end_date``."""
    scope = scope or COMPANY_WIDE
    stores_by_id = {store.id: store for store in stores}
    balances: dict[str, Decimal] = defaultdict(lambda: ZERO)
    balances.update(opening_balances)

    def _apply(kinds: tuple[TransactionKind, ...], sign: int) -> None:
        for kind in kinds:
            for tx in ledgers.of_kind(kind):
                if not tx.in_range(None, end_date):
                    continue
                if not scope.is_company_wide and not scope.includes(tx, stores_by_id):
                    continue
                for line in tx.lines:
                    balances[line.item_code] += sign * line.quantity

    _apply(INBOUND_KINDS, 1)
    _apply(OUTBOUND_KINDS, -1)

    if not scope.is_company_wide:
        for tx in ledgers.warehouse_transfers:
            if not tx.in_range(None, end_date):
                continue
            leaves = tx.source is not None and scope.includes_store(tx.source.ref_id, stores_by_id)
            enters = (
                tx.destination is not None
                and scope.includes_store(tx.destination.ref_id, stores_by_id)
            )
            for line in tx.lines:
                if leaves:
                    balances[line.item_code] -= line.quantity
                if enters:
                    balances[line.item_code] += line.quantity

    return dict(balances)


@traced_engine(ENGINE_NAME, "1.0", fingerprint_fields=("end_date", "method", "scope"))
def calculate_valuation(
    *,
    items: Iterable[Item] | None,
    ledgers: LedgerSet | None,
    end_date: date | str | Any,
    method: CostMethod | str,
    opening_balances: Mapping[str, Decimal] | None,
    scope: InventoryScope | None = None,
    store_items: Iterable[StoreItem] = (),
    stores: Iterable[Store] = (),
) -> InventoryValuation:
    """
    Value every stock-tracked item as of ``end_date``.

    Args:
        items: Master items; service items are skipped.
        ledgers: Normalized ledgers (all ten kinds).
        end_date: Inclusive cutoff; anything ``normalize_date`` accepts.
        method: Costing policy for the unit cost.
        opening_balances: Company-wide aggregated opening quantities.  Unit
            costs always use these, whatever the scope.
        scope: Branch/store restriction; company-wide when omitted.
        store_items: Per-store openings, required for a scoped valuation.
        stores: Store master, used to resolve a store's branch.
    """
    if items is None:
        raise InvalidEngineInputError(ENGINE_NAME, "items")
    if ledgers is None:
        raise InvalidEngineInputError(ENGINE_NAME, "ledgers")
    if opening_balances is None:
        raise InvalidEngineInputError(ENGINE_NAME, "opening_balances")

    method = CostMethod.parse(method)
    scope = scope or COMPANY_WIDE
    cutoff = normalize_date(end_date)
    items = tuple(items)
    if cutoff is None or not items:
        logger.info(
            "inventory_valuation_empty",
            extra={"end_date": str(end_date), "item_count": len(items)},
        )
        return InventoryValuation((), ZERO, cutoff, method, scope)

    stores = tuple(stores)
    scoped_opening = (
        opening_balances
        if scope.is_company_wide
        else aggregate_opening_balances(store_items, stores, scope)
    )
    balances = item_balances(ledgers, cutoff, scoped_opening, scope, stores)

    results = []
    for item in items:
        if not item.is_stocked:
            continue
        balance = balances.get(item.code, ZERO)
        cost = unit_cost(
            item,
            cutoff,
            method,
            purchase_invoices=ledgers.purchase_invoices,
            sales_invoices=ledgers.sales_invoices,
            opening_balance=opening_balances.get(item.code, ZERO),
        )
        results.append(ValuationResult(item=item, balance=balance, cost=cost, value=balance * cost))

    total_value = sum((result.value for result in results), ZERO)
    logger.info(
        "inventory_valued",
        extra={
            "end_date": cutoff.isoformat(),
            "method": method.value,
            "branch_id": scope.branch_id,
            "store_id": scope.store_id,
            "item_count": len(results),
            "total_value": str(total_value),
        },
    )
    return InventoryValuation(tuple(results), total_value, cutoff, method, scope)
