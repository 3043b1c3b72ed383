"""
erp_engines.costing -- Cost Valuation Engine.

Responsibility:
    Compute the unit cost of an item as of a reference date under one of
    three costing policies: weighted-average cost, last purchase price, or
    sale price, each with its own fallback chain.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Consumes normalized
    purchase and sales invoices from ``erp_engines.normalizer``; consumed by
    ``erp_engines.inventory``.

Invariants enforced:
    - Only documents dated on or before the reference date are considered;
      undated documents never qualify.
    - Division by zero is guarded explicitly: a zero total quantity falls
      back instead of dividing, so NaN and Infinity can never surface.
    - Decimal arithmetic throughout; nothing is rounded here.
    - Same-date ties are broken by source insertion order: the document
      inserted later is the more recent one.

Failure modes:
    - UnknownValuationMethodError for an unrecognised method string.
    - No data-quality condition raises; missing prices fall back to 0.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from erp_kernel.domain.ledger import Item, Transaction
from erp_kernel.domain.values import CostMethod

ZERO = Decimal("0")


def _most_recent_first(
    invoices: Iterable[Transaction],
    reference_date: date | None,
) -> list[Transaction]:
    if reference_date is None:
        return []
    eligible = [tx for tx in invoices if tx.date is not None and tx.date <= reference_date]
    return sorted(eligible, key=lambda tx: (tx.date, tx.seq), reverse=True)


def _latest_unit_price(
    item_code: str,
    invoices: Iterable[Transaction],
    reference_date: date | None,
) -> Decimal | None:
    for tx in _most_recent_first(invoices, reference_date):
        for line in tx.lines:
            if line.item_code == item_code:
                return line.unit_price
    return None


def last_purchase_price(
    item_code: str,
    reference_date: date | None,
    purchase_invoices: Iterable[Transaction],
) -> Decimal | None:
    """Unit price of the most recent purchase line for the item, or None."""
    return _latest_unit_price(item_code, purchase_invoices, reference_date)


def weighted_average_cost(
    item: Item,
    reference_date: date | None,
    purchase_invoices: Iterable[Transaction],
    opening_balance: Decimal = ZERO,
) -> Decimal | None:
    """
    Total cost over total quantity of the opening stock plus every purchase
    line dated on or before the reference date.

    Returns None when the total quantity is zero.
    """
    total_qty = opening_balance
    total_cost = ZERO
    if opening_balance > ZERO:
        total_cost = opening_balance * (item.initial_purchase_price or ZERO)

    if reference_date is not None:
        for tx in purchase_invoices:
            if tx.date is None or tx.date > reference_date:
                continue
            for line in tx.lines:
                if line.item_code == item.code:
                    total_qty += line.quantity
                    total_cost += line.line_total

    if total_qty == ZERO:
        return None
    return total_cost / total_qty


def _purchase_fallback(item: Item) -> Decimal:
    if item.initial_purchase_price is not None:
        return item.initial_purchase_price
    if item.purchase_price is not None:
        return item.purchase_price
    return ZERO


def unit_cost(
    item: Item,
    reference_date: date | None,
    method: CostMethod | str,
    *,
    purchase_invoices: Iterable[Transaction] = (),
    sales_invoices: Iterable[Transaction] = (),
    opening_balance: Decimal = ZERO,
) -> Decimal:
    """
    Unit cost of ``item`` as of ``reference_date``.

    Fallback chains:
        averageCost    -> weighted average; on zero quantity the initial
                          purchase price if positive, else the last purchase
                          price, else 0.
        purchasePrice  -> last purchase price; else initial purchase price,
                          else purchase price, else 0.
        salePrice      -> last sale price; else configured sale price, else
                          initial purchase price, else 0.
    """
    method = CostMethod.parse(method)
    purchase_invoices = tuple(purchase_invoices)

    if method == CostMethod.WEIGHTED_AVERAGE:
        average = weighted_average_cost(item, reference_date, purchase_invoices, opening_balance)
        if average is not None:
            return average
        if item.initial_purchase_price is not None and item.initial_purchase_price > ZERO:
            return item.initial_purchase_price
        last = last_purchase_price(item.code, reference_date, purchase_invoices)
        return last if last is not None else ZERO

    if method == CostMethod.LAST_PURCHASE_PRICE:
        last = last_purchase_price(item.code, reference_date, purchase_invoices)
        return last if last is not None else _purchase_fallback(item)

    last_sale = _latest_unit_price(item.code, sales_invoices, reference_date)
    if last_sale is not None:
        return last_sale
    if item.sale_price is not None:
        return item.sale_price
    return item.initial_purchase_price if item.initial_purchase_price is not None else ZERO
