"""
Tests for the ledger normalizer.

Raw records arrive in several shapes; every engine downstream reads the
canonical Transaction only.  Malformed content is coerced, never raised.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from erp_engines.normalizer import (
    normalize,
    normalize_date,
    normalize_ledgers,
    normalize_master_data,
    resolve_amount,
    to_decimal,
)
from erp_kernel.domain.ledger import AccountRef
from erp_kernel.domain.values import ItemType, PaymentMethod, RefType, TransactionKind


class TestNormalizeDate:
    """Raw date forms reduce to a calendar date or None."""

    def test_canonical_string(self):
        assert normalize_date("2024-02-10") == date(2024, 2, 10)

    def test_datetime_string_truncated(self):
        assert normalize_date("2024-02-12T10:30:00") == date(2024, 2, 12)

    def test_datetime_string_with_offset(self):
        assert normalize_date("2024-02-12T23:59:59+03:00") == date(2024, 2, 12)

    def test_datetime_value_drops_time(self):
        assert normalize_date(datetime(2024, 3, 1, 18, 0)) == date(2024, 3, 1)

    def test_date_value_passes_through(self):
        assert normalize_date(date(2024, 3, 1)) == date(2024, 3, 1)

    @pytest.mark.parametrize("raw", ["not a date", "", "2024-13-45", None, 20240201, [], {}])
    def test_unparseable_is_none(self, raw):
        assert normalize_date(raw) is None


class TestToDecimal:
    """Amount coercion never raises and never yields a non-finite value."""

    def test_int(self):
        assert to_decimal(5) == Decimal("5")

    def test_float_uses_shortest_repr(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_numeric_string(self):
        assert to_decimal(" 12.50 ") == Decimal("12.50")

    @pytest.mark.parametrize("raw", ["abc", None, True, [], {}, "NaN", "Infinity", float("nan")])
    def test_garbage_is_zero(self, raw):
        assert to_decimal(raw) == Decimal("0")

    def test_amount_precedence(self):
        assert resolve_amount({"net": 10, "total": 20, "amount": 30}) == Decimal("10")
        assert resolve_amount({"total": 20, "amount": 30}) == Decimal("20")
        assert resolve_amount({"amount": 30}) == Decimal("30")
        assert resolve_amount({"debit": 7}) == Decimal("7")
        assert resolve_amount({}) == Decimal("0")


class TestInvoiceLike:
    """Invoices and returns."""

    def test_credit_sales_invoice(self):
        (tx,) = normalize(
            [{
                "id": "SI-2", "date": "2024-02-10", "storeId": "S1", "branchId": "B1",
                "customerId": "C1", "paymentMethod": "credit",
                "items": [{"itemCode": "X", "qty": 3, "price": 12, "total": 36}],
                "subtotal": 36, "discount": 1, "tax": 5.25, "net": 40.25,
            }],
            TransactionKind.SALES_INVOICE,
        )
        assert tx.kind == TransactionKind.SALES_INVOICE
        assert tx.doc_id == "SI-2"
        assert tx.date == date(2024, 2, 10)
        assert tx.store_id == "S1"
        assert tx.branch_id == "B1"
        assert tx.payment_method == PaymentMethod.CREDIT
        assert not tx.is_cash
        assert tx.counterparty == AccountRef(RefType.CUSTOMER, "C1")
        assert tx.subtotal == Decimal("36")
        assert tx.discount == Decimal("1")
        assert tx.tax == Decimal("5.25")
        assert tx.net == Decimal("40.25")
        assert tx.settlement is None
        (line,) = tx.lines
        assert line.item_code == "X"
        assert line.quantity == Decimal("3")
        assert line.unit_price == Decimal("12")
        assert line.line_total == Decimal("36")

    def test_purchase_invoice_counterparty_is_supplier(self):
        (tx,) = normalize(
            [{"id": "PI-1", "date": "2024-01-10", "supplierId": "V1", "net": 69}],
            "purchase_invoice",
        )
        assert tx.counterparty == AccountRef(RefType.SUPPLIER, "V1")

    def test_cash_settlement_target(self):
        (tx,) = normalize(
            [{"id": "PI-2", "date": "2024-02-05", "supplierId": "V1", "paymentMethod": "CASH",
              "paymentTargetType": "bank", "paymentTargetId": "BANK1", "net": 29.9}],
            TransactionKind.PURCHASE_INVOICE,
        )
        assert tx.is_cash
        assert tx.settlement == AccountRef(RefType.BANK, "BANK1")

    def test_split_payment(self):
        (tx,) = normalize(
            [{"id": "SI-3", "date": "2024-02-12", "customerId": "C1", "paymentMethod": "cash",
              "paymentTargetType": "bank", "paymentTargetId": "BANK1",
              "isSplitPayment": True, "splitCashAmount": 20, "splitSafeId": "SAFE1",
              "net": 50}],
            TransactionKind.SALES_INVOICE,
        )
        assert tx.is_split_payment
        assert tx.split_cash_amount == Decimal("20")
        assert tx.split_safe == AccountRef(RefType.SAFE, "SAFE1")
        assert tx.settlement == AccountRef(RefType.BANK, "BANK1")

    def test_split_bank_overrides_target(self):
        (tx,) = normalize(
            [{"id": "SI-4", "date": "2024-02-12", "paymentMethod": "cash",
              "paymentTargetType": "safe", "paymentTargetId": "SAFE1",
              "isSplitPayment": True, "splitCashAmount": 5, "splitSafeId": "SAFE1",
              "splitBankId": "BANK2", "net": 50}],
            TransactionKind.SALES_INVOICE,
        )
        assert tx.settlement == AccountRef(RefType.BANK, "BANK2")

    def test_subtotal_defaults_to_line_totals(self):
        (tx,) = normalize(
            [{"id": "SI-5", "date": "2024-02-01",
              "items": [{"itemCode": "X", "qty": 2, "price": 3}, {"itemCode": "Y", "total": 4}],
              "net": 10}],
            TransactionKind.SALES_INVOICE,
        )
        assert tx.lines[0].line_total == Decimal("6")
        assert tx.subtotal == Decimal("10")

    def test_malformed_amounts_coerced(self):
        (tx,) = normalize(
            [{"id": "SI-6", "date": "2024-02-01", "net": "n/a", "tax": None, "discount": "x",
              "items": [{"itemCode": "X", "qty": "many", "price": 3}]}],
            TransactionKind.SALES_INVOICE,
        )
        assert tx.net == Decimal("0")
        assert tx.tax == Decimal("0")
        assert tx.discount == Decimal("0")
        assert tx.lines[0].quantity == Decimal("0")

    def test_lines_without_item_code_skipped(self):
        (tx,) = normalize(
            [{"id": "SI-7", "date": "2024-02-01", "items": [{"qty": 1}, "junk", {"itemCode": "X"}]}],
            TransactionKind.SALES_INVOICE,
        )
        assert [line.item_code for line in tx.lines] == ["X"]


class TestVouchers:
    """Receipt and payment vouchers."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ({"entityType": "customer", "customerId": "C1"}, AccountRef(RefType.CUSTOMER, "C1")),
            ({"entityType": "supplier", "supplierId": "V1"}, AccountRef(RefType.SUPPLIER, "V1")),
            ({"entityType": "current-account", "currentAccountId": "PA1"},
             AccountRef(RefType.PARTNER, "PA1")),
            ({"entityType": "receivable", "receivableAccountId": "R1"},
             AccountRef(RefType.RECEIVABLE, "R1")),
            ({"entityType": "payable", "payableAccountId": "P1"},
             AccountRef(RefType.PAYABLE, "P1")),
            ({"entityType": "revenue", "revenueCodeId": "REV1"},
             AccountRef(RefType.REVENUE, "REV1")),
            ({"entityType": "expense", "expenseCodeId": "EC1"},
             AccountRef(RefType.EXPENSE, "EC1")),
            ({"entityType": "expense-type", "expenseTypeId": "ET1"},
             AccountRef(RefType.EXPENSE_TYPE, "ET1")),
            ({"entityType": "VAT"}, AccountRef(RefType.VAT, "vat")),
        ],
    )
    def test_counterparty_by_entity_type(self, raw, expected):
        (tx,) = normalize([{"id": "V", "date": "2024-02-01", "amount": 1, **raw}],
                          TransactionKind.RECEIPT_VOUCHER)
        assert tx.counterparty == expected

    def test_unknown_entity_type_has_no_counterparty(self):
        (tx,) = normalize([{"id": "V", "date": "2024-02-01", "entityType": "alien", "amount": 1}],
                          TransactionKind.PAYMENT_VOUCHER)
        assert tx.counterparty is None

    def test_expense_voucher_tax_split(self):
        (tx,) = normalize(
            [{"id": "PV-2", "date": "2024-02-20", "entityType": "expense", "expenseCodeId": "EC1",
              "amount": 115, "taxPrice": 15, "priceBeforeTax": 100,
              "paymentMethod": "safe", "safeId": "SAFE1"}],
            TransactionKind.PAYMENT_VOUCHER,
        )
        assert tx.amount == Decimal("115")
        assert tx.voucher_tax == Decimal("15")
        assert tx.price_before_tax == Decimal("100")
        assert tx.settlement == AccountRef(RefType.SAFE, "SAFE1")

    def test_price_before_tax_derived_when_absent(self):
        (tx,) = normalize(
            [{"id": "PV", "date": "2024-02-20", "entityType": "expense", "expenseCodeId": "EC1",
              "amount": 115, "tax": 15}],
            TransactionKind.PAYMENT_VOUCHER,
        )
        assert tx.price_before_tax == Decimal("100")

    def test_bank_settlement(self):
        (tx,) = normalize(
            [{"id": "PV-1", "date": "2024-02-19", "entityType": "supplier", "supplierId": "V1",
              "amount": 50, "paymentMethod": "bank", "bankId": "BANK1"}],
            TransactionKind.PAYMENT_VOUCHER,
        )
        assert tx.settlement == AccountRef(RefType.BANK, "BANK1")


class TestTransfers:
    """Internal transfers and warehouse vouchers."""

    def test_internal_transfer_endpoints(self):
        (tx,) = normalize(
            [{"id": "IT-1", "date": "2024-02-26", "amount": 60, "fromType": "safe",
              "fromSafeId": "SAFE1", "toType": "bank", "toBankId": "BANK1"}],
            TransactionKind.INTERNAL_TRANSFER,
        )
        assert tx.amount == Decimal("60")
        assert tx.source == AccountRef(RefType.SAFE, "SAFE1")
        assert tx.destination == AccountRef(RefType.BANK, "BANK1")

    def test_warehouse_item_code_variants(self):
        (tx,) = normalize(
            [{"id": "WR", "date": "2024-02-22", "storeId": "S1", "items": [
                {"item": {"code": "A"}, "qty": 1},
                {"itemId": "B", "qty": 2},
                {"itemCode": "C", "quantity": 3},
            ]}],
            TransactionKind.WAREHOUSE_RECEIPT,
        )
        assert [(line.item_code, line.quantity) for line in tx.lines] == [
            ("A", Decimal("1")), ("B", Decimal("2")), ("C", Decimal("3")),
        ]

    def test_only_accepted_transfers_kept(self):
        raw = [
            {"id": "WT-1", "date": "2024-02-24", "status": "ACCEPTED",
             "fromStoreId": "S1", "toStoreId": "S2"},
            {"id": "WT-2", "date": "2024-02-24", "status": "accepted"},
            {"id": "WT-3", "date": "2024-02-24", "status": "PENDING"},
            {"id": "WT-4", "date": "2024-02-24"},
        ]
        kept = normalize(raw, TransactionKind.WAREHOUSE_TRANSFER)
        assert [tx.doc_id for tx in kept] == ["WT-1", "WT-2"]
        assert kept[0].source == AccountRef(RefType.STORE, "S1")
        assert kept[0].destination == AccountRef(RefType.STORE, "S2")


class TestNormalizeContract:
    """Order, sequencing and robustness."""

    def test_order_and_seq_preserved(self):
        raw = [{"id": "B", "date": "2024-02-02"}, "junk", {"id": "A", "date": "2024-02-01"}]
        txs = normalize(raw, TransactionKind.RECEIPT_VOUCHER)
        assert [(tx.doc_id, tx.seq) for tx in txs] == [("B", 0), ("A", 2)]

    def test_missing_id_gets_positional_id(self):
        (tx,) = normalize([{"date": "2024-02-01"}], TransactionKind.RECEIPT_VOUCHER)
        assert tx.doc_id == "receipt_voucher-0"

    def test_unparseable_date_kept_as_none(self):
        (tx,) = normalize([{"id": "V", "date": "garbage"}], TransactionKind.RECEIPT_VOUCHER)
        assert tx.date is None
        assert not tx.in_range(None, None)

    def test_none_collection_is_empty(self):
        assert normalize(None, TransactionKind.SALES_INVOICE) == ()

    def test_unknown_kind_raises(self):
        with pytest.raises(ValueError):
            normalize([], "loan_agreement")

    def test_normalize_ledgers_uses_collection_names(self, company_raw):
        ledgers = normalize_ledgers(company_raw)
        assert len(ledgers.purchase_invoices) == 2
        assert len(ledgers.sales_invoices) == 3
        assert len(ledgers.warehouse_transfers) == 1
        assert len(ledgers.receipt_vouchers) == 5
        assert len(ledgers.all()) == 20

    def test_normalize_ledgers_empty_bundle(self):
        ledgers = normalize_ledgers({})
        assert ledgers.all() == ()


class TestMasterData:
    """Master-data collections."""

    def test_company_and_accounts(self, company_master):
        assert company_master.entity_name == "Al Noor Trading"
        assert company_master.capital == Decimal("1650")
        assert [a.id for a in company_master.safes] == ["SAFE1"]
        assert company_master.safes[0].ref == AccountRef(RefType.SAFE, "SAFE1")
        assert company_master.suppliers[0].opening_balance == Decimal("100")
        assert company_master.partner_accounts[0].ref.ref_type == RefType.PARTNER

    def test_items(self, company_master):
        items = {item.code: item for item in company_master.items}
        assert items["X"].item_type == ItemType.STOCKED
        assert items["X"].initial_purchase_price == Decimal("5")
        assert items["SVC"].item_type == ItemType.SERVICE
        assert not items["SVC"].is_stocked
        assert items["SVC"].purchase_price is None

    def test_stores_and_store_items(self, company_master):
        assert company_master.stores[1].branch_id == "B2"
        (store_item,) = company_master.store_items
        assert store_item.store_id == "S1"
        assert store_item.item_code == "X"
        assert store_item.opening_balance == Decimal("10")

    def test_expense_codes_alias_their_type(self, company_master):
        (expense_type,) = company_master.expense_types
        assert expense_type.name == "Rent"
        assert expense_type.references() == frozenset({
            AccountRef(RefType.EXPENSE_TYPE, "ET1"),
            AccountRef(RefType.EXPENSE, "EC1"),
        })

    def test_rows_without_keys_skipped(self):
        master = normalize_master_data({
            "items": [{"name": "nameless"}, {"code": "X"}],
            "safes": [{"name": "no id"}],
            "store_items": [{"storeId": "S1"}],
        })
        assert [item.code for item in master.items] == ["X"]
        assert master.safes == ()
        assert master.store_items == ()

    def test_missing_company(self):
        master = normalize_master_data({})
        assert master.entity_name == ""
        assert master.capital == Decimal("0")
