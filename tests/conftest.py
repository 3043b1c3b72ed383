"""
Pytest fixtures for the ERP core test suite.

Provides:
- Structured logging configuration and log capture
- A file-backed SQLite ledger store per test (threads share it)
- A deterministic clock
- A complete, double-entry-coherent sample company in raw form

Sample company, period February 2024 (figures worked by hand):
    opening TB  1841.50 / 1841.50
    period TB   balanced
    closing TB  2142.20 / 2142.20
    inventory X opening 15 @ 5.50 = 82.50, closing 16 @ 5.75 = 92.00
    net profit for February: -1.50
"""

import json
import logging
from collections.abc import Callable
from datetime import date, datetime, timezone
from io import StringIO

import pytest

from erp_engines.normalizer import normalize_ledgers, normalize_master_data
from erp_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from erp_kernel.domain.clock import DeterministicClock
from erp_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from erp_kernel.models.ledger_record import LedgerRecord

PERIOD_START = date(2024, 2, 1)
PERIOD_END = date(2024, 2, 29)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture erp_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            ...
            logs = captured_logs()
            assert any(r["message"] == "inventory_valued" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("erp_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 3, 1, 9, 0, 0, tzinfo=timezone.utc))


# =============================================================================
# Ledger store
# =============================================================================


@pytest.fixture
def session_factory(tmp_path):
    """File-backed SQLite store, so worker threads see the same database."""
    init_engine_from_url(f"sqlite:///{tmp_path / 'ledger.db'}")
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()


@pytest.fixture
def store_documents(session_factory) -> Callable[[dict[str, list[dict]]], None]:
    """Insert raw documents, collection by collection, in list order."""

    def _store(raw_by_collection: dict[str, list[dict]]) -> None:
        with session_scope() as session:
            for collection, documents in raw_by_collection.items():
                for document in documents:
                    doc_id = document.get("id") if isinstance(document, dict) else None
                    session.add(LedgerRecord(
                        collection=collection,
                        document_id=str(doc_id) if doc_id is not None else None,
                        payload=document,
                    ))

    return _store


# =============================================================================
# Sample company
# =============================================================================


def _company_raw() -> dict[str, list[dict]]:
    return {
        # ---- master data -------------------------------------------------
        "company": [{"name": "Al Noor Trading", "capital": 1650}],
        "items": [
            {"code": "X", "name": "Widget", "type": "STOCKED",
             "initialPurchasePrice": 5, "purchasePrice": 6, "salePrice": 10},
            {"code": "SVC", "name": "Installation", "type": "SERVICE", "salePrice": 50},
        ],
        "stores": [
            {"id": "S1", "name": "Main store", "branchId": "B1"},
            {"id": "S2", "name": "North store", "branchId": "B2"},
        ],
        "store_items": [{"storeId": "S1", "itemCode": "X", "openingBalance": 10}],
        "safes": [{"id": "SAFE1", "name": "Main safe", "openingBalance": 1000}],
        "banks": [{"id": "BANK1", "name": "National bank", "openingBalance": 500}],
        "customers": [{"id": "C1", "name": "Retail customer", "openingBalance": 200}],
        "suppliers": [{"id": "V1", "name": "Widget supplier", "openingBalance": 100}],
        "receivable_accounts": [{"id": "R1", "name": "Staff advances", "openingBalance": 0}],
        "payable_accounts": [{"id": "P1", "name": "Accrued utilities", "openingBalance": 0}],
        "current_accounts": [{"id": "PA1", "name": "Partner A", "openingBalance": 0}],
        "revenue_codes": [{"id": "REV1", "name": "Commission income"}],
        "expense_types": [{"id": "ET1", "name": "Rent"}],
        "expense_codes": [{"id": "EC1", "name": "Shop rent", "expenseTypeId": "ET1"}],
        # ---- January (before the period) ---------------------------------
        "purchase_invoices": [
            {"id": "PI-1", "date": "2024-01-10", "storeId": "S1", "branchId": "B1",
             "supplierId": "V1", "paymentMethod": "credit",
             "items": [{"itemCode": "X", "qty": 10, "price": 6, "total": 60}],
             "subtotal": 60, "discount": 0, "tax": 9, "net": 69},
            {"id": "PI-2", "date": "2024-02-05", "storeId": "S1", "branchId": "B1",
             "supplierId": "V1", "paymentMethod": "cash",
             "paymentTargetType": "bank", "paymentTargetId": "BANK1",
             "items": [{"itemCode": "X", "qty": 4, "price": 7, "total": 28}],
             "subtotal": 28, "discount": 2, "tax": 3.9, "net": 29.9},
        ],
        "sales_invoices": [
            {"id": "SI-1", "date": "2024-01-20", "storeId": "S1", "branchId": "B1",
             "customerId": "C1", "paymentMethod": "cash",
             "paymentTargetType": "safe", "paymentTargetId": "SAFE1",
             "items": [{"itemCode": "X", "qty": 5, "price": 10, "total": 50}],
             "subtotal": 50, "discount": 0, "tax": 7.5, "net": 57.5},
            {"id": "SI-2", "date": "2024-02-10", "storeId": "S1", "branchId": "B1",
             "customerId": "C1", "paymentMethod": "credit",
             "items": [{"itemCode": "X", "qty": 3, "price": 12, "total": 36}],
             "subtotal": 36, "discount": 1, "tax": 5.25, "net": 40.25},
            {"id": "SI-3", "date": "2024-02-12T10:30:00", "storeId": "S1", "branchId": "B1",
             "customerId": "C1", "paymentMethod": "cash",
             "paymentTargetType": "bank", "paymentTargetId": "BANK1",
             "isSplitPayment": True, "splitCashAmount": 20, "splitSafeId": "SAFE1",
             "items": [{"itemCode": "SVC", "qty": 1, "price": 50, "total": 50}],
             "subtotal": 50, "discount": 0, "tax": 0, "net": 50},
        ],
        "sales_returns": [
            {"id": "SR-1", "date": "2024-02-15", "storeId": "S1", "branchId": "B1",
             "customerId": "C1", "paymentMethod": "credit",
             "items": [{"itemCode": "X", "qty": 1, "price": 12, "total": 12}],
             "subtotal": 12, "discount": 0, "tax": 1.8, "net": 13.8},
        ],
        "purchase_returns": [
            {"id": "PR-1", "date": "2024-02-16", "storeId": "S1", "branchId": "B1",
             "supplierId": "V1", "paymentMethod": "credit",
             "items": [{"itemCode": "X", "qty": 2, "price": 6, "total": 12}],
             "subtotal": 12, "discount": 0, "tax": 1.8, "net": 13.8},
        ],
        "receipt_vouchers": [
            {"id": "RV-1", "date": "2024-02-18", "entityType": "customer", "customerId": "C1",
             "amount": 100, "paymentMethod": "safe", "safeId": "SAFE1"},
            {"id": "RV-2", "date": "2024-02-21", "entityType": "revenue", "revenueCodeId": "REV1",
             "amount": 30, "paymentMethod": "safe", "safeId": "SAFE1"},
            {"id": "RV-3", "date": "2024-02-21", "entityType": "payable",
             "payableAccountId": "P1", "amount": 200, "paymentMethod": "bank",
             "bankId": "BANK1"},
            {"id": "RV-4", "date": "2024-02-22", "entityType": "payable",
             "payableAccountId": "P1", "amount": 25, "paymentMethod": "safe", "safeId": "SAFE1"},
            {"id": "RV-X", "date": "not a date", "entityType": "customer", "customerId": "C1",
             "amount": 999, "paymentMethod": "safe", "safeId": "SAFE1"},
        ],
        "payment_vouchers": [
            {"id": "PV-1", "date": "2024-02-19", "entityType": "supplier", "supplierId": "V1",
             "amount": 50, "paymentMethod": "bank", "bankId": "BANK1"},
            {"id": "PV-2", "date": "2024-02-20", "entityType": "expense", "expenseCodeId": "EC1",
             "amount": 115, "taxPrice": 15, "priceBeforeTax": 100,
             "paymentMethod": "safe", "safeId": "SAFE1"},
            {"id": "PV-3", "date": "2024-02-23", "entityType": "receivable",
             "receivableAccountId": "R1", "amount": 40, "paymentMethod": "safe",
             "safeId": "SAFE1"},
            {"id": "PV-4", "date": "2024-02-25", "entityType": "vat", "amount": 10,
             "paymentMethod": "bank", "bankId": "BANK1"},
        ],
        "internal_transfers": [
            {"id": "IT-1", "date": "2024-02-26", "amount": 60,
             "fromType": "safe", "fromSafeId": "SAFE1", "toType": "bank", "toBankId": "BANK1"},
        ],
        "store_receipt_vouchers": [
            {"id": "WR-1", "date": "2024-02-22", "storeId": "S1", "branchId": "B1",
             "items": [{"item": {"code": "X"}, "qty": 2}]},
        ],
        "store_issue_vouchers": [
            {"id": "WI-1", "date": "2024-02-23", "storeId": "S1", "branchId": "B1",
             "items": [{"item": {"code": "X"}, "qty": 1}]},
        ],
        "store_transfer_vouchers": [
            {"id": "WT-1", "date": "2024-02-24", "fromStoreId": "S1", "toStoreId": "S2",
             "status": "ACCEPTED", "items": [{"itemId": "X", "qty": 3}]},
            {"id": "WT-2", "date": "2024-02-24", "fromStoreId": "S1", "toStoreId": "S2",
             "status": "PENDING", "items": [{"itemId": "X", "qty": 5}]},
        ],
    }


@pytest.fixture
def company_raw() -> dict[str, list[dict]]:
    return _company_raw()


@pytest.fixture
def company_ledgers(company_raw):
    return normalize_ledgers(company_raw)


@pytest.fixture
def company_master(company_raw):
    return normalize_master_data(company_raw)


@pytest.fixture
def stored_company(store_documents, company_raw, session_factory):
    """The sample company written to the ledger store; yields the session factory."""
    store_documents(company_raw)
    return session_factory
