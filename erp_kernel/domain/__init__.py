"""Pure domain value objects for the ERP kernel."""

from erp_kernel.domain.balances import AccountBalanceRecord, split_net
from erp_kernel.domain.chart import LINE_TITLES, ChartCodes
from erp_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from erp_kernel.domain.ledger import (
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
from erp_kernel.domain.values import (
    AccountKind,
    CostMethod,
    ItemType,
    PaymentMethod,
    RefType,
    Side,
    TransactionKind,
)

__all__ = [
    "Account",
    "AccountBalanceRecord",
    "AccountKind",
    "AccountRef",
    "ChartCodes",
    "Clock",
    "CostMethod",
    "DeterministicClock",
    "Item",
    "ItemType",
    "LINE_TITLES",
    "LedgerSet",
    "LineItem",
    "MasterData",
    "PaymentMethod",
    "RefType",
    "Side",
    "Store",
    "StoreItem",
    "SystemClock",
    "Transaction",
    "TransactionKind",
    "split_net",
]
