"""
Module: erp_kernel.selectors.ledger_selector
Responsibility: Read-only queries over the raw ledger store.  Returns raw
    document payloads per collection, in insertion order, for the ledger
    normalizer to map into canonical transactions.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.  MUST NOT import from domain/ or outer layers.

Invariants enforced:
    - Read-only.  No stored balances exist anywhere: every balance is derived
      by the engines from these raw documents at query time.
    - Documents are returned ordered by insertion sequence, so repeated reads
      of an unchanged store return identical lists.

Failure modes:
    - Returns an empty list for an unknown or empty collection.
    - Database errors propagate to the caller (the ledger loader wraps them
      in LedgerSourceError).
"""

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from erp_kernel.models.ledger_record import LedgerRecord
from erp_kernel.selectors.base import BaseSelector


class LedgerSelector(BaseSelector[LedgerRecord]):
    """
    Selector for raw ledger documents.

    Contract:
        ``fetch_collection`` returns copies of the stored payloads, so callers
        may keep them after the session closes.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def fetch_collection(self, collection: str) -> list[dict[str, Any]]:
        """All documents of one collection, in insertion order."""
        stmt = (
            select(LedgerRecord.payload)
            .where(LedgerRecord.collection == collection)
            .order_by(LedgerRecord.seq)
        )
        return [dict(payload) for payload in self.session.scalars(stmt)]

    def collection_names(self) -> list[str]:
        """Distinct collection names present in the store, sorted."""
        stmt = select(LedgerRecord.collection).distinct().order_by(LedgerRecord.collection)
        return list(self.session.scalars(stmt))

    def count(self, collection: str) -> int:
        stmt = (
            select(func.count())
            .select_from(LedgerRecord)
            .where(LedgerRecord.collection == collection)
        )
        return int(self.session.scalar(stmt) or 0)
