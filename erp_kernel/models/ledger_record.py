"""
Module: erp_kernel.models.ledger_record
Responsibility: ORM model for raw ledger and master-data documents.  Every
    source document (an invoice, a voucher, an item, a safe...) is stored
    verbatim as a JSON payload under the name of its collection.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - seq is a monotonically increasing insertion sequence; selectors return
      documents in seq order, which is the insertion order the costing
      engine uses to break same-date ties.
    - payload is stored unchanged.  Shape probing happens only in the
      ledger normalizer, never here.

Audit relevance:
    (collection, document_id) identifies the source document behind every
    normalized transaction.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from erp_kernel.db.base import Base


class LedgerRecord(Base):
    """One raw source document."""

    __tablename__ = "ledger_records"
    __table_args__ = (
        Index("idx_ledger_records_collection_seq", "collection", "seq"),
    )

    seq: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    collection: Mapped[str] = mapped_column(String(64), nullable=False)
    document_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<LedgerRecord {self.collection}#{self.seq} {self.document_id}>"
