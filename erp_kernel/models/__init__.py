"""ORM models for the read-only ledger store."""

from erp_kernel.models.ledger_record import LedgerRecord

__all__ = ["LedgerRecord"]
