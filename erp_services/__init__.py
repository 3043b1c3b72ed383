"""
erp_services -- Package init and public API.

Responsibility:
    Stateful orchestration around the pure engines: concurrent ledger
    loading, immutable snapshots with content fingerprints, and the
    recomputation graph.  This is the only layer below the modules that may
    hold database sessions.

Architecture position:
    Services -- orchestration over engines + kernel.

    Dependency direction:
        erp_services/ -> erp_engines/  (allowed)
        erp_services/ -> erp_kernel/   (allowed)
        erp_engines/  -> erp_services/ (FORBIDDEN)
        erp_kernel/   -> erp_services/ (FORBIDDEN)
"""

from erp_services.ledger_loader import LedgerLoader
from erp_services.recompute import DerivationGraph
from erp_services.snapshot import LedgerSnapshot, fingerprint_records

__all__ = [
    "DerivationGraph",
    "LedgerLoader",
    "LedgerSnapshot",
    "fingerprint_records",
]
