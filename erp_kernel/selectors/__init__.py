"""Read-only selectors over the ledger store."""

from erp_kernel.selectors.base import BaseSelector
from erp_kernel.selectors.ledger_selector import LedgerSelector

__all__ = ["BaseSelector", "LedgerSelector"]
