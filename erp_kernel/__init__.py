"""
ERP Kernel

Read-only foundation of the retail ERP valuation core:
- Structured JSON logging and typed exceptions
- Canonical ledger value objects (transactions, items, balance records)
- A read-only SQLAlchemy ledger store and its selectors
"""

__version__ = "0.1.0"
