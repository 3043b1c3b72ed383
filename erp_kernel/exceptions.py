"""
Typed Exception Hierarchy for the ERP Kernel.

===============================================================================
ERROR TAXONOMY
===============================================================================

Three classes of problems reach this core, and only one of them raises:

  1. Data-quality degradations (unparseable dates, non-numeric amounts,
     dangling counterparty links) are coerced to a neutral value by the
     ledger normalizer. They are NEVER raised.
  2. Business-rule violations (a trial balance that does not balance) are
     returned as structured results. They are NEVER raised.
  3. Programming-contract violations (an engine called without one of its
     required collections, an unknown costing method, a reversed period)
     fail fast with one of the exceptions below.

Every exception carries a machine-readable ``code`` and structured
attributes so callers catch by type, never by message text.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ErpKernelError (base)
    |
    +-- EngineContractError
    |   +-- InvalidEngineInputError
    |   +-- UnknownValuationMethodError
    |   +-- InvalidReportPeriodError
    |   +-- InvalidAccountKindError
    |
    +-- DerivationError
    |   +-- UnknownDerivationError
    |   +-- DerivationNameConflictError
    |
    +-- LedgerSourceError
    |
    +-- SettingsError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                      | When Raised
------------|---------------------------|---------------------------------------
Engine      | INVALID_ENGINE_INPUT      | Required collection missing (None)
            | UNKNOWN_VALUATION_METHOD  | Costing method string not recognised
            | INVALID_REPORT_PERIOD     | from_date later than to_date
            | INVALID_ACCOUNT_KIND      | Account kind has no such statement
------------|---------------------------|---------------------------------------
Derivation  | UNKNOWN_DERIVATION        | Graph node or input not defined
            | DERIVATION_NAME_CONFLICT  | Name already used by the other role
------------|---------------------------|---------------------------------------
Source      | LEDGER_SOURCE_ERROR       | A ledger collection read failed
------------|---------------------------|---------------------------------------
Settings    | INVALID_SETTINGS          | YAML settings structurally invalid
"""

from __future__ import annotations

from datetime import date


class ErpKernelError(Exception):
    """
    Base exception for all ERP kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "ERP_KERNEL_ERROR"


# Engine contract exceptions


class EngineContractError(ErpKernelError):
    """Base exception for engine contract violations (caller defects)."""

    code: str = "ENGINE_CONTRACT_ERROR"


class InvalidEngineInputError(EngineContractError):
    """An engine was invoked without one of its required collections."""

    code: str = "INVALID_ENGINE_INPUT"

    def __init__(self, engine: str, collection: str):
        self.engine = engine
        self.collection = collection
        super().__init__(
            f"Invalid input for engine '{engine}': "
            f"required collection '{collection}' is missing"
        )


class UnknownValuationMethodError(EngineContractError):
    """The requested costing method cannot be resolved."""

    code: str = "UNKNOWN_VALUATION_METHOD"

    def __init__(self, method: str):
        self.method = method
        super().__init__(f"Unknown valuation method: {method!r}")


class InvalidReportPeriodError(EngineContractError):
    """A report period whose start lies after its end."""

    code: str = "INVALID_REPORT_PERIOD"

    def __init__(self, from_date: date, to_date: date):
        self.from_date = from_date
        self.to_date = to_date
        super().__init__(
            f"Invalid report period: {from_date.isoformat()} is after "
            f"{to_date.isoformat()}"
        )


class InvalidAccountKindError(EngineContractError):
    """An account kind was used where only certain kinds are accepted."""

    code: str = "INVALID_ACCOUNT_KIND"

    def __init__(self, kind: str, reason: str):
        self.kind = kind
        self.reason = reason
        super().__init__(f"Invalid account kind '{kind}': {reason}")


# Recomputation graph exceptions


class DerivationError(ErpKernelError):
    """Base exception for recomputation graph errors."""

    code: str = "DERIVATION_ERROR"


class UnknownDerivationError(DerivationError):
    """The graph was asked for a node or input it does not define."""

    code: str = "UNKNOWN_DERIVATION"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown derivation or input: {name}")


class DerivationNameConflictError(DerivationError):
    """A name was declared as an input and as a derivation."""

    code: str = "DERIVATION_NAME_CONFLICT"

    def __init__(self, name: str, existing: str):
        self.name = name
        self.existing = existing
        super().__init__(f"'{name}' is already declared as {existing}")


# Source and settings exceptions


class LedgerSourceError(ErpKernelError):
    """A read against the ledger source failed."""

    code: str = "LEDGER_SOURCE_ERROR"

    def __init__(self, collection: str, reason: str):
        self.collection = collection
        self.reason = reason
        super().__init__(f"Failed to read ledger collection '{collection}': {reason}")


class SettingsError(ErpKernelError):
    """The settings document is structurally invalid."""

    code: str = "INVALID_SETTINGS"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid setting '{key}': {reason}")
