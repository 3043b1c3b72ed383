"""
erp_services.snapshot -- Immutable raw ledger snapshot with content fingerprints.

Responsibility:
    Hold one consistent read of every raw collection together with a
    SHA-256 content fingerprint per collection.  Fingerprints are what the
    recomputation graph compares to decide whether a derivation is stale.

Architecture position:
    Services -- produced by ``LedgerLoader``, consumed by
    ``DerivationGraph`` inputs and the reporting service.

Invariants enforced:
    - Collections are copied on construction and exposed as tuples.
    - A fingerprint depends only on collection content and order: the same
      records always hash the same, whatever process produced them.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from erp_engines.normalizer import normalize_ledgers, normalize_master_data
from erp_kernel.domain.ledger import LedgerSet, MasterData


def fingerprint_records(records: Iterable[Any]) -> str:
    """Deterministic SHA-256 of a collection's canonical JSON form."""
    canonical = json.dumps(list(records), sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


@dataclass(frozen=True)
class LedgerSnapshot:
    """Raw collections keyed by name, with their fingerprints."""

    collections: Mapping[str, tuple[Any, ...]]
    fingerprints: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_collections(cls, raw_by_collection: Mapping[str, Iterable[Any]]) -> LedgerSnapshot:
        collections = {
            name: tuple(dict(r) if isinstance(r, Mapping) else r for r in records or ())
            for name, records in raw_by_collection.items()
        }
        return cls(
            collections=collections,
            fingerprints={name: fingerprint_records(rows) for name, rows in collections.items()},
        )

    def collection(self, name: str) -> tuple[Any, ...]:
        return self.collections.get(name, ())

    def fingerprint(self, names: Iterable[str] | None = None) -> str:
        """Combined fingerprint of the named collections (all when omitted)."""
        selected = sorted(self.fingerprints) if names is None else sorted(names)
        digest = hashlib.sha256()
        for name in selected:
            digest.update(name.encode())
            digest.update(self.fingerprints.get(name, "").encode())
        return digest.hexdigest()

    def ledgers(self) -> LedgerSet:
        return normalize_ledgers(self.collections)

    def master_data(self) -> MasterData:
        return normalize_master_data(self.collections)
