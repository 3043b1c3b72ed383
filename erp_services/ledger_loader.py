"""
erp_services.ledger_loader -- Concurrent read of every raw collection.

Responsibility:
    Read each raw ledger and master-data collection as an independent query
    on a thread pool, one session per worker, and assemble the results into
    an immutable ``LedgerSnapshot``.

Architecture position:
    Services -- the only component that opens database sessions for the
    reporting path.  Reads through ``erp_kernel.selectors`` only.

Invariants enforced:
    - Reads are independent: no worker shares a session with another.
    - Results may complete in any order; they are assembled by collection
      name, so the snapshot never depends on completion order.
    - Read-only: the loader never writes.

Failure modes:
    - LedgerSourceError naming the collection when any read fails; the
      original database error is chained as its cause.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from erp_engines.normalizer import ALL_COLLECTIONS
from erp_kernel.exceptions import LedgerSourceError
from erp_kernel.logging_config import get_logger
from erp_kernel.selectors.ledger_selector import LedgerSelector
from erp_services.snapshot import LedgerSnapshot

logger = get_logger("services.ledger_loader")


class LedgerLoader:
    """
    Loads a ``LedgerSnapshot`` from the ledger store.

    Contract:
        Receives a session factory via constructor injection and opens one
        session per collection read.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        collections: Iterable[str] = ALL_COLLECTIONS,
        max_workers: int = 4,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._session_factory = session_factory
        self._collections = tuple(collections)
        self._max_workers = max_workers

    @property
    def collections(self) -> tuple[str, ...]:
        return self._collections

    def read_collection(self, name: str) -> list[dict[str, Any]]:
        session = self._session_factory()
        try:
            return LedgerSelector(session).fetch_collection(name)
        finally:
            session.close()

    def load(self) -> LedgerSnapshot:
        t0 = time.monotonic()
        results: dict[str, list[dict[str, Any]]] = {}
        with ThreadPoolExecutor(
            max_workers=self._max_workers,
            thread_name_prefix="ledger-loader",
        ) as pool:
            futures = {pool.submit(self.read_collection, name): name for name in self._collections}
            for future in as_completed(futures):
                name = futures[future]
                try:
                    results[name] = future.result()
                except SQLAlchemyError as exc:
                    for pending in futures:
                        pending.cancel()
                    logger.error(
                        "ledger_collection_read_failed",
                        extra={"collection": name, "error": str(exc)},
                    )
                    raise LedgerSourceError(name, str(exc)) from exc

        snapshot = LedgerSnapshot.from_collections(
            {name: results[name] for name in self._collections}
        )
        logger.info(
            "ledger_snapshot_loaded",
            extra={
                "collections": len(results),
                "documents": sum(len(rows) for rows in results.values()),
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                "fingerprint": snapshot.fingerprint()[:16],
            },
        )
        return snapshot
