"""
erp_services.recompute -- Dependency graph of derived figures.

Responsibility:
    Track which derived figures (normalized ledgers, valuations, the
    reconciled chart, statements) depend on which raw inputs, and recompute
    a figure in full when any upstream content fingerprint or any of its
    parameters changes.

Architecture position:
    Services -- in-process orchestration over pure engines.  Holds no
    session and performs no I/O; inputs are pushed in by the reporting
    service after each ledger load.

Invariants enforced:
    - A derivation is recomputed whole or not at all; there is no partial
      update of a derived figure.
    - A cached result is reused only when its upstream key (input
      fingerprints, upstream derivation keys and its own parameters) equals
      the current one.
    - A result computed against an input version that was superseded while
      it ran is returned to its caller but never stored.
    - Evaluations run outside the lock: concurrent evaluations with
      different parameters never block or overwrite one another.
    - When an input fingerprint changes, every cached slot whose upstream
      key no longer matches is dropped.  Each derivation keeps at most
      ``slot_limit`` parameter slots, evicting the least recently used.

Failure modes:
    - UnknownDerivationError when a name is neither an input nor a
      defined derivation, or a derivation depends on one.
    - DerivationNameConflictError when a name is declared both as an input
      and as a derivation.
    - Exceptions raised by a derivation propagate; nothing is cached.
"""

from __future__ import annotations

import hashlib
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from erp_engines.tracer import compute_input_fingerprint
from erp_kernel.exceptions import DerivationNameConflictError, UnknownDerivationError
from erp_kernel.logging_config import get_logger

logger = get_logger("services.recompute")

DEFAULT_SLOT_LIMIT = 16


@dataclass(frozen=True)
class _Input:
    value: Any
    fingerprint: str


@dataclass(frozen=True)
class _Derivation:
    fn: Callable[..., Any]
    depends_on: tuple[str, ...]
    params: tuple[str, ...]


@dataclass(frozen=True)
class _Cached:
    key: str
    params: dict[str, Any]
    value: Any


class DerivationGraph:
    """
    Inputs with content fingerprints plus derivations declared with their
    upstream names.

    A derivation function receives each upstream value as a keyword argument
    named after the upstream node, followed by its own parameters.
    """

    def __init__(self, slot_limit: int = DEFAULT_SLOT_LIMIT):
        if slot_limit < 1:
            raise ValueError("slot_limit must be at least 1")
        self._lock = threading.RLock()
        self._inputs: dict[str, _Input] = {}
        self._derivations: dict[str, _Derivation] = {}
        self._cache: dict[tuple[str, str], _Cached] = {}
        self._slot_limit = slot_limit
        self.compute_count: dict[str, int] = {}

    @property
    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)

    # ------------------------------------------------------------------
    # Declaration
    # ------------------------------------------------------------------

    def set_input(self, name: str, value: Any, fingerprint: str | None = None) -> bool:
        """
        Set or replace an input.  Returns True when its fingerprint changed.

        When no fingerprint is given, one is derived from the value.  A
        changed fingerprint drops every cached slot computed from the old one.
        """
        if fingerprint is None:
            fingerprint = compute_input_fingerprint(("value",), {"value": value})
        with self._lock:
            if name in self._derivations:
                raise DerivationNameConflictError(name, "a derivation")
            previous = self._inputs.get(name)
            self._inputs[name] = _Input(value, fingerprint)
            changed = previous is None or previous.fingerprint != fingerprint
            dropped = self._drop_stale() if changed else 0
        if changed:
            logger.info(
                "derivation_input_changed",
                extra={"input": name, "fingerprint": fingerprint, "dropped_slots": dropped},
            )
        return changed

    def define(
        self,
        name: str,
        fn: Callable[..., Any],
        depends_on: Iterable[str] = (),
        params: Iterable[str] = (),
    ) -> None:
        """Declare or redefine a derivation.  Every cached slot is dropped."""
        with self._lock:
            if name in self._inputs:
                raise DerivationNameConflictError(name, "an input")
            self._derivations[name] = _Derivation(fn, tuple(depends_on), tuple(params))
            self._cache.clear()

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._inputs or name in self._derivations

    def input_fingerprint(self, name: str) -> str:
        with self._lock:
            if name not in self._inputs:
                raise UnknownDerivationError(name)
            return self._inputs[name].fingerprint

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _own_params(self, derivation: _Derivation, params: dict[str, Any]) -> dict[str, Any]:
        return {k: params[k] for k in derivation.params if k in params}

    def upstream_key(self, name: str, **params: Any) -> str:
        """Key identifying the exact upstream state ``name`` would be computed from."""
        with self._lock:
            return self._key(name, params, ())

    def _key(self, name: str, params: dict[str, Any], path: tuple[str, ...]) -> str:
        if name in self._inputs:
            return self._inputs[name].fingerprint
        derivation = self._derivations.get(name)
        if derivation is None or name in path:
            raise UnknownDerivationError(name)
        own = self._own_params(derivation, params)
        digest = hashlib.sha256(name.encode())
        digest.update(compute_input_fingerprint(tuple(sorted(own)), own).encode())
        for upstream in derivation.depends_on:
            digest.update(self._key(upstream, params, (*path, name)).encode())
        return digest.hexdigest()

    def _params_key(self, derivation: _Derivation, params: dict[str, Any]) -> str:
        own = self._own_params(derivation, params)
        return compute_input_fingerprint(tuple(sorted(own)), own)

    def _drop_stale(self) -> int:
        """Remove slots whose stored key no longer matches.  Caller holds the lock."""
        current = {
            slot: cached
            for slot, cached in self._cache.items()
            if self._key(slot[0], cached.params, ()) == cached.key
        }
        dropped = len(self._cache) - len(current)
        self._cache = current
        return dropped

    def _store(self, slot: tuple[str, str], cached: _Cached) -> None:
        """Store ``slot`` as most recently used, evicting past the limit.  Caller holds the lock."""
        self._cache.pop(slot, None)
        self._cache[slot] = cached
        own_slots = [s for s in self._cache if s[0] == slot[0]]
        for evicted in own_slots[: len(own_slots) - self._slot_limit]:
            del self._cache[evicted]

    def evaluate(self, name: str, **params: Any) -> Any:
        """
        Value of ``name`` for ``params``, recomputed in full when stale.

        Upstream derivations are evaluated with the same parameters, each
        keeping only the ones it declared.
        """
        with self._lock:
            if name in self._inputs:
                return self._inputs[name].value
            derivation = self._derivations.get(name)
            if derivation is None:
                raise UnknownDerivationError(name)
            slot = (name, self._params_key(derivation, params))
            key = self._key(name, params, ())
            cached = self._cache.get(slot)
            if cached is not None and cached.key == key:
                self._store(slot, cached)
                return cached.value

        upstream_values = {
            upstream: self.evaluate(upstream, **params) for upstream in derivation.depends_on
        }
        value = derivation.fn(**upstream_values, **self._own_params(derivation, params))

        with self._lock:
            self.compute_count[name] = self.compute_count.get(name, 0) + 1
            if self._key(name, params, ()) == key:
                self._store(slot, _Cached(key, dict(params), value))
            else:
                logger.info("derivation_result_superseded", extra={"derivation": name})
        logger.debug("derivation_computed", extra={"derivation": name})
        return value

    def invalidate(self) -> None:
        """Drop every cached derivation (inputs are kept)."""
        with self._lock:
            self._cache.clear()
