"""
Settings Loader (``erp_config.loader``).

Responsibility
--------------
Loads a YAML settings document and parses it into the frozen
``erp_config.schema`` dataclasses.  The single public entry point for
runtime settings is ``erp_config.get_active_settings()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends on kernel domain
types only; never on engines, services or modules.

Invariants enforced
-------------------
* Unknown top-level keys and malformed values raise ``SettingsError``
  naming the offending key; nothing is silently defaulted once present.
* Keys that are absent take the schema default.
* ``compute_checksum`` produces a deterministic SHA-256 hash for settings
  identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Structurally invalid document  -> ``SettingsError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from erp_config.schema import EngineSettings, LiquidityThresholds
from erp_kernel.domain.chart import ChartCodes
from erp_kernel.domain.values import CostMethod
from erp_kernel.exceptions import SettingsError, UnknownValuationMethodError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(key: str, value: Any) -> Decimal:
    """Parse a decimal from YAML; strings are preferred to keep exact values."""
    if isinstance(value, bool):
        raise SettingsError(key, "expected a number")
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise SettingsError(key, f"expected a number, got {value!r}") from None
    if not result.is_finite():
        raise SettingsError(key, "must be finite")
    return result


def parse_method(key: str, value: Any) -> CostMethod:
    try:
        return CostMethod.parse(value)
    except UnknownValuationMethodError as exc:
        raise SettingsError(key, str(exc)) from exc


def _section(key: str, data: dict[str, Any], allowed: set[str]) -> dict[str, Any]:
    section = data.get(key) or {}
    if not isinstance(section, dict):
        raise SettingsError(key, "expected a mapping")
    unknown = set(section) - allowed
    if unknown:
        raise SettingsError(key, f"unknown keys {sorted(unknown)}")
    return section


def parse_liquidity(data: dict[str, Any]) -> LiquidityThresholds:
    section = _section("liquidity", data, {f.name for f in fields(LiquidityThresholds)})
    values = {
        name: parse_decimal(f"liquidity.{name}", value) for name, value in section.items()
    }
    thresholds = LiquidityThresholds(**values)
    if not thresholds.excellent >= thresholds.good >= thresholds.warning:
        raise SettingsError("liquidity", "thresholds must satisfy excellent >= good >= warning")
    return thresholds


def parse_chart(data: dict[str, Any]) -> ChartCodes:
    section = _section("chart", data, {f.name for f in fields(ChartCodes)})
    codes = {name: str(value) for name, value in section.items()}
    chart = ChartCodes(**codes)
    assigned = [getattr(chart, f.name) for f in fields(ChartCodes) if f.name != "expense_prefix"]
    if len(set(assigned)) != len(assigned):
        raise SettingsError("chart", "account codes must be unique")
    return chart


def parse_settings(data: dict[str, Any]) -> EngineSettings:
    """
    Parse an ``EngineSettings`` from a dict.

    Raises:
        SettingsError: if the document is not a mapping, has unknown keys,
            or holds a malformed value.
    """
    if not isinstance(data, dict):
        raise SettingsError("<root>", "settings document must be a mapping")
    unknown = set(data) - {f.name for f in fields(EngineSettings)}
    if unknown:
        raise SettingsError("<root>", f"unknown keys {sorted(unknown)}")

    defaults = EngineSettings()
    kwargs: dict[str, Any] = {
        "liquidity": parse_liquidity(data),
        "chart": parse_chart(data),
    }
    for key in ("valuation_method", "cogs_method"):
        if key in data:
            kwargs[key] = parse_method(key, data[key])
    if "tolerance" in data:
        tolerance = parse_decimal("tolerance", data["tolerance"])
        if tolerance <= 0:
            raise SettingsError("tolerance", "must be positive")
        kwargs["tolerance"] = tolerance
    if "default_currency" in data:
        currency = str(data["default_currency"])
        if len(currency) != 3:
            raise SettingsError("default_currency", "must be a 3-letter ISO 4217 code")
        kwargs["default_currency"] = currency
    for key in ("display_precision", "max_workers"):
        if key in data:
            value = data[key]
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise SettingsError(key, "expected a non-negative integer")
            kwargs[key] = value
    if kwargs.get("max_workers", defaults.max_workers) < 1:
        raise SettingsError("max_workers", "must be at least 1")

    return EngineSettings(**kwargs)


def settings_to_dict(settings: EngineSettings) -> dict[str, Any]:
    """Plain-dict form of the settings (Decimals and enums as strings)."""
    data = asdict(settings)
    data["valuation_method"] = settings.valuation_method.value
    data["cogs_method"] = settings.cogs_method.value
    return data


def compute_checksum(data: dict[str, Any] | EngineSettings) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical settings always produce identical checksums, whether given as
    an ``EngineSettings`` or as its dict form.
    """
    if isinstance(data, EngineSettings):
        data = settings_to_dict(data)
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
