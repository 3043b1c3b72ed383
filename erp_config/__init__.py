"""
erp_config -- single public entrypoint for engine settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  No other component reads settings files or
    environment variables directly.

Architecture position:
    Configuration -- YAML-driven settings.  Sits above ``erp_kernel`` and
    below ``erp_services`` / ``erp_modules``.  The kernel MUST NEVER import
    from ``erp_config``.

Invariants enforced:
    - Single entrypoint: all runtime settings flow through
      ``get_active_settings()``.
    - Deterministic: the same YAML document always yields the same
      ``EngineSettings`` and the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the requested settings file does not exist.
    - ``SettingsError`` -- the document is structurally invalid.

Audit relevance:
    Every successful ``get_active_settings()`` call emits an
    ``ERP_SETTINGS_TRACE`` log entry carrying the source path and checksum,
    tying every report back to the settings that produced it.
"""

from __future__ import annotations

from pathlib import Path

from erp_config.loader import compute_checksum, load_yaml_file, parse_settings
from erp_config.schema import EngineSettings, LiquidityThresholds
from erp_kernel.logging_config import get_logger

logger = get_logger("config")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_settings(path: Path | str | None = None) -> EngineSettings:
    """
    The ONLY public settings entrypoint.

    Args:
        path: Settings YAML file.  Defaults to the packaged
            ``defaults.yaml``.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        SettingsError: If the document is structurally invalid.
    """
    source = Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    settings = parse_settings(load_yaml_file(source))
    logger.info(
        "ERP_SETTINGS_TRACE",
        extra={
            "trace_type": "ERP_SETTINGS_TRACE",
            "source": str(source),
            "checksum": compute_checksum(settings),
            "valuation_method": settings.valuation_method.value,
            "cogs_method": settings.cogs_method.value,
        },
    )
    return settings


__all__ = [
    "DEFAULT_SETTINGS_PATH",
    "EngineSettings",
    "LiquidityThresholds",
    "compute_checksum",
    "get_active_settings",
]
