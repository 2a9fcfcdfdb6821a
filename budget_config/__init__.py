"""
budget_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files directly.

Architecture position:
    Configuration -- YAML-driven.  Sits above ``budget_kernel`` and below
    ``budget_services`` / ``budget_modules``.  The kernel MUST NEVER
    import from ``budget_config``.

Failure modes:
    - ``ConfigurationError`` -- missing file, malformed YAML, unknown keys
      or invalid values.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``BUDGET_CONFIG_TRACE`` log entry carrying the config_id, version and
    checksum.
"""

from __future__ import annotations

from pathlib import Path

from budget_config.loader import load_config
from budget_config.schema import LedgerConfig
from budget_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> LedgerConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load.  Defaults to the packaged
            ``defaults.yaml``.

    Raises:
        ConfigurationError: If the file cannot be read or validated.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = load_config(path)
    _logger.info(
        "BUDGET_CONFIG_TRACE",
        extra={
            "trace_type": "BUDGET_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(path),
        },
    )
    return config


__all__ = ["DEFAULT_CONFIG_PATH", "LedgerConfig", "get_active_config"]
