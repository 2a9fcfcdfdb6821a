"""
Configuration Loader (``budget_config.loader``).

Responsibility
--------------
Loads a YAML ledger configuration and parses it into the frozen
``LedgerConfig``.  Callers outside this package go through
``budget_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown keys are refused rather than ignored.
* Every failure surfaces as ``ConfigurationError`` naming the source file.
* ``compute_checksum`` is deterministic for identical documents.

Failure modes
-------------
* Missing file, malformed YAML, wrong types, unknown keys or values
  rejected by ``LedgerConfig.__post_init__`` -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from budget_config.schema import LedgerConfig
from budget_kernel.exceptions import ConfigurationError

_SECTIONS: dict[str, dict[str, type]] = {
    "ledger": {
        "currency": str,
        "amount_places": int,
        "utilization_places": int,
    },
    "rules": {
        "project_requires_commitment": bool,
        "block_closed_fiscal_years": bool,
    },
    "reporting": {
        "default_project_name": str,
    },
}
_TOP_LEVEL = {"config_id": str, "version": int}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file; an empty document yields an empty dict."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError("configuration file not found", source=str(path)) from None
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML: {e}", source=str(path)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("top level must be a mapping", source=str(path))
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _checked(value: Any, expected: type, key: str, source: str | None) -> Any:
    # bool is an int subclass; keep them apart
    if expected is int and isinstance(value, bool) or not isinstance(value, expected):
        raise ConfigurationError(
            f"'{key}' must be {expected.__name__}, got {type(value).__name__}",
            source=source,
        )
    return value


def parse_config(data: dict[str, Any], source: str | None = None) -> LedgerConfig:
    """Build a ``LedgerConfig`` from a parsed document."""
    fields: dict[str, Any] = {}
    for key, value in data.items():
        if key in _TOP_LEVEL:
            fields[key] = _checked(value, _TOP_LEVEL[key], key, source)
            continue
        if key not in _SECTIONS:
            raise ConfigurationError(f"unknown section '{key}'", source=source)
        if not isinstance(value, dict):
            raise ConfigurationError(f"section '{key}' must be a mapping", source=source)
        allowed = _SECTIONS[key]
        for name, item in value.items():
            if name not in allowed:
                raise ConfigurationError(f"unknown key '{key}.{name}'", source=source)
            fields[name] = _checked(item, allowed[name], f"{key}.{name}", source)

    try:
        return LedgerConfig(checksum=compute_checksum(data), **fields)
    except ValueError as e:
        raise ConfigurationError(str(e), source=source) from e


def load_config(path: Path) -> LedgerConfig:
    return parse_config(load_yaml_file(path), source=str(path))
