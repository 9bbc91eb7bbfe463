"""
Configuration loader (``inventory_config.loader``).

Loads a YAML settings file and parses it into ``LedgerSettings``.  Runtime
callers use ``inventory_config.get_active_config()`` instead of this module.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong types or out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import LedgerSettings


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 over the parsed settings."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"'{name}' must be a mapping")
    return section


def _as_int(section: dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    return value


def _as_float(section: dict[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number, got {value!r}")
    return float(value)


def _as_bool(section: dict[str, Any], key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value


def _as_decimal(section: dict[str, Any], key: str, default: Decimal) -> Decimal:
    value = section.get(key, default)
    if isinstance(value, bool):
        raise ValueError(f"{key} must be a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{key} must be a number, got {value!r}") from None


def parse_settings(
    data: dict[str, Any],
    database_url_override: str | None = None,
) -> LedgerSettings:
    """
    Parse a settings mapping into ``LedgerSettings``.

    Args:
        data: Parsed YAML document.
        database_url_override: Replaces ``database.url`` when given.
    """
    database = _section(data, "database")
    ledger = _section(data, "ledger")
    analytics = _section(data, "analytics")
    catalog = _section(data, "catalog")
    logging_section = _section(data, "logging")

    return LedgerSettings(
        database_url=database_url_override or str(database.get("url", "")),
        echo=_as_bool(database, "echo", False),
        pool_size=_as_int(database, "pool_size", 20),
        max_overflow=_as_int(database, "max_overflow", 10),
        pool_timeout=_as_int(database, "pool_timeout", 30),
        lock_timeout_seconds=_as_float(database, "lock_timeout_seconds", 5.0),
        business_timezone=str(ledger.get("business_timezone", "UTC")),
        low_stock_threshold=_as_decimal(ledger, "low_stock_threshold", Decimal("10")),
        top_moving_window_days=_as_int(analytics, "top_moving_window_days", 30),
        top_moving_limit=_as_int(analytics, "top_moving_limit", 10),
        trend_months=_as_int(analytics, "trend_months", 6),
        search_limit=_as_int(catalog, "search_limit", 20),
        log_level=str(logging_section.get("level", "INFO")).upper(),
        config_id=str(data.get("config_id", "inventory-default")),
        version=_as_int(data, "version", 1),
        checksum=compute_checksum(data),
    )
