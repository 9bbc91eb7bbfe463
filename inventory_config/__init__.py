"""
inventory_config -- single public entrypoint for runtime settings.

Responsibility:
    ``get_active_config()`` is the ONLY way to obtain settings.  It loads a
    YAML file into a frozen ``LedgerSettings``.  The kernel never imports
    this package; callers pass the settings object into the engine,
    services and selectors.

Resolution order:
    1. ``config_path`` argument
    2. ``INVENTORY_CONFIG`` environment variable
    3. ``sets/default.yaml`` shipped with the package

    ``DATABASE_URL`` in the environment overrides ``database.url``.

Failure modes:
    - ``FileNotFoundError`` -- the selected file does not exist.
    - ``ValueError`` -- schema or range validation failures.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from inventory_config.loader import load_yaml_file, parse_settings
from inventory_config.schema import LedgerSettings

_logger = logging.getLogger("inventory_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
DEFAULT_CONFIG_FILE = _DEFAULT_CONFIG_DIR / "default.yaml"

CONFIG_ENV_VAR = "INVENTORY_CONFIG"
DATABASE_URL_ENV_VAR = "DATABASE_URL"


def get_active_config(config_path: Path | str | None = None) -> LedgerSettings:
    """The ONLY public configuration entrypoint."""
    if config_path is None:
        config_path = os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILE
    path = Path(config_path)

    data = load_yaml_file(path)
    settings = parse_settings(data, os.environ.get(DATABASE_URL_ENV_VAR) or None)

    _logger.info(
        "INVENTORY_CONFIG_TRACE",
        extra={
            "config_id": settings.config_id,
            "version": settings.version,
            "checksum": settings.checksum,
            "source": str(path),
            "business_timezone": settings.business_timezone,
        },
    )
    return settings


__all__ = [
    "DEFAULT_CONFIG_FILE",
    "LedgerSettings",
    "get_active_config",
]
