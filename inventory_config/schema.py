"""
Configuration schema (``inventory_config.schema``).

Frozen dataclasses describing the runtime settings of the inventory kernel.
Validation happens in ``__post_init__`` so an invalid instance can never
exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class LedgerSettings:
    """
    Settings consumed by the engine, the stock ledger and the selectors.

    Guarantees:
        - Every numeric bound is positive.
        - ``business_timezone`` names an IANA zone known to zoneinfo.

    Raises:
        ValueError: On any invalid field.
    """

    database_url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    lock_timeout_seconds: float = 5.0
    business_timezone: str = "UTC"
    low_stock_threshold: Decimal = Decimal("10")
    top_moving_window_days: int = 30
    top_moving_limit: int = 10
    trend_months: int = 6
    search_limit: int = 20
    log_level: str = "INFO"
    config_id: str = "inventory-default"
    version: int = 1
    checksum: str = ""

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ValueError("database.url is required")
        if self.pool_size < 1:
            raise ValueError(f"database.pool_size must be >= 1, got {self.pool_size}")
        if self.max_overflow < 0:
            raise ValueError(f"database.max_overflow must be >= 0, got {self.max_overflow}")
        if self.pool_timeout <= 0:
            raise ValueError(f"database.pool_timeout must be > 0, got {self.pool_timeout}")
        if self.lock_timeout_seconds <= 0:
            raise ValueError(
                f"database.lock_timeout_seconds must be > 0, got {self.lock_timeout_seconds}"
            )
        try:
            ZoneInfo(self.business_timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(
                f"ledger.business_timezone is not a known zone: {self.business_timezone!r}"
            ) from exc
        if self.low_stock_threshold < 0:
            raise ValueError(
                f"ledger.low_stock_threshold must be >= 0, got {self.low_stock_threshold}"
            )
        for name in ("top_moving_window_days", "top_moving_limit", "trend_months", "search_limit"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {sorted(_LOG_LEVELS)}")
