"""
OpenShelf - Configuration

Environment-driven settings for the catalog core.

Environment Variables:
    OPENSHELF_SUPER_ADMIN=<64 hex chars>   Deploy-time super admin
    OPENSHELF_TRANSFER_TIMELOCK=604800     Transfer timelock in seconds
    OPENSHELF_RECOVERY_THRESHOLD=2         Emergency recovery quorum
    OPENSHELF_COOLDOWN_SECONDS=60          Catalog addition cooldown
    OPENSHELF_DAILY_CAP=50                 Catalog additions per UTC day
    STORAGE_BACKEND=json                   json or memory
    CATALOG_DATA_FILE=catalog_data.json    JSON backend path
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any

from errors import InvalidPrincipal, NotConfigured
from governance_state import DEFAULT_RECOVERY_THRESHOLD, DEFAULT_TRANSFER_TIMELOCK, MAX_ADMINS
from principal import Principal, optional_hex
from rate_limiter import DEFAULT_COOLDOWN_SECONDS, DEFAULT_DAILY_CAP, RateLimitConfig

logger = logging.getLogger(__name__)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise NotConfigured(f"{name} must be an integer, got {raw!r}") from e


@dataclass
class CatalogConfig:
    """Settings for one catalog deployment."""

    super_admin: Principal | None = None
    transfer_timelock: int = DEFAULT_TRANSFER_TIMELOCK
    recovery_threshold: int = DEFAULT_RECOVERY_THRESHOLD
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    storage_backend: str = "json"
    data_file: str = "catalog_data.json"

    @classmethod
    def from_env(cls) -> "CatalogConfig":
        """Create configuration from environment variables."""
        super_admin = None
        raw_admin = os.getenv("OPENSHELF_SUPER_ADMIN", "").strip()
        if raw_admin:
            try:
                super_admin = Principal.from_hex(raw_admin.lower())
            except InvalidPrincipal as e:
                raise NotConfigured(f"OPENSHELF_SUPER_ADMIN is not a valid principal: {e}") from e

        return cls(
            super_admin=super_admin,
            transfer_timelock=_int_env("OPENSHELF_TRANSFER_TIMELOCK", DEFAULT_TRANSFER_TIMELOCK),
            recovery_threshold=_int_env("OPENSHELF_RECOVERY_THRESHOLD", DEFAULT_RECOVERY_THRESHOLD),
            rate_limit=RateLimitConfig(
                cooldown_seconds=_int_env("OPENSHELF_COOLDOWN_SECONDS", DEFAULT_COOLDOWN_SECONDS),
                daily_cap=_int_env("OPENSHELF_DAILY_CAP", DEFAULT_DAILY_CAP),
            ),
            storage_backend=os.getenv("STORAGE_BACKEND", "json").lower(),
            data_file=os.getenv("CATALOG_DATA_FILE", "catalog_data.json"),
        )

    def validate(self) -> "CatalogConfig":
        """
        Check value ranges.

        Raises:
            NotConfigured: If any setting is out of range
        """
        if not 2 <= self.recovery_threshold <= MAX_ADMINS:
            raise NotConfigured(
                f"Recovery threshold must be between 2 and {MAX_ADMINS}",
                recovery_threshold=self.recovery_threshold,
            )
        if self.transfer_timelock <= 0:
            raise NotConfigured(
                "Transfer timelock must be positive", transfer_timelock=self.transfer_timelock
            )
        if self.rate_limit.cooldown_seconds < 0:
            raise NotConfigured(
                "Cooldown must not be negative", cooldown_seconds=self.rate_limit.cooldown_seconds
            )
        if self.rate_limit.daily_cap < 1:
            raise NotConfigured("Daily cap must be at least 1", daily_cap=self.rate_limit.daily_cap)
        if self.storage_backend not in ("json", "memory"):
            raise NotConfigured(f"Unknown storage backend: {self.storage_backend}")
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "super_admin": optional_hex(self.super_admin),
            "transfer_timelock": self.transfer_timelock,
            "recovery_threshold": self.recovery_threshold,
            "cooldown_seconds": self.rate_limit.cooldown_seconds,
            "daily_cap": self.rate_limit.daily_cap,
            "storage_backend": self.storage_backend,
            "data_file": self.data_file,
        }
