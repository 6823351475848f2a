"""Configuration management for the gig ledger engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment."""

    database_url: str
    mileage_rate: Decimal
    default_tax_percentage: int
    cache_max_entries: int
    aggregate_cache_ttl: int
    gig_list_cache_ttl: int
    max_recreate_days: int
    log_level: str
    debug: bool

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            database_url=os.getenv(
                "DATABASE_URL",
                "sqlite+aiosqlite:///./gig_ledger.db",
            ),
            # 2025 IRS standard mileage rate
            mileage_rate=Decimal(os.getenv("MILEAGE_RATE", "0.70")),
            default_tax_percentage=int(os.getenv("DEFAULT_TAX_PERCENTAGE", "23")),
            cache_max_entries=int(os.getenv("CACHE_MAX_ENTRIES", "5000")),
            aggregate_cache_ttl=int(os.getenv("AGGREGATE_CACHE_TTL", "300")),
            gig_list_cache_ttl=int(os.getenv("GIG_LIST_CACHE_TTL", "120")),
            max_recreate_days=int(os.getenv("MAX_RECREATE_DAYS", "30")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            debug=os.getenv("DEBUG", "false").lower() == "true",
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()
