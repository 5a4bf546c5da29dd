"""Runtime configuration — env-driven.

Centralized settings using pydantic-settings. Reads from a .env file and
NFTMARKET_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from nftmarket.models.listing import ZERO_ADDRESS


class MarketSettings(BaseSettings):
    """Marketplace settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export NFTMARKET_ENVIRONMENT=staging
        export NFTMARKET_LOG_LEVEL=DEBUG
        export NFTMARKET_JOURNAL_PATH=/data/journal.db

    Or via .env file::

        NFTMARKET_ENVIRONMENT=production
        NFTMARKET_ADMINISTRATOR=0x5FbDB2315678afecb367f032d93F642f64180aa3
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="NFTMARKET_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Storage
    journal_path: Path = Path(".nftmarket/journal.db")

    # Marketplace identity
    marketplace_address: str = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
    administrator: str = ZERO_ADDRESS

    # Flat fee charged per listing, in wei (0.01 ether)
    default_listing_fee: int = 10_000_000_000_000_000

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"


# Module-level singleton: import as `from nftmarket.config import settings`
settings = MarketSettings()
