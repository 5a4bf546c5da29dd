"""Production configuration guard.

Validates production-critical settings once, before a marketplace is
built, and fails hard (``ProductionConfigError``) if any is violated.
"""

from __future__ import annotations

import logging

from nftmarket.config import MarketSettings
from nftmarket.models.listing import ZERO_ADDRESS

logger = logging.getLogger(__name__)


class ProductionConfigError(RuntimeError):
    """Raised when production configuration constraints are violated.

    The process should exit; the marketplace cannot start safely.
    """


def enforce_production_constraints(config: MarketSettings) -> None:
    """Validate all production-critical configuration constraints.

    Constraints enforced
    --------------------
    1. Debug mode must be disabled.
    2. An administrator must be configured.
    3. The marketplace address must not be the zero address.
    4. The default listing fee must not be negative.

    Raises
    ------
    ProductionConfigError
        If any production constraint is violated.
    """
    if not config.is_production:
        return

    violations: list[str] = []

    if config.debug:
        violations.append(
            "debug=True is not allowed in production. Set NFTMARKET_DEBUG=false."
        )

    if config.administrator == ZERO_ADDRESS:
        violations.append(
            "No administrator configured. Set NFTMARKET_ADMINISTRATOR."
        )

    if config.marketplace_address == ZERO_ADDRESS:
        violations.append(
            "Marketplace address must not be the zero address. "
            "Set NFTMARKET_MARKETPLACE_ADDRESS."
        )

    if config.default_listing_fee < 0:
        violations.append(
            f"default_listing_fee must not be negative, got {config.default_listing_fee}."
        )

    if violations:
        msg = "Production configuration guard failed.\n" + "\n".join(
            f"  - {v}" for v in violations
        )
        logger.critical(msg)
        raise ProductionConfigError(msg)

    logger.info("Production configuration guard passed.")
