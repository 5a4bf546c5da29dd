"""nftmarket: fixed-price NFT marketplace ledger.

  - Escrowed fixed-price listings with delist and reprice by the seller
  - Exact-payment sales split between royalty beneficiary and seller
  - Flat listing fee, withdrawable by the administrator
  - All-or-nothing operations with rollback of collaborator side effects
  - Structured events, journaled in a hash-chained SQLite log
"""

__version__ = "0.1.0"
__description__ = "Fixed-price NFT marketplace ledger"

from nftmarket.core.errors import (
    IncorrectPayment,
    InvalidPrice,
    MarketError,
    NotAuthorized,
    NotListed,
    RoyaltyExceedsPrice,
    TransferFailed,
)
from nftmarket.core.marketplace import Marketplace
from nftmarket.models.listing import ZERO_ADDRESS, Listing

__all__ = [
    "Marketplace",
    "Listing",
    "ZERO_ADDRESS",
    "MarketError",
    "InvalidPrice",
    "IncorrectPayment",
    "NotListed",
    "NotAuthorized",
    "TransferFailed",
    "RoyaltyExceedsPrice",
    "__version__",
]
