"""nftmarket data models — all Pydantic v2, all frozen (immutable)."""

from nftmarket.models.events import (
    EVENT_TYPE_MAP,
    EventKind,
    FeesWithdrawn,
    ListingCreated,
    ListingDelisted,
    ListingFeeUpdated,
    ListingPriceUpdated,
    ListingSold,
    MarketEvent,
)
from nftmarket.models.journal import JournalEntry, JournalQuery
from nftmarket.models.listing import (
    MIN_PRICE,
    VALID_TRANSITIONS,
    ZERO_ADDRESS,
    Listing,
    ListingKey,
    ListingOperation,
    ListingState,
)

__all__ = [
    # listing
    "ZERO_ADDRESS",
    "MIN_PRICE",
    "Listing",
    "ListingKey",
    "ListingOperation",
    "ListingState",
    "VALID_TRANSITIONS",
    # events
    "EventKind",
    "MarketEvent",
    "ListingCreated",
    "ListingDelisted",
    "ListingPriceUpdated",
    "ListingSold",
    "ListingFeeUpdated",
    "FeesWithdrawn",
    "EVENT_TYPE_MAP",
    # journal
    "JournalEntry",
    "JournalQuery",
]
