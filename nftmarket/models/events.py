"""Structured marketplace notifications.

Every committed operation publishes exactly one event.  Indexers and UIs
track listings off-system from these events alone, so each one carries the
asset identity, the parties involved and the amounts moved.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    """The six notification types."""

    LISTING_CREATED = "listing_created"
    LISTING_DELISTED = "listing_delisted"
    LISTING_PRICE_UPDATED = "listing_price_updated"
    LISTING_SOLD = "listing_sold"
    LISTING_FEE_UPDATED = "listing_fee_updated"
    FEES_WITHDRAWN = "fees_withdrawn"


class MarketEvent(BaseModel):
    """Base fields shared by all events."""

    model_config = ConfigDict(frozen=True)

    schema_version: str = "2026-10"
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    marketplace: str
    payload_hash: str = ""  # SHA-256 of canonical payload bytes, set by the bus
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    event_kind: EventKind


class ListingCreated(MarketEvent):
    """An asset moved into escrow and became purchasable."""

    event_kind: EventKind = EventKind.LISTING_CREATED
    asset_registry: str
    asset_id: int
    custodian: str
    seller: str
    price: int
    listing_fee: int = 0  # fee retained by the marketplace for this listing


class ListingDelisted(MarketEvent):
    """The seller withdrew an active listing and took the asset back."""

    event_kind: EventKind = EventKind.LISTING_DELISTED
    asset_registry: str
    asset_id: int
    seller: str


class ListingPriceUpdated(MarketEvent):
    event_kind: EventKind = EventKind.LISTING_PRICE_UPDATED
    asset_registry: str
    asset_id: int
    new_price: int


class ListingSold(MarketEvent):
    """A buyer paid the asking price and received the asset."""

    event_kind: EventKind = EventKind.LISTING_SOLD
    asset_registry: str
    asset_id: int
    buyer: str
    seller: str
    price: int
    royalty_beneficiary: str
    royalty_amount: int


class ListingFeeUpdated(MarketEvent):
    event_kind: EventKind = EventKind.LISTING_FEE_UPDATED
    previous_fee: int
    new_fee: int


class FeesWithdrawn(MarketEvent):
    event_kind: EventKind = EventKind.FEES_WITHDRAWN
    administrator: str
    amount: int


EVENT_TYPE_MAP: dict[EventKind, type[MarketEvent]] = {
    EventKind.LISTING_CREATED: ListingCreated,
    EventKind.LISTING_DELISTED: ListingDelisted,
    EventKind.LISTING_PRICE_UPDATED: ListingPriceUpdated,
    EventKind.LISTING_SOLD: ListingSold,
    EventKind.LISTING_FEE_UPDATED: ListingFeeUpdated,
    EventKind.FEES_WITHDRAWN: FeesWithdrawn,
}
