"""Listing records and the listing state table.

One ``Listing`` exists per ``(asset_registry, asset_id)`` identity.  It is
created by the first listing of that asset and is never deleted: delisting
and sales only mark it inactive, so the last known price stays queryable.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

MIN_PRICE = 1


class ListingState(str, Enum):
    """The two states an asset identity can be in."""

    UNLISTED = "unlisted"
    LISTED = "listed"


class ListingOperation(str, Enum):
    """Operations that move a listing between states."""

    CREATE = "create"
    DELIST = "delist"
    UPDATE_PRICE = "update_price"
    EXECUTE_SALE = "execute_sale"


# Operation -> (required current state, resulting state)
VALID_TRANSITIONS: dict[ListingOperation, tuple[ListingState, ListingState]] = {
    ListingOperation.CREATE: (ListingState.UNLISTED, ListingState.LISTED),
    ListingOperation.DELIST: (ListingState.LISTED, ListingState.UNLISTED),
    ListingOperation.UPDATE_PRICE: (ListingState.LISTED, ListingState.LISTED),
    ListingOperation.EXECUTE_SALE: (ListingState.LISTED, ListingState.UNLISTED),
}


class ListingKey(BaseModel):
    """Global identity of a listing: the registry address plus the asset id."""

    model_config = ConfigDict(frozen=True)

    asset_registry: str
    asset_id: int = Field(ge=0)

    def __str__(self) -> str:
        return f"{self.asset_registry}#{self.asset_id}"


class Listing(BaseModel):
    """Per-asset listing record.

    While ``active`` the marketplace itself is the ``custodian`` (escrow)
    and ``seller`` is the party entitled to the proceeds.  While inactive
    ``seller`` is ``ZERO_ADDRESS`` and ``custodian`` is whoever received
    the asset last.
    """

    model_config = ConfigDict(frozen=True)

    asset_registry: str
    asset_id: int = Field(ge=0)
    custodian: str = ZERO_ADDRESS
    seller: str = ZERO_ADDRESS
    price: int = Field(default=0, ge=0)
    active: bool = False

    @classmethod
    def empty(cls, key: ListingKey) -> Listing:
        """Zero-valued record returned for assets that were never listed."""
        return cls(asset_registry=key.asset_registry, asset_id=key.asset_id)

    @property
    def key(self) -> ListingKey:
        return ListingKey(asset_registry=self.asset_registry, asset_id=self.asset_id)

    @property
    def state(self) -> ListingState:
        return ListingState.LISTED if self.active else ListingState.UNLISTED
