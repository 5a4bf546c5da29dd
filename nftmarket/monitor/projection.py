"""ListingProjection — pure read-only view over the event journal.

An off-system indexer only sees published events.  This projection
rebuilds every listing, the asset-id index and the fee balance from the
journal alone.  It never keeps its own state; every call re-reads.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from nftmarket.core.event_journal import EventJournal, JournalIntegrityError
from nftmarket.models.events import EventKind
from nftmarket.models.journal import JournalEntry
from nftmarket.models.listing import ZERO_ADDRESS, Listing, ListingKey


class ListingView(BaseModel):
    """A listing as reconstructed from events, with its last activity."""

    model_config = ConfigDict(frozen=True)

    listing: Listing
    last_event: EventKind
    updated_at: datetime
    times_sold: int = 0


class MarketSnapshot(BaseModel):
    """A frozen, point-in-time view of one marketplace.

    Computed fresh on every ``snapshot()`` call, never persisted.
    """

    model_config = ConfigDict(frozen=True)

    marketplace: str
    listings: list[ListingView] = []
    listed_asset_ids: list[int] = []
    listing_fee: int | None = None  # None until a listing or fee change is journaled
    fees_collected: int = 0
    fees_withdrawn: int = 0
    sales_volume: int = 0
    royalties_paid: int = 0
    event_count: int = 0
    chain_valid: bool = True
    last_updated: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def retained_fees(self) -> int:
        """Listing fees the administrator has not withdrawn yet."""
        return self.fees_collected - self.fees_withdrawn

    @property
    def active_listings(self) -> list[ListingView]:
        return [v for v in self.listings if v.listing.active]

    def get(self, asset_registry: str, asset_id: int) -> Listing | None:
        for view in self.listings:
            if view.listing.key == ListingKey(
                asset_registry=asset_registry, asset_id=asset_id
            ):
                return view.listing
        return None


class ListingProjection:
    """Pure read-only projection over the EventJournal.

    Parameters
    ----------
    journal:
        The EventJournal to project from.
    """

    def __init__(self, journal: EventJournal) -> None:
        self._journal = journal

    def snapshot(self, marketplace: str) -> MarketSnapshot:
        """Replay every journaled event of *marketplace* into a snapshot."""
        entries = self._journal.get_entries(marketplace)

        views: dict[ListingKey, dict[str, Any]] = {}
        listed_ids: dict[int, None] = {}
        totals = {
            "fees_collected": 0,
            "fees_withdrawn": 0,
            "sales_volume": 0,
            "royalties_paid": 0,
        }
        listing_fee: int | None = None

        for entry in entries:
            kind = EventKind(entry.event_kind)
            data = entry.event_json

            if kind is EventKind.LISTING_FEE_UPDATED:
                listing_fee = data["new_fee"]
                continue
            if kind is EventKind.FEES_WITHDRAWN:
                totals["fees_withdrawn"] += data["amount"]
                continue

            key = ListingKey(asset_registry=data["asset_registry"], asset_id=data["asset_id"])
            view = views.setdefault(key, {"listing": Listing.empty(key), "times_sold": 0})
            view["listing"] = self._apply(view["listing"], kind, data)
            view["last_event"] = kind
            view["updated_at"] = entry.timestamp_utc

            if kind is EventKind.LISTING_CREATED:
                listed_ids.setdefault(key.asset_id, None)
                listing_fee = data.get("listing_fee", 0)
                totals["fees_collected"] += listing_fee
            elif kind is EventKind.LISTING_SOLD:
                view["times_sold"] += 1
                totals["sales_volume"] += data["price"]
                totals["royalties_paid"] += data["royalty_amount"]

        return MarketSnapshot(
            marketplace=marketplace,
            listings=[ListingView(**view) for view in views.values()],
            listed_asset_ids=list(listed_ids),
            listing_fee=listing_fee,
            event_count=len(entries),
            chain_valid=self._check_chain_valid(marketplace),
            last_updated=self._last_updated(entries),
            **totals,
        )

    @staticmethod
    def _apply(listing: Listing, kind: EventKind, data: dict[str, Any]) -> Listing:
        """Fold one listing event into the reconstructed record."""
        if kind is EventKind.LISTING_CREATED:
            return listing.model_copy(
                update={
                    "custodian": data["custodian"],
                    "seller": data["seller"],
                    "price": data["price"],
                    "active": True,
                }
            )
        if kind is EventKind.LISTING_DELISTED:
            return listing.model_copy(
                update={"custodian": data["seller"], "seller": ZERO_ADDRESS, "active": False}
            )
        if kind is EventKind.LISTING_PRICE_UPDATED:
            return listing.model_copy(update={"price": data["new_price"]})
        if kind is EventKind.LISTING_SOLD:
            return listing.model_copy(
                update={"custodian": data["buyer"], "seller": ZERO_ADDRESS, "active": False}
            )
        return listing

    @staticmethod
    def _last_updated(entries: list[JournalEntry]) -> datetime:
        return entries[-1].timestamp_utc if entries else datetime.now(timezone.utc)

    def _check_chain_valid(self, marketplace: str) -> bool:
        """Check hash chain integrity without raising."""
        try:
            return self._journal.verify_chain(marketplace)
        except JournalIntegrityError:
            return False
