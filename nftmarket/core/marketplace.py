"""Fixed-price marketplace ledger — listing state machine and settlement.

Each asset identity ``(asset_registry, asset_id)`` is either UNLISTED or
LISTED.  Operations and who may call them:

- ``create_listing``  UNLISTED -> LISTED    anyone holding the asset, paying the fee
- ``delist``          LISTED   -> UNLISTED  the seller
- ``update_price``    LISTED   -> LISTED    the seller
- ``execute_sale``    LISTED   -> UNLISTED  anyone paying the asking price

While LISTED the marketplace holds the asset in escrow.  Every operation
runs inside a ``Transaction``: preconditions are checked before anything
moves, and a failure part way through (custody refused, payment refused)
undoes the steps already taken.  Events are published only after commit.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from nftmarket.collaborators.protocols import AssetRegistry, RoyaltyInfo, ValueTransfer
from nftmarket.config import settings
from nftmarket.core.errors import (
    CollaboratorError,
    IncorrectPayment,
    InvalidPrice,
    NotAuthorized,
    NotListed,
    RoyaltyExceedsPrice,
    TransferFailed,
)
from nftmarket.core.event_bus import EventBus
from nftmarket.core.transaction import Transaction
from nftmarket.models.events import (
    FeesWithdrawn,
    ListingCreated,
    ListingDelisted,
    ListingFeeUpdated,
    ListingPriceUpdated,
    ListingSold,
)
from nftmarket.models.listing import (
    MIN_PRICE,
    VALID_TRANSITIONS,
    ZERO_ADDRESS,
    Listing,
    ListingKey,
    ListingOperation,
    ListingState,
)

logger = logging.getLogger(__name__)

_Snapshot = tuple[dict[ListingKey, Listing], dict[int, None], int]


class Marketplace:
    """Marketplace ledger owning the listing store and the asset-id index.

    Parameters
    ----------
    address:
        The marketplace's own identity: escrow custodian and fee account.
    administrator:
        The only party allowed to change the fee and withdraw fees.
    bank:
        Native value ledger used for fees, sale proceeds and withdrawals.
    registries:
        Asset registries the marketplace may take custody from.
    listing_fee:
        Initial flat listing fee.  Defaults to
        ``settings.default_listing_fee``.
    bus:
        Event bus committed events are published on.

    Examples
    --------
    >>> from nftmarket.collaborators import InMemoryAssetRegistry, InMemoryBank
    >>> registry = InMemoryAssetRegistry("0xregistry")
    >>> market = Marketplace("0xmarket", "0xadmin", InMemoryBank(), [registry], listing_fee=0)
    >>> market.get_listing("0xregistry", 1).active
    False
    """

    def __init__(
        self,
        address: str,
        administrator: str,
        bank: ValueTransfer,
        registries: Iterable[AssetRegistry] = (),
        *,
        listing_fee: int | None = None,
        bus: EventBus | None = None,
    ) -> None:
        fee = settings.default_listing_fee if listing_fee is None else listing_fee
        if fee < 0:
            raise ValueError(f"listing_fee must not be negative, got {fee}")

        self._address = address
        self._administrator = administrator
        self._bank = bank
        self._bus = bus or EventBus()
        self._listing_fee = fee
        self._registries: dict[str, AssetRegistry] = {}
        self._listings: dict[ListingKey, Listing] = {}
        # Ordered set: dict keys keep insertion order and reject duplicates
        self._listed_ids: dict[int, None] = {}
        self._lock = threading.RLock()

        for registry in registries:
            self.add_registry(registry)

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    @property
    def address(self) -> str:
        return self._address

    @property
    def administrator(self) -> str:
        return self._administrator

    @property
    def bus(self) -> EventBus:
        return self._bus

    def add_registry(self, registry: AssetRegistry) -> None:
        """Make *registry* available as an ``asset_registry`` identity."""
        with self._lock:
            self._registries[registry.address] = registry

    # ------------------------------------------------------------------
    # Listing state machine
    # ------------------------------------------------------------------

    def create_listing(
        self,
        caller: str,
        asset_registry: str,
        asset_id: int,
        price: int,
        *,
        value: int = 0,
    ) -> Listing:
        """List an asset for *price*, paying exactly the listing fee.

        The caller must hold the asset and have approved the marketplace
        to move it.  The fee is collected before custody moves and is
        refunded if the registry refuses.  Relisting after a delist or sale
        updates the existing record.

        Raises
        ------
        InvalidPrice
            If *price* is below 1.
        IncorrectPayment
            If *value* is not exactly the listing fee.
        TransferFailed
            If the asset is already listed, the registry refuses custody,
            or the fee cannot be collected.
        """
        key = ListingKey(asset_registry=asset_registry, asset_id=asset_id)
        with self._transaction(ListingOperation.CREATE) as tx:
            if price < MIN_PRICE:
                raise InvalidPrice(detail=f"got {price}")
            if value != self._listing_fee:
                raise IncorrectPayment(
                    detail=f"expected {self._listing_fee}, got {value}"
                )
            self._check_transition(ListingOperation.CREATE, key)
            registry = self._registry(key)

            # Registry custody is the last collaborator step; only the fee is ever undone.
            self._pay(tx, caller, self._address, value)
            self._move_custody(tx, registry, asset_id, caller, self._address)

            listing = Listing(
                asset_registry=asset_registry,
                asset_id=asset_id,
                custodian=self._address,
                seller=caller,
                price=price,
                active=True,
            )
            self._listings[key] = listing
            self._listed_ids.setdefault(asset_id, None)
            tx.emit(
                ListingCreated(
                    marketplace=self._address,
                    asset_registry=asset_registry,
                    asset_id=asset_id,
                    custodian=self._address,
                    seller=caller,
                    price=price,
                    listing_fee=value,
                )
            )

        logger.info("Listed %s at %d for seller %s.", key, price, caller)
        return listing

    def delist(self, caller: str, asset_registry: str, asset_id: int) -> Listing:
        """Withdraw an active listing and return the asset to its seller.

        Raises
        ------
        NotListed
            If the asset has no active listing.
        NotAuthorized
            If *caller* is not the seller.
        """
        key = ListingKey(asset_registry=asset_registry, asset_id=asset_id)
        with self._transaction(ListingOperation.DELIST) as tx:
            current = self._check_transition(ListingOperation.DELIST, key)
            if caller != current.seller:
                raise NotAuthorized(NotAuthorized.DELIST_REASON, detail=str(key))
            registry = self._registry(key)

            self._move_custody(tx, registry, asset_id, self._address, caller)

            listing = current.model_copy(
                update={"custodian": caller, "seller": ZERO_ADDRESS, "active": False}
            )
            self._listings[key] = listing
            tx.emit(
                ListingDelisted(
                    marketplace=self._address,
                    asset_registry=asset_registry,
                    asset_id=asset_id,
                    seller=caller,
                )
            )

        logger.info("Delisted %s; custody returned to %s.", key, caller)
        return listing

    def update_price(
        self, caller: str, asset_registry: str, asset_id: int, new_price: int
    ) -> Listing:
        """Change the asking price of an active listing.

        Raises
        ------
        NotListed
            If the asset has no active listing.
        NotAuthorized
            If *caller* is not the seller.
        InvalidPrice
            If *new_price* is below 1.
        """
        key = ListingKey(asset_registry=asset_registry, asset_id=asset_id)
        with self._transaction(ListingOperation.UPDATE_PRICE) as tx:
            current = self._check_transition(ListingOperation.UPDATE_PRICE, key)
            if caller != current.seller:
                raise NotAuthorized(NotAuthorized.UPDATE_PRICE_REASON, detail=str(key))
            if new_price < MIN_PRICE:
                raise InvalidPrice(detail=f"got {new_price}")

            listing = current.model_copy(update={"price": new_price})
            self._listings[key] = listing
            tx.emit(
                ListingPriceUpdated(
                    marketplace=self._address,
                    asset_registry=asset_registry,
                    asset_id=asset_id,
                    new_price=new_price,
                )
            )

        logger.info("Repriced %s: %d -> %d.", key, current.price, new_price)
        return listing

    def execute_sale(
        self, caller: str, asset_registry: str, asset_id: int, *, value: int = 0
    ) -> Listing:
        """Buy a listed asset for exactly its asking price.

        The payment is split between the royalty beneficiary and the
        seller, then custody moves to *caller*.

        Raises
        ------
        NotListed
            If the asset has no active listing.
        IncorrectPayment
            If *value* is not exactly the asking price.
        RoyaltyExceedsPrice
            If the registry's royalty is negative or above the price.
        TransferFailed
            If the payment or the custody transfer is refused.
        """
        key = ListingKey(asset_registry=asset_registry, asset_id=asset_id)
        with self._transaction(ListingOperation.EXECUTE_SALE) as tx:
            current = self._check_transition(ListingOperation.EXECUTE_SALE, key)
            price = current.price
            if value != price:
                raise IncorrectPayment(
                    IncorrectPayment.SALE_REASON, detail=f"expected {price}, got {value}"
                )
            registry = self._registry(key)
            royalty = self._royalty(registry, asset_id, price)
            seller_share = price - royalty.amount

            self._disburse(
                tx,
                caller,
                [(royalty.beneficiary, royalty.amount), (current.seller, seller_share)],
            )
            self._move_custody(tx, registry, asset_id, self._address, caller)

            listing = current.model_copy(
                update={"custodian": caller, "seller": ZERO_ADDRESS, "active": False}
            )
            self._listings[key] = listing
            tx.emit(
                ListingSold(
                    marketplace=self._address,
                    asset_registry=asset_registry,
                    asset_id=asset_id,
                    buyer=caller,
                    seller=current.seller,
                    price=price,
                    royalty_beneficiary=royalty.beneficiary,
                    royalty_amount=royalty.amount,
                )
            )

        logger.info(
            "Sold %s to %s for %d (royalty %d to %s, %d to seller %s).",
            key,
            caller,
            price,
            royalty.amount,
            royalty.beneficiary,
            seller_share,
            current.seller,
        )
        return listing

    # ------------------------------------------------------------------
    # Fee administration
    # ------------------------------------------------------------------

    def set_listing_fee(self, caller: str, new_fee: int) -> int:
        """Replace the flat listing fee.  Administrator only."""
        with self._transaction("set_listing_fee") as tx:
            if caller != self._administrator:
                raise NotAuthorized(NotAuthorized.SET_FEE_REASON)
            if new_fee < 0:
                raise InvalidPrice("Listing fee must not be negative", detail=f"got {new_fee}")

            previous = self._listing_fee
            self._listing_fee = new_fee
            tx.emit(
                ListingFeeUpdated(
                    marketplace=self._address, previous_fee=previous, new_fee=new_fee
                )
            )

        logger.info("Listing fee changed: %d -> %d.", previous, new_fee)
        return new_fee

    def get_listing_fee(self) -> int:
        return self._listing_fee

    def withdraw(self, caller: str) -> int:
        """Send the marketplace's entire balance to the administrator.

        Returns the amount withdrawn.
        """
        with self._transaction("withdraw") as tx:
            if caller != self._administrator:
                raise NotAuthorized(NotAuthorized.WITHDRAW_REASON)

            amount = self._bank.balance_of(self._address)
            self._pay(tx, self._address, self._administrator, amount)
            tx.emit(
                FeesWithdrawn(
                    marketplace=self._address,
                    administrator=self._administrator,
                    amount=amount,
                )
            )

        logger.info("Withdrew %d in listing fees to %s.", amount, self._administrator)
        return amount

    def balance(self) -> int:
        """Retained listing fees not yet withdrawn."""
        return self._bank.balance_of(self._address)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_listing(self, asset_registry: str, asset_id: int) -> Listing:
        """Return the listing record, or a zero-valued one if never listed."""
        key = ListingKey(asset_registry=asset_registry, asset_id=asset_id)
        return self._listings.get(key) or Listing.empty(key)

    def listed_asset_ids(self) -> list[int]:
        """Every asset id ever listed, in first-listing order, once each."""
        return list(self._listed_ids)

    def get_all_listings(self) -> list[Listing]:
        """Every listing record ever created, in creation order."""
        return list(self._listings.values())

    def get_active_listings(self) -> list[Listing]:
        return [listing for listing in self._listings.values() if listing.active]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self, operation: ListingOperation | str) -> Iterator[Transaction]:
        """Serialize, snapshot and commit-or-undo one operation."""
        name = operation.value if isinstance(operation, ListingOperation) else operation
        with self._lock:
            tx = Transaction(name)
            tx.on_rollback(self._restore, self._snapshot())
            with tx:
                yield tx
            for event in tx.events:
                self._bus.publish(event)

    def _snapshot(self) -> _Snapshot:
        return dict(self._listings), dict(self._listed_ids), self._listing_fee

    def _restore(self, snapshot: _Snapshot) -> None:
        self._listings, self._listed_ids, self._listing_fee = (
            dict(snapshot[0]),
            dict(snapshot[1]),
            snapshot[2],
        )

    def _check_transition(
        self, operation: ListingOperation, key: ListingKey
    ) -> Listing:
        """Return the current record if *operation* is legal from its state."""
        required, _ = VALID_TRANSITIONS[operation]
        current = self._listings.get(key) or Listing.empty(key)
        if current.state is required:
            return current
        if required is ListingState.LISTED:
            raise NotListed(detail=str(key))
        raise TransferFailed(detail=f"{key} is already listed")

    def _registry(self, key: ListingKey) -> AssetRegistry:
        registry = self._registries.get(key.asset_registry)
        if registry is None:
            raise TransferFailed(detail=f"unknown asset registry {key.asset_registry}")
        return registry

    def _royalty(self, registry: AssetRegistry, asset_id: int, price: int) -> RoyaltyInfo:
        try:
            royalty = registry.royalty_info(asset_id, price)
        except CollaboratorError as exc:
            raise TransferFailed(detail=str(exc)) from exc
        if not 0 <= royalty.amount <= price:
            raise RoyaltyExceedsPrice(
                detail=f"royalty {royalty.amount} on price {price}"
            )
        return royalty

    def _move_custody(
        self,
        tx: Transaction,
        registry: AssetRegistry,
        asset_id: int,
        from_party: str,
        to_party: str,
    ) -> None:
        try:
            registry.transfer_custody(asset_id, from_party, to_party, self._address)
        except CollaboratorError as exc:
            raise TransferFailed(detail=str(exc)) from exc
        tx.on_rollback(self._undo_custody, registry, asset_id, to_party, from_party)

    def _undo_custody(
        self, registry: AssetRegistry, asset_id: int, holder: str, original: str
    ) -> None:
        # The holder is always allowed to move its own asset.
        registry.transfer_custody(asset_id, holder, original, holder)

    def _pay(self, tx: Transaction, sender: str, recipient: str, amount: int) -> None:
        self._disburse(tx, sender, [(recipient, amount)])

    def _disburse(
        self, tx: Transaction, sender: str, payouts: list[tuple[str, int]]
    ) -> None:
        try:
            self._bank.disburse(sender, payouts)
        except CollaboratorError as exc:
            raise TransferFailed(detail=str(exc)) from exc
        tx.on_rollback(self._refund, sender, payouts)

    def _refund(self, sender: str, payouts: list[tuple[str, int]]) -> None:
        for recipient, amount in reversed(payouts):
            self._bank.transfer(recipient, sender, amount)
