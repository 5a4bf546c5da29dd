"""Adversarial tests — operations interrupted part way through.

These tests verify that:
1. A refused custody move after the fee was paid refunds the fee
2. A refused custody transfer after payment refunds every payee
3. Listing state and the asset-id index are restored on failure
4. No event escapes an operation that did not commit
5. A failing compensation is surfaced, never silently dropped
6. A failing subscriber cannot undo or fail a committed operation
"""

from __future__ import annotations

import pytest

from _constants import (
    ADMIN,
    BUYER,
    CREATOR,
    LIST_FEE,
    MARKET,
    PRICE,
    REGISTRY,
    ROYALTY_BPS,
    SELLER,
    STARTING_BALANCE,
)
from nftmarket.collaborators.memory import InMemoryAssetRegistry, InMemoryBank
from nftmarket.core.errors import CollaboratorError, TransferFailed
from nftmarket.core.event_bus import EventBus
from nftmarket.core.marketplace import Marketplace
from nftmarket.core.transaction import RollbackError
from nftmarket.models.events import ListingCreated

PAUPER = "0x9965507D1a55bcC2695C58ba16FB37d819B0A4dc"


class RefusingRegistry(InMemoryAssetRegistry):
    """Registry that refuses to move custody to one blocked party."""

    def __init__(self, *args, blocked: str = "", **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.blocked = blocked

    def transfer_custody(self, asset_id, from_party, to_party, operator) -> None:
        if to_party == self.blocked:
            raise CollaboratorError(f"custody to {to_party} refused")
        super().transfer_custody(asset_id, from_party, to_party, operator)


def _build(registry: InMemoryAssetRegistry, bank: InMemoryBank):
    bus = EventBus()
    events: list = []
    bus.subscribe_all(events.append)
    market = Marketplace(MARKET, ADMIN, bank, [registry], listing_fee=LIST_FEE, bus=bus)
    return market, events


class TestCreateListingRollback:
    """The fee is collected before custody moves; a refused move refunds it."""

    def test_unpaid_fee_leaves_asset_untouched(self, registry, bank, published, market):
        registry.mint(PAUPER, 7)
        registry.approve(PAUPER, MARKET, 7)

        with pytest.raises(TransferFailed, match="Insufficient balance"):
            market.create_listing(PAUPER, REGISTRY, 7, PRICE, value=LIST_FEE)

        assert registry.owner_of(7) == PAUPER
        assert registry.get_approved(7) == MARKET
        assert market.get_listing(REGISTRY, 7).active is False
        assert market.listed_asset_ids() == []
        assert market.get_all_listings() == []
        assert bank.balance_of(MARKET) == 0
        assert published == []

    def test_retry_after_funding_succeeds(self, registry, bank, market):
        registry.mint(PAUPER, 7)
        registry.approve(PAUPER, MARKET, 7)
        with pytest.raises(TransferFailed):
            market.create_listing(PAUPER, REGISTRY, 7, PRICE, value=LIST_FEE)

        bank.mint(PAUPER, LIST_FEE)
        listing = market.create_listing(PAUPER, REGISTRY, 7, PRICE, value=LIST_FEE)

        assert listing.active is True
        assert registry.owner_of(7) == MARKET
        assert bank.balance_of(PAUPER) == 0

    def test_refused_custody_refunds_fee(self):
        registry = RefusingRegistry(REGISTRY, blocked=MARKET)
        bank = InMemoryBank({SELLER: STARTING_BALANCE})
        market, events = _build(registry, bank)
        registry.mint(SELLER, 10)
        registry.approve(SELLER, MARKET, 10)

        with pytest.raises(TransferFailed, match="refused"):
            market.create_listing(SELLER, REGISTRY, 10, PRICE, value=LIST_FEE)

        assert bank.balance_of(SELLER) == STARTING_BALANCE
        assert bank.balance_of(MARKET) == 0
        assert registry.owner_of(10) == SELLER
        assert registry.get_approved(10) == MARKET
        assert market.listed_asset_ids() == []
        assert events == []

    def test_failed_relist_keeps_previous_record(self, registry, bank, published, market,
                                                 mint_and_approve):
        mint_and_approve()
        market.create_listing(SELLER, REGISTRY, 10, PRICE, value=LIST_FEE)
        market.execute_sale(BUYER, REGISTRY, 10, value=PRICE)
        before = market.get_listing(REGISTRY, 10)

        # BUYER relists after draining its balance
        bank.transfer(BUYER, CREATOR, bank.balance_of(BUYER))
        registry.approve(BUYER, MARKET, 10)
        with pytest.raises(TransferFailed):
            market.create_listing(BUYER, REGISTRY, 10, 999, value=LIST_FEE)

        assert market.get_listing(REGISTRY, 10) == before
        assert registry.owner_of(10) == BUYER
        assert market.listed_asset_ids() == [10]
        assert [type(e) for e in published].count(ListingCreated) == 1


class TestExecuteSaleRollback:
    """Payment is split before custody moves; refusing custody must refund."""

    def test_refused_custody_refunds_everyone(self):
        registry = RefusingRegistry(
            REGISTRY, royalty_receiver=CREATOR, royalty_bps=ROYALTY_BPS, blocked=BUYER
        )
        bank = InMemoryBank({SELLER: STARTING_BALANCE, BUYER: STARTING_BALANCE})
        market, events = _build(registry, bank)
        registry.mint(SELLER, 10)
        registry.approve(SELLER, MARKET, 10)
        market.create_listing(SELLER, REGISTRY, 10, PRICE, value=LIST_FEE)
        listing = market.get_listing(REGISTRY, 10)
        balances = {p: bank.balance_of(p) for p in (SELLER, BUYER, CREATOR, MARKET)}
        events.clear()

        with pytest.raises(TransferFailed, match="refused"):
            market.execute_sale(BUYER, REGISTRY, 10, value=PRICE)

        assert {p: bank.balance_of(p) for p in balances} == balances
        assert registry.owner_of(10) == MARKET
        assert market.get_listing(REGISTRY, 10) == listing
        assert events == []

    def test_underfunded_buyer(self, bank, published, market, listed):
        bank.transfer(BUYER, CREATOR, STARTING_BALANCE - 1)
        published.clear()
        with pytest.raises(TransferFailed, match="Insufficient balance"):
            market.execute_sale(BUYER, REGISTRY, listed, value=PRICE)
        assert market.get_listing(REGISTRY, listed).active is True
        assert bank.balance_of(SELLER) == STARTING_BALANCE - LIST_FEE
        assert published == []

    def test_listing_still_purchasable_after_failure(self, bank, market, listed, registry):
        bank.transfer(BUYER, CREATOR, STARTING_BALANCE)
        with pytest.raises(TransferFailed):
            market.execute_sale(BUYER, REGISTRY, listed, value=PRICE)
        bank.transfer(CREATOR, BUYER, STARTING_BALANCE)

        market.execute_sale(BUYER, REGISTRY, listed, value=PRICE)
        assert registry.owner_of(listed) == BUYER


class TestDelistRollback:
    def test_refused_return_keeps_listing(self):
        registry = RefusingRegistry(REGISTRY, blocked=SELLER)
        bank = InMemoryBank({SELLER: STARTING_BALANCE})
        market, events = _build(registry, bank)
        registry.mint(SELLER, 10)
        registry.approve(SELLER, MARKET, 10)
        market.create_listing(SELLER, REGISTRY, 10, PRICE, value=LIST_FEE)
        events.clear()

        with pytest.raises(TransferFailed):
            market.delist(SELLER, REGISTRY, 10)

        assert market.get_listing(REGISTRY, 10).active is True
        assert registry.owner_of(10) == MARKET
        assert events == []


class TestCompensationFailure:
    def test_failed_refund_raises_rollback_error(self):
        class NoRefundBank(InMemoryBank):
            """Collects payments but refuses to send anything back."""

            def transfer(self, sender, recipient, amount) -> None:
                raise CollaboratorError("refunds disabled")

        registry = RefusingRegistry(REGISTRY, blocked=MARKET)
        market, events = _build(registry, NoRefundBank({PAUPER: LIST_FEE}))
        registry.mint(PAUPER, 3)
        registry.approve(PAUPER, MARKET, 3)

        with pytest.raises(RollbackError, match="refunds disabled"):
            market.create_listing(PAUPER, REGISTRY, 3, PRICE, value=LIST_FEE)

        # Listing state is still restored even though the fee is not
        assert market.get_listing(REGISTRY, 3).active is False
        assert market.listed_asset_ids() == []
        assert events == []


class TestSubscriberFailure:
    """A subscriber error after commit neither fails the call nor starves others."""

    def test_committed_listing_survives_failing_subscriber(self, bus, market, mint_and_approve):
        def indexer_down(event):
            raise RuntimeError("indexer down")

        recorded: list = []
        bus.subscribe_all(indexer_down)
        bus.subscribe_all(recorded.append)
        asset_id = mint_and_approve()

        listing = market.create_listing(SELLER, REGISTRY, asset_id, PRICE, value=LIST_FEE)

        assert listing.active is True
        assert [type(e) for e in recorded] == [ListingCreated]
