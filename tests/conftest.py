"""Shared test fixtures for nftmarket."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from _constants import (
    ADMIN,
    ASSET_ID,
    BUYER,
    CREATOR,
    LIST_FEE,
    MARKET,
    PRICE,
    REGISTRY,
    ROYALTY_BPS,
    SELLER,
    STARTING_BALANCE,
    STRANGER,
)
from nftmarket.collaborators.memory import InMemoryAssetRegistry, InMemoryBank
from nftmarket.core.event_bus import EventBus
from nftmarket.core.event_journal import EventJournal
from nftmarket.core.marketplace import Marketplace
from nftmarket.models.events import MarketEvent


@pytest.fixture
def bank() -> InMemoryBank:
    """Provide a bank where every test party starts with one ether."""
    return InMemoryBank(
        {party: STARTING_BALANCE for party in (ADMIN, SELLER, BUYER, STRANGER)}
    )


@pytest.fixture
def registry() -> InMemoryAssetRegistry:
    """Provide a registry paying a 10% royalty to the creator."""
    return InMemoryAssetRegistry(REGISTRY, royalty_receiver=CREATOR, royalty_bps=ROYALTY_BPS)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def published(bus: EventBus) -> list[MarketEvent]:
    """Collect every event published on the test bus."""
    events: list[MarketEvent] = []
    bus.subscribe_all(events.append)
    return events


@pytest.fixture
def market(bank: InMemoryBank, registry: InMemoryAssetRegistry, bus: EventBus) -> Marketplace:
    """Provide a fresh Marketplace wired to the in-memory collaborators."""
    return Marketplace(MARKET, ADMIN, bank, [registry], listing_fee=LIST_FEE, bus=bus)


@pytest.fixture
def journal(tmp_path: Path) -> EventJournal:
    """Provide a fresh EventJournal backed by a temp SQLite database."""
    return EventJournal(tmp_path / "journal.db")


@pytest.fixture
def mint_and_approve(registry: InMemoryAssetRegistry) -> Callable[..., int]:
    """Factory fixture: mint an asset to *owner* and approve the marketplace."""

    def _factory(asset_id: int = ASSET_ID, owner: str = SELLER) -> int:
        registry.mint(owner, asset_id)
        registry.approve(owner, MARKET, asset_id)
        return asset_id

    return _factory


@pytest.fixture
def listed(market: Marketplace, mint_and_approve: Callable[..., int]) -> int:
    """Asset #10 listed by SELLER at 300 wei.  Returns the asset id."""
    asset_id = mint_and_approve()
    market.create_listing(SELLER, REGISTRY, asset_id, PRICE, value=LIST_FEE)
    return asset_id
