"""Tests for the EventJournal — append-only, hash-chained, queryable."""

from __future__ import annotations

from nftmarket.core.event_bus import EventBus
from nftmarket.core.event_journal import EventJournal
from nftmarket.models.events import FeesWithdrawn, ListingDelisted, ListingPriceUpdated
from nftmarket.models.journal import JournalQuery


def _delisted(marketplace: str = "0xm", asset_id: int = 1) -> ListingDelisted:
    return ListingDelisted(
        marketplace=marketplace, asset_registry="0xreg", asset_id=asset_id, seller="0xs"
    )


class TestEventJournal:
    def test_record_sets_entry_hash(self, journal: EventJournal):
        entry = journal.record(_delisted())
        assert entry.entry_hash != ""
        assert entry.previous_entry_hash == ""

    def test_hash_chain_links(self, journal: EventJournal):
        e1 = journal.record(_delisted(asset_id=1))
        e2 = journal.record(_delisted(asset_id=2))
        assert e2.previous_entry_hash == e1.entry_hash

    def test_chains_are_per_marketplace(self, journal: EventJournal):
        journal.record(_delisted("0xa"))
        first_b = journal.record(_delisted("0xb"))
        assert first_b.previous_entry_hash == ""

    def test_verify_chain_valid(self, journal: EventJournal):
        for i in range(3):
            journal.record(_delisted(asset_id=i))
        assert journal.verify_chain("0xm") is True

    def test_verify_chain_empty(self, journal: EventJournal):
        assert journal.verify_chain("0xnothing") is True

    def test_entries_round_trip(self, journal: EventJournal):
        event = _delisted()
        journal.record(event)
        [entry] = journal.get_entries("0xm")
        assert entry.event_id == event.event_id
        assert entry.event_kind == "listing_delisted"
        assert entry.asset_registry == "0xreg"
        assert entry.asset_id == 1
        assert entry.event_json["seller"] == "0xs"

    def test_fee_events_have_no_asset(self, journal: EventJournal):
        entry = journal.record(FeesWithdrawn(marketplace="0xm", administrator="0xadmin", amount=5))
        assert entry.asset_id is None
        assert entry.asset_registry == ""
        assert journal.verify_chain("0xm") is True

    def test_get_latest(self, journal: EventJournal):
        journal.record(_delisted(asset_id=1))
        e2 = journal.record(_delisted(asset_id=2))
        latest = journal.get_latest("0xm")
        assert latest is not None
        assert latest.entry_id == e2.entry_id

    def test_get_latest_missing(self, journal: EventJournal):
        assert journal.get_latest("0xnothing") is None

    def test_asset_history(self, journal: EventJournal):
        journal.record(_delisted(asset_id=1))
        journal.record(_delisted(asset_id=2))
        journal.record(
            ListingPriceUpdated(marketplace="0xm", asset_registry="0xreg", asset_id=1, new_price=9)
        )
        history = journal.get_asset_history("0xm", "0xreg", 1)
        assert [e.event_kind for e in history] == ["listing_delisted", "listing_price_updated"]

    def test_query_paging(self, journal: EventJournal):
        for i in range(5):
            journal.record(_delisted(asset_id=i))
        page = journal.query(JournalQuery(marketplace="0xm", limit=2, offset=1))
        assert [e.asset_id for e in page] == [1, 2]

    def test_query_by_asset(self, journal: EventJournal):
        journal.record(_delisted(asset_id=1))
        journal.record(_delisted(asset_id=2))
        result = journal.query(JournalQuery(asset_registry="0xreg", asset_id=2))
        assert [e.asset_id for e in result] == [2]

    def test_all_marketplaces(self, journal: EventJournal):
        journal.record(_delisted("0xb"))
        journal.record(_delisted("0xa"))
        journal.record(_delisted("0xb"))
        assert journal.get_all_marketplaces() == ["0xb", "0xa"]

    def test_attach_journals_published_events(self, journal: EventJournal):
        bus = EventBus()
        journal.attach(bus)
        sealed = bus.publish(_delisted())
        [entry] = journal.get_entries("0xm")
        assert entry.event_json["payload_hash"] == sealed.payload_hash

    def test_persists_across_instances(self, journal: EventJournal, tmp_path):
        journal.record(_delisted())
        reopened = EventJournal(tmp_path / "journal.db")
        assert len(reopened.get_entries("0xm")) == 1
        assert reopened.verify_chain("0xm") is True
