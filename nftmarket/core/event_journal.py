"""Append-only, hash-chained event journal backed by SQLite.

The journal records every event the marketplace publishes.  Listing
projections are rebuilt from it, so it must be tamper-evident.

Design:
- Append-only: only `append()` writes; no update, no delete.
- Hash-chained per marketplace: each entry includes SHA-256 of the previous.
- WAL journal mode for concurrent readers.
- entry_hash UNIQUE constraint for tamper detection.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path

from nftmarket.core.event_bus import EventBus
from nftmarket.core.hasher import compute_entry_hash
from nftmarket.models.events import MarketEvent
from nftmarket.models.journal import JournalEntry, JournalQuery

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_JOURNAL = """
CREATE TABLE IF NOT EXISTS event_journal (
    id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    entry_id              TEXT NOT NULL UNIQUE,
    marketplace           TEXT NOT NULL,
    event_id              TEXT NOT NULL UNIQUE,
    event_kind            TEXT NOT NULL,
    asset_registry        TEXT NOT NULL DEFAULT '',
    asset_id              INTEGER,
    event_json            TEXT NOT NULL,
    timestamp_utc         TEXT NOT NULL,
    schema_version        TEXT NOT NULL,
    previous_entry_hash   TEXT NOT NULL DEFAULT '',
    entry_hash            TEXT NOT NULL UNIQUE
);
"""

_CREATE_IDX_MARKET = """
CREATE INDEX IF NOT EXISTS idx_marketplace ON event_journal(marketplace, id);
"""

_CREATE_IDX_ASSET = """
CREATE INDEX IF NOT EXISTS idx_asset ON event_journal(marketplace, asset_registry, asset_id, id);
"""


class JournalIntegrityError(RuntimeError):
    """Raised when the hash chain is broken."""


class EventJournal:
    """Append-only, hash-chained journal of marketplace events.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_JOURNAL)
            conn.execute(_CREATE_IDX_MARKET)
            conn.execute(_CREATE_IDX_ASSET)
            conn.commit()

    def attach(self, bus: EventBus) -> None:
        """Subscribe to every event published on *bus*."""
        bus.subscribe_all(self.record)

    # ------------------------------------------------------------------
    # Core: append-only write
    # ------------------------------------------------------------------

    def record(self, event: MarketEvent) -> JournalEntry:
        """Wrap a published event in a journal entry and append it."""
        return self.append(
            JournalEntry(
                marketplace=event.marketplace,
                event_id=event.event_id,
                event_kind=event.event_kind.value,
                asset_registry=getattr(event, "asset_registry", ""),
                asset_id=getattr(event, "asset_id", None),
                event_json=event.model_dump(mode="json"),
                timestamp_utc=event.timestamp_utc,
            )
        )

    def append(self, entry: JournalEntry) -> JournalEntry:
        """Append an entry, computing its hash chain link.

        Returns the entry with `previous_entry_hash` and `entry_hash` set.
        This is the ONLY write method. There is no update or delete.
        """
        previous_hash = self._get_latest_hash(entry.marketplace)

        entry_dict = entry.model_dump(mode="json")
        entry_dict["previous_entry_hash"] = previous_hash
        entry_dict["entry_hash"] = ""

        sealed = entry.model_copy(
            update={
                "previous_entry_hash": previous_hash,
                "entry_hash": compute_entry_hash(entry_dict),
            }
        )
        self._insert(sealed)
        logger.debug("Journaled %s (%s).", sealed.event_kind, sealed.entry_hash[:12])
        return sealed

    def _insert(self, entry: JournalEntry) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO event_journal
                    (entry_id, marketplace, event_id, event_kind, asset_registry,
                     asset_id, event_json, timestamp_utc, schema_version,
                     previous_entry_hash, entry_hash)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.entry_id,
                    entry.marketplace,
                    entry.event_id,
                    entry.event_kind,
                    entry.asset_registry,
                    entry.asset_id,
                    json.dumps(entry.event_json, sort_keys=True),
                    entry.timestamp_utc.isoformat(),
                    entry.schema_version,
                    entry.previous_entry_hash,
                    entry.entry_hash,
                ),
            )
            conn.commit()

    def _get_latest_hash(self, marketplace: str) -> str:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT entry_hash FROM event_journal WHERE marketplace = ? "
                "ORDER BY id DESC LIMIT 1",
                (marketplace,),
            ).fetchone()
        return row[0] if row else ""

    # ------------------------------------------------------------------
    # Query methods (read-only)
    # ------------------------------------------------------------------

    def get_latest(self, marketplace: str) -> JournalEntry | None:
        """Return the most recent entry for a marketplace, or None."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM event_journal WHERE marketplace = ? ORDER BY id DESC LIMIT 1",
                (marketplace,),
            ).fetchone()
        return self._row_to_entry(row) if row else None

    def get_entries(self, marketplace: str) -> list[JournalEntry]:
        """Return all entries for a marketplace, oldest first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM event_journal WHERE marketplace = ? ORDER BY id ASC",
                (marketplace,),
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def get_asset_history(
        self, marketplace: str, asset_registry: str, asset_id: int
    ) -> list[JournalEntry]:
        """Return every entry touching one asset identity, oldest first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM event_journal WHERE marketplace = ? "
                "AND asset_registry = ? AND asset_id = ? ORDER BY id ASC",
                (marketplace, asset_registry, asset_id),
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def query(self, query: JournalQuery) -> list[JournalEntry]:
        """Page through entries matching the optional filters in *query*."""
        clauses: list[str] = []
        params: list[object] = []
        if query.marketplace is not None:
            clauses.append("marketplace = ?")
            params.append(query.marketplace)
        if query.asset_registry is not None:
            clauses.append("asset_registry = ?")
            params.append(query.asset_registry)
        if query.asset_id is not None:
            clauses.append("asset_id = ?")
            params.append(query.asset_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.extend([query.limit, query.offset])
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM event_journal {where} ORDER BY id ASC LIMIT ? OFFSET ?",
                params,
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def get_all_marketplaces(self) -> list[str]:
        """Return every marketplace address with at least one entry."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT marketplace FROM event_journal GROUP BY marketplace ORDER BY MIN(id)"
            ).fetchall()
        return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Chain verification
    # ------------------------------------------------------------------

    def verify_chain(self, marketplace: str) -> bool:
        """Verify the hash chain integrity for a marketplace.

        Returns True if the chain is valid, raises JournalIntegrityError
        otherwise.
        """
        prev_hash = ""
        for entry in self.get_entries(marketplace):
            if entry.previous_entry_hash != prev_hash:
                raise JournalIntegrityError(
                    f"Chain broken at entry {entry.entry_id}: "
                    f"expected previous_hash={prev_hash!r}, "
                    f"got {entry.previous_entry_hash!r}"
                )

            expected_hash = compute_entry_hash(entry.model_dump(mode="json"))
            if entry.entry_hash != expected_hash:
                raise JournalIntegrityError(
                    f"Tampered entry {entry.entry_id}: "
                    f"expected hash={expected_hash!r}, "
                    f"got {entry.entry_hash!r}"
                )

            prev_hash = entry.entry_hash

        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_entry(row: tuple) -> JournalEntry:
        (
            _id,
            entry_id,
            marketplace,
            event_id,
            event_kind,
            asset_registry,
            asset_id,
            event_json,
            timestamp_utc,
            schema_version,
            previous_entry_hash,
            entry_hash,
        ) = row
        return JournalEntry(
            entry_id=entry_id,
            marketplace=marketplace,
            event_id=event_id,
            event_kind=event_kind,
            asset_registry=asset_registry,
            asset_id=asset_id,
            event_json=json.loads(event_json),
            timestamp_utc=timestamp_utc,
            schema_version=schema_version,
            previous_entry_hash=previous_entry_hash,
            entry_hash=entry_hash,
        )
