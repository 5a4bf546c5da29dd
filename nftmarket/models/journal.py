"""Event journal entry model (append-only, hash-chained).

The journal is the durable record of every published marketplace event:
- Append-only (no UPDATE, no DELETE)
- Hash-chained per marketplace (each entry links to the previous one)
- One entry per committed operation
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JournalEntry(BaseModel):
    """A single sealed entry in the event journal."""

    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    marketplace: str
    event_id: str
    event_kind: str
    asset_registry: str = ""  # empty for fee administration events
    asset_id: int | None = None
    event_json: dict[str, Any] = {}  # full event payload, mode="json"
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    schema_version: str = "2026-10"
    previous_entry_hash: str = ""
    entry_hash: str = ""  # computed on append, seals this entry


class JournalQuery(BaseModel):
    """Parameters for paging through the journal."""

    model_config = ConfigDict(frozen=True)

    marketplace: str | None = None
    asset_registry: str | None = None
    asset_id: int | None = None
    limit: int = 100
    offset: int = 0
