"""Canonical hashing helpers for event payloads and the journal chain."""

from __future__ import annotations

import hashlib
import json
from typing import Any


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact.

    - sorted keys
    - no whitespace separators (",", ":")
    - ensure_ascii=True
    - UTF-8 encoding
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def compute_payload_hash(payload: dict[str, Any]) -> str:
    """SHA-256 of an event's content fields.

    Callers strip the identity and timing fields first, so two events
    describing the same transition hash identically.
    """
    return sha256_hex(canonical_json_bytes(payload))


def compute_entry_hash(entry_dict: dict[str, Any]) -> str:
    """SHA-256 of a journal entry (excluding the entry_hash field itself).

    This is the seal that makes each entry tamper-evident.
    """
    d = {k: v for k, v in entry_dict.items() if k != "entry_hash"}
    return sha256_hex(canonical_json_bytes(d))
