"""Event bus — validates, seals and routes marketplace events.

Subscribers are indexers, journals and UIs.  The marketplace only hands
events to the bus after an operation has committed.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable

from nftmarket.core.hasher import canonical_json_bytes, compute_payload_hash
from nftmarket.models.events import EVENT_TYPE_MAP, EventKind, MarketEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[MarketEvent], None]


class EventValidationError(ValueError):
    """Raised when a raw event fails validation."""


class EventBus:
    """Seals and dispatches marketplace events.

    Every published event is:
    1. Stamped with its payload_hash
    2. Routed to handlers registered for its kind
    3. Routed to catch-all handlers
    """

    def __init__(self) -> None:
        self._handlers: dict[EventKind, list[EventHandler]] = {
            kind: [] for kind in EventKind
        }
        self._catch_all: list[EventHandler] = []

    def subscribe(self, kind: EventKind, handler: EventHandler) -> None:
        """Register a handler for a specific event kind."""
        self._handlers[kind].append(handler)

    def subscribe_all(self, handler: EventHandler) -> None:
        """Register a handler that receives every event."""
        self._catch_all.append(handler)

    # ------------------------------------------------------------------
    # Publish (hash + route)
    # ------------------------------------------------------------------

    def prepare(self, event: MarketEvent) -> MarketEvent:
        """Return the event with payload_hash set."""
        payload_fields = event.model_dump(
            mode="json",
            exclude={"payload_hash", "event_id", "timestamp_utc"},
        )
        return event.model_copy(
            update={"payload_hash": compute_payload_hash(payload_fields)}
        )

    def publish(self, event: MarketEvent) -> MarketEvent:
        """Seal and dispatch an event.  Returns the sealed event.

        A failing handler is logged and skipped; every other handler still
        receives the event.
        """
        prepared = self.prepare(event)
        logger.debug(
            "Publishing %s event %s.", prepared.event_kind.value, prepared.event_id
        )
        handlers = [*self._handlers.get(prepared.event_kind, []), *self._catch_all]
        for handler in handlers:
            try:
                handler(prepared)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "Handler %s failed for %s event %s.",
                    getattr(handler, "__qualname__", repr(handler)),
                    prepared.event_kind.value,
                    prepared.event_id,
                )
        return prepared

    # ------------------------------------------------------------------
    # Receive (deserialize + validate)
    # ------------------------------------------------------------------

    def receive(self, raw_json: bytes | str) -> MarketEvent:
        """Deserialize and validate a raw JSON event.

        Picks the model from ``event_kind`` and validates all fields.
        """
        if isinstance(raw_json, bytes):
            raw_json = raw_json.decode("utf-8")

        try:
            data = json.loads(raw_json)
        except json.JSONDecodeError as exc:
            raise EventValidationError(f"Invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise EventValidationError(
                f"Event must be a JSON object, got {type(data).__name__}"
            )

        kind_str = data.get("event_kind")
        if not kind_str:
            raise EventValidationError("Missing event_kind field")

        try:
            kind = EventKind(kind_str)
        except ValueError as exc:
            raise EventValidationError(f"Unknown event_kind: {kind_str!r}") from exc

        try:
            return EVENT_TYPE_MAP[kind].model_validate(data)
        except Exception as exc:
            raise EventValidationError(f"Event validation failed: {exc}") from exc

    @staticmethod
    def serialize(event: MarketEvent) -> bytes:
        """Serialize an event to canonical JSON bytes."""
        return canonical_json_bytes(event.model_dump(mode="json"))
