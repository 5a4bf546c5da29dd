"""Read-only marketplace views rebuilt from the event journal.

Modules
-------
projection
    ``ListingProjection`` replays the journal into a frozen
    ``MarketSnapshot``, the way an off-system indexer would.
renderer
    ``MarketRenderer`` turns snapshots and journal entries into Rich
    renderables for terminal display.
"""
