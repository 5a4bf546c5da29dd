"""Rich terminal renderer for marketplace snapshots.

Color scheme
------------
- green  : listed (purchasable)
- dim    : not listed
- cyan   : addresses
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from nftmarket.models.events import EventKind

if TYPE_CHECKING:
    from nftmarket.models.journal import JournalEntry
    from nftmarket.monitor.projection import MarketSnapshot


def short(address: str) -> str:
    """Abbreviate a 0x address for table display."""
    if address.startswith("0x") and len(address) > 12:
        return f"{address[:6]}…{address[-4:]}"
    return address


class MarketRenderer:
    """Renders snapshots and journal entries as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render_snapshot(self, snapshot: MarketSnapshot) -> Panel:
        """Render a MarketSnapshot as a Panel with a listing table and summary."""
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Registry")
        table.add_column("Asset", justify="right")
        table.add_column("State", justify="center")
        table.add_column("Price", justify="right")
        table.add_column("Seller")
        table.add_column("Custodian")
        table.add_column("Sales", justify="right")

        for view in snapshot.listings:
            listing = view.listing
            state = "[green]LISTED[/green]" if listing.active else "[dim]not listed[/dim]"
            table.add_row(
                f"[cyan]{short(listing.asset_registry)}[/cyan]",
                str(listing.asset_id),
                state,
                str(listing.price),
                short(listing.seller) if listing.active else "[dim]-[/dim]",
                short(listing.custodian),
                str(view.times_sold),
            )

        fee = "unknown" if snapshot.listing_fee is None else str(snapshot.listing_fee)
        chain = "[green]valid[/green]" if snapshot.chain_valid else "[bold red]BROKEN[/bold red]"
        summary = "  |  ".join(
            [
                f"[bold]Active:[/bold] {len(snapshot.active_listings)}/{len(snapshot.listings)}",
                f"[bold]Volume:[/bold] {snapshot.sales_volume}",
                f"[bold]Royalties:[/bold] {snapshot.royalties_paid}",
                f"[bold]Retained fees:[/bold] {snapshot.retained_fees}",
                f"[bold]Fee:[/bold] {fee}",
                f"[bold]Chain:[/bold] {chain}",
            ]
        )

        return Panel(
            Group(table, Text(""), Text.from_markup(summary)),
            title=f"[bold]Marketplace {short(snapshot.marketplace)}[/bold]",
            subtitle=f"{snapshot.event_count} events, last "
            f"{snapshot.last_updated.strftime('%Y-%m-%d %H:%M:%S UTC')}",
            border_style="blue",
            padding=(1, 2),
        )

    def render_entries(self, entries: list[JournalEntry]) -> Table:
        """Render journal entries oldest-first."""
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("#", style="dim", justify="right")
        table.add_column("Event")
        table.add_column("Asset")
        table.add_column("Details")
        table.add_column("Hash", style="dim")

        for i, entry in enumerate(entries):
            asset = (
                f"{short(entry.asset_registry)}#{entry.asset_id}"
                if entry.asset_id is not None
                else "[dim]-[/dim]"
            )
            table.add_row(
                str(i),
                entry.event_kind,
                asset,
                self._details(entry),
                entry.entry_hash[:12],
            )
        return table

    @staticmethod
    def _details(entry: JournalEntry) -> str:
        data = entry.event_json
        kind = EventKind(entry.event_kind)
        if kind is EventKind.LISTING_CREATED:
            return f"seller {short(data['seller'])} price {data['price']}"
        if kind is EventKind.LISTING_DELISTED:
            return f"seller {short(data['seller'])}"
        if kind is EventKind.LISTING_PRICE_UPDATED:
            return f"new price {data['new_price']}"
        if kind is EventKind.LISTING_SOLD:
            return (
                f"buyer {short(data['buyer'])} price {data['price']} "
                f"royalty {data['royalty_amount']}"
            )
        if kind is EventKind.LISTING_FEE_UPDATED:
            return f"fee {data['previous_fee']} -> {data['new_fee']}"
        return f"{data['amount']} to {short(data['administrator'])}"

    # ------------------------------------------------------------------
    # Standalone print
    # ------------------------------------------------------------------

    def print_snapshot(self, snapshot: MarketSnapshot) -> None:
        self.console.print(self.render_snapshot(snapshot))

    def print_chain_verification(self, marketplace: str, valid: bool) -> None:
        """Print a chain verification result."""
        if valid:
            self.console.print(
                f"[green]Hash chain for marketplace {marketplace} is valid.[/green]"
            )
        else:
            self.console.print(
                f"[bold red]Hash chain for marketplace {marketplace} is BROKEN![/bold red]"
            )
