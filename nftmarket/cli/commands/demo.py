"""``nftmarket demo`` — list, buy and withdraw against in-memory collaborators.

Mints asset #10 to a seller, lists it for 300 wei, sells it to a buyer
with a 10% royalty to the creator, withdraws the listing fee, and shows
balances plus the journal projection after each step.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from nftmarket.collaborators.memory import InMemoryAssetRegistry, InMemoryBank
from nftmarket.config import settings
from nftmarket.core.errors import MarketError
from nftmarket.core.event_bus import EventBus
from nftmarket.core.event_journal import EventJournal
from nftmarket.core.marketplace import Marketplace
from nftmarket.monitor.projection import ListingProjection
from nftmarket.monitor.renderer import MarketRenderer, short

console = Console()

ADMIN = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
SELLER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
BUYER = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"
CREATOR = "0x90F79bf6EB2c4f937B3d3A3A5bbF0bB51b8Db2e2"
REGISTRY = "0x5FbDB2315678afecb367f032d93F642f64180aa3"

ONE_ETHER = 10**18


def demo_cmd(
    price: int = typer.Option(300, "--price", "-p", help="Asking price in wei."),
    royalty_bps: int = typer.Option(
        1000, "--royalty-bps", help="Creator royalty in basis points."
    ),
    asset_id: int = typer.Option(10, "--asset", help="Asset id to mint and list."),
    journal_db: str = typer.Option(
        ".nftmarket/demo-journal.db",
        "--journal",
        help="Path to the journal SQLite database (uses demo-specific default).",
    ),
) -> None:
    """Run the list -> buy -> withdraw scenario and show the results."""
    bus = EventBus()
    journal = EventJournal(Path(journal_db))
    journal.attach(bus)

    bank = InMemoryBank({party: ONE_ETHER for party in (SELLER, BUYER)})
    registry = InMemoryAssetRegistry(REGISTRY, royalty_receiver=CREATOR, royalty_bps=royalty_bps)
    market = Marketplace(
        settings.marketplace_address,
        ADMIN,
        bank,
        [registry],
        listing_fee=settings.default_listing_fee,
        bus=bus,
    )
    renderer = MarketRenderer(console=console)
    projection = ListingProjection(journal)
    parties = {"admin": ADMIN, "seller": SELLER, "buyer": BUYER, "creator": CREATOR}
    start = {name: bank.balance_of(addr) for name, addr in parties.items()}

    console.print()
    console.print(
        Panel(
            "[bold]nftmarket demo[/bold]\n\n"
            f"Listing asset #{asset_id} for {price} wei with a "
            f"{royalty_bps / 100:g}% creator royalty.",
            border_style="cyan",
            padding=(1, 2),
        )
    )

    try:
        registry.mint(SELLER, asset_id)
        registry.approve(SELLER, market.address, asset_id)
        market.create_listing(
            SELLER, REGISTRY, asset_id, price, value=market.get_listing_fee()
        )
        console.print(f"[cyan]>>> Listed[/cyan] asset #{asset_id} for {price} wei")
        market.execute_sale(BUYER, REGISTRY, asset_id, value=price)
        console.print(f"[cyan]>>> Sold[/cyan] asset #{asset_id} to {short(BUYER)}")
        withdrawn = market.withdraw(ADMIN)
        console.print(f"[cyan]>>> Withdrew[/cyan] {withdrawn} wei of listing fees")
    except MarketError as exc:
        console.print(f"[bold red]Rejected:[/bold red] {exc.reason}")
        raise typer.Exit(code=1)

    table = Table(title="Balance changes (wei)", header_style="bold cyan")
    table.add_column("Party")
    table.add_column("Address", style="cyan")
    table.add_column("Change", justify="right")
    for name, addr in parties.items():
        delta = bank.balance_of(addr) - start[name]
        style = "green" if delta > 0 else "red" if delta < 0 else "dim"
        table.add_row(name, short(addr), f"[{style}]{delta:+d}[/{style}]")
    console.print()
    console.print(table)

    console.print(
        f"\nCustody of asset #{asset_id}: [cyan]{short(registry.owner_of(asset_id))}[/cyan]"
    )
    console.print()
    renderer.print_snapshot(projection.snapshot(market.address))
