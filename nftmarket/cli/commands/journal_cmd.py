"""``nftmarket events|verify|snapshot`` — read-only journal commands.

All three open an existing journal; none of them writes to it.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from nftmarket.config import settings
from nftmarket.core.event_journal import EventJournal, JournalIntegrityError
from nftmarket.models.journal import JournalQuery
from nftmarket.monitor.projection import ListingProjection
from nftmarket.monitor.renderer import MarketRenderer

console = Console()

_JOURNAL_OPTION = typer.Option(
    None,
    "--journal",
    "-j",
    help="Path to the journal SQLite database (defaults to NFTMARKET_JOURNAL_PATH).",
)
_MARKET_OPTION = typer.Option(
    None,
    "--marketplace",
    "-m",
    help="Marketplace address (defaults to NFTMARKET_MARKETPLACE_ADDRESS).",
)


def _open_journal(journal_db: str | None, marketplace: str) -> EventJournal:
    db_path = Path(journal_db) if journal_db else settings.journal_path
    if not db_path.exists():
        console.print(f"[bold red]Journal not found:[/bold red] {db_path}")
        console.print("[dim]Record some events first with: nftmarket demo[/dim]")
        raise typer.Exit(code=1)

    journal = EventJournal(db_path)
    if journal.get_latest(marketplace) is None:
        console.print(f"[bold red]No events for marketplace:[/bold red] {marketplace}")
        known = journal.get_all_marketplaces()
        if known:
            console.print("\n[bold]Known marketplaces:[/bold]")
            for address in known[:10]:
                console.print(f"  [cyan]{address}[/cyan]")
        raise typer.Exit(code=1)
    return journal


def events_cmd(
    marketplace: str = _MARKET_OPTION,
    journal_db: str = _JOURNAL_OPTION,
    asset_registry: str = typer.Option(None, "--registry", help="Only this asset registry."),
    asset_id: int = typer.Option(None, "--asset", help="Only this asset id."),
    limit: int = typer.Option(100, "--limit", "-n", help="Maximum entries to show."),
    offset: int = typer.Option(0, "--offset", help="Entries to skip."),
) -> None:
    """Print journaled events for a marketplace, oldest first."""
    marketplace = marketplace or settings.marketplace_address
    journal = _open_journal(journal_db, marketplace)
    entries = journal.query(
        JournalQuery(
            marketplace=marketplace,
            asset_registry=asset_registry,
            asset_id=asset_id,
            limit=limit,
            offset=offset,
        )
    )
    if not entries:
        console.print("[dim]No matching events.[/dim]")
        return
    console.print(MarketRenderer(console=console).render_entries(entries))


def verify_cmd(
    marketplace: str = _MARKET_OPTION,
    journal_db: str = _JOURNAL_OPTION,
) -> None:
    """Verify the journal hash chain for a marketplace."""
    marketplace = marketplace or settings.marketplace_address
    journal = _open_journal(journal_db, marketplace)
    renderer = MarketRenderer(console=console)
    try:
        valid = journal.verify_chain(marketplace)
    except JournalIntegrityError as exc:
        console.print(f"[bold red]Chain verification failed:[/bold red] {exc}")
        renderer.print_chain_verification(marketplace, False)
        raise typer.Exit(code=1)
    renderer.print_chain_verification(marketplace, valid)


def snapshot_cmd(
    marketplace: str = _MARKET_OPTION,
    journal_db: str = _JOURNAL_OPTION,
) -> None:
    """Rebuild listings from the journal and print them."""
    marketplace = marketplace or settings.marketplace_address
    journal = _open_journal(journal_db, marketplace)
    snapshot = ListingProjection(journal).snapshot(marketplace)
    MarketRenderer(console=console).print_snapshot(snapshot)
