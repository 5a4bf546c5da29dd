"""Main Typer application — imports and registers all CLI commands.

Entry point: ``nftmarket`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer

from nftmarket.cli.commands.demo import demo_cmd
from nftmarket.cli.commands.journal_cmd import events_cmd, snapshot_cmd, verify_cmd
from nftmarket.config import settings
from nftmarket.core.production_guard import enforce_production_constraints

app = typer.Typer(
    name="nftmarket",
    help="nftmarket: fixed-price NFT marketplace ledger.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def configure(
    log_level: str = typer.Option(
        None, "--log-level", help="Override NFTMARKET_LOG_LEVEL for this command."
    ),
) -> None:
    """Configure logging and check production settings before any command."""
    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    enforce_production_constraints(settings)


app.command(name="demo", help="List, sell and withdraw with in-memory collaborators.")(demo_cmd)
app.command(name="events", help="Show journaled events for a marketplace.")(events_cmd)
app.command(name="verify", help="Verify the journal hash chain.")(verify_cmd)
app.command(name="snapshot", help="Rebuild listings from the journal.")(snapshot_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
