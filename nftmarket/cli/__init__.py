"""nftmarket CLI — Typer-based command-line interface.

Provides the ``nftmarket`` command with subcommands for running the demo
scenario and inspecting, verifying and projecting the event journal.

All output uses Rich for formatted terminal display.
"""
