"""Subcommands of the ``acp-bridge`` CLI."""
