"""acp-bridge agents — list the known agent adapters."""

from __future__ import annotations

from pathlib import Path

import click

from acp_bridge.agent.adapters import AGENT_NAMES, build_descriptor
from acp_bridge.config.parser import ConfigError, load_settings


@click.command()
@click.option(
    "-f", "--file", "config_file", type=click.Path(), help="Config file path."
)
def agents(config_file: str | None) -> None:
    """List agent adapters and how each one is invoked."""
    try:
        settings = load_settings(Path(config_file) if config_file else None)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    for name in AGENT_NAMES:
        descriptor = build_descriptor(settings, name)
        marker = "*" if name == settings.agent else " "
        acp = " ".join([descriptor.executable, *descriptor.acp_args])
        chat = " ".join([descriptor.executable, *descriptor.chat_args])
        click.echo(f"{marker} {name}")
        click.echo(f"    acp:  {acp}")
        click.echo(f"    chat: {chat}")
