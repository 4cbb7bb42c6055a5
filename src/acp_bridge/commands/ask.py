"""acp-bridge ask — send one prompt to the agent and print the answer."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click
from pydantic import ValidationError

from acp_bridge.agent.adapters import AGENT_NAMES
from acp_bridge.client import AcpClient
from acp_bridge.config.parser import ConfigError, load_settings
from acp_bridge.errors import BridgeError
from acp_bridge.session.models import Message


@click.command()
@click.argument("prompt", nargs=-1)
@click.option(
    "-f", "--file", "config_file", type=click.Path(), help="Config file path."
)
@click.option(
    "--agent",
    "agent_name",
    type=click.Choice(AGENT_NAMES, case_sensitive=False),
    default=None,
    help="Agent adapter (default: $ACP_AGENT).",
)
@click.option("--timeout", type=float, default=None, help="Seconds to wait for the answer.")
@click.option("-s", "--system", "system_prompt", type=str, default=None, help="System prompt.")
def ask(
    prompt: tuple[str, ...],
    config_file: str | None,
    agent_name: str | None,
    timeout: float | None,
    system_prompt: str | None,
) -> None:
    """Send PROMPT (or stdin when omitted) and print the response."""
    text = " ".join(prompt).strip() or click.get_text_stream("stdin").read().strip()
    if not text:
        click.echo("Error: No prompt provided.", err=True)
        raise SystemExit(1)

    try:
        settings = load_settings(Path(config_file) if config_file else None)
        settings = settings.with_overrides(agent=agent_name, timeout_secs=timeout)
        client = AcpClient.from_settings(settings)
    except (ConfigError, ValidationError, BridgeError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    try:
        if system_prompt:
            messages = [Message.system(system_prompt), Message.user(text)]
            answer = asyncio.run(client.chat_completion(messages))
        else:
            answer = asyncio.run(client.send_prompt(text))
    except BridgeError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    click.echo(answer)
