"""acp-bridge serve — run the OpenAI-compatible HTTP server."""

from __future__ import annotations

import logging
from pathlib import Path

import click
import uvicorn
from pydantic import ValidationError

from acp_bridge.acp.server_manager import get_server_manager
from acp_bridge.agent.adapters import AGENT_NAMES
from acp_bridge.client import AcpClient
from acp_bridge.config.parser import ConfigError, load_settings
from acp_bridge.errors import BridgeError
from acp_bridge.http.app import create_app

logger = logging.getLogger(__name__)


@click.command()
@click.option(
    "-f", "--file", "config_file", type=click.Path(), help="Config file path."
)
@click.option("--host", type=str, default=None, help="Bind address (default: $HOST).")
@click.option("--port", type=int, default=None, help="Listen port (default: $PORT).")
@click.option(
    "--agent",
    "agent_name",
    type=click.Choice(AGENT_NAMES, case_sensitive=False),
    default=None,
    help="Agent adapter (default: $ACP_AGENT).",
)
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Seconds to wait for each answer (default: $TIMEOUT_SECS).",
)
@click.option(
    "--warm",
    is_flag=True,
    help="Keep a persistent ACP process running while serving.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def serve(
    config_file: str | None,
    host: str | None,
    port: int | None,
    agent_name: str | None,
    timeout: float | None,
    warm: bool,
    verbose: bool,
) -> None:
    """Serve chat completions backed by a command-line agent."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(Path(config_file) if config_file else None)
        settings = settings.with_overrides(
            host=host, port=port, agent=agent_name, timeout_secs=timeout
        )
        client = AcpClient.from_settings(settings)
    except (ConfigError, ValidationError, BridgeError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    manager = get_server_manager(settings) if warm else None
    app = create_app(client, manager)

    logger.info(
        "serving %s on %s:%d (timeout %.0fs)",
        client.descriptor.name,
        settings.host,
        settings.port,
        client.config.timeout,
    )
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="debug" if verbose else "info",
    )
