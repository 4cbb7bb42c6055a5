"""Root CLI group and version flag."""

import signal

import click

# Keep a closed stdout pipe from killing the process mid-echo.
if hasattr(signal, "SIGPIPE"):
    signal.signal(signal.SIGPIPE, signal.SIG_IGN)

from acp_bridge import __version__
from acp_bridge.commands.agents import agents
from acp_bridge.commands.ask import ask
from acp_bridge.commands.serve import serve


@click.group()
@click.version_option(version=__version__, prog_name="acp-bridge")
def cli() -> None:
    """acp-bridge — chat completions served by command-line coding agents."""


cli.add_command(serve)
cli.add_command(ask)
cli.add_command(agents)
