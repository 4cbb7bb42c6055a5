"""Shared helper functions for spawning agent processes."""

from __future__ import annotations

import asyncio
import contextlib
import os
from collections.abc import Sequence

from acp_bridge.agent.descriptor import AgentDescriptor
from acp_bridge.config.models import AgentConfig

#: Seconds to wait for a killed process to be reaped.
_KILL_WAIT = 3.0


def format_stderr_preview(stderr_text: str, max_lines: int = 5) -> str:
    """Extract and format the last N non-empty lines from stderr output."""
    lines = [line for line in stderr_text.split("\n") if line.strip()]
    last = lines[-max_lines:] if len(lines) > max_lines else lines
    return "\n  ".join(last)


def agent_command(
    descriptor: AgentDescriptor, config: AgentConfig, args: Sequence[str]
) -> list[str]:
    """argv for *descriptor*; ``config.cli_path`` overrides the executable."""
    return [config.cli_path or descriptor.executable, *args]


def agent_environment(descriptor: AgentDescriptor) -> dict[str, str]:
    """The current environment overlaid with the descriptor's variables."""
    env = dict(os.environ)
    env.update(descriptor.environment())
    return env


async def kill_process(proc: asyncio.subprocess.Process) -> None:
    """Kill *proc* if it is still running and reap it."""
    if proc.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
    with contextlib.suppress(ProcessLookupError, TimeoutError):
        await asyncio.wait_for(proc.wait(), timeout=_KILL_WAIT)
