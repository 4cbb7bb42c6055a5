"""Fallback invoker — run the agent once in non-interactive chat mode.

Used only when a protocol exchange completes without any text.  The
prompt goes to the process on stdin; the answer is whatever it prints.
"""

from __future__ import annotations

import asyncio
import logging

from acp_bridge.agent.descriptor import AgentDescriptor
from acp_bridge.agent.helpers import (
    agent_command,
    agent_environment,
    format_stderr_preview,
    kill_process,
)
from acp_bridge.config.models import AgentConfig
from acp_bridge.errors import (
    AgentConnectionError,
    AgentTimeoutError,
    ProtocolError,
    SpawnError,
)

logger = logging.getLogger(__name__)


async def run_fallback(
    descriptor: AgentDescriptor,
    config: AgentConfig,
    prompt: str,
) -> str:
    """Run ``executable chat_args... [--agent mode]`` with *prompt* on stdin.

    Returns:
        The post-processed stdout text.

    Raises:
        SpawnError: The executable could not be started.
        AgentTimeoutError: No exit within ``config.timeout``.
        AgentConnectionError: Writing the prompt or reading output failed.
        ProtocolError: The output is empty after trimming.
    """
    args = agent_command(descriptor, config, descriptor.chat_args)
    if config.agent_mode:
        args.extend(["--agent", config.agent_mode])
    logger.info("%s: falling back to chat mode", descriptor.name)

    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=agent_environment(descriptor),
            cwd=config.working_dir,
            start_new_session=True,
        )
    except OSError as exc:
        raise SpawnError(f"{args[0]}: {exc}") from exc

    try:
        stdout, stderr = await asyncio.wait_for(
            proc.communicate(input=prompt.encode("utf-8")),
            timeout=config.timeout,
        )
    except TimeoutError as exc:
        logger.warning("%s: chat mode timed out after %.1fs", descriptor.name, config.timeout)
        await kill_process(proc)
        raise AgentTimeoutError(config.timeout) from exc
    except OSError as exc:
        await kill_process(proc)
        raise AgentConnectionError(str(exc)) from exc

    stderr_text = (stderr or b"").decode("utf-8", errors="replace")
    if proc.returncode:
        logger.warning(
            "%s: chat mode exited with code %s:\n  %s",
            descriptor.name,
            proc.returncode,
            format_stderr_preview(stderr_text) or "(no stderr)",
        )

    text = descriptor.process_response((stdout or b"").decode("utf-8", errors="replace"))
    text = text.strip()
    if not text:
        msg = "Empty response from agent"
        raise ProtocolError(msg)
    return text
