"""AcpConnection — one handshake, session and prompt against a fresh agent.

Each exchange spawns a transient agent process, speaks the Agent Client
Protocol over its stdin/stdout, and kills the process when the exchange
ends, successfully or not.  Agent message text streamed during the
exchange lands in the caller's :class:`ResponseCollector`.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any

from acp import PROTOCOL_VERSION, connect_to_agent, text_block
from acp.schema import ClientCapabilities, Implementation

from acp_bridge import __version__
from acp_bridge.acp.collector import ResponseCollector
from acp_bridge.acp.handler import AcpClientHandler
from acp_bridge.agent.descriptor import AgentDescriptor
from acp_bridge.agent.helpers import (
    agent_command,
    agent_environment,
    format_stderr_preview,
    kill_process,
)
from acp_bridge.config.models import AgentConfig
from acp_bridge.errors import (
    AgentTimeoutError,
    ProtocolError,
    SessionError,
    SpawnError,
)

logger = logging.getLogger(__name__)

#: Max bytes per line on the agent's stdout (JSON-RPC frames can be large).
_MAX_LINE_BYTES = 10 * 1024 * 1024

#: Number of stderr lines kept for error messages.
_STDERR_TAIL = 20

CLIENT_NAME = "acp-bridge"


class ExchangeState(str, Enum):
    """Lifecycle of one exchange.  ``FAILED`` and ``COMPLETED`` are terminal."""

    IDLE = "idle"
    SPAWNED = "spawned"
    INITIALIZED = "initialized"
    SESSION_CREATED = "session_created"
    PROMPT_SENT = "prompt_sent"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ExchangeResult:
    """Outcome of a completed exchange.  The text lives in the collector."""

    state: ExchangeState
    remote_session_id: str | None = None
    stop_reason: str | None = None
    agent_name: str | None = None


class AcpConnection:
    """Drives a single protocol exchange with a transient agent process.

    Instances are single-use: build one per prompt, or call
    :meth:`run_session`.
    """

    def __init__(
        self,
        descriptor: AgentDescriptor,
        config: AgentConfig,
        collector: ResponseCollector,
    ) -> None:
        self._descriptor = descriptor
        self._config = config
        self._collector = collector
        self._state = ExchangeState.IDLE
        self._stderr_tail: deque[str] = deque(maxlen=_STDERR_TAIL)

    @classmethod
    async def run_session(
        cls,
        descriptor: AgentDescriptor,
        config: AgentConfig,
        prompt: str,
        collector: ResponseCollector,
    ) -> ExchangeResult:
        """Run one complete exchange and return its outcome."""
        return await cls(descriptor, config, collector).run(prompt)

    @property
    def state(self) -> ExchangeState:
        return self._state

    @property
    def name(self) -> str:
        return self._descriptor.name

    def build_args(self) -> list[str]:
        """Full argv for the agent process in protocol mode."""
        args = agent_command(self._descriptor, self._config, self._descriptor.acp_args)
        if self._config.agent_mode:
            args.extend(["--agent", self._config.agent_mode])
        args.extend(self._config.extra_args)
        return args

    async def run(self, prompt: str) -> ExchangeResult:
        if self._state is not ExchangeState.IDLE:
            msg = f"exchange already used (state={self._state.value})"
            raise ProtocolError(msg)

        proc = await self._spawn()
        self._state = ExchangeState.SPAWNED
        stderr_task = asyncio.create_task(self._drain_stderr(proc))
        try:
            return await self._exchange(proc, prompt)
        except BaseException:
            self._state = ExchangeState.FAILED
            if self._stderr_tail:
                logger.debug(
                    "%s: agent stderr:\n  %s",
                    self.name,
                    format_stderr_preview("\n".join(self._stderr_tail)),
                )
            raise
        finally:
            await kill_process(proc)
            stderr_task.cancel()
            await asyncio.gather(stderr_task, return_exceptions=True)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    async def _spawn(self) -> asyncio.subprocess.Process:
        args = self.build_args()
        logger.debug("%s: spawning %s", self.name, " ".join(args))
        try:
            return await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=_MAX_LINE_BYTES,
                env=agent_environment(self._descriptor),
                cwd=self._config.working_dir,
                start_new_session=True,
            )
        except OSError as exc:
            self._state = ExchangeState.FAILED
            raise SpawnError(f"{args[0]}: {exc}") from exc

    async def _exchange(
        self, proc: asyncio.subprocess.Process, prompt: str
    ) -> ExchangeResult:
        handler = AcpClientHandler(self._collector, self.name)
        conn = connect_to_agent(handler, input_stream=proc.stdin, output_stream=proc.stdout)
        timeout = self._config.timeout

        try:
            init = await asyncio.wait_for(
                conn.initialize(
                    protocol_version=PROTOCOL_VERSION,
                    client_capabilities=ClientCapabilities(),
                    client_info=Implementation(name=CLIENT_NAME, version=__version__),
                ),
                timeout=timeout,
            )
        except TimeoutError as exc:
            raise AgentTimeoutError(timeout) from exc
        except Exception as exc:
            msg = f"Initialize failed: {exc}"
            raise ProtocolError(msg) from exc
        self._state = ExchangeState.INITIALIZED
        agent_name = _agent_name(init)
        logger.debug("%s: initialized (agent=%s)", self.name, agent_name)

        cwd = self._config.working_dir or os.getcwd()
        try:
            session = await asyncio.wait_for(
                conn.new_session(cwd=cwd, mcp_servers=[]),
                timeout=timeout,
            )
        except TimeoutError as exc:
            raise AgentTimeoutError(timeout) from exc
        except Exception as exc:
            msg = f"Session creation failed: {exc}"
            raise SessionError(msg) from exc
        self._state = ExchangeState.SESSION_CREATED
        session_id = session.session_id
        logger.debug("%s: remote session %s", self.name, session_id)

        if self._descriptor.init_delay > 0:
            await asyncio.sleep(self._descriptor.init_delay)

        self._state = ExchangeState.PROMPT_SENT
        try:
            response = await asyncio.wait_for(
                conn.prompt(session_id=session_id, prompt=[text_block(prompt)]),
                timeout=timeout,
            )
        except TimeoutError as exc:
            logger.warning("%s: no response within %.1fs", self.name, timeout)
            raise AgentTimeoutError(timeout) from exc
        except Exception as exc:
            msg = f"Prompt failed: {exc}"
            raise ProtocolError(msg) from exc

        if self._descriptor.post_prompt_delay > 0:
            await asyncio.sleep(self._descriptor.post_prompt_delay)

        self._state = ExchangeState.COMPLETED
        stop_reason = getattr(response, "stop_reason", None)
        logger.info(
            "%s: exchange completed (stop_reason=%s, %d chars)",
            self.name,
            stop_reason,
            len(self._collector.get()),
        )
        return ExchangeResult(
            state=self._state,
            remote_session_id=session_id,
            stop_reason=stop_reason,
            agent_name=agent_name,
        )

    async def _drain_stderr(self, proc: asyncio.subprocess.Process) -> None:
        """Keep the stderr pipe from filling up; remember the last lines."""
        if proc.stderr is None:
            return
        while True:
            line = await proc.stderr.readline()
            if not line:
                return
            self._stderr_tail.append(line.decode("utf-8", errors="replace").rstrip())


def _agent_name(init: Any) -> str | None:
    info = getattr(init, "agent_info", None)
    return getattr(info, "name", None)
