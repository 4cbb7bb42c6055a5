"""AcpClient — sessions plus protocol exchanges behind one interface.

Each exchange runs on a private event loop in a worker thread, so agent
I/O never blocks the caller's loop.  When an exchange completes without
text, the agent is invoked once more in non-interactive chat mode.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from acp_bridge.acp.collector import ResponseCollector
from acp_bridge.acp.connection import AcpConnection, ExchangeResult
from acp_bridge.acp.fallback import run_fallback
from acp_bridge.agent.adapters import build_descriptor
from acp_bridge.agent.descriptor import AgentDescriptor
from acp_bridge.config.models import AgentConfig, Settings
from acp_bridge.session.models import Message, Session
from acp_bridge.session.store import SessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Completion:
    """Final text of one exchange and the remote session it ran in."""

    text: str
    remote_session_id: str | None = None
    used_fallback: bool = False


class AcpClient:
    """High-level client for chatting with one kind of agent."""

    def __init__(
        self,
        descriptor: AgentDescriptor,
        config: AgentConfig,
        sessions: SessionStore | None = None,
    ) -> None:
        self._descriptor = descriptor
        self._config = config
        self._sessions = sessions if sessions is not None else SessionStore()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        sessions: SessionStore | None = None,
    ) -> AcpClient:
        """Client for the agent selected in *settings*.

        Raises:
            AgentNotFoundError: If ``settings.agent`` names no adapter.
        """
        descriptor = build_descriptor(settings)
        return cls(descriptor, settings.agent_config(), sessions)

    @property
    def descriptor(self) -> AgentDescriptor:
        return self._descriptor

    @property
    def config(self) -> AgentConfig:
        return self._config

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    async def create_session(
        self,
        system_prompt: str | None = None,
        title: str | None = None,
    ) -> Session:
        if title is not None:
            return await self._sessions.create_with_title(title, system_prompt)
        return await self._sessions.create(system_prompt)

    async def chat(self, session_id: str, content: str) -> str:
        """Send *content* in a session and return the agent's answer.

        The whole history is sent as the prompt.  The session is only
        updated when the exchange succeeds.

        Raises:
            SessionNotFoundError: No session with *session_id*.
            BridgeError: The exchange or the fallback failed.
        """
        session = await self._sessions.get(session_id)
        session.add_user_message(content)

        completion = await self.complete(session.build_prompt())

        session.add_assistant_message(completion.text)
        if completion.remote_session_id:
            session.acp_session_id = completion.remote_session_id
        await self._sessions.update(session)
        return completion.text

    async def send_prompt(self, prompt: str) -> str:
        """One stateless exchange."""
        completion = await self.complete(prompt)
        return completion.text

    async def chat_completion(
        self,
        messages: Sequence[Message],
        model: str | None = None,
    ) -> str:
        """Stateless exchange over an explicit message list.

        *model* is accepted for API compatibility; the agent decides.
        """
        prompt = "\n\n".join(f"{m.role.value}: {m.content}" for m in messages)
        completion = await self.complete(prompt)
        return completion.text

    async def complete(self, prompt: str) -> Completion:
        """Run the protocol exchange, falling back to chat mode on no text."""
        collector = ResponseCollector()
        result = await asyncio.to_thread(self._run_isolated, prompt, collector)

        text = collector.get()
        # Only raw emptiness triggers the fallback; text that post-processes
        # to "" (e.g. bare ANSI codes) is returned as is.
        if text:
            return Completion(
                text=self._descriptor.process_response(text),
                remote_session_id=result.remote_session_id,
            )

        logger.warning(
            "%s: no text from exchange (stop_reason=%s)",
            self._descriptor.name,
            result.stop_reason,
        )
        text = await run_fallback(self._descriptor, self._config, prompt)
        return Completion(text=text, used_fallback=True)

    def _run_isolated(self, prompt: str, collector: ResponseCollector) -> ExchangeResult:
        return asyncio.run(
            AcpConnection.run_session(self._descriptor, self._config, prompt, collector)
        )
