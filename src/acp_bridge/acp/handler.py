"""AcpClientHandler — answers the agent's callbacks during one exchange.

The handler is the client half of the protocol.  It supports exactly one
capability, accumulating agent message text into a
:class:`ResponseCollector`.  Permission requests are always cancelled,
extension notifications are acknowledged, and every other request
(file system, terminals, extension methods) is answered with
"method not found".
"""

from __future__ import annotations

import logging
from typing import Any

from acp import RequestError
from acp.schema import DeniedOutcome, RequestPermissionResponse

from acp_bridge.acp.collector import ResponseCollector

logger = logging.getLogger(__name__)

#: ``sessionUpdate`` discriminators we care about.
_MESSAGE_CHUNK = "agent_message_chunk"
_THOUGHT_CHUNK = "agent_thought_chunk"


class AcpClientHandler:
    """Client-side callback surface for a single protocol connection."""

    def __init__(self, collector: ResponseCollector, agent_name: str = "agent") -> None:
        self._collector = collector
        self._agent_name = agent_name
        self._conn: Any = None

    @property
    def collector(self) -> ResponseCollector:
        return self._collector

    def on_connect(self, conn: Any) -> None:
        self._conn = conn

    # ------------------------------------------------------------------ #
    # Supported: streamed session updates
    # ------------------------------------------------------------------ #

    async def session_update(self, session_id: str, update: Any, **kwargs: Any) -> None:
        """Append text chunks; log and drop every other update kind."""
        kind = getattr(update, "session_update", None)

        if kind == _MESSAGE_CHUNK:
            content = getattr(update, "content", None)
            text = getattr(content, "text", None)
            if getattr(content, "type", None) == "text" and isinstance(text, str):
                logger.debug(
                    "%s: text chunk (%d chars) for session %s",
                    self._agent_name,
                    len(text),
                    session_id,
                )
                self._collector.append(text)
            else:
                logger.debug("%s: non-text message chunk ignored", self._agent_name)

        elif kind == _THOUGHT_CHUNK:
            logger.debug("%s: thought chunk ignored", self._agent_name)

        else:
            logger.debug("%s: update %r ignored", self._agent_name, kind)

    # ------------------------------------------------------------------ #
    # Answered without action
    # ------------------------------------------------------------------ #

    async def request_permission(
        self,
        options: list[Any],
        session_id: str,
        tool_call: Any,
        **kwargs: Any,
    ) -> RequestPermissionResponse:
        """Non-interactive use: every permission request is cancelled."""
        logger.info(
            "%s: permission request in session %s cancelled",
            self._agent_name,
            session_id,
        )
        return RequestPermissionResponse(outcome=DeniedOutcome(outcome="cancelled"))

    async def ext_notification(self, method: str, params: dict[str, Any]) -> None:
        logger.debug("%s: extension notification %s acknowledged", self._agent_name, method)

    # ------------------------------------------------------------------ #
    # Unsupported
    # ------------------------------------------------------------------ #

    async def read_text_file(self, path: str, session_id: str, **kwargs: Any) -> Any:
        raise self._unsupported("fs/read_text_file")

    async def write_text_file(
        self, content: str, path: str, session_id: str, **kwargs: Any
    ) -> Any:
        raise self._unsupported("fs/write_text_file")

    async def create_terminal(self, command: str, session_id: str, **kwargs: Any) -> Any:
        raise self._unsupported("terminal/create")

    async def terminal_output(self, session_id: str, terminal_id: str, **kwargs: Any) -> Any:
        raise self._unsupported("terminal/output")

    async def release_terminal(
        self, session_id: str, terminal_id: str, **kwargs: Any
    ) -> Any:
        raise self._unsupported("terminal/release")

    async def wait_for_terminal_exit(
        self, session_id: str, terminal_id: str, **kwargs: Any
    ) -> Any:
        raise self._unsupported("terminal/wait_for_exit")

    async def kill_terminal(self, session_id: str, terminal_id: str, **kwargs: Any) -> Any:
        raise self._unsupported("terminal/kill")

    kill_terminal_command = kill_terminal

    async def ext_method(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        raise self._unsupported(method)

    def _unsupported(self, method: str) -> RequestError:
        logger.debug("%s: unsupported request %s", self._agent_name, method)
        return RequestError.method_not_found(method)
