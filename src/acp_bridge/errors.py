"""Exception hierarchy for the bridge.

One exception per failure category.  The HTTP layer maps
``SessionNotFoundError`` to 404 and every other ``BridgeError`` to 500,
using :attr:`BridgeError.category` as the error type.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base exception for all bridge errors."""

    category = "api_error"


class SpawnError(BridgeError):
    """The agent executable failed to start."""

    category = "spawn_error"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Failed to spawn agent CLI: {reason}")


class AgentConnectionError(BridgeError):
    """Pipe or I/O failure while talking to the agent process."""

    category = "connection_error"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Connection error: {reason}")


class SessionError(BridgeError):
    """The agent refused to create a remote session."""

    category = "session_error"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Session error: {reason}")


class ProtocolError(BridgeError):
    """Handshake or prompt failure, or no usable text from the agent."""

    category = "protocol_error"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Protocol error: {reason}")


class AgentTimeoutError(BridgeError):
    """The overall timeout expired before the agent answered."""

    category = "timeout"

    def __init__(self, timeout_seconds: float | None = None) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__("Timeout waiting for response")


class SessionNotFoundError(BridgeError):
    """No local session with the requested id."""

    category = "not_found"

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class NotConnectedError(BridgeError):
    """Reserved for reuse of a long-lived protocol connection."""

    category = "not_connected"

    def __init__(self) -> None:
        super().__init__("Not connected")


class AgentNotFoundError(BridgeError):
    """Unknown agent adapter name."""

    category = "agent_not_found"

    def __init__(self, name: str) -> None:
        self.agent_name = name
        super().__init__(f"Agent not found: {name}")
