"""Conversation sessions — models and the in-memory store."""

from acp_bridge.session.models import Message, Role, Session
from acp_bridge.session.store import ReadWriteLock, SessionStore

__all__ = [
    "Message",
    "ReadWriteLock",
    "Role",
    "Session",
    "SessionStore",
]
