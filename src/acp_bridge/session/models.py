"""Pydantic v2 models for conversation sessions."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class Role(str, Enum):
    """Role of a message sender."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"

    @classmethod
    def parse(cls, value: str) -> Role:
        """Case-insensitive lookup; raises ``ValueError`` for unknown roles."""
        try:
            return cls(value.lower())
        except ValueError:
            msg = f"Unknown role: {value}"
            raise ValueError(msg) from None

    @property
    def prefix(self) -> str:
        """Capitalized label used when rendering a transcript."""
        return self.value.capitalize()

    def __str__(self) -> str:
        return self.value


class Message(BaseModel):
    """A single message in a conversation.  Immutable."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    name: str | None = Field(default=None, description="Optional sender name")
    timestamp: datetime = Field(default_factory=_utcnow)

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role=Role.ASSISTANT, content=content)

    def with_name(self, name: str) -> Message:
        return self.model_copy(update={"name": name})


class Session(BaseModel):
    """A conversation with an agent.

    ``id`` is client-side and never changes; ``acp_session_id`` is the id
    the agent assigned, when one is known.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    acp_session_id: str | None = None
    title: str | None = None
    system_prompt: str | None = None
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def new(cls, system_prompt: str | None = None) -> Session:
        """Create a session, optionally seeded with a system message."""
        now = _utcnow()
        session = cls(created_at=now, updated_at=now)
        if system_prompt is not None:
            session.system_prompt = system_prompt
            session.messages.append(Message.system(system_prompt))
        return session

    def with_title(self, title: str) -> Session:
        return self.model_copy(update={"title": title}, deep=True)

    def add_message(self, message: Message) -> None:
        self.messages.append(message)
        self._touch()

    def add_user_message(self, content: str) -> None:
        self.add_message(Message.user(content))

    def add_assistant_message(self, content: str) -> None:
        self.add_message(Message.assistant(content))

    def last_messages(self, n: int) -> list[Message]:
        if n <= 0:
            return []
        return self.messages[-n:]

    @property
    def message_count(self) -> int:
        return len(self.messages)

    def is_empty(self) -> bool:
        return not self.messages

    def set_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = value
        self._touch()

    def get_metadata(self, key: str) -> Any:
        return self.metadata.get(key)

    def build_prompt(self) -> str:
        """Render the history as ``"Role: content"`` blocks separated by blank lines."""
        return "\n\n".join(f"{msg.role.prefix}: {msg.content}" for msg in self.messages)

    def copy_deep(self) -> Session:
        return self.model_copy(deep=True)

    def _touch(self) -> None:
        # Clock skew must never move updated_at behind created_at.
        self.updated_at = max(_utcnow(), self.updated_at, self.created_at)
