"""Request and response bodies for the OpenAI-compatible HTTP API."""

from __future__ import annotations

import time
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from acp_bridge.session.models import Message, Role, Session

SERVICE_NAME = "acp-bridge"
DEFAULT_MODEL = "default"


# ---------------------------------------------------------------------- #
# Chat completions
# ---------------------------------------------------------------------- #


class ChatMessage(BaseModel):
    role: str
    content: str
    name: str | None = None

    @field_validator("role")
    @classmethod
    def _known_role(cls, value: str) -> str:
        return Role.parse(value).value

    def to_message(self) -> Message:
        message = Message(role=Role.parse(self.role), content=self.content)
        return message.with_name(self.name) if self.name else message


class ChatCompletionRequest(BaseModel):
    """Generation parameters are accepted for compatibility and ignored."""

    model: str = DEFAULT_MODEL
    messages: list[ChatMessage] = Field(min_length=1)
    max_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None
    n: int | None = None
    stream: bool | None = None
    stop: list[str] | str | None = None
    user: str | None = None


class AssistantMessage(BaseModel):
    role: str = "assistant"
    content: str


class ChatCompletionChoice(BaseModel):
    index: int = 0
    message: AssistantMessage
    finish_reason: str | None = "stop"


class Usage(BaseModel):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class ChatCompletionResponse(BaseModel):
    id: str
    object: str = "chat.completion"
    created: int
    model: str
    choices: list[ChatCompletionChoice]
    usage: Usage | None = None

    @classmethod
    def from_text(cls, model: str, content: str) -> ChatCompletionResponse:
        return cls(
            id=f"chatcmpl-{uuid.uuid4()}",
            created=int(time.time()),
            model=model,
            choices=[ChatCompletionChoice(message=AssistantMessage(content=content))],
        )


# ---------------------------------------------------------------------- #
# Models
# ---------------------------------------------------------------------- #


class ModelInfo(BaseModel):
    id: str
    object: str = "model"
    created: int = Field(default_factory=lambda: int(time.time()))
    owned_by: str = SERVICE_NAME


class ModelsResponse(BaseModel):
    object: str = "list"
    data: list[ModelInfo]


# ---------------------------------------------------------------------- #
# Sessions
# ---------------------------------------------------------------------- #


class CreateSessionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    system_prompt: str | None = None
    title: str | None = None


class SessionInfo(BaseModel):
    id: str
    title: str | None
    message_count: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_session(cls, session: Session) -> SessionInfo:
        return cls(
            id=session.id,
            title=session.title,
            message_count=session.message_count,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )


class SessionListResponse(BaseModel):
    sessions: list[SessionInfo]


class SendMessageRequest(BaseModel):
    content: str


class SendMessageResponse(BaseModel):
    role: str = "assistant"
    content: str


# ---------------------------------------------------------------------- #
# Errors
# ---------------------------------------------------------------------- #


class ErrorDetail(BaseModel):
    message: str
    type: str
    param: str | None = None
    code: str | None = None


class ErrorResponse(BaseModel):
    error: ErrorDetail

    @classmethod
    def of(cls, message: str, error_type: str) -> ErrorResponse:
        return cls(error=ErrorDetail(message=message, type=error_type))
