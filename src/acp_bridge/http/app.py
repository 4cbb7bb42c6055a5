"""FastAPI application exposing an AcpClient over an OpenAI-style API."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from acp_bridge import __version__
from acp_bridge.acp.server_manager import AcpServerManager
from acp_bridge.client import AcpClient
from acp_bridge.errors import BridgeError, SessionNotFoundError
from acp_bridge.http.types import (
    SERVICE_NAME,
    ChatCompletionRequest,
    ChatCompletionResponse,
    CreateSessionRequest,
    ErrorResponse,
    ModelInfo,
    ModelsResponse,
    SendMessageRequest,
    SendMessageResponse,
    SessionInfo,
    SessionListResponse,
)
from acp_bridge.session.models import Session

logger = logging.getLogger(__name__)


def get_client(request: Request) -> AcpClient:
    return request.app.state.client


# ---------------------------------------------------------------------- #
# Chat completions and models
# ---------------------------------------------------------------------- #

openai_router = APIRouter(prefix="/v1", tags=["openai"])


@openai_router.post("/chat/completions", response_model=ChatCompletionResponse)
async def chat_completions(
    body: ChatCompletionRequest,
    client: AcpClient = Depends(get_client),
) -> ChatCompletionResponse:
    messages = [m.to_message() for m in body.messages]
    content = await client.chat_completion(messages, model=body.model)
    return ChatCompletionResponse.from_text(body.model, content)


@openai_router.get("/models", response_model=ModelsResponse)
async def list_models() -> ModelsResponse:
    return ModelsResponse(data=[ModelInfo(id="default")])


@openai_router.get("/models/{model_id}", response_model=ModelInfo)
async def get_model(model_id: str) -> ModelInfo:
    return ModelInfo(id=model_id)


# ---------------------------------------------------------------------- #
# Sessions
# ---------------------------------------------------------------------- #

sessions_router = APIRouter(prefix="/v1/sessions", tags=["sessions"])


@sessions_router.get("", response_model=SessionListResponse)
async def list_sessions(client: AcpClient = Depends(get_client)) -> SessionListResponse:
    sessions = await client.sessions.list()
    return SessionListResponse(sessions=[SessionInfo.from_session(s) for s in sessions])


@sessions_router.post("", response_model=Session, status_code=status.HTTP_201_CREATED)
async def create_session(
    body: CreateSessionRequest,
    client: AcpClient = Depends(get_client),
) -> Session:
    return await client.create_session(body.system_prompt, body.title)


@sessions_router.get("/{session_id}", response_model=Session)
async def get_session(session_id: str, client: AcpClient = Depends(get_client)) -> Session:
    return await client.sessions.get(session_id)


@sessions_router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str, client: AcpClient = Depends(get_client)) -> Response:
    await client.sessions.delete(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@sessions_router.post("/{session_id}/messages", response_model=SendMessageResponse)
async def send_message(
    session_id: str,
    body: SendMessageRequest,
    client: AcpClient = Depends(get_client),
) -> SendMessageResponse:
    content = await client.chat(session_id, body.content)
    return SendMessageResponse(content=content)


# ---------------------------------------------------------------------- #
# Error mapping
# ---------------------------------------------------------------------- #


async def _bridge_error(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, SessionNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    category = getattr(exc, "category", "api_error")
    body = ErrorResponse.of(str(exc), category)
    return JSONResponse(status_code=code, content=body.model_dump())


async def _validation_error(request: Request, exc: Exception) -> JSONResponse:
    errors = exc.errors() if isinstance(exc, RequestValidationError) else []
    if errors:
        first = errors[0]
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{where}: {first.get('msg', 'invalid value')}" if where else first.get("msg", "")
    else:
        message = str(exc)
    body = ErrorResponse.of(message, "invalid_request_error")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())


# ---------------------------------------------------------------------- #
# Application factory
# ---------------------------------------------------------------------- #


def create_app(client: AcpClient, server_manager: AcpServerManager | None = None) -> FastAPI:
    """Build the application around *client*.

    When *server_manager* is given, its persistent process is started
    with the application and stopped on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if server_manager is not None:
            await server_manager.ensure_running()
        try:
            yield
        finally:
            if server_manager is not None:
                await server_manager.stop()

    app = FastAPI(title="ACP Bridge", version=__version__, lifespan=lifespan)
    app.state.client = client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(BridgeError, _bridge_error)
    app.add_exception_handler(RequestValidationError, _validation_error)

    app.include_router(openai_router)
    app.include_router(sessions_router)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "service": SERVICE_NAME}

    return app
