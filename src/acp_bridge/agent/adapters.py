"""Concrete agent descriptors and the name -> descriptor registry.

| Agent  | CLI      | ACP | Fallback invocation                   |
|--------|----------|-----|---------------------------------------|
| kiro   | kiro-cli | yes | ``kiro-cli chat --no-interactive``    |
| codex  | codex    | no  | ``codex -q --approval-mode <mode>``   |
| gemini | gemini   | no  | ``gemini -p``                         |
| mock   | echo     | no  | ``echo <response>`` (tests only)      |

Agents without ACP support reuse their chat arguments as ACP arguments;
the handshake then fails fast and requests are served by the fallback.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import replace
from typing import Literal

from acp_bridge.agent.descriptor import (
    DEFAULT_DESCRIPTOR,
    AgentDescriptor,
    strip_ansi_codes,
)
from acp_bridge.config.models import Settings
from acp_bridge.errors import AgentNotFoundError

CodexApprovalMode = Literal["suggest", "auto-edit", "full-auto"]
GeminiOutputFormat = Literal["text", "json", "stream-json"]


def kiro(cli_path: str = "kiro-cli", mode: str | None = None) -> AgentDescriptor:
    """kiro-cli — full ACP support; needs time to bring up MCP servers."""
    mode_args: tuple[str, ...] = ("--agent", mode) if mode else ()
    return replace(
        DEFAULT_DESCRIPTOR,
        name="kiro",
        executable=cli_path,
        acp_args=("acp", *mode_args),
        chat_args=("chat", "--no-interactive", *mode_args),
        requires_mcp_servers=True,
        init_delay=2.0,
        post_prompt_delay=0.5,
        postprocess=strip_ansi_codes,
    )


def codex(
    cli_path: str = "codex",
    model: str | None = None,
    approval_mode: CodexApprovalMode = "suggest",
    json_output: bool = False,
) -> AgentDescriptor:
    """OpenAI Codex CLI in quiet (non-interactive) mode."""
    args = ["-q", "--approval-mode", approval_mode]
    if model:
        args.extend(["-m", model])
    if json_output:
        args.append("--json")
    return replace(
        DEFAULT_DESCRIPTOR,
        name="codex",
        executable=cli_path,
        acp_args=tuple(args),
        chat_args=tuple(args),
        env=(("CODEX_QUIET_MODE", "1"),),
        requires_mcp_servers=False,
        init_delay=0.0,
        post_prompt_delay=0.1,
        postprocess=strip_ansi_codes,
    )


def gemini(
    cli_path: str = "gemini",
    model: str | None = None,
    output_format: GeminiOutputFormat = "text",
    include_directories: Sequence[str] = (),
) -> AgentDescriptor:
    """Google Gemini CLI in prompt mode."""
    args = ["-p"]
    if model:
        args.extend(["-m", model])
    if output_format != "text":
        args.extend(["--output-format", output_format])
    if include_directories:
        args.extend(["--include-directories", ",".join(include_directories)])
    return replace(
        DEFAULT_DESCRIPTOR,
        name="gemini",
        executable=cli_path,
        acp_args=tuple(args),
        chat_args=tuple(args),
        requires_mcp_servers=False,
        init_delay=0.0,
        post_prompt_delay=0.1,
        postprocess=strip_ansi_codes,
    )


def mock(name: str = "mock", response: str = "Mock response") -> AgentDescriptor:
    """``echo``-backed agent for tests; no delays, no post-processing."""
    return replace(
        DEFAULT_DESCRIPTOR,
        name=name,
        executable="echo",
        acp_args=("mock-acp",),
        chat_args=(response,),
        requires_mcp_servers=False,
        init_delay=0.0,
        post_prompt_delay=0.0,
    )


def _kiro_from(settings: Settings) -> AgentDescriptor:
    # The mode travels on AgentConfig so it is appended exactly once.
    return kiro(settings.kiro_cli_path)


def _codex_from(settings: Settings) -> AgentDescriptor:
    return codex(settings.codex_cli_path, model=settings.codex_model)


def _gemini_from(settings: Settings) -> AgentDescriptor:
    return gemini(settings.gemini_cli_path, model=settings.gemini_model)


def _mock_from(settings: Settings) -> AgentDescriptor:
    return mock()


_REGISTRY: dict[str, Callable[[Settings], AgentDescriptor]] = {
    "kiro": _kiro_from,
    "codex": _codex_from,
    "gemini": _gemini_from,
    "mock": _mock_from,
}

#: Adapter names accepted by :func:`build_descriptor`.
AGENT_NAMES: tuple[str, ...] = tuple(_REGISTRY)


def build_descriptor(settings: Settings, name: str | None = None) -> AgentDescriptor:
    """Build the descriptor for *name* (default: ``settings.agent``).

    Raises:
        AgentNotFoundError: If *name* is not a known adapter.
    """
    key = (name or settings.agent).strip().lower()
    factory = _REGISTRY.get(key)
    if factory is None:
        raise AgentNotFoundError(key)
    return factory(settings)
