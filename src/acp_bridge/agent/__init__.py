"""Agent descriptors and adapters."""

from acp_bridge.agent.adapters import (
    AGENT_NAMES,
    build_descriptor,
    codex,
    gemini,
    kiro,
    mock,
)
from acp_bridge.agent.descriptor import (
    DEFAULT_DESCRIPTOR,
    AgentDescriptor,
    strip_ansi_codes,
)

__all__ = [
    "AGENT_NAMES",
    "DEFAULT_DESCRIPTOR",
    "AgentDescriptor",
    "build_descriptor",
    "codex",
    "gemini",
    "kiro",
    "mock",
    "strip_ansi_codes",
]
