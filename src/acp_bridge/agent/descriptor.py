"""AgentDescriptor — how to drive one command-line agent.

A descriptor is plain data plus a text post-processing hook.  Concrete
agents are built from :data:`DEFAULT_DESCRIPTOR` with
:func:`dataclasses.replace`, overriding only the fields that differ.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field

#: ANSI CSI sequences, OSC sequences terminated by BEL, and carriage returns.
_ANSI_RE = re.compile(r"\x1b\[[0-9;]*[a-zA-Z]|\x1b\].*?\x07|\r")


def strip_ansi_codes(text: str) -> str:
    """Remove terminal control sequences from *text*."""
    return _ANSI_RE.sub("", text)


def _identity(text: str) -> str:
    return text


@dataclass(frozen=True)
class AgentDescriptor:
    """Immutable description of an agent CLI.

    Attributes:
        name: Display name, also the adapter registry key.
        executable: Path to the CLI executable.
        acp_args: Arguments that start the CLI in ACP mode.
        chat_args: Arguments for the non-interactive fallback mode.
        env: Extra environment variables for both modes.
        requires_mcp_servers: Whether the remote side starts auxiliary
            (MCP) servers during session creation.
        init_delay: Seconds to wait after session creation before prompting.
        post_prompt_delay: Seconds to wait after the prompt completes so
            trailing notifications can arrive.
        postprocess: Cleans raw response text (e.g. strips ANSI codes).
    """

    name: str
    executable: str
    acp_args: tuple[str, ...] = ()
    chat_args: tuple[str, ...] = ()
    env: tuple[tuple[str, str], ...] = ()
    requires_mcp_servers: bool = True
    init_delay: float = 2.0
    post_prompt_delay: float = 0.5
    postprocess: Callable[[str], str] = field(default=_identity, compare=False)

    def process_response(self, text: str) -> str:
        return self.postprocess(text)

    def environment(self) -> dict[str, str]:
        return dict(self.env)


DEFAULT_DESCRIPTOR = AgentDescriptor(name="acp-agent", executable="acp-agent")
