"""Pydantic v2 models for agent and server configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

#: Default overall timeout for one exchange, in seconds.
DEFAULT_TIMEOUT = 120.0


class AgentConfig(BaseModel):
    """Per-request configuration for driving an agent CLI.

    Frozen: the ``with_*`` builders return modified copies.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    cli_path: str | None = Field(
        default=None,
        description="Executable override; None uses the descriptor's executable",
    )
    agent_mode: str | None = Field(
        default=None,
        description="Agent mode passed as '--agent <mode>' (e.g. 'kiro_default')",
    )
    model: str | None = Field(
        default=None,
        description="Model to use for completions",
    )
    timeout: float = Field(
        default=DEFAULT_TIMEOUT,
        gt=0,
        description="Overall timeout for one exchange, in seconds",
    )
    extra_args: tuple[str, ...] = Field(
        default=(),
        description="Extra CLI arguments appended after the protocol arguments",
    )
    working_dir: str | None = Field(
        default=None,
        description="Working directory for the agent process and remote session",
    )

    def with_mode(self, mode: str) -> AgentConfig:
        return self.model_copy(update={"agent_mode": mode})

    def with_model(self, model: str) -> AgentConfig:
        return self.model_copy(update={"model": model})

    def with_timeout(self, timeout: float) -> AgentConfig:
        return self.model_copy(update={"timeout": timeout})

    def with_args(self, args: list[str] | tuple[str, ...]) -> AgentConfig:
        return self.model_copy(update={"extra_args": tuple(args)})

    def with_working_dir(self, working_dir: str) -> AgentConfig:
        return self.model_copy(update={"working_dir": working_dir})


class Settings(BaseModel):
    """Process-wide settings, read once at startup."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    agent: str = Field(
        default="kiro",
        description="Agent adapter name: kiro, codex, gemini or mock",
    )
    kiro_cli_path: str = Field(default="kiro-cli")
    kiro_agent: str | None = Field(
        default=None,
        description="Default kiro agent mode",
    )
    codex_cli_path: str = Field(default="codex")
    codex_model: str | None = None
    gemini_cli_path: str = Field(default="gemini")
    gemini_model: str | None = None
    timeout_secs: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1, le=65535)

    @field_validator("agent")
    @classmethod
    def _normalize_agent(cls, value: str) -> str:
        return value.strip().lower()

    def with_overrides(self, **values: object) -> Settings:
        """Validated copy with the non-None *values* applied."""
        update = {k: v for k, v in values.items() if v is not None}
        if not update:
            return self
        return Settings.model_validate({**self.model_dump(), **update})

    def agent_config(self) -> AgentConfig:
        """Build the per-request :class:`AgentConfig` for the selected agent."""
        config = AgentConfig(timeout=self.timeout_secs)
        if self.agent == "kiro" and self.kiro_agent:
            config = config.with_mode(self.kiro_agent)
        return config
