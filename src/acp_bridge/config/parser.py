"""Load and validate process settings from ``.env``, YAML and the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from acp_bridge.config.models import Settings

DEFAULT_CONFIG_NAME = "acp-bridge.yaml"

#: Environment variable -> Settings field.
ENV_FIELDS: dict[str, str] = {
    "ACP_AGENT": "agent",
    "KIRO_CLI_PATH": "kiro_cli_path",
    "KIRO_AGENT": "kiro_agent",
    "CODEX_CLI_PATH": "codex_cli_path",
    "CODEX_MODEL": "codex_model",
    "GEMINI_CLI_PATH": "gemini_cli_path",
    "GEMINI_MODEL": "gemini_model",
    "TIMEOUT_SECS": "timeout_secs",
    "HOST": "host",
    "PORT": "port",
}


class ConfigError(Exception):
    """User-facing configuration error."""


def load_settings(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Resolve settings once at startup.

    Precedence, lowest first: field defaults, the YAML file, environment
    variables.  A ``.env`` file next to the YAML file (or in the current
    directory) is loaded into the process environment first.

    Args:
        path: Explicit YAML file.  If None, ``acp-bridge.yaml`` in the
              current directory is used when present.
        environ: Environment mapping to read instead of ``os.environ``.

    Raises:
        ConfigError: On a missing explicit file, bad YAML, or invalid values.
    """
    config_path = _resolve_path(path)
    base_dir = config_path.parent if config_path is not None else Path.cwd()
    if environ is None:
        _load_env(base_dir)
        environ = os.environ

    raw: dict[str, Any] = _read_yaml(config_path) if config_path is not None else {}
    raw.update(_read_environ(environ))
    return _validate(raw)


def _resolve_path(path: Path | None) -> Path | None:
    if path is not None:
        resolved = Path(path)
        if not resolved.is_file():
            msg = f"Config file not found: {resolved}"
            raise ConfigError(msg)
        return resolved

    default = Path.cwd() / DEFAULT_CONFIG_NAME
    return default if default.is_file() else None


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read config file: {exc}"
        raise ConfigError(msg) from exc

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        detail = ""
        if hasattr(exc, "problem_mark") and exc.problem_mark is not None:
            mark = exc.problem_mark
            detail = f" (line {mark.line + 1}, column {mark.column + 1})"
        msg = f"Invalid YAML in {path.name}{detail}"
        raise ConfigError(msg) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Expected a YAML mapping in {path.name}, got {type(data).__name__}"
        raise ConfigError(msg)

    return data


def _read_environ(environ: Mapping[str, str]) -> dict[str, str]:
    values: dict[str, str] = {}
    for env_key, field in ENV_FIELDS.items():
        value = environ.get(env_key)
        if value is not None and value != "":
            values[field] = value
    return values


def _load_env(config_dir: Path) -> None:
    env_path = config_dir / ".env"
    if env_path.is_file():
        load_dotenv(env_path)


def _validate(raw: dict[str, Any]) -> Settings:
    try:
        return Settings.model_validate(raw)
    except ValidationError as exc:
        fields = {v: k for k, v in ENV_FIELDS.items()}
        parts: list[str] = []
        for err in exc.errors():
            loc = " → ".join(str(s) for s in err["loc"])
            env_key = fields.get(str(err["loc"][0])) if err["loc"] else None
            if env_key:
                loc = f"{loc} ({env_key})"
            msg = err["msg"]
            if "extra inputs are not permitted" in msg.lower():
                msg = "Unknown setting"
            elif "input should be" in msg.lower():
                msg = f"Invalid value: {msg}"
            parts.append(f"  {loc}: {msg}")
        joined = "\n".join(parts)
        msg = f"Settings validation failed:\n{joined}"
        raise ConfigError(msg) from exc
