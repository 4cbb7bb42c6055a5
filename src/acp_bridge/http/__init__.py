"""OpenAI-compatible HTTP API."""

from acp_bridge.http.app import create_app

__all__ = ["create_app"]
