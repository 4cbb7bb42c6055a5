"""acp-bridge — OpenAI-compatible HTTP front end for ACP command-line agents."""

__version__ = "0.1.0"
