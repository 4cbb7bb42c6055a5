"""Agent Client Protocol plumbing: exchanges, fallback and process management."""

from acp_bridge.acp.collector import ResponseCollector
from acp_bridge.acp.connection import AcpConnection, ExchangeResult, ExchangeState
from acp_bridge.acp.fallback import run_fallback
from acp_bridge.acp.handler import AcpClientHandler
from acp_bridge.acp.server_manager import (
    AcpServerManager,
    get_server_manager,
    reset_server_manager,
)

__all__ = [
    "AcpClientHandler",
    "AcpConnection",
    "AcpServerManager",
    "ExchangeResult",
    "ExchangeState",
    "ResponseCollector",
    "get_server_manager",
    "reset_server_manager",
    "run_fallback",
]
