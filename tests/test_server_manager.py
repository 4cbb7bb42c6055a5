"""Tests for the persistent ACP server process manager."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from acp_bridge.acp import server_manager
from acp_bridge.acp.server_manager import (
    AcpServerManager,
    get_server_manager,
    reset_server_manager,
)
from acp_bridge.config.models import Settings
from acp_bridge.errors import AgentConnectionError, SpawnError

# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture(autouse=True)
def _no_settle_delay() -> Iterator[None]:
    """Skip the settle and restart delays."""
    with (
        patch.object(server_manager, "START_SETTLE_DELAY", 0),
        patch.object(server_manager, "RESTART_DELAY", 0),
    ):
        yield


@pytest.fixture(autouse=True)
def _fresh_shared_manager() -> Iterator[None]:
    reset_server_manager()
    yield
    reset_server_manager()


def _make_mock_process(pid: int = 1000) -> MagicMock:
    """A live mock process; ``kill()`` marks it exited."""
    proc = MagicMock()
    proc.pid = pid
    proc.returncode = None

    def _kill() -> None:
        proc.returncode = -9

    proc.kill = MagicMock(side_effect=_kill)
    proc.wait = AsyncMock(return_value=-9)
    return proc


# ------------------------------------------------------------------ #
# AcpServerManager
# ------------------------------------------------------------------ #


class TestAcpServerManager:
    async def test_not_running_initially(self) -> None:
        manager = AcpServerManager("kiro-cli")
        assert not await manager.is_running()
        assert not await manager.health_check()
        assert manager.pid is None

    async def test_start_spawns_with_discarded_stdio(self) -> None:
        proc = _make_mock_process()
        manager = AcpServerManager("/opt/kiro-cli", ["acp"])

        with patch("asyncio.create_subprocess_exec", return_value=proc) as mock_exec:
            await manager.start()

        assert mock_exec.call_args.args == ("/opt/kiro-cli", "acp")
        kwargs = mock_exec.call_args.kwargs
        assert kwargs["stdin"] == asyncio.subprocess.DEVNULL
        assert kwargs["stdout"] == asyncio.subprocess.DEVNULL
        assert kwargs["stderr"] == asyncio.subprocess.DEVNULL
        assert await manager.is_running()
        assert manager.pid == 1000

    async def test_ensure_running_is_idempotent(self) -> None:
        manager = AcpServerManager("kiro-cli")
        with patch(
            "asyncio.create_subprocess_exec", return_value=_make_mock_process()
        ) as mock_exec:
            await manager.ensure_running()
            await manager.ensure_running()
        assert mock_exec.call_count == 1

    async def test_concurrent_ensure_running_starts_once(self) -> None:
        manager = AcpServerManager("kiro-cli")
        with patch(
            "asyncio.create_subprocess_exec", return_value=_make_mock_process()
        ) as mock_exec:
            await asyncio.gather(*(manager.ensure_running() for _ in range(10)))
        assert mock_exec.call_count == 1

    async def test_ensure_running_restarts_exited_process(self) -> None:
        first = _make_mock_process(pid=1)
        second = _make_mock_process(pid=2)
        manager = AcpServerManager("kiro-cli")

        with patch("asyncio.create_subprocess_exec", side_effect=[first, second]):
            await manager.ensure_running()
            first.returncode = 1  # crashed
            assert not await manager.is_running()
            await manager.ensure_running()

        assert manager.pid == 2
        first.kill.assert_not_called()

    async def test_start_replaces_live_process(self) -> None:
        first = _make_mock_process(pid=1)
        second = _make_mock_process(pid=2)
        manager = AcpServerManager("kiro-cli")

        with patch("asyncio.create_subprocess_exec", side_effect=[first, second]):
            await manager.start()
            await manager.start()

        first.kill.assert_called_once()
        assert manager.pid == 2

    async def test_stop(self) -> None:
        proc = _make_mock_process()
        manager = AcpServerManager("kiro-cli")
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            await manager.start()
        await manager.stop()

        proc.kill.assert_called_once()
        proc.wait.assert_awaited()
        assert not await manager.is_running()

    async def test_stop_without_process_is_noop(self) -> None:
        await AcpServerManager("kiro-cli").stop()

    async def test_stop_tolerates_already_exited(self) -> None:
        proc = _make_mock_process()
        proc.kill.side_effect = ProcessLookupError()
        manager = AcpServerManager("kiro-cli")
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            await manager.start()
        await manager.stop()
        assert not await manager.is_running()

    async def test_stop_kill_failure(self) -> None:
        proc = _make_mock_process()
        proc.kill.side_effect = PermissionError("not permitted")
        manager = AcpServerManager("kiro-cli")
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            await manager.start()
        with pytest.raises(AgentConnectionError, match="Failed to stop ACP server"):
            await manager.stop()

    async def test_restart(self) -> None:
        first = _make_mock_process(pid=1)
        second = _make_mock_process(pid=2)
        manager = AcpServerManager("kiro-cli")

        with patch("asyncio.create_subprocess_exec", side_effect=[first, second]) as mock_exec:
            await manager.start()
            await manager.restart()

        assert mock_exec.call_count == 2
        first.kill.assert_called_once()
        assert manager.pid == 2

    async def test_spawn_failure(self) -> None:
        manager = AcpServerManager("/missing/kiro-cli")
        with patch(
            "asyncio.create_subprocess_exec",
            side_effect=FileNotFoundError("No such file or directory"),
        ):
            with pytest.raises(SpawnError, match="Failed to start ACP server"):
                await manager.start()
        assert not await manager.is_running()

    async def test_dropping_manager_leaves_process_alone(self) -> None:
        proc = _make_mock_process()
        manager = AcpServerManager("kiro-cli")
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            await manager.start()
        del manager
        proc.kill.assert_not_called()


# ------------------------------------------------------------------ #
# Shared instance
# ------------------------------------------------------------------ #


class TestSharedManager:
    def test_built_from_settings(self) -> None:
        manager = get_server_manager(Settings(kiro_cli_path="/opt/kiro-cli"))
        assert manager.cli_path == "/opt/kiro-cli"
        assert manager.args == ("acp",)

    def test_same_instance_on_every_access(self) -> None:
        first = get_server_manager(Settings())
        assert get_server_manager() is first
        assert get_server_manager(Settings(kiro_cli_path="other")) is first

    def test_loads_settings_lazily(self) -> None:
        with patch.object(
            server_manager, "load_settings", return_value=Settings(kiro_cli_path="/env/kiro")
        ) as mock_load:
            manager = get_server_manager()
            get_server_manager()
        mock_load.assert_called_once()
        assert manager.cli_path == "/env/kiro"

    def test_reset_builds_new_instance(self) -> None:
        first = get_server_manager(Settings())
        reset_server_manager()
        assert get_server_manager(Settings()) is not first

    async def test_module_helpers_delegate(self) -> None:
        get_server_manager(Settings())
        proc = _make_mock_process()
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            await server_manager.ensure_running()
        assert await server_manager.is_running()
        assert await server_manager.health_check()
        await server_manager.stop()
        assert not await server_manager.is_running()
