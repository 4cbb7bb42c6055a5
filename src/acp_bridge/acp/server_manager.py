"""AcpServerManager — lifecycle of one long-lived agent process.

The manager keeps at most one live process.  Its standard streams are
discarded; nothing here talks to it.  Only :meth:`AcpServerManager.stop`
terminates it; dropping the manager leaves the process running.

A process-wide shared manager is available through
:func:`get_server_manager`; :func:`reset_server_manager` forgets it.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Sequence

from acp_bridge.config.models import Settings
from acp_bridge.config.parser import load_settings
from acp_bridge.errors import AgentConnectionError, SpawnError

logger = logging.getLogger(__name__)

#: Seconds to let a freshly spawned process settle.
START_SETTLE_DELAY = 0.5

#: Seconds between stop and start during a restart.
RESTART_DELAY = 0.1


class AcpServerManager:
    """Start, stop and observe a persistent agent process."""

    def __init__(self, cli_path: str, args: Sequence[str] = ("acp",)) -> None:
        self._cli_path = cli_path
        self._args = tuple(args)
        self._process: asyncio.subprocess.Process | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> AcpServerManager:
        return cls(settings.kiro_cli_path, ("acp",))

    @property
    def cli_path(self) -> str:
        return self._cli_path

    @property
    def args(self) -> tuple[str, ...]:
        return self._args

    @property
    def pid(self) -> int | None:
        proc = self._process
        return proc.pid if proc is not None and proc.returncode is None else None

    def _alive(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def is_running(self) -> bool:
        async with self._lock:
            return self._alive()

    async def ensure_running(self) -> None:
        """Start the process unless a live one is already tracked."""
        async with self._lock:
            if self._alive():
                return
            await self._start_locked()

    async def start(self) -> None:
        """Start a new process, replacing any tracked one."""
        async with self._lock:
            await self._start_locked()

    async def stop(self) -> None:
        """Kill the tracked process, if any, and forget it."""
        async with self._lock:
            await self._stop_locked()

    async def restart(self) -> None:
        async with self._lock:
            await self._stop_locked()
            await asyncio.sleep(RESTART_DELAY)
            await self._start_locked()

    async def health_check(self) -> bool:
        """Liveness of the tracked process."""
        return await self.is_running()

    # ------------------------------------------------------------------ #
    # Internals (caller holds the lock)
    # ------------------------------------------------------------------ #

    async def _start_locked(self) -> None:
        if self._process is not None:
            await self._stop_locked()

        args = [self._cli_path, *self._args]
        logger.info("acp server: starting %s", " ".join(args))
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            msg = f"Failed to start ACP server: {exc}"
            raise SpawnError(msg) from exc

        self._process = proc
        await asyncio.sleep(START_SETTLE_DELAY)
        logger.info("acp server: started (pid=%s)", proc.pid)

    async def _stop_locked(self) -> None:
        proc, self._process = self._process, None
        if proc is None:
            return
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            except OSError as exc:
                msg = f"Failed to stop ACP server: {exc}"
                raise AgentConnectionError(msg) from exc
            await proc.wait()
        logger.info("acp server: stopped (pid=%s)", proc.pid)


# ---------------------------------------------------------------------- #
# Process-wide shared manager
# ---------------------------------------------------------------------- #

_shared: AcpServerManager | None = None
_shared_lock = threading.Lock()


def get_server_manager(settings: Settings | None = None) -> AcpServerManager:
    """Return the shared manager, building it on first access.

    *settings* is only consulted on first access; when omitted, settings
    are loaded from the environment.
    """
    global _shared
    with _shared_lock:
        if _shared is None:
            if settings is None:
                settings = load_settings()
            _shared = AcpServerManager.from_settings(settings)
        return _shared


def reset_server_manager() -> None:
    """Forget the shared manager.  A running process is left alone."""
    global _shared
    with _shared_lock:
        _shared = None


async def ensure_running() -> None:
    await get_server_manager().ensure_running()


async def is_running() -> bool:
    return await get_server_manager().is_running()


async def health_check() -> bool:
    return await get_server_manager().health_check()


async def stop() -> None:
    await get_server_manager().stop()
