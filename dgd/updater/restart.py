"""Restart the running program after an update has been applied."""

from __future__ import annotations

import asyncio
import inspect
import os
import subprocess
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from dgd.updater.errors import RestartError
from dgd.updater.host import detach_kwargs
from dgd.updater.replace import restart_argv

ShutdownCallback = Callable[[], Awaitable[None] | None]


class RestartOrchestrator:
    """Flushes state through a shutdown callback, then re-execs the program.

    The callback is owned by whoever bootstraps the process (e.g. closing the
    database handle). If it fails nothing is restarted.
    """

    def __init__(
        self,
        shutdown_callback: ShutdownCallback | None = None,
        *,
        settle_delay: float = 1.0,
        spawn_grace: float = 0.5,
        argv_factory: Callable[[], list[str]] = restart_argv,
        spawn: Callable[..., Any] = subprocess.Popen,
        exit_process: Callable[[int], Any] = os._exit,
    ) -> None:
        self._shutdown_callback = shutdown_callback
        self._settle_delay = settle_delay
        self._spawn_grace = spawn_grace
        self._argv_factory = argv_factory
        self._spawn = spawn
        self._exit_process = exit_process

    def register_shutdown_callback(self, callback: ShutdownCallback | None) -> None:
        self._shutdown_callback = callback

    async def _run_shutdown_callback(self) -> None:
        if self._shutdown_callback is None:
            return
        try:
            result = self._shutdown_callback()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            raise RestartError(f"shutdown callback failed: {exc}") from exc

    async def restart_application(self) -> None:
        """Start a successor process and exit this one.

        Returns only by raising :class:`RestartError`; in that case the
        current process is still alive and responsible for serving.
        """
        await self._run_shutdown_callback()
        await asyncio.sleep(self._settle_delay)

        try:
            argv = self._argv_factory()
        except (OSError, RuntimeError) as exc:
            raise RestartError(f"failed to get executable path: {exc}") from exc
        if not argv or not argv[0]:
            raise RestartError("failed to get executable path")

        logger.info(f"Restarting: {' '.join(argv)}")
        try:
            self._spawn(argv, **detach_kwargs())
        except (OSError, ValueError) as exc:
            raise RestartError(f"failed to start new process: {exc}") from exc

        await asyncio.sleep(self._spawn_grace)
        await logger.complete()
        self._exit_process(0)
