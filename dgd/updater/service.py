"""Update service: the single place callers go through to check and apply.

Checks are read-only and may overlap freely. Applies are serialized with an
in-flight flag: a second apply while one is running is rejected.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from pathlib import Path

from loguru import logger

from dgd.updater.checker import UpdateChecker
from dgd.updater.errors import UpdateError, UpdateInProgressError
from dgd.updater.manifest import ReleaseRecord
from dgd.updater.restart import RestartOrchestrator


class UpdateService:
    def __init__(
        self,
        checker: UpdateChecker,
        orchestrator: RestartOrchestrator,
        current_version: str,
        *,
        startup_delay: float = 5.0,
        target: Path | None = None,
    ) -> None:
        self.checker = checker
        self.orchestrator = orchestrator
        self.current_version = current_version
        self._startup_delay = startup_delay
        self.target = target
        self._apply_task: asyncio.Task[None] | None = None
        self._background_task: asyncio.Task[None] | None = None
        self.last_result: ReleaseRecord | None = None
        self.last_checked_at: datetime | None = None
        self.last_apply_error: str | None = None

    @property
    def is_applying(self) -> bool:
        return self._apply_task is not None and not self._apply_task.done()

    async def check(self) -> ReleaseRecord | None:
        record = await self.checker.check_for_updates(self.current_version)
        self.last_result = record
        self.last_checked_at = datetime.now(UTC)
        return record

    # ── apply ───────────────────────────────────────────────────────────

    async def install(self, record: ReleaseRecord) -> None:
        await self.checker.download_and_apply(record, self.target)

    def apply(self, record: ReleaseRecord, *, restart: bool = True) -> asyncio.Task[None]:
        """Download, verify and install *record* in the background."""
        if self.is_applying:
            raise UpdateInProgressError("an update is already being applied")
        self.last_apply_error = None
        self._apply_task = asyncio.create_task(self._apply(record, restart))
        return self._apply_task

    async def _apply(self, record: ReleaseRecord, restart: bool) -> None:
        try:
            await self.install(record)
            if restart:
                await self.orchestrator.restart_application()
        except UpdateError as exc:
            self.last_apply_error = str(exc)
            logger.error(f"Update to {record.version} failed: {exc}")

    async def wait_for_apply(self) -> None:
        if self._apply_task is not None:
            await self._apply_task

    # ── background check ────────────────────────────────────────────────

    def start_background_check(self) -> asyncio.Task[None]:
        self._background_task = asyncio.create_task(self._startup_check())
        return self._background_task

    async def _startup_check(self) -> None:
        await asyncio.sleep(self._startup_delay)
        try:
            record = await self.check()
        except UpdateError as exc:
            logger.warning(f"Update check failed: {exc}")
            return
        if record is None:
            logger.info(f"No updates available (current version: {self.current_version})")
        else:
            logger.info(f"Update available: {record.version} (current: {self.current_version})")

    async def shutdown(self) -> None:
        """Cancel the startup check and any download still in flight."""
        for task in (self._background_task, self._apply_task):
            if task is None or task.done():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._background_task = None
        self._apply_task = None
