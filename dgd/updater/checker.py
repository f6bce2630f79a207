"""Update checker: fetch release info, download, verify and apply.

Both entry points are coroutines so callers can run them off the request
path and cancel them; nothing here reads settings or the environment.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

import httpx
from loguru import logger

from dgd import __version__
from dgd.updater.checksum import verify_checksum
from dgd.updater.errors import (
    DownloadError,
    PlatformNotSupportedError,
    UpdateCheckError,
    UpdateError,
    UpdateFetchError,
)
from dgd.updater.host import platform_binary_name
from dgd.updater.manifest import HostedRelease, ReleaseRecord, probe_release_source
from dgd.updater.replace import BinaryReplacer, current_executable, get_replacer
from dgd.updater.version import is_newer

_CHECK_TIMEOUT = 30.0
_DOWNLOAD_TIMEOUT = 600.0


def backoff_delay(attempt: int) -> float:
    """Seconds to wait before 0-based *attempt*: 0, 1, 4, 9, ..."""
    return float(attempt * attempt)


class UpdateChecker:
    def __init__(
        self,
        update_url: str,
        *,
        max_retries: int = 3,
        timeout: float = _CHECK_TIMEOUT,
        download_timeout: float = _DOWNLOAD_TIMEOUT,
        product: str = "dgd",
        binary_name: str | None = None,
        replacer: BinaryReplacer | None = None,
        backoff: Callable[[int], float] = backoff_delay,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.update_url = update_url
        self.max_retries = max(1, max_retries)
        self.binary_name = binary_name or platform_binary_name(product)
        self._timeout = timeout
        self._download_timeout = download_timeout
        self._replacer = replacer or get_replacer()
        self._backoff = backoff
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=self._transport,
            headers={"User-Agent": f"dgd/{__version__}"},
        )

    # ------------------------------------------------------------------
    # Check
    # ------------------------------------------------------------------

    async def check_for_updates(self, current_version: str) -> ReleaseRecord | None:
        """Return a strictly newer release, or ``None`` when up to date.

        Fetch and format failures are retried with :func:`backoff_delay`
        between attempts; a release without a binary for this platform is
        reported at once since another attempt cannot change that.
        """
        last_error: UpdateError | None = None
        for attempt in range(self.max_retries):
            delay = self._backoff(attempt)
            if delay > 0:
                logger.debug(f"Update check: retrying in {delay:.0f}s (attempt {attempt + 1}/{self.max_retries})")
                await asyncio.sleep(delay)
            try:
                return await self._check_once(current_version)
            except PlatformNotSupportedError:
                raise
            except UpdateError as exc:
                logger.warning(f"Update check attempt {attempt + 1}/{self.max_retries} failed: {exc}")
                last_error = exc

        raise UpdateCheckError(self.max_retries, last_error) from last_error

    async def _check_once(self, current_version: str) -> ReleaseRecord | None:
        async with self._client(self._timeout) as client:
            try:
                resp = await client.get(self.update_url)
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                raise UpdateFetchError(f"failed to fetch update info: {exc}") from exc

        if resp.status_code != 200:
            raise UpdateFetchError(
                f"update server returned status {resp.status_code}",
                status_code=resp.status_code,
            )

        source = probe_release_source(resp.content)
        if isinstance(source, HostedRelease) and not source.is_published:
            logger.debug(f"Skipping unpublished release {source.tag_name}")
            return None

        record = source.to_record(self.binary_name)
        if not is_newer(current_version, record.version):
            logger.debug(f"Up to date (current {current_version}, latest {record.version})")
            return None

        logger.info(f"Update available: {record.version} (current {current_version})")
        return record

    # ------------------------------------------------------------------
    # Download & apply
    # ------------------------------------------------------------------

    async def download(self, record: ReleaseRecord) -> bytes:
        """Fetch the binary for *record* and verify it when a checksum is known."""
        async with self._client(self._download_timeout) as client:
            try:
                resp = await client.get(record.download_url)
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                raise DownloadError(f"failed to download update: {exc}") from exc

        if resp.status_code != 200:
            raise DownloadError(
                f"download server status {resp.status_code}",
                status_code=resp.status_code,
            )

        data = resp.content
        if record.checksum:
            verify_checksum(data, record.checksum)
        else:
            logger.warning(
                f"Update {record.version} has no published checksum; "
                f"applying {len(data)} bytes without integrity verification"
            )
        return data

    async def download_and_apply(self, record: ReleaseRecord, target: Path | None = None) -> None:
        target = target or current_executable()
        data = await self.download(record)
        await asyncio.to_thread(self._replacer.apply, data, target)
        logger.info(f"Update {record.version} applied to {target}")
