"""Self-update: check for a newer release, verify it, swap it in, restart."""

from dgd.updater.checker import UpdateChecker, backoff_delay
from dgd.updater.checksum import sha256_hex, verify_checksum
from dgd.updater.errors import (
    ChecksumMismatchError,
    DownloadError,
    PlatformNotSupportedError,
    ReplaceError,
    RestartError,
    UpdateCheckError,
    UpdateError,
    UpdateFetchError,
    UpdateFormatError,
    UpdateInProgressError,
)
from dgd.updater.manifest import ReleaseRecord, parse_release, probe_release_source
from dgd.updater.restart import RestartOrchestrator
from dgd.updater.service import UpdateService
from dgd.updater.version import is_newer

__all__ = [
    "ChecksumMismatchError",
    "DownloadError",
    "PlatformNotSupportedError",
    "ReleaseRecord",
    "ReplaceError",
    "RestartError",
    "RestartOrchestrator",
    "UpdateCheckError",
    "UpdateChecker",
    "UpdateError",
    "UpdateFetchError",
    "UpdateFormatError",
    "UpdateInProgressError",
    "UpdateService",
    "backoff_delay",
    "is_newer",
    "parse_release",
    "probe_release_source",
    "sha256_hex",
    "verify_checksum",
]
