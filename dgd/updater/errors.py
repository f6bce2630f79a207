"""Error types raised by the self-update flow."""

from __future__ import annotations


class UpdateError(RuntimeError):
    """Base class for every update failure."""


class UpdateFetchError(UpdateError):
    """Update source unreachable or answered with a non-200 status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpdateFormatError(UpdateError):
    """Update source payload matched neither known release schema."""


class PlatformNotSupportedError(UpdateFormatError):
    """Release carries no binary for the running OS / architecture."""

    def __init__(self, binary_name: str) -> None:
        super().__init__(f"no binary for platform: {binary_name}")
        self.binary_name = binary_name


class UpdateCheckError(UpdateError):
    """Every check attempt failed."""

    def __init__(self, attempts: int, last_error: BaseException | None) -> None:
        super().__init__(f"failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class DownloadError(UpdateError):
    """Release binary unreachable or answered with a non-200 status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ChecksumMismatchError(UpdateError):
    """Downloaded payload does not match the published digest.

    Either the transfer was corrupted or the source is compromised; never
    retried automatically.
    """

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"checksum mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class ReplaceError(UpdateError):
    """Swapping the executable failed; the previous binary is still in place."""


class RestartError(UpdateError):
    """Restart aborted; the current process keeps running."""


class UpdateInProgressError(UpdateError):
    """An apply is already running in this process."""
