"""SHA-256 integrity gate for downloaded binaries."""

from __future__ import annotations

import hashlib

from dgd.updater.errors import ChecksumMismatchError


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def verify_checksum(data: bytes, expected: str) -> None:
    """Raise :class:`ChecksumMismatchError` unless *data* hashes to *expected*."""
    actual = sha256_hex(data)
    if actual != expected.strip().lower():
        raise ChecksumMismatchError(expected=expected, actual=actual)
