"""Atomic replacement of the running executable.

POSIX lets us ``rename`` over an executable that is in use, so the new image
is written to a temp file beside the target and swapped in with one
``os.replace``. Windows locks the running image against writes but still
allows renaming it, so the old file is moved aside to ``<name>.old`` first and
removed by :meth:`WindowsReplacer.cleanup` on the next start.
"""

from __future__ import annotations

import os
import stat
import sys
import tempfile
from pathlib import Path
from typing import Protocol

from loguru import logger

from dgd.updater.errors import ReplaceError
from dgd.updater.host import current_os

_DEFAULT_MODE = 0o755


class BinaryReplacer(Protocol):
    def apply(self, data: bytes, target: Path) -> None: ...

    def cleanup(self, target: Path) -> None: ...


def _write_temp(data: bytes, target: Path) -> Path:
    """Write *data* to a fresh temp file in *target*'s directory."""
    fd, temp_name = tempfile.mkstemp(
        dir=target.parent,
        prefix=f".{target.name}.",
        suffix=".new",
    )
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
    return temp_path


def _target_mode(target: Path) -> int:
    try:
        mode = stat.S_IMODE(target.stat().st_mode)
    except FileNotFoundError:
        mode = _DEFAULT_MODE
    return mode | stat.S_IXUSR


class PosixReplacer:
    def apply(self, data: bytes, target: Path) -> None:
        temp_path: Path | None = None
        try:
            mode = _target_mode(target)
            temp_path = _write_temp(data, target)
            os.chmod(temp_path, mode)
            os.replace(temp_path, target)
        except OSError as exc:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            raise ReplaceError(f"failed to apply update to {target}: {exc}") from exc
        logger.info(f"Replaced executable {target} ({len(data)} bytes)")

    def cleanup(self, target: Path) -> None:
        for leftover in target.parent.glob(f".{target.name}.*.new"):
            leftover.unlink(missing_ok=True)


class WindowsReplacer:
    def apply(self, data: bytes, target: Path) -> None:
        old_path = target.with_name(target.name + ".old")
        temp_path: Path | None = None
        moved_aside = False
        try:
            temp_path = _write_temp(data, target)
            old_path.unlink(missing_ok=True)
            if target.exists():
                os.rename(target, old_path)
                moved_aside = True
            os.rename(temp_path, target)
        except OSError as exc:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            if moved_aside and not target.exists():
                try:
                    os.rename(old_path, target)
                except OSError as restore_exc:
                    logger.error(f"Could not restore {target} from {old_path}: {restore_exc}")
            raise ReplaceError(f"failed to apply update to {target}: {exc}") from exc
        logger.info(f"Replaced executable {target} ({len(data)} bytes); previous image at {old_path}")

    def cleanup(self, target: Path) -> None:
        """Delete the image left behind by the previous update."""
        old_path = target.with_name(target.name + ".old")
        try:
            old_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.debug(f"Previous image {old_path} still locked: {exc}")
        for leftover in target.parent.glob(f".{target.name}.*.new"):
            leftover.unlink(missing_ok=True)


def get_replacer(os_name: str | None = None) -> BinaryReplacer:
    if (os_name or current_os()) == "windows":
        return WindowsReplacer()
    return PosixReplacer()


# ── running program ─────────────────────────────────────────────────────────


def is_frozen() -> bool:
    """True when running as a packaged single-file executable."""
    return bool(getattr(sys, "frozen", False))


def current_executable() -> Path:
    """Path of the binary that backs the running program.

    A source checkout has no binary of its own to swap, so this refuses
    rather than overwrite an interpreter or a script.
    """
    if not is_frozen():
        raise ReplaceError("not running from a packaged executable; nothing to replace")
    return Path(sys.executable).resolve()


def restart_argv() -> list[str]:
    """Argument vector that starts this program again the same way."""
    if is_frozen():
        return [str(Path(sys.executable).resolve()), *sys.argv[1:]]
    orig = getattr(sys, "orig_argv", None) or [sys.executable, *sys.argv]
    return [sys.executable, *orig[1:]]
