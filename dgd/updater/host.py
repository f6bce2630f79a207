"""Host platform naming for release assets and detached process spawning."""

from __future__ import annotations

import platform as _platform
import subprocess
import sys
from typing import Any

_ARCH_ALIASES: dict[str, str] = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv8": "arm64",
}


def current_os() -> str:
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    if sys.platform.startswith("linux"):
        return "linux"
    return "unknown"


def current_arch() -> str:
    machine = _platform.machine().lower()
    return _ARCH_ALIASES.get(machine, machine)


def platform_binary_name(product: str, os_name: str | None = None, arch: str | None = None) -> str:
    """Asset name published for a platform, e.g. ``dgd-linux-amd64``."""
    os_name = os_name or current_os()
    arch = arch or current_arch()
    name = f"{product}-{os_name}-{arch}"
    if os_name == "windows":
        name += ".exe"
    return name


def detach_kwargs() -> dict[str, Any]:
    """Popen kwargs so the child survives the parent's exit."""
    if current_os() == "windows":
        return {
            "creationflags": subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP,
        }
    return {"start_new_session": True}
