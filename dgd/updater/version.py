"""Lenient dotted-numeric version comparison."""

from __future__ import annotations

import re

DEV_VERSION = "0.0.0"

_LEADING_DIGITS = re.compile(r"\d+")


def _strip_v(version: str) -> str:
    version = version.strip()
    return version[1:] if version.startswith("v") else version


def _components(version: str) -> list[int]:
    parts: list[int] = []
    for token in version.split("."):
        # "3-beta" -> 3, "rc1" -> 0
        m = _LEADING_DIGITS.match(token.strip())
        parts.append(int(m.group()) if m else 0)
    return parts


def is_newer(current: str, candidate: str) -> bool:
    """Return ``True`` if *candidate* is strictly newer than *current*.

    Missing trailing components count as zero, so ``"1.2"`` and ``"1.2.0"``
    are equal in both directions. A development build (``0.0.0``) treats any
    other version as newer.
    """
    cur = _strip_v(current)
    new = _strip_v(candidate)

    if cur == DEV_VERSION:
        return new != DEV_VERSION

    cur_parts = _components(cur)
    new_parts = _components(new)
    width = max(len(cur_parts), len(new_parts))
    cur_parts += [0] * (width - len(cur_parts))
    new_parts += [0] * (width - len(new_parts))

    for c, n in zip(cur_parts, new_parts):
        if n > c:
            return True
        if n < c:
            return False
    return False
