"""Helpers for versioned (gateway) set identifiers.

A versioned set id encodes a set id and a version number as
``"<set_id>,v<version>"``, e.g. ``"hw1,v3"``.
"""

from __future__ import annotations

import re
import time

_VSET_ID = re.compile(r"^(.+?),v(\d+)$")


def make_vset_id(set_id: str, version_id: int) -> str:
    """``make_vset_id("hw1", 3)`` → ``"hw1,v3"``."""
    return f"{set_id},v{version_id}"


def grok_vset_id(vset_id: str) -> tuple[str, int | None]:
    """Split a versioned set id into ``(set_id, version_id)``.

    Unversioned ids come back unchanged with ``None`` as the version.
    """
    match = _VSET_ID.fullmatch(vset_id)
    if match is None:
        return vset_id, None
    return match.group(1), int(match.group(2))


def now_epoch() -> int:
    """Current time as integer epoch seconds (the store's date format)."""
    return int(time.time())


__all__ = ["grok_vset_id", "make_vset_id", "now_epoch"]
