# width_cache.py
# SPDX-License-Identifier: MIT
"""Persisted canonical widths, so repeated runs can skip discovery.

Entries are keyed by resolved path, size, mtime, and anchor pattern, so any
change to the file or the pattern misses the cache. The runner loads the
cache once, hands workers a read-only snapshot, and merges their new
discoveries back after the pool has drained.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from .anchors import AnchorPattern
from .log import get_logger

__all__ = ["WidthCache", "cache_key_for"]

log = get_logger(__name__)

_SCHEMA_VERSION = 1


def cache_key_for(path: str | Path, anchor: AnchorPattern) -> str:
    """Fingerprint of a file plus the anchor pattern used on it."""
    p = Path(path).resolve()
    st = p.stat()
    return f"{p}|{st.st_size}|{st.st_mtime_ns}|{anchor.key}"


class WidthCache:
    """JSON-backed mapping from file fingerprint to canonical width."""

    def __init__(self, path: str | Path | None = None, entries: Mapping[str, int] | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self._entries: dict[str, int] = dict(entries or {})
        self._dirty = False

    @classmethod
    def load(cls, path: str | Path | None) -> "WidthCache":
        """Load ``path`` if it exists; unreadable caches start empty."""
        if path is None:
            return cls()
        p = Path(path)
        if not p.exists():
            return cls(p)
        try:
            payload = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            log.warning("Ignoring unreadable width cache %s: %s", p, exc)
            return cls(p)
        entries = payload.get("entries") if isinstance(payload, Mapping) else None
        if not isinstance(entries, Mapping):
            log.warning("Ignoring width cache %s with unexpected layout", p)
            return cls(p)
        clean = {str(k): int(v) for k, v in entries.items() if isinstance(v, int) and v > 0}
        return cls(p, clean)

    def __len__(self) -> int:
        return len(self._entries)

    def snapshot(self) -> dict[str, int]:
        return dict(self._entries)

    def get(self, key: str) -> Optional[int]:
        return self._entries.get(key)

    def put(self, key: str, width: int) -> None:
        if self._entries.get(key) != width:
            self._entries[key] = int(width)
            self._dirty = True

    def save(self) -> None:
        """Atomically rewrite the cache file when entries changed."""
        if self.path is None or not self._dirty:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(f"{self.path.name}.tmp")
        payload: dict[str, Any] = {"schema_version": _SCHEMA_VERSION, "entries": self._entries}
        tmp.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        os.replace(tmp, self.path)
        self._dirty = False
