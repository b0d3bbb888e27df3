"""Persistent store for expensive per-item derivations.

Each namespace lives in its own JSON file shaped as ``{version, entries}``.
An entry is reusable only while its ``contentHash`` matches the caller's
current fingerprint and it is younger than ``max_age``. The store is read once
before a build and written once after it; failures on either side are logged
and otherwise ignored.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Callable

from ..runtime import get_full_rebuild

logger = logging.getLogger(__name__)

CACHE_VERSION = "2"
DEFAULT_MAX_AGE = timedelta(days=7)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_cached_at(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class BuildCache:
    def __init__(
        self,
        path: Path,
        *,
        version: str = CACHE_VERSION,
        max_age: timedelta = DEFAULT_MAX_AGE,
        clock: Clock = _utcnow,
    ) -> None:
        self.path = Path(path)
        self.version = version
        self.max_age = max_age
        self._clock = clock
        self._entries: dict[str, dict[str, Any]] = {}
        self._lock = Lock()

    @property
    def name(self) -> str:
        return self.path.stem

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def load(self) -> None:
        self._entries = {}
        if get_full_rebuild():
            logger.info("Full rebuild requested, ignoring %s cache", self.name)
            return
        if not self.path.exists():
            return
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning(
                "Failed to load %s cache, starting fresh: %s", self.name, exc
            )
            return

        if not isinstance(payload, dict) or payload.get("version") != self.version:
            logger.warning(
                "Cache version mismatch for %s, invalidating cache", self.name
            )
            return
        entries = payload.get("entries")
        if not isinstance(entries, dict):
            return
        self._entries = {
            str(key): entry
            for key, entry in entries.items()
            if isinstance(entry, dict)
        }
        logger.info("Loaded %s cache with %d entries", self.name, len(self._entries))

    def save(self) -> None:
        self.clean_expired()
        body = {"version": self.version, "entries": self._entries}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(".tmp")
            tmp.write_text(
                json.dumps(body, indent=2, ensure_ascii=False), encoding="utf-8"
            )
            tmp.replace(self.path)
        except OSError as exc:
            logger.warning("Failed to save %s cache: %s", self.name, exc)
            return
        logger.info("Saved %s cache with %d entries", self.name, len(self._entries))

    def get(self, key: str, content_hash: str) -> dict[str, Any] | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.get("contentHash") != content_hash or self._is_expired(entry):
                del self._entries[key]
                return None
            return dict(entry)

    def set(self, key: str, entry: dict[str, Any]) -> None:
        stamped = dict(entry)
        stamped["cachedAt"] = self._clock().isoformat()
        with self._lock:
            self._entries[key] = stamped

    def clean_expired(self) -> int:
        with self._lock:
            expired = [
                key
                for key, entry in self._entries.items()
                if self._is_expired(entry)
            ]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info("Cleaned %d expired %s cache entries", len(expired), self.name)
        return len(expired)

    def stats(self) -> dict[str, Any]:
        parsed = (_parse_cached_at(e.get("cachedAt")) for e in self._entries.values())
        stamps = [ts for ts in parsed if ts is not None]
        return {
            "total_entries": len(self._entries),
            "oldest_entry": min(stamps).isoformat() if stamps else None,
            "newest_entry": max(stamps).isoformat() if stamps else None,
        }

    def _is_expired(self, entry: dict[str, Any]) -> bool:
        if self.max_age == timedelta(0):
            return True
        cached_at = _parse_cached_at(entry.get("cachedAt"))
        if cached_at is None:
            return True
        return (self._clock() - cached_at) >= self.max_age


class CacheSet:
    """The history and media namespaces that share one cache directory."""

    def __init__(
        self,
        root: Path,
        *,
        max_age: timedelta = DEFAULT_MAX_AGE,
        clock: Clock = _utcnow,
    ) -> None:
        self.root = Path(root)
        self.history = BuildCache(
            self.root / "history.json", max_age=max_age, clock=clock
        )
        self.media = BuildCache(self.root / "media.json", max_age=max_age, clock=clock)

    def __iter__(self):
        return iter((self.history, self.media))

    def load(self) -> None:
        for cache in self:
            cache.load()

    def save(self) -> None:
        for cache in self:
            cache.save()
