from __future__ import annotations

from threading import Lock

from ..errors import DuplicatePathError, HashCollisionError


class IdRegistry:
    """Uniqueness ledger for one build: canonical paths and stable hashes."""

    def __init__(self) -> None:
        self._paths: set[str] = set()
        self._hashes: dict[str, str] = {}
        self._lock = Lock()

    def register_path(self, canonical_path: str) -> None:
        with self._lock:
            if canonical_path in self._paths:
                raise DuplicatePathError(canonical_path)
            self._paths.add(canonical_path)

    def register_hash(self, stable_hash: str, canonical_path: str) -> None:
        with self._lock:
            existing = self._hashes.get(stable_hash)
            if existing is not None:
                raise HashCollisionError(stable_hash, canonical_path, existing)
            self._hashes[stable_hash] = canonical_path

    def register(self, stable_hash: str, canonical_path: str) -> None:
        self.register_path(canonical_path)
        self.register_hash(stable_hash, canonical_path)

    def owner_of(self, stable_hash: str) -> str | None:
        return self._hashes.get(stable_hash)

    def id_index(self) -> dict[str, str]:
        with self._lock:
            return dict(self._hashes)

    def __contains__(self, canonical_path: object) -> bool:
        return canonical_path in self._paths

    def __len__(self) -> int:
        return len(self._paths)
