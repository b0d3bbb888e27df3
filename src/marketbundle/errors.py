from __future__ import annotations


class BuildError(RuntimeError):
    """Integrity violation that aborts the whole build."""


class ItemLoadError(BuildError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"LOAD ERROR: {path}: {reason}")
        self.path = path
        self.reason = reason


class ValidationError(BuildError):
    def __init__(self, canonical_path: str, field: str, message: str) -> None:
        super().__init__(f"VALIDATION ERROR: {canonical_path} {message}")
        self.canonical_path = canonical_path
        self.field = field
        self.message = message


class DuplicatePathError(BuildError):
    def __init__(self, canonical_path: str) -> None:
        super().__init__(f"DUPLICATE PATH: {canonical_path} already exists")
        self.canonical_path = canonical_path


class HashCollisionError(BuildError):
    def __init__(self, stable_hash: str, canonical_path: str, existing: str) -> None:
        super().__init__(
            f"HASH COLLISION: {canonical_path} and {existing} generate "
            f"the same hash {stable_hash}"
        )
        self.stable_hash = stable_hash
        self.canonical_path = canonical_path
        self.existing = existing


class DanglingReferenceError(BuildError):
    def __init__(self, collection: str, reference: str) -> None:
        super().__init__(
            f'Item "{reference}" in the "{collection}" collection does not exist'
        )
        self.collection = collection
        self.reference = reference
