from __future__ import annotations

import hashlib

DEFAULT_HASH_LENGTH = 12
COLLECTION_AUTHOR = "marketplace"


def stable_hash(
    canonical_path: str, author: str, *, length: int = DEFAULT_HASH_LENGTH
) -> str:
    """Public identifier for ``canonical_path`` as published by ``author``.

    A truncated sha256 of ``"<canonical_path>:<author>"``. Uniqueness within a
    build is enforced by :class:`~marketbundle.core.registry.IdRegistry`, not
    assumed from the digest.
    """
    content = f"{canonical_path}:{author}"
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:length]


def content_fingerprint(raw: bytes | str) -> str:
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    return hashlib.sha256(raw).hexdigest()


def canonical_path_for(category: str, stem: str) -> str:
    return f"{category}/{stem}"
