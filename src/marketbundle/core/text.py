from __future__ import annotations

import re
from collections import Counter
from typing import Any, Mapping

_SLUG_SEPARATOR = re.compile(r"[^a-z0-9]+")
_TAG_PUNCTUATION = re.compile(r"[^a-z0-9\s]")
MAX_TAGS = 10

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "is", "are", "was", "were", "be", "been",
        "being", "have", "has", "had", "do", "does", "did", "will", "would",
        "should", "could", "may", "might", "must", "can", "this", "that",
        "these", "those", "i", "you", "he", "she", "it", "we", "they", "them",
        "their", "what", "which", "who", "when", "where", "why", "how", "all",
        "each", "every", "both", "few", "more", "most", "other", "some",
        "such", "no", "nor", "not", "only", "own", "same", "so", "than", "too",
        "very", "s", "t", "just", "don", "now", "source",
    }
)  # fmt: skip


def slugify(name: str) -> str:
    """URL-friendly slug.

    Only ``[a-z0-9]`` survive; every other run of characters, including
    accented letters, collapses into a single hyphen (``"São"`` becomes
    ``"s-o"``). Published slugs depend on this, so it is kept as is.
    """
    return _SLUG_SEPARATOR.sub("-", name.lower()).strip("-")


def search_text(item: Mapping[str, Any], canonical_path: str, author: str) -> str:
    parts = [
        str(item.get("name") or ""),
        str(item.get("description") or ""),
        author,
        canonical_path.replace("/", " "),
        str(item.get("language") or ""),
    ]
    return " ".join(parts).lower()


def extract_tags(name: str, description: str) -> list[str]:
    """Most frequent meaningful words of ``name`` and ``description``."""
    text = _TAG_PUNCTUATION.sub(" ", f"{name} {description}".lower())
    words = [w for w in text.split() if len(w) > 2 and w not in STOP_WORDS]
    # Counter preserves first-insertion order, and most_common is a stable sort
    return [word for word, _ in Counter(words).most_common(MAX_TAGS)]
