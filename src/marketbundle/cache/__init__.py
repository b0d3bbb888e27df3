from .build import (
    CACHE_VERSION,
    DEFAULT_MAX_AGE,
    BuildCache,
    CacheSet,
)

__all__ = [
    "CACHE_VERSION",
    "DEFAULT_MAX_AGE",
    "BuildCache",
    "CacheSet",
]
