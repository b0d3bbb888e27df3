from .icons import (
    IconEnricher,
    MediaOptions,
    dominant_colour,
    encode_blurhash,
    fetch_bytes,
)

__all__ = [
    "IconEnricher",
    "MediaOptions",
    "dominant_colour",
    "encode_blurhash",
    "fetch_bytes",
]
