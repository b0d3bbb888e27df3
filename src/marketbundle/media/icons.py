from __future__ import annotations

import hashlib
import io
import json
import logging
import math
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable

from ..cache.build import BuildCache
from ..core.types import IconDetails
from ..runtime import get_verbose_logging

logger = logging.getLogger(__name__)

USER_AGENT = "marketbundle"

Fetcher = Callable[[str, float], bytes]


@dataclass(frozen=True)
class MediaOptions:
    saturation: float = 1.75
    blurhash_size: tuple[int, int] = (32, 32)
    blurhash_components: tuple[int, int] = (4, 4)
    fetch_timeout: float = 5.0
    photo_rate_limit: int = 20

    def fingerprint(self, kind: str, url: str) -> str:
        """Cache validity key: changes whenever the URL or any setting does."""
        data = {
            "kind": kind,
            "url": url,
            "saturation": self.saturation,
            "size": list(self.blurhash_size),
            "components": list(self.blurhash_components),
        }
        encoded = json.dumps(data, sort_keys=True).encode("utf-8")
        return hashlib.sha256(encoded).hexdigest()


def fetch_bytes(url: str, timeout: float) -> bytes:
    import requests

    response = requests.get(url, timeout=timeout, headers={"User-Agent": USER_AGENT})
    response.raise_for_status()
    if not response.content:
        raise ValueError("empty response body")
    return response.content


def open_image(content: bytes):
    from PIL import Image

    image = Image.open(io.BytesIO(content))
    image.load()
    return image


def dominant_colour(image, *, saturation: float) -> tuple[str, bool, bool] | None:
    """Average colour of ``image`` after a saturation boost.

    Pure black and fully transparent pixels are ignored. Channels are averaged
    as the root of the mean square. Returns ``(hex, is_dark, is_light)`` or
    ``None`` when no pixel qualifies.
    """
    from PIL import ImageEnhance

    sample = image.convert("RGBA")
    sample.thumbnail((100, 100))
    boosted = ImageEnhance.Color(sample).enhance(saturation)

    raw = boosted.tobytes()
    totals = [0, 0, 0]
    count = 0
    for offset in range(0, len(raw), 4):
        r, g, b, a = raw[offset : offset + 4]
        if a == 0 or (r == 0 and g == 0 and b == 0):
            continue
        totals[0] += r * r
        totals[1] += g * g
        totals[2] += b * b
        count += 1
    if not count:
        return None

    r, g, b = (round(math.sqrt(total / count)) for total in totals)
    brightness = (r * 299 + g * 587 + b * 114) / 1000
    is_dark = brightness < 128
    return f"#{r:02x}{g:02x}{b:02x}", is_dark, not is_dark


def encode_blurhash(
    image, *, size: tuple[int, int], components: tuple[int, int]
) -> str:
    import blurhash

    thumb = image.convert("RGB").resize(size)
    return blurhash.encode(
        thumb, x_components=components[0], y_components=components[1]
    )


class IconEnricher:
    """Colour and blurhash derivation for remote images, backed by a cache.

    Icons are cached by URL; photo blurhashes by ``photo:<url>``. Failures
    are logged and produce no value, they are never raised.
    """

    def __init__(
        self,
        *,
        cache: BuildCache | None = None,
        options: MediaOptions | None = None,
        fetch: Fetcher = fetch_bytes,
    ) -> None:
        self.cache = cache
        self.options = options or MediaOptions()
        self._fetch = fetch
        self._limiter: Any = None
        self._lock = Lock()
        self.fetched = 0
        self.cache_hits = 0

    def icon_details(self, url: str) -> IconDetails | None:
        fingerprint = self.options.fingerprint("icon", url)
        cached = self._cached(url, fingerprint)
        if cached is not None:
            return IconDetails(
                colour=cached.get("colour"),
                blurhash=cached.get("blurhash"),
                is_dark=bool(cached.get("isDark")),
                is_light=bool(cached.get("isLight")),
            )

        try:
            details = self._derive_icon(url)
        except Exception as exc:
            logger.error(
                "error reading %s: %s", url, exc, exc_info=get_verbose_logging()
            )
            return None

        if self.cache is not None:
            self.cache.set(
                url,
                {
                    "contentHash": fingerprint,
                    "colour": details.colour,
                    "blurhash": details.blurhash,
                    "isDark": details.is_dark,
                    "isLight": details.is_light,
                },
            )
        return details

    def photo_blurhash(self, url: str) -> str | None:
        key = f"photo:{url}"
        fingerprint = self.options.fingerprint("photo", url)
        cached = self._cached(key, fingerprint)
        if cached is not None:
            return cached.get("blurhash")

        self._throttle()
        try:
            image = open_image(self._fetch(url, self.options.fetch_timeout))
            value = encode_blurhash(
                image,
                size=self.options.blurhash_size,
                components=self.options.blurhash_components,
            )
        except Exception as exc:
            logger.warning("Could not blurhash photo %s: %s", url, exc)
            return None

        if self.cache is not None:
            self.cache.set(key, {"contentHash": fingerprint, "blurhash": value})
        return value

    def _cached(self, key: str, fingerprint: str) -> dict[str, Any] | None:
        if self.cache is None:
            return None
        cached = self.cache.get(key, fingerprint)
        if cached is not None:
            with self._lock:
                self.cache_hits += 1
        return cached

    def _derive_icon(self, url: str) -> IconDetails:
        image = open_image(self._fetch(url, self.options.fetch_timeout))
        with self._lock:
            self.fetched += 1
        details = IconDetails()
        colour = dominant_colour(image, saturation=self.options.saturation)
        if colour is not None:
            details.colour, details.is_dark, details.is_light = colour
        details.blurhash = encode_blurhash(
            image,
            size=self.options.blurhash_size,
            components=self.options.blurhash_components,
        )
        return details

    def _throttle(self) -> None:
        if self.options.photo_rate_limit <= 0:
            return
        with self._lock:
            if self._limiter is None:
                from pyrate_limiter import Duration, Limiter, Rate

                self._limiter = Limiter(
                    Rate(self.options.photo_rate_limit, Duration.SECOND),
                    raise_when_fail=False,
                    max_delay=int(Duration.SECOND) * 2,
                )
            limiter = self._limiter
        limiter.try_acquire("photos")
