from __future__ import annotations

from pathlib import Path

import pytest

from marketbundle.cache.build import BuildCache
from marketbundle.media import icons
from marketbundle.media.icons import (
    IconEnricher,
    MediaOptions,
    dominant_colour,
    open_image,
)

from conftest import make_png


@pytest.fixture(autouse=True)
def _stub_blurhash(monkeypatch):
    monkeypatch.setattr(
        icons, "encode_blurhash", lambda image, *, size, components: "LKO2?U%2Tw=w"
    )


class _Fetch:
    def __init__(self, payloads: dict[str, bytes]) -> None:
        self.payloads = payloads
        self.calls: list[str] = []

    def __call__(self, url: str, timeout: float) -> bytes:
        self.calls.append(url)
        if url not in self.payloads:
            raise OSError(f"404 for {url}")
        return self.payloads[url]


def test_white_icon_is_light() -> None:
    colour, is_dark, is_light = dominant_colour(
        open_image(make_png((255, 255, 255))), saturation=1.75
    )
    assert colour == "#ffffff"
    assert not is_dark and is_light


def test_navy_icon_is_dark() -> None:
    _, is_dark, is_light = dominant_colour(
        open_image(make_png((10, 20, 90))), saturation=1.75
    )
    assert is_dark and not is_light


def test_pure_black_pixels_are_ignored() -> None:
    assert dominant_colour(open_image(make_png((0, 0, 0))), saturation=1.75) is None


def test_icon_details_are_cached_by_url(tmp_path: Path) -> None:
    url = "https://img.example.com/icon.png"
    fetch = _Fetch({url: make_png((255, 255, 255))})
    cache = BuildCache(tmp_path / "media.json")
    enricher = IconEnricher(cache=cache, fetch=fetch)

    first = enricher.icon_details(url)
    second = enricher.icon_details(url)

    assert first.colour == "#ffffff" and first.blurhash == "LKO2?U%2Tw=w"
    assert second.colour == first.colour and second.is_light
    assert fetch.calls == [url]
    assert (enricher.fetched, enricher.cache_hits) == (1, 1)


def test_changed_options_invalidate_cached_icon(tmp_path: Path) -> None:
    url = "https://img.example.com/icon.png"
    fetch = _Fetch({url: make_png((120, 60, 30))})
    cache = BuildCache(tmp_path / "media.json")
    IconEnricher(cache=cache, fetch=fetch).icon_details(url)
    IconEnricher(
        cache=cache, fetch=fetch, options=MediaOptions(saturation=1.0)
    ).icon_details(url)
    assert fetch.calls == [url, url]


def test_unreachable_icon_yields_nothing(caplog) -> None:
    enricher = IconEnricher(fetch=_Fetch({}))
    with caplog.at_level("ERROR"):
        assert enricher.icon_details("https://img.example.com/missing.png") is None
    assert "error reading https://img.example.com/missing.png" in caplog.text


def test_undecodable_icon_yields_nothing() -> None:
    url = "https://img.example.com/broken.png"
    enricher = IconEnricher(fetch=_Fetch({url: b"not an image"}))
    assert enricher.icon_details(url) is None


def test_photo_blurhash_uses_prefixed_cache_key(tmp_path: Path) -> None:
    url = "https://img.example.com/1.jpg"
    cache = BuildCache(tmp_path / "media.json")
    enricher = IconEnricher(
        cache=cache,
        fetch=_Fetch({url: make_png((50, 120, 200))}),
        options=MediaOptions(photo_rate_limit=0),
    )
    assert enricher.photo_blurhash(url) == "LKO2?U%2Tw=w"
    assert f"photo:{url}" in cache
    assert url not in cache


def test_failed_photo_is_skipped() -> None:
    enricher = IconEnricher(
        fetch=_Fetch({}), options=MediaOptions(photo_rate_limit=0)
    )
    assert enricher.photo_blurhash("https://img.example.com/gone.jpg") is None
