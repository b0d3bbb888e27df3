from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Any, Callable

import pytest
from PIL import Image

from marketbundle.core.types import Timestamps


def make_png(colour: tuple[int, int, int], size: tuple[int, int] = (8, 8)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, colour).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeHistory:
    """Stands in for ``HistoryResolver``; dates are keyed by file name."""

    def __init__(self, dates: dict[str, Timestamps] | None = None) -> None:
        self.dates = dates or {}
        self.calls: list[list[str]] = []

    def resolve_many(self, paths) -> dict[str, Timestamps | None]:
        batch = [str(p) for p in paths]
        self.calls.append(batch)
        return {path: self.dates.get(Path(path).name) for path in batch}

    @property
    def requested(self) -> list[str]:
        return [Path(p).name for batch in self.calls for p in batch]


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    root = tmp_path / "data"
    root.mkdir()
    return root


@pytest.fixture
def write_item(data_dir: Path) -> Callable[[str, str, dict[str, Any]], Path]:
    def _write(category: str, stem: str, payload: dict[str, Any]) -> Path:
        path = data_dir / category / f"{stem}.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write


def photo_pack(**overrides: Any) -> dict[str, Any]:
    item = {
        "name": "Nature",
        "description": "Forests and mountains",
        "author": "same_author",
        "icon_url": "https://img.example.com/nature.png",
        "photos": ["https://img.example.com/1.jpg", "https://img.example.com/2.jpg"],
    }
    item.update(overrides)
    return item


def quote_pack(**overrides: Any) -> dict[str, Any]:
    item = {
        "name": "Motivational Quotes",
        "description": "Inspiring quotes to keep you focused",
        "author": "quote_curator",
        "quotes": [{"quote": "Keep going", "author": "Someone"}],
        "language": "en",
    }
    item.update(overrides)
    return item


def preset(**overrides: Any) -> dict[str, Any]:
    item = {
        "name": "Minimal Setup",
        "description": "A quiet dashboard",
        "author": "preset_maker",
        "settings": {"theme": "dark"},
    }
    item.update(overrides)
    return item
