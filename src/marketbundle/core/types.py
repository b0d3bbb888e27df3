from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class Category(str, Enum):
    PHOTO_PACKS = "photo_packs"
    QUOTE_PACKS = "quote_packs"
    PRESET_SETTINGS = "preset_settings"

    @property
    def payload_field(self) -> str:
        return _PAYLOAD_FIELDS[self]

    def item_count(self, data: dict[str, Any]) -> int:
        payload = data.get(self.payload_field)
        if self is Category.PRESET_SETTINGS or not isinstance(payload, list):
            return 0
        return len(payload)

    @classmethod
    def parse(cls, value: str) -> Category | None:
        try:
            return cls(value)
        except ValueError:
            return None


_PAYLOAD_FIELDS = {
    Category.PHOTO_PACKS: "photos",
    Category.QUOTE_PACKS: "quotes",
    Category.PRESET_SETTINGS: "settings",
}

# Processing order; only affects which path is reported first on a collision.
CATEGORY_ORDER = (
    Category.PHOTO_PACKS,
    Category.QUOTE_PACKS,
    Category.PRESET_SETTINGS,
)
COLLECTIONS_DIR = "collections"


@dataclass
class Item:
    """One item file, tagged by category, with its raw fields kept verbatim."""

    category: Category
    stem: str
    source: Path
    data: dict[str, Any]
    fingerprint: str

    @property
    def canonical_path(self) -> str:
        return f"{self.category.value}/{self.stem}"

    @property
    def author(self) -> str:
        return str(self.data.get("author") or "")

    @property
    def icon_url(self) -> str | None:
        value = self.data.get("icon_url")
        return value if isinstance(value, str) and value else None

    @property
    def photos(self) -> list[str]:
        if self.category is not Category.PHOTO_PACKS:
            return []
        return [p for p in self.data.get("photos") or [] if isinstance(p, str)]


@dataclass
class Timestamps:
    created_at: str
    updated_at: str


@dataclass
class IconDetails:
    colour: str | None = None
    blurhash: str | None = None
    is_dark: bool = False
    is_light: bool = False


@dataclass
class ItemSummary:
    name: str
    display_name: str
    author: str
    id: str
    canonical_path: str
    type: str
    item_count: int
    created_at: str
    updated_at: str
    search_text: str
    slug: str
    icon_url: str | None = None
    colour: str | None = None
    blurhash: str | None = None
    language: str | None = None
    keywords: list[str] | None = None
    category_tags: list[str] | None = None
    in_collections: list[str] = field(default_factory=list)
    isDark: bool = False
    isLight: bool = False

    def to_json(self) -> dict[str, Any]:
        return _drop_none(self.__dict__)


@dataclass
class Collection:
    name: str
    display_name: str
    img: str | None
    description: str | None
    news: bool
    items: list[str] | None
    id: str
    canonical_path: str
    item_count: int
    created_at: str
    updated_at: str
    news_link: str | None = None

    def to_json(self) -> dict[str, Any]:
        data = dict(self.__dict__)
        if data["news_link"] is None:
            del data["news_link"]
        return data


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {
        key: list(value) if isinstance(value, list) else value
        for key, value in data.items()
        if value is not None
    }
