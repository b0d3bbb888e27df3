from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..core.types import CATEGORY_ORDER, Category, Collection, ItemSummary

MANIFEST_FILE = "manifest.json"
MANIFEST_LITE_FILE = "manifest-lite.json"
SEARCH_INDEX_FILE = "search-index.json"
STATS_FILE = "stats.json"


@dataclass
class Catalog:
    """Everything one build produced, ready to be serialised."""

    items: dict[Category, dict[str, ItemSummary]] = field(
        default_factory=lambda: {category: {} for category in CATEGORY_ORDER}
    )
    collections: dict[str, Collection] = field(default_factory=dict)
    curators: dict[str, list[str]] = field(default_factory=dict)
    id_index: dict[str, str] = field(default_factory=dict)

    def all_items(self) -> list[ItemSummary]:
        return [
            summary
            for category in CATEGORY_ORDER
            for summary in self.items[category].values()
        ]

    def add_item(self, summary: ItemSummary, category: Category) -> None:
        self.items[category][summary.name] = summary
        self.curators.setdefault(summary.author, []).append(summary.canonical_path)

    def lookup(self, reference: str) -> ItemSummary | None:
        kind, _, name = reference.partition("/")
        category = Category.parse(kind)
        if category is None:
            return None
        return self.items[category].get(name)


def _header(version: str, generated_at: str, schema_version: str) -> dict[str, str]:
    return {
        "_version": version,
        "_generated_at": generated_at,
        "_schema_version": schema_version,
    }


def build_manifest(
    catalog: Catalog, *, version: str, generated_at: str, schema_version: str
) -> dict[str, Any]:
    manifest: dict[str, Any] = _header(version, generated_at, schema_version)
    manifest["collections"] = {
        name: collection.to_json() for name, collection in catalog.collections.items()
    }
    manifest["curators"] = {
        author: list(paths) for author, paths in catalog.curators.items()
    }
    for category in CATEGORY_ORDER:
        manifest[category.value] = {
            name: summary.to_json()
            for name, summary in catalog.items[category].items()
        }
    manifest["_id_index"] = dict(catalog.id_index)
    return manifest


def build_manifest_lite(
    catalog: Catalog, *, version: str, generated_at: str, schema_version: str
) -> dict[str, Any]:
    lite: dict[str, Any] = _header(version, generated_at, schema_version)
    lite["items"] = [
        _without_none(
            {
                "id": item.id,
                "name": item.name,
                "display_name": item.display_name,
                "type": item.type,
                "author": item.author,
                "icon_url": item.icon_url,
                "colour": item.colour,
                "blurhash": item.blurhash,
            }
        )
        for item in catalog.all_items()
    ]
    lite["collections"] = [
        {
            "id": collection.id,
            "name": collection.name,
            "display_name": collection.display_name,
            "img": collection.img,
        }
        for collection in catalog.collections.values()
    ]
    return lite


def build_search_index(catalog: Catalog) -> dict[str, Any]:
    authors: dict[str, list[str]] = {}
    keywords: dict[str, list[str]] = {}
    category_tags: dict[str, list[str]] = {}
    entries: list[dict[str, Any]] = []

    for item in catalog.all_items():
        authors.setdefault(item.author, []).append(item.id)
        for keyword in item.keywords or []:
            keywords.setdefault(keyword, []).append(item.id)
        for tag in item.category_tags or []:
            category_tags.setdefault(tag, []).append(item.id)
        entries.append(
            _without_none(
                {
                    "id": item.id,
                    "canonical_path": item.canonical_path,
                    "type": item.type,
                    "search_text": item.search_text,
                    "display_name": item.display_name,
                    "author": item.author,
                    "keywords": item.keywords,
                    "category_tags": item.category_tags,
                }
            )
        )

    return {
        "items": entries,
        "authors": authors,
        "keywords": keywords,
        "category_tags": category_tags,
    }


def build_stats(
    catalog: Catalog, *, generated_at: str, recent_count: int
) -> dict[str, Any]:
    items = catalog.all_items()
    recent = sorted(items, key=lambda item: item.created_at, reverse=True)
    return {
        "total_items": len(items),
        "items_by_category": {
            category.value: len(catalog.items[category]) for category in CATEGORY_ORDER
        },
        "total_collections": len(catalog.collections),
        "total_curators": len(catalog.curators),
        "recent_items": [item.to_json() for item in recent[:recent_count]],
        "generated_at": generated_at,
    }


def write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")


def write_manifests(
    out_dir: Path,
    catalog: Catalog,
    *,
    version: str,
    generated_at: str,
    schema_version: str,
    recent_count: int,
) -> list[Path]:
    header = {
        "version": version,
        "generated_at": generated_at,
        "schema_version": schema_version,
    }
    outputs = {
        MANIFEST_FILE: build_manifest(catalog, **header),
        MANIFEST_LITE_FILE: build_manifest_lite(catalog, **header),
        SEARCH_INDEX_FILE: build_search_index(catalog),
        STATS_FILE: build_stats(
            catalog, generated_at=generated_at, recent_count=recent_count
        ),
    }
    written = []
    for filename, data in outputs.items():
        path = out_dir / filename
        write_json(path, data)
        written.append(path)
    return written


def _without_none(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}
