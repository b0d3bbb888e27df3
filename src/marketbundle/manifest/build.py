"""Catalog build: items and collections on disk to enriched copies + manifests.

The build runs in phases so that every integrity check (validation, unique
paths, unique hashes, collection references) happens before anything is
published:

1. load, validate and register every item, categories in fixed order
2. register collections and check their item references
3. resolve timestamps, from the history cache or ``git log``
4. enrich icons (and optionally photos), from the media cache or the network
5. derive slug / search text / tags, write enriched copies, back-link
   collections onto their items
6. write the manifests and swap the staged output into place
"""

from __future__ import annotations

import json
import logging
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from ..cache.build import CacheSet
from ..concurrency import map_bounded_fail_fast
from ..config import BuildSettings
from ..core.ids import COLLECTION_AUTHOR, content_fingerprint, stable_hash
from ..core.registry import IdRegistry
from ..core.text import extract_tags, search_text, slugify
from ..core.types import (
    CATEGORY_ORDER,
    COLLECTIONS_DIR,
    Category,
    Collection,
    IconDetails,
    Item,
    ItemSummary,
    Timestamps,
)
from ..core.validation import validate_item
from ..errors import DanglingReferenceError, ItemLoadError
from ..git.history import HistoryResolver, now_timestamp
from ..media.icons import IconEnricher, MediaOptions
from .outputs import Catalog, write_json, write_manifests
from .staging import StagedOutput

logger = logging.getLogger(__name__)


@dataclass
class _Pending:
    item: Item
    stable_hash: str
    timestamps: Timestamps | None = None
    icon: IconDetails | None = None
    photo_blurhashes: dict[str, str] | None = None


@dataclass
class _PendingCollection:
    stem: str
    source: Path
    data: dict[str, Any]
    fingerprint: str
    stable_hash: str
    items: list[str] | None
    timestamps: Timestamps | None = None

    @property
    def canonical_path(self) -> str:
        return f"{COLLECTIONS_DIR}/{self.stem}"


@dataclass
class BuildResult:
    catalog: Catalog
    output_dir: Path
    generated_at: str
    duration: float
    history_cache_hits: int = 0
    history_fetched: int = 0
    media_cache_hits: int = 0
    media_fetched: int = 0
    drafts_skipped: list[str] = field(default_factory=list)

    @property
    def total_items(self) -> int:
        return len(self.catalog.all_items())


def _read_json_file(path: Path) -> tuple[dict[str, Any], bytes]:
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ItemLoadError(str(path), str(exc)) from exc
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ItemLoadError(str(path), f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ItemLoadError(str(path), "top-level value must be an object")
    return data, raw


def _json_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.suffix == ".json" and p.is_file())


class CatalogBuilder:
    """One build. Collaborators are injectable so tests can run offline."""

    def __init__(
        self,
        settings: BuildSettings,
        *,
        version: str,
        registry: IdRegistry | None = None,
        caches: CacheSet | None = None,
        history: HistoryResolver | None = None,
        icons: IconEnricher | None = None,
    ) -> None:
        self.settings = settings
        self.version = version
        self.registry = registry if registry is not None else IdRegistry()
        self.caches = caches if caches is not None else CacheSet(
            settings.cache_dir, max_age=settings.cache_max_age
        )
        self.history = history or HistoryResolver(
            settings.repo_dir, max_workers=settings.jobs
        )
        self.icons = icons or IconEnricher(
            cache=self.caches.media,
            options=MediaOptions(
                saturation=settings.saturation,
                blurhash_size=settings.blurhash_size,
                blurhash_components=settings.blurhash_components,
                fetch_timeout=settings.fetch_timeout,
                photo_rate_limit=settings.photo_rate_limit,
            ),
        )
        self.catalog = Catalog()
        self._drafts: list[str] = []
        self._by_path: dict[str, _Pending] = {}
        self._history_hits = 0
        self._history_fetched = 0

    def run(self) -> BuildResult:
        started = time.monotonic()
        data_dir = self.settings.data_dir
        logger.info("Starting marketplace bundle from %s", data_dir)

        pending = self._load_items()
        collections = self._load_collections()
        targets = [
            (p.item.canonical_path, p.item.source, p.item.fingerprint, p)
            for p in pending
        ]
        targets += [
            (c.canonical_path, c.source, c.fingerprint, c) for c in collections
        ]
        self._assign_timestamps(targets)
        self._enrich_media(pending)

        generated_at = now_timestamp()
        with StagedOutput(self.settings.output_dir) as staged:
            if data_dir.is_dir():
                shutil.copytree(data_dir, staged.path, dirs_exist_ok=True)
            for draft in self._drafts:
                (staged.path / draft).unlink(missing_ok=True)
            for entry in pending:
                self._finish_item(entry, staged.path)
            self._finish_collections(collections, staged.path)
            self.catalog.id_index = self.registry.id_index()
            write_manifests(
                staged.path,
                self.catalog,
                version=self.version,
                generated_at=generated_at,
                schema_version=self.settings.schema_version,
                recent_count=self.settings.recent_items,
            )
            output_dir = staged.commit()

        result = BuildResult(
            catalog=self.catalog,
            output_dir=output_dir,
            generated_at=generated_at,
            duration=time.monotonic() - started,
            history_cache_hits=self._history_hits,
            history_fetched=self._history_fetched,
            media_cache_hits=self.icons.cache_hits,
            media_fetched=self.icons.fetched,
            drafts_skipped=list(self._drafts),
        )
        logger.info(
            "Marketplace bundle complete in %.2fs: %d items, %d collections, "
            "%d curators",
            result.duration,
            result.total_items,
            len(self.catalog.collections),
            len(self.catalog.curators),
        )
        return result

    def _load_items(self) -> list[_Pending]:
        pending: list[_Pending] = []
        for category in CATEGORY_ORDER:
            files = _json_files(self.settings.data_dir / category.value)
            if not files:
                continue
            logger.info("Processing %d items in %s...", len(files), category.value)
            for path in files:
                data, raw = _read_json_file(path)
                if data.get("draft") is True:
                    self._drafts.append(f"{category.value}/{path.name}")
                    logger.debug("Skipping draft %s/%s", category.value, path.stem)
                    continue
                item = Item(
                    category=category,
                    stem=path.stem,
                    source=path,
                    data=data,
                    fingerprint=content_fingerprint(raw),
                )
                validate_item(data, category, item.canonical_path)
                item_hash = stable_hash(
                    item.canonical_path,
                    item.author,
                    length=self.settings.hash_length,
                )
                self.registry.register(item_hash, item.canonical_path)
                entry = _Pending(item=item, stable_hash=item_hash)
                self._by_path[item.canonical_path] = entry
                pending.append(entry)
        return pending

    def _assign_timestamps(
        self, entries: Iterable[tuple[str, Path, str, Any]]
    ) -> None:
        """Set ``.timestamps`` on every target, fetching only cache misses."""
        misses: list[tuple[str, Path, str, Any]] = []
        for key, source, fingerprint, target in entries:
            cached = self.caches.history.get(key, fingerprint)
            if cached is not None and cached.get("created_at"):
                target.timestamps = Timestamps(
                    created_at=cached["created_at"],
                    updated_at=cached.get("updated_at") or cached["created_at"],
                )
                self._history_hits += 1
            else:
                misses.append((key, source, fingerprint, target))

        if not misses:
            return
        resolved = self.history.resolve_many(
            source.resolve() for _, source, _, _ in misses
        )
        for key, source, fingerprint, target in misses:
            timestamps = resolved.get(str(source.resolve()))
            if timestamps is None:
                logger.warning(
                    "No git history for %s, falling back to current time", key
                )
                now = now_timestamp()
                target.timestamps = Timestamps(created_at=now, updated_at=now)
                continue
            self._history_fetched += 1
            target.timestamps = timestamps
            self.caches.history.set(
                key,
                {
                    "created_at": timestamps.created_at,
                    "updated_at": timestamps.updated_at,
                    "contentHash": fingerprint,
                },
            )

    def _enrich_media(self, pending: list[_Pending]) -> None:
        with_media = [
            p
            for p in pending
            if p.item.icon_url or (self.settings.photo_blurhashes and p.item.photos)
        ]
        if with_media:
            logger.info("Extracting icon colours for %d items...", len(with_media))
        map_bounded_fail_fast(
            self._enrich_one, with_media, max_workers=self.settings.jobs
        )

    def _enrich_one(self, entry: _Pending) -> None:
        item = entry.item
        if item.icon_url:
            entry.icon = self.icons.icon_details(item.icon_url)
        if self.settings.photo_blurhashes and not item.data.get("image_api"):
            hashes: dict[str, str] = {}
            for url in item.photos:
                value = self.icons.photo_blurhash(url)
                if value:
                    hashes[url] = value
            if hashes:
                entry.photo_blurhashes = hashes

    def _finish_item(self, entry: _Pending, out_dir: Path) -> None:
        item, data = entry.item, entry.item.data
        timestamps = entry.timestamps
        if timestamps is None:
            now = now_timestamp()
            timestamps = Timestamps(created_at=now, updated_at=now)

        data["id"] = entry.stable_hash
        data["canonical_path"] = item.canonical_path
        data["created_at"] = timestamps.created_at
        data["updated_at"] = timestamps.updated_at
        icon = entry.icon or IconDetails()
        if icon.colour:
            data["colour"] = icon.colour
        if icon.blurhash:
            data["blurhash"] = icon.blurhash
        if entry.photo_blurhashes:
            data["photo_blurhashes"] = entry.photo_blurhashes
        write_json(out_dir / item.category.value / f"{item.stem}.json", data)

        keywords = data.get("keywords")
        if not keywords and self.settings.derive_tags:
            keywords = extract_tags(str(data["name"]), str(data["description"]))

        summary = ItemSummary(
            name=item.stem,
            display_name=data["name"],
            author=item.author,
            id=entry.stable_hash,
            canonical_path=item.canonical_path,
            type=item.category.value,
            item_count=item.category.item_count(data),
            created_at=timestamps.created_at,
            updated_at=timestamps.updated_at,
            search_text=search_text(data, item.canonical_path, item.author),
            slug=slugify(str(data["name"])),
            icon_url=item.icon_url,
            colour=data.get("colour"),
            blurhash=data.get("blurhash"),
            language=data.get("language"),
            keywords=list(keywords) if keywords else None,
            category_tags=data.get("category_tags") or None,
            isDark=icon.is_dark,
            isLight=icon.is_light,
        )
        self.catalog.add_item(summary, item.category)

    def _load_collections(self) -> list[_PendingCollection]:
        pending: list[_PendingCollection] = []
        for path in _json_files(self.settings.data_dir / COLLECTIONS_DIR):
            data, raw = _read_json_file(path)
            if data.get("draft") is True:
                self._drafts.append(f"{COLLECTIONS_DIR}/{path.name}")
                continue
            refs = data.get("items")
            if refs is not None and not (
                isinstance(refs, list) and all(isinstance(r, str) for r in refs)
            ):
                raise ItemLoadError(str(path), '"items" must be a list of strings')
            canonical_path = f"{COLLECTIONS_DIR}/{path.stem}"
            collection_hash = stable_hash(
                canonical_path, COLLECTION_AUTHOR, length=self.settings.hash_length
            )
            self.registry.register(collection_hash, canonical_path)
            for ref in refs or []:
                if ref not in self._by_path:
                    raise DanglingReferenceError(path.stem, ref)
            pending.append(
                _PendingCollection(
                    stem=path.stem,
                    source=path,
                    data=data,
                    fingerprint=content_fingerprint(raw),
                    stable_hash=collection_hash,
                    items=list(refs) if refs is not None else None,
                )
            )
        if pending:
            logger.info("Resolved %d collections", len(pending))
        return pending

    def _finish_collections(
        self, collections: list[_PendingCollection], out_dir: Path
    ) -> None:
        for collection in collections:
            data = collection.data
            timestamps = collection.timestamps
            for ref in collection.items or []:
                summary = self.catalog.lookup(ref)
                if summary is None:
                    raise DanglingReferenceError(collection.stem, ref)
                summary.in_collections.append(collection.stem)

            data["id"] = collection.stable_hash
            data["canonical_path"] = collection.canonical_path
            data["created_at"] = timestamps.created_at
            data["updated_at"] = timestamps.updated_at
            write_json(out_dir / COLLECTIONS_DIR / f"{collection.stem}.json", data)

            news = bool(data.get("news"))
            self.catalog.collections[collection.stem] = Collection(
                name=collection.stem,
                display_name=data.get("name") or collection.stem,
                img=data.get("img"),
                description=data.get("description"),
                news=news,
                items=collection.items,
                id=collection.stable_hash,
                canonical_path=collection.canonical_path,
                item_count=len(collection.items or []),
                created_at=timestamps.created_at,
                updated_at=timestamps.updated_at,
                news_link=data.get("news_link") if news else None,
            )
