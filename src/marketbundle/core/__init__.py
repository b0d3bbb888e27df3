from .ids import COLLECTION_AUTHOR, content_fingerprint, stable_hash
from .registry import IdRegistry
from .text import extract_tags, search_text, slugify
from .types import CATEGORY_ORDER, Category, Collection, Item, ItemSummary
from .validation import REQUIRED_FIELDS, validate_item

__all__ = [
    "CATEGORY_ORDER",
    "COLLECTION_AUTHOR",
    "Category",
    "Collection",
    "IdRegistry",
    "Item",
    "ItemSummary",
    "REQUIRED_FIELDS",
    "content_fingerprint",
    "extract_tags",
    "search_text",
    "slugify",
    "stable_hash",
    "validate_item",
]
