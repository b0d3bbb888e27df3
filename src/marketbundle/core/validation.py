from __future__ import annotations

from typing import Any, Callable, Mapping

from ..errors import ValidationError
from .types import Category

FieldCheck = Callable[[Any], bool]


def _non_empty_text(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def _is_list(value: Any) -> bool:
    return isinstance(value, list)


def _is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


REQUIRED_FIELDS: dict[Category, tuple[tuple[str, FieldCheck], ...]] = {
    Category.PHOTO_PACKS: (
        ("name", _non_empty_text),
        ("description", _non_empty_text),
        ("author", _non_empty_text),
        ("icon_url", _non_empty_text),
        ("photos", _is_list),
    ),
    Category.QUOTE_PACKS: (
        ("name", _non_empty_text),
        ("description", _non_empty_text),
        ("author", _non_empty_text),
        ("quotes", _is_list),
    ),
    # an empty settings mapping is a valid preset
    Category.PRESET_SETTINGS: (
        ("name", _non_empty_text),
        ("description", _non_empty_text),
        ("author", _non_empty_text),
        ("settings", _is_mapping),
    ),
}

_NON_EMPTY_PAYLOADS = {
    Category.PHOTO_PACKS: ("photos", "must contain at least one photo"),
    Category.QUOTE_PACKS: ("quotes", "must contain at least one quote"),
}


def required_field_names(category: Category) -> list[str]:
    return [name for name, _ in REQUIRED_FIELDS[category]]


def validate_item(
    data: Mapping[str, Any], category: Category, canonical_path: str
) -> None:
    """Raise :class:`ValidationError` for the first missing or empty field."""
    for name, check in REQUIRED_FIELDS[category]:
        if name not in data or not check(data[name]):
            raise ValidationError(
                canonical_path, name, f'missing required field "{name}"'
            )

    non_empty = _NON_EMPTY_PAYLOADS.get(category)
    if non_empty is not None:
        name, message = non_empty
        if not data[name]:
            raise ValidationError(canonical_path, name, message)
