from __future__ import annotations

import os
import re
from dataclasses import dataclass, field, fields, replace
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping

from .core.ids import DEFAULT_HASH_LENGTH
from .runtime import get_build_jobs

CONFIG_FILENAME = "marketbundle.yaml"
ENV_PREFIX = "MARKETBUNDLE_"
SCHEMA_VERSION = "3.0"


def parse_duration(s: str) -> timedelta:
    if not s or s == "0":
        return timedelta(0)

    s = s.strip().lower()
    match = re.match(r"^(\d+)\s*(w|d|h|m|s)?$", s)
    if not match:
        raise ValueError(f"Invalid duration format: {s!r}")

    value = int(match.group(1))
    unit = match.group(2) or "s"

    multipliers = {
        "w": timedelta(weeks=1),
        "d": timedelta(days=1),
        "h": timedelta(hours=1),
        "m": timedelta(minutes=1),
        "s": timedelta(seconds=1),
    }

    return value * multipliers[unit]


@dataclass(frozen=True)
class BuildSettings:
    data_dir: Path = Path("data")
    output_dir: Path = Path("dist")
    cache_dir: Path = Path(".build-cache")
    repo_dir: Path = Path(".")
    jobs: int = field(default_factory=get_build_jobs)
    cache_max_age: timedelta = timedelta(days=7)
    hash_length: int = DEFAULT_HASH_LENGTH
    saturation: float = 1.75
    blurhash_size: tuple[int, int] = (32, 32)
    blurhash_components: tuple[int, int] = (4, 4)
    fetch_timeout: float = 5.0
    photo_rate_limit: int = 20
    recent_items: int = 20
    schema_version: str = SCHEMA_VERSION
    derive_tags: bool = False
    photo_blurhashes: bool = False

    def with_overrides(self, **overrides: Any) -> BuildSettings:
        values = {k: v for k, v in overrides.items() if v is not None}
        if not values:
            return self
        return replace(self, **_coerce(values))


_PATH_FIELDS = {"data_dir", "output_dir", "cache_dir", "repo_dir"}
_INT_FIELDS = {"jobs", "hash_length", "photo_rate_limit", "recent_items"}
_FLOAT_FIELDS = {"saturation", "fetch_timeout"}
_BOOL_FIELDS = {"derive_tags", "photo_blurhashes"}
_PAIR_FIELDS = {"blurhash_size", "blurhash_components"}
_KNOWN_FIELDS = {f.name for f in fields(BuildSettings)}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _as_pair(value: Any) -> tuple[int, int]:
    if isinstance(value, str):
        value = re.split(r"[x,\s]+", value.strip().lower())
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"Expected a pair like 32x32, got: {value!r}")
    return int(value[0]), int(value[1])


def _coerce(values: Mapping[str, Any]) -> dict[str, Any]:
    coerced: dict[str, Any] = {}
    for key, value in values.items():
        if key not in _KNOWN_FIELDS:
            raise ValueError(f"Unknown setting: {key}")
        if key in _PATH_FIELDS:
            value = Path(value)
        elif key in _INT_FIELDS:
            value = int(value)
        elif key in _FLOAT_FIELDS:
            value = float(value)
        elif key in _BOOL_FIELDS:
            value = _as_bool(value)
        elif key in _PAIR_FIELDS:
            value = _as_pair(value)
        elif key == "cache_max_age" and not isinstance(value, timedelta):
            value = parse_duration(str(value))
        elif key == "schema_version":
            value = str(value)
        coerced[key] = value
    if coerced.get("jobs", 1) <= 0:
        raise ValueError("jobs must be a positive integer")
    if not 1 <= coerced.get("hash_length", DEFAULT_HASH_LENGTH) <= 64:
        raise ValueError("hash_length must be between 1 and 64")
    return coerced


def _load_dotenv() -> None:
    from dotenv import find_dotenv, load_dotenv

    env_path = find_dotenv(usecwd=True)
    if env_path:
        load_dotenv(env_path, override=False)


def read_config(path: Path | str | None = None) -> dict[str, Any]:
    import yaml

    config_path = Path(path) if path else Path(CONFIG_FILENAME)
    try:
        with open(config_path, "r", encoding="utf-8") as file:
            data = yaml.safe_load(file)
    except FileNotFoundError:
        if path:
            raise
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{config_path} must contain a mapping")
    return {str(k).replace("-", "_"): v for k, v in data.items()}


def read_env(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    environ = os.environ if environ is None else environ
    values: dict[str, Any] = {}
    for name in _KNOWN_FIELDS:
        raw = (environ.get(ENV_PREFIX + name.upper()) or "").strip()
        if raw:
            values[name] = raw
    return values


def load_settings(
    config_path: Path | str | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    **overrides: Any,
) -> BuildSettings:
    """Defaults, then the YAML file, then ``MARKETBUNDLE_*`` env, then overrides."""
    if environ is None:
        _load_dotenv()
    settings = BuildSettings()
    settings = settings.with_overrides(**read_config(config_path))
    settings = settings.with_overrides(**read_env(environ))
    return settings.with_overrides(**overrides)
