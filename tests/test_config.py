from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from marketbundle.config import (
    BuildSettings,
    load_settings,
    parse_duration,
    read_config,
    read_env,
)


def test_parse_duration() -> None:
    assert parse_duration("7d") == timedelta(days=7)
    assert parse_duration("12h") == timedelta(hours=12)
    assert parse_duration("90") == timedelta(seconds=90)
    assert parse_duration("0") == timedelta(0)
    with pytest.raises(ValueError):
        parse_duration("soon")


def test_defaults(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    settings = load_settings(environ={})
    assert settings.output_dir == Path("dist")
    assert settings.cache_max_age == timedelta(days=7)
    assert settings.hash_length == 12
    assert settings.schema_version == "3.0"
    assert settings.blurhash_size == (32, 32)


def test_missing_explicit_config_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_config(tmp_path / "nope.yaml")


def test_missing_default_config_is_empty(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert read_config() == {}


def test_yaml_keys_accept_dashes(tmp_path: Path) -> None:
    path = tmp_path / "marketbundle.yaml"
    path.write_text(
        "data-dir: content\ncache-max-age: 2d\nblurhash_size: 16x16\n",
        encoding="utf-8",
    )
    settings = load_settings(path, environ={})
    assert settings.data_dir == Path("content")
    assert settings.cache_max_age == timedelta(days=2)
    assert settings.blurhash_size == (16, 16)


def test_precedence_file_env_overrides(tmp_path: Path) -> None:
    path = tmp_path / "marketbundle.yaml"
    path.write_text(
        "jobs: 3\noutput_dir: from-file\nsaturation: 1.2\n", encoding="utf-8"
    )
    environ = {"MARKETBUNDLE_JOBS": "5", "MARKETBUNDLE_DERIVE_TAGS": "yes"}

    settings = load_settings(path, environ=environ, output_dir="from-cli", jobs=None)

    assert settings.jobs == 5
    assert settings.output_dir == Path("from-cli")
    assert settings.saturation == 1.2
    assert settings.derive_tags is True


def test_read_env_ignores_blank_values() -> None:
    assert read_env({"MARKETBUNDLE_DATA_DIR": "  ", "OTHER": "x"}) == {}


@pytest.mark.parametrize(
    "overrides",
    [
        {"jobs": 0},
        {"hash_length": 65},
        {"colour_mode": "sqrt"},
        {"blurhash_size": "32"},
    ],
)
def test_invalid_settings_are_rejected(overrides) -> None:
    with pytest.raises(ValueError):
        BuildSettings().with_overrides(**overrides)


def test_non_mapping_config_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "marketbundle.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_config(path)
