from __future__ import annotations

from contextvars import ContextVar, Token
import os

_VERBOSE_LOGGING: ContextVar[bool] = ContextVar(
    "marketbundle_verbose_logging", default=False
)
_FULL_REBUILD: ContextVar[bool] = ContextVar(
    "marketbundle_full_rebuild", default=False
)

_DEFAULT_BUILD_JOBS = 10
_MAX_BUILD_JOBS = 64


def read_positive_int_env(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    return min(value, _MAX_BUILD_JOBS)


def get_verbose_logging() -> bool:
    return _VERBOSE_LOGGING.get()


def set_verbose_logging(enabled: bool) -> Token[bool]:
    return _VERBOSE_LOGGING.set(bool(enabled))


def reset_verbose_logging(token: Token[bool]) -> None:
    _VERBOSE_LOGGING.reset(token)


def get_full_rebuild() -> bool:
    return _FULL_REBUILD.get()


def set_full_rebuild(enabled: bool) -> Token[bool]:
    return _FULL_REBUILD.set(bool(enabled))


def reset_full_rebuild(token: Token[bool]) -> None:
    _FULL_REBUILD.reset(token)


def get_build_jobs() -> int:
    return read_positive_int_env("MARKETBUNDLE_JOBS", _DEFAULT_BUILD_JOBS)
