"""Typed readers for ``SERVICEFINDER_*`` and source environment variables.

Blank values count as unset everywhere so that a ``.env`` file can list a
variable without overriding its default.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import InvalidSettingError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


def _raw(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Return every named variable, or raise naming all that are missing."""

    values = {name: value for name in names if (value := _raw(name)) is not None}
    missing = [name for name in names if name not in values]
    if missing:
        raise MissingConfigurationError(missing)
    return values


def require_env_var(name: str) -> str:
    return require_env_vars([name])[name]


def _env_number[N: (int, float)](
    name: str,
    default: N,
    parse: Callable[[str], N],
    kind: str,
    minimum: N | None,
) -> N:
    raw = _raw(name)
    if raw is None:
        return default
    try:
        value = parse(raw)
    except ValueError as exc:
        raise InvalidSettingError(name, raw, f"must be {kind}") from exc
    if minimum is not None and value < minimum:
        raise InvalidSettingError(name, raw, f"must be >= {minimum}")
    return value


def env_int(name: str, default: int, *, minimum: int | None = None) -> int:
    return _env_number(name, default, int, "an integer", minimum)


def env_float(name: str, default: float, *, minimum: float | None = None) -> float:
    return _env_number(name, default, float, "a number", minimum)


def env_bool(name: str, default: bool) -> bool:  # noqa: FBT001
    raw = _raw(name)
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise InvalidSettingError(name, raw, "must be a boolean")


def env_str(name: str, default: str) -> str:
    raw = _raw(name)
    return default if raw is None else raw
