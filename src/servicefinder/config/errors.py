"""Errors raised while reading servicefinder settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class ConfigurationError(RuntimeError):
    """A setting is present but unusable."""


class MissingConfigurationError(ConfigurationError):
    """One or more required environment variables are unset or blank."""

    def __init__(self, names: Iterable[str]) -> None:
        self.names = tuple(sorted(names))
        super().__init__(f"Missing configuration for: {', '.join(self.names)}")


class InvalidSettingError(ConfigurationError):
    """An environment variable could not be parsed or is out of range."""

    def __init__(self, name: str, raw: str, problem: str) -> None:
        self.name = name
        self.raw = raw
        super().__init__(f"{name} {problem}, got {raw!r}")
