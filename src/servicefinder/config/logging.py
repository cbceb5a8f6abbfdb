"""Root logger setup for the servicefinder command line."""

from __future__ import annotations

import logging
from typing import Final

from .errors import ConfigurationError

LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# These log one INFO line per HTTP request.
CHATTY_LOGGERS: Final[tuple[str, ...]] = ("httpx", "httpcore", "hishel", "httpx_retries")


def parse_log_level(name: str) -> int:
    level = logging.getLevelNamesMapping().get(name.strip().upper())
    if level is None:
        raise ConfigurationError(f"Unknown log level {name!r}")
    return level


def configure_logging(*, level: int | str = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger for a CLI run.

    Transport libraries stay at WARNING unless ``level`` is DEBUG, so job
    progress from ``servicefinder.*`` is not buried under per-request lines.
    ``force=True`` replaces handlers installed by an earlier call.
    """

    resolved = parse_log_level(level) if isinstance(level, str) else level
    logging.basicConfig(
        level=resolved,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S",
        force=force,
    )
    library_level = resolved if resolved <= logging.DEBUG else max(resolved, logging.WARNING)
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
