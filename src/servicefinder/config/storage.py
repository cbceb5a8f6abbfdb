"""Where the service store and the HTTP response cache live on disk."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import env_bool, env_int, env_str

APP_DIR_NAME: Final[str] = "servicefinder"
DATABASE_FILENAME: Final[str] = "servicefinder.db"
HTTP_CACHE_FILENAME: Final[str] = "http_cache.db"
DEFAULT_STORE_CHUNK_SIZE: Final[int] = 100


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Data directory shared by the SQLite result sink and the sqlite HTTP cache."""

    data_dir: Path

    def _file(self, filename: str, *, ensure: bool) -> Path:
        root = self.data_dir.expanduser().resolve()
        if ensure:
            root.mkdir(parents=True, exist_ok=True)
        return root / filename

    def database_path(self, *, ensure: bool = True) -> Path:
        return self._file(DATABASE_FILENAME, ensure=ensure)

    def http_cache_path(self, *, ensure: bool = True) -> Path:
        return self._file(HTTP_CACHE_FILENAME, ensure=ensure)

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Connection settings for the SQLAlchemy result sink.

    ``chunk_size`` is the number of services written per transaction; a failed
    chunk leaves earlier chunks committed.
    """

    uri: str
    chunk_size: int = DEFAULT_STORE_CHUNK_SIZE
    echo: bool = False


def default_data_dir() -> Path:
    data_home = os.getenv("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(data_home) / APP_DIR_NAME


def get_storage_config() -> StorageConfig:
    data_dir = env_str("SERVICEFINDER_DATA_DIR", str(default_data_dir()))
    return StorageConfig(data_dir=Path(data_dir))


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    uri = env_str("DATABASE_URI", "")
    if not uri:
        uri = (storage or get_storage_config()).database_uri()
    return DatabaseConfig(
        uri=uri,
        chunk_size=env_int("SERVICEFINDER_STORE_CHUNK_SIZE", DEFAULT_STORE_CHUNK_SIZE, minimum=1),
        echo=env_bool("SERVICEFINDER_SQL_ECHO", False),  # noqa: FBT003
    )
