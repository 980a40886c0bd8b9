"""Where enforcesync keeps the enforcement database and the company search cache.

``DATABASE_URI`` selects any SQLAlchemy database. Without it, a SQLite file is kept in
``ENFORCESYNC_DATA_DIR``, falling back to the platform's per-user data directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "enforcesync"
DATA_DIR_ENV: Final[str] = "ENFORCESYNC_DATA_DIR"
DATABASE_URI_ENV: Final[str] = "DATABASE_URI"
ENFORCEMENT_DB_FILENAME: Final[str] = "enforcement.db"
COMPANY_SEARCH_CACHE_FILENAME: Final[str] = "company_search_cache.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = ENFORCEMENT_DB_FILENAME
    company_search_cache_filename: str = COMPANY_SEARCH_CACHE_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def file_path(self, filename: str, *, ensure: bool = True) -> Path:
        """Path of ``filename`` in the data directory, creating the directory if asked."""

        data_dir = self.resolve_data_dir()
        if ensure:
            data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir / filename

    def database_path(self, *, ensure: bool = True) -> Path:
        return self.file_path(self.database_filename, ensure=ensure)

    def company_search_cache_path(self, *, ensure: bool = True) -> Path:
        return self.file_path(self.company_search_cache_filename, ensure=ensure)

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def _platform_data_home() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        return Path(base) if base else Path.home() / "AppData" / "Local"
    base = os.getenv("XDG_DATA_HOME")
    return Path(base) if base else Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv(DATA_DIR_ENV, "").strip()
    data_dir = Path(env_dir) if env_dir else _platform_data_home() / APP_DIR_NAME
    return StorageConfig(data_dir=data_dir)


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    env_uri = os.getenv(DATABASE_URI_ENV, "").strip()
    if env_uri:
        return DatabaseConfig(uri=env_uri)
    return DatabaseConfig(uri=(storage or get_storage_config()).database_uri())
