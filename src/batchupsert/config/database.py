"""Database connection configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import env_flag, require_env_vars

DATABASE_URI_ENV: Final[str] = "DATABASE_URI"
SQL_ECHO_ENV: Final[str] = "BATCHUPSERT_SQL_ECHO"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Connection settings; upsert statements need a PostgreSQL URI."""

    uri: str
    echo: bool = False

    @property
    def is_postgresql(self) -> bool:
        return self.uri.startswith(("postgresql", "postgres"))


def get_database_config() -> DatabaseConfig:
    values = require_env_vars((DATABASE_URI_ENV,))
    return DatabaseConfig(uri=values[DATABASE_URI_ENV], echo=env_flag(SQL_ECHO_ENV))
