"""Database connection settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

DATABASE_URI_ENV_VAR: Final[str] = "DATABASE_URI"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def get_database_config() -> DatabaseConfig | None:
    """Return the database named by ``DATABASE_URI``, or ``None`` when it is unset.

    Counter columns live in the application's own tables, so there is no
    fallback database.
    """

    env_uri = os.getenv(DATABASE_URI_ENV_VAR)
    if env_uri is None or not env_uri.strip():
        return None
    return DatabaseConfig(uri=env_uri.strip())
