"""
The production credentials file (``.env.prod``).

Read and written with python-dotenv, so ``export`` prefixes, quoting and
inline comments follow the same rules docker compose applies. Updates keep
the original line order and comments.
"""

from __future__ import annotations

from pathlib import Path
from urllib.parse import quote

import structlog
from dotenv import dotenv_values, set_key

from appwizard.core.errors import ConfigurationError

logger = structlog.get_logger()

APP_DB_USER = "APP_DB_USER"
APP_DB_PASSWORD = "APP_DB_PASSWORD"

# Characters that need quoting to survive a dotenv round trip.
_NEEDS_QUOTES = frozenset(" \t#'\"\\")


def load_env_file(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}
    # Bare keys without "=" parse as None
    return {key: value for key, value in dotenv_values(path).items() if value is not None}


def update_env_file(path: Path, updates: dict[str, str]) -> None:
    """Set keys in place, appending new ones at the end."""
    path.touch(exist_ok=True)
    for key, value in updates.items():
        quote_mode = "always" if _NEEDS_QUOTES.intersection(value) else "never"
        set_key(path, key, value, quote_mode=quote_mode)
    logger.info("credentials_updated", path=str(path), keys=sorted(updates))


def database_url(user: str, password: str, host: str, database: str, port: int = 5432) -> str:
    return (
        f"postgresql://{quote(user, safe='')}:{quote(password, safe='')}"
        f"@{host}:{port}/{database}"
    )


class Credentials:
    """Typed access to the values provisioning needs from ``.env.prod``."""

    def __init__(self, path: Path):
        self.path = path
        self.values = load_env_file(path)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.values.get(key, default)

    def require(self, key: str) -> str:
        value = self.values.get(key)
        if not value:
            raise ConfigurationError(
                f"{key} is not set in {self.path.name}", details={"path": str(self.path)}
            )
        return value

    @property
    def postgres_db(self) -> str:
        return self.require("POSTGRES_DB")

    @property
    def app_user(self) -> str | None:
        return self.values.get(APP_DB_USER) or None

    @property
    def app_password(self) -> str | None:
        return self.values.get(APP_DB_PASSWORD) or None

    def update(self, updates: dict[str, str]) -> None:
        update_env_file(self.path, updates)
        self.values.update(updates)

    def set_database_url(self, host: str, port: int = 5432) -> str:
        """Point DATABASE_URL at ``host`` using the admin credentials."""
        url = self.admin_url(host, port)
        self.update({"DATABASE_URL": url})
        return url

    def admin_url(self, host: str, port: int = 5432) -> str:
        return database_url(
            self.require("POSTGRES_USER"),
            self.require("POSTGRES_PASSWORD"),
            host,
            self.postgres_db,
            port,
        )
