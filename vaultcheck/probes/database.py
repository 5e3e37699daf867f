"""Database checks — sqlite datasource connectivity and content."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any

from vaultcheck.config import Settings
from vaultcheck.health.probe import Probe

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"

# Default seed content: admin, user, guest, root
MIN_DEFAULT_ROLES = 4


class DatasourceError(Exception):
    """Raised when the datasource cannot be reached or a query fails."""


def get_schema_tables(version: int = 2) -> list[str]:
    """Expected schema tables for a major version."""
    tables = [
        "authentication_tokens",
        "avatars",
        "comments",
        "email_queue",
        "favorites",
        "gpgkeys",
        "groups",
        "groups_users",
        "permissions",
        "profiles",
        "resources",
        "roles",
        "secrets",
        "users",
    ]
    if version == 2:
        tables.append("phinxlog")
    return tables


class Datasource:
    """Thin sqlite3 wrapper; every sqlite error surfaces as DatasourceError."""

    def __init__(self, db_path: Path | str, prefix: str = "") -> None:
        self._db_path = Path(db_path)
        self.prefix = prefix

    def _connect(self) -> sqlite3.Connection:
        if not self._db_path.exists():
            raise DatasourceError(f"Database not found: {self._db_path}")
        try:
            # mode=rw: never create the database as a side effect
            conn = sqlite3.connect(f"file:{self._db_path}?mode=rw", uri=True)
        except sqlite3.Error as e:
            raise DatasourceError(str(e)) from e
        conn.row_factory = sqlite3.Row
        return conn

    def query(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        conn = self._connect()
        try:
            return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise DatasourceError(str(e)) from e
        finally:
            conn.close()

    def scalar(self, sql: str, params: tuple[Any, ...] = ()) -> Any:
        rows = self.query(sql, params)
        return rows[0][0] if rows else None

    def ping(self) -> bool:
        return self.scalar("SELECT 1") == 1

    def table_names(self) -> list[str]:
        rows = self.query(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [r["name"] for r in rows]

    def table(self, name: str) -> str:
        return f"{self.prefix}{name}"


class DatabaseHealthchecks(Probe):
    """Return database checks:
    - connect: can connect to the database
    - tablesPrefixes: not using table prefixes
    - tableCount: at least one table is present
    - info.tableCount: number of tables installed
    - defaultContent: default roles are seeded
    """

    category = "database"

    def __init__(self, datasource: Datasource) -> None:
        self.datasource = datasource

    @classmethod
    def from_settings(cls, settings: Settings, datasource: Datasource | None = None) -> DatabaseHealthchecks:
        return cls(datasource or Datasource(settings.database_path, settings.database_prefix))

    def defaults(self) -> dict[str, Any]:
        return {
            "connect": False,
            "tablesPrefixes": self.datasource.prefix == "",
            "tableCount": False,
            "info": {"tableCount": 0},
            "defaultContent": False,
        }

    def collect(self) -> dict[str, Any]:
        facts = self.defaults()
        try:
            facts["connect"] = self.datasource.ping()
        except DatasourceError as e:
            logger.warning("Database connection failed: %s", e)
            return facts
        if not facts["connect"]:
            return facts

        tables = self.datasource.table_names()
        facts["tableCount"] = len(tables) > 0
        facts["info"] = {"tableCount": len(tables)}

        roles = self.datasource.table("roles")
        if roles in tables:
            count = self.datasource.scalar(f'SELECT COUNT(*) FROM "{roles}"')
            facts["defaultContent"] = (count or 0) >= MIN_DEFAULT_ROLES
        return facts

    def count_admins(self) -> int:
        """Number of users holding the administrator role."""
        users = self.datasource.table("users")
        roles = self.datasource.table("roles")
        count = self.datasource.scalar(
            f'SELECT COUNT(*) FROM "{users}" u '
            f'INNER JOIN "{roles}" r ON u.role_id = r.id '
            "WHERE r.name = ?",
            (ADMIN_ROLE,),
        )
        return int(count or 0)
