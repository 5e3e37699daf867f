"""Version and schema state — remote release lookup, pending migrations."""

from __future__ import annotations

import logging
import re

import httpx

from vaultcheck.probes.database import Datasource, get_schema_tables

logger = logging.getLogger(__name__)

# Most recent migration shipped with this release
LATEST_MIGRATION = 20240201000000

_VERSION_PART = re.compile(r"\d+")


class RemoteVersionError(Exception):
    """Raised when the latest release cannot be fetched or parsed."""


def version_tuple(version: str) -> tuple[int, ...]:
    """'v4.10.1-rc1' -> (4, 10, 1, 1). Non-numeric parts are ignored."""
    return tuple(int(p) for p in _VERSION_PART.findall(version.lstrip("vV")))


def version_gte(version: str, minimum: str) -> bool:
    """Dotted numeric comparison; missing trailing parts count as zero."""
    a, b = version_tuple(version), version_tuple(minimum)
    width = max(len(a), len(b))
    return a + (0,) * (width - len(a)) >= b + (0,) * (width - len(b))


class Migration:
    """Compare the installed version and schema against what is expected."""

    def __init__(
        self,
        datasource: Datasource,
        client: httpx.Client,
        app_version: str,
        release_url: str,
    ) -> None:
        self.datasource = datasource
        self.client = client
        self.app_version = app_version
        self.release_url = release_url

    def get_latest_tag_name(self) -> str:
        """Tag name of the latest published release, fetched on every call."""
        try:
            resp = self.client.get(self.release_url, headers={"Accept": "application/vnd.github+json"})
            resp.raise_for_status()
            tag = resp.json().get("tag_name")
        except httpx.HTTPError as e:
            raise RemoteVersionError(f"Could not fetch latest release: {e}") from e
        except (ValueError, AttributeError) as e:
            raise RemoteVersionError(f"Malformed release payload: {e}") from e
        if not isinstance(tag, str) or not version_tuple(tag):
            raise RemoteVersionError(f"No usable tag_name in release payload: {tag!r}")
        return tag

    def is_latest_version(self, tag: str | None = None) -> bool:
        """Compare the installed version with ``tag``, fetching it when not given."""
        return version_gte(self.app_version, tag if tag is not None else self.get_latest_tag_name())

    def need_migration(self) -> bool:
        """True if schema tables are missing or migrations are pending.

        Raises DatasourceError if the database cannot be reached.
        """
        tables = set(self.datasource.table_names())
        missing = [t for t in get_schema_tables() if self.datasource.table(t) not in tables]
        if missing:
            logger.info("Schema tables missing: %s", ", ".join(missing))
            return True
        applied = self.datasource.scalar(f'SELECT MAX(version) FROM "{self.datasource.table("phinxlog")}"')
        return int(applied or 0) < LATEST_MIGRATION
