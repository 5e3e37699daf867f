"""Fakes and seed helpers shared by the test modules."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

import httpx
from cryptography.fernet import Fernet

from vaultcheck.health.migration import LATEST_MIGRATION
from vaultcheck.health.probe import Probe
from vaultcheck.probes.database import get_schema_tables

SMTP_KEY = Fernet.generate_key().decode()
FINGERPRINT = "0123456789ABCDEF0123456789ABCDEF01234567"
BASE_URL = "https://vault.example.test"
RELEASE_URL = "https://releases.example.test/latest"


class StaticProbe(Probe):
    """Probe returning fixed facts, or raising ``error`` from collect()."""

    def __init__(self, category: str, facts: dict[str, Any], error: Exception | None = None) -> None:
        self.category = category
        self.facts = facts
        self.error = error
        self.calls = 0

    def defaults(self) -> dict[str, Any]:
        return {k: False for k in self.facts}

    def collect(self) -> dict[str, Any]:
        self.calls += 1
        if self.error:
            raise self.error
        return dict(self.facts)


def seed_database(path: Path, admins: int = 1, smtp_value: str | None = None) -> None:
    """Create every schema table with default roles, users and migrations."""
    conn = sqlite3.connect(path)
    for table in get_schema_tables():
        if table in ("roles", "users", "phinxlog"):
            continue
        conn.execute(f'CREATE TABLE "{table}" (id INTEGER PRIMARY KEY)')
    conn.execute("CREATE TABLE roles (id INTEGER PRIMARY KEY, name TEXT NOT NULL)")
    conn.execute("CREATE TABLE users (id INTEGER PRIMARY KEY, username TEXT, role_id INTEGER)")
    conn.execute("CREATE TABLE phinxlog (version INTEGER PRIMARY KEY)")
    conn.execute("CREATE TABLE organization_settings (id INTEGER PRIMARY KEY, property TEXT, value TEXT)")
    conn.executemany(
        "INSERT INTO roles (id, name) VALUES (?, ?)",
        [(1, "admin"), (2, "user"), (3, "guest"), (4, "root")],
    )
    for i in range(admins):
        conn.execute("INSERT INTO users (username, role_id) VALUES (?, 1)", (f"admin{i}@example.test",))
    conn.execute("INSERT INTO users (username, role_id) VALUES (?, 2)", ("ada@example.test",))
    conn.execute("INSERT INTO phinxlog (version) VALUES (?)", (LATEST_MIGRATION,))
    if smtp_value is not None:
        conn.execute(
            "INSERT INTO organization_settings (property, value) VALUES (?, ?)", ("smtp", smtp_value),
        )
    conn.commit()
    conn.close()


def encrypt_smtp(payload: dict[str, Any], key: str = SMTP_KEY) -> str:
    return Fernet(key.encode()).encrypt(json.dumps(payload).encode()).decode()


def http_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/healthcheck/status.json":
        return httpx.Response(200, json={"header": {"status": "success"}, "body": "OK"})
    if str(request.url) == RELEASE_URL:
        return httpx.Response(200, json={"tag_name": "v4.0.0"})
    return httpx.Response(404)


