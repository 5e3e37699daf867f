from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

CONFIG_FILES = ("app", "passbolt")


class ConfigurationError(Exception):
    """Raised when a required configuration key is missing entirely."""


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Runtime requirements (fail below min, warn below next min)
    python_min_version: str | None = "3.10"
    python_next_min_version: str | None = "3.11"

    # Application
    app_version: str = "4.0.0"
    release_url: str = "https://api.github.com/repos/passbolt/passbolt_api/releases/latest"
    full_base_url: str | None = "http://127.0.0.1:8000"
    ssl_force: bool = False
    meta_robots: str | None = "noindex, nofollow"
    selenium_active: bool = False
    email_mx_check: bool = False  # validate email host availability (MX lookup)
    js_build: str = "production"  # production | development
    email_send: dict[str, Any] = {
        "comment": {"add": True},
        "password": {"create": True, "share": True, "update": True, "delete": True},
        "user": {"create": True, "recover": True},
        "group": {"delete": True, "user": {"add": True, "delete": True, "update": True}},
    }
    self_registration_provider: str | None = None  # None | "email_domains"

    # Optional subsystems, name -> enabled
    plugins: dict[str, bool] = {
        "SmtpSettings": True,
        "SelfRegistration": True,
        "JwtAuthentication": False,
    }

    # Core
    debug: bool = False
    security_salt: str = ""
    cache_backend: str = "file"

    # Directories
    config_dir: Path = Path("config")
    tmp_dir: Path = Path("tmp")
    logs_dir: Path = Path("logs")
    jwt_config_dir: Path = Path("config/jwt")

    # Database (sqlite)
    database_path: Path = Path("data/vault.db")
    database_prefix: str = ""

    # GPG server key
    gpg_home: Path = Path.home() / ".gnupg"
    gpg_server_key_fingerprint: str = ""
    gpg_server_key_public: Path = Path("config/gpg/serverkey.asc")
    gpg_server_key_private: Path = Path("config/gpg/serverkey_private.asc")

    # SMTP settings encryption (Fernet key)
    smtp_settings_key: str = ""

    # Outbound HTTP
    http_timeout: float = 10.0

    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    # Logging
    log_level: str = "INFO"

    def read(self, key: str) -> Any:
        """Return a required configuration value.

        Raises ConfigurationError if the key is unknown or set to null.
        """
        if key not in type(self).model_fields:
            raise ConfigurationError(f"Unknown configuration key: {key}")
        value = getattr(self, key)
        if value is None:
            raise ConfigurationError(f"Missing configuration key: {key}")
        return value

    @classmethod
    def from_config_dir(cls, config_dir: Path | str, **overrides: Any) -> Settings:
        """Build settings seeded from app.yaml / passbolt.yaml in ``config_dir``.

        Sections are flattened one level: ``gpg: {home: ...}`` becomes ``gpg_home``.
        Explicit ``overrides`` win over file values.
        """
        config_dir = Path(config_dir)
        values: dict[str, Any] = {}
        for name in CONFIG_FILES:
            path = config_dir / f"{name}.yaml"
            if not path.exists():
                logger.debug("Config file not found: %s", path)
                continue
            try:
                raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Failed to parse {path}: {e}") from e
            values.update(_flatten(raw))

        values.update(overrides)
        values.setdefault("config_dir", config_dir)
        return cls(**values)


def _flatten(raw: dict[str, Any]) -> dict[str, Any]:
    fields = Settings.model_fields
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        if isinstance(value, dict) and key not in fields:
            for sub_key, sub_value in value.items():
                flat[f"{key}_{sub_key}"] = sub_value
        else:
            flat[key] = value
    return flat


settings = Settings()
