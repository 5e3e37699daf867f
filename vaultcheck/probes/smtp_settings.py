"""SMTP settings check.

- PASS: SMTP settings are set in the DB and decryptable
- WARN: SMTP settings are not set in the DB (file configuration is used)
- FAIL: SMTP settings are set in the DB and not decryptable
"""

from __future__ import annotations

import json
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

from vaultcheck.config import Settings
from vaultcheck.health.probe import Probe
from vaultcheck.probes.database import Datasource

logger = logging.getLogger(__name__)

SETTINGS_TABLE = "organization_settings"
SMTP_PROPERTY = "smtp"


class SmtpSettingsHealthcheck(Probe):
    category = "smtpSettings"

    def __init__(self, datasource: Datasource, encryption_key: str) -> None:
        self.datasource = datasource
        self.encryption_key = encryption_key

    @classmethod
    def from_settings(cls, settings: Settings, datasource: Datasource | None = None) -> SmtpSettingsHealthcheck:
        datasource = datasource or Datasource(settings.database_path, settings.database_prefix)
        return cls(datasource, settings.smtp_settings_key)

    def defaults(self) -> dict[str, Any]:
        return {
            "isEnabled": True,
            "isInDb": False,
            "source": "database",
            "errorMessage": "SMTP settings could not be read from the database.",
            "status": "fail",
        }

    def collect(self) -> dict[str, Any]:
        table = self.datasource.table(SETTINGS_TABLE)
        rows = self.datasource.query(
            f'SELECT value FROM "{table}" WHERE property = ? LIMIT 1', (SMTP_PROPERTY,)
        )
        if not rows:
            return {
                "isEnabled": True,
                "isInDb": False,
                "source": "file",
                "errorMessage": False,
                "status": "warn",
            }

        facts: dict[str, Any] = {"isEnabled": True, "isInDb": True, "source": "database"}
        try:
            self.decrypt(rows[0]["value"])
        except ValueError as e:
            logger.warning("SMTP settings not decryptable: %s", e)
            facts.update(errorMessage=str(e), status="fail")
        else:
            facts.update(errorMessage=False, status="pass")
        return facts

    def decrypt(self, token: str) -> dict[str, Any]:
        """Decrypt and parse stored settings. Raises ValueError on any failure."""
        if not self.encryption_key:
            raise ValueError("No SMTP settings encryption key is configured.")
        try:
            plain = Fernet(self.encryption_key.encode()).decrypt(token.encode())
        except InvalidToken as e:
            raise ValueError("The SMTP settings stored in database could not be decrypted.") from e
        settings = json.loads(plain)
        if not isinstance(settings, dict):
            raise ValueError("The SMTP settings stored in database are not an object.")
        return settings
