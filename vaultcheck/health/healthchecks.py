"""Healthcheck aggregator — runs every category probe into one report.

Probes run sequentially in a fixed order because later ones read facts
written by earlier ones (``database.connect`` gates the admin count). A probe
failure never aborts the run: its category is filled with fail-closed facts.
Only ConfigurationError escapes ``run_all``.
"""

from __future__ import annotations

import importlib.util
import json
import logging
import platform
import re
import time
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from vaultcheck.config import CONFIG_FILES, ConfigurationError, Settings
from vaultcheck.health.features import FeatureGate, PluginFeatureGate
from vaultcheck.health.filesystem import check_recursive_directory_writable, is_writable
from vaultcheck.health.migration import Migration, version_gte
from vaultcheck.health.probe import Probe, attempt
from vaultcheck.health.report import Report
from vaultcheck.probes.core import CoreHealthchecks
from vaultcheck.probes.database import Datasource, DatabaseHealthchecks, DatasourceError
from vaultcheck.probes.gpg import GpgHealthchecks
from vaultcheck.probes.jwt import JwtKeyPairService
from vaultcheck.probes.self_registration import SelfRegistrationHealthcheck
from vaultcheck.probes.ssl import SslHealthchecks

logger = logging.getLogger(__name__)

Checks = Report | Mapping[str, Any] | None

# Capability -> importable providers; any one provider satisfies the capability
REQUIRED_EXTENSIONS: dict[str, tuple[str, ...]] = {
    "mbstring": ("unicodedata",),
    "gnupg": ("gnupg",),
    "intl": ("babel",),
    "image": ("PIL", "wand"),
}

# Order used by run_all
RUN_ALL_SEQUENCE = (
    "environment",
    "configFiles",
    "core",
    "ssl",
    "database",
    "gpg",
    "application",
    "smtpSettings",
)

# Every independently invocable category, with the report key it writes
CATEGORY_KEYS = {
    "environment": "environment",
    "configFiles": "configFile",
    "core": "core",
    "ssl": "ssl",
    "database": "database",
    "gpg": "gpg",
    "application": "application",
    "jwt": "jwt",
    "smtpSettings": "smtpSettings",
}

_ALPHANUMERIC = re.compile(r"^[^\W_]+$")


def extension_loaded(module: str) -> bool:
    try:
        return importlib.util.find_spec(module) is not None
    except (ImportError, ValueError):
        return False


def email_notification_enabled(email_send: Any) -> bool:
    """False as soon as the serialized email settings contain ``false`` anywhere.

    This is a substring test on the JSON text, not a structural check: a
    nested string value containing "false" also disables it.
    """
    return re.search("false", json.dumps(email_send)) is None


class Healthchecks:
    """Runs category probes with injected collaborators."""

    def __init__(
        self,
        settings: Settings,
        client: httpx.Client | None = None,
        *,
        database: DatabaseHealthchecks | None = None,
        core: Probe | None = None,
        ssl: Probe | None = None,
        gpg: Probe | None = None,
        migration: Migration | None = None,
        jwt_key_pair: JwtKeyPairService | None = None,
        feature_gate: FeatureGate | None = None,
        smtp_settings: Probe | None = None,
        self_registration: SelfRegistrationHealthcheck | None = None,
    ) -> None:
        self.settings = settings
        self._owns_client = client is None
        self.client = client or httpx.Client(
            timeout=settings.http_timeout, follow_redirects=True, verify=True,
        )
        datasource = Datasource(settings.database_path, settings.database_prefix)
        self.datasource = datasource

        self.database_checks = database or DatabaseHealthchecks.from_settings(settings, datasource)
        self.core_checks = core or CoreHealthchecks(settings, self.client)
        self.ssl_checks = ssl or SslHealthchecks(settings)
        self.gpg_checks = gpg or GpgHealthchecks(settings)
        self.migration = migration or Migration(
            datasource, self.client, settings.app_version, settings.release_url,
        )
        self.jwt_key_pair = jwt_key_pair or JwtKeyPairService(settings.jwt_config_dir)
        self.feature_gate = feature_gate or PluginFeatureGate(settings)
        self.self_registration = self_registration or SelfRegistrationHealthcheck(
            settings, self.feature_gate,
        )
        # Built on first use, only once the feature gate allows it
        self.smtp_settings_checks = smtp_settings

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> Healthchecks:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # ── Orchestration ────────────────────────────────────────────────────

    @property
    def entry_points(self) -> dict[str, Callable[[Checks], Report]]:
        return {
            "environment": self.environment,
            "configFiles": self.config_files,
            "core": self.core,
            "ssl": self.ssl,
            "database": self.database,
            "gpg": self.gpg,
            "application": self.application,
            "jwt": self.jwt,
            "smtpSettings": self.smtp_settings,
        }

    def run_all(self, checks: Checks = None) -> Report:
        """Run every category in order and return a frozen report."""
        report = Report.coerce(checks)
        t0 = time.perf_counter()
        for name in RUN_ALL_SEQUENCE:
            self._step(name, report)
        logger.info(
            "Healthchecks completed: %d categories (%.0fms)",
            len(report), (time.perf_counter() - t0) * 1000,
        )
        return report.freeze()

    def run_category(self, name: str, checks: Checks = None) -> Report:
        """Run a single category by its public name. Raises KeyError if unknown."""
        entry = self.entry_points[name]
        report = Report.coerce(checks)
        self._step(name, report, entry)
        return report

    def _step(
        self,
        name: str,
        report: Report,
        entry: Callable[[Checks], Report] | None = None,
    ) -> None:
        entry = entry or self.entry_points[name]
        try:
            entry(report)
        except ConfigurationError:
            raise
        except Exception:
            logger.exception("Healthcheck %s crashed, recording fail-closed facts", name)
            report.merge(self._fallback(name))

    def _fallback(self, name: str) -> dict[str, dict[str, Any]]:
        """Fail-closed facts for a category whose probe crashed."""
        probes: dict[str, Probe | None] = {
            "core": self.core_checks,
            "ssl": self.ssl_checks,
            "database": self.database_checks,
            "gpg": self.gpg_checks,
        }
        if probes.get(name) is not None:
            probe = probes[name]
            return {probe.category: probe.defaults()}
        if name == "environment":
            facts = {"pythonVersion": False, "nextMinPythonVersion": False, "pcre": False}
            facts.update({ext: False for ext in REQUIRED_EXTENSIONS})
            facts.update(tmpWritable=False, logWritable=False)
            return {"environment": facts}
        if name == "configFiles":
            return {"configFile": {f: False for f in CONFIG_FILES}}
        if name == "application":
            return {"application": self._application_defaults()}
        if name == "jwt":
            return {"jwt": {"isEnabled": False, "keyPairValid": False, "jwtWritable": False}}
        return {"smtpSettings": {"isEnabled": False}}

    # ── Categories ───────────────────────────────────────────────────────

    def environment(self, checks: Checks = None) -> Report:
        """Return environment checks:
        - pythonVersion: interpreter satisfies the minimum version
        - nextMinPythonVersion: interpreter satisfies the upcoming minimum (warning only)
        - pcre: unicode aware pattern matching
        - mbstring, gnupg, intl, image: capabilities available
        - tmpWritable: the tmp directory is writable and holds no executable file
        - logWritable: the log directory is writable
        """
        report = Report.coerce(checks)
        version = platform.python_version()
        facts: dict[str, Any] = {
            "pythonVersion": version_gte(version, self.settings.read("python_min_version")),
            "nextMinPythonVersion": version_gte(version, self.settings.read("python_next_min_version")),
            "pcre": bool(_ALPHANUMERIC.match("passbolt")),
        }
        for name, providers in REQUIRED_EXTENSIONS.items():
            facts[name] = any(extension_loaded(p) for p in providers)
        facts["tmpWritable"] = check_recursive_directory_writable(self.settings.tmp_dir)
        facts["logWritable"] = is_writable(self.settings.logs_dir)
        return report.merge({"environment": facts}, owner="environment")

    def config_files(self, checks: Checks = None) -> Report:
        """configFile.<name>: true if the file is present in the config directory."""
        report = Report.coerce(checks)
        facts = {name: (self.settings.config_dir / f"{name}.yaml").exists() for name in CONFIG_FILES}
        return report.merge({"configFile": facts}, owner="configFile")

    def core(self, checks: Checks = None) -> Report:
        return self.core_checks.check(checks)

    def ssl(self, checks: Checks = None) -> Report:
        return self.ssl_checks.check(checks)

    def database(self, checks: Checks = None) -> Report:
        return self.database_checks.check(checks)

    def gpg(self, checks: Checks = None) -> Report:
        return self.gpg_checks.check(checks)

    def _application_defaults(self) -> dict[str, Any]:
        return {
            "info": {"remoteVersion": "undefined"},
            "latestVersion": None,
            "schema": False,
            "robotsIndexDisabled": False,
            "sslForce": False,
            "sslFullBaseUrl": False,
            "seleniumDisabled": False,
            "registrationClosed": SelfRegistrationHealthcheck.defaults(),
            "hostAvailabilityCheckEnabled": False,
            "jsProd": False,
            "emailNotificationEnabled": False,
            "adminCount": False,
        }

    def application(self, checks: Checks = None) -> Report:
        """Application checks
        - latestVersion: true if using the latest release, null if unknown
        - info.remoteVersion: latest release tag, "undefined" if unknown
        - schema: schema up to date, no migration needed
        - robotsIndexDisabled, sslForce, sslFullBaseUrl, seleniumDisabled,
          hostAvailabilityCheckEnabled, jsProd, emailNotificationEnabled
        - registrationClosed: self registration state
        - adminCount: at least one administrator exists
        """
        report = Report.coerce(checks)
        settings = self.settings
        app: dict[str, Any] = {}

        remote = attempt(self.migration.get_latest_tag_name, label="application.remoteVersion")
        latest = (
            attempt(self.migration.is_latest_version, remote.value, label="application.latestVersion")
            if remote.ok else remote
        )
        if remote.ok and latest.ok:
            app["info"] = {"remoteVersion": remote.value}
            app["latestVersion"] = latest.value
        else:
            app["info"] = {"remoteVersion": "undefined"}
            app["latestVersion"] = None

        # Fails closed when the database is unreachable
        schema = attempt(self.migration.need_migration, label="application.schema")
        app["schema"] = (not schema.value) if schema.ok else False

        app["robotsIndexDisabled"] = "noindex" in settings.read("meta_robots")
        app["sslForce"] = bool(settings.ssl_force)
        app["sslFullBaseUrl"] = settings.read("full_base_url").startswith("https")
        app["seleniumDisabled"] = not settings.selenium_active
        app["registrationClosed"] = attempt(
            self.self_registration.get_healthcheck, label="application.registrationClosed",
        ).value_or(SelfRegistrationHealthcheck.defaults())
        app["hostAvailabilityCheckEnabled"] = bool(settings.email_mx_check)
        app["jsProd"] = settings.js_build == "production"
        app["emailNotificationEnabled"] = email_notification_enabled(settings.email_send)

        report.merge({"application": app}, owner="application")
        return self.app_user(report)

    def app_user(self, checks: Checks = None) -> Report:
        """application.adminCount: there is at least one administrator.

        Database facts already in the report are reused; no query is issued
        when the database is not reachable.
        """
        report = Report.coerce(checks)
        if report.lookup("database.connect") is None:
            self.database(report)

        admin_count = False
        if report.lookup("database.connect"):
            outcome = attempt(
                self.database_checks.count_admins,
                errors=(DatasourceError,),
                label="application.adminCount",
            )
            admin_count = outcome.value_or(0) > 0
        return report.merge({"application": {"adminCount": admin_count}}, owner="application")

    def jwt(self, checks: Checks = None, key_pair: JwtKeyPairService | None = None) -> Report:
        """JWT checks
        - isEnabled: JWT authentication is enabled
        - keyPairValid: when enabled, the key files are set and valid
        - jwtWritable: the JWT key directory is writable
        """
        report = Report.coerce(checks)
        key_pair = key_pair or self.jwt_key_pair
        enabled = self.settings.plugins.get("JwtAuthentication") is True
        key_pair_valid = False
        if enabled:
            key_pair_valid = attempt(key_pair.validate_key_pair, label="jwt.keyPairValid").ok
        facts = {
            "isEnabled": enabled,
            "keyPairValid": key_pair_valid,
            "jwtWritable": is_writable(self.settings.jwt_config_dir),
        }
        return report.merge({"jwt": facts}, owner="jwt")

    def smtp_settings(self, checks: Checks = None) -> Report:
        """SMTP settings check, skipped unless the plugin is installed and enabled."""
        report = Report.coerce(checks)
        if not self.feature_gate.is_enabled("SmtpSettings"):
            return report.replace("smtpSettings", {"isEnabled": False})

        if self.smtp_settings_checks is None:
            from vaultcheck.probes.smtp_settings import SmtpSettingsHealthcheck

            self.smtp_settings_checks = SmtpSettingsHealthcheck.from_settings(self.settings, self.datasource)
        return self.smtp_settings_checks.check(report)


def run_healthchecks(
    settings: Settings,
    client: httpx.Client | None = None,
    checks: Checks = None,
) -> Report:
    """Run every healthcheck once and return the frozen report."""
    with Healthchecks(settings, client) as healthchecks:
        return healthchecks.run_all(checks)
