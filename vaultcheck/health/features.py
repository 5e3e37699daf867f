"""Feature gate — is an optional subsystem installed and enabled?"""

from __future__ import annotations

import importlib.util
import logging
from typing import Protocol

from vaultcheck.config import Settings

logger = logging.getLogger(__name__)

# Plugin name -> module that must be importable for the plugin to count as installed
PLUGIN_MODULES = {
    "SmtpSettings": "vaultcheck.probes.smtp_settings",
    "SelfRegistration": "vaultcheck.probes.self_registration",
    "JwtAuthentication": "vaultcheck.probes.jwt",
}


class FeatureGate(Protocol):
    def is_enabled(self, feature_name: str) -> bool: ...


class PluginFeatureGate:
    """A plugin is enabled when its module is installed and configuration turns it on."""

    def __init__(self, settings: Settings, modules: dict[str, str] | None = None) -> None:
        self.settings = settings
        self.modules = modules if modules is not None else PLUGIN_MODULES

    def is_installed(self, feature_name: str) -> bool:
        module = self.modules.get(feature_name)
        if not module:
            return False
        try:
            return importlib.util.find_spec(module) is not None
        except (ImportError, ValueError):
            return False

    def is_enabled(self, feature_name: str) -> bool:
        if not self.is_installed(feature_name):
            logger.debug("Plugin %s is not installed", feature_name)
            return False
        return self.settings.plugins.get(feature_name) is True
