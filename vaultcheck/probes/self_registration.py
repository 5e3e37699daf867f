"""Self registration state, reported under application.registrationClosed."""

from __future__ import annotations

from typing import Any

from vaultcheck.config import Settings
from vaultcheck.health.features import FeatureGate

PLUGIN_NAME = "SelfRegistration"
PROVIDERS = ("email_domains",)


class SelfRegistrationHealthcheck:
    def __init__(self, settings: Settings, feature_gate: FeatureGate) -> None:
        self.settings = settings
        self.feature_gate = feature_gate

    @staticmethod
    def defaults() -> dict[str, Any]:
        return {
            "isSelfRegistrationPluginEnabled": False,
            "selfRegistrationProvider": None,
            "isRegistrationPublicRemovedFromPassbolt": True,
        }

    def get_healthcheck(self) -> dict[str, Any]:
        facts = self.defaults()
        enabled = self.feature_gate.is_enabled(PLUGIN_NAME)
        facts["isSelfRegistrationPluginEnabled"] = enabled
        provider = self.settings.self_registration_provider
        if enabled and provider in PROVIDERS:
            facts["selfRegistrationProvider"] = provider
        return facts
