"""Core checks — runtime settings and base URL reachability."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from vaultcheck.config import Settings
from vaultcheck.health.probe import Probe

logger = logging.getLogger(__name__)

STATUS_PATH = "/healthcheck/status.json"

# Salt values shipped in sample configuration files
DEFAULT_SALTS = {"", "__SALT__", "changeme"}


class CoreHealthchecks(Probe):
    """Check core configuration
    - cache: a cache backend is configured
    - debugDisabled: debug mode is off
    - salt: a non default salt is used
    - fullBaseUrl / validFullBaseUrl: base URL set and well formed
    - fullBaseUrlReachable: the status endpoint answers on the base URL
    """

    category = "core"

    def __init__(self, settings: Settings, client: httpx.Client) -> None:
        self.settings = settings
        self.client = client

    def defaults(self) -> dict[str, Any]:
        return {
            "cache": False,
            "debugDisabled": False,
            "salt": False,
            "fullBaseUrl": False,
            "validFullBaseUrl": False,
            "fullBaseUrlReachable": False,
            "info": {"fullBaseUrl": self.settings.full_base_url or ""},
        }

    def collect(self) -> dict[str, Any]:
        facts = self.defaults()
        facts["cache"] = bool(self.settings.cache_backend)
        facts["debugDisabled"] = not self.settings.debug
        facts["salt"] = self.settings.security_salt not in DEFAULT_SALTS

        base_url = self.settings.read("full_base_url")
        facts["fullBaseUrl"] = bool(base_url)
        facts["validFullBaseUrl"] = _is_valid_base_url(base_url)
        if facts["validFullBaseUrl"]:
            facts["fullBaseUrlReachable"] = self._is_reachable(base_url)
        return facts

    def _is_reachable(self, base_url: str) -> bool:
        url = f"{base_url.rstrip('/')}{STATUS_PATH}"
        try:
            resp = self.client.get(url)
        except httpx.HTTPError as e:
            logger.info("Base URL not reachable (%s): %s", url, e)
            return False
        if resp.status_code != 200:
            return False
        try:
            return resp.json().get("body") == "OK"
        except (ValueError, AttributeError):
            return False


def _is_valid_base_url(base_url: str) -> bool:
    try:
        url = httpx.URL(base_url)
    except (httpx.InvalidURL, TypeError):
        return False
    return url.scheme in ("http", "https") and bool(url.host)
