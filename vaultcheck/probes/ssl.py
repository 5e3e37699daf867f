"""SSL certificate checks on the configured base URL."""

from __future__ import annotations

import logging
import socket
import ssl
from typing import Any

import httpx
from cryptography import x509

from vaultcheck.config import Settings
from vaultcheck.health.probe import Probe

logger = logging.getLogger(__name__)


class SslHealthchecks(Probe):
    """SSL certs check
    - peerValid: the certificate chain verifies
    - hostValid: the certificate matches the host name
    - notSelfSigned: the certificate is not self signed
    """

    category = "ssl"

    def __init__(self, settings: Settings, timeout: float | None = None) -> None:
        self.settings = settings
        self.timeout = timeout if timeout is not None else settings.http_timeout

    def defaults(self) -> dict[str, Any]:
        return {
            "peerValid": False,
            "hostValid": False,
            "notSelfSigned": False,
            "info": {"host": "", "port": 0},
        }

    def collect(self) -> dict[str, Any]:
        facts = self.defaults()
        url = httpx.URL(self.settings.read("full_base_url"))
        if url.scheme != "https" or not url.host:
            logger.info("Base URL is not https, skipping certificate checks")
            return facts

        host, port = url.host, url.port or 443
        facts["info"] = {"host": host, "port": port}
        facts["peerValid"] = self._verifies(host, port, check_hostname=False)
        facts["hostValid"] = facts["peerValid"] and self._verifies(host, port, check_hostname=True)

        try:
            der = self._peer_certificate(host, port)
        except OSError as e:
            logger.info("Could not fetch certificate from %s:%d: %s", host, port, e)
            return facts
        cert = x509.load_der_x509_certificate(der)
        facts["notSelfSigned"] = cert.issuer != cert.subject
        return facts

    def _verifies(self, host: str, port: int, check_hostname: bool) -> bool:
        ctx = ssl.create_default_context()
        ctx.check_hostname = check_hostname
        try:
            self._handshake(ctx, host, port)
        except ssl.SSLCertVerificationError as e:
            logger.info("Certificate verification failed for %s:%d: %s", host, port, e.verify_message)
            return False
        except OSError as e:
            logger.info("TLS handshake with %s:%d failed: %s", host, port, e)
            return False
        return True

    def _peer_certificate(self, host: str, port: int) -> bytes:
        ctx = ssl.create_default_context()
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
        der = self._handshake(ctx, host, port)
        if not der:
            raise ssl.SSLError("No certificate returned")
        return der

    def _handshake(self, ctx: ssl.SSLContext, host: str, port: int) -> bytes | None:
        with socket.create_connection((host, port), timeout=self.timeout) as sock:
            with ctx.wrap_socket(sock, server_hostname=host) as ssock:
                return ssock.getpeercert(binary_form=True)
