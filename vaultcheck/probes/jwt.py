"""JWT key pair validation."""

from __future__ import annotations

import logging
from pathlib import Path

from cryptography.hazmat.primitives import serialization

logger = logging.getLogger(__name__)

PRIVATE_KEY_FILE = "jwt.key"
PUBLIC_KEY_FILE = "jwt.pem"


class InvalidJwtKeyPairError(Exception):
    """Raised when the JWT key files are missing, unreadable or do not match."""


class JwtKeyPairService:
    """Validates the key pair used to sign and verify access tokens."""

    def __init__(self, config_dir: Path | str) -> None:
        self.config_dir = Path(config_dir)

    @property
    def private_key_path(self) -> Path:
        return self.config_dir / PRIVATE_KEY_FILE

    @property
    def public_key_path(self) -> Path:
        return self.config_dir / PUBLIC_KEY_FILE

    def _read(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as e:
            raise InvalidJwtKeyPairError(f"Cannot read {path}: {e}") from e

    def validate_key_pair(self) -> None:
        """Raises InvalidJwtKeyPairError unless both keys load and belong together."""
        try:
            private_key = serialization.load_pem_private_key(self._read(self.private_key_path), password=None)
            public_key = serialization.load_pem_public_key(self._read(self.public_key_path))
        except (ValueError, TypeError) as e:
            raise InvalidJwtKeyPairError(f"Invalid JWT key: {e}") from e

        expected = private_key.public_key().public_bytes(
            serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
        )
        actual = public_key.public_bytes(
            serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
        )
        if expected != actual:
            raise InvalidJwtKeyPairError("JWT public key does not match the private key")
        logger.debug("JWT key pair valid in %s", self.config_dir)
