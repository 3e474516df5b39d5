"""
Credential Digests.

Passwords are never stored or compared in plaintext.  Callers depend
only on :class:`CredentialVerifier`, so the digest scheme can change
without touching the auth or entity services.

Two schemes ship:

- ``pbkdf2``: salted PBKDF2-HMAC-SHA256 (pycryptodome), the default.
  Stored as ``pbkdf2_sha256$<iterations>$<salt hex>$<hash hex>``.
- ``sha256``: the unsalted hex SHA-256 digest of the legacy demo data.
  Kept for demo data compatibility only; it is not a security boundary.
"""

from __future__ import annotations

import hashlib
import hmac
from abc import ABC, abstractmethod

from Crypto.Hash import SHA256
from Crypto.Protocol.KDF import PBKDF2
from Crypto.Random import get_random_bytes

from budget_tracker.config import AppConfig
from budget_tracker.logger import StructuredLogger


class CredentialVerifier(ABC):
    """Derives and checks password digests."""

    scheme: str = ""

    @abstractmethod
    def digest(self, password: str) -> str:
        """Return the string to store for *password*."""

    @abstractmethod
    def verify(self, password: str, stored: str) -> bool:
        """``True`` when *password* matches the *stored* digest."""


class Sha256DigestVerifier(CredentialVerifier):
    """Unsalted hex SHA-256, compatible with legacy demo digests."""

    scheme = "sha256"

    def digest(self, password: str) -> str:
        return hashlib.sha256(password.encode("utf-8")).hexdigest()

    def verify(self, password: str, stored: str) -> bool:
        return hmac.compare_digest(self.digest(password), stored)


class Pbkdf2CredentialVerifier(CredentialVerifier):
    """Salted, iterated PBKDF2-HMAC-SHA256.

    Parameters
    ----------
    iterations:
        Work factor for new digests.  Verification always uses the
        count recorded in the stored string.
    logger:
        Structured logger for malformed-digest warnings.
    """

    scheme = "pbkdf2"
    _PREFIX: str = "pbkdf2_sha256"
    _SALT_BYTES: int = 16
    _KEY_BYTES: int = 32

    def __init__(self, iterations: int, logger: StructuredLogger) -> None:
        self._iterations = iterations
        self._logger = logger

    def digest(self, password: str) -> str:
        salt: bytes = get_random_bytes(self._SALT_BYTES)
        derived = self._derive(password, salt, self._iterations)
        return f"{self._PREFIX}${self._iterations}${salt.hex()}${derived.hex()}"

    def verify(self, password: str, stored: str) -> bool:
        try:
            prefix, iterations_text, salt_hex, hash_hex = stored.split("$")
            if prefix != self._PREFIX:
                raise ValueError(f"unexpected scheme '{prefix}'")
            iterations = int(iterations_text)
            salt = bytes.fromhex(salt_hex)
            expected = bytes.fromhex(hash_hex)
        except ValueError as exc:
            self._logger.warning("Stored credential digest is malformed: %s", exc)
            return False

        derived = self._derive(password, salt, iterations)
        return hmac.compare_digest(derived, expected)

    def _derive(self, password: str, salt: bytes, iterations: int) -> bytes:
        return PBKDF2(
            password.encode("utf-8"),
            salt,
            dkLen=self._KEY_BYTES,
            count=iterations,
            hmac_hash_module=SHA256,
        )


def create_credential_verifier(
    config: AppConfig, logger: StructuredLogger,
) -> CredentialVerifier:
    """Build the verifier selected by ``CREDENTIAL_SCHEME``."""
    if config.CREDENTIAL_SCHEME == "sha256":
        return Sha256DigestVerifier()
    return Pbkdf2CredentialVerifier(iterations=config.PBKDF2_ITERATIONS, logger=logger)
